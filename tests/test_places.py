"""城市/国家目录测试."""

from datetime import timedelta

import pytest

from services.places import PlaceService, generate_slug, haversine_km
from services.users import UserService
from services.utils.timezone import now


@pytest.mark.parametrize(
    "name, slug",
    [
        ("Peru", "peru"),
        ("United States", "united-states"),
        ("Côte d'Ivoire", "cte-divoire"),
        ("Bosnia  -  Herzegovina", "bosnia-herzegovina"),
    ],
)
def test_generate_slug(name, slug):
    assert generate_slug(name) == slug


def test_haversine_known_distance():
    # Cusco -> Lima, roughly 570 km
    distance = haversine_km(-13.5319, -71.9675, -12.0464, -77.0428)
    assert 560 < distance < 590
    assert haversine_km(10, 10, 10, 10) == 0


def test_create_city_is_upsert(session):
    service = PlaceService(session)

    first = service.create_city("Cusco", "Peru", -13.53, -71.97)
    second = service.create_city("Cusco", "Peru", 0, 0)

    assert first.id == second.id
    assert second.lat == -13.53
    assert len(service.get_cities()) == 1
    assert service.find_city("Cusco", "Peru").id == first.id
    assert service.find_city("Cusco", "Chile") is None


def test_find_nearest_city(session):
    service = PlaceService(session)
    assert service.find_nearest_city(0, 0) is None

    service.create_city("Cusco", "Peru", -13.5319, -71.9675)
    lima = service.create_city("Lima", "Peru", -12.0464, -77.0428)
    service.create_city("La Paz", "Bolivia", -16.4897, -68.1193)

    assert service.find_nearest_city(-12.1, -76.9).id == lima.id


def test_countries(session):
    service = PlaceService(session)
    peru = service.get_or_create_country("Peru")
    again = service.get_or_create_country("Peru")
    service.get_or_create_country("New Zealand")
    service.create_city("Cusco", "Peru", -13.53, -71.97)
    service.create_city("Queenstown", "New Zealand", -45.03, 168.66)

    assert again.id == peru.id
    assert service.get_country_by_slug("new-zealand").name == "New Zealand"
    assert [c.name for c in service.get_countries()] == ["New Zealand", "Peru"]
    assert [r["city"].name for r in service.get_cities_for_country(peru.id)] == ["Cusco"]
    assert service.get_cities_for_country(9999) == []


@pytest.fixture
def active_in(session):
    """Put a user in a city and mark them as seen ``minutes_ago``."""
    def _put(user, city, minutes_ago: int = 0):
        UserService(session).join_city(user.id, city.id)
        user.last_seen = now() - timedelta(minutes=minutes_ago)
        session.add(user)
        session.commit()

    return _put


def test_country_stats_count_cities_and_active_users(session, make_city, alice, bob, carol, active_in):
    service = PlaceService(session)
    service.get_or_create_country("Peru")
    service.get_or_create_country("Nepal")
    service.get_or_create_country("Chile")
    cusco = make_city("Cusco", "Peru")
    make_city("Lima", "Peru")
    kathmandu = make_city("Kathmandu", "Nepal")

    active_in(alice, kathmandu)
    active_in(bob, kathmandu)
    active_in(carol, cusco, minutes_ago=30)

    stats = service.get_countries_with_stats()

    assert [(s["country"].name, s["city_count"], s["active_users"]) for s in stats] == [
        ("Nepal", 1, 2),
        ("Chile", 0, 0),
        ("Peru", 2, 0),
    ]


def test_active_country_users(session, make_city, alice, bob, guest, active_in):
    service = PlaceService(session)
    peru = service.get_or_create_country("Peru")
    cusco = make_city("Cusco", "Peru")
    lima = make_city("Lima", "Peru")
    santiago = make_city("Santiago", "Chile")

    active_in(alice, cusco)
    active_in(guest, lima)
    active_in(bob, santiago)

    assert service.get_active_country_users(peru.id) == 2
    assert service.get_active_country_users(9999) == 0
    # 窗口可配置
    active_in(alice, cusco, minutes_ago=20)
    assert PlaceService(session, active_window_minutes=30).get_active_country_users(peru.id) == 2
    assert service.get_active_country_users(peru.id) == 1


def test_cities_for_country_busiest_first(session, make_city, alice, active_in):
    service = PlaceService(session)
    peru = service.get_or_create_country("Peru")
    make_city("Arequipa", "Peru")
    cusco = make_city("Cusco", "Peru")
    make_city("Lima", "Peru")

    active_in(alice, cusco)

    rows = service.get_cities_for_country(peru.id)
    assert [(r["city"].name, r["active_users"]) for r in rows] == [
        ("Cusco", 1),
        ("Arequipa", 0),
        ("Lima", 0),
    ]
