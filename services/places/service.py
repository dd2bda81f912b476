"""城市与国家目录."""

import logging
import math
import re
from typing import Any, Dict, List, Optional

from sqlmodel import Session, col, select

from services.db.models import City, Country
from services.users import UserService
from services.users.service import ACTIVE_WINDOW_MINUTES
from services.utils.validation import clean_text

log = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371


def generate_slug(name: str) -> str:
    """URL-safe slug: lowercase ascii words joined by single hyphens."""
    slug = name.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip()


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class PlaceService:
    def __init__(self, session: Session, active_window_minutes: int = ACTIVE_WINDOW_MINUTES):
        self.session = session
        self.users = UserService(session, active_window_minutes)

    # --- cities ---

    def create_city(self, name: str, country: str, lat: float, lng: float) -> City:
        """Upsert on (name, country); an existing city is returned unchanged."""
        name = clean_text("name", name, 128)
        country = clean_text("country", country, 128)

        existing = self.find_city(name, country)
        if existing:
            return existing

        city = City(name=name, country=country, lat=lat, lng=lng)
        self.session.add(city)
        self.session.commit()
        self.session.refresh(city)

        log.info(f"Created city {city.id}: {name}, {country}")
        return city

    def get_cities(self) -> List[City]:
        return list(self.session.exec(select(City).order_by(col(City.name))).all())

    def get_city(self, city_id: int) -> Optional[City]:
        return self.session.get(City, city_id)

    def find_city(self, name: str, country: str) -> Optional[City]:
        return self.session.exec(
            select(City).where(City.name == name, City.country == country)
        ).first()

    def find_nearest_city(self, lat: float, lng: float) -> Optional[City]:
        cities = self.get_cities()
        if not cities:
            return None
        return min(cities, key=lambda c: haversine_km(lat, lng, c.lat, c.lng))

    def _country_cities(self, country: Country) -> List[City]:
        return list(self.session.exec(
            select(City).where(City.country == country.name).order_by(col(City.name))
        ).all())

    def get_cities_for_country(self, country_id: int) -> List[Dict[str, Any]]:
        """Cities of the country with their active user counts, busiest first."""
        country = self.session.get(Country, country_id)
        if not country:
            return []
        cities = self._country_cities(country)
        active = self.users.count_active_by_city([c.id for c in cities])
        results = [{"city": city, "active_users": active[city.id]} for city in cities]
        # sort 是稳定的, 同样活跃度时按城市名
        results.sort(key=lambda r: r["active_users"], reverse=True)
        return results

    # --- countries ---

    def get_or_create_country(self, name: str) -> Country:
        name = clean_text("name", name, 128)
        existing = self.session.exec(select(Country).where(Country.name == name)).first()
        if existing:
            return existing

        country = Country(name=name, slug=generate_slug(name))
        self.session.add(country)
        self.session.commit()
        self.session.refresh(country)

        log.info(f"Created country {country.id}: {name} ({country.slug})")
        return country

    def get_country_by_slug(self, slug: str) -> Optional[Country]:
        return self.session.exec(select(Country).where(Country.slug == slug)).first()

    def get_countries(self) -> List[Country]:
        return list(self.session.exec(select(Country).order_by(col(Country.name))).all())

    def get_active_country_users(self, country_id: int) -> int:
        country = self.session.get(Country, country_id)
        if not country:
            return 0
        cities = self._country_cities(country)
        return sum(self.users.count_active_by_city([c.id for c in cities]).values())

    def get_countries_with_stats(self) -> List[Dict[str, Any]]:
        """Every country with its city count and active users, busiest first."""
        countries = self.get_countries()
        cities = self.get_cities()
        active = self.users.count_active_by_city([c.id for c in cities])

        stats = []
        for country in countries:
            country_cities = [c for c in cities if c.country == country.name]
            stats.append({
                "country": country,
                "city_count": len(country_cities),
                "active_users": sum(active[c.id] for c in country_cities),
            })
        stats.sort(key=lambda s: s["active_users"], reverse=True)
        return stats
