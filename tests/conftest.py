"""Shared fixtures: a fresh in-memory database per test and seeded users/cities."""

import os
import sys
from pathlib import Path
from typing import Dict, List

# 在导入 services 之前设置, config 在导入时读取环境变量
os.environ.setdefault("TREK_DB_PATH", ":memory:")
os.environ.setdefault("TREK_LOG_DIR", str(Path(__file__).parent / ".logs"))

# 添加项目根目录到 Python 路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest  # noqa: E402
from sqlmodel import Session  # noqa: E402

from services.db.init import reset_db  # noqa: E402
from services.db.models import City, Country, User  # noqa: E402
from services.storage import BlobStore, BlobStoreError  # noqa: E402


class FakeBlobStore(BlobStore):
    """Records released keys; ``fail_on`` keys raise like a broken bucket."""

    def __init__(self, fail_on=()):
        self.deleted: List[str] = []
        self.fail_on = set(fail_on)

    def get_url(self, key: str):
        return f"https://blobs.test/{key}" if key else None

    def delete(self, key: str) -> None:
        if key in self.fail_on:
            raise BlobStoreError(f"Failed to delete {key}")
        self.deleted.append(key)

    def generate_upload_url(self, owner_id: int, content_type: str) -> Dict[str, str]:
        key = f"uploads/{owner_id}.png"
        return {"upload_url": f"https://blobs.test/put/{key}", "public_url": self.get_url(key), "key": key}


@pytest.fixture
def engine():
    return reset_db(":memory:")


@pytest.fixture
def session(engine):
    with Session(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def make_user(session):
    """Factory: ``make_user("alice")`` is signed in, ``make_user("g", guest=True)`` is a guest."""
    def _make(username: str, guest: bool = False, cities=None) -> User:
        user = User(
            username=username,
            auth_id=None if guest else f"ext-{username}",
            session_id=f"sess-{username}" if guest else None,
            cities_visited=list(cities or []),
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def carol(make_user):
    return make_user("carol")


@pytest.fixture
def guest(make_user):
    return make_user("wandering-yak-7", guest=True)


@pytest.fixture
def make_city(session):
    def _make(name: str, country: str = "Peru", lat: float = 0.0, lng: float = 0.0) -> City:
        city = City(name=name, country=country, lat=lat, lng=lng)
        session.add(city)
        session.commit()
        session.refresh(city)
        return city

    return _make


@pytest.fixture
def cusco(make_city):
    return make_city("Cusco", "Peru", -13.5319, -71.9675)


@pytest.fixture
def peru(session):
    country = Country(name="Peru", slug="peru")
    session.add(country)
    session.commit()
    session.refresh(country)
    return country


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def failing_blob_store():
    """Bucket that refuses to delete ``a.png``."""
    return FakeBlobStore(fail_on={"a.png"})
