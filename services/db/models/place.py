"""Cities and countries that host chat rooms."""

from typing import Optional

from sqlmodel import Field, SQLModel, UniqueConstraint

from .base import TimeStamped


class City(TimeStamped, SQLModel, table=True):
    __tablename__ = "cities"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=128, index=True)
    country: str = Field(max_length=128, index=True)
    lat: float
    lng: float

    __table_args__ = (UniqueConstraint("name", "country", name="uq_city_name_country"),)


class Country(TimeStamped, SQLModel, table=True):
    __tablename__ = "countries"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=128, unique=True, index=True)
    slug: str = Field(max_length=128, unique=True, index=True)
