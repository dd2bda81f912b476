"""
Places Router - 城市与国家
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from services.config import config
from services.errors import NotFound
from services.places import PlaceService
from services.users import UserService
from web.dependencies import get_db_session

router = APIRouter(prefix="/api/places", tags=["places"])


class CreateCityRequest(BaseModel):
    name: str
    country: str
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class CreateCountryRequest(BaseModel):
    name: str


# --- cities ---

@router.get("/cities")
async def list_cities(db: Session = Depends(get_db_session)):
    return PlaceService(db).get_cities()


@router.post("/cities")
async def create_city(data: CreateCityRequest, db: Session = Depends(get_db_session)):
    return PlaceService(db).create_city(data.name, data.country, data.lat, data.lng)


@router.get("/cities/find")
async def find_city(name: str, country: str, db: Session = Depends(get_db_session)):
    return {"city": PlaceService(db).find_city(name, country)}


@router.get("/cities/nearest")
async def nearest_city(lat: float, lng: float, db: Session = Depends(get_db_session)):
    return {"city": PlaceService(db).find_nearest_city(lat, lng)}


@router.get("/cities/{city_id}")
async def get_city(city_id: int, db: Session = Depends(get_db_session)):
    city = PlaceService(db).get_city(city_id)
    if not city:
        raise NotFound("City not found", city_id=city_id)
    return city


@router.get("/cities/{city_id}/active-users")
async def city_active_users(city_id: int, db: Session = Depends(get_db_session)):
    return {"count": UserService(db, config.ACTIVE_WINDOW_MINUTES).get_active_city_users(city_id)}


# --- countries ---

@router.get("/countries")
async def list_countries(db: Session = Depends(get_db_session)):
    return PlaceService(db).get_countries()


@router.get("/countries/stats")
async def countries_with_stats(db: Session = Depends(get_db_session)):
    return PlaceService(db, config.ACTIVE_WINDOW_MINUTES).get_countries_with_stats()


@router.post("/countries")
async def get_or_create_country(data: CreateCountryRequest, db: Session = Depends(get_db_session)):
    return PlaceService(db).get_or_create_country(data.name)


@router.get("/countries/{slug}")
async def get_country(slug: str, db: Session = Depends(get_db_session)):
    country = PlaceService(db).get_country_by_slug(slug)
    if not country:
        raise NotFound("Country not found", slug=slug)
    return country


@router.get("/countries/{slug}/cities")
async def country_cities(slug: str, db: Session = Depends(get_db_session)):
    service = PlaceService(db, config.ACTIVE_WINDOW_MINUTES)
    country = service.get_country_by_slug(slug)
    if not country:
        raise NotFound("Country not found", slug=slug)
    return service.get_cities_for_country(country.id)


@router.get("/countries/{slug}/active-users")
async def country_active_users(slug: str, db: Session = Depends(get_db_session)):
    service = PlaceService(db, config.ACTIVE_WINDOW_MINUTES)
    country = service.get_country_by_slug(slug)
    if not country:
        raise NotFound("Country not found", slug=slug)
    return {"count": service.get_active_country_users(country.id)}
