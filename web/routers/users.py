"""
User API Router
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from sqlmodel import Session

from services.config import config
from services.db.models import User
from services.errors import Forbidden, NotFound
from services.users import UserProfileUpdate, UserService
from web.dependencies import get_db_session, key_func_local, key_func_remote, limiter

router = APIRouter(prefix="/api/users", tags=["users"])


# --- Models ---

class ProfileUpdateRequest(UserProfileUpdate):
    actor_id: int


class NotificationPreferencesRequest(BaseModel):
    actor_id: int
    email_notifications: Optional[bool] = None
    browser_notifications: Optional[bool] = None


class JoinCityRequest(BaseModel):
    city_id: int


def public_user(user: User) -> Dict[str, Any]:
    """Fields safe to show other users (no auth/session ids, no email)."""
    return {
        "id": user.id,
        "username": user.username,
        "avatar_url": user.avatar_url,
        "bio": user.bio,
        "whatsapp_number": user.whatsapp_number,
        "location": user.location,
        "is_authenticated": user.is_authenticated,
        "current_city_id": user.current_city_id,
        "cities_visited": user.cities_visited,
        "last_seen": user.last_seen,
        "created_at": user.created_at,
    }


def _service(db: Session) -> UserService:
    return UserService(db, config.ACTIVE_WINDOW_MINUTES)


# --- Endpoints ---

@router.get("/search")
async def search_users(q: str = Query("", max_length=64), db: Session = Depends(get_db_session)):
    return [public_user(u) for u in _service(db).search_users(q)]


@router.get("/stats")
async def user_stats(db: Session = Depends(get_db_session)):
    service = _service(db)
    return {
        "active_users": service.get_total_active_users(),
        "authenticated_users": service.count_authenticated_users(),
    }


@router.get("/{user_id}")
async def get_profile(user_id: int, db: Session = Depends(get_db_session)):
    profile = _service(db).get_user_profile(user_id)
    if not profile:
        raise NotFound("User not found", user_id=user_id)
    return {"user": public_user(profile["user"]), "cities": profile["cities"]}


@router.put("/{user_id}")
@limiter.limit("20/minute", key_func=key_func_remote)
@limiter.limit("200/minute", key_func=key_func_local)
async def update_profile(
    request: Request,
    user_id: int,
    data: ProfileUpdateRequest,
    db: Session = Depends(get_db_session),
):
    if data.actor_id != user_id:
        raise Forbidden("You can only edit your own profile")
    update = UserProfileUpdate(**data.model_dump(exclude={"actor_id"}, exclude_unset=True))
    return public_user(_service(db).update_profile(user_id, update))


@router.put("/{user_id}/notifications")
async def update_notifications(
    user_id: int,
    data: NotificationPreferencesRequest,
    db: Session = Depends(get_db_session),
):
    user = _service(db).update_notification_preferences(
        data.actor_id,
        user_id,
        email_notifications=data.email_notifications,
        browser_notifications=data.browser_notifications,
    )
    return {
        "email_notifications": user.email_notifications,
        "browser_notifications": user.browser_notifications,
    }


@router.post("/{user_id}/join-city")
async def join_city(user_id: int, data: JoinCityRequest, db: Session = Depends(get_db_session)):
    return _service(db).join_city(user_id, data.city_id)


@router.get("/{user_id}/current-city")
async def current_city(user_id: int, db: Session = Depends(get_db_session)):
    return {"city": _service(db).get_user_current_city(user_id)}


@router.post("/{user_id}/heartbeat")
async def heartbeat(user_id: int, db: Session = Depends(get_db_session)):
    _service(db).update_last_seen(user_id)
    return {"success": True}
