"""
Session Router
游客会话引导, 以及登录后的账号同步/合并
"""
import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Request, Response
from pydantic import BaseModel
from sqlmodel import Session

from services.config import config
from services.users import UserService
from services.users.session import (
    SESSION_COOKIE_NAME,
    generate_anonymous_username,
    generate_session_id,
)
from web.dependencies import get_db_session, key_func_local, key_func_remote, limiter

router = APIRouter(prefix="/api", tags=["Session"])
logger = logging.getLogger(__name__)


class GuestSessionRequest(BaseModel):
    username: Optional[str] = None


class AuthSyncRequest(BaseModel):
    external_id: str
    username: str
    avatar_url: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None
    whatsapp_number: Optional[str] = None


@router.post("/session")
@limiter.limit("30/minute", key_func=key_func_remote)
@limiter.limit("300/minute", key_func=key_func_local)
async def bootstrap_guest(
    request: Request,
    response: Response,
    data: Optional[GuestSessionRequest] = None,
    trek_session_id: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
    db: Session = Depends(get_db_session),
):
    """Resolve the guest for the session cookie, minting a cookie on first visit."""
    session_token = trek_session_id or generate_session_id()
    username = (data.username if data else None) or generate_anonymous_username()

    service = UserService(db, config.ACTIVE_WINDOW_MINUTES)
    existing = service.get_by_session_id(session_token)
    if existing and not (data and data.username):
        username = existing.username

    user_id = service.resolve_or_create_guest(session_token, username)
    user = service.get_user(user_id)

    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_token,
        max_age=365 * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
    )
    return {"user_id": user_id, "session_id": session_token, "username": user.username}


@router.post("/auth/sync")
@limiter.limit("30/minute", key_func=key_func_remote)
@limiter.limit("300/minute", key_func=key_func_local)
async def sync_authenticated(
    request: Request,
    data: AuthSyncRequest,
    trek_session_id: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
    db: Session = Depends(get_db_session),
):
    """登录后同步账号. 当前会话 cookie 对应的游客会被迁移到认证账号."""
    service = UserService(db, config.ACTIVE_WINDOW_MINUTES)

    guest = service.get_by_session_id(trek_session_id) if trek_session_id else None
    if guest is not None and not guest.is_authenticated:
        user_id = service.migrate_guest_to_authenticated(
            guest.id,
            data.external_id,
            data.username,
            avatar_url=data.avatar_url,
            email=data.email,
        )
        return {"user_id": user_id, "migrated": True}

    user_id = service.resolve_or_create_authenticated(
        data.external_id,
        data.username,
        avatar_url=data.avatar_url,
        email=data.email,
        bio=data.bio,
        whatsapp_number=data.whatsapp_number,
    )
    return {"user_id": user_id, "migrated": False}
