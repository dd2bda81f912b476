"""
Chat Router - 城市/国家聊天室
"""
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Request
from pydantic import BaseModel
from sqlmodel import Session

from services.chat import ChatService
from services.config import config
from services.users.session import SESSION_COOKIE_NAME
from web.dependencies import get_db_session, key_func_local, key_func_remote, limiter

router = APIRouter(prefix="/api/chat", tags=["chat"])


class SendMessageRequest(BaseModel):
    content: str
    username: str
    user_id: Optional[int] = None
    session_id: Optional[str] = None


def _service(db: Session) -> ChatService:
    return ChatService(db, history_limit=config.CHAT_HISTORY_LIMIT)


# --- city rooms ---

@router.get("/city/{city_id}/messages")
async def city_messages(city_id: int, viewer_id: Optional[int] = None, db: Session = Depends(get_db_session)):
    return _service(db).get_city_messages(city_id, viewer_id)


@router.post("/city/{city_id}/messages")
@limiter.limit("30/minute", key_func=key_func_remote)
@limiter.limit("300/minute", key_func=key_func_local)
async def send_city_message(
    request: Request,
    city_id: int,
    data: SendMessageRequest,
    trek_session_id: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
    db: Session = Depends(get_db_session),
):
    return _service(db).send_city_message(
        city_id,
        data.content,
        data.username,
        user_id=data.user_id,
        session_id=data.session_id or trek_session_id,
    )


@router.get("/city/{city_id}/active-count")
async def city_active_count(city_id: int, minutes: int = 10, db: Session = Depends(get_db_session)):
    return {"count": _service(db).get_city_active_users_count(city_id, minutes)}


# --- country rooms ---

@router.get("/country/{country_id}/messages")
async def country_messages(country_id: int, viewer_id: Optional[int] = None, db: Session = Depends(get_db_session)):
    return _service(db).get_country_messages(country_id, viewer_id)


@router.post("/country/{country_id}/messages")
@limiter.limit("30/minute", key_func=key_func_remote)
@limiter.limit("300/minute", key_func=key_func_local)
async def send_country_message(
    request: Request,
    country_id: int,
    data: SendMessageRequest,
    trek_session_id: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
    db: Session = Depends(get_db_session),
):
    return _service(db).send_country_message(
        country_id,
        data.content,
        data.username,
        user_id=data.user_id,
        session_id=data.session_id or trek_session_id,
    )


@router.get("/country/{country_id}/active-count")
async def country_active_count(country_id: int, minutes: int = 10, db: Session = Depends(get_db_session)):
    return {"count": _service(db).get_country_active_users_count(country_id, minutes)}
