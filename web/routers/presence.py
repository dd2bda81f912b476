"""
Typing indicator endpoints.

Rooms are addressed by (conversation_type, target_id). For DMs the target is
the other user, so the room key needs both ids.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlmodel import Session

from services.config import config
from services.db.models import ConversationType
from services.errors import ValidationError
from services.presence import TypingService, conversation_key
from web.dependencies import get_db_session, key_func_local, key_func_remote, limiter

router = APIRouter(prefix="/api/typing", tags=["presence"])


class TypingRequest(BaseModel):
    user_id: int
    conversation_type: ConversationType = ConversationType.CITY
    target_id: int


def room_key(conversation_type: ConversationType, target_id: int, user_id: Optional[int]) -> str:
    if conversation_type == ConversationType.DM:
        if user_id is None:
            raise ValidationError("viewer_id", "viewer_id is required for direct message rooms")
        return conversation_key(conversation_type, user_id, target_id)
    return conversation_key(conversation_type, target_id)


def _service(db: Session) -> TypingService:
    return TypingService(db, ttl_seconds=config.TYPING_TTL_SECONDS)


@router.post("/signal")
@limiter.limit("120/minute", key_func=key_func_remote)
@limiter.limit("1000/minute", key_func=key_func_local)
async def signal_typing(request: Request, data: TypingRequest, db: Session = Depends(get_db_session)):
    key = room_key(data.conversation_type, data.target_id, data.user_id)
    indicator = _service(db).signal(data.user_id, key, data.conversation_type)
    return {"conversation_id": key, "expires_at": indicator.expires_at}


@router.post("/clear")
async def clear_typing(data: TypingRequest, db: Session = Depends(get_db_session)):
    key = room_key(data.conversation_type, data.target_id, data.user_id)
    return {"cleared": _service(db).clear(data.user_id, key)}


@router.get("/{conversation_type}/{target_id}")
async def list_typing(
    conversation_type: ConversationType,
    target_id: int,
    viewer_id: Optional[int] = None,
    db: Session = Depends(get_db_session),
):
    key = room_key(conversation_type, target_id, viewer_id)
    return _service(db).list_typing(key, exclude_user_id=viewer_id)
