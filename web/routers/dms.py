"""
Direct Messages Router - 私信
"""
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlmodel import Session

from services.dm import DirectMessageService
from services.users import author_summary
from web.dependencies import get_db_session, key_func_local, key_func_remote, limiter

router = APIRouter(prefix="/api/dms", tags=["dms"])


class SendDMRequest(BaseModel):
    sender_id: int
    receiver_id: int
    content: str


class MarkReadRequest(BaseModel):
    user_id: int
    partner_id: int


@router.post("")
@limiter.limit("30/minute", key_func=key_func_remote)
@limiter.limit("300/minute", key_func=key_func_local)
async def send_dm(request: Request, data: SendDMRequest, db: Session = Depends(get_db_session)):
    return DirectMessageService(db).send_dm(data.sender_id, data.receiver_id, data.content)


@router.get("/conversation")
async def get_conversation(user_id: int, other_user_id: int, db: Session = Depends(get_db_session)):
    return DirectMessageService(db).get_conversation(user_id, other_user_id)


@router.get("/conversations/{user_id}")
async def get_conversations(user_id: int, db: Session = Depends(get_db_session)):
    return [
        {**conversation, "partner": author_summary(conversation["partner"])}
        for conversation in DirectMessageService(db).get_user_conversations(user_id)
    ]


@router.post("/read")
async def mark_as_read(data: MarkReadRequest, db: Session = Depends(get_db_session)):
    marked = DirectMessageService(db).mark_as_read(data.user_id, data.partner_id)
    return {"success": True, "marked_count": marked}


@router.get("/unread")
async def unread_count(user_id: int, partner_id: int, db: Session = Depends(get_db_session)):
    return {"count": DirectMessageService(db).get_unread_count(user_id, partner_id)}


@router.get("/unread/{user_id}/total")
async def total_unread_count(user_id: int, db: Session = Depends(get_db_session)):
    return {"count": DirectMessageService(db).get_total_unread_count(user_id)}
