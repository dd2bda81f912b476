"""
Safety Router - 屏蔽与举报
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlmodel import Session

from services.db.models import MessageType
from services.safety import BlockService, ReportService
from services.users import author_summary
from web.dependencies import get_db_session, key_func_local, key_func_remote, limiter

router = APIRouter(prefix="/api/safety", tags=["safety"])


class BlockRequest(BaseModel):
    blocker_id: int
    blocked_id: int
    reason: Optional[str] = None


class ReportRequest(BaseModel):
    reporter_id: int
    reported_user_id: int
    reason: str
    message_id: Optional[str] = None
    message_type: Optional[MessageType] = None
    description: Optional[str] = None


@router.post("/block")
@limiter.limit("20/minute", key_func=key_func_remote)
@limiter.limit("200/minute", key_func=key_func_local)
async def block_user(request: Request, data: BlockRequest, db: Session = Depends(get_db_session)):
    block = BlockService(db).block(data.blocker_id, data.blocked_id, data.reason)
    return {"block_id": block.id, "blocked_at": block.created_at}


@router.post("/unblock")
async def unblock_user(data: BlockRequest, db: Session = Depends(get_db_session)):
    BlockService(db).unblock(data.blocker_id, data.blocked_id)
    return {"success": True}


@router.get("/blocked/{user_id}")
async def blocked_users(user_id: int, db: Session = Depends(get_db_session)):
    return [
        {**entry, "user": author_summary(entry["user"])}
        for entry in BlockService(db).get_blocked_users(user_id)
    ]


@router.get("/block-status")
async def block_status(user_id: int, other_user_id: int, db: Session = Depends(get_db_session)):
    return BlockService(db).check_block_status(user_id, other_user_id)


@router.post("/report")
@limiter.limit("10/minute", key_func=key_func_remote)
@limiter.limit("100/minute", key_func=key_func_local)
async def report_user(request: Request, data: ReportRequest, db: Session = Depends(get_db_session)):
    report = ReportService(db).report_user(
        data.reporter_id,
        data.reported_user_id,
        data.reason,
        message_id=data.message_id,
        message_type=data.message_type,
        description=data.description,
    )
    return {"report_id": report.id, "status": report.status}
