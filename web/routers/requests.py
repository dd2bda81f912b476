"""
Trek Requests Router - 找搭子
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlmodel import Session

from services.db.models import ActivityType, RequestStatus
from services.errors import NotFound
from services.trek_requests import TrekRequestService
from web.dependencies import get_db_session, key_func_local, key_func_remote, limiter

router = APIRouter(prefix="/api/requests", tags=["requests"])


class CreateRequestRequest(BaseModel):
    author_id: int
    city_id: int
    title: str
    description: str
    date_from: str
    date_to: Optional[str] = None
    activity_type: ActivityType = ActivityType.TREKKING


class ActorRequest(BaseModel):
    user_id: int


class CommentRequest(BaseModel):
    user_id: int
    content: str


@router.get("/city/{city_id}")
async def list_city_requests(
    city_id: int,
    viewer_id: Optional[int] = None,
    status: RequestStatus = RequestStatus.OPEN,
    db: Session = Depends(get_db_session),
):
    return TrekRequestService(db).get_requests_by_city(city_id, viewer_id, status)


@router.get("/{request_id}")
async def get_request(request_id: int, viewer_id: Optional[int] = None, db: Session = Depends(get_db_session)):
    trek_request = TrekRequestService(db).get_request(request_id, viewer_id)
    if trek_request is None:
        raise NotFound("Request not found", request_id=request_id)
    return trek_request


@router.post("")
@limiter.limit("10/minute", key_func=key_func_remote)
@limiter.limit("100/minute", key_func=key_func_local)
async def create_request(request: Request, data: CreateRequestRequest, db: Session = Depends(get_db_session)):
    return TrekRequestService(db).create_request(
        data.author_id,
        data.city_id,
        data.title,
        data.description,
        data.date_from,
        date_to=data.date_to,
        activity_type=data.activity_type,
    )


@router.delete("/{request_id}")
async def delete_request(request_id: int, user_id: int, db: Session = Depends(get_db_session)):
    TrekRequestService(db).delete_request(user_id, request_id)
    return {"success": True}


@router.post("/{request_id}/interest")
@limiter.limit("60/minute", key_func=key_func_remote)
@limiter.limit("600/minute", key_func=key_func_local)
async def toggle_interest(
    request: Request,
    request_id: int,
    data: ActorRequest,
    db: Session = Depends(get_db_session),
):
    return TrekRequestService(db).toggle_interest(data.user_id, request_id)


@router.post("/{request_id}/close")
async def close_request(request_id: int, data: ActorRequest, db: Session = Depends(get_db_session)):
    return TrekRequestService(db).close_request(data.user_id, request_id)


@router.post("/{request_id}/reopen")
async def reopen_request(request_id: int, data: ActorRequest, db: Session = Depends(get_db_session)):
    return TrekRequestService(db).reopen_request(data.user_id, request_id)


@router.get("/{request_id}/comments")
async def list_comments(request_id: int, viewer_id: Optional[int] = None, db: Session = Depends(get_db_session)):
    return TrekRequestService(db).list_comments(request_id, viewer_id)


@router.post("/{request_id}/comments")
@limiter.limit("20/minute", key_func=key_func_remote)
@limiter.limit("200/minute", key_func=key_func_local)
async def add_comment(
    request: Request,
    request_id: int,
    data: CommentRequest,
    db: Session = Depends(get_db_session),
):
    return TrekRequestService(db).add_comment(data.user_id, request_id, data.content)


@router.delete("/comments/{comment_id}")
async def delete_comment(comment_id: int, user_id: int, db: Session = Depends(get_db_session)):
    TrekRequestService(db).delete_comment(user_id, comment_id)
    return {"success": True}
