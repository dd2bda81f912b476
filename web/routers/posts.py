"""
Posts API Router - 城市帖子
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlmodel import Session

from services.db.models import Difficulty, PostType
from services.errors import NotFound
from services.posts import PostService
from services.storage import BlobStore, BlobStoreError
from services.utils.validation import require_authenticated
from web.dependencies import get_blob_store, get_db_session, key_func_local, key_func_remote, limiter

router = APIRouter(prefix="/api/posts", tags=["posts"])
logger = logging.getLogger(__name__)


class CreatePostRequest(BaseModel):
    author_id: int
    city_id: int
    title: str
    content: str
    type: PostType = PostType.GENERAL
    images: List[str] = Field(default_factory=list)
    difficulty: Optional[Difficulty] = None
    rating: Optional[int] = None


class ActorRequest(BaseModel):
    user_id: int


class CommentRequest(BaseModel):
    user_id: int
    content: str


class UploadUrlRequest(BaseModel):
    user_id: int
    content_type: str = "image/webp"


def _service(db: Session, blob_store: Optional[BlobStore]) -> PostService:
    return PostService(db, blob_store=blob_store)


@router.get("/city/{city_id}")
async def list_city_posts(
    city_id: int,
    viewer_id: Optional[int] = None,
    type: Optional[PostType] = None,
    db: Session = Depends(get_db_session),
    blob_store: Optional[BlobStore] = Depends(get_blob_store),
):
    return _service(db, blob_store).get_posts_by_city(city_id, viewer_id, type)


@router.post("/upload-url")
@limiter.limit("10/minute", key_func=key_func_remote)
@limiter.limit("100/minute", key_func=key_func_local)
async def generate_upload_url(
    request: Request,
    data: UploadUrlRequest,
    db: Session = Depends(get_db_session),
    blob_store: Optional[BlobStore] = Depends(get_blob_store),
):
    """Presigned S3 PUT for a post image or avatar."""
    require_authenticated(db, data.user_id)
    if blob_store is None:
        raise HTTPException(status_code=503, detail="Server S3 configuration missing")
    try:
        return blob_store.generate_upload_url(data.user_id, data.content_type)
    except BlobStoreError as e:
        logger.error(f"S3 Error: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate upload signature")


@router.get("/{post_id}")
async def get_post(
    post_id: int,
    viewer_id: Optional[int] = None,
    db: Session = Depends(get_db_session),
    blob_store: Optional[BlobStore] = Depends(get_blob_store),
):
    post = _service(db, blob_store).get_post(post_id, viewer_id)
    if post is None:
        raise NotFound("Post not found", post_id=post_id)
    return post


@router.post("")
@limiter.limit("10/minute", key_func=key_func_remote)
@limiter.limit("100/minute", key_func=key_func_local)
async def create_post(
    request: Request,
    data: CreatePostRequest,
    db: Session = Depends(get_db_session),
    blob_store: Optional[BlobStore] = Depends(get_blob_store),
):
    return _service(db, blob_store).create_post(
        data.author_id,
        data.city_id,
        data.title,
        data.content,
        post_type=data.type,
        images=data.images,
        difficulty=data.difficulty,
        rating=data.rating,
    )


@router.delete("/{post_id}")
async def delete_post(
    post_id: int,
    user_id: int,
    db: Session = Depends(get_db_session),
    blob_store: Optional[BlobStore] = Depends(get_blob_store),
):
    _service(db, blob_store).delete_post(user_id, post_id)
    return {"success": True}


@router.post("/{post_id}/like")
@limiter.limit("60/minute", key_func=key_func_remote)
@limiter.limit("600/minute", key_func=key_func_local)
async def toggle_like(
    request: Request,
    post_id: int,
    data: ActorRequest,
    db: Session = Depends(get_db_session),
):
    return _service(db, None).toggle_like(data.user_id, post_id)


@router.get("/{post_id}/comments")
async def list_comments(post_id: int, viewer_id: Optional[int] = None, db: Session = Depends(get_db_session)):
    return _service(db, None).list_comments(post_id, viewer_id)


@router.post("/{post_id}/comments")
@limiter.limit("20/minute", key_func=key_func_remote)
@limiter.limit("200/minute", key_func=key_func_local)
async def add_comment(
    request: Request,
    post_id: int,
    data: CommentRequest,
    db: Session = Depends(get_db_session),
):
    return _service(db, None).add_comment(data.user_id, post_id, data.content)


@router.delete("/comments/{comment_id}")
async def delete_comment(comment_id: int, user_id: int, db: Session = Depends(get_db_session)):
    _service(db, None).delete_comment(user_id, comment_id)
    return {"success": True}
