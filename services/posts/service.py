"""城市帖子服务层 - trail reports, recommendations, likes and comments."""

import logging
from typing import Any, Dict, List, Optional

from sqlmodel import Session, col, func, select

from services.db.models import Difficulty, Post, PostComment, PostLike, PostType, User
from services.errors import Forbidden, NotFound, ValidationError
from services.safety import hidden_author_ids
from services.storage import BlobStore
from services.users import author_summary
from services.utils.validation import (
    COMMENT_MAX,
    MAX_POST_IMAGES,
    POST_CONTENT_MAX,
    TITLE_MAX,
    clean_text,
    get_city_or_404,
    require_authenticated,
)

log = logging.getLogger(__name__)


class PostService:
    """帖子服务，提供发帖、点赞、评论和级联删除."""

    def __init__(self, session: Session, blob_store: Optional[BlobStore] = None):
        """初始化服务.

        Args:
            session: SQLModel/SQLAlchemy Session
            blob_store: where post images live; required to release them on delete
        """
        self.session = session
        self.blob_store = blob_store

    def _get_post_or_404(self, post_id: int) -> Post:
        post = self.session.get(Post, post_id)
        if not post:
            raise NotFound("Post not found", post_id=post_id)
        return post

    def _like_count(self, post_id: int) -> int:
        return self.session.exec(
            select(func.count()).select_from(PostLike).where(PostLike.post_id == post_id)
        ).one()

    def _comment_count(self, post_id: int) -> int:
        return self.session.exec(
            select(func.count()).select_from(PostComment).where(PostComment.post_id == post_id)
        ).one()

    def _has_liked(self, post_id: int, viewer_id: Optional[int]) -> bool:
        if viewer_id is None:
            return False
        return self._find_like(viewer_id, post_id) is not None

    def _find_like(self, user_id: int, post_id: int) -> Optional[PostLike]:
        return self.session.exec(
            select(PostLike).where(PostLike.user_id == user_id, PostLike.post_id == post_id)
        ).first()

    # --- reads ---

    def get_posts_by_city(
        self,
        city_id: int,
        viewer_id: Optional[int] = None,
        type_filter: Optional[PostType] = None,
    ) -> List[Dict[str, Any]]:
        """获取城市帖子列表（最新在前），隐藏屏蔽关系中的作者.

        Args:
            city_id: 城市 ID
            viewer_id: 当前用户 ID，提供时过滤屏蔽用户并计算 has_liked
            type_filter: 帖子类型筛选

        Returns:
            帖子字典列表，含 author / like_count / comment_count / has_liked
        """
        query = select(Post).where(Post.city_id == city_id)
        if type_filter:
            query = query.where(Post.type == PostType(type_filter))
        query = query.order_by(col(Post.created_at).desc(), col(Post.id).desc())

        hidden = hidden_author_ids(self.session, viewer_id)

        results = []
        for post in self.session.exec(query).all():
            if post.author_id in hidden:
                continue
            results.append({
                "post": post,
                "author": author_summary(self.session.get(User, post.author_id)),
                "like_count": self._like_count(post.id),
                "comment_count": self._comment_count(post.id),
                "has_liked": self._has_liked(post.id, viewer_id),
            })
        return results

    def get_post(self, post_id: int, viewer_id: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """帖子详情. Returns None when missing or when the author is hidden from the viewer."""
        post = self.session.get(Post, post_id)
        if not post:
            return None
        if post.author_id in hidden_author_ids(self.session, viewer_id):
            return None

        image_urls = []
        if self.blob_store is not None:
            image_urls = [url for url in (self.blob_store.get_url(k) for k in post.images) if url]

        return {
            "post": post,
            "author": author_summary(self.session.get(User, post.author_id)),
            "image_urls": image_urls,
            "like_count": self._like_count(post.id),
            "comments": self.list_comments(post.id, viewer_id),
            "has_liked": self._has_liked(post.id, viewer_id),
        }

    def list_comments(self, post_id: int, viewer_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """Oldest first, hidden authors dropped."""
        hidden = hidden_author_ids(self.session, viewer_id)
        comments = self.session.exec(
            select(PostComment)
            .where(PostComment.post_id == post_id)
            .order_by(col(PostComment.created_at).asc(), col(PostComment.id).asc())
        ).all()
        return [
            {"comment": c, "author": author_summary(self.session.get(User, c.author_id))}
            for c in comments
            if c.author_id not in hidden
        ]

    # --- writes ---

    def create_post(
        self,
        author_id: int,
        city_id: int,
        title: str,
        content: str,
        post_type: PostType = PostType.GENERAL,
        images: Optional[List[str]] = None,
        difficulty: Optional[Difficulty] = None,
        rating: Optional[int] = None,
    ) -> Post:
        require_authenticated(self.session, author_id)
        get_city_or_404(self.session, city_id)

        title = clean_text("title", title, TITLE_MAX)
        content = clean_text("content", content, POST_CONTENT_MAX)
        images = list(images or [])
        if len(images) > MAX_POST_IMAGES:
            raise ValidationError(
                "images",
                f"Maximum {MAX_POST_IMAGES} images per post",
                limit=MAX_POST_IMAGES,
                actual=len(images),
            )
        if rating is not None and not 1 <= rating <= 5:
            raise ValidationError("rating", "Rating must be between 1 and 5", limit=5, actual=rating)

        post = Post(
            city_id=city_id,
            author_id=author_id,
            title=title,
            content=content,
            type=PostType(post_type),
            images=images,
            difficulty=Difficulty(difficulty) if difficulty else None,
            rating=rating,
        )
        self.session.add(post)
        self.session.commit()
        self.session.refresh(post)
        return post

    def delete_post(self, user_id: int, post_id: int) -> None:
        """删除帖子（仅作者），级联删除评论、点赞并释放图片.

        Image release is best effort: failures are logged and the rows are
        still deleted.
        """
        post = self._get_post_or_404(post_id)
        if post.author_id != user_id:
            raise Forbidden("Only the author can delete this post", post_id=post_id)

        comments = self.session.exec(select(PostComment).where(PostComment.post_id == post_id)).all()
        for comment in comments:
            self.session.delete(comment)

        likes = self.session.exec(select(PostLike).where(PostLike.post_id == post_id)).all()
        for like in likes:
            self.session.delete(like)

        images = list(post.images)
        self.session.delete(post)
        self.session.commit()

        log.info(f"Deleted post {post_id} with {len(comments)} comments and {len(likes)} likes")
        self._release_images(post_id, images)

    def _release_images(self, post_id: int, keys: List[str]) -> None:
        if not keys:
            return
        if self.blob_store is None:
            log.warning(f"Post {post_id}: no blob store configured, {len(keys)} images not released")
            return
        for key in keys:
            try:
                self.blob_store.delete(key)
            except Exception as e:
                log.warning(f"Post {post_id}: failed to release image {key}: {e}")

    def toggle_like(self, user_id: int, post_id: int) -> Dict[str, bool]:
        require_authenticated(self.session, user_id)
        self._get_post_or_404(post_id)

        existing = self._find_like(user_id, post_id)
        if existing:
            self.session.delete(existing)
            self.session.commit()
            return {"liked": False}

        self.session.add(PostLike(post_id=post_id, user_id=user_id))
        self.session.commit()
        return {"liked": True}

    def add_comment(self, user_id: int, post_id: int, content: str) -> PostComment:
        require_authenticated(self.session, user_id)
        self._get_post_or_404(post_id)
        content = clean_text("content", content, COMMENT_MAX)

        comment = PostComment(post_id=post_id, author_id=user_id, content=content)
        self.session.add(comment)
        self.session.commit()
        self.session.refresh(comment)
        return comment

    def delete_comment(self, user_id: int, comment_id: int) -> None:
        comment = self.session.get(PostComment, comment_id)
        if not comment:
            raise NotFound("Comment not found", comment_id=comment_id)
        if comment.author_id != user_id:
            raise Forbidden("Only the author can delete this comment", comment_id=comment_id)

        self.session.delete(comment)
        self.session.commit()
