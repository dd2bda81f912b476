"""找搭子服务层 - trek buddy requests, interest toggles and comments."""

import logging
from typing import Any, Dict, List, Optional

from sqlmodel import Session, col, func, select

from services.db.models import (
    ActivityType,
    RequestComment,
    RequestInterest,
    RequestStatus,
    TrekRequest,
    User,
)
from services.errors import Forbidden, NotFound, SelfInterest
from services.safety import hidden_author_ids
from services.users import author_summary
from services.utils.validation import (
    COMMENT_MAX,
    REQUEST_DESCRIPTION_MAX,
    TITLE_MAX,
    clean_text,
    get_city_or_404,
    require_authenticated,
)

log = logging.getLogger(__name__)


class TrekRequestService:
    """搭子请求服务."""

    def __init__(self, session: Session):
        self.session = session

    def _get_request_or_404(self, request_id: int) -> TrekRequest:
        request = self.session.get(TrekRequest, request_id)
        if not request:
            raise NotFound("Request not found", request_id=request_id)
        return request

    def _require_author(self, request: TrekRequest, user_id: int, action: str) -> None:
        if request.author_id != user_id:
            raise Forbidden(f"Only the author can {action} this request", request_id=request.id)

    def _find_interest(self, user_id: int, request_id: int) -> Optional[RequestInterest]:
        return self.session.exec(
            select(RequestInterest).where(
                RequestInterest.user_id == user_id,
                RequestInterest.request_id == request_id,
            )
        ).first()

    def _interests(self, request_id: int) -> List[RequestInterest]:
        return list(self.session.exec(
            select(RequestInterest).where(RequestInterest.request_id == request_id)
        ).all())

    def _comment_count(self, request_id: int) -> int:
        return self.session.exec(
            select(func.count()).select_from(RequestComment).where(RequestComment.request_id == request_id)
        ).one()

    # --- reads ---

    def get_requests_by_city(
        self,
        city_id: int,
        viewer_id: Optional[int] = None,
        status_filter: RequestStatus = RequestStatus.OPEN,
    ) -> List[Dict[str, Any]]:
        """获取城市搭子请求（最新在前）.

        Args:
            city_id: 城市 ID
            viewer_id: 当前用户 ID，提供时过滤屏蔽用户
            status_filter: 默认只看 open

        Returns:
            请求字典列表，含 author / interest_count / comment_count / has_expressed_interest
        """
        requests = self.session.exec(
            select(TrekRequest)
            .where(
                TrekRequest.city_id == city_id,
                TrekRequest.status == RequestStatus(status_filter),
            )
            .order_by(col(TrekRequest.created_at).desc(), col(TrekRequest.id).desc())
        ).all()

        hidden = hidden_author_ids(self.session, viewer_id)

        results = []
        for req in requests:
            if req.author_id in hidden:
                continue
            interests = self._interests(req.id)
            results.append({
                "request": req,
                "author": author_summary(self.session.get(User, req.author_id)),
                "interest_count": len(interests),
                "comment_count": self._comment_count(req.id),
                "has_expressed_interest": viewer_id is not None
                and any(i.user_id == viewer_id for i in interests),
            })
        return results

    def get_request(self, request_id: int, viewer_id: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """Detail view; None when missing or the author is hidden from the viewer."""
        req = self.session.get(TrekRequest, request_id)
        if not req:
            return None
        if req.author_id in hidden_author_ids(self.session, viewer_id):
            return None

        interests = self._interests(req.id)
        interested_users = [
            author_summary(self.session.get(User, i.user_id)) for i in interests
        ]

        return {
            "request": req,
            "author": author_summary(self.session.get(User, req.author_id)),
            "interested_users": [u for u in interested_users if u is not None],
            "comments": self.list_comments(req.id, viewer_id),
            "interest_count": len(interests),
            "has_expressed_interest": viewer_id is not None
            and any(i.user_id == viewer_id for i in interests),
        }

    def list_comments(self, request_id: int, viewer_id: Optional[int] = None) -> List[Dict[str, Any]]:
        hidden = hidden_author_ids(self.session, viewer_id)
        comments = self.session.exec(
            select(RequestComment)
            .where(RequestComment.request_id == request_id)
            .order_by(col(RequestComment.created_at).asc(), col(RequestComment.id).asc())
        ).all()
        return [
            {"comment": c, "author": author_summary(self.session.get(User, c.author_id))}
            for c in comments
            if c.author_id not in hidden
        ]

    # --- writes ---

    def create_request(
        self,
        author_id: int,
        city_id: int,
        title: str,
        description: str,
        date_from: str,
        date_to: Optional[str] = None,
        activity_type: ActivityType = ActivityType.TREKKING,
    ) -> TrekRequest:
        require_authenticated(self.session, author_id)
        get_city_or_404(self.session, city_id)

        req = TrekRequest(
            city_id=city_id,
            author_id=author_id,
            title=clean_text("title", title, TITLE_MAX),
            description=clean_text("description", description, REQUEST_DESCRIPTION_MAX),
            date_from=clean_text("date_from", date_from, 32),
            date_to=date_to or None,
            activity_type=ActivityType(activity_type),
            status=RequestStatus.OPEN,
        )
        self.session.add(req)
        self.session.commit()
        self.session.refresh(req)
        return req

    def toggle_interest(self, user_id: int, request_id: int) -> Dict[str, bool]:
        """Flip the caller's interest. The author can never be interested in their own request."""
        req = self._get_request_or_404(request_id)
        if req.author_id == user_id:
            raise SelfInterest(
                "Cannot express interest in your own request", request_id=request_id
            )
        require_authenticated(self.session, user_id)

        existing = self._find_interest(user_id, request_id)
        if existing:
            self.session.delete(existing)
            self.session.commit()
            return {"interested": False}

        self.session.add(RequestInterest(request_id=request_id, user_id=user_id))
        self.session.commit()
        return {"interested": True}

    def _set_status(self, user_id: int, request_id: int, status: RequestStatus, action: str) -> TrekRequest:
        req = self._get_request_or_404(request_id)
        self._require_author(req, user_id, action)

        req.status = status
        self.session.add(req)
        self.session.commit()
        self.session.refresh(req)
        return req

    def close_request(self, user_id: int, request_id: int) -> TrekRequest:
        return self._set_status(user_id, request_id, RequestStatus.CLOSED, "close")

    def reopen_request(self, user_id: int, request_id: int) -> TrekRequest:
        return self._set_status(user_id, request_id, RequestStatus.OPEN, "reopen")

    def add_comment(self, user_id: int, request_id: int, content: str) -> RequestComment:
        require_authenticated(self.session, user_id)
        self._get_request_or_404(request_id)
        content = clean_text("content", content, COMMENT_MAX)

        comment = RequestComment(request_id=request_id, author_id=user_id, content=content)
        self.session.add(comment)
        self.session.commit()
        self.session.refresh(comment)
        return comment

    def delete_comment(self, user_id: int, comment_id: int) -> None:
        comment = self.session.get(RequestComment, comment_id)
        if not comment:
            raise NotFound("Comment not found", comment_id=comment_id)
        if comment.author_id != user_id:
            raise Forbidden("Only the author can delete this comment", comment_id=comment_id)

        self.session.delete(comment)
        self.session.commit()

    def delete_request(self, user_id: int, request_id: int) -> None:
        """删除请求（仅作者），级联删除评论和意向."""
        req = self._get_request_or_404(request_id)
        self._require_author(req, user_id, "delete")

        comments = self.session.exec(
            select(RequestComment).where(RequestComment.request_id == request_id)
        ).all()
        for comment in comments:
            self.session.delete(comment)

        interests = self._interests(request_id)
        for interest in interests:
            self.session.delete(interest)

        self.session.delete(req)
        self.session.commit()

        log.info(f"Deleted request {request_id} with {len(comments)} comments and {len(interests)} interests")
