"""Shared precondition checks for service mutations."""

from typing import Optional

from sqlmodel import Session

from services.db.models import City, User
from services.errors import AuthenticationRequired, NotFound, ValidationError

# 长度上限
TITLE_MAX = 200
POST_CONTENT_MAX = 5000
REQUEST_DESCRIPTION_MAX = 2000
COMMENT_MAX = 1000
MESSAGE_MAX = 2000
MAX_POST_IMAGES = 5


def clean_text(field: str, value: Optional[str], limit: int) -> str:
    """Trim ``value`` and enforce 1..limit characters."""
    text = (value or "").strip()
    if not text:
        raise ValidationError(field, f"{field} must not be empty", limit=limit, actual=0)
    if len(text) > limit:
        raise ValidationError(
            field,
            f"{field} must be {limit} characters or less",
            limit=limit,
            actual=len(text),
        )
    return text


def get_user_or_404(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if not user:
        raise NotFound("User not found", user_id=user_id)
    return user


def get_city_or_404(session: Session, city_id: int) -> City:
    city = session.get(City, city_id)
    if not city:
        raise NotFound("City not found", city_id=city_id)
    return city


def require_authenticated(session: Session, user_id: int) -> User:
    """Load the actor and reject guests."""
    user = get_user_or_404(session, user_id)
    if not user.is_authenticated:
        raise AuthenticationRequired("Sign in required", user_id=user_id)
    return user
