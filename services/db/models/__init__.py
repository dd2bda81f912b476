"""Aggregate exports for SQLModel tables."""

from .base import (
    ActivityType,
    ConversationType,
    Difficulty,
    MessageType,
    PostType,
    ReportStatus,
    RequestStatus,
    TimeStamped,
    utcnow,
)
from .chat import CityMessage, CountryMessage, DirectMessage
from .place import City, Country
from .post import Post, PostComment, PostLike
from .presence import TypingIndicator
from .safety import BlockedUser, Report
from .trek_request import RequestComment, RequestInterest, TrekRequest
from .user import AccountMergeLog, User

__all__ = [
    "AccountMergeLog",
    "ActivityType",
    "BlockedUser",
    "City",
    "CityMessage",
    "ConversationType",
    "Country",
    "CountryMessage",
    "Difficulty",
    "DirectMessage",
    "MessageType",
    "Post",
    "PostComment",
    "PostLike",
    "PostType",
    "Report",
    "ReportStatus",
    "RequestComment",
    "RequestInterest",
    "RequestStatus",
    "TimeStamped",
    "TrekRequest",
    "TypingIndicator",
    "User",
    "utcnow",
]
