"""Base models and enums shared across SQLModel tables."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel

from services.utils.timezone import now as utcnow


class TimeStamped(SQLModel, table=False):
    """Mixin that stores creation/update timestamps in UTC."""

    created_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)
    updated_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": utcnow},
    )


class ConversationType(str, Enum):
    CITY = "city"
    COUNTRY = "country"
    DM = "dm"


class MessageType(str, Enum):
    CITY_MESSAGE = "city_message"
    COUNTRY_MESSAGE = "country_message"
    DM = "dm"


class ReportStatus(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class PostType(str, Enum):
    TRAIL_REPORT = "trail_report"
    RECOMMENDATION = "recommendation"
    GENERAL = "general"


class Difficulty(str, Enum):
    EASY = "easy"
    MODERATE = "moderate"
    HARD = "hard"
    EXPERT = "expert"


class ActivityType(str, Enum):
    TREKKING = "trekking"
    HIKING = "hiking"
    CLIMBING = "climbing"
    CAMPING = "camping"
    OTHER = "other"


class RequestStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
