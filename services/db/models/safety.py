"""Block edges and the moderation ledger."""

from typing import Optional

from sqlmodel import Field, SQLModel, UniqueConstraint

from .base import MessageType, ReportStatus, TimeStamped


class BlockedUser(TimeStamped, SQLModel, table=True):
    """Directed block edge: blocker -> blocked."""

    __tablename__ = "blocked_users"

    id: Optional[int] = Field(default=None, primary_key=True)
    blocker_id: int = Field(foreign_key="users.id", index=True)
    blocked_id: int = Field(foreign_key="users.id", index=True)
    reason: Optional[str] = Field(default=None, max_length=500)

    __table_args__ = (
        UniqueConstraint("blocker_id", "blocked_id", name="uq_blocker_blocked"),
    )


class Report(TimeStamped, SQLModel, table=True):
    """用户举报记录 (append-only)。"""

    __tablename__ = "reports"

    id: Optional[int] = Field(default=None, primary_key=True)
    reporter_id: int = Field(foreign_key="users.id", index=True)
    reported_user_id: int = Field(foreign_key="users.id", index=True)

    # message ids are stored as strings, they may point at different tables
    message_id: Optional[str] = Field(default=None, max_length=64)
    message_type: Optional[MessageType] = Field(default=None)

    reason: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)

    status: ReportStatus = Field(default=ReportStatus.PENDING, index=True)
