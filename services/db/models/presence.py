"""Typing indicators."""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel, UniqueConstraint

from services.utils.timezone import make_aware

from .base import ConversationType


class TypingIndicator(SQLModel, table=True):
    """一个用户在一个会话中的"正在输入"状态，过期即视为不存在。"""

    __tablename__ = "typing_indicators"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    conversation_id: str = Field(max_length=128, index=True)
    conversation_type: ConversationType = Field(default=ConversationType.CITY)
    expires_at: datetime = Field(index=True)

    __table_args__ = (
        UniqueConstraint("user_id", "conversation_id", name="uq_typing_user_conversation"),
    )

    def is_expired(self, at: datetime) -> bool:
        return make_aware(self.expires_at) <= at
