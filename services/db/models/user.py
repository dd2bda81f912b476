# services/db/models/user.py
"""用户表和账号合并日志。"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from .base import TimeStamped


class User(TimeStamped, SQLModel, table=True):
    """Chat user.

    A guest carries only ``session_id``; once signed in ``auth_id`` replaces
    it. An anonymized (deleted) account carries neither.
    """

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    auth_id: Optional[str] = Field(default=None, max_length=128, index=True, unique=True)
    session_id: Optional[str] = Field(default=None, max_length=64, index=True)

    username: str = Field(max_length=64, index=True)
    avatar_url: Optional[str] = Field(default=None, max_length=512)
    bio: Optional[str] = Field(default=None, max_length=500)
    whatsapp_number: Optional[str] = Field(default=None, max_length=32)
    date_of_birth: Optional[str] = Field(default=None, max_length=16)
    location: Optional[str] = Field(default=None, max_length=128)
    email: Optional[str] = Field(default=None, max_length=255)

    # city ids, duplicate free; always reassign, JSON columns do not track in-place edits
    cities_visited: List[int] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    current_city_id: Optional[int] = Field(default=None, foreign_key="cities.id", index=True)
    last_seen: Optional[datetime] = Field(default=None, index=True)

    email_notifications: bool = Field(default=False)
    browser_notifications: bool = Field(default=False)

    @property
    def is_authenticated(self) -> bool:
        return self.auth_id is not None

    @property
    def is_guest(self) -> bool:
        return self.auth_id is None and self.session_id is not None


class AccountMergeLog(TimeStamped, SQLModel, table=True):
    """账号合并日志 - 用于审计和追踪账号合并操作。

    场景: 游客登录后发现该 auth_id 已有账号, 合并后记录。
    """

    __tablename__ = "account_merge_log"

    id: Optional[int] = Field(default=None, primary_key=True)

    # 源账号(被合并并删除的游客账号)
    source_user_id: int = Field(index=True, description="被合并的用户ID")

    # 目标账号(保留的账号)
    target_user_id: int = Field(index=True, description="保留的用户ID")

    merged_at: datetime = Field(index=True)

    cities_merged: int = Field(default=0)

    # 数据快照(用于回滚)
    data_snapshot: Optional[dict] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
        description="合并前的游客账号快照",
    )

    operator: Optional[str] = Field(default=None, max_length=64, description="执行合并的用户或系统")
