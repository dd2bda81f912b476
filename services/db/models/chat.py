"""Room messages and direct messages."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import TimeStamped


class CityMessage(TimeStamped, SQLModel, table=True):
    """城市聊天室消息。游客消息只带 session_id。"""

    __tablename__ = "city_messages"

    id: Optional[int] = Field(default=None, primary_key=True)
    city_id: int = Field(foreign_key="cities.id", index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    session_id: Optional[str] = Field(default=None, max_length=64)
    username: str = Field(max_length=64)
    content: str = Field(max_length=2000)


class CountryMessage(TimeStamped, SQLModel, table=True):
    __tablename__ = "country_messages"

    id: Optional[int] = Field(default=None, primary_key=True)
    country_id: int = Field(foreign_key="countries.id", index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    session_id: Optional[str] = Field(default=None, max_length=64)
    username: str = Field(max_length=64)
    content: str = Field(max_length=2000)


class DirectMessage(TimeStamped, SQLModel, table=True):
    __tablename__ = "dms"

    id: Optional[int] = Field(default=None, primary_key=True)
    sender_id: int = Field(foreign_key="users.id", index=True)
    receiver_id: int = Field(foreign_key="users.id", index=True)
    content: str = Field(max_length=2000)
    read: bool = Field(default=False, index=True)
