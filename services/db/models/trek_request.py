"""找搭子 (trek buddy) requests with interests and comments."""

from typing import Optional

from sqlmodel import Field, SQLModel, UniqueConstraint

from .base import ActivityType, RequestStatus, TimeStamped


class TrekRequest(TimeStamped, SQLModel, table=True):
    __tablename__ = "requests"

    id: Optional[int] = Field(default=None, primary_key=True)
    city_id: int = Field(foreign_key="cities.id", index=True)
    author_id: int = Field(foreign_key="users.id", index=True)

    title: str = Field(max_length=200)
    description: str = Field(max_length=2000)
    date_from: str = Field(max_length=32)
    date_to: Optional[str] = Field(default=None, max_length=32)
    activity_type: ActivityType = Field(default=ActivityType.TREKKING)

    status: RequestStatus = Field(default=RequestStatus.OPEN, index=True)


class RequestInterest(TimeStamped, SQLModel, table=True):
    __tablename__ = "request_interests"

    id: Optional[int] = Field(default=None, primary_key=True)
    request_id: int = Field(foreign_key="requests.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)

    __table_args__ = (
        UniqueConstraint("user_id", "request_id", name="uq_request_interest_user_request"),
    )


class RequestComment(TimeStamped, SQLModel, table=True):
    __tablename__ = "request_comments"

    id: Optional[int] = Field(default=None, primary_key=True)
    request_id: int = Field(foreign_key="requests.id", index=True)
    author_id: int = Field(foreign_key="users.id", index=True)
    content: str = Field(max_length=1000)
