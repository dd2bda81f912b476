"""Posts (trail reports, recommendations) with likes and comments."""

from typing import List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel, UniqueConstraint

from .base import Difficulty, PostType, TimeStamped


class Post(TimeStamped, SQLModel, table=True):
    __tablename__ = "posts"

    id: Optional[int] = Field(default=None, primary_key=True)
    city_id: int = Field(foreign_key="cities.id", index=True)
    author_id: int = Field(foreign_key="users.id", index=True)

    title: str = Field(max_length=200)
    content: str = Field(max_length=5000)
    type: PostType = Field(default=PostType.GENERAL, index=True)

    # blob storage keys
    images: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    difficulty: Optional[Difficulty] = Field(default=None)
    rating: Optional[int] = Field(default=None)


class PostLike(TimeStamped, SQLModel, table=True):
    __tablename__ = "post_likes"

    id: Optional[int] = Field(default=None, primary_key=True)
    post_id: int = Field(foreign_key="posts.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)

    __table_args__ = (UniqueConstraint("user_id", "post_id", name="uq_post_like_user_post"),)


class PostComment(TimeStamped, SQLModel, table=True):
    __tablename__ = "post_comments"

    id: Optional[int] = Field(default=None, primary_key=True)
    post_id: int = Field(foreign_key="posts.id", index=True)
    author_id: int = Field(foreign_key="users.id", index=True)
    content: str = Field(max_length=1000)
