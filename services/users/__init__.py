"""Identity resolution and profile management."""

from .service import UserProfileUpdate, UserService, author_summary

__all__ = ["UserProfileUpdate", "UserService", "author_summary"]
