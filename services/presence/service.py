"""Typing indicators with a short TTL.

A record is live while ``expires_at > now``. Readers ignore expired rows, so
``sweep`` only reclaims storage.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Union

from sqlmodel import Session, select

from services.db.models import ConversationType, TypingIndicator, User
from services.utils.timezone import now as utcnow, to_utc

log = logging.getLogger(__name__)

TYPING_TTL_SECONDS = 5


def conversation_key(conversation_type: Union[ConversationType, str], *ids: int) -> str:
    """Room key for typing rows, e.g. ``city:3`` or ``dm:4-9`` (dm ids sorted)."""
    conversation_type = ConversationType(conversation_type)
    if conversation_type == ConversationType.DM:
        ids = tuple(sorted(ids))
    return f"{conversation_type.value}:{'-'.join(str(i) for i in ids)}"


class TypingService:
    def __init__(
        self,
        session: Session,
        ttl_seconds: int = TYPING_TTL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock

    def _find(self, user_id: int, conversation_id: str) -> Optional[TypingIndicator]:
        return self.session.exec(
            select(TypingIndicator).where(
                TypingIndicator.conversation_id == conversation_id,
                TypingIndicator.user_id == user_id,
            )
        ).first()

    def signal(
        self,
        user_id: int,
        conversation_id: str,
        conversation_type: Union[ConversationType, str] = ConversationType.CITY,
    ) -> TypingIndicator:
        """Mark ``user_id`` as typing; a live or stale record is extended in place."""
        expires_at = to_utc(self.clock()) + self.ttl
        indicator = self._find(user_id, conversation_id)

        if indicator:
            indicator.expires_at = expires_at
        else:
            indicator = TypingIndicator(
                user_id=user_id,
                conversation_id=conversation_id,
                conversation_type=ConversationType(conversation_type),
                expires_at=expires_at,
            )
        self.session.add(indicator)
        self.session.commit()
        self.session.refresh(indicator)
        return indicator

    def clear(self, user_id: int, conversation_id: str) -> bool:
        """Delete the record if present. Returns whether anything was removed."""
        indicator = self._find(user_id, conversation_id)
        if not indicator:
            return False
        self.session.delete(indicator)
        self.session.commit()
        return True

    def list_typing(
        self,
        conversation_id: str,
        exclude_user_id: Optional[int] = None,
    ) -> List[Dict[str, object]]:
        current = self.clock()
        indicators = self.session.exec(
            select(TypingIndicator).where(TypingIndicator.conversation_id == conversation_id)
        ).all()

        typing_users = []
        for indicator in indicators:
            if indicator.is_expired(current):
                continue
            if exclude_user_id is not None and indicator.user_id == exclude_user_id:
                continue
            user = self.session.get(User, indicator.user_id)
            if user:
                typing_users.append({"user_id": user.id, "username": user.username})
        return typing_users

    def sweep(self) -> int:
        """Physically delete expired records; safe to run on any schedule."""
        cutoff = to_utc(self.clock())
        expired = self.session.exec(
            select(TypingIndicator).where(TypingIndicator.expires_at <= cutoff)
        ).all()

        for indicator in expired:
            self.session.delete(indicator)
        self.session.commit()

        cleaned = len(expired)

        if cleaned:
            log.info(f"Typing sweep removed {cleaned} expired indicators")
        return cleaned
