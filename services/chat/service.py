"""城市/国家聊天室服务."""

import logging
from datetime import timedelta
from typing import List, Optional, Type, Union

from sqlmodel import Session, col, select

from services.db.models import CityMessage, ConversationType, Country, CountryMessage
from services.errors import NotFound, ValidationError
from services.presence import TypingService, conversation_key
from services.safety import hidden_author_ids
from services.users import UserService
from services.utils.timezone import now
from services.utils.validation import MESSAGE_MAX, clean_text, get_city_or_404

log = logging.getLogger(__name__)

CHAT_HISTORY_LIMIT = 50
ACTIVE_WINDOW_MINUTES = 10

RoomMessage = Union[CityMessage, CountryMessage]


class ChatService:
    """Room chat. Guests post with a session id only; their messages are never filtered."""

    def __init__(self, session: Session, history_limit: int = CHAT_HISTORY_LIMIT):
        self.session = session
        self.history_limit = history_limit

    def _get_country_or_404(self, country_id: int) -> Country:
        country = self.session.get(Country, country_id)
        if not country:
            raise NotFound("Country not found", country_id=country_id)
        return country

    def _send(
        self,
        model: Type[RoomMessage],
        room_field: str,
        room_id: int,
        conversation_type: ConversationType,
        content: str,
        username: str,
        user_id: Optional[int],
        session_id: Optional[str],
    ) -> RoomMessage:
        content = clean_text("content", content, MESSAGE_MAX)
        username = (username or "").strip()
        if not username:
            raise ValidationError("username", "username must not be empty", limit=64, actual=0)
        if user_id is None and not session_id:
            raise ValidationError("session_id", "Either user_id or session_id is required")

        if user_id is not None:
            UserService(self.session).update_last_seen(user_id)

        message = model(
            user_id=user_id,
            session_id=session_id,
            username=username,
            content=content,
            **{room_field: room_id},
        )
        self.session.add(message)
        self.session.commit()
        self.session.refresh(message)

        if user_id is not None:
            TypingService(self.session).clear(user_id, conversation_key(conversation_type, room_id))
        return message

    def _history(self, model: Type[RoomMessage], room_column, room_id: int, viewer_id: Optional[int]) -> List[RoomMessage]:
        messages = list(self.session.exec(
            select(model)
            .where(room_column == room_id)
            .order_by(col(model.created_at).desc(), col(model.id).desc())
            .limit(self.history_limit)
        ).all())
        messages.reverse()

        hidden = hidden_author_ids(self.session, viewer_id)
        if not hidden:
            return messages
        return [m for m in messages if m.user_id is None or m.user_id not in hidden]

    def _active_count(self, model: Type[RoomMessage], room_column, room_id: int, minutes: int) -> int:
        """Unique senders (user or guest session) in the last ``minutes``."""
        cutoff = now() - timedelta(minutes=minutes)
        messages = self.session.exec(
            select(model).where(room_column == room_id, model.created_at >= cutoff)
        ).all()

        senders = set()
        for message in messages:
            if message.user_id is not None:
                senders.add(f"user:{message.user_id}")
            elif message.session_id:
                senders.add(f"session:{message.session_id}")
        return len(senders)

    # --- city rooms ---

    def send_city_message(
        self,
        city_id: int,
        content: str,
        username: str,
        user_id: Optional[int] = None,
        session_id: Optional[str] = None,
    ) -> CityMessage:
        get_city_or_404(self.session, city_id)
        return self._send(
            CityMessage, "city_id", city_id, ConversationType.CITY,
            content, username, user_id, session_id,
        )

    def get_city_messages(self, city_id: int, viewer_id: Optional[int] = None) -> List[CityMessage]:
        """Latest messages in chronological order."""
        return self._history(CityMessage, CityMessage.city_id, city_id, viewer_id)

    def get_city_active_users_count(self, city_id: int, minutes: int = ACTIVE_WINDOW_MINUTES) -> int:
        return self._active_count(CityMessage, CityMessage.city_id, city_id, minutes)

    # --- country rooms ---

    def send_country_message(
        self,
        country_id: int,
        content: str,
        username: str,
        user_id: Optional[int] = None,
        session_id: Optional[str] = None,
    ) -> CountryMessage:
        self._get_country_or_404(country_id)
        return self._send(
            CountryMessage, "country_id", country_id, ConversationType.COUNTRY,
            content, username, user_id, session_id,
        )

    def get_country_messages(self, country_id: int, viewer_id: Optional[int] = None) -> List[CountryMessage]:
        return self._history(CountryMessage, CountryMessage.country_id, country_id, viewer_id)

    def get_country_active_users_count(self, country_id: int, minutes: int = ACTIVE_WINDOW_MINUTES) -> int:
        return self._active_count(CountryMessage, CountryMessage.country_id, country_id, minutes)
