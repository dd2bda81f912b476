"""私信服务 - direct messages between signed-in users."""

import logging
from typing import Any, Dict, List

from sqlmodel import Session, and_, col, or_, select

from services.db.models import DirectMessage, User
from services.errors import Forbidden
from services.safety import BlockService
from services.utils.validation import MESSAGE_MAX, clean_text, require_authenticated

log = logging.getLogger(__name__)

CONVERSATION_LIMIT = 100


class DirectMessageService:
    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _between(user_a: int, user_b: int):
        return or_(
            and_(DirectMessage.sender_id == user_a, DirectMessage.receiver_id == user_b),
            and_(DirectMessage.sender_id == user_b, DirectMessage.receiver_id == user_a),
        )

    def _unread_from(self, user_id: int, partner_id: int) -> List[DirectMessage]:
        return list(self.session.exec(
            select(DirectMessage).where(
                DirectMessage.receiver_id == user_id,
                DirectMessage.sender_id == partner_id,
                DirectMessage.read == False,  # noqa: E712
            )
        ).all())

    def send_dm(self, sender_id: int, receiver_id: int, content: str) -> DirectMessage:
        """Both sides must be signed in and neither may have blocked the other."""
        require_authenticated(self.session, sender_id)
        require_authenticated(self.session, receiver_id)
        content = clean_text("content", content, MESSAGE_MAX)

        if receiver_id in BlockService(self.session).effective_block_set(sender_id):
            raise Forbidden("Cannot send message to blocked user", receiver_id=receiver_id)

        message = DirectMessage(sender_id=sender_id, receiver_id=receiver_id, content=content, read=False)
        self.session.add(message)
        self.session.commit()
        self.session.refresh(message)
        return message

    def get_conversation(self, user_id: int, other_user_id: int) -> List[DirectMessage]:
        """Oldest first. Not block filtered; callers already know both ids."""
        return list(self.session.exec(
            select(DirectMessage)
            .where(self._between(user_id, other_user_id))
            .order_by(col(DirectMessage.created_at).asc(), col(DirectMessage.id).asc())
            .limit(CONVERSATION_LIMIT)
        ).all())

    def get_user_conversations(self, user_id: int) -> List[Dict[str, Any]]:
        """会话列表，按最后一条消息时间倒序，隐藏屏蔽关系中的对方."""
        blocked = BlockService(self.session).effective_block_set(user_id)

        messages = self.session.exec(
            select(DirectMessage)
            .where(or_(DirectMessage.sender_id == user_id, DirectMessage.receiver_id == user_id))
            .order_by(col(DirectMessage.created_at).desc(), col(DirectMessage.id).desc())
        ).all()

        # first hit per partner is the latest message
        last_messages: Dict[int, DirectMessage] = {}
        for message in messages:
            partner_id = message.receiver_id if message.sender_id == user_id else message.sender_id
            if partner_id in blocked or partner_id in last_messages:
                continue
            last_messages[partner_id] = message

        conversations = []
        for partner_id, last_message in last_messages.items():
            partner = self.session.get(User, partner_id)
            if not partner:
                continue
            conversations.append({
                "partner": partner,
                "last_message": last_message,
                "last_message_time": last_message.created_at,
                "unread_count": len(self._unread_from(user_id, partner_id)),
            })
        return conversations

    def mark_as_read(self, user_id: int, partner_id: int) -> int:
        unread = self._unread_from(user_id, partner_id)
        for message in unread:
            message.read = True
            self.session.add(message)
        self.session.commit()
        return len(unread)

    def get_unread_count(self, user_id: int, partner_id: int) -> int:
        return len(self._unread_from(user_id, partner_id))

    def get_total_unread_count(self, user_id: int) -> int:
        user = self.session.get(User, user_id)
        if not user or not user.is_authenticated:
            return 0
        return len(self.session.exec(
            select(DirectMessage.id).where(
                DirectMessage.receiver_id == user_id,
                DirectMessage.read == False,  # noqa: E712
            )
        ).all())
