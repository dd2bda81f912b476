"""Typing indicator TTL tests with an injected clock."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import select

from services.chat import ChatService
from services.db.models import ConversationType, TypingIndicator
from services.presence import TypingService, conversation_key


class FakeClock:
    def __init__(self):
        self.current = datetime(2026, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.current

    def advance(self, seconds: float):
        self.current += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def typing_service(session, clock):
    return TypingService(session, ttl_seconds=5, clock=clock)


def test_signal_visible_to_others_only(typing_service, alice):
    typing_service.signal(alice.id, "city:1")

    assert typing_service.list_typing("city:1", exclude_user_id=alice.id) == []
    assert typing_service.list_typing("city:1") == [{"user_id": alice.id, "username": "alice"}]


def test_expired_signal_disappears_without_sweep(typing_service, clock, alice, bob):
    typing_service.signal(alice.id, "city:1")

    clock.advance(4.9)
    assert [t["user_id"] for t in typing_service.list_typing("city:1", exclude_user_id=bob.id)] == [alice.id]

    clock.advance(0.1)
    assert typing_service.list_typing("city:1", exclude_user_id=bob.id) == []


def test_resignal_extends_in_place(session, typing_service, clock, alice):
    first = typing_service.signal(alice.id, "city:1")
    first_id = first.id
    clock.advance(10)

    second = typing_service.signal(alice.id, "city:1")

    rows = session.exec(select(TypingIndicator).where(TypingIndicator.user_id == alice.id)).all()
    assert len(rows) == 1
    assert second.id == first_id
    assert typing_service.list_typing("city:1") != []


def test_clear_is_noop_when_absent(typing_service, alice):
    assert typing_service.clear(alice.id, "city:1") is False

    typing_service.signal(alice.id, "city:1")
    assert typing_service.clear(alice.id, "city:1") is True
    assert typing_service.list_typing("city:1") == []


def test_conversations_are_independent(typing_service, alice):
    typing_service.signal(alice.id, "city:1")
    typing_service.signal(alice.id, "country:1", ConversationType.COUNTRY)

    typing_service.clear(alice.id, "city:1")

    assert typing_service.list_typing("city:1") == []
    assert len(typing_service.list_typing("country:1")) == 1


def test_sweep_removes_only_expired(session, typing_service, clock, alice, bob):
    typing_service.signal(alice.id, "city:1")
    clock.advance(3)
    typing_service.signal(bob.id, "city:1")
    clock.advance(3)

    assert typing_service.sweep() == 1
    remaining = session.exec(select(TypingIndicator)).all()
    assert [r.user_id for r in remaining] == [bob.id]
    assert typing_service.sweep() == 0


def test_sweep_agrees_with_expiry_for_offset_clock(session, alice):
    # 时钟带 +08:00 偏移, 存储和比较仍按 UTC
    clock = FakeClock()
    clock.current = clock.current.astimezone(timezone(timedelta(hours=8)))
    service = TypingService(session, ttl_seconds=5, clock=clock)
    service.signal(alice.id, "city:1")

    clock.advance(4)
    assert service.sweep() == 0
    stored = session.exec(select(TypingIndicator)).one()
    assert not stored.is_expired(clock())

    clock.advance(1)
    assert stored.is_expired(clock())
    assert service.sweep() == 1
    assert session.exec(select(TypingIndicator)).all() == []


def test_conversation_key_orders_dm_ids():
    assert conversation_key(ConversationType.DM, 9, 4) == "dm:4-9"
    assert conversation_key(ConversationType.DM, 4, 9) == "dm:4-9"
    assert conversation_key("city", 3) == "city:3"


def test_sending_a_message_clears_typing(session, alice, cusco):
    typing = TypingService(session)
    key = conversation_key(ConversationType.CITY, cusco.id)
    typing.signal(alice.id, key)

    ChatService(session).send_city_message(cusco.id, "hi", "alice", user_id=alice.id)

    assert typing.list_typing(key) == []
