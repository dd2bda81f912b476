"""
时区单元测试
验证所有时间操作都使用 UTC, 并且从 SQLite 读回的时间可以安全比较
"""
from datetime import datetime, timedelta, timezone

from services.db.models import TypingIndicator, User
from services.utils.timezone import TIMEZONE, make_aware, now, to_utc


def test_timezone_is_utc():
    assert TIMEZONE == timezone.utc


def test_now_returns_aware_utc():
    current = now()
    assert current.tzinfo is not None
    assert current.utcoffset().total_seconds() == 0


def test_make_aware():
    """验证naive转aware功能"""
    naive_dt = datetime(2026, 1, 4, 23, 0, 0)
    aware_dt = make_aware(naive_dt)

    assert aware_dt.tzinfo == TIMEZONE
    assert aware_dt.hour == 23

    already = datetime(2026, 1, 4, 23, 0, 0, tzinfo=timezone(timedelta(hours=8)))
    assert make_aware(already) is already


def test_to_utc_from_offset():
    """验证UTC+8转UTC"""
    local_dt = datetime(2026, 1, 4, 23, 0, 0, tzinfo=timezone(timedelta(hours=8)))
    utc_dt = to_utc(local_dt)

    assert utc_dt.tzinfo == TIMEZONE
    assert utc_dt.hour == 15


def test_round_tripped_timestamps_compare_with_now(session, alice):
    """SQLite 读回的时间是 naive 的, make_aware 之后可以和 now() 比较"""
    user = session.get(User, alice.id)
    assert make_aware(user.created_at) <= now()


def test_typing_expiry_after_round_trip(session, alice):
    indicator = TypingIndicator(
        user_id=alice.id,
        conversation_id="city:1",
        expires_at=now() + timedelta(seconds=5),
    )
    session.add(indicator)
    session.commit()
    session.refresh(indicator)

    assert not indicator.is_expired(now())
    assert indicator.is_expired(now() + timedelta(seconds=6))
