"""
统一时区管理模块
所有时间相关操作必须使用此模块，确保时区一致性

The store keeps every timestamp in UTC. SQLite drops tzinfo on the way back,
so values read from the database go through ``make_aware`` before being
compared with ``now()``.

使用方法:
    from services.utils.timezone import now

    current_time = now()
"""
from datetime import datetime, timezone

TIMEZONE = timezone.utc


def now() -> datetime:
    """
    获取当前时间 (UTC)
    替代 datetime.now()

    Returns:
        datetime: 带时区信息的当前时间
    """
    return datetime.now(TIMEZONE)


def make_aware(dt: datetime) -> datetime:
    """
    将naive datetime转换为aware datetime (UTC)

    Args:
        dt: naive datetime对象

    Returns:
        datetime: 带UTC时区信息的datetime
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=TIMEZONE)
    return dt


def to_utc(dt: datetime) -> datetime:
    """Convert any datetime to UTC; naive values are assumed to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=TIMEZONE)
    return dt.astimezone(TIMEZONE)
