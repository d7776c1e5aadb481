"""Timezone helpers shared by the engine, the store and the schemas.

SQLite hands datetimes back without tzinfo; everything is stored as UTC, so
naive values are read as UTC.
"""

from datetime import date, datetime, time, timezone
from typing import Optional, Union

DateLike = Union[date, datetime]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[DateLike]) -> Optional[datetime]:
    """Normalize a date or datetime to an aware UTC datetime.

    Plain dates are read as midnight UTC.
    """
    if value is None:
        return None
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def as_date(value: Optional[DateLike]) -> Optional[date]:
    """Calendar date (UTC) of a date or datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value).date()
    return value


def to_storage(value: Optional[DateLike]) -> Optional[datetime]:
    """Naive UTC datetime as written to SQLite."""
    if value is None:
        return None
    return as_utc(value).replace(tzinfo=None)
