from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Union

DateLike = Union[date, datetime]


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form stored in the ledger."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: DateLike) -> datetime:
    """
    Normalize a date or datetime to naive UTC.

    Plain dates become midnight; aware datetimes are converted to UTC and
    stripped of tzinfo; naive datetimes are assumed to already be UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


def day_floor(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min)


def iter_days(start: datetime, end: datetime) -> Iterator[datetime]:
    """Yield midnight of every calendar day touched by [start, end)."""
    current = day_floor(start)
    while current < end:
        yield current
        current += timedelta(days=1)
