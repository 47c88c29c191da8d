from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive values (SQLite drops tzinfo) and convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(value: datetime) -> datetime:
    value = as_utc(value)
    return datetime.combine(value.date(), time.min, tzinfo=timezone.utc)


def day_window(value: datetime) -> tuple[datetime, datetime]:
    """UTC calendar day containing ``value`` as a half-open [start, end) range."""
    start = start_of_day(value)
    return start, start + timedelta(days=1)


def utc_today(now: Optional[datetime] = None) -> date:
    return as_utc(now or utc_now()).date()
