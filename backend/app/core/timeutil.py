"""UTC helpers. SQLite hands back naive datetimes; everything is stored as UTC."""
from datetime import date, datetime, timedelta, timezone
from typing import Iterator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_date(value) -> date | None:
    """Accept date, datetime, or ISO string ('2025-02-10' or '2025-02-10T14:00:00Z'). None if unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    raw = value.strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Calendar dates in the half-open range [start, end)."""
    day = start
    while day < end:
        yield day
        day += timedelta(days=1)
