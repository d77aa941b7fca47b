"""UTC time helpers.

All timestamps are stored as naive datetimes in UTC, so every value entering
the database goes through ``as_utc_naive`` first.
"""

from datetime import datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc_naive(value: datetime) -> datetime:
    """Normalize an aware or naive datetime to naive UTC.

    Naive input is assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_utc_day(value: datetime) -> datetime:
    """Midnight (naive UTC) of the UTC calendar date containing ``value``."""
    return datetime.combine(as_utc_naive(value).date(), time.min)


def parse_published_date(raw: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 date string from a content source, or return None."""
    if not raw:
        return None
    try:
        return as_utc_naive(datetime.fromisoformat(raw.strip().replace("Z", "+00:00")))
    except ValueError:
        return None


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """Serialize a stored (naive UTC) datetime with an explicit UTC offset."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
