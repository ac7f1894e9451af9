# src/created_id/db/time.py
"""Time utilities for hour and day buckets."""

from datetime import UTC, date, datetime, timedelta

ONE_HOUR = timedelta(hours=1)
ONE_DAY = timedelta(days=1)


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime | date) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    Naive datetimes are taken to already be in UTC and plain dates map to
    midnight UTC.
    """
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def coerce_hour(value: datetime | date) -> datetime:
    """Truncate a timestamp to the start of its UTC hour."""
    return ensure_utc(value).replace(minute=0, second=0, microsecond=0)


def coerce_day(value: datetime | date) -> date:
    """Return the UTC calendar day of a timestamp."""
    if not isinstance(value, datetime):
        return value
    return ensure_utc(value).date()
