"""Column types shared by the index tables."""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import DateTime, TypeDecorator

from created_id.db.time import ensure_utc


# Timestamp type that behaves the same on SQLite and PostgreSQL
class UTCDateTime(TypeDecorator):
    """Timezone-normalizing timestamp.

    Values are bound as naive UTC and always come back as aware UTC
    datetimes, regardless of whether the backend keeps the offset.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        return ensure_utc(value).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @property
    def python_type(self) -> type:
        return datetime


def bind_time(column: Any, value: datetime | date) -> datetime:
    """Return ``value`` in UTC, in the form the column stores.

    Aware datetimes are kept for ``UTCDateTime`` and timezone-aware columns;
    plain ``DateTime`` columns receive naive UTC.
    """
    value = ensure_utc(value)
    column_type = column.type
    if isinstance(column_type, UTCDateTime) or getattr(column_type, "timezone", False):
        return value
    return value.replace(tzinfo=None)
