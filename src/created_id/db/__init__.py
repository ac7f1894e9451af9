"""Database configuration and utilities."""

from .session import Base, LegacyBase, SessionLocal, create_tables, drop_tables, get_db
from .time import coerce_day, coerce_hour, ensure_utc, utcnow

__all__ = [
    "Base",
    "LegacyBase",
    "SessionLocal",
    "create_tables",
    "drop_tables",
    "get_db",
    "coerce_day",
    "coerce_hour",
    "ensure_utc",
    "utcnow",
]
