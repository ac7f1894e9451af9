# src/created_id/models/id_range.py
"""SQLAlchemy model for the hourly id range cache."""

from __future__ import annotations

import datetime

from sqlalchemy import BigInteger, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates

from created_id.db.session import Base
from created_id.db.time import coerce_hour
from created_id.db.types import UTCDateTime
from created_id.errors import ValidationError

CLASS_NAME_MAX_LENGTH = 100


def validate_class_name(value: str | None) -> str:
    """Return ``value`` if it is a usable class name, else raise ValidationError."""
    if not value:
        raise ValidationError("class_name is required")
    if len(value) > CLASS_NAME_MAX_LENGTH:
        raise ValidationError(
            f"class_name must be at most {CLASS_NAME_MAX_LENGTH} characters"
        )
    return value


def validate_hour(value: datetime.datetime | datetime.date | None) -> datetime.datetime:
    """Return the UTC hour bucket of ``value``; a missing value raises ValidationError."""
    if value is None:
        raise ValidationError("hour is required")
    return coerce_hour(value)


def validate_id(name: str, value: int | None) -> int:
    """Return ``value`` if it is a non-negative integer id, else raise ValidationError."""
    if value is None:
        raise ValidationError(f"{name} is required")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer")
    if value < 0:
        raise ValidationError(f"{name} must be greater than or equal to 0")
    return value


class IdRange(Base):
    """Smallest and largest primary key of a class's rows created in one hour.

    Rows are keyed by the base class name so every subclass of a hierarchy
    shares them. They are written only by the indexer and are not meant to
    be edited directly.

    Attributes:
        class_name (str): Canonical type key of the tracked base class.
        hour (datetime): Start of the UTC hour; assignments are truncated.
        min_id (int): Smallest id observed for the hour.
        max_id (int): Largest id observed for the hour.
    """

    __tablename__ = "created_ids"
    __table_args__ = (
        UniqueConstraint("class_name", "hour", name="uq_created_ids_class_name_hour"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    class_name: Mapped[str] = mapped_column(String(CLASS_NAME_MAX_LENGTH), nullable=False)
    hour: Mapped[datetime.datetime] = mapped_column(UTCDateTime, nullable=False)
    min_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    max_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    @validates("class_name")
    def _validate_class_name(self, key: str, value: str) -> str:
        return validate_class_name(value)

    @validates("hour")
    def _validate_hour(self, key: str, value: datetime.datetime) -> datetime.datetime:
        return validate_hour(value)

    @validates("min_id", "max_id")
    def _validate_ids(self, key: str, value: int) -> int:
        return validate_id(key, value)

    def covers(self, record_id: int) -> bool:
        """Return True if ``record_id`` lies within ``[min_id, max_id]``."""
        return self.min_id <= record_id <= self.max_id

    def __repr__(self) -> str:
        return (
            f"IdRange(class_name={self.class_name!r}, hour={self.hour.isoformat()}, "
            f"min_id={self.min_id}, max_id={self.max_id})"
        )
