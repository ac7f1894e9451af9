"""Data access for the hourly id range cache."""

from __future__ import annotations

import datetime
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from created_id.db.time import coerce_hour
from created_id.errors import ValidationError
from created_id.models.id_range import (
    IdRange,
    validate_class_name,
    validate_hour,
    validate_id,
)

__all__ = ["BucketStore"]

logger = logging.getLogger(__name__)


class BucketStore:
    """Thin wrapper around database access for :class:`IdRange` rows.

    Every lookup and write keys on the hour bucket of the given timestamp.
    The store never commits; it works inside the caller's transaction.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the store with a SQLAlchemy session."""
        self.session = session

    def get(self, class_name: str, hour: datetime.datetime) -> IdRange | None:
        """Return the range stored for exactly this hour bucket."""
        return self.session.scalars(
            select(IdRange).where(
                IdRange.class_name == class_name,
                IdRange.hour == coerce_hour(hour),
            )
        ).first()

    def latest_at_or_before(self, class_name: str, hour: datetime.datetime) -> IdRange | None:
        """Return the most recent range whose hour is at or before ``hour``."""
        return self.session.scalars(
            select(IdRange)
            .where(IdRange.class_name == class_name, IdRange.hour <= coerce_hour(hour))
            .order_by(IdRange.hour.desc())
            .limit(1)
        ).first()

    def earliest_at_or_after(self, class_name: str, hour: datetime.datetime) -> IdRange | None:
        """Return the oldest range whose hour is at or after ``hour``."""
        return self.session.scalars(
            select(IdRange)
            .where(IdRange.class_name == class_name, IdRange.hour >= coerce_hour(hour))
            .order_by(IdRange.hour.asc())
            .limit(1)
        ).first()

    def latest_before(self, class_name: str, hour: datetime.datetime) -> IdRange | None:
        """Return the most recent range strictly before the bucket of ``hour``."""
        return self.session.scalars(
            select(IdRange)
            .where(IdRange.class_name == class_name, IdRange.hour < coerce_hour(hour))
            .order_by(IdRange.hour.desc())
            .limit(1)
        ).first()

    def earliest_after(self, class_name: str, hour: datetime.datetime) -> IdRange | None:
        """Return the oldest range strictly after the bucket of ``hour``."""
        return self.session.scalars(
            select(IdRange)
            .where(IdRange.class_name == class_name, IdRange.hour > coerce_hour(hour))
            .order_by(IdRange.hour.asc())
            .limit(1)
        ).first()

    def ranges(
        self,
        class_name: str,
        start: datetime.datetime | None = None,
        end: datetime.datetime | None = None,
    ) -> list[IdRange]:
        """Return stored ranges for a class ordered by hour, within ``[start, end)``."""
        stmt = select(IdRange).where(IdRange.class_name == class_name)
        if start is not None:
            stmt = stmt.where(IdRange.hour >= coerce_hour(start))
        if end is not None:
            stmt = stmt.where(IdRange.hour < coerce_hour(end))
        return list(self.session.scalars(stmt.order_by(IdRange.hour.asc())))

    def insert(
        self,
        class_name: str,
        hour: datetime.datetime,
        min_id: int,
        max_id: int,
    ) -> IdRange:
        """Create the range for ``(class_name, hour)``; an existing row is an error.

        Raises:
            ValidationError: If a field is invalid, ``min_id > max_id``, or a
                range is already stored for the class and hour.
        """
        bucket = _validated(class_name, hour, min_id, max_id)
        if self.get(class_name, bucket) is not None:
            raise ValidationError(f"a range for {class_name} at {bucket.isoformat()} already exists")
        try:
            return self._insert(class_name, bucket, min_id, max_id)
        except IntegrityError as exc:
            raise ValidationError(
                f"a range for {class_name} at {bucket.isoformat()} already exists"
            ) from exc

    def upsert(
        self,
        class_name: str,
        hour: datetime.datetime,
        min_id: int,
        max_id: int,
    ) -> IdRange:
        """Create or overwrite the range for ``(class_name, hour)``.

        Args:
            class_name: Canonical type key of the tracked base class.
            hour: Any timestamp within the bucket; it is truncated to the hour.
            min_id: Smallest id observed in the bucket.
            max_id: Largest id observed in the bucket.

        Raises:
            ValidationError: If a field is invalid or ``min_id > max_id``.
        """
        bucket = _validated(class_name, hour, min_id, max_id)

        record = self.get(class_name, bucket)
        if record is None:
            try:
                return self._insert(class_name, bucket, min_id, max_id)
            except IntegrityError:
                # A concurrent writer created the row first; update theirs.
                logger.debug("Range for %s at %s already exists, updating", class_name, bucket)
                record = self.get(class_name, bucket)
                if record is None:
                    raise

        record.min_id = min_id
        record.max_id = max_id
        self.session.flush()
        return record

    def _insert(
        self, class_name: str, bucket: datetime.datetime, min_id: int, max_id: int
    ) -> IdRange:
        # The savepoint keeps the caller's transaction usable after a conflict.
        with self.session.begin_nested():
            record = IdRange(class_name=class_name, hour=bucket, min_id=min_id, max_id=max_id)
            self.session.add(record)
        return record


def _validated(
    class_name: str, hour: datetime.datetime | None, min_id: int, max_id: int
) -> datetime.datetime:
    validate_class_name(class_name)
    bucket = validate_hour(hour)
    validate_id("min_id", min_id)
    validate_id("max_id", max_id)
    if min_id > max_id:
        raise ValidationError(f"min_id {min_id} is greater than max_id {max_id}")
    return bucket
