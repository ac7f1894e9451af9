"""Legacy daily generation of the id cache.

Deployments still running the ``daily`` migration branch keep one row per
class and UTC day holding only the smallest id created that day. Lower
bounds come from the row for the day itself (or the latest earlier day);
upper bounds come from the first recorded day after it (exclusive), else
from the id width or the largest id when the statement runs.
This module is independent of the hourly components and never reads the
hourly table.
"""

from __future__ import annotations

import datetime
import logging
from typing import Any

from sqlalchemy import and_, func, inspect, select, true
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from created_id.core.registry import TrackedType, TrackedTypes
from created_id.db.time import ONE_DAY, coerce_day, ensure_utc, utcnow
from created_id.db.types import bind_time
from created_id.errors import CreatedAtChangedError
from created_id.models.daily import DailyIdRange
from created_id.models.id_range import validate_class_name, validate_id

__all__ = ["DailyIdIndex"]

logger = logging.getLogger(__name__)

TimeBound = datetime.datetime | datetime.date | None


class DailyIdIndex:
    """Reads, computes and guards the daily ``created_ids`` rows."""

    def __init__(self, session: Session, registry: TrackedTypes) -> None:
        self.session = session
        self.registry = registry

    # --- Lookups -------------------------------------------------------------------
    def get(self, model: type[Any], day: datetime.date | datetime.datetime) -> DailyIdRange | None:
        """Return the row stored for exactly ``day``."""
        key = self.registry.base_key_of(model)
        return self.session.scalars(
            select(DailyIdRange).where(
                DailyIdRange.class_name == key, DailyIdRange.created_on == coerce_day(day)
            )
        ).first()

    def min_id(self, model: type[Any], day: datetime.date | datetime.datetime) -> int:
        """Return the ``min_id`` of the latest row on or before ``day``, else 0."""
        key = self.registry.base_key_of(model)
        row = self.session.scalars(
            select(DailyIdRange)
            .where(DailyIdRange.class_name == key, DailyIdRange.created_on <= coerce_day(day))
            .order_by(DailyIdRange.created_on.desc())
            .limit(1)
        ).first()
        return row.min_id if row is not None else 0

    def max_id(self, model: type[Any], day: datetime.date | datetime.datetime) -> int:
        """Return an exclusive upper id bound for rows created on or before ``day``.

        The ``min_id`` of the first row after ``day`` is used when one
        exists; otherwise the largest value of the configured id width, or
        one more than the largest id ever assigned.
        """
        tracked = self.registry.resolve(model)
        row = self._next_row(tracked.base_key, coerce_day(day))
        if row is not None:
            return row.min_id
        if tracked.max_representable_id is not None:
            return tracked.max_representable_id
        highest = self.session.scalar(select(func.max(tracked.id_attr())))
        return (highest or 0) + 1

    def _next_row(self, key: str, day: datetime.date) -> DailyIdRange | None:
        return self.session.scalars(
            select(DailyIdRange)
            .where(DailyIdRange.class_name == key, DailyIdRange.created_on > day)
            .order_by(DailyIdRange.created_on.asc())
            .limit(1)
        ).first()

    # --- Indexing ------------------------------------------------------------------
    def calculate_min_id(self, model: type[Any], day: datetime.date | datetime.datetime) -> int | None:
        """Return the smallest id created on ``day``, ignoring any default scope."""
        tracked = self.registry.resolve(model)
        day = coerce_day(day)
        start = ensure_utc(day)
        id_attr = tracked.id_attr()
        created_at = tracked.created_at_attr()
        stmt = select(func.min(id_attr)).where(
            created_at >= bind_time(created_at, start),
            created_at < bind_time(created_at, start + ONE_DAY),
        )

        prev_id = self.min_id(model, day - ONE_DAY)
        if prev_id > 0:
            stmt = stmt.where(id_attr > prev_id)
        next_row = self._next_row(tracked.base_key, day)
        if next_row is not None and next_row.min_id > prev_id:
            stmt = stmt.where(id_attr < next_row.min_id)

        return self.session.scalar(stmt)

    def save_min_id(
        self, model: type[Any], day: datetime.date | datetime.datetime, min_id: int
    ) -> DailyIdRange:
        """Create or overwrite the row for ``(base class, day)``.

        A row created concurrently by another writer is updated instead.
        """
        key = validate_class_name(self.registry.base_key_of(model))
        validate_id("min_id", min_id)
        day = coerce_day(day)

        record = self.get(model, day)
        if record is None:
            try:
                with self.session.begin_nested():
                    record = DailyIdRange(class_name=key, created_on=day, min_id=min_id)
                    self.session.add(record)
                return record
            except IntegrityError:
                logger.debug("Daily row for %s on %s already exists, updating", key, day)
                record = self.get(model, day)
                if record is None:
                    raise

        record.min_id = min_id
        self.session.flush()
        return record

    def index_day(
        self, model: type[Any], day: datetime.date | datetime.datetime
    ) -> DailyIdRange | None:
        """Compute and store the smallest id for ``day``; empty days write nothing."""
        min_id = self.calculate_min_id(model, day)
        if min_id is None:
            logger.debug("No rows created on %s for %s", coerce_day(day), model.__name__)
            return None
        record = self.save_min_id(model, day, min_id)
        logger.info("Indexed %s day %s: min id %d", record.class_name, record.created_on, min_id)
        return record

    # --- Query criteria ------------------------------------------------------------
    def created_after_clause(self, model: type[Any], time: TimeBound) -> ColumnElement[bool]:
        """Return ``created_at >= time`` plus a lower id bound when one is stored."""
        if time is None:
            return true()
        tracked = self.registry.resolve(model)
        created_at = tracked.created_at_attr(model)
        criteria = [created_at >= bind_time(created_at, time)]
        min_id = self.min_id(model, time)
        if min_id > 0:
            criteria.append(tracked.id_attr(model) >= min_id)
        return and_(*criteria)

    def created_before_clause(self, model: type[Any], time: TimeBound) -> ColumnElement[bool]:
        """Return ``created_at < time`` plus an upper id bound.

        Without a later stored day or a configured id width, the bound is the
        largest id at the time the statement runs.
        """
        if time is None:
            return true()
        tracked = self.registry.resolve(model)
        created_at = tracked.created_at_attr(model)
        id_attr = tracked.id_attr(model)
        row = self._next_row(tracked.base_key, coerce_day(time))
        if row is not None:
            id_bound = id_attr < row.min_id
        elif tracked.max_representable_id is not None:
            id_bound = id_attr <= tracked.max_representable_id
        else:
            highest = select(func.max(tracked.id_attr())).correlate(None).scalar_subquery()
            id_bound = id_attr <= highest
        return and_(created_at < bind_time(created_at, time), id_bound)

    # --- Write path ----------------------------------------------------------------
    def verify(self, obj: Any) -> None:
        """Reject a created_at change once a later day has been indexed.

        Raises:
            CreatedAtChangedError: If a row exists after the new day, or after
                the previous day when the day changes.
        """
        tracked = self.registry.resolve(type(obj))
        history = inspect(obj).attrs[tracked.created_at_column].history
        if not history.has_changes():
            return
        previous = self._previous_created_at(obj, tracked, history.deleted)
        if getattr(obj, tracked.id_column) is None and previous is None:
            return

        new_day = coerce_day(getattr(obj, tracked.created_at_column) or utcnow())
        with self.session.no_autoflush:
            if self._next_row(tracked.base_key, new_day) is not None:
                raise CreatedAtChangedError(
                    "created_at cannot be changed after the created id for the date has been stored"
                )
            if previous is None:
                return
            prev_day = coerce_day(previous)
            if prev_day != new_day and self._next_row(tracked.base_key, prev_day) is not None:
                raise CreatedAtChangedError(
                    "created_at cannot be changed after the created id for the previous value "
                    "has been stored"
                )

    def _previous_created_at(
        self, obj: Any, tracked: TrackedType, deleted: tuple[Any, ...]
    ) -> datetime.datetime | None:
        if deleted:
            return deleted[0]
        if not inspect(obj).persistent:
            return None
        record_id = getattr(obj, tracked.id_column)
        with self.session.no_autoflush:
            return self.session.scalar(
                select(tracked.created_at_attr()).where(tracked.id_attr() == record_id)
            )
