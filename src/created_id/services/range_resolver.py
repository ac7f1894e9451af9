"""Translate creation-time boundaries into safe primary key boundaries."""

from __future__ import annotations

import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.selectable import ScalarSelect

from created_id.core.registry import TrackedType, TrackedTypes
from created_id.services.bucket_store import BucketStore

__all__ = ["RangeResolver"]


class RangeResolver:
    """Answer "which ids could have been created around this time" from stored ranges.

    The bounds are safe rather than exact: a returned lower bound never
    exceeds the id of a row created at or after the time, and a returned
    upper bound is never below the id of a row created before it, as long
    as ids grow with creation time. Missing buckets are not an error; they
    only widen the bound.
    """

    def __init__(
        self,
        session: Session,
        registry: TrackedTypes,
        store: BucketStore | None = None,
    ) -> None:
        self.session = session
        self.registry = registry
        self.store = store or BucketStore(session)

    def min_id_at_or_after(
        self,
        model: type[Any],
        time: datetime.datetime | datetime.date | None,
        allow_nil: bool = False,
    ) -> int | None:
        """Return the smallest id that could belong to a row created at or after ``time``.

        Uses the ``min_id`` of the latest bucket at or before the hour of
        ``time``. Without such a bucket the bound is ``0``. A ``None`` time
        yields ``None`` when ``allow_nil`` is set and ``0`` otherwise.
        """
        if time is None:
            return None if allow_nil else 0
        tracked = self.registry.resolve(model)
        bucket = self.store.latest_at_or_before(tracked.base_key, time)
        if bucket is None:
            return 0
        return bucket.min_id

    def max_id_at_or_before(
        self,
        model: type[Any],
        time: datetime.datetime | datetime.date | None,
        allow_nil: bool = False,
    ) -> int | None:
        """Return the largest id that could belong to a row created before ``time``.

        Uses the ``max_id`` of the earliest bucket at or after the hour of
        ``time``. Without such a bucket the fallback applies: the largest
        value of the configured id width, else the largest id ever assigned
        to the class (``None`` for an empty table). A ``None`` time yields
        ``None`` when ``allow_nil`` is set and the fallback otherwise.
        """
        if time is None and allow_nil:
            return None
        tracked = self.registry.resolve(model)
        if time is not None:
            bucket = self.store.earliest_at_or_after(tracked.base_key, time)
            if bucket is not None:
                return bucket.max_id
        return self.fallback_max_id(tracked)

    def max_id_bound(
        self, model: type[Any], time: datetime.datetime | datetime.date
    ) -> int | ScalarSelect[Any]:
        """Return the upper id bound for rows created before ``time``, for use in a query.

        Same lookup as :meth:`max_id_at_or_before`, except that the global
        maximum fallback is a scalar subquery. It is evaluated when the
        statement runs, so rows inserted after the statement was built
        still match.
        """
        tracked = self.registry.resolve(model)
        bucket = self.store.earliest_at_or_after(tracked.base_key, time)
        if bucket is not None:
            return bucket.max_id
        if tracked.max_representable_id is not None:
            return tracked.max_representable_id
        return select(func.max(tracked.id_attr())).correlate(None).scalar_subquery()

    def fallback_max_id(self, tracked: TrackedType) -> int | None:
        """Return the upper bound used when no later bucket is known."""
        if tracked.max_representable_id is not None:
            return tracked.max_representable_id
        return self.global_max_id(tracked.model)

    def global_max_id(self, model: type[Any]) -> int | None:
        """Return the largest id of the base class, ignoring any default scope."""
        tracked = self.registry.resolve(model)
        return self.session.scalar(select(func.max(tracked.id_attr())))

    def global_min_id(self, model: type[Any]) -> int | None:
        """Return the smallest id of the base class, ignoring any default scope."""
        tracked = self.registry.resolve(model)
        return self.session.scalar(select(func.min(tracked.id_attr())))
