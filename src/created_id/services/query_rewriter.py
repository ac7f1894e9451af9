"""Build created_at range queries that also carry primary key bounds."""

from __future__ import annotations

import datetime
from typing import Any

from sqlalchemy import Select, and_, select, true
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from created_id.core.registry import TrackedTypes
from created_id.db.types import bind_time
from created_id.services.range_resolver import RangeResolver

__all__ = ["QueryRewriter"]

TimeBound = datetime.datetime | datetime.date | None


class QueryRewriter:
    """Adds id bounds to created_at filters where stored ranges allow it.

    ``created_after`` is inclusive (``created_at >= time``) and
    ``created_before`` is exclusive (``created_at < time``). Id bounds are
    inclusive on both sides. The id bound is only ever ANDed to the time
    filter, so a query returns the same rows with or without it.
    """

    def __init__(
        self,
        session: Session,
        registry: TrackedTypes,
        resolver: RangeResolver | None = None,
    ) -> None:
        self.session = session
        self.registry = registry
        self.resolver = resolver or RangeResolver(session, registry)

    def created_after_clause(self, model: type[Any], time: TimeBound) -> ColumnElement[bool]:
        """Return the criterion for rows created at or after ``time``."""
        if time is None:
            return true()
        tracked = self.registry.resolve(model)
        created_at = tracked.created_at_attr(model)
        criteria = [created_at >= bind_time(created_at, time)]
        min_id = self.resolver.min_id_at_or_after(model, time, allow_nil=True)
        if min_id is not None and min_id > 0:
            criteria.append(tracked.id_attr(model) >= min_id)
        return and_(*criteria)

    def created_before_clause(self, model: type[Any], time: TimeBound) -> ColumnElement[bool]:
        """Return the criterion for rows created strictly before ``time``."""
        if time is None:
            return true()
        tracked = self.registry.resolve(model)
        created_at = tracked.created_at_attr(model)
        return and_(
            created_at < bind_time(created_at, time),
            tracked.id_attr(model) <= self.resolver.max_id_bound(model, time),
        )

    def created_between_clause(
        self, model: type[Any], start: TimeBound, end: TimeBound
    ) -> ColumnElement[bool]:
        """Return the criterion for rows created in ``[start, end)``; either end may be open."""
        return and_(
            self.created_after_clause(model, start),
            self.created_before_clause(model, end),
        )

    def created_after(self, model: type[Any], time: TimeBound) -> Select[Any]:
        """Select rows of ``model`` created at or after ``time``."""
        return self._scoped(model).where(self.created_after_clause(model, time))

    def created_before(self, model: type[Any], time: TimeBound) -> Select[Any]:
        """Select rows of ``model`` created strictly before ``time``."""
        return self._scoped(model).where(self.created_before_clause(model, time))

    def created_between(self, model: type[Any], start: TimeBound, end: TimeBound) -> Select[Any]:
        """Select rows of ``model`` created in ``[start, end)``."""
        return self._scoped(model).where(self.created_between_clause(model, start, end))

    def _scoped(self, model: type[Any]) -> Select[Any]:
        stmt = select(model)
        scope = self.registry.resolve(model).scope(model)
        if scope is not None:
            stmt = stmt.where(scope)
        return stmt
