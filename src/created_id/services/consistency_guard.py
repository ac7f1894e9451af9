"""Write-path check that keeps created_at changes consistent with stored ranges."""

from __future__ import annotations

import datetime
import logging
from typing import Any

from sqlalchemy import inspect, select
from sqlalchemy.orm import Session

from created_id.core.registry import TrackedType, TrackedTypes
from created_id.db.time import coerce_hour, utcnow
from created_id.errors import CreatedAtChangedError
from created_id.services.bucket_store import BucketStore

__all__ = ["ConsistencyGuard"]

logger = logging.getLogger(__name__)


class ConsistencyGuard:
    """Rejects created_at values that contradict an already stored id range.

    Call :meth:`verify` (or :meth:`verify_pending`) before flushing a change.
    The check reads through the same session as the write it guards and
    never flushes, so a rejected change leaves the database untouched.
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

    def verify(self, obj: Any) -> None:
        """Check a pending change to ``obj``.

        Raises:
            CreatedAtChangedError: If the new or the previous created_at hour
                has a stored range that does not contain the object's id.
            SetupError: If the object's class is not tracked.
        """
        tracked = self.registry.resolve(type(obj))
        state = inspect(obj)
        history = state.attrs[tracked.created_at_column].history
        if not history.has_changes():
            return

        record_id = getattr(obj, tracked.id_column)
        previous = self._previous_created_at(obj, tracked, history.deleted)
        if record_id is None and previous is None:
            return

        current = getattr(obj, tracked.created_at_column) or utcnow()
        new_hour = coerce_hour(current)
        with self.session.no_autoflush:
            bucket = self.store.get(tracked.base_key, new_hour)
            if bucket is not None and (record_id is None or not bucket.covers(record_id)):
                self._reject(tracked, record_id, bucket.hour, "new")

            if previous is None:
                return
            prev_hour = coerce_hour(previous)
            if prev_hour == new_hour:
                return
            bucket = self.store.get(tracked.base_key, prev_hour)
            if bucket is not None and record_id is not None and not bucket.covers(record_id):
                self._reject(tracked, record_id, bucket.hour, "previous")

    def verify_pending(self) -> None:
        """Run :meth:`verify` on every new or modified tracked object in the session."""
        for obj in list(self.session.new) + list(self.session.dirty):
            if type(obj) in self.registry:
                self.verify(obj)

    def _previous_created_at(
        self, obj: Any, tracked: TrackedType, deleted: tuple[Any, ...]
    ) -> datetime.datetime | None:
        if deleted:
            return deleted[0]
        state = inspect(obj)
        if not state.persistent:
            return None
        # The old value was never loaded; read what the database still holds.
        record_id = getattr(obj, tracked.id_column)
        with self.session.no_autoflush:
            return self.session.scalar(
                select(tracked.created_at_attr()).where(tracked.id_attr() == record_id)
            )

    def _reject(
        self,
        tracked: TrackedType,
        record_id: int | None,
        hour: datetime.datetime,
        which: str,
    ) -> None:
        logger.warning(
            "Rejected created_at change for %s id=%s: outside stored range for %s hour %s",
            tracked.base_key,
            record_id,
            which,
            hour.isoformat(),
        )
        raise CreatedAtChangedError(
            f"created_at cannot be changed: id {record_id} is outside the stored "
            f"{tracked.base_key} range for the {which} hour {hour.isoformat()}"
        )
