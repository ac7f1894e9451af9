"""Compute and store the id range of one hour of one tracked class."""

from __future__ import annotations

import datetime
import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from created_id.core.registry import TrackedTypes
from created_id.core.settings import settings
from created_id.db.time import ONE_HOUR, coerce_hour, utcnow
from created_id.db.types import bind_time
from created_id.models.id_range import IdRange
from created_id.services.bucket_store import BucketStore

__all__ = ["Indexer"]

logger = logging.getLogger(__name__)


class Indexer:
    """Publishes hourly id ranges into the bucket store.

    Ranges are computed from every row of the base class, including rows a
    default scope would hide (soft-deleted rows still occupy their ids).
    Neighboring buckets that are already stored narrow the scan to the ids
    that can belong to the hour.

    Intended to run for hours that have fully elapsed. Re-running an hour
    over unchanged data stores the same range again.
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

    def id_range(
        self, model: type[Any], hour: datetime.datetime | datetime.date
    ) -> tuple[int | None, int | None]:
        """Return ``(min_id, max_id)`` of the rows created in the hour of ``hour``.

        Both values are ``None`` if no row was created in that hour. Nothing
        is written.
        """
        tracked = self.registry.resolve(model)
        start = coerce_hour(hour)
        end = start + ONE_HOUR

        id_attr = tracked.id_attr()
        created_at = tracked.created_at_attr()
        stmt = select(func.min(id_attr), func.max(id_attr)).where(
            created_at >= bind_time(created_at, start),
            created_at < bind_time(created_at, end),
        )

        previous = self.store.latest_before(tracked.base_key, start)
        prev_min = previous.min_id if previous is not None else 0
        if prev_min > 0:
            stmt = stmt.where(id_attr > prev_min)

        following = self.store.earliest_after(tracked.base_key, start)
        if following is not None and following.min_id > prev_min:
            stmt = stmt.where(id_attr < following.min_id)

        min_id, max_id = self.session.execute(stmt).one()
        return min_id, max_id

    def index_hour(
        self, model: type[Any], hour: datetime.datetime | datetime.date
    ) -> IdRange | None:
        """Compute and store the range for one hour.

        Returns:
            The stored range, or ``None`` if no row was created in the hour.
        """
        tracked = self.registry.resolve(model)
        bucket = coerce_hour(hour)
        min_id, max_id = self.id_range(model, bucket)
        if min_id is None or max_id is None:
            logger.debug("No %s rows created in hour %s", tracked.base_key, bucket.isoformat())
            return None

        record = self.store.upsert(tracked.base_key, bucket, min_id, max_id)
        logger.info(
            "Indexed %s hour %s: ids %d..%d",
            tracked.base_key,
            bucket.isoformat(),
            min_id,
            max_id,
        )
        return record

    def index_hours(
        self,
        model: type[Any],
        start: datetime.datetime | datetime.date,
        end: datetime.datetime | datetime.date,
    ) -> list[IdRange]:
        """Index every hour in ``[start, end)`` in order and return the stored ranges.

        Raises:
            ValueError: If the window spans more hours than
                ``settings.backfill_max_hours``.
        """
        hour = coerce_hour(start)
        stop = coerce_hour(end)
        span = int((stop - hour) / ONE_HOUR)
        if span > settings.backfill_max_hours:
            raise ValueError(
                f"Refusing to index {span} hours at once "
                f"(limit {settings.backfill_max_hours})"
            )

        stored: list[IdRange] = []
        while hour < stop:
            record = self.index_hour(model, hour)
            if record is not None:
                stored.append(record)
            hour += ONE_HOUR
        return stored

    def index_completed_hour(
        self,
        model: type[Any],
        now: datetime.datetime | None = None,
        lag_hours: int | None = None,
    ) -> IdRange | None:
        """Index the hour ``lag_hours`` before the hour containing ``now``."""
        lag = settings.index_lag_hours if lag_hours is None else lag_hours
        hour = coerce_hour(now or utcnow()) - lag * ONE_HOUR
        return self.index_hour(model, hour)
