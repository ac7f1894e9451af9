# src/created_id/scripts/index_hours.py
"""
Cron job that publishes hourly id ranges for a tracked model.

Run it once per hour to index the last fully elapsed hour, or pass a
``--start``/``--end`` window to backfill. ``--list`` prints the ranges
already stored for the window instead of computing new ones. ``--daily``
works on the legacy per-day table instead of the hourly one.

Example:
    created-id-index myapp.models:Order --start 2023-04-18T00:00 --end 2023-04-19T00:00
"""

from __future__ import annotations

import argparse
import datetime
import importlib
import logging
import sys
from collections.abc import Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from created_id.core.registry import TrackedTypes
from created_id.core.settings import settings
from created_id.db.time import ONE_DAY, coerce_day, utcnow
from created_id.errors import CreatedIdError
from created_id.models.daily import DailyIdRange
from created_id.schemas.id_range import DailyIdRangeOut, IdRangeOut
from created_id.services.bucket_store import BucketStore
from created_id.services.daily import DailyIdIndex
from created_id.services.indexer import Indexer

logger = logging.getLogger(__name__)


def load_model(path: str) -> type[Any]:
    """Import ``package.module:ClassName`` and return the class."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Expected MODULE:Class, got {path!r}")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ValueError(f"{module_name} has no attribute {attr!r}") from exc


def parse_time(value: str) -> datetime.datetime:
    """Parse an ISO-8601 timestamp; naive values are read as UTC."""
    try:
        return datetime.datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an ISO-8601 timestamp: {value!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Index created_at hours into id ranges")
    parser.add_argument("model", help="Tracked model as MODULE:Class")
    parser.add_argument("--start", type=parse_time, default=None, help="First hour to index")
    parser.add_argument("--end", type=parse_time, default=None, help="Hour to stop before")
    parser.add_argument("--list", action="store_true", help="Print stored ranges only")
    parser.add_argument("--daily", action="store_true", help="Use the legacy daily table")
    parser.add_argument("--id-column", default="id")
    parser.add_argument("--created-at-column", default="created_at")
    parser.add_argument("--base-key", default=None, help="Override the canonical type key")
    parser.add_argument(
        "--lag-hours",
        type=int,
        default=settings.index_lag_hours,
        help="Hours back from now to index when no window is given",
    )
    return parser


def run(args: argparse.Namespace, db: Session) -> list[IdRangeOut] | list[DailyIdRangeOut]:
    """Execute the command against ``db`` and return the ranges to report."""
    model = load_model(args.model)
    registry = TrackedTypes()
    tracked = registry.register(
        model,
        id_column=args.id_column,
        created_at_column=args.created_at_column,
        base_key=args.base_key,
    )
    if args.daily:
        return run_daily(args, db, registry, model)

    store = BucketStore(db)

    if args.list:
        rows = store.ranges(tracked.base_key, args.start, args.end)
        return [IdRangeOut.model_validate(row) for row in rows]

    indexer = Indexer(db, registry, store)
    if args.start is not None:
        end = args.end or datetime.datetime.now(datetime.UTC)
        rows = indexer.index_hours(model, args.start, end)
    else:
        row = indexer.index_completed_hour(model, lag_hours=args.lag_hours)
        rows = [row] if row is not None else []
    db.commit()
    return [IdRangeOut.model_validate(row) for row in rows]


def run_daily(
    args: argparse.Namespace, db: Session, registry: TrackedTypes, model: type[Any]
) -> list[DailyIdRangeOut]:
    """Daily variant of :func:`run`; the window is read as whole UTC days."""
    index = DailyIdIndex(db, registry)
    start = coerce_day(args.start) if args.start is not None else coerce_day(utcnow()) - ONE_DAY
    end = coerce_day(args.end) if args.end is not None else start + ONE_DAY

    if args.list:
        rows = db.scalars(
            select(DailyIdRange)
            .where(
                DailyIdRange.class_name == registry.base_key_of(model),
                DailyIdRange.created_on >= start,
                DailyIdRange.created_on < end,
            )
            .order_by(DailyIdRange.created_on)
        ).all()
        return [DailyIdRangeOut.model_validate(row) for row in rows]

    stored = []
    day = start
    while day < end:
        row = index.index_day(model, day)
        if row is not None:
            stored.append(row)
        day += ONE_DAY
    db.commit()
    return [DailyIdRangeOut.model_validate(row) for row in stored]


def main(argv: Sequence[str] | None = None) -> None:
    logging.basicConfig(level=settings.log_level)
    args = build_parser().parse_args(argv)

    from created_id.db.session import get_db

    with get_db() as db:
        try:
            for item in run(args, db):
                print(item.model_dump_json())
        except (CreatedIdError, ValueError) as exc:
            db.rollback()
            print(f"[created-id] ERROR: {exc}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    main()
