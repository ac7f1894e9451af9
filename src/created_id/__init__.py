"""Hourly id-range index for created_at range queries."""

from created_id.core.registry import TrackedType, TrackedTypes
from created_id.db.time import coerce_hour
from created_id.errors import CreatedAtChangedError, CreatedIdError, SetupError, ValidationError
from created_id.models import DailyIdRange, IdRange
from created_id.services import (
    BucketStore,
    ConsistencyGuard,
    DailyIdIndex,
    Indexer,
    QueryRewriter,
    RangeResolver,
)

__version__ = "0.1.0"

__all__ = [
    "BucketStore",
    "ConsistencyGuard",
    "CreatedAtChangedError",
    "CreatedIdError",
    "DailyIdIndex",
    "DailyIdRange",
    "IdRange",
    "Indexer",
    "QueryRewriter",
    "RangeResolver",
    "SetupError",
    "TrackedType",
    "TrackedTypes",
    "ValidationError",
    "__version__",
    "coerce_hour",
]
