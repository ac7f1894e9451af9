# src/created_id/services/__init__.py
"""Id range index services."""

from .bucket_store import BucketStore
from .consistency_guard import ConsistencyGuard
from .daily import DailyIdIndex
from .indexer import Indexer
from .query_rewriter import QueryRewriter
from .range_resolver import RangeResolver

__all__ = [
    "BucketStore",
    "ConsistencyGuard",
    "DailyIdIndex",
    "Indexer",
    "QueryRewriter",
    "RangeResolver",
]
