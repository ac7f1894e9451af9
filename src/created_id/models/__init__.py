# src/created_id/models/__init__.py
"""SQLAlchemy models for the id range cache."""

from .daily import DailyIdRange
from .id_range import IdRange

__all__ = ["DailyIdRange", "IdRange"]
