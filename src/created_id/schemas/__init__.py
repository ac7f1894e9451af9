"""Pydantic schemas for id range reports."""

from .id_range import DailyIdRangeOut, IdRangeOut

__all__ = ["DailyIdRangeOut", "IdRangeOut"]
