"""Schemas for reporting stored id ranges."""
from __future__ import annotations

import datetime

from pydantic import BaseModel, ConfigDict


class IdRangeOut(BaseModel):
    """One stored hourly range, as printed by the indexing CLI."""

    model_config = ConfigDict(from_attributes=True)

    class_name: str
    hour: datetime.datetime
    min_id: int
    max_id: int


class DailyIdRangeOut(BaseModel):
    """One stored daily row from the legacy generation."""

    model_config = ConfigDict(from_attributes=True)

    class_name: str
    created_on: datetime.date
    min_id: int
