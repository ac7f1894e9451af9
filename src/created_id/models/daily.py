# src/created_id/models/daily.py
"""SQLAlchemy model for the legacy daily generation of the id cache."""

from __future__ import annotations

import datetime

from sqlalchemy import BigInteger, Date, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates

from created_id.db.session import LegacyBase
from created_id.errors import ValidationError
from created_id.models.id_range import CLASS_NAME_MAX_LENGTH, validate_class_name, validate_id


class DailyIdRange(LegacyBase):
    """Smallest primary key of a class's rows created on one UTC day.

    Only the lower bound is recorded; the upper bound for a day is taken
    from the next recorded day's ``min_id``.
    """

    __tablename__ = "created_ids"
    __table_args__ = (
        UniqueConstraint("created_on", "class_name", name="uq_created_ids_created_on_class_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    class_name: Mapped[str] = mapped_column(String(CLASS_NAME_MAX_LENGTH), nullable=False)
    created_on: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    min_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    @validates("class_name")
    def _validate_class_name(self, key: str, value: str) -> str:
        return validate_class_name(value)

    @validates("created_on")
    def _validate_created_on(self, key: str, value: datetime.date) -> datetime.date:
        if value is None:
            raise ValidationError("created_on is required")
        return value

    @validates("min_id")
    def _validate_min_id(self, key: str, value: int) -> int:
        return validate_id(key, value)
