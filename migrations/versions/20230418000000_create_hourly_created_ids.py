"""create hourly created_ids

Revision ID: 20230418000000
Revises:
Create Date: 2023-04-18 00:00:00.000000

Current generation: one row per class and UTC hour with the smallest and
largest id. Lives on its own branch; apply either this or ``daily``.
"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20230418000000"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = ("hourly",)
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the hourly created_ids table."""
    op.create_table(
        "created_ids",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("class_name", sa.String(length=100), nullable=False),
        sa.Column("hour", sa.DateTime(), nullable=False),
        sa.Column("min_id", sa.BigInteger(), nullable=False),
        sa.Column("max_id", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("class_name", "hour", name="uq_created_ids_class_name_hour"),
    )


def downgrade() -> None:
    """Drop the hourly created_ids table."""
    op.drop_table("created_ids")
