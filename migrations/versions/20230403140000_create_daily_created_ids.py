"""create daily created_ids

Revision ID: 20230403140000
Revises:
Create Date: 2023-04-03 14:00:00.000000

Legacy generation: one row per class and UTC day with the smallest id.
"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20230403140000"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = ("daily",)
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the daily created_ids table."""
    op.create_table(
        "created_ids",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("class_name", sa.String(length=100), nullable=False),
        sa.Column("created_on", sa.Date(), nullable=False),
        sa.Column("min_id", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "created_on", "class_name", name="uq_created_ids_created_on_class_name"
        ),
    )


def downgrade() -> None:
    """Drop the daily created_ids table."""
    op.drop_table("created_ids")
