# src/created_id/scripts/migrate.py
"""Apply the Alembic branch for one generation of the ``created_ids`` table."""
from __future__ import annotations

import argparse
import os

from alembic import command
from alembic.config import Config

from created_id.core.settings import settings

GENERATIONS = ("hourly", "daily")
MIGRATIONS_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "..", "migrations")


def build_config(url: str | None = None) -> Config:
    """Return an Alembic config pointing at the bundled migrations folder."""
    cfg = Config(os.path.join(MIGRATIONS_DIR, "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", url or settings.effective_database_url)
    cfg.set_main_option("script_location", os.path.abspath(MIGRATIONS_DIR))
    return cfg


def run_upgrade(generation: str = "hourly", url: str | None = None) -> None:
    """Upgrade the database to the head of ``generation``.

    Only one generation may be applied to a database; both create a table
    named ``created_ids``.
    """
    if generation not in GENERATIONS:
        raise ValueError(f"Unknown generation {generation!r}; expected one of {GENERATIONS}")
    command.upgrade(build_config(url), f"{generation}@head")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or upgrade the created_ids table")
    parser.add_argument(
        "--generation",
        choices=GENERATIONS,
        default="hourly",
        help="Schema generation to apply (default: hourly).",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Override database URL (defaults to effective settings URL)",
    )
    args = parser.parse_args()
    run_upgrade(args.generation, args.url)


if __name__ == "__main__":
    main()
