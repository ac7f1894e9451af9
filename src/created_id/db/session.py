"""Engine, session factory and declarative bases."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from created_id.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base for the hourly ``created_ids`` table.

    Applications may map their tracked models on it as well.
    """


class LegacyBase(DeclarativeBase):
    """Declarative base for the daily generation of the index table.

    Kept apart from ``Base`` because both generations use the same table name.
    """


engine = create_engine(
    settings.effective_database_url,
    pool_pre_ping=True,
    echo=settings.sql_debug,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db() -> Iterator[Session]:
    """Open a session for one unit of work and always close it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _metadata(generation: str):
    # Imported here so both tables are mapped before create_all runs.
    import created_id.models  # noqa: F401

    if generation == "hourly":
        return Base.metadata
    if generation == "daily":
        return LegacyBase.metadata
    raise ValueError(f"Unknown generation {generation!r}")


def create_tables(bind: Engine | None = None, generation: str = "hourly") -> None:
    """Create the index table of ``generation`` without going through Alembic.

    For ``hourly`` this also creates any tracked tables mapped on ``Base``.
    """
    _metadata(generation).create_all(bind=bind or engine)


def drop_tables(bind: Engine | None = None, generation: str = "hourly") -> None:
    """Drop the tables :func:`create_tables` creates."""
    _metadata(generation).drop_all(bind=bind or engine)
