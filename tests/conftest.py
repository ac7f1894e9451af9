# tests/conftest.py
from __future__ import annotations

import datetime
from collections.abc import Callable, Generator, Iterator
from typing import Any

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from created_id.core.registry import TrackedTypes
from created_id.db.session import Base
from created_id.services import (
    BucketStore,
    ConsistencyGuard,
    Indexer,
    QueryRewriter,
    RangeResolver,
)
from tracked_models import Animal, Gadget, Widget

TEST_DB_URL = "sqlite://"


def _sqlite_engine() -> Engine:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside the transaction.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    return engine


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = _sqlite_engine()
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def registry() -> TrackedTypes:
    """Registry with the soft-deleted, naive and polymorphic test models."""
    tracked = TrackedTypes()
    tracked.register(Widget, default_scope=lambda model: model.deleted_at.is_(None))
    tracked.register(Gadget)
    tracked.register(Animal)
    return tracked


@pytest.fixture()
def store(db_session: Session) -> BucketStore:
    return BucketStore(db_session)


@pytest.fixture()
def resolver(db_session: Session, registry: TrackedTypes, store: BucketStore) -> RangeResolver:
    return RangeResolver(db_session, registry, store)


@pytest.fixture()
def indexer(db_session: Session, registry: TrackedTypes, store: BucketStore) -> Indexer:
    return Indexer(db_session, registry, store)


@pytest.fixture()
def rewriter(db_session: Session, registry: TrackedTypes, resolver: RangeResolver) -> QueryRewriter:
    return QueryRewriter(db_session, registry, resolver)


@pytest.fixture()
def guard(db_session: Session, registry: TrackedTypes, store: BucketStore) -> ConsistencyGuard:
    return ConsistencyGuard(db_session, registry, store)


@pytest.fixture()
def create(db_session: Session) -> Callable[..., Any]:
    """Insert a row of ``model`` and return it with its id assigned."""

    def _create(model: type[Any], created_at: datetime.datetime, **fields: Any) -> Any:
        fields.setdefault("name", "record")
        record = model(created_at=created_at, **fields)
        db_session.add(record)
        db_session.flush()
        return record

    return _create
