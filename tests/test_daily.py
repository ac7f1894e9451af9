"""Tests for the legacy daily generation of the id cache."""

import datetime
from collections.abc import Iterator

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from conftest import _sqlite_engine
from created_id.core.registry import TrackedTypes
from created_id.db.session import Base, LegacyBase
from created_id.errors import CreatedAtChangedError, ValidationError
from created_id.models import DailyIdRange
from created_id.services import DailyIdIndex
from tracked_models import TRACKED_TABLES, Animal, Cat, Dog, Widget, utc

APR_2 = datetime.date(2023, 4, 2)
APR_3 = datetime.date(2023, 4, 3)
APR_4 = datetime.date(2023, 4, 4)


@pytest.fixture()
def legacy_session() -> Iterator[Session]:
    engine = _sqlite_engine()
    Base.metadata.create_all(bind=engine, tables=TRACKED_TABLES)
    LegacyBase.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def daily(legacy_session) -> DailyIdIndex:
    registry = TrackedTypes()
    registry.register(Widget)
    registry.register(Animal)
    return DailyIdIndex(legacy_session, registry)


@pytest.fixture()
def add(legacy_session):
    def _add(model, created_at, **fields):
        record = model(name="record", created_at=created_at, **fields)
        legacy_session.add(record)
        legacy_session.flush()
        return record

    return _add


def _ids(session, stmt):
    return [row.id for row in session.scalars(stmt)]


def test_index_day_saves_the_smallest_id_of_the_day(add, daily, legacy_session):
    add(Widget, utc(2023, 4, 1, 23, 59))
    first = add(Widget, utc(2023, 4, 2, 0, 1))
    add(Widget, utc(2023, 4, 2, 18))

    record = daily.index_day(Widget, APR_2)

    assert (record.class_name, record.created_on, record.min_id) == ("Widget", APR_2, first.id)
    assert legacy_session.scalars(select(DailyIdRange)).all() == [record]


def test_index_day_skips_empty_days(add, daily, legacy_session):
    add(Widget, utc(2023, 4, 2, 1))
    assert daily.index_day(Widget, APR_3) is None
    assert legacy_session.scalars(select(DailyIdRange)).all() == []


def test_rows_are_stored_for_the_base_class(add, daily):
    dog = add(Dog, utc(2023, 4, 2, 1))
    add(Cat, utc(2023, 4, 2, 2))
    record = daily.index_day(Cat, APR_2)
    assert (record.class_name, record.min_id) == ("Animal", dog.id)


def test_save_min_id_overwrites_the_existing_row(daily, legacy_session):
    daily.save_min_id(Widget, APR_2, 5)
    daily.save_min_id(Widget, utc(2023, 4, 2, 13), 7)
    rows = legacy_session.scalars(select(DailyIdRange)).all()
    assert [(r.created_on, r.min_id) for r in rows] == [(APR_2, 7)]


def test_save_min_id_rejects_negative_ids(daily):
    with pytest.raises(ValidationError):
        daily.save_min_id(Widget, APR_2, -1)


def test_min_id_uses_the_latest_day_on_or_before(daily):
    daily.save_min_id(Widget, APR_2, 5)
    assert daily.min_id(Widget, APR_2) == 5
    assert daily.min_id(Widget, utc(2023, 4, 3, 12)) == 5
    assert daily.min_id(Widget, datetime.date(2023, 4, 1)) == 0


def test_max_id_uses_the_next_day_or_falls_back(add, daily):
    last = add(Widget, utc(2023, 4, 3, 5))
    daily.save_min_id(Widget, APR_3, last.id)
    assert daily.max_id(Widget, APR_2) == last.id
    assert daily.max_id(Widget, APR_3) == last.id + 1

    registry = TrackedTypes()
    registry.register(Widget, id_width_bytes=4)
    assert DailyIdIndex(daily.session, registry).max_id(Widget, APR_3) == 2_147_483_647


def test_calculate_min_id_ignores_ids_claimed_by_neighbors(add, daily):
    early = add(Widget, utc(2023, 4, 3, 1))
    later = add(Widget, utc(2023, 4, 3, 2))
    daily.save_min_id(Widget, APR_4, later.id)
    assert daily.calculate_min_id(Widget, APR_3) == early.id

    daily.save_min_id(Widget, APR_2, early.id)
    assert daily.calculate_min_id(Widget, APR_3) is None


def test_clauses_find_the_same_rows_as_the_time_filter(add, daily, legacy_session):
    one = add(Widget, utc(2023, 4, 2, 1))
    two = add(Widget, utc(2023, 4, 3, 1))
    three = add(Widget, utc(2023, 4, 3, 22))
    four = add(Widget, utc(2023, 4, 4, 9))
    for day in (APR_2, APR_3, APR_4):
        daily.index_day(Widget, day)

    after = select(Widget).where(daily.created_after_clause(Widget, utc(2023, 4, 3, 12)))
    assert _ids(legacy_session, after.order_by(Widget.id)) == [three.id, four.id]

    before = select(Widget).where(daily.created_before_clause(Widget, APR_4))
    assert _ids(legacy_session, before.order_by(Widget.id)) == [one.id, two.id, three.id]

    both = select(Widget).where(
        daily.created_after_clause(Widget, APR_3),
        daily.created_before_clause(Widget, utc(2023, 4, 3, 12)),
    )
    assert _ids(legacy_session, both) == [two.id]

    assert _ids(legacy_session, select(Widget).where(daily.created_after_clause(Widget, None))) == [
        one.id, two.id, three.id, four.id
    ]


def test_verify_rejects_changes_once_a_later_day_is_stored(add, daily):
    first = add(Widget, utc(2023, 4, 2, 1))
    second = add(Widget, utc(2023, 4, 3, 1))
    daily.index_day(Widget, APR_2)
    daily.index_day(Widget, APR_3)

    first.created_at = utc(2023, 4, 5)
    with pytest.raises(CreatedAtChangedError):
        daily.verify(first)

    second.created_at = utc(2023, 4, 1)
    with pytest.raises(CreatedAtChangedError):
        daily.verify(second)

    second.created_at = utc(2023, 4, 5)
    daily.verify(second)


def test_verify_allows_fresh_inserts(daily, legacy_session):
    daily.save_min_id(Widget, APR_3, 1)
    record = Widget(name="new", created_at=utc(2023, 4, 2))
    legacy_session.add(record)
    daily.verify(record)


def test_verify_reads_an_unloaded_previous_value(add, daily, legacy_session):
    first = add(Widget, utc(2023, 4, 2, 1))
    add(Widget, utc(2023, 4, 3, 1))
    daily.index_day(Widget, APR_2)
    daily.index_day(Widget, APR_3)

    legacy_session.expire(first, ["created_at"])
    first.created_at = utc(2023, 4, 5)
    with pytest.raises(CreatedAtChangedError):
        daily.verify(first)


def test_save_min_id_updates_the_row_of_a_concurrent_writer(daily, legacy_session, mocker):
    existing = daily.save_min_id(Widget, APR_2, 5)
    mocker.patch.object(daily, "get", side_effect=[None, existing])

    record = daily.save_min_id(Widget, APR_2, 3)

    assert record is existing
    rows = legacy_session.scalars(select(DailyIdRange)).all()
    assert [(r.created_on, r.min_id) for r in rows] == [(APR_2, 3)]


def test_before_clause_fallback_is_evaluated_when_the_statement_runs(add, daily, legacy_session):
    first = add(Widget, utc(2023, 4, 2, 1))
    stmt = select(Widget).where(daily.created_before_clause(Widget, APR_4)).order_by(Widget.id)
    later = add(Widget, utc(2023, 4, 3, 1))
    assert _ids(legacy_session, stmt) == [first.id, later.id]
