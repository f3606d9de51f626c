"""
SQL timing store against a throwaway SQLite file (aiosqlite).
PostgreSQL runs the same code path in production.
"""
from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.core.errors import StorageUnavailableError
from app.db.database import create_tables
from app.db.sql_store import SqlTimingStore
from app.models.timing import OrderStatus
from app.schemas.timing import OrderTimingRecord
from app.timing.engine import OrderTimingEngine

from conftest import T0, FakeClock


def _record(order_id, position, status=OrderStatus.PENDING, minutes_after=0):
    at = T0 + timedelta(minutes=minutes_after)
    return OrderTimingRecord(
        order_id=order_id,
        item_count=2,
        queue_position=position,
        base_estimate_minutes=9,
        released_minutes=1,
        status=status,
        enqueued_at=at,
        status_updated_at=at,
    )


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'timing.db'}")
    await create_tables(engine)
    yield SqlTimingStore(async_sessionmaker(engine, expire_on_commit=False))
    await engine.dispose()


@pytest.mark.asyncio
async def test_save_all_then_load_round_trips(sql_store):
    records = [_record("A", 0), _record("B", 1, minutes_after=1), _record("C", None, OrderStatus.READY)]
    await sql_store.save_all(records)

    loaded = {r.order_id: r for r in await sql_store.load()}

    assert loaded == {r.order_id: r for r in records}
    assert loaded["A"].enqueued_at.tzinfo is not None


@pytest.mark.asyncio
async def test_save_upserts_existing_row(sql_store):
    await sql_store.save(_record("A", 3))
    await sql_store.save(_record("A", 0).model_copy(update={"status": OrderStatus.CONFIRMED}))

    loaded = await sql_store.load()

    assert len(loaded) == 1
    assert loaded[0].queue_position == 0
    assert loaded[0].status == OrderStatus.CONFIRMED


@pytest.mark.asyncio
async def test_delete_removes_row_and_ignores_unknown_ids(sql_store):
    await sql_store.save_all([_record("A", 0), _record("B", 1)])
    await sql_store.delete("A")
    await sql_store.delete("never-existed")

    assert [r.order_id for r in await sql_store.load()] == ["B"]


@pytest.mark.asyncio
async def test_engine_restart_over_sql_store(sql_store):
    clock = FakeClock()
    first = OrderTimingEngine(sql_store, clock=clock)
    await first.initialize()
    for order_id in ("A", "B", "C"):
        await first.enqueue(order_id, 2)
    await first.update_status("B", "cancelled")

    second = OrderTimingEngine(sql_store, clock=clock)
    await second.initialize()

    assert second.get_queue_position("A") == 0
    assert second.get_queue_position("C") == 1
    assert second.get_record("B").status == OrderStatus.CANCELLED


@pytest.mark.asyncio
async def test_missing_table_surfaces_as_storage_unavailable(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    store = SqlTimingStore(async_sessionmaker(engine, expire_on_commit=False))
    try:
        with pytest.raises(StorageUnavailableError):
            await store.load()
        with pytest.raises(StorageUnavailableError):
            await store.save(_record("A", 0))
    finally:
        await engine.dispose()
