"""
Order Timing - SQL-backed timing store (PostgreSQL in production)

save_all runs every upsert inside one transaction, so a re-rank is either
fully visible or not at all.
"""
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import delete, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import StorageUnavailableError
from app.db.store import TimingStore
from app.models.timing import OrderTiming
from app.schemas.timing import OrderTimingRecord


def _as_utc(value: datetime) -> datetime:
    # SQLite and some drivers hand back naive datetimes for timestamptz columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_row(record: OrderTimingRecord) -> OrderTiming:
    return OrderTiming(**record.model_dump())


def _to_record(row: OrderTiming) -> OrderTimingRecord:
    return OrderTimingRecord(
        order_id=row.order_id,
        item_count=row.item_count,
        queue_position=row.queue_position,
        base_estimate_minutes=row.base_estimate_minutes,
        released_minutes=row.released_minutes,
        status=row.status,
        enqueued_at=_as_utc(row.enqueued_at),
        status_updated_at=_as_utc(row.status_updated_at),
    )


class SqlTimingStore(TimingStore):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def load(self) -> list[OrderTimingRecord]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(OrderTiming))
                return [_to_record(row) for row in result.scalars().all()]
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(f"Timing DB read failed: {exc}") from exc

    async def save(self, record: OrderTimingRecord) -> None:
        await self.save_all([record])

    async def save_all(self, records: Iterable[OrderTimingRecord]) -> None:
        rows = [_to_row(r) for r in records]
        if not rows:
            return
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    for row in rows:
                        await session.merge(row)
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(f"Timing DB write failed: {exc}") from exc

    async def delete(self, order_id: str) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.execute(delete(OrderTiming).where(OrderTiming.order_id == order_id))
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(f"Timing DB delete failed for {order_id}: {exc}") from exc

    async def ping(self) -> bool:
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))
        return True
