"""
Order Timing - Timing store interface

Durable mapping from order_id to OrderTimingRecord. The engine writes through
on every mutation, so a restart never loses more than the call in flight.
"""
import abc
from typing import Iterable

from app.schemas.timing import OrderTimingRecord


class TimingStore(abc.ABC):

    @abc.abstractmethod
    async def load(self) -> list[OrderTimingRecord]:
        """Return every persisted record. Raises StorageUnavailableError if unreadable."""

    @abc.abstractmethod
    async def save(self, record: OrderTimingRecord) -> None:
        """Upsert one record."""

    @abc.abstractmethod
    async def save_all(self, records: Iterable[OrderTimingRecord]) -> None:
        """Upsert many records atomically: either all become visible or none do."""

    @abc.abstractmethod
    async def delete(self, order_id: str) -> None:
        """Remove one record. Deleting an unknown id is not an error."""

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class InMemoryTimingStore(TimingStore):
    """Process-local store for tests and single-process development."""

    def __init__(self, records: Iterable[OrderTimingRecord] = ()):
        self._records: dict[str, OrderTimingRecord] = {r.order_id: r for r in records}

    async def load(self) -> list[OrderTimingRecord]:
        return list(self._records.values())

    async def save(self, record: OrderTimingRecord) -> None:
        self._records[record.order_id] = record

    async def save_all(self, records: Iterable[OrderTimingRecord]) -> None:
        # Build the batch first so a bad iterable leaves the store untouched
        batch = {r.order_id: r for r in records}
        self._records.update(batch)

    async def delete(self, order_id: str) -> None:
        self._records.pop(order_id, None)

    def get(self, order_id: str) -> OrderTimingRecord | None:
        return self._records.get(order_id)

    def __len__(self) -> int:
        return len(self._records)
