"""
Order Timing - Queue engine

The only authority on queue positions and remaining-time math.

  - enqueue appends to the tail (strict FIFO) and quotes a base estimate
  - update_status walks the state machine; leaving the queue re-ranks every
    order behind and hands them back the minutes the leaver no longer needs
  - reads are pure functions of the current snapshot and the clock

Mutations hold one asyncio.Lock for their whole read-modify-write and only
publish to memory after the store has accepted the write. Readers always see
a complete snapshot because every publish swaps in a new dict.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, TypeVar

from app.core.errors import InvalidInputError, OrderNotFoundError, StorageUnavailableError
from app.core.state_machine import is_terminal, leaves_queue, parse_status, validate_transition
from app.core.timing_config import TimingConfig
from app.db.store import TimingStore
from app.models.timing import OrderStatus, QUEUED_STATUSES, TERMINAL_STATUSES
from app.schemas.timing import OrderTimingEstimate, OrderTimingRecord
from app.timing.display import format_time_display
from app.timing.estimator import estimate_base_minutes, released_by, remaining_minutes

logger = logging.getLogger(__name__)

MAX_ORDER_ID_LENGTH = 64

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _validate_order_id(order_id: str) -> str:
    if not isinstance(order_id, str) or not order_id.strip():
        raise InvalidInputError("order_id must be a non-empty string.")
    if len(order_id) > MAX_ORDER_ID_LENGTH:
        raise InvalidInputError(f"order_id must be at most {MAX_ORDER_ID_LENGTH} characters.")
    return order_id


def _validate_item_count(item_count: int) -> int:
    # bool is an int subclass; True is not an item count
    if isinstance(item_count, bool) or not isinstance(item_count, int) or item_count <= 0:
        raise InvalidInputError(f"item_count must be a positive integer, got {item_count!r}.")
    return item_count


def _rank_key(record: OrderTimingRecord):
    # Equal timestamps keep their previous relative order
    position = record.queue_position if record.queue_position is not None else float("inf")
    return (record.enqueued_at, position, record.order_id)


class OrderTimingEngine:

    def __init__(
        self,
        store: TimingStore,
        config: TimingConfig | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        store_timeout: float | None = 5.0,
    ):
        self._store = store
        self._config = config or TimingConfig()
        self._clock = clock
        self._store_timeout = store_timeout
        self._records: dict[str, OrderTimingRecord] = {}
        self._lock = asyncio.Lock()
        self._loaded = False
        self.degraded = False  # True while running on an empty queue after a failed load

    @property
    def config(self) -> TimingConfig:
        return self._config

    @property
    def initialized(self) -> bool:
        return self._loaded

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """
        Load every record, close position gaps left by orders that finished
        while the engine was down, and persist the corrections.
        Safe to call repeatedly.
        """
        async with self._lock:
            await self._initialize_locked()

    async def _initialize_locked(self) -> None:
        try:
            loaded = await self._call_store(self._store.load())
        except StorageUnavailableError as exc:
            if self._loaded:
                logger.warning(
                    "Timing store unreadable, keeping %d in-memory records: %s",
                    len(self._records), exc,
                )
                return
            logger.warning("Timing store unreadable, starting with an empty queue: %s", exc)
            self._records = {}
            self._loaded = True
            self.degraded = True
            return

        records = {r.order_id: r for r in loaded}
        corrected = self._rerank(records)
        if corrected:
            await self._call_store(self._store.save_all(corrected))
            records.update({r.order_id: r for r in corrected})
            logger.info("Corrected queue positions for %d timing records on load", len(corrected))

        self._records = records
        self._loaded = True
        self.degraded = False
        logger.info("Timing engine loaded %d records (%d queued)", len(records), self.queue_length())

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            await self._initialize_locked()

    @staticmethod
    def _rerank(records: dict[str, OrderTimingRecord]) -> list[OrderTimingRecord]:
        """Records whose queue_position differs from a fresh FIFO ranking."""
        corrected: list[OrderTimingRecord] = []
        queued = sorted((r for r in records.values() if r.status in QUEUED_STATUSES), key=_rank_key)
        for position, record in enumerate(queued):
            if record.queue_position != position:
                corrected.append(record.model_copy(update={"queue_position": position}))
        for record in records.values():
            if record.status not in QUEUED_STATUSES and record.queue_position is not None:
                corrected.append(record.model_copy(update={"queue_position": None}))
        return corrected

    # ── Mutations ─────────────────────────────────────────────────────────────

    async def enqueue(self, order_id: str, item_count: int) -> OrderTimingRecord:
        """Append a new order to the tail of the queue and quote its base estimate."""
        order_id = _validate_order_id(order_id)
        item_count = _validate_item_count(item_count)

        async with self._lock:
            await self._ensure_loaded()

            existing = self._records.get(order_id)
            if existing is not None:
                # Order placement retried after a timeout
                if existing.item_count != item_count:
                    raise InvalidInputError(
                        f"Order '{order_id}' is already tracked with {existing.item_count} items."
                    )
                return existing

            now = self._clock()
            queued = self._queued()
            ahead = [remaining_minutes(r, now) for r in queued]
            record = OrderTimingRecord(
                order_id=order_id,
                item_count=item_count,
                queue_position=len(queued),
                base_estimate_minutes=estimate_base_minutes(item_count, ahead, self._config),
                status=OrderStatus.PENDING,
                enqueued_at=now,
                status_updated_at=now,
            )

            await self._call_store(self._store.save(record))
            self._publish([record])

        logger.info(
            "Order %s enqueued at position %d: %d items, %d min estimate",
            order_id, record.queue_position, item_count, record.base_estimate_minutes,
        )
        return record

    async def update_status(self, order_id: str, new_status: OrderStatus | str) -> OrderTimingRecord:
        """
        Apply a status change from order management.

        When the order leaves the queue (ready or terminal) every queued order
        behind it moves up one place; all touched records are written in one
        save_all so the new ranking becomes visible at once.
        """
        status = parse_status(new_status)

        async with self._lock:
            await self._ensure_loaded()
            record = self._get(order_id)

            # Terminal statuses fall through and are rejected by the state machine
            if record.status == status and not is_terminal(status):
                return record
            validate_transition(order_id, record.status, status)

            now = self._clock()
            updated = record.model_copy(update={"status": status, "status_updated_at": now})
            former = record.queue_position

            if leaves_queue(record.status, status) and former is not None:
                freed = released_by(record, now, self._config)
                changed = [updated.model_copy(update={"queue_position": None})]
                for other in self._queued():
                    if other.order_id != order_id and other.queue_position > former:
                        changed.append(other.model_copy(update={
                            "queue_position": other.queue_position - 1,
                            "released_minutes": other.released_minutes + freed,
                        }))
                await self._call_store(self._store.save_all(changed))
                self._publish(changed)
                logger.info(
                    "Order %s %s -> %s, left position %d; %d orders moved up, %d min released",
                    order_id, record.status.value, status.value, former, len(changed) - 1, freed,
                )
            else:
                await self._call_store(self._store.save(updated))
                self._publish([updated])
                logger.info("Order %s %s -> %s", order_id, record.status.value, status.value)

            return self._records[order_id]

    async def purge_expired(self, now: datetime | None = None) -> list[str]:
        """
        Delete terminal records older than the retention window.

        Records are deleted one at a time; a storage failure stops the purge
        and propagates, leaving the remaining records in place.
        """
        async with self._lock:
            await self._ensure_loaded()
            now = now or self._clock()
            cutoff = now - timedelta(minutes=self._config.retention_window_minutes)
            expired = sorted(
                r.order_id for r in self._records.values()
                if r.status in TERMINAL_STATUSES and r.status_updated_at <= cutoff
            )

            purged: list[str] = []
            for order_id in expired:
                await self._call_store(self._store.delete(order_id))
                records = dict(self._records)
                records.pop(order_id, None)
                self._records = records
                purged.append(order_id)

        if purged:
            logger.info("Purged %d expired timing records", len(purged))
        return purged

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get_record(self, order_id: str) -> OrderTimingRecord:
        self._require_loaded()
        return self._get(order_id)

    def get_remaining_minutes(self, order_id: str, now: datetime | None = None) -> int:
        record = self.get_record(order_id)
        return remaining_minutes(record, now or self._clock())

    def get_queue_position(self, order_id: str) -> int | None:
        return self.get_record(order_id).queue_position

    def estimate(self, order_id: str, now: datetime | None = None) -> OrderTimingEstimate:
        record = self.get_record(order_id)
        return self._estimate(record, now or self._clock())

    def list_active_orders(self, now: datetime | None = None) -> list[OrderTimingEstimate]:
        """Ready orders first (oldest hand-off first), then the queue by position."""
        self._require_loaded()
        now = now or self._clock()
        snapshot = self._records
        ready = sorted(
            (r for r in snapshot.values() if r.status == OrderStatus.READY),
            key=lambda r: (r.status_updated_at, r.order_id),
        )
        queued = sorted(
            (r for r in snapshot.values() if r.status in QUEUED_STATUSES),
            key=lambda r: r.queue_position,
        )
        return [self._estimate(r, now) for r in ready + queued]

    def queue_length(self) -> int:
        return sum(1 for r in self._records.values() if r.status in QUEUED_STATUSES)

    def ready_count(self) -> int:
        return sum(1 for r in self._records.values() if r.status == OrderStatus.READY)

    # ── Internals ─────────────────────────────────────────────────────────────

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise StorageUnavailableError("Timing records are not loaded yet; call initialize() first.")

    def _get(self, order_id: str) -> OrderTimingRecord:
        record = self._records.get(order_id)
        if record is None:
            raise OrderNotFoundError(order_id)
        return record

    def _queued(self) -> list[OrderTimingRecord]:
        return sorted(
            (r for r in self._records.values() if r.status in QUEUED_STATUSES),
            key=lambda r: r.queue_position,
        )

    def _publish(self, changed: list[OrderTimingRecord]) -> None:
        records = dict(self._records)
        records.update({r.order_id: r for r in changed})
        self._records = records

    @staticmethod
    def _estimate(record: OrderTimingRecord, now: datetime) -> OrderTimingEstimate:
        left = remaining_minutes(record, now)
        return OrderTimingEstimate(
            **record.model_dump(),
            remaining_minutes=left,
            display=format_time_display(left),
        )

    async def _call_store(self, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self._store_timeout)
        except asyncio.TimeoutError as exc:
            raise StorageUnavailableError(
                f"Timing store did not respond within {self._store_timeout}s."
            ) from exc
