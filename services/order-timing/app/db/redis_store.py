"""
Order Timing - Redis-backed timing store

All records live in one hash:
  HSET order_timing:records <order_id> <record json>

A single HSET with a mapping is applied atomically by Redis, which is what
save_all needs for re-ranks that touch many orders at once.
"""
import logging
from typing import Iterable

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError

from app.core.errors import StorageUnavailableError
from app.db.store import TimingStore
from app.schemas.timing import OrderTimingRecord

logger = logging.getLogger(__name__)

DEFAULT_KEY = "order_timing:records"


class RedisTimingStore(TimingStore):

    def __init__(self, redis: aioredis.Redis, key: str = DEFAULT_KEY):
        self._redis = redis
        self._key = key

    async def load(self) -> list[OrderTimingRecord]:
        try:
            raw = await self._redis.hgetall(self._key)
        except RedisError as exc:
            raise StorageUnavailableError(f"Redis read failed: {exc}") from exc

        records = []
        corrupt = []
        for order_id, payload in raw.items():
            try:
                records.append(OrderTimingRecord.model_validate_json(payload))
            except ValidationError:
                corrupt.append(order_id)
        if corrupt:
            # A partial load would silently drop orders from the ranking
            logger.error("Corrupt timing records in %s: %s", self._key, ", ".join(sorted(corrupt)))
            raise StorageUnavailableError(
                f"Undecodable timing records for orders: {', '.join(sorted(corrupt))}"
            )
        return records

    async def save(self, record: OrderTimingRecord) -> None:
        try:
            await self._redis.hset(self._key, record.order_id, record.model_dump_json())
        except RedisError as exc:
            raise StorageUnavailableError(f"Redis write failed for {record.order_id}: {exc}") from exc

    async def save_all(self, records: Iterable[OrderTimingRecord]) -> None:
        mapping = {r.order_id: r.model_dump_json() for r in records}
        if not mapping:
            return
        try:
            await self._redis.hset(self._key, mapping=mapping)
        except RedisError as exc:
            raise StorageUnavailableError(f"Redis bulk write failed: {exc}") from exc

    async def delete(self, order_id: str) -> None:
        try:
            await self._redis.hdel(self._key, order_id)
        except RedisError as exc:
            raise StorageUnavailableError(f"Redis delete failed for {order_id}: {exc}") from exc

    async def ping(self) -> bool:
        return bool(await self._redis.ping())
