"""
Order Timing - Store selection from settings
"""
from app.core.config import Settings
from app.db.store import InMemoryTimingStore, TimingStore

STORE_BACKENDS = ("memory", "redis", "postgres")


def build_store(settings: Settings) -> TimingStore:
    backend = settings.TIMING_STORE_BACKEND.lower()

    if backend == "memory":
        return InMemoryTimingStore()

    if backend == "redis":
        from app.core.redis_client import get_redis
        from app.db.redis_store import RedisTimingStore
        return RedisTimingStore(get_redis(), key=settings.REDIS_TIMING_KEY)

    if backend == "postgres":
        from app.db.database import get_session_factory
        from app.db.sql_store import SqlTimingStore
        return SqlTimingStore(get_session_factory())

    raise ValueError(
        f"Unknown TIMING_STORE_BACKEND '{settings.TIMING_STORE_BACKEND}'; "
        f"expected one of: {', '.join(STORE_BACKENDS)}"
    )
