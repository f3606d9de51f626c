"""
Shared fixtures for the order-timing test suite.
"""
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from app.core.timing_config import TimingConfig
from app.db.store import InMemoryTimingStore
from app.timing.engine import OrderTimingEngine

T0 = datetime(2026, 10, 16, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Wall clock the tests move by hand."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0):
        self.now += timedelta(minutes=minutes, seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryTimingStore()


@pytest.fixture
def config():
    # per_item=2, per_position=5, floor=5, retention=24h, cumulative
    return TimingConfig()


@pytest_asyncio.fixture
async def engine(store, config, clock):
    eng = OrderTimingEngine(store, config, clock=clock, store_timeout=1.0)
    await eng.initialize()
    return eng
