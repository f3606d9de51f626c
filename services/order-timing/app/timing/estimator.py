"""
Order Timing - Preparation time model

Pure functions over records and wall-clock time. All values are whole minutes.
"""
import math
from datetime import datetime
from typing import Sequence

from app.core.timing_config import EstimateMode, TimingConfig
from app.models.timing import QUEUED_STATUSES
from app.schemas.timing import OrderTimingRecord


def elapsed_minutes(since: datetime, now: datetime) -> int:
    """Whole minutes between two timestamps, never negative."""
    seconds = (now - since).total_seconds()
    if seconds <= 0:
        return 0
    return math.floor(seconds / 60)


def estimate_base_minutes(item_count: int, ahead_remaining: Sequence[int], config: TimingConfig) -> int:
    """
    Total minutes quoted to a new order at the tail of the queue.

    One order is prepared at a time, so the new order waits until the tail of
    the queue is done and then for its own items. The tail's remaining time
    already covers everything ranked ahead of it, so in cumulative mode the
    wait is the largest remaining time ahead, not the sum. In flat mode it is
    a fixed delay per order ahead.
    """
    own = config.per_item_minutes * item_count
    if config.estimate_mode == EstimateMode.FLAT:
        wait = config.per_position_minutes * len(ahead_remaining)
    else:
        wait = max(ahead_remaining, default=0)
    return max(config.floor_minutes, own + wait)


def remaining_minutes(record: OrderTimingRecord, now: datetime) -> int:
    """Countdown for one order; 0 once it is ready or terminal."""
    if record.status not in QUEUED_STATUSES:
        return 0
    left = record.base_estimate_minutes - record.released_minutes - elapsed_minutes(record.enqueued_at, now)
    return max(0, left)


def released_by(record: OrderTimingRecord, now: datetime, config: TimingConfig) -> int:
    """
    Minutes handed back to each order behind ``record`` when it leaves the queue.

    Only the leaver's own preparation share comes back. The rest of its
    remaining time is the wait for orders still ahead of it, and the orders
    behind are still waiting for those.
    """
    left = remaining_minutes(record, now)
    if config.estimate_mode == EstimateMode.FLAT:
        return min(config.per_position_minutes, left)
    return min(config.per_item_minutes * record.item_count, left)
