"""
Order Timing - Display helpers and countdown polling

Used by storefront and kitchen screens that show "Ready!" / "1h 5m" style
countdowns. The engine is passive: a display polls it once a minute and, when
a poll fails, keeps showing the last good estimates flagged as stale.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx

logger = logging.getLogger(__name__)

READY_TEXT = "Ready!"
DEFAULT_POLL_INTERVAL_SECONDS = 60.0

STATUS_LABELS: dict[str, str] = {
    "pending":   "Order Placed",
    "confirmed": "Confirmed",
    "preparing": "Preparing",
    "ready":     "Ready for Pickup!",
    "delivered": "Delivered",
    "completed": "Completed",
    "cancelled": "Cancelled",
}


def format_time_display(minutes: int) -> str:
    if minutes <= 0:
        return READY_TEXT
    hours, mins = divmod(int(minutes), 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def status_label(status: str) -> str:
    return STATUS_LABELS.get(str(status).lower(), "Processing")


def progress_percent(remaining: int, estimated: int) -> int:
    """Progress bar fill for an order being prepared, never below 10%."""
    if estimated <= 0:
        return 100
    done = 100 - (remaining / estimated) * 100
    return int(min(100, max(10, done)))


class TimingClient:
    """Thin httpx wrapper over the order-timing API."""

    def __init__(self, base_url: str, timeout: float = 5.0, transport: httpx.AsyncBaseTransport | None = None):
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def list_active(self) -> list[dict]:
        r = await self._client.get("/timings")
        r.raise_for_status()
        return r.json()

    async def remaining(self, order_id: str) -> dict:
        r = await self._client.get(f"/timings/{order_id}/remaining")
        r.raise_for_status()
        return r.json()

    async def aclose(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()


@dataclass
class CountdownSnapshot:
    orders: list[dict] = field(default_factory=list)
    fetched_at: datetime | None = None
    stale: bool = False  # shown as "may be outdated"
    last_error: str | None = None

    def find(self, order_id: str) -> dict | None:
        for order in self.orders:
            if order.get("order_id") == order_id:
                return order
        return None


class CountdownTracker:
    """
    Keeps the last known good list of active orders.

    refresh() never raises for transport or HTTP failures; it marks the
    snapshot stale and keeps the previous orders so the screen does not blank.
    """

    def __init__(self, client: TimingClient, interval: float = DEFAULT_POLL_INTERVAL_SECONDS):
        self._client = client
        self._interval = interval
        self.snapshot = CountdownSnapshot()

    async def refresh(self) -> CountdownSnapshot:
        try:
            orders = await self._client.list_active()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Countdown refresh failed, showing last known estimates: %s", exc)
            self.snapshot = CountdownSnapshot(
                orders=self.snapshot.orders,
                fetched_at=self.snapshot.fetched_at,
                stale=True,
                last_error=str(exc),
            )
            return self.snapshot

        self.snapshot = CountdownSnapshot(orders=orders, fetched_at=datetime.now(tz=timezone.utc))
        return self.snapshot

    async def run(self, stop: asyncio.Event) -> None:
        """Refresh every interval until ``stop`` is set."""
        while not stop.is_set():
            await self.refresh()
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                continue
