"""
Order Timing API Tests

Runs the FastAPI app in-process over httpx.ASGITransport with an in-memory
store; the lifespan is not started, so each test wires its own engine.
"""
import httpx
import pytest
import pytest_asyncio

from app.core.errors import StorageUnavailableError
from app.db.store import InMemoryTimingStore
from app.main import app
from app.timing.engine import OrderTimingEngine

from conftest import FakeClock


class BrokenStore(InMemoryTimingStore):
    async def save(self, record):
        raise StorageUnavailableError("redis went away")

    async def ping(self):
        raise ConnectionError("redis went away")


async def _wire(store, clock) -> OrderTimingEngine:
    engine = OrderTimingEngine(store, clock=clock)
    await engine.initialize()
    app.state.timing_store = store
    app.state.timing_engine = engine
    return engine


@pytest.fixture
def api_clock():
    return FakeClock()


@pytest_asyncio.fixture
async def client(api_clock):
    await _wire(InMemoryTimingStore(), api_clock)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c


async def _enqueue(client, order_id, item_count=1):
    r = await client.post("/timings", json={"order_id": order_id, "item_count": item_count})
    assert r.status_code == 201, r.text
    return r.json()


async def _advance(client, order_id, *statuses):
    for status in statuses:
        r = await client.post(f"/timings/{order_id}/status", json={"status": status})
        assert r.status_code == 200, r.text
    return r.json()


@pytest.mark.asyncio
async def test_enqueue_returns_estimate(client):
    body = await _enqueue(client, "ORD-1", 3)

    assert body["order_id"] == "ORD-1"
    assert body["status"] == "pending"
    assert body["queue_position"] == 0
    assert body["base_estimate_minutes"] == 6
    assert body["remaining_minutes"] == 6
    assert body["display"] == "6m"


@pytest.mark.asyncio
async def test_list_active_orders_in_queue_order(client):
    for order_id in ("A", "B", "C"):
        await _enqueue(client, order_id)
    await _advance(client, "B", "cancelled")

    r = await client.get("/timings")

    assert r.status_code == 200
    assert [(o["order_id"], o["queue_position"]) for o in r.json()] == [("A", 0), ("C", 1)]


@pytest.mark.asyncio
async def test_remaining_counts_down_and_shows_ready(client, api_clock):
    await _enqueue(client, "A", 5)  # 10 min
    api_clock.advance(minutes=4)

    r = await client.get("/timings/A/remaining")
    assert r.json() == {"order_id": "A", "status": "pending", "remaining_minutes": 6, "display": "6m"}

    await _advance(client, "A", "confirmed", "preparing", "ready")
    r = await client.get("/timings/A/remaining")
    assert r.json()["remaining_minutes"] == 0
    assert r.json()["display"] == "Ready!"


@pytest.mark.asyncio
async def test_terminal_order_still_retrievable(client):
    await _enqueue(client, "A")
    await _advance(client, "A", "cancelled")

    r = await client.get("/timings/A")

    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"
    assert r.json()["queue_position"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"order_id": "A", "item_count": 0},
    {"order_id": "A", "item_count": -2},
    {"order_id": "", "item_count": 1},
])
async def test_invalid_input_is_422_with_discriminant(client, payload):
    r = await client.post("/timings", json=payload)
    assert r.status_code == 422
    assert r.json()["error"] == "InvalidInput"


@pytest.mark.asyncio
async def test_unknown_order_is_404(client):
    r = await client.get("/timings/nope")
    assert r.status_code == 404
    assert r.json()["error"] == "OrderNotFound"

    r = await client.post("/timings/nope/status", json={"status": "confirmed"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_invalid_transition_is_409_with_statuses(client):
    await _enqueue(client, "A")

    r = await client.post("/timings/A/status", json={"status": "delivered"})

    assert r.status_code == 409
    assert r.json() == {
        "error": "InvalidStatusTransition",
        "message": "Order 'A' cannot move from 'pending' to 'delivered'.",
        "current_status": "pending",
        "attempted_status": "delivered",
    }
    assert (await client.get("/timings/A")).json()["status"] == "pending"


@pytest.mark.asyncio
async def test_unknown_status_value_is_422(client):
    await _enqueue(client, "A")
    r = await client.post("/timings/A/status", json={"status": "Shipped"})
    assert r.status_code == 422
    assert r.json()["error"] == "InvalidInput"


@pytest.mark.asyncio
async def test_storage_failure_is_503(api_clock):
    await _wire(BrokenStore(), api_clock)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        r = await c.post("/timings", json={"order_id": "A", "item_count": 1})
        assert r.status_code == 503
        assert r.json()["error"] == "StorageUnavailable"

        health = await c.get("/health")
        assert health.status_code == 503
        assert health.json()["status"] == "degraded"


@pytest.mark.asyncio
async def test_stats(client):
    for order_id in ("A", "B", "C"):
        await _enqueue(client, order_id)
    await _advance(client, "A", "confirmed", "preparing", "ready")

    r = await client.get("/timings/stats")

    assert r.json() == {"queue_length": 2, "active_orders": 3, "ready_orders": 1}


@pytest.mark.asyncio
async def test_purge_endpoint(client, api_clock):
    await _enqueue(client, "A")
    await _advance(client, "A", "cancelled")
    api_clock.advance(minutes=24 * 60 + 1)

    r = await client.post("/timings/purge")

    assert r.status_code == 200
    assert r.json() == {"purged": ["A"]}
    assert (await client.get("/timings/A")).status_code == 404


@pytest.mark.asyncio
async def test_health_and_root(client):
    r = await client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "healthy"
    assert body["dependencies"] == {"timing_store": "ok", "timing_engine": "ok"}

    r = await client.get("/")
    assert r.json()["service"] == "order-timing"


class ExplodingStore(InMemoryTimingStore):
    async def save(self, record):
        raise RuntimeError("serializer bug")


@pytest.mark.asyncio
async def test_unexpected_error_is_logged_and_500(api_clock, caplog):
    await _wire(ExplodingStore(), api_clock)
    # Starlette re-raises after the 500 response is sent
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        with caplog.at_level("ERROR", logger="app.main"):
            r = await c.post("/timings", json={"order_id": "A", "item_count": 1})

    assert r.status_code == 500
    assert r.json() == {"error": "InternalError", "message": "Internal server error"}
    assert any(rec.exc_info and "POST /timings" in rec.getMessage() for rec in caplog.records)
