"""
Order Timing - FastAPI routes

Order placement calls POST /timings, fulfillment calls
POST /timings/{order_id}/status, displays poll the GET routes once a minute.
"""
from fastapi import APIRouter, Depends, Request, status

from app.schemas.timing import (
    EnqueueRequest,
    OrderTimingEstimate,
    PurgeResponse,
    QueueStatsResponse,
    RemainingTimeResponse,
    StatusUpdateRequest,
)
from app.timing.display import format_time_display
from app.timing.engine import OrderTimingEngine

router = APIRouter(prefix="/timings", tags=["timings"])


def get_engine(request: Request) -> OrderTimingEngine:
    return request.app.state.timing_engine


@router.post("", response_model=OrderTimingEstimate, status_code=status.HTTP_201_CREATED)
async def enqueue_order(payload: EnqueueRequest, engine: OrderTimingEngine = Depends(get_engine)):
    """Start tracking a just-created order at the tail of the queue."""
    record = await engine.enqueue(payload.order_id, payload.item_count)
    return engine.estimate(record.order_id)


@router.get("", response_model=list[OrderTimingEstimate])
async def list_active_orders(engine: OrderTimingEngine = Depends(get_engine)):
    """Kitchen display board: ready orders, then the queue in preparation order."""
    return engine.list_active_orders()


@router.get("/stats", response_model=QueueStatsResponse)
async def queue_stats(engine: OrderTimingEngine = Depends(get_engine)):
    active = engine.list_active_orders()
    return QueueStatsResponse(
        queue_length=engine.queue_length(),
        active_orders=len(active),
        ready_orders=engine.ready_count(),
    )


@router.post("/purge", response_model=PurgeResponse)
async def purge_expired(engine: OrderTimingEngine = Depends(get_engine)):
    """Drop terminal records past the retention window (called by Celery beat)."""
    return PurgeResponse(purged=await engine.purge_expired())


@router.get("/{order_id}", response_model=OrderTimingEstimate)
async def get_order_timing(order_id: str, engine: OrderTimingEngine = Depends(get_engine)):
    return engine.estimate(order_id)


@router.get("/{order_id}/remaining", response_model=RemainingTimeResponse)
async def get_remaining(order_id: str, engine: OrderTimingEngine = Depends(get_engine)):
    record = engine.get_record(order_id)
    minutes = engine.get_remaining_minutes(order_id)
    return RemainingTimeResponse(
        order_id=order_id,
        status=record.status,
        remaining_minutes=minutes,
        display=format_time_display(minutes),
    )


@router.post("/{order_id}/status", response_model=OrderTimingEstimate)
async def update_status(
    order_id: str,
    payload: StatusUpdateRequest,
    engine: OrderTimingEngine = Depends(get_engine),
):
    """Mirror a status change from order management."""
    await engine.update_status(order_id, payload.status)
    return engine.estimate(order_id)
