"""
Order Timing - Pydantic schemas
"""
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from app.models.timing import OrderStatus


class OrderTimingRecord(BaseModel):
    """
    Timing state of one tracked order.

    Frozen: the engine publishes a new copy on every change so readers never
    see a half-applied re-rank.
    """
    model_config = ConfigDict(frozen=True)

    order_id: str = Field(..., min_length=1, max_length=64)
    item_count: int = Field(..., ge=1)
    queue_position: int | None = Field(None, ge=0)  # None once ready or terminal
    base_estimate_minutes: int = Field(..., ge=0)
    released_minutes: int = Field(0, ge=0)
    status: OrderStatus = OrderStatus.PENDING
    enqueued_at: datetime
    status_updated_at: datetime


class OrderTimingEstimate(OrderTimingRecord):
    remaining_minutes: int
    display: str


class EnqueueRequest(BaseModel):
    # Range checks happen in the engine so they surface as InvalidInput
    order_id: str = Field(..., examples=["ORD-2024-0001"])
    item_count: int = Field(..., examples=[3])


class StatusUpdateRequest(BaseModel):
    status: str = Field(..., examples=["preparing"])


class RemainingTimeResponse(BaseModel):
    order_id: str
    status: OrderStatus
    remaining_minutes: int
    display: str


class QueueStatsResponse(BaseModel):
    queue_length: int
    active_orders: int
    ready_orders: int


class PurgeResponse(BaseModel):
    purged: list[str]


class ErrorResponse(BaseModel):
    error: str
    message: str
    current_status: str | None = None
    attempted_status: str | None = None


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    dependencies: dict[str, str]
