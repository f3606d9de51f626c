"""
Order Timing - Timing DB models

[TRANSACTIONAL DATA] one row per tracked order, purged after the retention window.
"""
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column
from app.db.database import Base


class OrderStatus(str, PyEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.COMPLETED})
# Statuses that hold a queue position and consume preparation capacity
QUEUED_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PREPARING})
ACTIVE_STATUSES = QUEUED_STATUSES | {OrderStatus.READY}


class OrderTiming(Base):
    """
    [TRANSACTIONAL DATA]
    Durable copy of an OrderTimingRecord for the SQL store.
    """
    __tablename__ = "order_timings"

    order_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    item_count: Mapped[int] = mapped_column(Integer, nullable=False)
    queue_position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    base_estimate_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    released_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Stored by value so the column matches the status strings used by order management
    status: Mapped[OrderStatus] = mapped_column(
        Enum(
            OrderStatus,
            name="order_timing_status",
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        index=True,
    )
    enqueued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status_updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
