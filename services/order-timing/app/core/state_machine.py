"""
Order Timing - Status state machine

pending → confirmed → preparing → ready → delivered | completed
cancelled is reachable from every non-terminal status.
Transitions are caller-driven; nothing here advances an order on a timer.
"""
from app.core.errors import InvalidInputError, InvalidStatusTransitionError
from app.models.timing import OrderStatus, QUEUED_STATUSES, TERMINAL_STATUSES

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING:   frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY:     frozenset({OrderStatus.DELIVERED, OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.COMPLETED: frozenset(),
}


def parse_status(value: OrderStatus | str) -> OrderStatus:
    """Map a status string from order management onto OrderStatus (exact, case-sensitive)."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise InvalidInputError(f"Unknown order status {value!r}; expected one of: {allowed}.")


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[current]


def validate_transition(order_id: str, current: OrderStatus, new: OrderStatus) -> None:
    if not can_transition(current, new):
        raise InvalidStatusTransitionError(order_id, current.value, new.value)


def leaves_queue(current: OrderStatus, new: OrderStatus) -> bool:
    """True when the order gives up its queue position (ready or terminal)."""
    return current in QUEUED_STATUSES and new not in QUEUED_STATUSES
