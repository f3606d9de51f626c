"""
Order Timing - Error taxonomy

Every error carries a string discriminant (``kind``) that is what crosses the
HTTP boundary, plus the status code the API answers with.
"""


class TimingError(Exception):
    kind = "TimingError"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class InvalidInputError(TimingError):
    """Non-positive item count, malformed order id or unknown status value."""
    kind = "InvalidInput"
    http_status = 422


class OrderNotFoundError(TimingError):
    kind = "OrderNotFound"
    http_status = 404

    def __init__(self, order_id: str):
        super().__init__(f"No timing record for order '{order_id}'.")
        self.order_id = order_id


class InvalidStatusTransitionError(TimingError):
    """Raised when a requested status change is not allowed from the current status."""
    kind = "InvalidStatusTransition"
    http_status = 409

    def __init__(self, order_id: str, current_status: str, attempted_status: str):
        super().__init__(
            f"Order '{order_id}' cannot move from '{current_status}' to '{attempted_status}'."
        )
        self.order_id = order_id
        self.current_status = current_status
        self.attempted_status = attempted_status

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["current_status"] = self.current_status
        data["attempted_status"] = self.attempted_status
        return data


class StorageUnavailableError(TimingError):
    """The timing store could not complete a read or write (including timeouts)."""
    kind = "StorageUnavailable"
    http_status = 503
