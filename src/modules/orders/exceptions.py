"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API boundary translates them into HTTP responses.
"""

from __future__ import annotations

from modules.core.exceptions import DomainError, NotFound


class OrderNotFound(NotFound):
    """The requested order does not exist."""

    code = "order_not_found"

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class InvalidOrderState(DomainError):
    """The order's current status does not allow the requested operation."""

    code = "invalid_state"

    def __init__(self, message: str, current_status: str) -> None:
        super().__init__(message)
        self.current_status = current_status


class NoChangeNeeded(DomainError):
    """A status change was requested to the status the order already has."""

    code = "no_change_needed"
