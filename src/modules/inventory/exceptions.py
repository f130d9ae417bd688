"""Inventory domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import DomainError


class InsufficientStock(DomainError):
    """Requested quantity exceeds what the product can supply."""

    code = "insufficient_stock"

    def __init__(self, product_id: str, product_name: str, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock for product: {product_name} "
            f"(requested {requested}, available {available})"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available
