"""Product domain exceptions.

Raised by the catalog service and the inventory ledger.  The API boundary
translates them into HTTP responses.
"""

from __future__ import annotations

from modules.core.exceptions import NotFound


class ProductNotFound(NotFound):
    """The product does not exist or has been soft-deleted."""

    code = "product_not_found"

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id
