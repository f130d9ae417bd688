"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer and the Service layer.
DTOs are immutable (``frozen=True``).

- ``OrderLineDTO``: one ``{product_id, quantity}`` line.
- ``PlaceOrderRequest``: input for order creation.
- ``UpdateOrderItemsRequest``: input for item edits, the only mutable
  part of an order from its owner's point of view.
- ``OrderItemOutputDTO`` / ``OrderOutputDTO``: order snapshot carried by
  notification events.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from modules.core.validation import object_id_field
from modules.inventory.ledger import StockLine

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class OrderLineDTO(BaseModel):
    """Immutable DTO for a single order line.

    The caller sends ``product_id`` and ``quantity``; the unit price is
    resolved from the catalog by the Service Layer.
    """

    model_config = ConfigDict(frozen=True)

    product_id: str
    quantity: int

    @field_validator("product_id", mode="before")
    @classmethod
    def product_id_must_be_object_id(cls, v: Any) -> str:
        return object_id_field(v)

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    def to_stock_line(self) -> StockLine:
        return StockLine(product_id=self.product_id, quantity=self.quantity)


class _OrderLinesRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: List[OrderLineDTO]

    @field_validator("items")
    @classmethod
    def items_must_be_unique_and_non_empty(cls, v: List[OrderLineDTO]) -> List[OrderLineDTO]:
        if not v:
            raise ValueError("Items must be an array and contain at least one item.")
        product_ids = [item.product_id for item in v]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError("Duplicate product IDs are not allowed in the same order.")
        return v

    def stock_lines(self) -> List[StockLine]:
        return [item.to_stock_line() for item in self.items]


class PlaceOrderRequest(_OrderLinesRequest):
    """Immutable DTO for order creation requests."""


class UpdateOrderItemsRequest(_OrderLinesRequest):
    """Immutable DTO for replacing the items of a ``placed`` order.

    Items are the only owner-editable field; status changes and
    cancellation have their own operations.
    """


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class OrderItemOutputDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal

    @classmethod
    def from_entity(cls, item: OrderItem) -> OrderItemOutputDTO:
        return cls(
            product_id=item.product_id,
            product_name=item.product.name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            subtotal=item.subtotal,
        )


class OrderOutputDTO(BaseModel):
    """Immutable snapshot of an order after a lifecycle transition."""

    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    status: str
    total_price: Decimal
    items: List[OrderItemOutputDTO]
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, order: Order) -> OrderOutputDTO:
        """Build a snapshot from an Order with ``items__product`` loaded."""
        return cls(
            id=order.id,
            owner_id=order.owner_id,
            status=str(order.status),
            total_price=order.total_price,
            items=[OrderItemOutputDTO.from_entity(item) for item in order.items.all()],
            created_at=order.created_at,
            updated_at=order.updated_at,
        )
