"""Domain events for the Orders bounded context.

Each event carries the full order snapshot (``OrderOutputDTO`` dumped to
JSON-safe primitives) taken after the transition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderEvent(DomainEvent):
    order: Dict[str, Any] = field(default_factory=dict)

    @property
    def owner_id(self) -> str:
        return self.order.get("owner_id", "")

    def to_payload(self) -> Dict[str, Any]:
        return {**super().to_payload(), "order": self.order}


@dataclass(frozen=True)
class OrderPlaced(OrderEvent):
    channel_name: ClassVar[str] = "orderPlaced"


@dataclass(frozen=True)
class OrderUpdated(OrderEvent):
    """Items or status changed."""

    channel_name: ClassVar[str] = "orderUpdated"


@dataclass(frozen=True)
class OrderCancelled(OrderEvent):
    channel_name: ClassVar[str] = "orderCancelled"
