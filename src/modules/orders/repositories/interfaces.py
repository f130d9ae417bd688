"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the order lifecycle needs:
atomic creation with items, item replacement, row-locked reads, owner
queries, and status history tracking.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.inventory.ledger import Reservation
    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, owner_id: str, reservations: Sequence[Reservation]) -> Order:
        """Create a ``placed`` order with one item per reservation."""

    @abstractmethod
    def replace_items(self, order: Order, reservations: Sequence[Reservation]) -> Order:
        """Replace every item of ``order`` and recompute its total."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> List[Order]:
        """List the orders owned by ``owner_id``, newest first."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None):
        """List orders with optional filters."""

    @abstractmethod
    def add_history(
        self,
        order: Order,
        new_status: str,
        old_status: Optional[str] = None,
        changed_by: str = "",
        notes: str = "",
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
