"""Order service layer (Use Cases).

Orchestrates the order lifecycle: placement, item edits, privileged status
changes, and owner cancellation.  Each command is one unit of work: the
order row (when it exists) is locked first, then the ledger locks the
implicated product rows, and the whole read-check-write sequence commits
together.  The lifecycle event is published only after the commit.

Business rules enforced:
- Only identities allowed to order may place orders.
- Only the owner may edit or cancel, and only while the order is ``placed``.
- Ownership is checked before status, so a foreign order is always
  ``Forbidden`` whatever its status.
- Only privileged identities change status; a no-op change is rejected
  and a terminal order cannot be moved.
- Stock moves only through the ``InventoryLedger``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Type

import structlog
from django.db import transaction

from modules.core.exceptions import Forbidden, InvalidInput
from modules.inventory.ledger import StockLine
from modules.orders.constants import OrderStatus
from modules.orders.dtos import OrderOutputDTO
from modules.orders.events import OrderCancelled, OrderEvent, OrderPlaced, OrderUpdated
from modules.orders.exceptions import InvalidOrderState, NoChangeNeeded, OrderNotFound

if TYPE_CHECKING:
    from modules.core.authentication import Identity
    from modules.inventory.ledger import InventoryLedger
    from modules.orders.dtos import PlaceOrderRequest, UpdateOrderItemsRequest
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from shared.domain.events import IEventPublisher

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives the order repository, the inventory ledger and the event
    publisher via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        ledger: InventoryLedger,
        publisher: IEventPublisher,
    ) -> None:
        self._order_repo = order_repository
        self._ledger = ledger
        self._publisher = publisher

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def place_order(self, identity: Identity, request: PlaceOrderRequest) -> Order:
        """Create a ``placed`` order, reserving stock for every line.

        Raises:
            Forbidden: the identity's role may not place orders.
            ProductNotFound: a line references a missing product.
            InsufficientStock: a line exceeds available stock.
        """
        log = logger.bind(owner_id=identity.id, item_count=len(request.items))
        if not identity.can_place_orders:
            log.warning("order.placement_denied", role=identity.role)
            raise Forbidden("Access denied, user only.")

        log.info("order.placement_started")
        with transaction.atomic():
            reservations = self._ledger.check_and_reserve(request.stock_lines())
            order = self._order_repo.create(identity.id, reservations)
            self._order_repo.add_history(
                order,
                new_status=order.status,
                changed_by=identity.id,
                notes="Order placed",
            )
            order = self._reload(order.id)

        log.info("order.placed", order_id=str(order.id), total_price=str(order.total_price))
        self._emit(OrderPlaced, order, "A new order has been placed")
        return order

    def update_items(
        self,
        identity: Identity,
        order_id: str,
        request: UpdateOrderItemsRequest,
    ) -> Order:
        """Replace the items of a ``placed`` order.

        Stock is reconciled against the quantities the order already holds,
        so a product's headroom is its stock plus the order's old quantity.

        Raises:
            OrderNotFound: the order does not exist.
            Forbidden: the caller does not own the order.
            InvalidOrderState: the order is no longer ``placed``.
            ProductNotFound / InsufficientStock: from the ledger.
        """
        log = logger.bind(order_id=order_id, identity_id=identity.id)

        with transaction.atomic():
            order = self._lock(order_id)
            self._ensure_owner(order, identity, "update")
            self._ensure_owner_mutable(order, "update")

            old_lines = self._stock_lines(order)
            reservations = self._ledger.reconcile(old_lines, request.stock_lines())
            self._order_repo.replace_items(order, reservations)
            order = self._reload(order.id)

        log.info("order.items_updated", total_price=str(order.total_price))
        self._emit(OrderUpdated, order, "Order has been updated")
        return order

    def change_status(self, identity: Identity, order_id: str, new_status: Any) -> Order:
        """Move an order to ``new_status`` (privileged identities only).

        Any enumerated status is a valid target, ``canceled`` included.
        No stock side effects: a privileged cancel leaves the reserved
        stock where it is, unlike ``cancel_order``.

        Raises:
            Forbidden: the identity is not privileged.
            InvalidInput: ``new_status`` is not an order status.
            OrderNotFound: the order does not exist.
            NoChangeNeeded: the order already has ``new_status``.
            InvalidOrderState: the order is in a terminal state.
        """
        if not identity.is_privileged:
            logger.warning(
                "order.status_change_denied",
                order_id=order_id,
                identity_id=identity.id,
            )
            raise Forbidden("Access denied, superadmin only.")
        if new_status not in OrderStatus.values:
            raise InvalidInput(
                f"Invalid status: {new_status}. "
                f"Must be one of: {', '.join(OrderStatus.values)}."
            )

        with transaction.atomic():
            order = self._lock(order_id)
            log = logger.bind(
                order_id=order_id,
                current_status=order.status,
                new_status=new_status,
            )

            if order.status == new_status:
                log.info("order.status_unchanged")
                raise NoChangeNeeded(f"Order is already {order.status}.")
            if order.is_terminal:
                log.warning("order.invalid_transition")
                raise InvalidOrderState(
                    f"Cannot change status of an order that is {order.status}.",
                    current_status=order.status,
                )

            old_status = order.status
            order.status = new_status
            self._order_repo.save(order)
            self._order_repo.add_history(
                order,
                new_status=new_status,
                old_status=old_status,
                changed_by=identity.id,
                notes="Status changed",
            )
            order = self._reload(order.id)

        log.info("order.status_updated")
        self._emit(OrderUpdated, order, "Order status updated")
        return order

    def cancel_order(self, identity: Identity, order_id: str) -> Order:
        """Cancel a ``placed`` order and release its reserved stock.

        Raises:
            OrderNotFound: the order does not exist.
            Forbidden: the caller does not own the order.
            InvalidOrderState: the order is no longer ``placed``.
        """
        log = logger.bind(order_id=order_id, identity_id=identity.id)

        with transaction.atomic():
            order = self._lock(order_id)
            self._ensure_owner(order, identity, "cancel")
            self._ensure_owner_mutable(order, "cancel")

            old_status = order.status
            order.status = OrderStatus.CANCELED
            self._order_repo.save(order)
            self._ledger.release(self._stock_lines(order))
            self._order_repo.add_history(
                order,
                new_status=OrderStatus.CANCELED,
                old_status=old_status,
                changed_by=identity.id,
                notes="Order cancelled by owner",
            )
            order = self._reload(order.id)

        log.info("order.cancelled")
        self._emit(OrderCancelled, order, "Order has been cancelled")
        return order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, identity: Identity, order_id: str) -> Order:
        """Retrieve an order visible to ``identity``.

        Raises:
            OrderNotFound: the order does not exist.
            Forbidden: neither the owner nor a privileged identity.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(order_id)
        if not identity.is_privileged:
            self._ensure_owner(order, identity, "view")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None):
        """Return every order, optionally filtered (privileged listing)."""
        return self._order_repo.list(filters)

    def list_orders_for_owner(self, owner_id: str) -> List[Order]:
        return self._order_repo.list_for_owner(owner_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock(self, order_id: str) -> Order:
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(order_id)
        return order

    def _reload(self, order_id: str) -> Order:
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(order_id)
        return order

    @staticmethod
    def _ensure_owner(order: Order, identity: Identity, action: str) -> None:
        if not order.is_owned_by(identity.id):
            logger.warning(
                "order.ownership_denied",
                order_id=str(order.id),
                identity_id=identity.id,
                action=action,
            )
            raise Forbidden(f"Not authorized to {action} this order.")

    @staticmethod
    def _ensure_owner_mutable(order: Order, action: str) -> None:
        if not order.is_owner_mutable:
            logger.warning(
                "order.invalid_state",
                order_id=str(order.id),
                current_status=order.status,
                action=action,
            )
            raise InvalidOrderState(
                f"Cannot {action} order in status {order.status}.",
                current_status=order.status,
            )

    @staticmethod
    def _stock_lines(order: Order) -> List[StockLine]:
        return [
            StockLine(product_id=item.product_id, quantity=item.quantity)
            for item in order.items.all()
        ]

    def _emit(self, event_class: Type[OrderEvent], order: Order, message: str) -> None:
        snapshot = OrderOutputDTO.from_entity(order).model_dump(mode="json")
        event = event_class(aggregate_id=order.id, message=message, order=snapshot)
        self._publisher.publish(event)
        logger.info(
            "order.event_published",
            order_id=str(order.id),
            event_name=event.channel_name,
        )
