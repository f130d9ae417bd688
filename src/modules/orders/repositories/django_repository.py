"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
All write operations are wrapped in ``transaction.atomic()`` so the Order
aggregate (Order + OrderItems) is persisted atomically.

Concurrency control on status and item updates uses ``select_for_update()``
on the order row.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

import structlog
from django.db import transaction

from modules.inventory.ledger import Reservation
from modules.orders.constants import INITIAL_STATUS
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create / replace (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, owner_id: str, reservations: Sequence[Reservation]) -> Order:
        order = Order(owner_id=owner_id, status=INITIAL_STATUS)
        order.save()
        self._write_items(order, reservations)

        logger.info(
            "order.persisted",
            order_id=str(order.id),
            item_count=len(reservations),
            total_price=str(order.total_price),
        )
        return order

    @transaction.atomic
    def replace_items(self, order: Order, reservations: Sequence[Reservation]) -> Order:
        OrderItem.objects.filter(order=order).delete()
        self._write_items(order, reservations)

        logger.info(
            "order.items_replaced",
            order_id=str(order.id),
            item_count=len(reservations),
            total_price=str(order.total_price),
        )
        return order

    def _write_items(self, order: Order, reservations: Sequence[Reservation]) -> None:
        total = Decimal("0.00")
        for reservation in reservations:
            item = OrderItem(
                order=order,
                product=reservation.product,
                quantity=reservation.quantity,
                unit_price=reservation.unit_price,
            )
            item.save()
            total += item.subtotal

        order.total_price = total
        order.save(update_fields=["total_price"])

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with items, products and history prefetched."""
        return (
            Order.objects.prefetch_related("items__product", "status_history")
            .filter(id=id)
            .first()
        )

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Eager-loads items (with product) so the caller can iterate
        over them while the row is locked.
        """
        return (
            Order.objects.select_for_update()
            .prefetch_related("items__product")
            .filter(id=id)
            .first()
        )

    def list(self, filters: Optional[Dict[str, Any]] = None):
        """Queryset of orders with items and products eagerly loaded.

        Supported filter keys are any Django look-ups, e.g.
        ``status``, ``owner_id``, ``created_at__range``.
        """
        queryset = Order.objects.prefetch_related("items__product")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def list_for_owner(self, owner_id: str) -> List[Order]:
        return list(self.list({"owner_id": owner_id}))

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist an order's scalar fields (status, total)."""
        entity.save(update_fields=["status", "total_price"])
        logger.info("order.saved", order_id=str(entity.id), status=entity.status)
        return entity

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_history(
        self,
        order: Order,
        new_status: str,
        old_status: Optional[str] = None,
        changed_by: str = "",
        notes: str = "",
    ) -> OrderStatusHistory:
        history = OrderStatusHistory.objects.create(
            order=order,
            old_status=old_status,
            new_status=new_status,
            changed_by=changed_by,
            notes=notes,
        )
        logger.info(
            "order.history_added",
            order_id=str(order.id),
            old_status=old_status,
            new_status=new_status,
        )
        return history
