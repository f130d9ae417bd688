"""Unit tests for Order, OrderItem and OrderStatusHistory models."""

from __future__ import annotations

from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from django.db.models import ProtectedError

from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem, OrderStatusHistory

pytestmark = pytest.mark.unit


@pytest.fixture()
def order(user_identity):
    return Order.objects.create(owner_id=user_identity.id)


class TestOrder:
    def test_defaults(self, order):
        assert order.status == OrderStatus.PLACED
        assert order.total_price == Decimal("0.00")

    def test_str(self, order):
        assert str(order) == f"{order.id} (placed)"

    def test_db_rejects_negative_total(self, order):
        with pytest.raises(IntegrityError), transaction.atomic():
            Order.objects.filter(id=order.id).update(total_price=Decimal("-1"))


class TestOrderItem:
    def test_subtotal_computed_on_save(self, order, make_product):
        product = make_product(price="3.25")
        item = OrderItem.objects.create(
            order=order, product=product, quantity=4, unit_price=product.price
        )
        assert item.subtotal == Decimal("13.00")

    def test_product_is_protected(self, order, make_product):
        product = make_product()
        OrderItem.objects.create(order=order, product=product, quantity=1, unit_price=product.price)
        with pytest.raises(ProtectedError):
            product.hard_delete()

    def test_items_deleted_with_order(self, order, make_product):
        product = make_product()
        OrderItem.objects.create(order=order, product=product, quantity=1, unit_price=product.price)
        order.delete()
        assert not OrderItem.objects.exists()


class TestOrderStatusHistory:
    def test_str(self, order):
        record = OrderStatusHistory.objects.create(
            order=order, old_status=OrderStatus.PLACED, new_status=OrderStatus.SHIPPED
        )
        assert str(record) == f"{order.id} : placed -> shipped"
