"""Unit tests for InventoryLedger.

Covers:
- Reservation decrements stock and binds the locked product.
- All-or-nothing: a failing line leaves every counter untouched.
- Fail-fast ordering: the first failing line (request order) is reported.
- Release gives stock back and skips missing products.
- Reconcile headroom = stock + previously held quantity.
- Catalog stock adjustment.
- Locking: one locked read over every implicated row precedes any write.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from django.db.models import QuerySet

from modules.core.exceptions import InvalidInput
from modules.core.identifiers import generate_object_id
from modules.inventory.exceptions import InsufficientStock
from modules.inventory.ledger import InventoryLedger, StockLine
from modules.products.exceptions import ProductNotFound
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def ledger():
    return InventoryLedger(ProductDjangoRepository())


def _stock(product) -> int:
    product.refresh_from_db()
    return product.stock


class TestCheckAndReserve:
    def test_decrements_stock_per_line(self, ledger, make_product):
        a = make_product("A", stock=10)
        b = make_product("B", stock=5)

        reservations = ledger.check_and_reserve(
            [StockLine(a.id, 3), StockLine(b.id, 5)]
        )

        assert _stock(a) == 7
        assert _stock(b) == 0
        assert [(r.product.id, r.quantity) for r in reservations] == [(a.id, 3), (b.id, 5)]

    def test_reservation_snapshots_current_price(self, ledger, make_product):
        product = make_product(price="12.50")
        [reservation] = ledger.check_and_reserve([StockLine(product.id, 1)])
        assert reservation.unit_price == Decimal("12.50")

    def test_exact_stock_is_allowed(self, ledger, make_product):
        product = make_product(stock=4)
        ledger.check_and_reserve([StockLine(product.id, 4)])
        assert _stock(product) == 0

    def test_insufficient_stock_does_not_mutate(self, ledger, make_product):
        product = make_product("Scarce", stock=2)

        with pytest.raises(InsufficientStock) as exc_info:
            ledger.check_and_reserve([StockLine(product.id, 3)])

        assert "Scarce" in str(exc_info.value)
        assert exc_info.value.requested == 3
        assert exc_info.value.available == 2
        assert _stock(product) == 2

    def test_failing_second_line_leaves_first_untouched(self, ledger, make_product):
        plenty = make_product("Plenty", stock=10)
        scarce = make_product("Scarce", stock=1)

        with pytest.raises(InsufficientStock):
            ledger.check_and_reserve(
                [StockLine(plenty.id, 2), StockLine(scarce.id, 5)]
            )

        assert _stock(plenty) == 10
        assert _stock(scarce) == 1

    def test_missing_product_is_reported_before_later_stock_failure(
        self, ledger, make_product
    ):
        scarce = make_product(stock=1)
        missing_id = generate_object_id()

        with pytest.raises(ProductNotFound) as exc_info:
            ledger.check_and_reserve(
                [StockLine(missing_id, 1), StockLine(scarce.id, 5)]
            )

        assert exc_info.value.product_id == missing_id
        assert _stock(scarce) == 1

    def test_stock_failure_is_reported_before_later_missing_product(
        self, ledger, make_product
    ):
        scarce = make_product(stock=1)

        with pytest.raises(InsufficientStock):
            ledger.check_and_reserve(
                [StockLine(scarce.id, 5), StockLine(generate_object_id(), 1)]
            )

    def test_soft_deleted_product_is_missing(self, ledger, make_product):
        product = make_product(stock=10)
        product.delete()

        with pytest.raises(ProductNotFound):
            ledger.check_and_reserve([StockLine(product.id, 1)])

    def test_repeated_product_counts_earlier_lines(self, ledger, make_product):
        product = make_product(stock=5)

        with pytest.raises(InsufficientStock) as exc_info:
            ledger.check_and_reserve(
                [StockLine(product.id, 3), StockLine(product.id, 3)]
            )

        assert exc_info.value.available == 2
        assert _stock(product) == 5


class TestRelease:
    def test_release_restores_stock(self, ledger, make_product):
        product = make_product(stock=10)
        ledger.check_and_reserve([StockLine(product.id, 4)])

        ledger.release([StockLine(product.id, 4)])

        assert _stock(product) == 10

    def test_release_skips_missing_products(self, ledger, make_product):
        product = make_product(stock=1)
        gone = make_product("Gone", stock=0)
        gone.delete()

        ledger.release([StockLine(gone.id, 3), StockLine(product.id, 2)])

        assert _stock(product) == 3
        assert _stock(gone) == 0


class TestReconcile:
    def test_headroom_includes_held_quantity(self, ledger, make_product):
        product = make_product(stock=5)

        ledger.reconcile([StockLine(product.id, 1)], [StockLine(product.id, 6)])

        assert _stock(product) == 0

    def test_beyond_headroom_is_rejected_without_mutation(self, ledger, make_product):
        product = make_product(stock=5)

        with pytest.raises(InsufficientStock) as exc_info:
            ledger.reconcile([StockLine(product.id, 1)], [StockLine(product.id, 7)])

        assert exc_info.value.available == 6
        assert _stock(product) == 5

    def test_lowering_quantity_returns_the_difference(self, ledger, make_product):
        product = make_product(stock=5)

        ledger.reconcile([StockLine(product.id, 4)], [StockLine(product.id, 1)])

        assert _stock(product) == 8

    def test_dropped_product_is_fully_released(self, ledger, make_product):
        kept = make_product("Kept", stock=5)
        dropped = make_product("Dropped", stock=5)

        ledger.reconcile(
            [StockLine(kept.id, 1), StockLine(dropped.id, 2)],
            [StockLine(kept.id, 1)],
        )

        assert _stock(kept) == 5
        assert _stock(dropped) == 7

    def test_new_product_is_reserved_from_stock(self, ledger, make_product):
        old = make_product("Old", stock=5)
        new = make_product("New", stock=5)

        reservations = ledger.reconcile([StockLine(old.id, 2)], [StockLine(new.id, 3)])

        assert _stock(old) == 7
        assert _stock(new) == 2
        assert [r.product.id for r in reservations] == [new.id]


class TestSetStock:
    def test_overwrites_counter(self, ledger, make_product):
        product = make_product(stock=5)
        ledger.set_stock(product.id, 42)
        assert _stock(product) == 42

    def test_negative_is_invalid(self, ledger, make_product):
        product = make_product(stock=5)
        with pytest.raises(InvalidInput):
            ledger.set_stock(product.id, -1)
        assert _stock(product) == 5

    def test_missing_product(self, ledger):
        with pytest.raises(ProductNotFound):
            ledger.set_stock(generate_object_id(), 1)


class _RecordingRepository(ProductDjangoRepository):
    def __init__(self, calls):
        self.calls = calls

    def lock_many(self, ids):
        products = super().lock_many(ids)
        self.calls.append(("lock", sorted(products)))
        return products


@pytest.fixture()
def recorded(monkeypatch):
    """Ledger whose row locks and stock writes are appended to ``calls``."""
    calls = []
    original_select_for_update = QuerySet.select_for_update
    original_save = Product.save

    def _select_for_update(self, *args, **kwargs):
        calls.append(("select_for_update", self.model.__name__))
        return original_select_for_update(self, *args, **kwargs)

    def _save(self, *args, **kwargs):
        calls.append(("save", self.id))
        return original_save(self, *args, **kwargs)

    monkeypatch.setattr(QuerySet, "select_for_update", _select_for_update)
    monkeypatch.setattr(Product, "save", _save)
    return InventoryLedger(_RecordingRepository(calls)), calls


class TestLocking:
    def test_reserve_locks_every_row_before_writing(self, recorded, make_product):
        a = make_product("A", stock=5)
        b = make_product("B", stock=5)
        ledger, calls = recorded
        calls.clear()

        ledger.check_and_reserve([StockLine(b.id, 1), StockLine(a.id, 2)])

        assert calls[:2] == [
            ("select_for_update", "Product"),
            ("lock", sorted([a.id, b.id])),
        ]
        assert sorted(calls[2:]) == sorted([("save", a.id), ("save", b.id)])

    def test_failed_reserve_reads_under_lock_and_writes_nothing(
        self, recorded, make_product
    ):
        plenty = make_product("Plenty", stock=5)
        scarce = make_product("Scarce", stock=1)
        ledger, calls = recorded
        calls.clear()

        with pytest.raises(InsufficientStock):
            ledger.check_and_reserve([StockLine(plenty.id, 2), StockLine(scarce.id, 3)])

        assert calls == [
            ("select_for_update", "Product"),
            ("lock", sorted([plenty.id, scarce.id])),
        ]

    def test_reconcile_takes_one_lock_over_old_and_new_products(
        self, recorded, make_product
    ):
        old = make_product("Old", stock=5)
        new = make_product("New", stock=5)
        ledger, calls = recorded
        calls.clear()

        ledger.reconcile([StockLine(old.id, 2)], [StockLine(new.id, 3)])

        locks = [call for call in calls if call[0] == "lock"]
        assert locks == [("lock", sorted([old.id, new.id]))]
        assert calls.index(locks[0]) < min(
            i for i, call in enumerate(calls) if call[0] == "save"
        )

    def test_serialized_reservations_never_oversell(self, ledger, make_product):
        product = make_product(stock=3)
        outcomes = []

        for _ in range(5):
            try:
                ledger.check_and_reserve([StockLine(product.id, 1)])
                outcomes.append("reserved")
            except InsufficientStock:
                outcomes.append("insufficient")

        assert outcomes == ["reserved"] * 3 + ["insufficient"] * 2
        assert _stock(product) == 0
