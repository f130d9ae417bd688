"""Inventory ledger: the only writer of product stock counters.

Every operation is one read-check-write unit:

1. Lock every implicated product row (``SELECT FOR UPDATE``, primary-key
   order) in a single query.
2. Walk the lines in request order and validate them against the locked
   rows: existence first, then quantity.  The first failing line raises.
3. Only when every line passed, write the new counters.

Because writes happen after all checks and inside ``transaction.atomic``,
a failing batch never leaves a partial decrement behind.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, Iterable, List, Sequence

import structlog
from django.db import transaction

from modules.core.exceptions import InvalidInput
from modules.inventory.exceptions import InsufficientStock
from modules.products.exceptions import ProductNotFound

if TYPE_CHECKING:
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StockLine:
    """A product reference plus a positive quantity."""

    product_id: str
    quantity: int


@dataclass(frozen=True)
class Reservation:
    """A validated line bound to its locked product row."""

    product: Product
    quantity: int

    @property
    def unit_price(self) -> Decimal:
        return self.product.price


def _quantities(lines: Iterable[StockLine]) -> Dict[str, int]:
    totals: Dict[str, int] = defaultdict(int)
    for line in lines:
        totals[line.product_id] += line.quantity
    return dict(totals)


class InventoryLedger:
    """Atomic reserve / release / reconcile over product stock."""

    def __init__(self, product_repository: IProductRepository) -> None:
        self._product_repo = product_repository

    # ------------------------------------------------------------------
    # Reserve
    # ------------------------------------------------------------------

    @transaction.atomic
    def check_and_reserve(self, lines: Sequence[StockLine]) -> List[Reservation]:
        """Reserve stock for every line, or for none of them.

        Raises:
            ProductNotFound: a line references a missing product.
            InsufficientStock: a line asks for more than is available.
        """
        return self._apply(old_lines=(), new_lines=lines, operation="reserve")

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    @transaction.atomic
    def release(self, lines: Sequence[StockLine]) -> None:
        """Give stock back for every line.

        Unknown or deleted products are logged and skipped.
        """
        returned = _quantities(lines)
        products = self._product_repo.lock_many(returned)

        for product_id, quantity in returned.items():
            product = products.get(product_id)
            if product is None:
                logger.warning(
                    "inventory.release_skipped",
                    product_id=product_id,
                    quantity=quantity,
                )
                continue
            product.stock += quantity
            product.save(update_fields=["stock"])
            logger.info(
                "inventory.stock_released",
                product_id=product_id,
                quantity=quantity,
                restored_stock=product.stock,
            )

    # ------------------------------------------------------------------
    # Reconcile (order edit)
    # ------------------------------------------------------------------

    @transaction.atomic
    def reconcile(
        self,
        old_lines: Sequence[StockLine],
        new_lines: Sequence[StockLine],
    ) -> List[Reservation]:
        """Swap an existing reservation for a new one.

        A product's headroom is its current stock plus the quantity the old
        reservation holds for it.  Products dropped from the new lines are
        fully released.

        Raises:
            ProductNotFound: a new line references a missing product.
            InsufficientStock: a new line exceeds its headroom.
        """
        return self._apply(old_lines=old_lines, new_lines=new_lines, operation="reconcile")

    # ------------------------------------------------------------------
    # Catalog adjustment
    # ------------------------------------------------------------------

    @transaction.atomic
    def set_stock(self, product_id: str, quantity: int) -> Product:
        """Overwrite a product's stock counter (catalog restock / correction).

        Raises:
            InvalidInput: ``quantity`` is negative.
            ProductNotFound: the product is missing.
        """
        if quantity < 0:
            raise InvalidInput("Stock must be a non-negative integer.")
        product = self._product_repo.lock_many([product_id]).get(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        previous = product.stock
        product.stock = quantity
        product.save(update_fields=["stock"])
        logger.info(
            "inventory.stock_set",
            product_id=product_id,
            previous_stock=previous,
            stock=quantity,
        )
        return product

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply(
        self,
        old_lines: Sequence[StockLine],
        new_lines: Sequence[StockLine],
        operation: str,
    ) -> List[Reservation]:
        held = _quantities(old_lines)
        requested = _quantities(new_lines)
        products = self._product_repo.lock_many(set(held) | set(requested))

        # Headroom per product: what is on the shelf plus what we already hold.
        headroom = {
            product_id: product.stock + held.get(product_id, 0)
            for product_id, product in products.items()
        }

        reservations: List[Reservation] = []
        for line in new_lines:
            product = products.get(line.product_id)
            if product is None:
                logger.warning(
                    "inventory.product_not_found",
                    operation=operation,
                    product_id=line.product_id,
                )
                raise ProductNotFound(line.product_id)
            available = headroom[line.product_id]
            if line.quantity > available:
                logger.warning(
                    "inventory.insufficient_stock",
                    operation=operation,
                    product_id=line.product_id,
                    requested=line.quantity,
                    available=available,
                )
                raise InsufficientStock(
                    product_id=product.id,
                    product_name=product.name,
                    requested=line.quantity,
                    available=available,
                )
            headroom[line.product_id] = available - line.quantity
            reservations.append(Reservation(product=product, quantity=line.quantity))

        for product_id, product in products.items():
            delta = held.get(product_id, 0) - requested.get(product_id, 0)
            if delta == 0:
                continue
            product.stock += delta
            product.save(update_fields=["stock"])
            logger.info(
                "inventory.stock_adjusted",
                operation=operation,
                product_id=product_id,
                delta=delta,
                remaining=product.stock,
            )

        for product_id in sorted(set(held) - set(products)):
            logger.warning(
                "inventory.release_skipped",
                operation=operation,
                product_id=product_id,
                quantity=held[product_id],
            )

        return reservations
