"""Product repository interface.

Extends ``IRepository[Product]`` with the owner look-up used by the
catalog and the row-locking read used by the inventory ledger.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Dict, Iterable, List

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> List[Product]:
        """List live products created by ``owner_id``."""

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Soft-delete a product by ID."""

    @abstractmethod
    def lock_many(self, ids: Iterable[str]) -> Dict[str, Product]:
        """Lock the live products among ``ids`` (SELECT FOR UPDATE).

        Rows are locked in primary-key order so concurrent callers never
        deadlock.  Missing or soft-deleted ids are absent from the result.
        Must be called inside a transaction.
        """
