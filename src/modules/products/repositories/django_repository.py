"""Django ORM implementation of the Product repository.

Satisfies ``IProductRepository`` using Django's QuerySet API.
Error handling follows the Null Object pattern: methods return ``None``
instead of raising, and the Service Layer decides how to translate a missing
entity into a domain error.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.db import transaction

from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a live product by primary key, or ``None``."""
        return Product.objects.alive().filter(id=id).first()

    def list(self, filters: Optional[Dict[str, Any]] = None):
        """Queryset of live products with optional Django ORM look-ups.

        Examples of valid filters::

            {"owner_id": "65f1c0ffee0000000000abcd"}
            {"name__icontains": "widget"}
        """
        queryset = Product.objects.alive()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def list_for_owner(self, owner_id: str) -> List[Product]:
        return list(Product.objects.alive().filter(owner_id=owner_id))

    @transaction.atomic
    def save(self, entity: Product, update_fields: Optional[List[str]] = None) -> Product:
        """Persist (create or update) a product.

        Pass ``update_fields`` on updates so a stale in-memory ``stock``
        never overwrites a counter the ledger changed meanwhile.
        """
        entity.save(update_fields=update_fields)
        logger.info("product.saved", product_id=str(entity.id))
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Soft-delete a product by ID.

        Returns ``True`` if the product was found and soft-deleted,
        ``False`` if no live product exists with the given ID.
        """
        product = self.get_by_id(id)
        if not product:
            return False
        product.delete()
        logger.info("product.soft_deleted", product_id=str(id))
        return True

    def lock_many(self, ids: Iterable[str]) -> Dict[str, Product]:
        unique_ids = sorted(set(ids))
        if not unique_ids:
            return {}
        products = (
            Product.objects.alive()
            .select_for_update()
            .filter(id__in=unique_ids)
            .order_by("id")
        )
        return {product.id: product for product in products}
