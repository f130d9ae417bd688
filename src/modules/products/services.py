"""Product service layer (Use Cases).

Orchestrates catalog management for the Product aggregate, delegating
persistence to the injected ``IProductRepository`` and every stock change
to the ``InventoryLedger``.

Business rules enforced here:
- Only the admin who created a product may update or delete it.
- Stock is never written directly; ``stock`` updates go through the ledger.
- Deletion is a soft delete.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

import structlog
from django.db import transaction

from modules.core.exceptions import Forbidden
from modules.products.exceptions import ProductNotFound
from modules.products.models import Product

if TYPE_CHECKING:
    from modules.core.authentication import Identity
    from modules.inventory.ledger import InventoryLedger
    from modules.products.dtos import CreateProductDTO, UpdateProductDTO
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductService:
    """Application service for Product use-cases.

    Receives an ``IProductRepository`` and an ``InventoryLedger`` via
    constructor injection (DIP).
    """

    def __init__(self, repository: IProductRepository, ledger: InventoryLedger) -> None:
        self._repo = repository
        self._ledger = ledger

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(self, identity: Identity, dto: CreateProductDTO) -> Product:
        product = Product(
            owner_id=identity.id,
            name=dto.name,
            price=dto.price,
            description=dto.description,
            stock=dto.stock,
        )
        product = self._repo.save(product)
        logger.info("product.created", product_id=str(product.id), owner_id=identity.id)
        return product

    @transaction.atomic
    def update_product(self, identity: Identity, id: str, dto: UpdateProductDTO) -> Product:
        """Update an owned product with the supplied fields.

        Raises:
            ProductNotFound: the product does not exist.
            Forbidden: the caller did not create the product.
        """
        product = self._get_owned(identity, id)
        log = logger.bind(product_id=str(id))

        if dto.stock is not None:
            product = self._ledger.set_stock(product.id, dto.stock)

        changed = []
        for field in ("name", "price", "description"):
            value = getattr(dto, field)
            if value is not None:
                setattr(product, field, value)
                changed.append(field)

        if changed:
            product = self._repo.save(product, update_fields=changed)
        log.info("product.updated")
        return product

    @transaction.atomic
    def delete_product(self, identity: Identity, id: str) -> None:
        """Soft-delete an owned product.

        Raises:
            ProductNotFound: the product does not exist.
            Forbidden: the caller did not create the product.
        """
        self._get_owned(identity, id)
        self._repo.delete(id)
        logger.info("product.deleted", product_id=str(id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_products(self):
        return self._repo.list()

    def list_products_for_owner(self, owner_id: str) -> List[Product]:
        return self._repo.list_for_owner(owner_id)

    def get_product(self, id: str) -> Product:
        """Raises ``ProductNotFound`` if the product does not exist."""
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(id)
        return product

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_owned(self, identity: Identity, id: str) -> Product:
        product = self.get_product(id)
        if product.owner_id != identity.id:
            logger.warning(
                "product.ownership_denied",
                product_id=str(id),
                identity_id=identity.id,
            )
            raise Forbidden("Not authorized to modify this product.")
        return product
