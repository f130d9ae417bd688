"""Product model with stock control.

Business rules implemented:
- Price must be zero or greater.
- Stock cannot be negative (field type + DB check constraint).
- Stock is only mutated through ``modules.inventory.ledger.InventoryLedger``.
- Soft delete via ``deleted_at`` (inherited from SoftDeleteModel); the
  ledger treats soft-deleted products as missing.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.identifiers import OBJECT_ID_LENGTH
from modules.core.models import SoftDeleteModel

logger = structlog.get_logger(__name__)


class Product(SoftDeleteModel):
    """Catalog product.

    ``owner_id`` is the identity of the admin who created it; only that
    identity may edit or delete it.  It is an opaque id from the external
    auth service, not a foreign key.
    """

    owner_id = models.CharField(max_length=OBJECT_ID_LENGTH, db_index=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    stock = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name="products_price_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(stock__gte=0),
                name="products_stock_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.price is not None and self.price < 0:
            raise ValidationError({"price": "Price cannot be negative."})
        if self.stock is not None and self.stock < 0:
            raise ValidationError({"stock": "Stock cannot be negative."})

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "product_created",
                product_id=str(self.id),
                owner_id=self.owner_id,
                name=self.name,
            )

    def __str__(self) -> str:
        return self.name
