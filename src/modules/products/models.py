"""Catalog models: Product and Category.

Rules implemented:
- Price must be zero or greater (application + DB constraint).
- Stock quantity is never negative (PositiveIntegerField + DB constraint).
- Soft delete via ``deleted_at``; a soft-deleted product is treated as
  missing by the order core.
- Categories and products are linked by an identity-set relation (M2M),
  neither side owns the other.

``stock_quantity`` is moved only by the order services in
``modules.orders.services``, always under a row lock.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel, SoftDeleteModel

logger = structlog.get_logger(__name__)


class Category(BaseModel):
    name = models.CharField(max_length=100, unique=True)
    description = models.CharField(max_length=500, blank=True, default="")

    class Meta:
        db_table = "categories"
        ordering = ["name"]
        verbose_name_plural = "categories"

    def __str__(self) -> str:
        return self.name


class Product(SoftDeleteModel):
    name = models.CharField(max_length=200)
    description = models.CharField(max_length=1000, blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    stock_quantity = models.PositiveIntegerField(default=0)
    categories = models.ManyToManyField(
        Category,
        blank=True,
        related_name="products",
    )

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["name"], name="products_name_idx"),
            models.Index(fields=["price"], name="products_price_idx"),
            models.Index(fields=["stock_quantity"], name="products_stock_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name="products_price_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(stock_quantity__gte=0),
                name="products_stock_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.name:
            self.name = self.name.strip()
        if self.price is not None and self.price < 0:
            raise ValidationError({"price": "Price cannot be negative."})
        if self.stock_quantity is not None and self.stock_quantity < 0:
            raise ValidationError(
                {"stock_quantity": "Stock quantity cannot be negative."}
            )

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
                name=self.name,
                stock_quantity=self.stock_quantity,
            )

    def has_stock_for(self, quantity: int) -> bool:
        return self.stock_quantity >= quantity

    def __str__(self) -> str:
        return f"{self.name} ({self.stock_quantity} in stock)"
