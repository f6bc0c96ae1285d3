"""Django ORM implementation of the Product repository.

Look-ups follow the Null Object pattern: a missing or soft-deleted product
yields ``None`` and the service decides which domain error to raise.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import models

from modules.products.models import Category, Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

# Columns a catalog edit may write; stock moves only through save_stock.
DETAIL_FIELDS = ["name", "description", "price"]


class ProductDjangoRepository(IProductRepository):
    def get_by_id(self, id: Any) -> Optional[Product]:
        try:
            return (
                Product.objects.alive()
                .prefetch_related("categories")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: UUID) -> Optional[Product]:
        try:
            return Product.objects.alive().select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_many(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        ids = set(ids)
        if not ids:
            return {}
        return {p.id: p for p in Product.objects.alive().filter(id__in=ids)}

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        """List live products with optional Django ORM look-ups.

        Examples of valid filters::

            {"name__icontains": "widget"}
            {"categories__id": category_id}
        """
        queryset = Product.objects.alive().prefetch_related("categories")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def save(self, entity: Product) -> Product:
        entity.save()
        logger.info("product.saved", product_id=str(entity.id))
        return entity

    def save_details(self, product: Product) -> Product:
        product.save(update_fields=DETAIL_FIELDS)
        logger.info("product.saved", product_id=str(product.id))
        return product

    def save_stock(self, product: Product) -> Product:
        product.save(update_fields=["stock_quantity"])
        return product

    def delete(self, entity: Product) -> None:
        entity.delete()
        logger.info("product.soft_deleted", product_id=str(entity.id))

    def get_categories(self, ids: Iterable[UUID]) -> List[Category]:
        return list(Category.objects.filter(id__in=set(ids)))
