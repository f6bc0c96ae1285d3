"""Product service layer (Use Cases).

The catalog is a collaborator of the order core: this service creates and
describes products, but never changes ``stock_quantity`` after creation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.db import models, transaction

from modules.products.exceptions import CategoryNotFound, ProductNotFound
from modules.products.models import Category, Product

if TYPE_CHECKING:
    from modules.products.dtos import CreateProductDTO, UpdateProductDTO
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductService:
    def __init__(self, repository: IProductRepository) -> None:
        self._repo = repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(self, dto: CreateProductDTO) -> Product:
        categories = self._resolve_categories(dto.category_ids)
        product = Product(
            name=dto.name,
            price=dto.price,
            description=dto.description,
            stock_quantity=dto.stock_quantity,
        )
        product = self._repo.save(product)
        if categories:
            product.categories.set(categories)
        logger.info("product.created", product_id=str(product.id))
        return product

    @transaction.atomic
    def update_product(self, id: UUID, dto: UpdateProductDTO) -> Product:
        """Update descriptive fields and price.

        Price changes never touch existing order lines: each line keeps the
        price snapshotted when it was added.

        Raises:
            ProductNotFound: the product does not exist.
            CategoryNotFound: a referenced category does not exist.
        """
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")

        for field in ("name", "price", "description"):
            value = getattr(dto, field)
            if value is not None:
                setattr(product, field, value)

        product = self._repo.save_details(product)
        if dto.category_ids is not None:
            product.categories.set(self._resolve_categories(dto.category_ids))
        logger.info("product.updated", product_id=str(id))
        return product

    @transaction.atomic
    def delete_product(self, id: UUID) -> None:
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")
        self._repo.delete(product)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_products(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        return self._repo.list(filters)

    def get_product(self, id: UUID) -> Product:
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")
        return product

    def get_many(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        return self._repo.get_many(ids)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_categories(self, ids: Iterable[UUID]) -> List[Category]:
        wanted = set(ids)
        categories = self._repo.get_categories(wanted)
        missing = wanted - {c.id for c in categories}
        if missing:
            raise CategoryNotFound(
                f"Category {sorted(str(i) for i in missing)[0]} not found."
            )
        return categories
