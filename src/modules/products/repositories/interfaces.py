"""Product repository interface.

Besides plain CRUD, exposes the row-locking look-up the order core uses
for every stock movement.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Category, Product


class IProductRepository(IRepository["Product"]):
    @abstractmethod
    def get_for_update(self, id: UUID) -> Optional[Product]:
        """Retrieve a live product with a row-level lock (SELECT FOR UPDATE).

        Returns ``None`` if the product does not exist or is soft-deleted.
        """

    @abstractmethod
    def get_many(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        """Map the live products among *ids* by id (missing ids are absent)."""

    @abstractmethod
    def save_details(self, product: Product) -> Product:
        """Persist the descriptive columns and price, never ``stock_quantity``."""

    @abstractmethod
    def save_stock(self, product: Product) -> Product:
        """Persist only ``stock_quantity`` of an already locked product."""

    @abstractmethod
    def get_categories(self, ids: Iterable[UUID]) -> List[Category]:
        """Return the categories matching *ids*."""
