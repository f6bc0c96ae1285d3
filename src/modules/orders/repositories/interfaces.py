"""Order and OrderItem repository interfaces.

The order core depends exclusively on these contracts.  Every method
ending in ``_for_update`` acquires a row-level lock and is only meaningful
inside the caller's transaction.
"""

from __future__ import annotations

from abc import abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem


class IOrderRepository(IRepository["Order"]):
    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Insert an order header and all its line snapshots.

        ``data`` must include ``user_id``, ``total_amount`` and ``items``
        (list of dicts with ``product_id``, ``quantity``, ``price``).
        """

    @abstractmethod
    def get_for_update(self, id: UUID) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def save_fields(self, order: Order, fields: List[str]) -> Order:
        """Persist only *fields* of an already locked order."""

    @abstractmethod
    def get_owner(self, user_id: int) -> Optional[Any]:
        """Return the user that would own a new order, ``None`` if unknown."""


class IOrderItemRepository(IRepository["OrderItem"]):
    @abstractmethod
    def get_for_update(self, id: UUID) -> Optional[OrderItem]:
        """Retrieve an order item with a row-level lock."""

    @abstractmethod
    def create(
        self, order_id: UUID, product_id: UUID, quantity: int, price: Decimal
    ) -> OrderItem:
        """Insert a new line snapshot."""

    @abstractmethod
    def save_fields(self, item: OrderItem, fields: List[str]) -> OrderItem:
        """Persist only *fields* of an already locked item."""

    @abstractmethod
    def get_by_order_and_product(
        self, order_id: UUID, product_id: UUID
    ) -> Optional[OrderItem]:
        """Return the line for (order, product), if one exists."""

    @abstractmethod
    def list_for_order(self, order_id: UUID, for_update: bool = False) -> List[OrderItem]:
        """Return every line of an order, optionally locking the rows."""

    @abstractmethod
    def product_ids_for_order(self, order_id: UUID) -> List[UUID]:
        """Return the product ids referenced by an order's lines."""

    @abstractmethod
    def delete_for_order(self, order_id: UUID) -> int:
        """Delete all lines of an order, returning how many were removed."""

    @abstractmethod
    def sales_summary(self, product_id: UUID) -> Dict[str, Any]:
        """Aggregate ``total_sold``, ``total_revenue`` and ``line_count``
        over every historical line of a product."""

