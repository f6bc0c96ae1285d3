"""Order service layer (Use Cases).

Orchestrates the stock-consistency core: order creation, status updates,
cancellation, deletion, and line-item add/update/remove.  Every mutating
method is one ``atomic_operation``: the service defines the unit of work
and any failure rolls back all stock, total and line writes together.

Rows are always locked in the same order, products (sorted by id) before
the order before the order item, so concurrent operations on the same
records serialize instead of deadlocking.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.db import IntegrityError, models

from modules.orders.constants import OrderStatus
from modules.orders.exceptions import (
    DuplicateOrderItem,
    InsufficientStock,
    InvalidOrderStatus,
    InvalidQuantity,
    NoOrderItems,
    OrderAlreadyCancelled,
    OrderItemNotFound,
    OrderNotCancellable,
    OrderNotFound,
    UserNotFound,
)
from modules.orders.transactions import (
    atomic_operation,
    ensure_order_modifiable,
    lock_products,
)
from modules.products.exceptions import ProductNotFound

if TYPE_CHECKING:
    from modules.orders.dtos import AddOrderItemDTO, CreateOrderDTO
    from modules.orders.models import Order, OrderItem
    from modules.orders.repositories.interfaces import (
        IOrderItemRepository,
        IOrderRepository,
    )
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


def _insufficient_stock(product: Product) -> InsufficientStock:
    return InsufficientStock(
        f"Insufficient stock for product {product.name}. "
        f"Available: {product.stock_quantity}."
    )


def _missing_product(product_id: UUID) -> ProductNotFound:
    return ProductNotFound(f"Product with id {product_id} not found.")


class OrderService:
    """Application service for order-level use cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        item_repository: IOrderItemRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._order_repo = order_repository
        self._item_repo = item_repository
        self._product_repo = product_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @atomic_operation("order.create", retry=False)
    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Create a pending order, reserving stock for every line.

        Steps:
        1. Validate the owner exists.
        2. For each line (sorted by product id):
           - Lock the product row (SELECT FOR UPDATE).
           - Validate the product exists and its stock covers the quantity.
           - Snapshot the current price and deduct stock.
        3. Persist the order header and all line snapshots.

        Creation is not idempotent and is therefore never retried.

        Raises:
            UserNotFound: the owner does not exist.
            ProductNotFound: a product does not exist.
            InsufficientStock: a product's stock does not cover its line.
        """
        log = logger.bind(user_id=dto.user_id)
        log.info("order.creation_started", line_count=len(dto.items))

        if not self._order_repo.get_owner(dto.user_id):
            raise UserNotFound(f"User with id {dto.user_id} not found.")

        total = Decimal("0.00")
        lines: List[Dict[str, Any]] = []
        for line in sorted(dto.items, key=lambda i: str(i.product_id)):
            product = self._product_repo.get_for_update(line.product_id)
            if not product:
                raise _missing_product(line.product_id)
            if product.stock_quantity < line.quantity:
                raise _insufficient_stock(product)

            product.stock_quantity -= line.quantity
            self._product_repo.save_stock(product)
            log.info(
                "order.stock_reserved",
                product_id=str(product.id),
                quantity=line.quantity,
                remaining=product.stock_quantity,
            )

            total += product.price * line.quantity
            lines.append(
                {
                    "product_id": product.id,
                    "quantity": line.quantity,
                    "price": product.price,
                }
            )

        order = self._order_repo.create(
            {"user_id": dto.user_id, "total_amount": total, "items": lines}
        )
        log.info("order.created", order_id=str(order.id), total_amount=str(total))
        return self._order_repo.get_by_id(order.id) or order

    def update_status(self, order_id: UUID, new_status: str) -> Order:
        """Set an order's status.

        Any of the five statuses may be set from any other (re-setting the
        current one included).  The value is validated before the
        transaction opens.

        Raises:
            InvalidOrderStatus: *new_status* is not a known status.
            OrderNotFound: the order does not exist.
        """
        if new_status not in OrderStatus.values:
            raise InvalidOrderStatus(
                f"Invalid status. Valid statuses: {', '.join(OrderStatus.values)}.",
                attr="status",
            )
        return self._set_status(order_id, new_status)

    @atomic_operation("order.update_status")
    def _set_status(self, order_id: UUID, new_status: str) -> Order:
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound()

        old_status = order.status
        order.status = new_status
        self._order_repo.save_fields(order, ["status"])
        logger.info(
            "order.status_updated",
            order_id=str(order_id),
            old_status=old_status,
            new_status=new_status,
        )
        return self._order_repo.get_by_id(order_id) or order

    @atomic_operation("order.cancel")
    def cancel_order(self, order_id: UUID) -> Order:
        """Cancel an order and restore the stock of every line.

        The products referenced by the order are locked before the order
        itself; lines are re-read under the order lock so a line added
        concurrently is restored too.  Lines whose product no longer exists
        are skipped.

        Raises:
            OrderNotFound: the order does not exist.
            OrderAlreadyCancelled: the order is already cancelled.
            OrderNotCancellable: the order has been delivered.
        """
        log = logger.bind(order_id=str(order_id))

        products = lock_products(
            self._product_repo, self._item_repo.product_ids_for_order(order_id)
        )
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound()
        if order.status == OrderStatus.CANCELLED:
            raise OrderAlreadyCancelled()
        if order.status == OrderStatus.DELIVERED:
            raise OrderNotCancellable()

        items = self._item_repo.list_for_order(order_id, for_update=True)
        late = {item.product_id for item in items} - set(products)
        if late:
            products.update(lock_products(self._product_repo, late))

        restored = 0
        for item in items:
            product = products.get(item.product_id)
            if not product:
                log.warning("order.stock_release_skipped", product_id=str(item.product_id))
                continue
            product.stock_quantity += item.quantity
            self._product_repo.save_stock(product)
            restored += item.quantity
            log.info(
                "order.stock_released",
                product_id=str(product.id),
                quantity=item.quantity,
                restored_stock=product.stock_quantity,
            )

        order.status = OrderStatus.CANCELLED
        self._order_repo.save_fields(order, ["status"])
        log.info("order.cancelled", restored_quantity=restored)
        return self._order_repo.get_by_id(order_id) or order

    @atomic_operation("order.delete")
    def delete_order(self, order_id: UUID) -> None:
        """Hard-delete an order and all its lines.

        Stock is not restored: cancellation is the operation that returns
        reserved stock to the catalog.

        Raises:
            OrderNotFound: the order does not exist.
        """
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound()
        removed = self._item_repo.delete_for_order(order_id)
        self._order_repo.delete(order)
        logger.info("order.deleted", order_id=str(order_id), removed_items=removed)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: UUID) -> Order:
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound()
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        """Return orders newest first, optionally filtered."""
        return self._order_repo.list(filters)


class OrderItemService:
    """Application service for line-item use cases on existing orders."""

    def __init__(
        self,
        order_repository: IOrderRepository,
        item_repository: IOrderItemRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._order_repo = order_repository
        self._item_repo = item_repository
        self._product_repo = product_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @atomic_operation("order_item.add")
    def add_item(self, order_id: UUID, dto: AddOrderItemDTO) -> OrderItem:
        """Add a new line to an order, reserving stock for it.

        Preconditions are checked in this order: the order exists, it is
        neither delivered nor cancelled, the product exists, its stock
        covers the quantity, and the order has no line for the product yet.

        Raises:
            OrderNotFound, OrderNotModifiable, ProductNotFound,
            InsufficientStock, DuplicateOrderItem
        """
        log = logger.bind(order_id=str(order_id), product_id=str(dto.product_id))

        product = self._product_repo.get_for_update(dto.product_id)
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound()
        ensure_order_modifiable(order)
        if not product:
            raise _missing_product(dto.product_id)
        if product.stock_quantity < dto.quantity:
            raise _insufficient_stock(product)
        if self._item_repo.get_by_order_and_product(order_id, dto.product_id):
            raise DuplicateOrderItem()

        try:
            item = self._item_repo.create(
                order_id=order.id,
                product_id=product.id,
                quantity=dto.quantity,
                price=product.price,
            )
        except IntegrityError as exc:
            raise DuplicateOrderItem() from exc

        product.stock_quantity -= dto.quantity
        self._product_repo.save_stock(product)
        order.total_amount += item.line_total
        self._order_repo.save_fields(order, ["total_amount"])

        log.info(
            "order_item.added",
            item_id=str(item.id),
            quantity=dto.quantity,
            remaining=product.stock_quantity,
            total_amount=str(order.total_amount),
        )
        return self._item_repo.get_by_id(item.id) or item

    def update_quantity(self, item_id: UUID, quantity: int) -> OrderItem:
        """Change a line's quantity, moving stock and total by the delta.

        Raises:
            InvalidQuantity: *quantity* is lower than 1.
            OrderItemNotFound, OrderNotFound, OrderNotModifiable,
            ProductNotFound, InsufficientStock
        """
        if quantity < 1:
            raise InvalidQuantity(attr="quantity")
        return self._apply_quantity(item_id, quantity)

    @atomic_operation("order_item.update_quantity")
    def _apply_quantity(self, item_id: UUID, quantity: int) -> OrderItem:
        current = self._item_repo.get_by_id(item_id)
        if not current:
            raise OrderItemNotFound()

        product = self._product_repo.get_for_update(current.product_id)
        order = self._order_repo.get_for_update(current.order_id)
        item = self._item_repo.get_for_update(item_id)
        if not item:
            raise OrderItemNotFound()
        if not order:
            raise OrderNotFound()
        ensure_order_modifiable(order)
        if not product:
            raise _missing_product(item.product_id)

        delta = quantity - item.quantity
        if delta > 0 and product.stock_quantity < delta:
            raise _insufficient_stock(product)

        product.stock_quantity -= delta
        self._product_repo.save_stock(product)
        order.total_amount += item.price * delta
        self._order_repo.save_fields(order, ["total_amount"])
        item.quantity = quantity
        self._item_repo.save_fields(item, ["quantity"])

        logger.info(
            "order_item.stock_adjusted",
            item_id=str(item_id),
            product_id=str(product.id),
            delta=delta,
            remaining=product.stock_quantity,
            total_amount=str(order.total_amount),
        )
        return self._item_repo.get_by_id(item_id) or item

    @atomic_operation("order_item.remove")
    def remove_item(self, item_id: UUID) -> None:
        """Delete a line, restoring its stock and subtracting its total.

        A line whose product no longer exists is still removable; only the
        stock restoration is skipped.

        Raises:
            OrderItemNotFound, OrderNotFound, OrderNotModifiable
        """
        current = self._item_repo.get_by_id(item_id)
        if not current:
            raise OrderItemNotFound()

        product = self._product_repo.get_for_update(current.product_id)
        order = self._order_repo.get_for_update(current.order_id)
        item = self._item_repo.get_for_update(item_id)
        if not item:
            raise OrderItemNotFound()
        if not order:
            raise OrderNotFound()
        ensure_order_modifiable(order)

        log = logger.bind(item_id=str(item_id), order_id=str(order.id))
        if product:
            product.stock_quantity += item.quantity
            self._product_repo.save_stock(product)
            log.info(
                "order_item.stock_adjusted",
                product_id=str(product.id),
                delta=-item.quantity,
                remaining=product.stock_quantity,
            )
        else:
            log.warning("order_item.stock_release_skipped", product_id=str(item.product_id))

        order.total_amount -= item.line_total
        self._order_repo.save_fields(order, ["total_amount"])
        self._item_repo.delete(item)
        log.info("order_item.removed", total_amount=str(order.total_amount))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_item(self, item_id: UUID) -> OrderItem:
        item = self._item_repo.get_by_id(item_id)
        if not item:
            raise OrderItemNotFound()
        return item

    def list_items(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        return self._item_repo.list(filters)

    def items_for_order(self, order_id: UUID) -> Dict[str, Any]:
        """Return every line of an order with a quantity/amount summary.

        Raises:
            NoOrderItems: the order has no lines (or does not exist).
        """
        items = list(self._item_repo.list({"order_id": order_id}))
        if not items:
            raise NoOrderItems()
        return {
            "items": items,
            "summary": {
                "total_items": len(items),
                "total_quantity": sum(item.quantity for item in items),
                "total_amount": sum(
                    (item.line_total for item in items), Decimal("0.00")
                ),
            },
        }

    def items_for_product(self, product_id: UUID) -> Dict[str, Any]:
        """Return the lines of a product and its all-time sales summary."""
        stats = self._item_repo.sales_summary(product_id)
        return {
            "items": self._item_repo.list({"product_id": product_id}),
            "summary": {
                "total_quantity_sold": stats["total_sold"],
                "total_revenue": stats["total_revenue"],
                "total_orders": stats["line_count"],
            },
        }
