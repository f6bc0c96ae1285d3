"""Django ORM implementations of the Order and OrderItem repositories.

Writes never open their own transaction: the service method calling them
defines the unit of work (see ``modules.orders.transactions``).  Look-ups
follow the Null Object pattern and return ``None`` for missing or
malformed ids.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import DecimalField, ExpressionWrapper, F, Sum

from modules.orders.models import Order, OrderItem
from modules.orders.repositories.interfaces import (
    IOrderItemRepository,
    IOrderRepository,
)

logger = structlog.get_logger(__name__)

_LINE_TOTAL = ExpressionWrapper(
    F("quantity") * F("price"),
    output_field=DecimalField(max_digits=14, decimal_places=2),
)


class OrderDjangoRepository(IOrderRepository):
    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    def create(self, data: Dict[str, Any]) -> Order:
        order = Order.objects.create(
            user_id=data["user_id"],
            total_amount=data["total_amount"],
        )
        items = [
            OrderItem(
                order=order,
                product_id=line["product_id"],
                quantity=line["quantity"],
                price=line["price"],
            )
            for line in data["items"]
        ]
        OrderItem.objects.bulk_create(items)

        logger.info("order.persisted", order_id=str(order.id), item_count=len(items))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: Any) -> Optional[Order]:
        """Retrieve an order with its owner and items eager-loaded."""
        try:
            return (
                Order.objects.select_related("user")
                .prefetch_related("items")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: UUID) -> Optional[Order]:
        try:
            return Order.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        """List orders newest first.

        Supported filter keys include ``status`` and ``user_id``.
        """
        queryset = Order.objects.select_related("user").order_by("-created_at", "-id")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def get_owner(self, user_id: int) -> Optional[Any]:
        return get_user_model().objects.filter(pk=user_id).first()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def save(self, entity: Order) -> Order:
        entity.save()
        return entity

    def save_fields(self, order: Order, fields: List[str]) -> Order:
        order.save(update_fields=fields)
        return order

    def delete(self, entity: Order) -> None:
        """Hard-delete an order; the database cascades to its items."""
        order_id = str(entity.id)
        entity.delete()
        logger.info("order.hard_deleted", order_id=order_id)


class OrderItemDjangoRepository(IOrderItemRepository):
    def get_by_id(self, id: Any) -> Optional[OrderItem]:
        try:
            return OrderItem.objects.select_related("order").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: UUID) -> Optional[OrderItem]:
        try:
            return OrderItem.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        """List items newest first with their order eager-loaded.

        Supported filter keys include ``order_id`` and ``product_id``.
        """
        queryset = OrderItem.objects.select_related("order").order_by(
            "-created_at", "-id"
        )
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def get_by_order_and_product(
        self, order_id: UUID, product_id: UUID
    ) -> Optional[OrderItem]:
        return OrderItem.objects.filter(order_id=order_id, product_id=product_id).first()

    def list_for_order(self, order_id: UUID, for_update: bool = False) -> List[OrderItem]:
        queryset = OrderItem.objects.filter(order_id=order_id).order_by("product_id")
        if for_update:
            queryset = queryset.select_for_update()
        return list(queryset)

    def product_ids_for_order(self, order_id: UUID) -> List[UUID]:
        return list(
            OrderItem.objects.filter(order_id=order_id).values_list(
                "product_id", flat=True
            )
        )

    def create(
        self, order_id: UUID, product_id: UUID, quantity: int, price: Decimal
    ) -> OrderItem:
        return OrderItem.objects.create(
            order_id=order_id,
            product_id=product_id,
            quantity=quantity,
            price=price,
        )

    def save(self, entity: OrderItem) -> OrderItem:
        entity.save()
        return entity

    def save_fields(self, item: OrderItem, fields: List[str]) -> OrderItem:
        item.save(update_fields=fields)
        return item

    def delete(self, entity: OrderItem) -> None:
        entity.delete()

    def delete_for_order(self, order_id: UUID) -> int:
        deleted, _ = OrderItem.objects.filter(order_id=order_id).delete()
        return deleted

    def sales_summary(self, product_id: UUID) -> Dict[str, Any]:
        totals = OrderItem.objects.filter(product_id=product_id).aggregate(
            total_sold=Sum("quantity"),
            total_revenue=Sum(_LINE_TOTAL),
            line_count=models.Count("id"),
        )
        return {
            "total_sold": totals["total_sold"] or 0,
            "total_revenue": totals["total_revenue"] or Decimal("0.00"),
            "line_count": totals["line_count"],
        }
