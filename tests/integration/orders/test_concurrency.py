"""Stock concurrency integration tests.

Proves that ``SELECT FOR UPDATE`` in the order services serializes
concurrent stock reservations on back ends with row-level locking.

Uses ``TransactionTestCase`` so each thread can see committed data and
row-level locking behaves realistically.  Skipped on SQLite.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import connections
from django.test import TransactionTestCase, skipUnlessDBFeature

from modules.orders.dtos import AddOrderItemDTO, CreateOrderDTO, OrderLineDTO
from modules.orders.exceptions import InsufficientStock
from modules.orders.models import OrderItem
from modules.orders.repositories.django_repository import (
    OrderDjangoRepository,
    OrderItemDjangoRepository,
)
from modules.orders.services import OrderItemService, OrderService
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository

logger = logging.getLogger(__name__)

INITIAL_STOCK = 5
NUM_WORKERS = 10


def _repositories():
    return OrderDjangoRepository(), OrderItemDjangoRepository(), ProductDjangoRepository()


@skipUnlessDBFeature("has_select_for_update")
class TestStockConcurrency(TransactionTestCase):
    """Prove atomic stock reservation under concurrent load."""

    def setUp(self):
        self.user = get_user_model().objects.create_user(username="concurrency")
        self.product = Product.objects.create(
            name="Gamer PC",
            price=Decimal("2999.99"),
            stock_quantity=INITIAL_STOCK,
        )

    def _run(self, worker, count=NUM_WORKERS):
        results = []
        with ThreadPoolExecutor(max_workers=count) as pool:
            futures = [pool.submit(worker, i) for i in range(count)]
            for future in as_completed(futures):
                results.append(future.result())
        return results

    def _create_order_in_thread(self, thread_id: int) -> str:
        try:
            OrderService(*_repositories()).create_order(
                CreateOrderDTO(
                    user_id=self.user.id,
                    items=[OrderLineDTO(product_id=self.product.id, quantity=1)],
                )
            )
            return "success"
        except InsufficientStock:
            logger.warning("Thread %d: InsufficientStock (expected)", thread_id)
            return "insufficient"
        finally:
            connections.close_all()

    def test_concurrent_orders_exhaust_stock(self):
        """10 threads buy 1 unit from stock=5: exactly 5 succeed."""
        results = self._run(self._create_order_in_thread)

        self.assertEqual(results.count("success"), INITIAL_STOCK)
        self.assertEqual(results.count("insufficient"), NUM_WORKERS - INITIAL_STOCK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 0)

    def test_concurrent_add_item_never_oversells(self):
        """Two adds whose combined quantity exceeds stock: one wins."""
        orders = [
            OrderService(*_repositories()).create_order(
                CreateOrderDTO(
                    user_id=self.user.id,
                    items=[OrderLineDTO(product_id=filler.id, quantity=1)],
                )
            )
            for filler in (
                Product.objects.create(name=f"Filler {i}", price=Decimal("1.00"), stock_quantity=1)
                for i in range(2)
            )
        ]

        def add(index: int) -> str:
            try:
                OrderItemService(*_repositories()).add_item(
                    orders[index].id,
                    AddOrderItemDTO(product_id=self.product.id, quantity=3),
                )
                return "success"
            except InsufficientStock:
                return "insufficient"
            finally:
                connections.close_all()

        results = self._run(add, count=2)

        self.assertEqual(sorted(results), ["insufficient", "success"])
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, INITIAL_STOCK - 3)
        self.assertEqual(OrderItem.objects.filter(product_id=self.product.id).count(), 1)
