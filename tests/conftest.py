from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.orders.repositories.django_repository import (
    OrderDjangoRepository,
    OrderItemDjangoRepository,
)
from modules.orders.services import OrderItemService, OrderService
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def user():
    return get_user_model().objects.create_user(
        username="buyer", email="buyer@example.com", password="testpass123"
    )


@pytest.fixture()
def make_product():
    """Factory for catalog products (price 5.00, stock 10 by default)."""

    def _make(name="Widget", price="5.00", stock=10):
        return Product.objects.create(
            name=name, price=Decimal(price), stock_quantity=stock
        )

    return _make


@pytest.fixture()
def product(make_product):
    return make_product()


@pytest.fixture()
def order_service():
    return OrderService(
        order_repository=OrderDjangoRepository(),
        item_repository=OrderItemDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


@pytest.fixture()
def item_service():
    return OrderItemService(
        order_repository=OrderDjangoRepository(),
        item_repository=OrderItemDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )
