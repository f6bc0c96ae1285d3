"""Integration tests for the order-item endpoints."""

from __future__ import annotations

from uuid import uuid4

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, OrderLineDTO
from modules.orders.models import Order, OrderItem

pytestmark = pytest.mark.integration

ITEMS_URL = "/api/v1/order-items/"


@pytest.fixture()
def widget(make_product):
    return make_product(name="Widget", price="5.00", stock=10)


@pytest.fixture()
def gadget(make_product):
    return make_product(name="Gadget", price="12.00", stock=4)


@pytest.fixture()
def order(order_service, user, widget):
    return order_service.create_order(
        CreateOrderDTO(user_id=user.id, items=[OrderLineDTO(product_id=widget.id, quantity=3)])
    )


@pytest.fixture()
def line(order):
    return order.items.get()


class TestAddItem:
    def test_returns_201_and_updates_order(self, api_client, order, gadget):
        response = api_client.post(
            f"{ITEMS_URL}order/{order.id}/",
            {"product_id": str(gadget.id), "quantity": 2},
            format="json",
        )

        assert response.status_code == 201
        data = response.json()
        assert data["price"] == "12.00"
        assert data["line_total"] == "24.00"
        assert data["product"]["name"] == "Gadget"
        assert data["order"]["total_amount"] == "39.00"
        gadget.refresh_from_db()
        assert gadget.stock_quantity == 2

    def test_duplicate_is_conflict(self, api_client, order, widget):
        response = api_client.post(
            f"{ITEMS_URL}order/{order.id}/",
            {"product_id": str(widget.id), "quantity": 1},
            format="json",
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["code"] == "duplicate_order_item"

    def test_locked_order_is_conflict(self, api_client, order, gadget):
        Order.objects.filter(id=order.id).update(status=OrderStatus.DELIVERED)
        response = api_client.post(
            f"{ITEMS_URL}order/{order.id}/",
            {"product_id": str(gadget.id), "quantity": 1},
            format="json",
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["detail"] == (
            "Cannot modify delivered or cancelled orders."
        )

    def test_missing_order_is_404(self, api_client, gadget):
        response = api_client.post(
            f"{ITEMS_URL}order/{uuid4()}/",
            {"product_id": str(gadget.id), "quantity": 1},
            format="json",
        )
        assert response.status_code == 404

    def test_zero_quantity_is_validation_error(self, api_client, order, gadget):
        response = api_client.post(
            f"{ITEMS_URL}order/{order.id}/",
            {"product_id": str(gadget.id), "quantity": 0},
            format="json",
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "quantity"


class TestUpdateQuantity:
    def test_updates_quantity_stock_and_total(self, api_client, order, line, widget):
        response = api_client.put(f"{ITEMS_URL}{line.id}/quantity/", {"quantity": 5}, format="json")

        assert response.status_code == 200
        assert response.json()["quantity"] == 5
        order.refresh_from_db()
        widget.refresh_from_db()
        assert order.total_amount == 25
        assert widget.stock_quantity == 5

    def test_insufficient_stock_is_400(self, api_client, line):
        response = api_client.put(f"{ITEMS_URL}{line.id}/quantity/", {"quantity": 50}, format="json")
        assert response.status_code == 400
        assert response.json()["errors"][0]["code"] == "insufficient_stock"

    def test_missing_item_is_404(self, api_client):
        response = api_client.put(f"{ITEMS_URL}{uuid4()}/quantity/", {"quantity": 2}, format="json")
        assert response.status_code == 404
        assert response.json()["errors"][0]["detail"] == "Order item not found."

    def test_malformed_item_id_is_400(self, api_client):
        response = api_client.put(f"{ITEMS_URL}abc/quantity/", {"quantity": 2}, format="json")
        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "order_item_id"


class TestRemoveItem:
    def test_removes_line(self, api_client, order, line, widget):
        response = api_client.delete(f"{ITEMS_URL}{line.id}/")

        assert response.status_code == 200
        assert response.json() == {"message": "Order item removed successfully."}
        assert not OrderItem.objects.filter(id=line.id).exists()
        widget.refresh_from_db()
        assert widget.stock_quantity == 10

    def test_locked_order_is_conflict(self, api_client, order, line):
        Order.objects.filter(id=order.id).update(status=OrderStatus.CANCELLED)
        response = api_client.delete(f"{ITEMS_URL}{line.id}/")
        assert response.status_code == 400


class TestReadItems:
    def test_items_for_order_with_summary(self, api_client, order):
        response = api_client.get(f"{ITEMS_URL}order/{order.id}/")

        assert response.status_code == 200
        data = response.json()
        assert len(data["order_items"]) == 1
        assert data["summary"] == {"total_items": 1, "total_quantity": 3, "total_amount": "15.00"}

    def test_items_for_order_without_lines_is_404(self, api_client):
        response = api_client.get(f"{ITEMS_URL}order/{uuid4()}/")
        assert response.status_code == 404
        assert response.json()["errors"][0]["code"] == "no_order_items"

    def test_items_for_product_with_sales_summary(
        self, api_client, order_service, user, widget, order
    ):
        order_service.create_order(
            CreateOrderDTO(user_id=user.id, items=[OrderLineDTO(product_id=widget.id, quantity=2)])
        )

        response = api_client.get(f"{ITEMS_URL}product/{widget.id}/", {"limit": 1})
        assert response.status_code == 200
        data = response.json()
        assert len(data["order_items"]) == 1
        assert data["summary"]["total_quantity_sold"] == 5
        assert data["summary"]["total_orders"] == 2
        assert data["pagination"]["total_items"] == 2
        assert data["pagination"]["total_pages"] == 2

    def test_list_filters_by_order(self, api_client, order_service, user, widget, order):
        order_service.create_order(
            CreateOrderDTO(user_id=user.id, items=[OrderLineDTO(product_id=widget.id, quantity=1)])
        )
        response = api_client.get(ITEMS_URL, {"order_id": str(order.id)})

        data = response.json()
        assert data["pagination"]["total_items"] == 1
        assert data["order_items"][0]["order"]["id"] == str(order.id)

    def test_retrieve_item(self, api_client, line):
        response = api_client.get(f"{ITEMS_URL}{line.id}/")
        assert response.status_code == 200
        assert response.json()["product"]["name"] == "Widget"

    def test_retrieve_item_with_deleted_product(self, api_client, line, widget):
        widget.delete()
        response = api_client.get(f"{ITEMS_URL}{line.id}/")
        assert response.status_code == 200
        assert response.json()["product"] is None
