"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.

Line items reference products by id only.  Output serializers resolve
product display fields from a ``products`` map in the serializer context
(built by the view with one ``ProductService.get_many`` call); a line
whose product no longer exists renders ``"product": null``.
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem
from modules.products.serializers import ProductSummarySerializer

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class OrderLineSerializer(serializers.Serializer):
    """Validates a single line in an order creation request."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    user_id = serializers.IntegerField(min_value=1)
    items = OrderLineSerializer(many=True, allow_empty=False)


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)


class AddOrderItemSerializer(OrderLineSerializer):
    pass


class UpdateQuantitySerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OwnerSerializer(serializers.ModelSerializer):
    class Meta:
        model = get_user_model()
        fields = ["id", "username", "email"]
        read_only_fields = fields


class OrderSummarySerializer(serializers.ModelSerializer):
    """Order header shown next to an order item."""

    class Meta:
        model = Order
        fields = ["id", "user_id", "status", "total_amount", "created_at"]
        read_only_fields = fields


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for a line with its resolved product."""

    product = serializers.SerializerMethodField()
    line_total = serializers.DecimalField(
        max_digits=14, decimal_places=2, read_only=True
    )

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "order_id",
            "product_id",
            "product",
            "quantity",
            "price",
            "line_total",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_product(self, obj: OrderItem):
        product = self.context.get("products", {}).get(obj.product_id)
        if product is None:
            return None
        return ProductSummarySerializer(product).data


class OrderItemDetailSerializer(OrderItemSerializer):
    """Line with its parent order summary (order-item endpoints)."""

    order = OrderSummarySerializer(read_only=True)

    class Meta(OrderItemSerializer.Meta):
        fields = OrderItemSerializer.Meta.fields + ["order"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for an order header with its owner."""

    user = OwnerSerializer(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "user_id",
            "user",
            "status",
            "total_amount",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Order list row with its owner; items are left out."""

    user = OwnerSerializer(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "user_id",
            "user",
            "status",
            "total_amount",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderItemsSummarySerializer(serializers.Serializer):
    total_items = serializers.IntegerField()
    total_quantity = serializers.IntegerField()
    total_amount = serializers.DecimalField(max_digits=14, decimal_places=2)


class ProductSalesSummarySerializer(serializers.Serializer):
    total_quantity_sold = serializers.IntegerField()
    total_revenue = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_orders = serializers.IntegerField()
