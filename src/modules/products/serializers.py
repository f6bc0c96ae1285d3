"""Product DRF serializers for API input/output.

Input is validated here, then handed to the service as a Pydantic DTO.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.products.models import Category, Product


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ["id", "name", "description"]
        read_only_fields = fields


class ProductSerializer(serializers.ModelSerializer):
    categories = CategorySerializer(many=True, read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "description",
            "price",
            "stock_quantity",
            "categories",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ProductSummarySerializer(serializers.ModelSerializer):
    """Display fields resolved for order lines."""

    class Meta:
        model = Product
        fields = ["id", "name", "description", "price", "stock_quantity"]
        read_only_fields = fields


class CreateProductSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    description = serializers.CharField(
        max_length=1000, required=False, default="", allow_blank=True
    )
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    stock_quantity = serializers.IntegerField(min_value=0, required=False, default=0)
    category_ids = serializers.ListField(
        child=serializers.UUIDField(), required=False, default=list
    )


class UpdateProductSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False)
    description = serializers.CharField(
        max_length=1000, required=False, allow_blank=True
    )
    price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False
    )
    category_ids = serializers.ListField(
        child=serializers.UUIDField(), required=False
    )

    def validate(self, attrs):
        if "stock_quantity" in self.initial_data:
            raise serializers.ValidationError(
                {"stock_quantity": "Stock is managed by orders and cannot be edited."}
            )
        return attrs
