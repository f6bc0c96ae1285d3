"""Order and order-item API views.

Exposes ``OrderService`` and ``OrderItemService`` via HTTP using DRF
ViewSets.  Views never catch domain exceptions: they propagate to
``modules.core.exceptions.api_exception_handler``, which maps their
category to a status code and renders the standard error body.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.identifiers import parse_int_id, parse_uuid
from modules.core.pagination import StandardResultsSetPagination
from modules.orders.dtos import AddOrderItemDTO, CreateOrderDTO, OrderLineDTO
from modules.orders.filters import OrderFilter, OrderItemFilter
from modules.orders.models import Order, OrderItem
from modules.orders.repositories.django_repository import (
    OrderDjangoRepository,
    OrderItemDjangoRepository,
)
from modules.orders.serializers import (
    AddOrderItemSerializer,
    CreateOrderSerializer,
    OrderItemDetailSerializer,
    OrderItemSerializer,
    OrderItemsSummarySerializer,
    OrderListSerializer,
    OrderSerializer,
    ProductSalesSummarySerializer,
    UpdateOrderStatusSerializer,
    UpdateQuantitySerializer,
)
from modules.orders.services import OrderItemService, OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.services import ProductService


class OrderPagination(StandardResultsSetPagination):
    results_label = "orders"
    total_label = "total_orders"


class OrderItemPagination(StandardResultsSetPagination):
    results_label = "order_items"
    total_label = "total_items"


class _OrderServicesMixin:
    """Wires the order services with their Django repositories (DIP)."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        order_repo = OrderDjangoRepository()
        item_repo = OrderItemDjangoRepository()
        product_repo = ProductDjangoRepository()
        self._orders = OrderService(order_repo, item_repo, product_repo)
        self._items = OrderItemService(order_repo, item_repo, product_repo)
        self._products = ProductService(repository=product_repo)

    def _serialize_items(
        self, items: Iterable[OrderItem], serializer_class=OrderItemSerializer
    ) -> Any:
        """Serialize lines, resolving their products with one query."""
        items = list(items)
        products = self._products.get_many(item.product_id for item in items)
        return serializer_class(items, many=True, context={"products": products}).data

    def _order_payload(self, order: Order) -> Dict[str, Any]:
        return {
            "order": OrderSerializer(order).data,
            "items": self._serialize_items(order.items.all()),
        }


class OrderViewSet(_OrderServicesMixin, GenericViewSet):
    """ViewSet for Order operations.

    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    serializer_class = OrderListSerializer
    pagination_class = OrderPagination
    filterset_class = OrderFilter
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def get_queryset(self):
        return self._orders.list_orders()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        dto = CreateOrderDTO(
            user_id=data["user_id"],
            items=[
                OrderLineDTO(product_id=item["product_id"], quantity=item["quantity"])
                for item in data["items"]
            ],
        )
        order = self._orders.create_order(dto)
        return Response(self._order_payload(order), status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, user, date range, total range) is handled by
        ``OrderFilter``; results are newest first and paginated.
        """
        return self._paginated(self.filter_queryset(self.get_queryset()))

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        order = self._orders.get_order(parse_uuid(pk, "order"))
        return Response(self._order_payload(order))

    @action(detail=False, methods=["get"], url_path=r"user/(?P<user_id>[^/.]+)")
    def by_user(self, request: Request, user_id: str | None = None) -> Response:
        """GET /api/v1/orders/user/{user_id}/"""
        owner_id = parse_int_id(user_id, "user")
        queryset = self.filter_queryset(self.get_queryset()).filter(user_id=owner_id)
        return self._paginated(queryset)

    def _paginated(self, queryset) -> Response:
        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    # ------------------------------------------------------------------
    # Status / Cancel / Delete
    # ------------------------------------------------------------------

    @action(detail=True, methods=["put", "patch"], url_path="status")
    def update_status(self, request: Request, pk: str | None = None) -> Response:
        """PUT|PATCH /api/v1/orders/{pk}/status/"""
        order_id = parse_uuid(pk, "order")
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = self._orders.update_status(order_id, serializer.validated_data["status"])
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["put", "post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """PUT|POST /api/v1/orders/{pk}/cancel/

        Cancels the order and restores the stock of every line.
        """
        order = self._orders.cancel_order(parse_uuid(pk, "order"))
        return Response(
            {
                "message": "Order cancelled successfully.",
                "order": OrderSerializer(order).data,
            }
        )

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/orders/{pk}/ (stock is not restored)."""
        self._orders.delete_order(parse_uuid(pk, "order"))
        return Response({"message": "Order deleted successfully."})


class OrderItemViewSet(_OrderServicesMixin, GenericViewSet):
    """ViewSet for line items of existing orders."""

    queryset = OrderItem.objects.all()
    serializer_class = OrderItemDetailSerializer
    pagination_class = OrderItemPagination
    filterset_class = OrderItemFilter
    filter_backends = [DjangoFilterBackend]

    def get_queryset(self):
        return self._items.list_items()

    def list(self, request: Request) -> Response:
        """GET /api/v1/order-items/?order_id=&product_id="""
        return self._paginated(self.filter_queryset(self.get_queryset()))

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/order-items/{pk}/"""
        item = self._items.get_item(parse_uuid(pk, "order item"))
        data = self._serialize_items([item], OrderItemDetailSerializer)[0]
        return Response(data)

    @action(detail=True, methods=["put", "patch"])
    def quantity(self, request: Request, pk: str | None = None) -> Response:
        """PUT|PATCH /api/v1/order-items/{pk}/quantity/"""
        item_id = parse_uuid(pk, "order item")
        serializer = UpdateQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = self._items.update_quantity(item_id, serializer.validated_data["quantity"])
        data = self._serialize_items([item], OrderItemDetailSerializer)[0]
        return Response(data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/order-items/{pk}/"""
        self._items.remove_item(parse_uuid(pk, "order item"))
        return Response({"message": "Order item removed successfully."})

    @action(
        detail=False,
        methods=["get", "post"],
        url_path=r"order/(?P<order_id>[^/.]+)",
    )
    def for_order(self, request: Request, order_id: str | None = None) -> Response:
        """GET|POST /api/v1/order-items/order/{order_id}/

        GET lists every line of the order with a summary; POST adds a line.
        """
        parsed_id = parse_uuid(order_id, "order")
        if request.method == "POST":
            return self._add_item(request, parsed_id)

        result = self._items.items_for_order(parsed_id)
        return Response(
            {
                "order_items": self._serialize_items(result["items"]),
                "summary": OrderItemsSummarySerializer(result["summary"]).data,
            }
        )

    def _add_item(self, request: Request, order_id) -> Response:
        serializer = AddOrderItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = self._items.add_item(
            order_id, AddOrderItemDTO(**serializer.validated_data)
        )
        data = self._serialize_items([item], OrderItemDetailSerializer)[0]
        return Response(data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"], url_path=r"product/(?P<product_id>[^/.]+)")
    def for_product(self, request: Request, product_id: str | None = None) -> Response:
        """GET /api/v1/order-items/product/{product_id}/

        Paginated lines of one product plus its all-time sales summary.
        """
        result = self._items.items_for_product(parse_uuid(product_id, "product"))
        page = self.paginate_queryset(result["items"])
        body = {
            "order_items": self._serialize_items(page, OrderItemDetailSerializer),
            "summary": ProductSalesSummarySerializer(result["summary"]).data,
            "pagination": self.paginator.get_pagination_metadata(),
        }
        return Response(body)

    def _paginated(self, queryset) -> Response:
        page = self.paginate_queryset(queryset)
        data = self._serialize_items(page, OrderItemDetailSerializer)
        return self.get_paginated_response(data)
