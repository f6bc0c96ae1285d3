import django_filters

from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem


class OrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(
        field_name="status", choices=OrderStatus.choices
    )
    user_id = django_filters.NumberFilter(field_name="user_id")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    min_total = django_filters.NumberFilter(
        field_name="total_amount", lookup_expr="gte"
    )
    max_total = django_filters.NumberFilter(
        field_name="total_amount", lookup_expr="lte"
    )

    class Meta:
        model = Order
        fields = [
            "status",
            "user_id",
            "start_date",
            "end_date",
            "min_total",
            "max_total",
        ]


class OrderItemFilter(django_filters.FilterSet):
    order_id = django_filters.UUIDFilter(field_name="order_id")
    product_id = django_filters.UUIDFilter(field_name="product_id")

    class Meta:
        model = OrderItem
        fields = ["order_id", "product_id"]
