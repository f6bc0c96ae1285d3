from decimal import Decimal
from uuid import uuid4

import pytest
from django.db import IntegrityError, transaction
from django.db.models.deletion import ProtectedError

from modules.orders.constants import LOCKED_STATES, OrderStatus
from modules.orders.models import Order, OrderItem

pytestmark = pytest.mark.unit


@pytest.fixture()
def order(user):
    return Order.objects.create(user=user, total_amount=Decimal("15.00"))


class TestOrderModel:
    def test_defaults_to_pending(self, order):
        assert order.status == OrderStatus.PENDING

    @pytest.mark.parametrize("status", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
    def test_terminal_states_are_locked(self, order, status):
        order.status = status
        assert order.is_locked

    @pytest.mark.parametrize(
        "status", [OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.SHIPPED]
    )
    def test_open_states_are_not_locked(self, order, status):
        order.status = status
        assert not order.is_locked

    def test_locked_states_constant(self):
        assert LOCKED_STATES == {"delivered", "cancelled"}

    def test_newest_first_ordering(self, user):
        first = Order.objects.create(user=user)
        second = Order.objects.create(user=user)
        assert list(Order.objects.filter(id__in=[first.id, second.id])) == [second, first]

    def test_db_rejects_negative_total(self, order):
        with pytest.raises(IntegrityError), transaction.atomic():
            Order.objects.filter(id=order.id).update(total_amount=Decimal("-1.00"))

    def test_owner_cannot_be_deleted_with_orders(self, order, user):
        with pytest.raises(ProtectedError):
            user.delete()


class TestOrderItemModel:
    def test_line_total(self, order):
        item = OrderItem(order=order, product_id=uuid4(), quantity=3, price=Decimal("5.00"))
        assert item.line_total == Decimal("15.00")

    def test_one_line_per_product(self, order):
        product_id = uuid4()
        OrderItem.objects.create(order=order, product_id=product_id, quantity=1, price=Decimal("1.00"))
        with pytest.raises(IntegrityError), transaction.atomic():
            OrderItem.objects.create(
                order=order, product_id=product_id, quantity=2, price=Decimal("1.00")
            )

    def test_db_rejects_zero_quantity(self, order):
        with pytest.raises(IntegrityError), transaction.atomic():
            OrderItem.objects.create(
                order=order, product_id=uuid4(), quantity=0, price=Decimal("1.00")
            )

    def test_deleting_order_cascades(self, order):
        OrderItem.objects.create(order=order, product_id=uuid4(), quantity=1, price=Decimal("1.00"))
        order.delete()
        assert not OrderItem.objects.exists()
