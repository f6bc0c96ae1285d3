"""Tests for the shared transaction helpers of the order core."""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace
from uuid import UUID

import pytest
from django.db import DatabaseError, OperationalError, transaction

from modules.orders.constants import OrderStatus
from modules.orders.exceptions import (
    InsufficientStock,
    OrderNotModifiable,
    TransactionFailed,
)
from modules.orders.transactions import (
    atomic_operation,
    ensure_order_modifiable,
    is_retryable,
    lock_products,
)
from modules.products.models import Product

pytestmark = pytest.mark.unit


class _Flaky:
    """Raises the queued errors one per call, then returns ``"done"``."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "done"


@pytest.fixture()
def fast_retries(settings):
    settings.ORDER_TRANSACTION_MAX_ATTEMPTS = 3
    settings.ORDER_TRANSACTION_BACKOFF = 0


class TestIsRetryable:
    @pytest.mark.parametrize(
        "message",
        [
            "deadlock detected",
            "could not serialize access due to concurrent update",
            "Lock wait timeout exceeded; try restarting transaction",
            "database is locked",
        ],
    )
    def test_transient_messages(self, message):
        assert is_retryable(OperationalError(message))

    def test_postgres_sqlstate_on_cause(self):
        exc = OperationalError("serialization failure")
        exc.__cause__ = SimpleNamespace(sqlstate="40001", args=())
        assert is_retryable(exc)

    def test_mysql_errno(self):
        exc = OperationalError(1213, "Deadlock found when trying to get lock")
        assert is_retryable(exc)

    def test_other_errors_are_not_retryable(self):
        assert not is_retryable(OperationalError("no such table: products"))
        assert not is_retryable(DatabaseError(1062, "Duplicate entry"))


@pytest.mark.django_db(transaction=True)
class TestAtomicOperationRetries:
    def test_retries_transient_failures(self, fast_retries):
        flaky = _Flaky(OperationalError("deadlock detected"), OperationalError("deadlock detected"))
        assert atomic_operation("test.op")(flaky)() == "done"
        assert flaky.calls == 3

    def test_gives_up_after_max_attempts(self, fast_retries):
        flaky = _Flaky(*[OperationalError("deadlock detected")] * 5)
        with pytest.raises(TransactionFailed):
            atomic_operation("test.op")(flaky)()
        assert flaky.calls == 3

    def test_non_idempotent_operation_is_not_retried(self, fast_retries):
        flaky = _Flaky(OperationalError("deadlock detected"))
        with pytest.raises(TransactionFailed):
            atomic_operation("test.create", retry=False)(flaky)()
        assert flaky.calls == 1

    def test_non_transient_error_is_not_retried(self, fast_retries):
        flaky = _Flaky(OperationalError("disk I/O error"))
        with pytest.raises(TransactionFailed) as exc_info:
            atomic_operation("test.op")(flaky)()
        assert flaky.calls == 1
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_domain_errors_are_never_retried(self, fast_retries):
        flaky = _Flaky(InsufficientStock())
        with pytest.raises(InsufficientStock):
            atomic_operation("test.op")(flaky)()
        assert flaky.calls == 1

    def test_nested_call_does_not_retry(self, fast_retries):
        flaky = _Flaky(OperationalError("deadlock detected"))
        with pytest.raises(TransactionFailed), transaction.atomic():
            atomic_operation("test.op")(flaky)()
        assert flaky.calls == 1

    def test_failed_attempt_rolls_back_its_writes(self, fast_retries):
        product = Product.objects.create(name="Widget", price=Decimal("5.00"), stock_quantity=10)
        attempts = []

        @atomic_operation("test.op")
        def decrement():
            Product.objects.filter(id=product.id).update(stock_quantity=9 - len(attempts))
            attempts.append(1)
            if len(attempts) == 1:
                raise OperationalError("deadlock detected")

        decrement()
        product.refresh_from_db()
        assert product.stock_quantity == 8
        assert len(attempts) == 2


class TestAtomicOperationRollback:
    def test_domain_error_rolls_back_writes(self):
        product = Product.objects.create(name="Widget", price=Decimal("5.00"), stock_quantity=10)

        @atomic_operation("test.op")
        def reserve_then_fail():
            Product.objects.filter(id=product.id).update(stock_quantity=0)
            raise InsufficientStock()

        with pytest.raises(InsufficientStock):
            reserve_then_fail()
        product.refresh_from_db()
        assert product.stock_quantity == 10

    def test_preserves_function_metadata(self):
        @atomic_operation("test.op")
        def documented():
            """Docstring."""

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Docstring."


class _RecordingRepository:
    def __init__(self, known):
        self.known = known
        self.locked = []

    def get_for_update(self, product_id):
        self.locked.append(product_id)
        return self.known.get(product_id)


class TestLockProducts:
    def test_locks_in_ascending_id_order_once_each(self):
        ids = [
            UUID("00000000-0000-7000-8000-000000000003"),
            UUID("00000000-0000-7000-8000-000000000001"),
            UUID("00000000-0000-7000-8000-000000000002"),
            UUID("00000000-0000-7000-8000-000000000001"),
        ]
        repo = _RecordingRepository({ids[0]: "c", ids[1]: "a"})

        locked = lock_products(repo, ids)

        assert repo.locked == sorted(set(ids), key=str)
        assert locked == {ids[1]: "a", ids[2]: None, ids[0]: "c"}


class TestEnsureOrderModifiable:
    @pytest.mark.parametrize("status", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
    def test_rejects_locked_orders(self, status):
        with pytest.raises(OrderNotModifiable):
            ensure_order_modifiable(SimpleNamespace(is_locked=True, status=status))

    def test_accepts_open_orders(self):
        ensure_order_modifiable(SimpleNamespace(is_locked=False))
