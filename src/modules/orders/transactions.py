"""Transaction helpers shared by the order and order-item use cases.

Every mutating operation of the order core runs inside ``atomic_operation``:
one ``transaction.atomic()`` block per attempt, so any exception raised
after several writes rolls all of them back before the error leaves the
service.

Lock order (to avoid deadlocks between concurrent operations):
products sorted by id, then the order row, then order-item rows.

Only store-level serialization/deadlock failures are retried, and only
for operations declared idempotent and running as the outermost
transaction.  Business failures (``DomainError``) are never retried.
"""

from __future__ import annotations

import functools
import time
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Optional, TypeVar
from uuid import UUID

import structlog
from django.conf import settings
from django.db import DatabaseError, transaction

from modules.core.exceptions import DomainError
from modules.orders.exceptions import OrderNotModifiable, TransactionFailed

if TYPE_CHECKING:
    from modules.orders.models import Order
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable)

# PostgreSQL: serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = {"40001", "40P01"}
# MySQL: lock wait timeout, deadlock found
RETRYABLE_MYSQL_ERRNOS = {1205, 1213}
RETRYABLE_MESSAGES = (
    "deadlock",
    "could not serialize access",
    "lock wait timeout",
    "database is locked",
)


def is_retryable(exc: BaseException) -> bool:
    """Whether *exc* is a transient write conflict reported by the store."""
    cause = exc.__cause__
    sqlstate = (
        getattr(exc, "pgcode", None)
        or getattr(cause, "pgcode", None)
        or getattr(cause, "sqlstate", None)
    )
    if sqlstate in RETRYABLE_SQLSTATES:
        return True
    args = getattr(cause, "args", None) or exc.args
    if args and args[0] in RETRYABLE_MYSQL_ERRNOS:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in RETRYABLE_MESSAGES)


def atomic_operation(name: str, *, retry: bool = True) -> Callable[[F], F]:
    """Run the decorated service method as one all-or-nothing unit of work.

    ``retry=False`` must be used for non-idempotent operations such as
    order creation.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            outermost = not transaction.get_connection().in_atomic_block
            max_attempts = (
                max(1, settings.ORDER_TRANSACTION_MAX_ATTEMPTS)
                if retry and outermost
                else 1
            )
            attempt = 0
            while True:
                attempt += 1
                try:
                    with transaction.atomic():
                        return func(*args, **kwargs)
                except DomainError as exc:
                    logger.info(
                        "transaction.aborted",
                        operation=name,
                        code=exc.code,
                        reason=exc.message,
                    )
                    raise
                except DatabaseError as exc:
                    if attempt < max_attempts and is_retryable(exc):
                        logger.warning(
                            "transaction.retrying",
                            operation=name,
                            attempt=attempt,
                            error=str(exc),
                        )
                        time.sleep(settings.ORDER_TRANSACTION_BACKOFF * attempt)
                        continue
                    logger.exception(
                        "transaction.failed", operation=name, attempt=attempt
                    )
                    raise TransactionFailed(f"{name} could not be committed.") from exc

        return wrapper  # type: ignore[return-value]

    return decorator


def lock_products(
    repository: IProductRepository, product_ids: Iterable[UUID]
) -> Dict[UUID, Optional[Product]]:
    """Lock every product in *product_ids* in ascending id order.

    The result maps each requested id to its locked product, or ``None``
    when the product is missing.
    """
    locked: Dict[UUID, Optional[Product]] = {}
    for product_id in sorted(set(product_ids), key=str):
        locked[product_id] = repository.get_for_update(product_id)
    return locked


def ensure_order_modifiable(order: Order) -> None:
    """Reject line-item changes on delivered or cancelled orders."""
    if order.is_locked:
        raise OrderNotModifiable()
