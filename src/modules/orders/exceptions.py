"""Order domain exceptions.

Raised by the Service Layer; every class maps onto one category of
``modules.core.exceptions`` and is rendered by the API exception handler.
Conflicts are business-state failures and are never retried.
"""

from __future__ import annotations

from modules.core.exceptions import (
    ConflictError,
    DomainValidationError,
    InternalError,
    NotFoundError,
)

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class InvalidQuantity(DomainValidationError):
    code = "invalid_quantity"
    default_message = "Quantity must be greater than 0."


class InvalidOrderStatus(DomainValidationError):
    code = "invalid_status"


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class OrderNotFound(NotFoundError):
    code = "order_not_found"
    default_message = "Order not found."


class OrderItemNotFound(NotFoundError):
    code = "order_item_not_found"
    default_message = "Order item not found."


class UserNotFound(NotFoundError):
    code = "user_not_found"
    default_message = "User not found."


class NoOrderItems(NotFoundError):
    code = "no_order_items"
    default_message = "No order items found for this order."


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------


class InsufficientStock(ConflictError):
    code = "insufficient_stock"
    default_message = "Insufficient stock."


class DuplicateOrderItem(ConflictError):
    code = "duplicate_order_item"
    default_message = (
        "Product already exists in this order. "
        "Use the quantity endpoint to modify it."
    )


class OrderNotModifiable(ConflictError):
    code = "order_not_modifiable"
    default_message = "Cannot modify delivered or cancelled orders."


class OrderAlreadyCancelled(ConflictError):
    code = "order_already_cancelled"
    default_message = "Order is already cancelled."


class OrderNotCancellable(ConflictError):
    code = "order_not_cancellable"
    default_message = "Cannot cancel delivered order."


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------


class TransactionFailed(InternalError):
    """The store rejected or lost the unit of work; nothing was committed."""

    code = "transaction_failed"
