"""Order DTOs for the Service Layer.

Framework-agnostic input contracts using Pydantic v2, validated before
any transaction opens.  DTOs are immutable (``frozen=True``).

- ``OrderLineDTO``: one (product, quantity) pair.
- ``CreateOrderDTO``: owner + non-empty list of lines, one line per product.
- ``AddOrderItemDTO``: a line added to an existing order.
"""

from __future__ import annotations

from typing import List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


def _positive_quantity(v: int) -> int:
    if v < 1:
        raise ValueError("Quantity must be greater than 0.")
    return v


class OrderLineDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        return _positive_quantity(v)


class CreateOrderDTO(BaseModel):
    """Validates:

    - ``items`` contains at least one line.
    - Each quantity is positive.
    - No product appears twice (an order holds one line per product).
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    items: List[OrderLineDTO]

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, v: List[OrderLineDTO]) -> List[OrderLineDTO]:
        if not v:
            raise ValueError("Order must contain at least one item.")
        return v

    @model_validator(mode="after")
    def no_duplicate_products(self):
        product_ids = [item.product_id for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError("Duplicate product IDs are not allowed in the same order.")
        return self


class AddOrderItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        return _positive_quantity(v)
