"""Catalog domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import NotFoundError


class ProductNotFound(NotFoundError):
    """The product does not exist or has been soft-deleted."""

    code = "product_not_found"
    default_message = "Product not found."


class CategoryNotFound(NotFoundError):
    code = "category_not_found"
    default_message = "Category not found."
