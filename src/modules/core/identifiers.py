"""Parsing of identifiers taken from URL paths and query strings."""

from __future__ import annotations

from uuid import UUID

from modules.core.exceptions import InvalidIdentifier


def parse_uuid(value: object, label: str = "resource") -> UUID:
    """Return *value* as a ``UUID`` or raise ``InvalidIdentifier``."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError) as exc:
        raise InvalidIdentifier(f"Invalid {label} ID.", attr=_attr(label)) from exc


def parse_int_id(value: object, label: str = "resource") -> int:
    """Return *value* as a positive integer id or raise ``InvalidIdentifier``."""
    try:
        number = int(str(value))
    except (TypeError, ValueError) as exc:
        raise InvalidIdentifier(f"Invalid {label} ID.", attr=_attr(label)) from exc
    if number < 1:
        raise InvalidIdentifier(f"Invalid {label} ID.", attr=_attr(label))
    return number


def _attr(label: str) -> str:
    return f"{label.replace(' ', '_')}_id"
