"""Domain error taxonomy and its HTTP rendering.

Every business failure raised by a service is a ``DomainError`` carrying a
``category`` (validation, not_found, conflict, internal), a snake_case
``code`` and a human-readable message.  Services never build HTTP responses;
``api_exception_handler`` (wired as DRF's ``EXCEPTION_HANDLER``) maps the
category to a status code and renders one standard body for every error::

    {"type": "client_error", "errors": [{"code": "...", "detail": "...", "attr": null}]}

Category to status mapping: validation -> 400, not_found -> 404,
conflict -> 400, internal -> 500.  Internal failures are logged with their
traceback and rendered with a generic message.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = structlog.get_logger(__name__)

VALIDATION = "validation"
NOT_FOUND = "not_found"
CONFLICT = "conflict"
INTERNAL = "internal"

CATEGORY_STATUS: Dict[str, int] = {
    VALIDATION: status.HTTP_400_BAD_REQUEST,
    NOT_FOUND: status.HTTP_404_NOT_FOUND,
    CONFLICT: status.HTTP_400_BAD_REQUEST,
    INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

GENERIC_SERVER_ERROR = "Internal server error."


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------


class DomainError(Exception):
    """Base class for failures raised by the service layer."""

    category: str = INTERNAL
    code: str = "error"
    default_message: str = GENERIC_SERVER_ERROR

    def __init__(self, message: Optional[str] = None, *, attr: Optional[str] = None):
        self.message = message or self.default_message
        self.attr = attr
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return CATEGORY_STATUS[self.category]


class DomainValidationError(DomainError):
    """Malformed input; raised before any transaction opens."""

    category = VALIDATION
    code = "invalid"
    default_message = "Invalid input."


class NotFoundError(DomainError):
    category = NOT_FOUND
    code = "not_found"
    default_message = "Resource not found."


class ConflictError(DomainError):
    """The request is well-formed but the current business state forbids it."""

    category = CONFLICT
    code = "conflict"
    default_message = "Operation conflicts with the current state."


class InternalError(DomainError):
    category = INTERNAL
    code = "internal_error"


class InvalidIdentifier(DomainValidationError):
    code = "invalid_identifier"
    default_message = "Invalid identifier."


# ---------------------------------------------------------------------------
# DRF exception handler
# ---------------------------------------------------------------------------


def api_exception_handler(exc: Exception, context: Dict[str, Any]) -> Response:
    """Render domain, DRF and unexpected exceptions in the standard format."""
    if isinstance(exc, DomainError):
        return _domain_error_response(exc, context)

    if isinstance(exc, PydanticValidationError):
        errors = [
            _error(
                error["type"],
                error["msg"],
                ".".join(str(part) for part in error["loc"]) or None,
            )
            for error in exc.errors()
        ]
        return _response("validation_error", errors, status.HTTP_400_BAD_REQUEST)

    response = drf_exception_handler(exc, context)
    if response is None:
        logger.exception("api.unhandled_exception", view=_view_name(context))
        return _response(
            "server_error",
            [_error("internal_error", GENERIC_SERVER_ERROR)],
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, drf_exceptions.ValidationError):
        error_type = "validation_error"
    elif response.status_code >= 500:
        error_type = "server_error"
    else:
        error_type = "client_error"

    response.data = {"type": error_type, "errors": _flatten(response.data)}
    return response


def _domain_error_response(exc: DomainError, context: Dict[str, Any]) -> Response:
    log = logger.bind(view=_view_name(context), code=exc.code, category=exc.category)
    if exc.category == INTERNAL:
        log.error("api.internal_error", error=exc.message)
        errors = [_error(exc.code, GENERIC_SERVER_ERROR)]
        return _response("server_error", errors, exc.status_code)

    log.info("api.domain_error", detail=exc.message)
    error_type = "validation_error" if exc.category == VALIDATION else "client_error"
    return _response(error_type, [_error(exc.code, exc.message, exc.attr)], exc.status_code)


def _flatten(detail: Any, attr: Optional[str] = None) -> List[Dict[str, Any]]:
    """Flatten DRF's nested ``ErrorDetail`` structures into a list of errors."""
    if isinstance(detail, dict):
        errors: List[Dict[str, Any]] = []
        for key, value in detail.items():
            if attr is None and key in ("detail", "non_field_errors"):
                name = None
            else:
                name = key if attr is None else f"{attr}.{key}"
            errors.extend(_flatten(value, name))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                name = str(index) if attr is None else f"{attr}.{index}"
                errors.extend(_flatten(value, name))
            else:
                errors.extend(_flatten(value, attr))
        return errors
    return [_error(getattr(detail, "code", "error"), str(detail), attr)]


def _error(code: str, detail: str, attr: Optional[str] = None) -> Dict[str, Any]:
    return {"code": code, "detail": detail, "attr": attr}


def _response(error_type: str, errors: List[Dict[str, Any]], status_code: int) -> Response:
    return Response({"type": error_type, "errors": errors}, status=status_code)


def _view_name(context: Dict[str, Any]) -> Optional[str]:
    view = context.get("view") if context else None
    return type(view).__name__ if view is not None else None
