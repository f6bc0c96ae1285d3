"""Page/limit pagination shared by every listing endpoint.

Query parameters: ``page`` (default 1) and ``limit`` (default
``PAGE_SIZE``, capped at ``MAX_PAGE_SIZE``).  Both must be positive
integers.  Pages past the end return an empty result list instead of 404.

Response body::

    {"<results_label>": [...],
     "pagination": {"current_page": 1, "total_pages": 3,
                    "<total_label>": 25, "per_page": 10}}
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from django.conf import settings
from rest_framework.pagination import BasePagination
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.settings import api_settings

from modules.core.exceptions import DomainValidationError


class InvalidPagination(DomainValidationError):
    code = "invalid_pagination"


class StandardResultsSetPagination(BasePagination):
    page_query_param = "page"
    page_size_query_param = "limit"
    results_label = "results"
    total_label = "total_items"

    def __init__(self) -> None:
        self.page_number = 1
        self.per_page = self.default_page_size()
        self.total = 0

    @staticmethod
    def default_page_size() -> int:
        return api_settings.PAGE_SIZE or 10

    @staticmethod
    def max_page_size() -> int:
        return getattr(settings, "MAX_PAGE_SIZE", 100)

    # ------------------------------------------------------------------
    # DRF pagination contract
    # ------------------------------------------------------------------

    def paginate_queryset(self, queryset, request: Request, view=None) -> List[Any]:
        self.page_number = self._positive_int(request, self.page_query_param, 1)
        self.per_page = min(
            self._positive_int(
                request, self.page_size_query_param, self.default_page_size()
            ),
            self.max_page_size(),
        )
        self.total = queryset.count()
        offset = (self.page_number - 1) * self.per_page
        return list(queryset[offset : offset + self.per_page])

    def get_paginated_response(self, data: Any) -> Response:
        return Response(
            {self.results_label: data, "pagination": self.get_pagination_metadata()}
        )

    def get_pagination_metadata(self) -> Dict[str, int]:
        return {
            "current_page": self.page_number,
            "total_pages": math.ceil(self.total / self.per_page),
            self.total_label: self.total,
            "per_page": self.per_page,
        }

    def get_paginated_response_schema(self, schema: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                self.results_label: schema,
                "pagination": {
                    "type": "object",
                    "properties": {
                        "current_page": {"type": "integer"},
                        "total_pages": {"type": "integer"},
                        self.total_label: {"type": "integer"},
                        "per_page": {"type": "integer"},
                    },
                },
            },
        }

    def get_schema_operation_parameters(self, view) -> List[Dict[str, Any]]:
        return [
            {
                "name": name,
                "required": False,
                "in": "query",
                "schema": {"type": "integer", "minimum": 1},
            }
            for name in (self.page_query_param, self.page_size_query_param)
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _positive_int(request: Request, name: str, default: int) -> int:
        raw: Optional[str] = request.query_params.get(name)
        if raw is None or raw == "":
            return default
        try:
            value = int(raw)
        except ValueError:
            value = 0
        if value < 1:
            raise InvalidPagination(f"'{name}' must be a positive integer.", attr=name)
        return value
