from decimal import Decimal

import pytest
from rest_framework.request import Request
from rest_framework.test import APIRequestFactory

from modules.core.pagination import InvalidPagination, StandardResultsSetPagination
from modules.products.models import Product

pytestmark = pytest.mark.unit

factory = APIRequestFactory()


def _request(query=""):
    return Request(factory.get(f"/items/{query}"))


@pytest.fixture()
def products():
    return [
        Product.objects.create(name=f"P{i:02d}", price=Decimal("1.00"))
        for i in range(25)
    ]


@pytest.fixture()
def queryset(products):
    return Product.objects.alive().order_by("name")


class TestStandardResultsSetPagination:
    def test_defaults_to_first_page_of_ten(self, queryset):
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, _request())

        assert [p.name for p in page] == [f"P{i:02d}" for i in range(10)]
        assert paginator.get_pagination_metadata() == {
            "current_page": 1,
            "total_pages": 3,
            "total_items": 25,
            "per_page": 10,
        }

    def test_last_partial_page(self, queryset):
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, _request("?page=3&limit=10"))
        assert len(page) == 5

    def test_total_pages_is_ceiling(self, queryset):
        paginator = StandardResultsSetPagination()
        paginator.paginate_queryset(queryset, _request("?limit=7"))
        assert paginator.get_pagination_metadata()["total_pages"] == 4

    def test_page_past_end_is_empty(self, queryset):
        paginator = StandardResultsSetPagination()
        assert paginator.paginate_queryset(queryset, _request("?page=9")) == []

    def test_limit_capped_by_max_page_size(self, queryset, settings):
        settings.MAX_PAGE_SIZE = 20
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, _request("?limit=500"))
        assert len(page) == 20
        assert paginator.get_pagination_metadata()["per_page"] == 20

    @pytest.mark.parametrize("query", ["?page=0", "?page=-1", "?limit=0", "?page=abc"])
    def test_rejects_non_positive_values(self, queryset, query):
        paginator = StandardResultsSetPagination()
        with pytest.raises(InvalidPagination):
            paginator.paginate_queryset(queryset, _request(query))

    def test_response_uses_labels(self, queryset):
        class LabelledPagination(StandardResultsSetPagination):
            results_label = "orders"
            total_label = "total_orders"

        paginator = LabelledPagination()
        paginator.paginate_queryset(queryset, _request("?limit=5"))
        response = paginator.get_paginated_response(["x"])

        assert response.data["orders"] == ["x"]
        assert response.data["pagination"]["total_orders"] == 25

    def test_empty_queryset_has_zero_pages(self):
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(Product.objects.none(), _request())
        assert page == []
        assert paginator.get_pagination_metadata()["total_pages"] == 0
