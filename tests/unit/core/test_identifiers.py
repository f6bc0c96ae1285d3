import uuid

import pytest

from modules.core.exceptions import InvalidIdentifier
from modules.core.identifiers import parse_int_id, parse_uuid

pytestmark = pytest.mark.unit


class TestParseUuid:
    def test_accepts_uuid_string(self):
        value = uuid.uuid4()
        assert parse_uuid(str(value)) == value

    def test_passes_uuid_through(self):
        value = uuid.uuid4()
        assert parse_uuid(value) is value

    @pytest.mark.parametrize("raw", ["abc", "", None, "123"])
    def test_rejects_malformed(self, raw):
        with pytest.raises(InvalidIdentifier) as exc_info:
            parse_uuid(raw, "order")
        assert exc_info.value.message == "Invalid order ID."
        assert exc_info.value.attr == "order_id"

    def test_attr_uses_snake_case_label(self):
        with pytest.raises(InvalidIdentifier) as exc_info:
            parse_uuid("nope", "order item")
        assert exc_info.value.attr == "order_item_id"


class TestParseIntId:
    def test_accepts_digits(self):
        assert parse_int_id("42", "user") == 42

    @pytest.mark.parametrize("raw", ["abc", "0", "-3", None])
    def test_rejects_non_positive_or_malformed(self, raw):
        with pytest.raises(InvalidIdentifier):
            parse_int_id(raw, "user")
