"""
Tests for text normalization, dirty-field tracking and validation helpers.
"""

import uuid
import pytest
from decimal import Decimal

from homesapp.models.property import PropertyType
from homesapp.utils.changes import compute_changes, describe_changes, normalize_value
from homesapp.utils.exceptions import ValidationError
from homesapp.utils.text import (
    EMPTY_DUPLICATE_KEY,
    duplicate_key,
    duplicate_keys_match,
    generate_property_slug,
    generate_slug,
    last4_digits,
    normalize_name,
)
from homesapp.utils.validators import ValidationUtils


class TestText:

    def test_generate_slug_strips_accents_and_symbols(self):
        assert generate_slug("Aldea Zamá  Torre_2") == "aldea-zama-torre2"
        assert generate_slug("  Casa   Olivia!! ") == "casa-olivia"
        assert generate_slug("") == ""

    def test_property_slug_joins_condo_and_unit(self):
        assert generate_property_slug("Mistiq Temple II", "PH-3") == "mistiq-temple-ii-ph-3"

    def test_normalize_name(self):
        assert normalize_name("  JOSÉ   Pérez ") == "jose perez"
        assert normalize_name(None) == ""

    def test_last4_digits(self):
        assert last4_digits("+52 (984) 123-4567") == "4567"
        assert last4_digits("12") == "12"
        assert last4_digits(None) == ""

    def test_duplicate_key_ignores_accents_case_and_phone_format(self):
        first = duplicate_key("José", "Pérez", "+52 984 123 4567")
        second = duplicate_key("jose", "PEREZ", "984-1234567")
        assert first == second == "jose|perez|4567"
        assert duplicate_keys_match(first, second)

    def test_empty_key_never_matches(self):
        key = duplicate_key("", "", None)
        assert key == EMPTY_DUPLICATE_KEY
        assert not duplicate_keys_match(key, key)


class TestComputeChanges:

    def test_only_changed_fields_are_returned(self):
        original = {"title": "Casa", "price": Decimal("1000.00"), "bedrooms": 2}
        edited = {"title": "Casa", "price": "1000", "bedrooms": "3"}

        assert compute_changes(original, edited) == {"bedrooms": 3}

    def test_empty_string_equals_missing_value(self):
        assert compute_changes({"description": None}, {"description": ""}) == {}
        assert compute_changes({}, {"zone": ""}) == {}

    def test_clearing_a_value_yields_none(self):
        assert compute_changes({"zone": "La Veleta"}, {"zone": ""}) == {"zone": None}

    def test_fields_limit_the_comparison(self):
        original = {"title": "A", "zone": "B"}
        edited = {"title": "Changed", "zone": "Other"}
        assert compute_changes(original, edited, fields=["zone"]) == {"zone": "Other"}

    def test_enums_and_uuids_compare_by_value(self):
        owner = uuid.uuid4()
        original = {"property_type": "house", "owner_id": str(owner)}
        edited = {"property_type": PropertyType.HOUSE, "owner_id": owner}
        assert compute_changes(original, edited) == {}

    def test_invalid_number_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            compute_changes({"price": Decimal("10")}, {"price": "ten"})
        assert exc_info.value.field_errors[0]["field"] == "price"

    def test_fractional_bedrooms_rejected(self):
        with pytest.raises(ValidationError):
            normalize_value("bedrooms", "2.5")

    def test_describe_changes(self):
        original = {"price": Decimal("1000")}
        changes = compute_changes(original, {"price": "1200"})
        assert describe_changes(original, changes) == [
            {"field": "price", "old": Decimal("1000"), "new": Decimal("1200")}
        ]


class TestValidationUtils:

    def test_parse_uuid(self):
        value = uuid.uuid4()
        assert ValidationUtils.parse_uuid(str(value)) == value
        assert ValidationUtils.parse_uuid(value) is value

    def test_parse_uuid_rejects_garbage(self):
        with pytest.raises(ValidationError):
            ValidationUtils.parse_uuid("not-a-uuid", "property_id")

    def test_parse_optional_uuid(self):
        assert ValidationUtils.parse_optional_uuid("") is None
        assert ValidationUtils.parse_optional_uuid(None) is None

    def test_page_bounds(self):
        assert ValidationUtils.page_bounds(1, 20) == (0, 20)
        assert ValidationUtils.page_bounds(3, 10) == (20, 10)
        with pytest.raises(ValidationError):
            ValidationUtils.page_bounds(0, 20)
        with pytest.raises(ValidationError):
            ValidationUtils.page_bounds(1, 500)
