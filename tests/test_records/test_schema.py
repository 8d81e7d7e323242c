"""Tests for the listing schema and field normalizers."""

import pytest

from harvester.records.schema import (
    LISTING_SCHEMA,
    count_filled_fields,
    extract_postcode,
    fill_missing_fields,
    is_filled,
    normalize_address,
    normalize_price,
    project_record,
    validate_record,
)


class TestFilledFields:
    @pytest.mark.parametrize("value", [None, ""])
    def test_absent_values(self, value):
        assert not is_filled(value)

    @pytest.mark.parametrize("value", [0, False, [], {}, "x"])
    def test_present_values(self, value):
        assert is_filled(value)

    def test_count_filled_fields(self):
        assert count_filled_fields({"a": 1, "b": None, "c": "", "d": "x"}) == 2


class TestProjectRecord:
    def test_drops_unknown_fields(self):
        record = project_record({"id": "1", "price": "£1", "colour": "red"})
        assert record == {"id": "1", "price": "£1"}

    def test_keeps_key_order(self):
        record = project_record({"price": "£1", "id": "1"})
        assert list(record) == ["price", "id"]


class TestValidateRecord:
    def test_complete_record_valid(self):
        result = validate_record(
            {"id": "1", "url": "https://x", "source": "rightmove", "address": "A", "price": "£1"}
        )
        assert result.valid
        assert result.errors == []

    def test_missing_required_fields(self):
        result = validate_record({"id": "1"})
        assert not result.valid
        assert "Required field missing: url" in result.errors

    def test_kind_mismatch_is_warning(self):
        result = validate_record(
            {"id": 1, "url": "u", "source": "s", "address": "a", "price": "p"}
        )
        assert result.valid
        assert any('"id"' in w for w in result.warnings)

    def test_unknown_field_is_warning(self):
        result = validate_record({"colour": "red"})
        assert "Unknown field: colour" in result.warnings

    def test_non_mapping_invalid(self):
        assert not validate_record(["not", "a", "record"]).valid


class TestFillMissingFields:
    def test_defaults_by_kind(self):
        filled = fill_missing_fields({"id": "1"})
        assert set(filled) == set(LISTING_SCHEMA)
        assert filled["id"] == "1"
        assert filled["images"] == []
        assert filled["is_duplicate"] is False
        assert filled["price"] is None

    def test_input_not_mutated(self):
        record = {"id": "1"}
        fill_missing_fields(record)
        assert record == {"id": "1"}


class TestNormalizeAddress:
    def test_collapses_whitespace_and_commas(self):
        assert normalize_address("  10  High Street,, London, ") == "10 High Street, London"

    @pytest.mark.parametrize(
        "raw",
        ["10 High Street, London ,", "10 High Street, London, ", " 10 High Street,  London ,,"],
    )
    def test_trailing_comma_after_space(self, raw):
        assert normalize_address(raw) == "10 High Street, London"

    def test_keeps_case(self):
        assert normalize_address("HIGH STREET") == "HIGH STREET"

    @pytest.mark.parametrize("value", [None, "", 42])
    def test_non_text_is_empty(self, value):
        assert normalize_address(value) == ""


class TestExtractPostcode:
    def test_finds_postcode_in_address(self):
        postcode = extract_postcode("10 High Street, London sw1a 1aa")
        assert postcode.outcode == "SW1A"
        assert postcode.incode == "1AA"
        assert postcode.full == "SW1A 1AA"

    def test_compact_postcode(self):
        assert extract_postcode("M11AE").full == "M1 1AE"

    def test_no_postcode(self):
        assert extract_postcode("High Street, London") is None
        assert extract_postcode(None) is None


class TestNormalizePrice:
    def test_number_formatted(self):
        assert normalize_price(350000) == "£350,000"

    def test_decimal_part_dropped(self):
        assert normalize_price("350000.75") == "£350,000"

    def test_pound_prefixed_passes_through(self):
        assert normalize_price("£350,000") == "£350,000"

    def test_text_without_digits_unchanged(self):
        assert normalize_price("POA") == "POA"

    def test_none(self):
        assert normalize_price(None) is None
