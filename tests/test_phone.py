"""Tests for phone normalization."""

import pytest

from framel.utils.phone import normalize_phone


class TestNormalizePhone:
    @pytest.mark.parametrize("raw", [
        "0712345678",
        "0712 345 678",
        "+254712345678",
        "254712345678",
        "712345678",
        "+254-712-345-678",
        "(0712) 345.678",
    ])
    def test_formats_normalize_to_the_same_number(self, raw):
        assert normalize_phone(raw) == "254712345678"

    def test_airtel_prefix(self):
        assert normalize_phone("0110 123 456") == "254110123456"

    @pytest.mark.parametrize("raw", [
        "",
        "07123",
        "07123456789",
        "0712-ABC-678",
        "2547123456789",
    ])
    def test_invalid_numbers_raise(self, raw):
        with pytest.raises(ValueError):
            normalize_phone(raw)

    def test_country_code_override(self):
        assert normalize_phone("0712345678", country_code="255") == "255712345678"
