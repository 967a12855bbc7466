"""Numeric coercion of stored and user-typed values."""

import logging
from decimal import Decimal

import numpy as np
import pytest

from kpi_portal.brand_kpi_reporting.parsing import is_cleared, parse_number


class TestParseNumber:
    @pytest.mark.parametrize("raw, expected", [
        ("1.234,56", 1234.56),
        ("1,5", 1.5),
        ("1,234.56", 1234.56),
        ("1234.56", 1234.56),
        ("  42 ", 42.0),
        ("1 234,5", 1234.5),
        ("-3,25", -3.25),
        ("0", 0.0),
    ])
    def test_formatted_strings(self, raw, expected):
        assert parse_number(raw) == pytest.approx(expected)

    def test_single_dot_is_decimal(self):
        # Last separator wins, as older entries were stored dot-decimal
        assert parse_number("1.234") == pytest.approx(1.234)

    @pytest.mark.parametrize("raw", [5, 5.0, Decimal("5"), np.int64(5), np.float32(5.0)])
    def test_numeric_types(self, raw):
        assert parse_number(raw) == 5.0

    @pytest.mark.parametrize("raw", [None, "", "   ", float("nan")])
    def test_empty_is_absent(self, raw):
        assert parse_number(raw) is None

    @pytest.mark.parametrize("raw", ["abc", "12abc", "1,2,3x", float("inf"), True])
    def test_unreadable_is_absent_and_logged(self, raw, caplog):
        with caplog.at_level(logging.WARNING):
            assert parse_number(raw) is None
        assert "NUMERIC_COERCION_FAILURE" in caplog.text

    def test_zero_is_not_absent(self):
        assert parse_number("0,0") == 0.0


@pytest.mark.parametrize("raw, cleared", [
    (None, True),
    ("", True),
    ("  ", True),
    ("abc", True),
    ("0", False),
    (0, False),
    ("12,5", False),
])
def test_is_cleared(raw, cleared):
    assert is_cleared(raw) is cleared
