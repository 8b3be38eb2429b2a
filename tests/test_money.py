"""Tests for tripledger/core/money.py

Run with:  pytest tests/test_money.py -v
"""

from decimal import Decimal

from tripledger.core.money import (
    first_positive,
    multiply,
    percent_of,
    round_currency,
    sum_money,
    to_decimal,
)


class TestToDecimal:
    def test_missing_values_are_zero(self):
        assert to_decimal(None) == Decimal("0")
        assert to_decimal("") == Decimal("0")
        assert to_decimal("   ") == Decimal("0")

    def test_garbage_is_zero(self):
        assert to_decimal("abc") == Decimal("0")
        assert to_decimal(float("nan")) == Decimal("0")
        assert to_decimal(Decimal("Infinity")) == Decimal("0")

    def test_bool_is_not_a_number(self):
        assert to_decimal(True) == Decimal("0")

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_numeric_strings(self):
        assert to_decimal(" 12.50 ") == Decimal("12.50")
        assert to_decimal(7) == Decimal("7")


class TestRounding:
    def test_half_up(self):
        assert round_currency(Decimal("2.345")) == Decimal("2.35")
        assert round_currency(Decimal("2.344")) == Decimal("2.34")

    def test_none_rounds_to_zero_cents(self):
        assert round_currency(None) == Decimal("0.00")

    def test_sum_skips_missing(self):
        assert sum_money([Decimal("10"), None, "", "2.5"]) == Decimal("12.50")

    def test_multiply_with_missing_side(self):
        assert multiply(None, Decimal("0.55")) == Decimal("0.00")
        assert multiply(Decimal("500"), Decimal("0.55")) == Decimal("275.00")

    def test_percent_of(self):
        assert percent_of(Decimal("4000"), Decimal("25")) == Decimal("1000.00")
        assert percent_of(Decimal("333.33"), Decimal("10")) == Decimal("33.33")


class TestFirstPositive:
    def test_skips_zero_and_missing(self):
        assert first_positive(None, Decimal("0"), Decimal("2.25")) == Decimal("2.25")

    def test_all_missing_is_zero(self):
        assert first_positive(None, "") == Decimal("0")
