"""Tests for fixed-point amount conversions."""

import pytest

from jetton_holders.calculator.amounts import (
    ScaledAmount,
    coerce_int,
    fiat_value,
    format_change,
    format_usd,
    percent_of,
    share_ratio,
    to_display,
    to_number,
)
from jetton_holders.core.types import UNAVAILABLE


class TestCoerceInt:
    """Tests for exact integer coercion."""

    def test_accepts_ints_and_integer_strings(self):
        assert coerce_int(42) == 42
        assert coerce_int("  123 ") == 123
        assert coerce_int("-7") == -7
        assert coerce_int(3.0) == 3

    def test_accepts_zero_fraction_strings(self):
        assert coerce_int("0.0") == 0
        assert coerce_int("-0.00") == 0
        assert coerce_int(" 12.000 ") == 12
        assert coerce_int("1.50") is None

    def test_rejects_everything_else(self):
        assert coerce_int("1.5") is None
        assert coerce_int("abc") is None
        assert coerce_int(None) is None
        assert coerce_int(True) is None
        assert coerce_int(2.5) is None

    def test_huge_string_stays_exact(self):
        text = "123456789012345678901234567890"
        assert coerce_int(text) == 123456789012345678901234567890


class TestToDisplay:
    """Tests for decimal rendering of raw amounts."""

    def test_basic_scaling(self):
        assert to_display(1_500_000_000, 9) == "1.5"
        assert to_display(1_000_000_000, 9) == "1"
        assert to_display(1, 9) == "0.000000001"
        assert to_display(0, 9) == "0"

    def test_zero_decimals(self):
        assert to_display(250, 0) == "250"

    def test_negative_amount(self):
        assert to_display(-1_500_000_000, 9) == "-1.5"

    def test_string_input(self):
        assert to_display("2500000000", 9) == "2.5"

    def test_precision_beyond_float(self):
        # 2**64 + 1 raw units would lose the last digit as a float
        raw = 2**64 + 1
        assert to_display(raw, 9) == "18446744073.709551617"

    def test_round_trip_through_digits(self):
        for raw in (1, 10, 999_999_999, 5_000_000_001, 10**30 + 7):
            text = to_display(raw, 9)
            whole, _, frac = text.partition(".")
            assert int(whole) * 10**9 + int(frac.ljust(9, "0") or "0") == raw

    def test_grouped_thousands(self):
        assert to_display(1_234_567_500_000_000, 9, group_thousands=True) == "1,234,567.5"

    def test_malformed_input_yields_sentinel(self):
        assert to_display("not a number", 9) == UNAVAILABLE
        assert to_display(None, 9) == UNAVAILABLE
        assert to_display(100, -1) == UNAVAILABLE
        assert to_display(100, "x") == UNAVAILABLE


class TestToNumber:
    """Tests for the float approximation."""

    def test_scaling(self):
        assert to_number(1_500_000_000, 9) == pytest.approx(1.5)

    def test_malformed(self):
        assert to_number("bad", 9) is None


class TestPercentOf:
    """Tests for share-of-supply percentages."""

    def test_three_decimals(self):
        assert percent_of(100, 250) == "40.000%"
        assert percent_of(50, 250) == "20.000%"
        assert percent_of(1, 3) == "33.333%"

    def test_truncates_rather_than_rounds(self):
        assert percent_of(2, 3) == "66.666%"

    def test_whole_supply(self):
        assert percent_of(250, 250) == "100.000%"

    def test_zero_supply_is_sentinel(self):
        assert percent_of(100, 0) == UNAVAILABLE

    def test_malformed(self):
        assert percent_of("abc", 100) == UNAVAILABLE
        assert percent_of(1, None) == UNAVAILABLE

    def test_monotonic_in_balance(self):
        total = 10**27
        previous = -1.0
        for raw in (0, 10**20, 10**22, 10**24, 10**26, total):
            value = float(percent_of(raw, total).rstrip("%"))
            assert value >= previous
            previous = value

    def test_custom_digits(self):
        assert percent_of(1, 3, decimals=0) == "33%"
        assert percent_of(1, 8, decimals=1) == "12.5%"


class TestShareRatio:
    def test_exact_fraction(self):
        assert share_ratio(1, 3) * 3 == 1

    def test_zero_total(self):
        assert share_ratio(1, 0) is None


class TestFormatChange:
    """Tests for 24h change rendering."""

    def test_missing_is_sentinel(self):
        assert format_change(None, 9) == UNAVAILABLE

    def test_zero_is_zero(self):
        assert format_change(0, 9) == "0"

    def test_signs(self):
        assert format_change(1_500_000_000, 9) == "+1.5"
        assert format_change(-2_000_000_000, 9) == "-2"


class TestFiat:
    def test_value(self):
        assert fiat_value(2_000_000_000, 9, 1.25) == pytest.approx(2.5)

    def test_unknown_price(self):
        assert fiat_value(2_000_000_000, 9, None) is None

    def test_format_usd(self):
        assert format_usd(1234.5) == "$1,234.50"
        assert format_usd(None) == UNAVAILABLE


class TestScaledAmount:
    """Tests for the per-token conversion helper."""

    def test_bound_decimals(self):
        scale = ScaledAmount(decimals=9, total_supply=4_000_000_000)
        assert scale.display(1_000_000_000) == "1"
        assert scale.percent(1_000_000_000) == "25.000%"
        assert scale.change(None) == UNAVAILABLE
        assert scale.usd(1_000_000_000, 2.0) == pytest.approx(2.0)

    def test_negative_decimals_rejected(self):
        with pytest.raises(ValueError):
            ScaledAmount(decimals=-1)
