"""Tests for 18-decimal fixed-point arithmetic and unit conversion."""

from decimal import Decimal

import pytest

from weighted_amm.core import fixed_point as fp
from weighted_amm.core.errors import ComputationError, ValidationError
from weighted_amm.core.units import (
    amount_to_units,
    format_amount,
    quantize_to_decimals,
    resolve_decimals,
    units_to_amount,
)


class TestDirectionalRounding:
    """Down and up variants bracket the exact result."""

    def test_division_rounds_both_ways(self):
        assert fp.div_down(Decimal("1"), Decimal("3")) == Decimal("0.333333333333333333")
        assert fp.div_up(Decimal("1"), Decimal("3")) == Decimal("0.333333333333333334")

    def test_exact_results_are_not_bumped(self):
        assert fp.div_up(Decimal("1"), Decimal("4")) == Decimal("0.25")
        assert fp.mul_up(Decimal("0.5"), Decimal("0.5")) == Decimal("0.25")

    def test_multiplication_rounds_both_ways(self):
        a = Decimal("0.000000000000000001")
        assert fp.mul_down(a, Decimal("0.5")) == Decimal("0")
        assert fp.mul_up(a, Decimal("0.5")) == a

    def test_large_values_keep_fractional_precision(self):
        """uint256-sized values must not lose their 18th digit."""
        big = Decimal(f"{fp.MAX_UINT256}E-18")
        assert fp.add(big, fp.QUANTUM) - big == fp.QUANTUM

    def test_division_by_zero_raises(self):
        with pytest.raises(ComputationError):
            fp.div_down(Decimal("1"), Decimal("0"))
        with pytest.raises(ComputationError):
            fp.div_up(Decimal("1"), Decimal("0"))

    def test_complement_clamps_at_zero(self):
        assert fp.complement(Decimal("0.25")) == Decimal("0.75")
        assert fp.complement(Decimal("1.5")) == Decimal("0")

    def test_rounding_is_toward_infinities(self):
        """Down means toward negative infinity, so negatives move away from zero."""
        tiny = Decimal("-0.0000000000000000001")
        assert fp.round_down(tiny) == Decimal("-0.000000000000000001")
        assert fp.round_up(tiny) == Decimal("0")


class TestPower:
    def test_fractional_power_is_bracketed(self):
        down = fp.pow_down(Decimal("2"), Decimal("0.5"))
        up = fp.pow_up(Decimal("2"), Decimal("0.5"))
        assert up - down == fp.QUANTUM
        assert down < Decimal("1.4142135623730950488") < up

    def test_zero_base(self):
        assert fp.pow_down(Decimal("0"), Decimal("2")) == Decimal("0")
        with pytest.raises(ComputationError):
            fp.pow_down(Decimal("0"), Decimal("0"))

    def test_negative_base_raises(self):
        with pytest.raises(ComputationError):
            fp.pow_up(Decimal("-1"), Decimal("0.5"))


class TestToDecimal:
    def test_accepts_strings_ints_and_decimals(self):
        assert fp.to_decimal("1.5") == Decimal("1.5")
        assert fp.to_decimal(3) == Decimal("3")
        assert fp.to_decimal(Decimal("2")) == Decimal("2")

    @pytest.mark.parametrize("value", [1.5, "abc", "NaN", "Infinity"])
    def test_rejects_inexact_or_non_finite(self, value):
        with pytest.raises(ValidationError):
            fp.to_decimal(value)


class TestUnits:
    """Conversion between decimal amounts and integer ledger units."""

    def test_amount_to_units(self):
        assert amount_to_units("1.5") == 1_500_000_000_000_000_000
        assert amount_to_units("1.5", 6) == 1_500_000

    def test_sub_unit_remainder_rounding(self):
        assert amount_to_units("0.0000001", 6) == 0
        assert amount_to_units("0.0000001", 6, round_up=True) == 1

    def test_quantize_to_token_decimals(self):
        amount = Decimal("18.1818181818")
        assert quantize_to_decimals(amount, 6) == Decimal("18.181818")
        assert quantize_to_decimals(amount, 6, round_up=True) == Decimal("18.181819")
        assert quantize_to_decimals(Decimal("5"), 6, round_up=True) == Decimal("5")
        assert quantize_to_decimals(amount) == amount

    def test_units_to_amount(self):
        assert units_to_amount(1_500_000, 6) == Decimal("1.5")
        assert units_to_amount(10**18) == Decimal("1")

    def test_unknown_or_zero_decimals_fall_back_to_18(self):
        assert resolve_decimals(None) == 18
        assert resolve_decimals(0) == 18
        assert resolve_decimals(6) == 6

    @pytest.mark.parametrize("decimals", [-1, 78])
    def test_decimals_out_of_range(self, decimals):
        with pytest.raises(ValidationError):
            resolve_decimals(decimals)

    def test_negative_amounts_rejected(self):
        with pytest.raises(ValidationError):
            amount_to_units("-1")
        with pytest.raises(ValidationError):
            units_to_amount(-1)

    def test_uint256_overflow_rejected(self):
        with pytest.raises(ValidationError):
            amount_to_units(Decimal(fp.MAX_UINT256))

    @pytest.mark.parametrize(
        "amount,expected",
        [
            (Decimal("1.500000000000000000"), "1.5"),
            (Decimal("100"), "100"),
            (Decimal("1E+2"), "100"),
            (Decimal("0E-18"), "0"),
            (Decimal("0.000000000000000001"), "0.000000000000000001"),
        ],
    )
    def test_format_amount(self, amount, expected):
        assert format_amount(amount) == expected
