"""Conversion between human-readable amounts and ledger integer units."""

from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal, localcontext
from typing import Optional

from weighted_amm.core import fixed_point as fp
from weighted_amm.core.errors import ValidationError

DEFAULT_DECIMALS = fp.PRECISION


def resolve_decimals(decimals: Optional[int]) -> int:
    """Token precision to use, falling back to 18 when unknown or reported as 0."""
    if not decimals:
        return DEFAULT_DECIMALS
    if decimals < 0 or decimals > 77:
        raise ValidationError(f"token decimals out of range: {decimals}")
    return decimals


def amount_to_units(
    amount: fp.Numeric,
    decimals: Optional[int] = None,
    *,
    round_up: bool = False,
) -> int:
    """Convert a decimal amount (e.g. ``"1.5"``) to integer ledger units.

    Sub-unit remainders are dropped, or rounded up when ``round_up`` is set
    (for amounts the caller pays).
    """
    value = fp.to_decimal(amount)
    if value < 0:
        raise ValidationError(f"amount must be >= 0, got {value}")
    with localcontext(fp.working_context()):
        scaled = value.scaleb(resolve_decimals(decimals))
        units = int(scaled.to_integral_value(rounding=ROUND_CEILING if round_up else ROUND_FLOOR))
    if units > fp.MAX_UINT256:
        raise ValidationError(f"amount {value} does not fit in uint256")
    return units


def units_to_amount(units: int, decimals: Optional[int] = None) -> Decimal:
    """Convert integer ledger units back to a decimal amount."""
    if units < 0:
        raise ValidationError(f"units must be >= 0, got {units}")
    with localcontext(fp.working_context()):
        return Decimal(units).scaleb(-resolve_decimals(decimals))


def format_amount(amount: Decimal) -> str:
    """Plain decimal string without exponent or trailing zeros."""
    text = format(amount, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text if text not in ("", "-0") else "0"


def quantize_to_decimals(
    amount: Decimal,
    decimals: Optional[int] = None,
    *,
    round_up: bool = False,
) -> Decimal:
    """Round ``amount`` to the precision the ledger keeps for a token.

    Mirrors :func:`amount_to_units`: rounds down unless ``round_up`` is set.
    """
    with localcontext(fp.working_context()):
        quantum = Decimal(1).scaleb(-resolve_decimals(decimals))
        return amount.quantize(quantum, rounding=ROUND_CEILING if round_up else ROUND_FLOOR)
