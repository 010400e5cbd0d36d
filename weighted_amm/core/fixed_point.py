"""18-decimal fixed-point arithmetic with directional rounding.

Pool balances, weights and fees live on the ledger as integers scaled by
1e18 (BONE). Off-ledger they are carried as ``Decimal`` values quantized to
18 fractional digits. Every operation rounds explicitly:

- ``*_down`` rounds toward negative infinity (amounts the caller receives)
- ``*_up`` rounds toward positive infinity (amounts the caller pays)

Intermediate results are computed in a local context wide enough for any
uint256 value, so rounding only ever happens at the 18th fractional digit.
"""

from decimal import (
    ROUND_CEILING,
    ROUND_FLOOR,
    Context,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    localcontext,
)
from typing import Union

from weighted_amm.core.errors import ComputationError, ValidationError

PRECISION = 18
BONE = 10**PRECISION
MAX_UINT256 = 2**256 - 1

ZERO = Decimal("0")
ONE = Decimal("1")
QUANTUM = Decimal(1).scaleb(-PRECISION)

# uint256 has 78 digits; keep headroom for the 18 fractional ones
WORKING_PRECISION = 100

Numeric = Union[Decimal, int, str]


def working_context() -> Context:
    return Context(prec=WORKING_PRECISION, traps=[InvalidOperation, DivisionByZero])


def to_decimal(value: Numeric) -> Decimal:
    """Convert a decimal string, int or Decimal to a finite Decimal.

    Floats are refused: they cannot represent ledger amounts exactly.
    """
    if isinstance(value, float):
        raise ValidationError(f"Floats are not accepted for amounts, got {value!r}")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValidationError(f"Not a decimal amount: {value!r}") from e
    if not result.is_finite():
        raise ValidationError(f"Amount must be finite, got {value!r}")
    return result


def round_down(value: Decimal) -> Decimal:
    """Truncate to 18 fractional digits toward negative infinity."""
    with localcontext(working_context()):
        return value.quantize(QUANTUM, rounding=ROUND_FLOOR)


def round_up(value: Decimal) -> Decimal:
    """Round to 18 fractional digits toward positive infinity."""
    with localcontext(working_context()):
        return value.quantize(QUANTUM, rounding=ROUND_CEILING)


def add(a: Decimal, b: Decimal) -> Decimal:
    with localcontext(working_context()):
        return a + b


def sub(a: Decimal, b: Decimal) -> Decimal:
    with localcontext(working_context()):
        return a - b


def mul_down(a: Decimal, b: Decimal) -> Decimal:
    with localcontext(working_context()):
        return round_down(a * b)


def mul_up(a: Decimal, b: Decimal) -> Decimal:
    with localcontext(working_context()):
        return round_up(a * b)


def div_down(a: Decimal, b: Decimal) -> Decimal:
    if b == 0:
        raise ComputationError(f"Division of {a} by zero")
    with localcontext(working_context()):
        return round_down(a / b)


def div_up(a: Decimal, b: Decimal) -> Decimal:
    if b == 0:
        raise ComputationError(f"Division of {a} by zero")
    with localcontext(working_context()):
        return round_up(a / b)


def complement(a: Decimal) -> Decimal:
    """Return ``1 - a`` clamped at zero."""
    return ONE - a if a < ONE else ZERO


def _pow(base: Decimal, exponent: Decimal) -> Decimal:
    if base < 0:
        raise ComputationError(
            f"Cannot raise negative base {base} to non-integer power {exponent}"
        )
    if base == 0:
        if exponent <= 0:
            raise ComputationError(f"Zero base with non-positive exponent {exponent}")
        return ZERO
    try:
        with localcontext(working_context()):
            return base**exponent
    except InvalidOperation as e:
        raise ComputationError(f"Power {base}^{exponent} is undefined") from e


def pow_down(base: Decimal, exponent: Decimal) -> Decimal:
    """``base ** exponent`` rounded down to 18 digits."""
    return round_down(_pow(base, exponent))


def pow_up(base: Decimal, exponent: Decimal) -> Decimal:
    """``base ** exponent`` rounded up to 18 digits."""
    return round_up(_pow(base, exponent))
