"""Weighted constant-product pool math.

Closed-form pricing for pools whose invariant is the product of each
reserve raised to its normalized weight:

    V = Π B_k ^ (W_k / ΣW)

All amounts are ``Decimal`` values at 18 fractional digits. Each step rounds
in the pool's favour so a quote never overstates what the caller receives
or understates what the caller pays. Fees are fractions in [0, 1).
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from weighted_amm.core import fixed_point as fp
from weighted_amm.core.errors import InsufficientLiquidity, ValidationError
from weighted_amm.core.pool import PoolSnapshot

__all__ = [
    "spot_price",
    "spot_price_sans_fee",
    "calc_out_given_in",
    "calc_in_given_out",
    "calc_pool_out_given_single_in",
    "calc_single_in_given_pool_out",
    "calc_single_out_given_pool_in",
    "calc_pool_in_given_single_out",
    "calc_proportional_join",
    "calc_proportional_exit",
    "MathEngine",
]


def _require_positive(name: str, value: Decimal) -> None:
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")


def _require_amount(name: str, value: Decimal) -> None:
    if value < 0:
        raise ValidationError(f"{name} must be >= 0, got {value}")


def _require_fee(fee: Decimal) -> None:
    if fee < 0 or fee >= fp.ONE:
        raise ValidationError(f"swap fee must be in [0, 1), got {fee}")


def _normalized_weight(weight: Decimal, total_weight: Decimal, round_up: bool) -> Decimal:
    _require_positive("weight", weight)
    if total_weight < weight:
        raise ValidationError(
            f"total weight {total_weight} is smaller than token weight {weight}"
        )
    if round_up:
        return fp.div_up(weight, total_weight)
    return fp.div_down(weight, total_weight)


# =============================================================================
# Spot price
# =============================================================================


def spot_price_sans_fee(
    balance_in: Decimal,
    weight_in: Decimal,
    balance_out: Decimal,
    weight_out: Decimal,
) -> Decimal:
    """Marginal price of ``token_out`` in units of ``token_in``, without fee.

    Formula:
        sp = (balance_in / weight_in) / (balance_out / weight_out)
    """
    for name, value in (
        ("balance_in", balance_in),
        ("weight_in", weight_in),
        ("balance_out", balance_out),
        ("weight_out", weight_out),
    ):
        _require_positive(name, value)
    numer = fp.div_up(balance_in, weight_in)
    denom = fp.div_down(balance_out, weight_out)
    if denom == 0:
        raise InsufficientLiquidity(f"balance_out {balance_out} too small to price")
    return fp.div_up(numer, denom)


def spot_price(
    balance_in: Decimal,
    weight_in: Decimal,
    balance_out: Decimal,
    weight_out: Decimal,
    swap_fee: Decimal,
) -> Decimal:
    """Marginal price of ``token_out`` in units of ``token_in``, fee included.

    Formula:
        sp = (balance_in / weight_in) / (balance_out / weight_out) * 1 / (1 - fee)

    Rounded up: it is the price the caller pays.
    """
    _require_fee(swap_fee)
    ratio = spot_price_sans_fee(balance_in, weight_in, balance_out, weight_out)
    scale = fp.div_up(fp.ONE, fp.complement(swap_fee))
    return fp.mul_up(ratio, scale)


# =============================================================================
# Swaps
# =============================================================================


def calc_out_given_in(
    balance_in: Decimal,
    weight_in: Decimal,
    balance_out: Decimal,
    weight_out: Decimal,
    amount_in: Decimal,
    swap_fee: Decimal,
) -> Decimal:
    """Calculate the output received for an exact input (sell order).

    Formula:
        amount_in' = amount_in * (1 - fee)
        amount_out = balance_out * (1 - (balance_in / (balance_in + amount_in'))^(weight_in / weight_out))

    Args:
        balance_in: Reserve of the token paid in
        weight_in: Denormalized weight of the token paid in
        balance_out: Reserve of the token received
        weight_out: Denormalized weight of the token received
        amount_in: Amount paid in
        swap_fee: Swap fee as a fraction

    Returns:
        Amount out, rounded down

    Raises:
        ValidationError: On non-positive reserves or weights, negative amount
            or a fee outside [0, 1)
        InsufficientLiquidity: If the computed output would drain the reserve
    """
    _require_positive("balance_in", balance_in)
    _require_positive("weight_in", weight_in)
    _require_positive("balance_out", balance_out)
    _require_positive("weight_out", weight_out)
    _require_amount("amount_in", amount_in)
    _require_fee(swap_fee)

    if amount_in == 0:
        return fp.ZERO

    adjusted_in = fp.mul_down(amount_in, fp.complement(swap_fee))
    # base rounds up and exponent down: both shrink the output
    base = fp.div_up(balance_in, fp.add(balance_in, adjusted_in))
    exponent = fp.div_down(weight_in, weight_out)
    power = fp.pow_up(base, exponent)
    amount_out = fp.mul_down(balance_out, fp.complement(power))

    if amount_out >= balance_out:
        raise InsufficientLiquidity(
            f"Output {amount_out} would drain reserve {balance_out}"
        )
    return amount_out


def calc_in_given_out(
    balance_in: Decimal,
    weight_in: Decimal,
    balance_out: Decimal,
    weight_out: Decimal,
    amount_out: Decimal,
    swap_fee: Decimal,
) -> Decimal:
    """Calculate the input required for an exact output (buy order).

    Formula:
        amount_in = balance_in * ((balance_out / (balance_out - amount_out))^(weight_out / weight_in) - 1) / (1 - fee)

    Returns:
        Amount in, rounded up

    Raises:
        InsufficientLiquidity: If amount_out >= balance_out
    """
    _require_positive("balance_in", balance_in)
    _require_positive("weight_in", weight_in)
    _require_positive("balance_out", balance_out)
    _require_positive("weight_out", weight_out)
    _require_amount("amount_out", amount_out)
    _require_fee(swap_fee)

    if amount_out == 0:
        return fp.ZERO
    if amount_out >= balance_out:
        raise InsufficientLiquidity(
            f"Requested {amount_out} but reserve is only {balance_out}"
        )

    base = fp.div_up(balance_out, fp.sub(balance_out, amount_out))
    exponent = fp.div_up(weight_out, weight_in)
    power = fp.pow_up(base, exponent)
    amount_in_before_fee = fp.mul_up(balance_in, fp.sub(power, fp.ONE))
    return fp.div_up(amount_in_before_fee, fp.complement(swap_fee))


# =============================================================================
# Single-asset join / exit
# =============================================================================


def calc_pool_out_given_single_in(
    balance_in: Decimal,
    weight_in: Decimal,
    pool_supply: Decimal,
    total_weight: Decimal,
    amount_in: Decimal,
    swap_fee: Decimal,
) -> Decimal:
    """Calculate pool shares minted for a single-asset deposit.

    Only the part of the deposit that is not proportional to the token's
    normalized weight is effectively swapped, so only that part is taxed:

        zaz = (1 - normalized_weight) * fee
        new_balance = balance_in + amount_in * (1 - zaz)
        pool_out = supply * ((new_balance / balance_in)^normalized_weight - 1)

    Returns:
        Pool shares out, rounded down
    """
    _require_positive("balance_in", balance_in)
    _require_positive("pool_supply", pool_supply)
    _require_amount("amount_in", amount_in)
    _require_fee(swap_fee)
    normalized_weight = _normalized_weight(weight_in, total_weight, round_up=False)

    if amount_in == 0:
        return fp.ZERO

    zaz = fp.mul_up(fp.complement(normalized_weight), swap_fee)
    amount_in_after_fee = fp.mul_down(amount_in, fp.complement(zaz))
    new_balance_in = fp.add(balance_in, amount_in_after_fee)
    token_in_ratio = fp.div_down(new_balance_in, balance_in)
    pool_ratio = fp.pow_down(token_in_ratio, normalized_weight)
    new_pool_supply = fp.mul_down(pool_ratio, pool_supply)
    return max(fp.sub(new_pool_supply, pool_supply), fp.ZERO)


def calc_single_in_given_pool_out(
    balance_in: Decimal,
    weight_in: Decimal,
    pool_supply: Decimal,
    total_weight: Decimal,
    pool_amount_out: Decimal,
    swap_fee: Decimal,
) -> Decimal:
    """Calculate the single-asset deposit required to mint ``pool_amount_out``.

    Inverse of :func:`calc_pool_out_given_single_in`.

    Returns:
        Token amount in, rounded up
    """
    _require_positive("balance_in", balance_in)
    _require_positive("pool_supply", pool_supply)
    _require_amount("pool_amount_out", pool_amount_out)
    _require_fee(swap_fee)
    normalized_weight = _normalized_weight(weight_in, total_weight, round_up=False)

    if pool_amount_out == 0:
        return fp.ZERO

    new_pool_supply = fp.add(pool_supply, pool_amount_out)
    pool_ratio = fp.div_up(new_pool_supply, pool_supply)
    boo = fp.div_up(fp.ONE, normalized_weight)
    token_in_ratio = fp.pow_up(pool_ratio, boo)
    new_balance_in = fp.mul_up(token_in_ratio, balance_in)
    amount_in_after_fee = fp.sub(new_balance_in, balance_in)
    zar = fp.mul_up(fp.complement(normalized_weight), swap_fee)
    return fp.div_up(amount_in_after_fee, fp.complement(zar))


def calc_single_out_given_pool_in(
    balance_out: Decimal,
    weight_out: Decimal,
    pool_supply: Decimal,
    total_weight: Decimal,
    pool_amount_in: Decimal,
    swap_fee: Decimal,
) -> Decimal:
    """Calculate tokens released when burning ``pool_amount_in`` shares.

    Formula:
        token_out_ratio = ((supply - pool_in) / supply)^(1 / normalized_weight)
        before_fee = balance_out * (1 - token_out_ratio)
        amount_out = before_fee * (1 - (1 - normalized_weight) * fee)

    Returns:
        Token amount out, rounded down

    Raises:
        InsufficientLiquidity: If the burn covers the whole supply or the
            output would drain the reserve
    """
    _require_positive("balance_out", balance_out)
    _require_positive("pool_supply", pool_supply)
    _require_amount("pool_amount_in", pool_amount_in)
    _require_fee(swap_fee)
    weight_exp = _normalized_weight(weight_out, total_weight, round_up=True)
    weight_fee = _normalized_weight(weight_out, total_weight, round_up=False)

    if pool_amount_in == 0:
        return fp.ZERO
    if pool_amount_in >= pool_supply:
        raise InsufficientLiquidity(
            f"Cannot burn {pool_amount_in} shares out of supply {pool_supply}"
        )

    new_pool_supply = fp.sub(pool_supply, pool_amount_in)
    pool_ratio = fp.div_up(new_pool_supply, pool_supply)
    exponent = fp.div_down(fp.ONE, weight_exp)
    token_out_ratio = fp.pow_up(pool_ratio, exponent)
    new_balance_out = fp.mul_up(token_out_ratio, balance_out)
    amount_out_before_fee = max(fp.sub(balance_out, new_balance_out), fp.ZERO)
    zaz = fp.mul_up(fp.complement(weight_fee), swap_fee)
    amount_out = fp.mul_down(amount_out_before_fee, fp.complement(zaz))

    if amount_out >= balance_out:
        raise InsufficientLiquidity(
            f"Output {amount_out} would drain reserve {balance_out}"
        )
    return amount_out


def calc_pool_in_given_single_out(
    balance_out: Decimal,
    weight_out: Decimal,
    pool_supply: Decimal,
    total_weight: Decimal,
    amount_out: Decimal,
    swap_fee: Decimal,
) -> Decimal:
    """Calculate pool shares that must be burned to withdraw ``amount_out``.

    Inverse of :func:`calc_single_out_given_pool_in`.

    Returns:
        Pool shares in, rounded up

    Raises:
        InsufficientLiquidity: If the fee-grossed withdrawal reaches the reserve
    """
    _require_positive("balance_out", balance_out)
    _require_positive("pool_supply", pool_supply)
    _require_amount("amount_out", amount_out)
    _require_fee(swap_fee)
    weight_exp = _normalized_weight(weight_out, total_weight, round_up=True)
    weight_fee = _normalized_weight(weight_out, total_weight, round_up=False)

    if amount_out == 0:
        return fp.ZERO

    zar = fp.mul_up(fp.complement(weight_fee), swap_fee)
    amount_out_before_fee = fp.div_up(amount_out, fp.complement(zar))
    if amount_out_before_fee >= balance_out:
        raise InsufficientLiquidity(
            f"Withdrawal {amount_out_before_fee} would drain reserve {balance_out}"
        )

    new_balance_out = fp.sub(balance_out, amount_out_before_fee)
    token_out_ratio = fp.div_down(new_balance_out, balance_out)
    pool_ratio = fp.pow_down(token_out_ratio, weight_exp)
    new_pool_supply = fp.mul_down(pool_ratio, pool_supply)
    return fp.sub(pool_supply, new_pool_supply)


# =============================================================================
# Proportional (all-asset) join / exit
# =============================================================================


def calc_proportional_join(
    balances: Sequence[Decimal],
    pool_supply: Decimal,
    pool_amount_out: Decimal,
) -> list[Decimal]:
    """Token amounts required, per reserve, to mint ``pool_amount_out`` shares.

    No fee applies. Each amount is rounded up.
    """
    _require_positive("pool_supply", pool_supply)
    _require_amount("pool_amount_out", pool_amount_out)
    if pool_amount_out == 0:
        return [fp.ZERO for _ in balances]
    ratio = fp.div_up(pool_amount_out, pool_supply)
    return [fp.mul_up(ratio, balance) for balance in balances]


def calc_proportional_exit(
    balances: Sequence[Decimal],
    pool_supply: Decimal,
    pool_amount_in: Decimal,
) -> list[Decimal]:
    """Token amounts released, per reserve, when burning ``pool_amount_in`` shares.

    No fee applies. Each amount is rounded down.
    """
    _require_positive("pool_supply", pool_supply)
    _require_amount("pool_amount_in", pool_amount_in)
    if pool_amount_in > pool_supply:
        raise InsufficientLiquidity(
            f"Cannot burn {pool_amount_in} shares out of supply {pool_supply}"
        )
    if pool_amount_in == 0:
        return [fp.ZERO for _ in balances]
    ratio = fp.div_down(pool_amount_in, pool_supply)
    return [fp.mul_down(ratio, balance) for balance in balances]


# =============================================================================
# Snapshot-level engine
# =============================================================================


@dataclass(frozen=True)
class MathEngine:
    """Stateless adapter binding the pool formulas to a :class:`PoolSnapshot`.

    Each method looks up reserves, weights, fee and supply for the named
    tokens in the snapshot and delegates to the module-level formula. The
    snapshot must be finalized.
    """

    def spot_price(self, snapshot: PoolSnapshot, token_in: str, token_out: str) -> Decimal:
        tin, tout = snapshot.pair(token_in, token_out)
        return spot_price(tin.reserve, tin.weight, tout.reserve, tout.weight, snapshot.swap_fee)

    def spot_price_sans_fee(
        self, snapshot: PoolSnapshot, token_in: str, token_out: str
    ) -> Decimal:
        tin, tout = snapshot.pair(token_in, token_out)
        return spot_price_sans_fee(tin.reserve, tin.weight, tout.reserve, tout.weight)

    def out_given_in(
        self, snapshot: PoolSnapshot, token_in: str, token_out: str, amount_in: Decimal
    ) -> Decimal:
        tin, tout = snapshot.pair(token_in, token_out)
        return calc_out_given_in(
            tin.reserve, tin.weight, tout.reserve, tout.weight, amount_in, snapshot.swap_fee
        )

    def in_given_out(
        self, snapshot: PoolSnapshot, token_in: str, token_out: str, amount_out: Decimal
    ) -> Decimal:
        tin, tout = snapshot.pair(token_in, token_out)
        return calc_in_given_out(
            tin.reserve, tin.weight, tout.reserve, tout.weight, amount_out, snapshot.swap_fee
        )

    def pool_out_given_single_in(
        self, snapshot: PoolSnapshot, token_in: str, amount_in: Decimal
    ) -> Decimal:
        token = snapshot.require_finalized().token(token_in)
        return calc_pool_out_given_single_in(
            token.reserve,
            token.weight,
            snapshot.total_supply,
            snapshot.total_weight,
            amount_in,
            snapshot.swap_fee,
        )

    def single_in_given_pool_out(
        self, snapshot: PoolSnapshot, token_in: str, pool_amount_out: Decimal
    ) -> Decimal:
        token = snapshot.require_finalized().token(token_in)
        return calc_single_in_given_pool_out(
            token.reserve,
            token.weight,
            snapshot.total_supply,
            snapshot.total_weight,
            pool_amount_out,
            snapshot.swap_fee,
        )

    def single_out_given_pool_in(
        self, snapshot: PoolSnapshot, token_out: str, pool_amount_in: Decimal
    ) -> Decimal:
        token = snapshot.require_finalized().token(token_out)
        return calc_single_out_given_pool_in(
            token.reserve,
            token.weight,
            snapshot.total_supply,
            snapshot.total_weight,
            pool_amount_in,
            snapshot.swap_fee,
        )

    def pool_in_given_single_out(
        self, snapshot: PoolSnapshot, token_out: str, amount_out: Decimal
    ) -> Decimal:
        token = snapshot.require_finalized().token(token_out)
        return calc_pool_in_given_single_out(
            token.reserve,
            token.weight,
            snapshot.total_supply,
            snapshot.total_weight,
            amount_out,
            snapshot.swap_fee,
        )

    def proportional_exit(
        self, snapshot: PoolSnapshot, pool_amount_in: Decimal
    ) -> dict[str, Decimal]:
        snapshot.require_finalized()
        amounts = calc_proportional_exit(
            [t.reserve for t in snapshot.tokens], snapshot.total_supply, pool_amount_in
        )
        return {t.token: amount for t, amount in zip(snapshot.tokens, amounts)}

    def proportional_join(
        self, snapshot: PoolSnapshot, pool_amount_out: Decimal
    ) -> dict[str, Decimal]:
        snapshot.require_finalized()
        amounts = calc_proportional_join(
            [t.reserve for t in snapshot.tokens], snapshot.total_supply, pool_amount_out
        )
        return {t.token: amount for t, amount in zip(snapshot.tokens, amounts)}
