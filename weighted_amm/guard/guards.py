"""Safety bounds applied on top of pool math.

Every guard is a pure decision over (pool snapshot, requested operation,
caller-declared bounds) and returns :class:`Approved` or :class:`Rejected`.
Guards never fetch state, never mutate it and never raise for an unsafe
request; the rejection carries the typed error instead.
"""

from decimal import Decimal
from typing import Callable, Mapping, Optional

from weighted_amm.config import DEFAULT_SETTINGS, GuardSettings
from weighted_amm.core import fixed_point as fp
from weighted_amm.core.errors import (
    InsufficientBalance,
    PoolError,
    SlippageExceeded,
    ValidationError,
)
from weighted_amm.core.pool import PoolSnapshot
from weighted_amm.core.units import quantize_to_decimals
from weighted_amm.core.weighted_math import MathEngine, spot_price
from weighted_amm.guard.result import (
    Approved,
    GuardResult,
    Leg,
    OperationKind,
    reject,
)


def _positive(name: str, value: Decimal) -> Optional[ValidationError]:
    if value <= 0:
        return ValidationError(f"{name} must be positive, got {value}")
    return None


class GuardLayer:
    """Creation-time and operation-time guards for a weighted pool.

    Limits come from :class:`GuardSettings`:
    - swap fee at most 10%, creation weight within [1, 9] of a 10-unit split
    - single swap at most 1/3 of the affected reserve
    - single-asset deposit at most 1/2, withdrawal at most 1/3 of the reserve
    """

    def __init__(
        self,
        settings: GuardSettings = DEFAULT_SETTINGS,
        math: Optional[MathEngine] = None,
    ):
        self.settings = settings
        self.math = math or MathEngine()

    # -------------------------------------------------------------------------
    # Limits
    # -------------------------------------------------------------------------

    def max_trade_amount(self, snapshot: PoolSnapshot, token: str) -> Decimal:
        """Largest amount of ``token`` a single swap may move in or out."""
        return fp.div_down(snapshot.token(token).reserve, self.settings.max_trade_divisor)

    def max_add_amount(self, snapshot: PoolSnapshot, token: str) -> Decimal:
        return fp.div_down(snapshot.token(token).reserve, self.settings.max_add_divisor)

    def max_remove_amount(self, snapshot: PoolSnapshot, token: str) -> Decimal:
        return fp.div_down(snapshot.token(token).reserve, self.settings.max_remove_divisor)

    @staticmethod
    def _to_ledger(
        snapshot: PoolSnapshot, token: str, amount: Decimal, round_up: bool = False
    ) -> Decimal:
        """``amount`` rounded to the decimals the ledger keeps for ``token``.

        Amounts the caller pays and minimum bounds round up; amounts the
        caller receives and maximum bounds round down, exactly as the
        descriptor converts them to units.
        """
        return quantize_to_decimals(amount, snapshot.token(token).decimals, round_up=round_up)

    def _require_trade_size(self, snapshot: PoolSnapshot, token: str, amount: Decimal) -> None:
        """Raise if a computed swap leg moves more than reserve / 3 of ``token``."""
        limit = self.max_trade_amount(snapshot, token)
        if amount > limit:
            raise ValidationError(
                f"Trade of {amount} {token} exceeds the allowed {limit} "
                f"(reserve {snapshot.token(token).reserve})"
            )

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def check_creation(
        self,
        token: str,
        amount: Decimal,
        weight: Decimal,
        swap_fee: Decimal,
        base_token: str,
    ) -> GuardResult:
        """Validate a two-token pool launch and derive the base-token side.

        The launched token gets ``weight`` out of ``total_weight`` (10); the
        base token takes the complement, with an amount that keeps the
        initial spot price consistent with the weights:

            other_weight = 10 - weight
            other_amount = amount * other_weight / weight
        """
        s = self.settings
        if swap_fee < 0 or swap_fee > s.max_swap_fee:
            return reject(ValidationError(
                f"Swap fee {swap_fee} out of bounds (max {s.max_swap_fee})"
            ))
        if weight < s.min_weight or weight > s.max_weight:
            return reject(ValidationError(
                f"Weight {weight} out of bounds (min {s.min_weight}, max {s.max_weight})"
            ))
        error = _positive("amount", amount)
        if error:
            return reject(error)
        if token == base_token:
            return reject(ValidationError(f"token and base token are both {token}"))

        other_weight = s.total_weight - weight
        # The caller pays the base side, so it rounds up
        other_amount = fp.div_up(fp.mul_up(amount, other_weight), weight)
        return Approved(
            kind=OperationKind.SETUP,
            pool_id=None,
            legs_in=(
                Leg(token, amount, weight),
                Leg(base_token, other_amount, other_weight),
            ),
            swap_fee=swap_fee,
        )

    # -------------------------------------------------------------------------
    # Size bounds
    # -------------------------------------------------------------------------

    def _size_error(
        self, snapshot: PoolSnapshot, token: str, amount: Decimal, limit: Decimal, what: str
    ) -> Optional[PoolError]:
        error = _positive(f"{what} amount", amount)
        if error:
            return error
        if amount > limit:
            return ValidationError(
                f"{what} of {amount} {token} exceeds the allowed {limit} "
                f"(reserve {snapshot.token(token).reserve})"
            )
        return None

    def _bound_check(
        self,
        snapshot: PoolSnapshot,
        token: str,
        amount: Decimal,
        limit_of: Callable[[PoolSnapshot, str], Decimal],
        what: str,
    ) -> GuardResult:
        try:
            snapshot.require_finalized()
            error = self._size_error(snapshot, token, amount, limit_of(snapshot, token), what)
        except PoolError as e:
            return reject(e)
        if error:
            return reject(error)
        return Approved(kind=None, pool_id=snapshot.pool_id)

    def check_trade_size(self, snapshot: PoolSnapshot, token: str, amount: Decimal) -> GuardResult:
        """Approve ``amount`` of ``token`` if it is at most reserve / 3."""
        return self._bound_check(snapshot, token, amount, self.max_trade_amount, "Trade")

    def check_add_size(self, snapshot: PoolSnapshot, token: str, amount: Decimal) -> GuardResult:
        return self._bound_check(snapshot, token, amount, self.max_add_amount, "Deposit")

    def check_remove_size(self, snapshot: PoolSnapshot, token: str, amount: Decimal) -> GuardResult:
        return self._bound_check(snapshot, token, amount, self.max_remove_amount, "Withdrawal")

    def _price_error(
        self,
        snapshot: PoolSnapshot,
        token_in: str,
        token_out: str,
        amount_in: Decimal,
        amount_out: Decimal,
        max_price: Optional[Decimal],
    ) -> Optional[PoolError]:
        if max_price is None:
            return None
        price_before = self.math.spot_price(snapshot, token_in, token_out)
        if price_before > max_price:
            return SlippageExceeded(f"Spot price {price_before} exceeds max price {max_price}")
        if amount_out > 0:
            effective = fp.div_up(amount_in, amount_out)
            if effective > max_price:
                return SlippageExceeded(
                    f"Effective price {effective} exceeds max price {max_price}"
                )
        tin, tout = snapshot.pair(token_in, token_out)
        price_after = spot_price(
            fp.add(tin.reserve, amount_in),
            tin.weight,
            fp.sub(tout.reserve, amount_out),
            tout.weight,
            snapshot.swap_fee,
        )
        if price_after > max_price:
            return SlippageExceeded(
                f"Spot price after the trade {price_after} exceeds max price {max_price}"
            )
        return None

    # -------------------------------------------------------------------------
    # Swaps
    # -------------------------------------------------------------------------

    def check_buy(
        self,
        snapshot: PoolSnapshot,
        token_in: str,
        token_out: str,
        amount_out: Decimal,
        max_amount_in: Decimal,
        max_price: Optional[Decimal] = None,
    ) -> GuardResult:
        """Guard an exact-output swap.

        Rejects if ``amount_out`` or the input the pool will charge exceeds
        the trade-size bound of its reserve, or if that input exceeds
        ``max_amount_in``. Amounts are rounded to each token's decimals first.
        """
        try:
            amount_out = self._to_ledger(snapshot, token_out, amount_out)
            max_amount_in = self._to_ledger(snapshot, token_in, max_amount_in)
        except PoolError as e:
            return reject(e)
        bound = self.check_trade_size(snapshot, token_out, amount_out)
        if not bound.approved:
            return bound
        try:
            amount_in = self._to_ledger(
                snapshot,
                token_in,
                self.math.in_given_out(snapshot, token_in, token_out, amount_out),
                round_up=True,
            )
            self._require_trade_size(snapshot, token_in, amount_in)
            if amount_in > max_amount_in:
                raise SlippageExceeded(
                    f"Buying {amount_out} {token_out} costs {amount_in} {token_in}, "
                    f"more than the maximum {max_amount_in}"
                )
            error = self._price_error(
                snapshot, token_in, token_out, amount_in, amount_out, max_price
            )
        except PoolError as e:
            return reject(e)
        if error:
            return reject(error)
        return Approved(
            kind=OperationKind.SWAP_EXACT_AMOUNT_OUT,
            pool_id=snapshot.pool_id,
            legs_in=(Leg(token_in, amount_in),),
            legs_out=(Leg(token_out, amount_out),),
            bound=max_amount_in,
            max_price=max_price,
        )

    def check_sell(
        self,
        snapshot: PoolSnapshot,
        token_in: str,
        token_out: str,
        amount_in: Decimal,
        min_amount_out: Decimal,
        max_price: Optional[Decimal] = None,
    ) -> GuardResult:
        """Guard an exact-input swap.

        The amount sold, the minimum amount wanted and the amount the pool
        pays out must all respect the trade-size bound of their reserve.
        Rejects if the pool would pay out less than ``min_amount_out``, with
        the payout rounded down to the output token's decimals.
        """
        try:
            amount_in = self._to_ledger(snapshot, token_in, amount_in, round_up=True)
            min_amount_out = self._to_ledger(snapshot, token_out, min_amount_out, round_up=True)
        except PoolError as e:
            return reject(e)
        bound = self.check_trade_size(snapshot, token_in, amount_in)
        if not bound.approved:
            return bound
        if min_amount_out < 0:
            return reject(ValidationError(f"min amount out must be >= 0, got {min_amount_out}"))
        if min_amount_out > 0:
            bound = self.check_trade_size(snapshot, token_out, min_amount_out)
            if not bound.approved:
                return bound
        try:
            amount_out = self._to_ledger(
                snapshot,
                token_out,
                self.math.out_given_in(snapshot, token_in, token_out, amount_in),
            )
            self._require_trade_size(snapshot, token_out, amount_out)
            if amount_out < min_amount_out:
                raise SlippageExceeded(
                    f"Selling {amount_in} {token_in} returns {amount_out} {token_out}, "
                    f"less than the minimum {min_amount_out}"
                )
            error = self._price_error(
                snapshot, token_in, token_out, amount_in, amount_out, max_price
            )
        except PoolError as e:
            return reject(e)
        if error:
            return reject(error)
        return Approved(
            kind=OperationKind.SWAP_EXACT_AMOUNT_IN,
            pool_id=snapshot.pool_id,
            legs_in=(Leg(token_in, amount_in),),
            legs_out=(Leg(token_out, amount_out),),
            bound=min_amount_out,
            max_price=max_price,
        )

    # -------------------------------------------------------------------------
    # Liquidity
    # -------------------------------------------------------------------------

    def check_add_liquidity(
        self,
        snapshot: PoolSnapshot,
        token: str,
        amount: Decimal,
        min_pool_shares: Decimal = fp.ZERO,
    ) -> GuardResult:
        """Guard a single-asset deposit of ``amount`` (at most reserve / 2)."""
        try:
            amount = self._to_ledger(snapshot, token, amount, round_up=True)
        except PoolError as e:
            return reject(e)
        bound = self.check_add_size(snapshot, token, amount)
        if not bound.approved:
            return bound
        try:
            shares = self.math.pool_out_given_single_in(snapshot, token, amount)
        except PoolError as e:
            return reject(e)
        if shares < min_pool_shares:
            return reject(SlippageExceeded(
                f"Deposit mints {shares} pool shares, less than the minimum {min_pool_shares}"
            ))
        return Approved(
            kind=OperationKind.JOINSWAP_EXTERN_AMOUNT_IN,
            pool_id=snapshot.pool_id,
            legs_in=(Leg(token, amount),),
            legs_out=(Leg(snapshot.pool_id, shares),),
            bound=min_pool_shares,
        )

    def check_remove_liquidity(
        self,
        snapshot: PoolSnapshot,
        token: str,
        amount: Decimal,
        max_pool_shares: Decimal,
        held_shares: Decimal,
    ) -> GuardResult:
        """Guard a single-asset withdrawal of ``amount`` (at most reserve / 3).

        The caller must hold at least ``max_pool_shares``, and the shares the
        pool will burn must not exceed it.
        """
        try:
            amount = self._to_ledger(snapshot, token, amount)
        except PoolError as e:
            return reject(e)
        bound = self.check_remove_size(snapshot, token, amount)
        if not bound.approved:
            return bound
        if held_shares < max_pool_shares:
            return reject(InsufficientBalance(
                f"Holding {held_shares} pool shares, fewer than the declared {max_pool_shares}"
            ))
        try:
            shares = self.math.pool_in_given_single_out(snapshot, token, amount)
        except PoolError as e:
            return reject(e)
        if shares > max_pool_shares:
            return reject(SlippageExceeded(
                f"Withdrawing {amount} {token} burns {shares} pool shares, "
                f"more than the maximum {max_pool_shares}"
            ))
        return Approved(
            kind=OperationKind.EXITSWAP_EXTERN_AMOUNT_OUT,
            pool_id=snapshot.pool_id,
            legs_in=(Leg(snapshot.pool_id, shares),),
            legs_out=(Leg(token, amount),),
            bound=max_pool_shares,
        )

    def check_exit_pool(
        self,
        snapshot: PoolSnapshot,
        pool_shares: Decimal,
        held_shares: Decimal,
        min_amounts_out: Optional[Mapping[str, Decimal]] = None,
    ) -> GuardResult:
        """Guard a proportional exit burning ``pool_shares`` for every token."""
        error = _positive("pool shares", pool_shares)
        if error:
            return reject(error)
        if held_shares < pool_shares:
            return reject(InsufficientBalance(
                f"Holding {held_shares} pool shares, fewer than the requested {pool_shares}"
            ))
        try:
            amounts = {
                token: self._to_ledger(snapshot, token, amount)
                for token, amount in self.math.proportional_exit(snapshot, pool_shares).items()
            }
        except PoolError as e:
            return reject(e)
        minimums = {}
        for token, minimum in (min_amounts_out or {}).items():
            if token not in amounts:
                return reject(ValidationError(
                    f"token {token} is not bound to pool {snapshot.pool_id}"
                ))
            minimum = self._to_ledger(snapshot, token, minimum, round_up=True)
            minimums[token] = minimum
            if amounts[token] < minimum:
                return reject(SlippageExceeded(
                    f"Exit returns {amounts[token]} {token}, less than the minimum {minimum}"
                ))
        return Approved(
            kind=OperationKind.EXIT_POOL,
            pool_id=snapshot.pool_id,
            legs_in=(Leg(snapshot.pool_id, pool_shares),),
            legs_out=tuple(Leg(token, amount) for token, amount in amounts.items()),
            limits=tuple(Leg(token, minimums.get(token, fp.ZERO)) for token in amounts),
        )
