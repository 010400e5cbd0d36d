"""Turn approved guard results into ledger operation descriptors."""

from decimal import Decimal
from typing import Mapping, Optional

from weighted_amm.core import fixed_point as fp
from weighted_amm.core.errors import ValidationError
from weighted_amm.core.pool import PoolSnapshot
from weighted_amm.core.units import amount_to_units, format_amount
from weighted_amm.guard.result import Approved, GuardResult, Leg, OperationKind
from weighted_amm.quote.descriptor import OperationDescriptor, Param


class QuoteBuilder:
    """Builds :class:`OperationDescriptor` objects from :class:`Approved` results.

    Amounts the caller pays are converted to units rounding up, amounts the
    caller receives rounding down. Maximum bounds round down and minimum
    bounds round up, so the ledger never accepts more than the caller
    declared. Pool shares, weights, fees and prices always use 18 decimals.
    """

    def __init__(self, decimals: Optional[Mapping[str, int]] = None):
        self._decimals = dict(decimals or {})

    @classmethod
    def for_snapshot(cls, snapshot: PoolSnapshot) -> "QuoteBuilder":
        """Builder using the token precisions reported in ``snapshot``."""
        return cls({t.token: t.decimals for t in snapshot.tokens})

    def _decimals_of(self, token: str) -> Optional[int]:
        return self._decimals.get(token)

    def _amount(self, name: str, token: str, amount: Decimal, round_up: bool) -> Param:
        return Param(
            name,
            format_amount(amount),
            amount_to_units(amount, self._decimals_of(token), round_up=round_up),
        )

    @staticmethod
    def _wad(name: str, value: Decimal, round_up: bool = False) -> Param:
        return Param(name, format_amount(value), amount_to_units(value, fp.PRECISION, round_up=round_up))

    @staticmethod
    def _max_price(value: Optional[Decimal]) -> Param:
        if value is None:
            return Param("maxPrice", str(fp.MAX_UINT256), fp.MAX_UINT256)
        return QuoteBuilder._wad("maxPrice", value)

    def build(self, result: GuardResult) -> OperationDescriptor:
        """Build the descriptor for an approved operation.

        Raises:
            The carried error if ``result`` is a rejection
            ValidationError: If the approval is a bare bound check
        """
        approved = result.raise_for_status()
        if approved.kind is None:
            raise ValidationError("bound check approvals do not describe an operation")
        handler = {
            OperationKind.SETUP: self._setup,
            OperationKind.SWAP_EXACT_AMOUNT_IN: self._swap_exact_in,
            OperationKind.SWAP_EXACT_AMOUNT_OUT: self._swap_exact_out,
            OperationKind.JOINSWAP_EXTERN_AMOUNT_IN: self._join_extern_in,
            OperationKind.EXITSWAP_EXTERN_AMOUNT_OUT: self._exit_extern_out,
            OperationKind.EXIT_POOL: self._exit_pool,
        }[approved.kind]
        params, approvals = handler(approved)
        return OperationDescriptor(
            kind=approved.kind,
            pool_id=approved.pool_id,
            params=params,
            expected_in=approved.legs_in,
            expected_out=approved.legs_out,
            approvals=approvals,
        )

    def _setup(self, a: Approved) -> tuple[tuple[Param, ...], tuple[Leg, ...]]:
        token, base = a.legs_in
        params = (
            Param("dataToken", token.token),
            self._amount("dataTokenAmount", token.token, token.amount, round_up=True),
            self._wad("dataTokenWeight", token.weight),
            Param("baseToken", base.token),
            self._amount("baseTokenAmount", base.token, base.amount, round_up=True),
            self._wad("baseTokenWeight", base.weight),
            self._wad("swapFee", a.swap_fee),
        )
        return params, (token, base)

    def _swap_exact_in(self, a: Approved) -> tuple[tuple[Param, ...], tuple[Leg, ...]]:
        (leg_in,), (leg_out,) = a.legs_in, a.legs_out
        params = (
            Param("tokenIn", leg_in.token),
            self._amount("tokenAmountIn", leg_in.token, leg_in.amount, round_up=True),
            Param("tokenOut", leg_out.token),
            self._amount("minAmountOut", leg_out.token, a.bound, round_up=True),
            self._max_price(a.max_price),
        )
        return params, (leg_in,)

    def _swap_exact_out(self, a: Approved) -> tuple[tuple[Param, ...], tuple[Leg, ...]]:
        (leg_in,), (leg_out,) = a.legs_in, a.legs_out
        params = (
            Param("tokenIn", leg_in.token),
            self._amount("maxAmountIn", leg_in.token, a.bound, round_up=False),
            Param("tokenOut", leg_out.token),
            self._amount("tokenAmountOut", leg_out.token, leg_out.amount, round_up=False),
            self._max_price(a.max_price),
        )
        # The pool may pull up to the declared maximum
        return params, (Leg(leg_in.token, a.bound),)

    def _join_extern_in(self, a: Approved) -> tuple[tuple[Param, ...], tuple[Leg, ...]]:
        (leg_in,) = a.legs_in
        params = (
            Param("tokenIn", leg_in.token),
            self._amount("tokenAmountIn", leg_in.token, leg_in.amount, round_up=True),
            self._wad("minPoolAmountOut", a.bound, round_up=True),
        )
        return params, (leg_in,)

    def _exit_extern_out(self, a: Approved) -> tuple[tuple[Param, ...], tuple[Leg, ...]]:
        (leg_out,) = a.legs_out
        params = (
            Param("tokenOut", leg_out.token),
            self._amount("tokenAmountOut", leg_out.token, leg_out.amount, round_up=False),
            self._wad("maxPoolAmountIn", a.bound),
        )
        return params, ()

    def _exit_pool(self, a: Approved) -> tuple[tuple[Param, ...], tuple[Leg, ...]]:
        (shares,) = a.legs_in
        limits = a.limits or tuple(Leg(leg.token, fp.ZERO) for leg in a.legs_out)
        params = (
            self._wad("poolAmountIn", shares.amount),
            Param(
                "minAmountsOut",
                tuple(format_amount(leg.amount) for leg in limits),
                tuple(
                    amount_to_units(leg.amount, self._decimals_of(leg.token), round_up=True)
                    for leg in limits
                ),
            ),
        )
        return params, ()
