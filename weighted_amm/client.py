"""Pool client composing snapshot access, math, guards and quote building.

The client holds explicit references to its capabilities instead of
inheriting them: a :class:`PoolStateAccessor` for reads, a stateless
:class:`MathEngine`, a :class:`GuardLayer`, a :class:`QuoteBuilder` per
snapshot, and optional :class:`LedgerSubmitter` / :class:`TokenApprover`
for submission. Every quote captures one snapshot and uses it throughout.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional

import structlog

from weighted_amm.core import fixed_point as fp
from weighted_amm.core.errors import ValidationError
from weighted_amm.core.pool import PoolSnapshot
from weighted_amm.core.units import amount_to_units
from weighted_amm.core.weighted_math import MathEngine
from weighted_amm.guard.guards import GuardLayer
from weighted_amm.guard.result import GuardResult
from weighted_amm.ledger.interfaces import (
    LedgerSubmitter,
    PoolStateAccessor,
    Receipt,
    TokenApprover,
)
from weighted_amm.quote.builder import QuoteBuilder
from weighted_amm.quote.descriptor import OperationDescriptor

logger = structlog.get_logger()


@dataclass(frozen=True)
class Quote:
    """A guard decision plus, when approved, its ledger descriptor."""
    result: GuardResult
    descriptor: Optional[OperationDescriptor] = None
    snapshot: Optional[PoolSnapshot] = None

    @property
    def approved(self) -> bool:
        return self.result.approved

    def raise_for_status(self) -> OperationDescriptor:
        """Return the descriptor, or raise the rejection's error."""
        self.result.raise_for_status()
        assert self.descriptor is not None
        return self.descriptor


class PoolClient:
    """Prices, guards and prepares operations against weighted pools.

    ``base_token`` names the quote asset of two-token pools (the asset the
    other, "data" token is priced in). Helpers that mention the base or data
    token require it.
    """

    def __init__(
        self,
        accessor: PoolStateAccessor,
        submitter: Optional[LedgerSubmitter] = None,
        approver: Optional[TokenApprover] = None,
        base_token: Optional[str] = None,
        guard: Optional[GuardLayer] = None,
    ):
        self.accessor = accessor
        self.submitter = submitter
        self.approver = approver
        self.base_token = base_token
        self.guard = guard or GuardLayer()
        self.math: MathEngine = self.guard.math

    # -------------------------------------------------------------------------
    # Snapshot reads
    # -------------------------------------------------------------------------

    def snapshot(self, pool_id: str) -> PoolSnapshot:
        return self.accessor.fetch_snapshot(pool_id)

    def _require_base(self) -> str:
        if self.base_token is None:
            raise ValidationError("base token is not defined")
        return self.base_token

    def get_reserve(self, pool_id: str, token: str) -> Decimal:
        return self.snapshot(pool_id).token(token).reserve

    def get_base_reserve(self, pool_id: str) -> Decimal:
        return self.get_reserve(pool_id, self._require_base())

    def get_datatoken(self, pool_id: str) -> str:
        """The token of a two-token pool that is not the base token."""
        return self.snapshot(pool_id).other_token(self._require_base()).token

    def get_datatoken_reserve(self, pool_id: str) -> Decimal:
        snapshot = self.snapshot(pool_id)
        return snapshot.other_token(self._require_base()).reserve

    def get_max_buy_quantity(self, pool_id: str, token: str) -> Decimal:
        return self.guard.max_trade_amount(self.snapshot(pool_id), token)

    def get_max_add_liquidity(self, pool_id: str, token: str) -> Decimal:
        return self.guard.max_add_amount(self.snapshot(pool_id), token)

    def get_max_remove_liquidity(self, pool_id: str, token: str) -> Decimal:
        return self.guard.max_remove_amount(self.snapshot(pool_id), token)

    # -------------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------------

    def get_spot_price(self, pool_id: str, token_in: str, token_out: str) -> Decimal:
        return self.math.spot_price(self.snapshot(pool_id), token_in, token_out)

    def get_spot_price_sans_fee(self, pool_id: str, token_in: str, token_out: str) -> Decimal:
        return self.math.spot_price_sans_fee(self.snapshot(pool_id), token_in, token_out)

    def calc_in_given_out(
        self, pool_id: str, token_in: str, token_out: str, amount_out: fp.Numeric
    ) -> Decimal:
        return self.math.in_given_out(
            self.snapshot(pool_id), token_in, token_out, fp.to_decimal(amount_out)
        )

    def calc_out_given_in(
        self, pool_id: str, token_in: str, token_out: str, amount_in: fp.Numeric
    ) -> Decimal:
        return self.math.out_given_in(
            self.snapshot(pool_id), token_in, token_out, fp.to_decimal(amount_in)
        )

    def calc_pool_out_given_single_in(
        self, pool_id: str, token_in: str, amount_in: fp.Numeric
    ) -> Decimal:
        return self.math.pool_out_given_single_in(
            self.snapshot(pool_id), token_in, fp.to_decimal(amount_in)
        )

    def calc_single_in_given_pool_out(
        self, pool_id: str, token_in: str, pool_shares: fp.Numeric
    ) -> Decimal:
        return self.math.single_in_given_pool_out(
            self.snapshot(pool_id), token_in, fp.to_decimal(pool_shares)
        )

    def calc_single_out_given_pool_in(
        self, pool_id: str, token_out: str, pool_shares: fp.Numeric
    ) -> Decimal:
        return self.math.single_out_given_pool_in(
            self.snapshot(pool_id), token_out, fp.to_decimal(pool_shares)
        )

    def calc_pool_in_given_single_out(
        self, pool_id: str, token_out: str, amount_out: fp.Numeric
    ) -> Decimal:
        return self.math.pool_in_given_single_out(
            self.snapshot(pool_id), token_out, fp.to_decimal(amount_out)
        )

    def get_base_needed(self, pool_id: str, datatoken_amount: fp.Numeric) -> Decimal:
        """Base tokens required to buy ``datatoken_amount`` data tokens."""
        base = self._require_base()
        snapshot = self.snapshot(pool_id)
        datatoken = snapshot.other_token(base).token
        return self.math.in_given_out(snapshot, base, datatoken, fp.to_decimal(datatoken_amount))

    def get_datatoken_price(self, pool_id: str) -> Decimal:
        """Base tokens required to buy one data token."""
        return self.get_base_needed(pool_id, fp.ONE)

    # -------------------------------------------------------------------------
    # Guarded quotes
    # -------------------------------------------------------------------------

    def _finish(self, operation: str, result: GuardResult, snapshot: Optional[PoolSnapshot]) -> Quote:
        if not result.approved:
            logger.info(
                "operation_rejected",
                operation=operation,
                pool=snapshot.pool_id if snapshot else None,
                error=type(result.error).__name__,
                reason=result.reason,
            )
            return Quote(result=result, snapshot=snapshot)
        builder = QuoteBuilder.for_snapshot(snapshot) if snapshot else QuoteBuilder()
        return Quote(result=result, descriptor=builder.build(result), snapshot=snapshot)

    def plan_pool_creation(
        self,
        token: str,
        amount: fp.Numeric,
        weight: fp.Numeric,
        swap_fee: fp.Numeric,
    ) -> Quote:
        """Guard a two-token pool launch against the base token.

        The base-token amount and weight are derived from ``weight`` out of a
        10-unit split.
        """
        result = self.guard.check_creation(
            token,
            fp.to_decimal(amount),
            fp.to_decimal(weight),
            fp.to_decimal(swap_fee),
            self._require_base(),
        )
        return self._finish("create", result, None)

    @staticmethod
    def _optional(value: Optional[fp.Numeric]) -> Optional[Decimal]:
        return None if value is None else fp.to_decimal(value)

    def _buy(self, snapshot, token_in, token_out, amount_out, max_amount_in, max_price) -> Quote:
        result = self.guard.check_buy(
            snapshot,
            token_in,
            token_out,
            fp.to_decimal(amount_out),
            fp.to_decimal(max_amount_in),
            self._optional(max_price),
        )
        return self._finish("buy", result, snapshot)

    def _sell(self, snapshot, token_in, token_out, amount_in, min_amount_out, max_price) -> Quote:
        result = self.guard.check_sell(
            snapshot,
            token_in,
            token_out,
            fp.to_decimal(amount_in),
            fp.to_decimal(min_amount_out),
            self._optional(max_price),
        )
        return self._finish("sell", result, snapshot)

    def quote_buy(
        self,
        pool_id: str,
        token_in: str,
        token_out: str,
        amount_out: fp.Numeric,
        max_amount_in: fp.Numeric,
        max_price: Optional[fp.Numeric] = None,
    ) -> Quote:
        """Buy exactly ``amount_out`` of ``token_out`` paying at most ``max_amount_in``."""
        return self._buy(
            self.snapshot(pool_id), token_in, token_out, amount_out, max_amount_in, max_price
        )

    def quote_sell(
        self,
        pool_id: str,
        token_in: str,
        token_out: str,
        amount_in: fp.Numeric,
        min_amount_out: fp.Numeric,
        max_price: Optional[fp.Numeric] = None,
    ) -> Quote:
        """Sell exactly ``amount_in`` of ``token_in`` for at least ``min_amount_out``."""
        return self._sell(
            self.snapshot(pool_id), token_in, token_out, amount_in, min_amount_out, max_price
        )

    def quote_buy_datatoken(
        self,
        pool_id: str,
        amount: fp.Numeric,
        max_base_amount: fp.Numeric,
        max_price: Optional[fp.Numeric] = None,
    ) -> Quote:
        """Buy data tokens paying at most ``max_base_amount`` base tokens."""
        base = self._require_base()
        snapshot = self.snapshot(pool_id)
        datatoken = snapshot.other_token(base).token
        return self._buy(snapshot, base, datatoken, amount, max_base_amount, max_price)

    def quote_sell_datatoken(
        self,
        pool_id: str,
        amount: fp.Numeric,
        min_base_amount: fp.Numeric,
        max_price: Optional[fp.Numeric] = None,
    ) -> Quote:
        """Sell data tokens for at least ``min_base_amount`` base tokens."""
        base = self._require_base()
        snapshot = self.snapshot(pool_id)
        datatoken = snapshot.other_token(base).token
        return self._sell(snapshot, datatoken, base, amount, min_base_amount, max_price)

    def quote_add_liquidity(
        self,
        pool_id: str,
        token: str,
        amount: fp.Numeric,
        min_pool_shares: fp.Numeric = "0",
    ) -> Quote:
        snapshot = self.snapshot(pool_id)
        result = self.guard.check_add_liquidity(
            snapshot, token, fp.to_decimal(amount), fp.to_decimal(min_pool_shares)
        )
        return self._finish("add_liquidity", result, snapshot)

    def _held_shares(self, pool_id: str, account: str, declared: Optional[fp.Numeric]) -> Optional[Decimal]:
        if declared is not None:
            return fp.to_decimal(declared)
        return self.accessor.shares_balance(pool_id, account)

    def quote_remove_liquidity(
        self,
        pool_id: str,
        account: str,
        token: str,
        amount: fp.Numeric,
        max_pool_shares: fp.Numeric,
        held_shares: Optional[fp.Numeric] = None,
    ) -> Quote:
        """Withdraw ``amount`` of ``token`` burning at most ``max_pool_shares``.

        The holding check is skipped when the accessor cannot report the
        account's shares and none are declared.
        """
        snapshot = self.snapshot(pool_id)
        max_shares = fp.to_decimal(max_pool_shares)
        held = self._held_shares(pool_id, account, held_shares)
        result = self.guard.check_remove_liquidity(
            snapshot,
            token,
            fp.to_decimal(amount),
            max_shares,
            max_shares if held is None else held,
        )
        return self._finish("remove_liquidity", result, snapshot)

    def quote_exit_pool(
        self,
        pool_id: str,
        account: str,
        pool_shares: fp.Numeric,
        held_shares: Optional[fp.Numeric] = None,
        min_amounts_out: Optional[Mapping[str, fp.Numeric]] = None,
    ) -> Quote:
        """Burn ``pool_shares`` for a proportional share of every reserve."""
        snapshot = self.snapshot(pool_id)
        shares = fp.to_decimal(pool_shares)
        held = self._held_shares(pool_id, account, held_shares)
        minimums = {t: fp.to_decimal(v) for t, v in (min_amounts_out or {}).items()}
        result = self.guard.check_exit_pool(
            snapshot, shares, shares if held is None else held, minimums
        )
        return self._finish("exit_pool", result, snapshot)

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    def submit(self, account: str, quote: Quote, spender: Optional[str] = None) -> Receipt:
        """Approve spending for the quote and hand it to the ledger submitter.

        ``spender`` defaults to the pool; pool creation needs it explicitly
        because the pool address only exists once the ledger creates it.
        Submission failures propagate unchanged.

        Raises:
            The rejection's error if the quote was not approved
            ValidationError: If no submitter is configured
        """
        descriptor = quote.raise_for_status()
        if self.submitter is None:
            raise ValidationError("no ledger submitter configured")
        spender = spender or descriptor.pool_id
        if descriptor.approvals:
            if self.approver is None:
                raise ValidationError("operation needs token approvals but no approver is configured")
            if spender is None:
                raise ValidationError("spender is required to approve token spending")
            decimals = {t.token: t.decimals for t in quote.snapshot.tokens} if quote.snapshot else {}
            for leg in descriptor.approvals:
                units = amount_to_units(leg.amount, decimals.get(leg.token), round_up=True)
                self.approver.approve(account, leg.token, spender, units)
        logger.info(
            "operation_submitted",
            operation=descriptor.method,
            pool=descriptor.pool_id,
            account=account,
        )
        return self.submitter.submit(account, descriptor)
