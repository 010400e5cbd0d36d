"""Guard decisions: an approved operation or a typed rejection."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from weighted_amm.core.errors import PoolError


class OperationKind(Enum):
    """Ledger operation an approval is meant for."""
    SETUP = "setup"
    SWAP_EXACT_AMOUNT_IN = "swapExactAmountIn"
    SWAP_EXACT_AMOUNT_OUT = "swapExactAmountOut"
    JOINSWAP_EXTERN_AMOUNT_IN = "joinswapExternAmountIn"
    EXITSWAP_EXTERN_AMOUNT_OUT = "exitswapExternAmountOut"
    EXIT_POOL = "exitPool"


@dataclass(frozen=True)
class Leg:
    """One token movement of an operation, seen from the caller.

    Pool shares use the pool id as their token id.
    """
    token: str
    amount: Decimal
    weight: Optional[Decimal] = None  # Only set for pool creation


@dataclass(frozen=True)
class Approved:
    """An operation that passed every guard, with canonical amounts.

    ``bound`` is the caller-declared limit the ledger will enforce:
    max amount in for exact-out operations, min amount out for exact-in ones.
    ``kind`` is None for standalone bound checks that are not operations.
    """
    kind: Optional[OperationKind]
    pool_id: Optional[str]
    legs_in: tuple[Leg, ...] = ()
    legs_out: tuple[Leg, ...] = ()
    bound: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    swap_fee: Optional[Decimal] = None
    limits: tuple[Leg, ...] = ()  # Per-token minimums for proportional exits

    @property
    def approved(self) -> bool:
        return True

    def raise_for_status(self) -> "Approved":
        return self


@dataclass(frozen=True)
class Rejected:
    """An operation refused before submission.

    Carries the typed error so callers can either inspect it or raise it.
    """
    reason: str
    error: PoolError

    @property
    def approved(self) -> bool:
        return False

    def raise_for_status(self) -> "Approved":
        raise self.error


GuardResult = Union[Approved, Rejected]


def reject(error: PoolError) -> Rejected:
    return Rejected(reason=str(error), error=error)
