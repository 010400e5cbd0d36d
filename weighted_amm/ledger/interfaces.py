"""Collaborators the engine consumes but does not implement."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from weighted_amm.core.pool import PoolSnapshot
from weighted_amm.quote.descriptor import OperationDescriptor


@dataclass(frozen=True)
class Receipt:
    """Acknowledgement returned by a ledger submitter."""
    transaction_id: str
    status: bool = True
    data: dict[str, Any] = field(default_factory=dict)


class PoolStateAccessor(ABC):
    """Read-only source of pool snapshots.

    Implementations must capture every field of a snapshot from one
    consistent ledger point.
    """

    @abstractmethod
    def fetch_snapshot(self, pool_id: str) -> PoolSnapshot:
        """Return a consistent snapshot of ``pool_id``."""
        pass

    def shares_balance(self, pool_id: str, account: str) -> Optional[Decimal]:
        """Pool shares held by ``account``, or None when not derivable locally."""
        return None


class LedgerSubmitter(ABC):
    """Submits operation descriptors to the ledger.

    Owns retry policy. Failures propagate to the caller unchanged.
    """

    @abstractmethod
    def submit(self, account: str, descriptor: OperationDescriptor) -> Receipt:
        pass


class TokenApprover(ABC):
    """Grants a spender the right to pull tokens from an account."""

    @abstractmethod
    def approve(self, account: str, token: str, spender: str, units: int) -> Receipt:
        pass
