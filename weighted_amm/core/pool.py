"""Weighted pool data model and lifecycle."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from weighted_amm.core import fixed_point as fp
from weighted_amm.core.errors import ValidationError

# Ledger-side binding limits
MAX_BOUND_TOKENS = 8
MIN_BOUND_TOKENS = 2
MIN_WEIGHT = Decimal("1")
MAX_WEIGHT = Decimal("50")
MAX_TOTAL_WEIGHT = Decimal("50")
MIN_BALANCE = Decimal("1e-12")
MAX_SWAP_FEE = Decimal("0.1")
INIT_POOL_SUPPLY = Decimal("100")


class PoolState(Enum):
    """Lifecycle state of a pool."""
    UNBOUND = "unbound"
    BINDING = "binding"
    FINALIZED = "finalized"  # Terminal


@dataclass(frozen=True)
class TokenRecord:
    """A token bound to a pool.

    The normalized weight is never stored; it is derived from the pool's
    total weight on demand.
    """
    token: str
    reserve: Decimal
    weight: Decimal         # Denormalized
    decimals: int = fp.PRECISION

    def __post_init__(self) -> None:
        if not self.token:
            raise ValidationError("token id must be non-empty")
        if self.reserve < 0:
            raise ValidationError(f"reserve must be >= 0, got {self.reserve}")
        if self.weight <= 0:
            raise ValidationError(f"weight must be positive, got {self.weight}")


@dataclass(frozen=True)
class PoolSnapshot:
    """Consistent, immutable view of a pool at one ledger point.

    Every quote for one operation must be computed from a single snapshot;
    mixing fields read at different points yields an inconsistent price.
    """
    pool_id: str
    tokens: tuple[TokenRecord, ...]
    swap_fee: Decimal
    total_supply: Decimal
    finalized: bool = True

    def __post_init__(self) -> None:
        ids = [t.token for t in self.tokens]
        if len(set(ids)) != len(ids):
            raise ValidationError(f"duplicate token in pool {self.pool_id}: {ids}")
        if self.swap_fee < 0:
            raise ValidationError(f"swap fee must be >= 0, got {self.swap_fee}")
        if self.total_supply < 0:
            raise ValidationError(f"total supply must be >= 0, got {self.total_supply}")

    @property
    def token_ids(self) -> tuple[str, ...]:
        return tuple(t.token for t in self.tokens)

    @property
    def total_weight(self) -> Decimal:
        """Sum of denormalized weights."""
        return sum((t.weight for t in self.tokens), fp.ZERO)

    def find(self, token: str) -> Optional[TokenRecord]:
        for record in self.tokens:
            if record.token == token:
                return record
        return None

    def token(self, token: str) -> TokenRecord:
        """Get the record for ``token``, raising if it is not bound."""
        record = self.find(token)
        if record is None:
            raise ValidationError(f"token {token} is not bound to pool {self.pool_id}")
        return record

    def normalized_weight(self, token: str) -> Decimal:
        return fp.div_down(self.token(token).weight, self.total_weight)

    def other_token(self, token: str) -> TokenRecord:
        """The single token that is not ``token`` in a two-token pool.

        Iterates in binding order, so the result is deterministic.
        """
        self.token(token)
        others = [t for t in self.tokens if t.token != token]
        if len(others) != 1:
            raise ValidationError(
                f"pool {self.pool_id} has {len(self.tokens)} tokens, expected 2"
            )
        return others[0]

    def require_finalized(self) -> "PoolSnapshot":
        if not self.finalized:
            raise ValidationError(f"pool {self.pool_id} is not finalized")
        return self

    def pair(self, token_in: str, token_out: str) -> tuple[TokenRecord, TokenRecord]:
        """Records for a swap pair on a finalized pool."""
        self.require_finalized()
        if token_in == token_out:
            raise ValidationError(f"token_in and token_out are both {token_in}")
        return self.token(token_in), self.token(token_out)


@dataclass
class Pool:
    """A weighted pool moving through ``UNBOUND -> BINDING -> FINALIZED``.

    Binding and fee administration are only allowed before finalization.
    Finalizing freezes the token set and mints the initial pool shares.
    Reserve changes after finalization come from the ledger; this model
    only records them through :meth:`apply_balances`.
    """
    pool_id: str
    swap_fee: Decimal = Decimal("0.000001")
    _tokens: dict[str, TokenRecord] = field(default_factory=dict, init=False)
    total_supply: Decimal = field(default=fp.ZERO, init=False)
    state: PoolState = field(default=PoolState.UNBOUND, init=False)

    def __post_init__(self) -> None:
        self._check_fee(self.swap_fee)

    @staticmethod
    def _check_fee(fee: Decimal) -> None:
        if fee < 0 or fee > MAX_SWAP_FEE:
            raise ValidationError(f"swap fee must be in [0, {MAX_SWAP_FEE}], got {fee}")

    def _require_open(self) -> None:
        if self.state is PoolState.FINALIZED:
            raise ValidationError(f"pool {self.pool_id} is finalized")

    @property
    def finalized(self) -> bool:
        return self.state is PoolState.FINALIZED

    @property
    def tokens(self) -> tuple[TokenRecord, ...]:
        return tuple(self._tokens.values())

    @property
    def total_weight(self) -> Decimal:
        return sum((t.weight for t in self._tokens.values()), fp.ZERO)

    def _check_binding(self, reserve: Decimal, weight: Decimal, replacing: Decimal) -> None:
        if weight < MIN_WEIGHT or weight > MAX_WEIGHT:
            raise ValidationError(
                f"weight must be in [{MIN_WEIGHT}, {MAX_WEIGHT}], got {weight}"
            )
        if reserve < MIN_BALANCE:
            raise ValidationError(f"reserve must be >= {MIN_BALANCE}, got {reserve}")
        if self.total_weight - replacing + weight > MAX_TOTAL_WEIGHT:
            raise ValidationError(f"total weight would exceed {MAX_TOTAL_WEIGHT}")

    def bind(self, token: str, reserve: Decimal, weight: Decimal, decimals: int = fp.PRECISION) -> None:
        """Bind a new token with its initial reserve and denormalized weight."""
        self._require_open()
        if token in self._tokens:
            raise ValidationError(f"token {token} is already bound")
        if len(self._tokens) >= MAX_BOUND_TOKENS:
            raise ValidationError(f"pool already holds {MAX_BOUND_TOKENS} tokens")
        self._check_binding(reserve, weight, replacing=fp.ZERO)
        self._tokens[token] = TokenRecord(token, reserve, weight, decimals)
        self.state = PoolState.BINDING

    def rebind(self, token: str, reserve: Decimal, weight: Decimal) -> None:
        """Change reserve and weight of an already bound token."""
        self._require_open()
        current = self._tokens.get(token)
        if current is None:
            raise ValidationError(f"token {token} is not bound")
        self._check_binding(reserve, weight, replacing=current.weight)
        self._tokens[token] = TokenRecord(token, reserve, weight, current.decimals)

    def set_swap_fee(self, fee: Decimal) -> None:
        self._require_open()
        self._check_fee(fee)
        self.swap_fee = fee

    def finalize(self) -> None:
        """Freeze the token set and mint the initial pool shares."""
        self._require_open()
        if len(self._tokens) < MIN_BOUND_TOKENS:
            raise ValidationError(
                f"pool needs at least {MIN_BOUND_TOKENS} tokens to finalize"
            )
        self.total_supply = INIT_POOL_SUPPLY
        self.state = PoolState.FINALIZED

    def apply_balances(self, reserves: dict[str, Decimal], total_supply: Decimal) -> None:
        """Record reserves and supply observed on the ledger after an operation."""
        if not self.finalized:
            raise ValidationError(f"pool {self.pool_id} is not finalized")
        for token, reserve in reserves.items():
            current = self._tokens.get(token)
            if current is None:
                raise ValidationError(f"token {token} is not bound")
            self._tokens[token] = TokenRecord(token, reserve, current.weight, current.decimals)
        self.total_supply = total_supply

    def snapshot(self) -> PoolSnapshot:
        return PoolSnapshot(
            pool_id=self.pool_id,
            tokens=self.tokens,
            swap_fee=self.swap_fee,
            total_supply=self.total_supply,
            finalized=self.finalized,
        )
