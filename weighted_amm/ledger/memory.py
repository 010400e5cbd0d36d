"""In-process pool state accessor backed by :class:`Pool` models."""

from decimal import Decimal
from typing import Iterable, Optional

from weighted_amm.core.errors import ValidationError
from weighted_amm.core.pool import Pool, PoolSnapshot
from weighted_amm.ledger.interfaces import PoolStateAccessor


class InMemoryPoolStateAccessor(PoolStateAccessor):
    """Serves snapshots of locally held pools and share balances.

    Useful offline and in tests. Pools are either live :class:`Pool` models,
    snapshotted on each fetch, or fixed snapshots loaded from elsewhere.
    Share balances are only known for accounts registered with
    :meth:`set_shares`.
    """

    def __init__(self, pools: Iterable[Pool] = ()):
        self._pools: dict[str, Pool] = {}
        self._snapshots: dict[str, PoolSnapshot] = {}
        self._shares: dict[tuple[str, str], Decimal] = {}
        for pool in pools:
            self.add_pool(pool)

    def add_pool(self, pool: Pool) -> None:
        self._pools[pool.pool_id] = pool

    def add_snapshot(self, snapshot: PoolSnapshot) -> None:
        self._snapshots[snapshot.pool_id] = snapshot

    def set_shares(self, pool_id: str, account: str, shares: Decimal) -> None:
        self._shares[(pool_id, account)] = shares

    def fetch_snapshot(self, pool_id: str) -> PoolSnapshot:
        pool = self._pools.get(pool_id)
        if pool is not None:
            return pool.snapshot()
        snapshot = self._snapshots.get(pool_id)
        if snapshot is None:
            raise ValidationError(f"unknown pool {pool_id}")
        return snapshot

    def shares_balance(self, pool_id: str, account: str) -> Optional[Decimal]:
        return self._shares.get((pool_id, account))
