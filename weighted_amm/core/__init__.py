"""Core pool model and weighted math."""

from weighted_amm.core.errors import (
    ComputationError,
    InsufficientBalance,
    InsufficientLiquidity,
    PoolError,
    SlippageExceeded,
    ValidationError,
)
from weighted_amm.core.pool import Pool, PoolSnapshot, PoolState, TokenRecord
from weighted_amm.core.weighted_math import MathEngine

__all__ = [
    "PoolError",
    "ValidationError",
    "InsufficientLiquidity",
    "SlippageExceeded",
    "InsufficientBalance",
    "ComputationError",
    "Pool",
    "PoolSnapshot",
    "PoolState",
    "TokenRecord",
    "MathEngine",
]
