"""Weighted constant-product pool engine: math, guards and quote building."""

from weighted_amm.client import PoolClient, Quote
from weighted_amm.config import DEFAULT_SETTINGS, GuardSettings, settings_from_env
from weighted_amm.core.errors import (
    ComputationError,
    InsufficientBalance,
    InsufficientLiquidity,
    PoolError,
    SlippageExceeded,
    ValidationError,
)
from weighted_amm.core.pool import Pool, PoolSnapshot, TokenRecord
from weighted_amm.core.weighted_math import MathEngine
from weighted_amm.guard.guards import GuardLayer
from weighted_amm.quote.builder import QuoteBuilder

__all__ = [
    "PoolClient",
    "Quote",
    "GuardLayer",
    "GuardSettings",
    "DEFAULT_SETTINGS",
    "settings_from_env",
    "MathEngine",
    "QuoteBuilder",
    "Pool",
    "PoolSnapshot",
    "TokenRecord",
    "PoolError",
    "ValidationError",
    "InsufficientLiquidity",
    "SlippageExceeded",
    "InsufficientBalance",
    "ComputationError",
]
