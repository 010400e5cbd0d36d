"""Typed failures raised by pool math and guards."""


class PoolError(Exception):
    """Base error for pool pricing and guard operations."""

    pass


class ValidationError(PoolError):
    """Fee, weight, amount or lifecycle precondition violated."""

    pass


class InsufficientLiquidity(PoolError):
    """Requested output reaches the reserve, or a denominator would be non-positive."""

    pass


class SlippageExceeded(PoolError):
    """Computed amount violates a caller-declared bound."""

    pass


class InsufficientBalance(PoolError):
    """Caller does not hold enough shares or tokens for the operation."""

    pass


class ComputationError(PoolError):
    """A power could not be evaluated in the real domain."""

    pass
