"""Guard limits and their environment overrides."""

from dataclasses import dataclass, replace
from decimal import Decimal
import os

from weighted_amm.core.errors import ValidationError

ENV_PREFIX = "WEIGHTED_AMM_"


@dataclass(frozen=True)
class GuardSettings:
    max_swap_fee: Decimal
    min_weight: Decimal
    max_weight: Decimal
    total_weight: Decimal       # Two-token split used by the creation guard
    max_trade_divisor: Decimal   # Swap size limit is reserve / divisor
    max_add_divisor: Decimal     # Single-asset deposit limit
    max_remove_divisor: Decimal  # Single-asset withdrawal limit

    def __post_init__(self) -> None:
        if not Decimal("0") <= self.max_swap_fee < Decimal("1"):
            raise ValidationError(f"max_swap_fee must be in [0, 1), got {self.max_swap_fee}")
        if not Decimal("0") < self.min_weight <= self.max_weight < self.total_weight:
            raise ValidationError(
                "weights must satisfy 0 < min_weight <= max_weight < total_weight"
            )
        for name in ("max_trade_divisor", "max_add_divisor", "max_remove_divisor"):
            divisor = getattr(self, name)
            if divisor < Decimal("1"):
                raise ValidationError(f"{name} must be >= 1, got {divisor}")


DEFAULT_SETTINGS = GuardSettings(
    max_swap_fee=Decimal("0.1"),
    min_weight=Decimal("1"),
    max_weight=Decimal("9"),
    total_weight=Decimal("10"),
    max_trade_divisor=Decimal("3"),
    max_add_divisor=Decimal("2"),
    max_remove_divisor=Decimal("3"),
)


def settings_from_env(base: GuardSettings = DEFAULT_SETTINGS) -> GuardSettings:
    """Override settings from ``WEIGHTED_AMM_<FIELD>`` environment variables.

    Example: ``WEIGHTED_AMM_MAX_SWAP_FEE=0.05``.
    """
    overrides = {}
    for name in GuardSettings.__dataclass_fields__:
        raw = os.environ.get(ENV_PREFIX + name.upper())
        if raw is None:
            continue
        try:
            overrides[name] = Decimal(raw)
        except ArithmeticError as e:
            raise ValidationError(f"{ENV_PREFIX}{name.upper()} is not a decimal: {raw!r}") from e
    return replace(base, **overrides) if overrides else base
