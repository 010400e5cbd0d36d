"""Guard settings and environment overrides."""

from dataclasses import replace
from decimal import Decimal

import pytest

from weighted_amm.config import DEFAULT_SETTINGS, settings_from_env
from weighted_amm.core.errors import ValidationError


class TestGuardSettings:
    def test_defaults(self):
        assert DEFAULT_SETTINGS.max_swap_fee == Decimal("0.1")
        assert (DEFAULT_SETTINGS.min_weight, DEFAULT_SETTINGS.max_weight) == (Decimal("1"), Decimal("9"))
        assert DEFAULT_SETTINGS.total_weight == Decimal("10")
        assert DEFAULT_SETTINGS.max_trade_divisor == Decimal("3")
        assert DEFAULT_SETTINGS.max_add_divisor == Decimal("2")
        assert DEFAULT_SETTINGS.max_remove_divisor == Decimal("3")

    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_swap_fee": Decimal("1")},
            {"min_weight": Decimal("0")},
            {"max_weight": Decimal("10")},
            {"max_trade_divisor": Decimal("0.5")},
        ],
    )
    def test_invalid_settings(self, overrides):
        with pytest.raises(ValidationError):
            replace(DEFAULT_SETTINGS, **overrides)


class TestSettingsFromEnv:
    def test_no_overrides(self, monkeypatch):
        monkeypatch.delenv("WEIGHTED_AMM_MAX_SWAP_FEE", raising=False)
        assert settings_from_env() == DEFAULT_SETTINGS

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("WEIGHTED_AMM_MAX_SWAP_FEE", "0.05")
        monkeypatch.setenv("WEIGHTED_AMM_MAX_TRADE_DIVISOR", "4")
        settings = settings_from_env()
        assert settings.max_swap_fee == Decimal("0.05")
        assert settings.max_trade_divisor == Decimal("4")
        assert settings.max_add_divisor == DEFAULT_SETTINGS.max_add_divisor

    def test_not_a_decimal(self, monkeypatch):
        monkeypatch.setenv("WEIGHTED_AMM_MAX_SWAP_FEE", "five percent")
        with pytest.raises(ValidationError):
            settings_from_env()

    def test_override_still_validated(self, monkeypatch):
        monkeypatch.setenv("WEIGHTED_AMM_MAX_SWAP_FEE", "2")
        with pytest.raises(ValidationError):
            settings_from_env()
