"""Pytest configuration and shared fixtures for weighted pool tests.

This module provides:
- Pytest markers for test categorization
- Shared pool, snapshot and client fixtures
- Custom assertions for rounded fixed-point values
"""

from decimal import Decimal

import pytest
import structlog

from weighted_amm.client import PoolClient
from weighted_amm.core.pool import Pool, PoolSnapshot
from weighted_amm.guard.guards import GuardLayer
from weighted_amm.ledger.memory import InMemoryPoolStateAccessor
from tests.fixtures.pool_fixtures import (
    BASE,
    PoolProfile,
    RecordingApprover,
    RecordingSubmitter,
    make_pool,
)


# ============================================================================
# Pytest Hooks
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "math: Pool formula tests")
    config.addinivalue_line("markers", "guard: Guard decision tests")
    config.addinivalue_line(
        "markers", "integration: Tests spanning client, guards and quote building"
    )
    config.addinivalue_line("markers", "edge_case: Boundary and extreme-input tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on location and name."""
    for item in items:
        if "test_weighted_math" in item.nodeid or "test_fixed_point" in item.nodeid:
            item.add_marker(pytest.mark.math)
        if "test_guards" in item.nodeid:
            item.add_marker(pytest.mark.guard)
        if "test_client" in item.nodeid or "test_cli" in item.nodeid:
            item.add_marker(pytest.mark.integration)
        if "boundary" in item.name or "edge" in item.name:
            item.add_marker(pytest.mark.edge_case)


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo any structlog configuration a test (such as the CLI) applied."""
    yield
    structlog.reset_defaults()


# ============================================================================
# Pool Fixtures
# ============================================================================


@pytest.fixture
def even_pool() -> Pool:
    """OCEAN 100 / DT 200 with equal weights and no fee."""
    return make_pool(PoolProfile.EVEN)


@pytest.fixture
def even_snapshot(even_pool) -> PoolSnapshot:
    return even_pool.snapshot()


@pytest.fixture
def fee_snapshot() -> PoolSnapshot:
    """OCEAN 100 / DT 200 with equal weights and a 0.3% fee."""
    return make_pool(PoolProfile.FEE).snapshot()


@pytest.fixture
def skewed_snapshot() -> PoolSnapshot:
    """OCEAN 1000 (weight 8) / DT 50 (weight 2) with a 1% fee."""
    return make_pool(PoolProfile.SKEWED).snapshot()


@pytest.fixture
def guard() -> GuardLayer:
    return GuardLayer()


# ============================================================================
# Client Fixtures
# ============================================================================


@pytest.fixture
def accessor(even_pool) -> InMemoryPoolStateAccessor:
    return InMemoryPoolStateAccessor([even_pool])


@pytest.fixture
def submitter() -> RecordingSubmitter:
    return RecordingSubmitter()


@pytest.fixture
def approver() -> RecordingApprover:
    return RecordingApprover()


@pytest.fixture
def client(accessor, submitter, approver) -> PoolClient:
    """Client over the even pool with recording ledger fakes."""
    return PoolClient(accessor, submitter=submitter, approver=approver, base_token=BASE)


# ============================================================================
# Tolerance Fixtures
# ============================================================================


@pytest.fixture
def decimal_tolerance() -> Decimal:
    """Tolerance for comparisons against exact rational results.

    Returns:
        Decimal("1e-15") - a few units in the 18th digit, scaled by reserves
    """
    return Decimal("1e-15")


# ============================================================================
# Custom Assertions
# ============================================================================


class PoolAssertions:
    """Assertion helpers for rounded fixed-point values."""

    @staticmethod
    def assert_close(
        actual: Decimal,
        expected: Decimal,
        tolerance: Decimal = Decimal("1e-15"),
        name: str = "value",
    ) -> None:
        diff = abs(actual - expected)
        assert diff <= tolerance, (
            f"{name} mismatch: expected {expected}, got {actual}, "
            f"diff {diff} exceeds tolerance {tolerance}"
        )

    @staticmethod
    def assert_quantized(value: Decimal, name: str = "value") -> None:
        """Assert ``value`` carries no digits past the 18th decimal place."""
        assert value == value.quantize(Decimal("1e-18")), (
            f"{name} {value} has more than 18 fractional digits"
        )


@pytest.fixture
def assertions() -> PoolAssertions:
    return PoolAssertions()
