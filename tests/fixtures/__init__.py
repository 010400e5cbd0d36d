"""Test fixtures for weighted pool testing."""

from tests.fixtures.pool_fixtures import (
    BASE,
    DATATOKEN,
    POOL_ID,
    FakeTransport,
    PoolProfile,
    RecordingApprover,
    RecordingSubmitter,
    make_pool,
    make_snapshot,
    snapshot_document,
    snapshot_of,
)

__all__ = [
    "BASE",
    "DATATOKEN",
    "POOL_ID",
    "FakeTransport",
    "PoolProfile",
    "RecordingApprover",
    "RecordingSubmitter",
    "make_pool",
    "make_snapshot",
    "snapshot_document",
    "snapshot_of",
]
