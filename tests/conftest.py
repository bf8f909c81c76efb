"""
Pytest configuration and shared fixtures for Merkle commitment tests.
"""

from unittest.mock import MagicMock

import pytest

from merkle_commit.crypto.hashing import HashCombinator
from merkle_commit.metrics import MerkleMetrics
from merkle_commit.services.commitment_service import CommitmentService
from merkle_commit.services.root_store import InMemoryRootStore

# Five leaves: odd at the leaf layer and again at layer 1
SCENARIO_LEAVES = [0x0BAD0010, 0x60A70020, 0xBEEF0030, 0xDEAD0040, 0xCA110050]


@pytest.fixture
def scenario_leaves() -> list[int]:
    """Five-leaf sequence that exercises padding."""
    return list(SCENARIO_LEAVES)


@pytest.fixture
def combinator() -> HashCombinator:
    """Default SHA-256 combinator."""
    return HashCombinator("sha256")


@pytest.fixture
def mock_metrics() -> MagicMock:
    """Metrics sink that records calls without touching the registry."""
    return MagicMock(spec=MerkleMetrics)


@pytest.fixture
def root_store() -> InMemoryRootStore:
    """Empty in-memory root store."""
    return InMemoryRootStore()


@pytest.fixture
def commitment_service(
    root_store: InMemoryRootStore,
    mock_metrics: MagicMock,
) -> CommitmentService:
    """Commitment service over an in-memory store."""
    return CommitmentService(root_store, metrics=mock_metrics)
