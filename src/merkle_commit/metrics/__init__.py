"""
Merkle Commitment Service - Metrics Module

Prometheus metrics for the Merkle Commitment Service.

Exports:
- Root publication metrics
- Tree build and proof generation times
- Verification outcomes
"""

from merkle_commit.metrics.merkle_metrics import (
    MerkleMetrics,
    get_merkle_metrics,
)

__all__ = [
    "MerkleMetrics",
    "get_merkle_metrics",
]
