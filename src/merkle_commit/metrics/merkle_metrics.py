"""
Merkle Commitment Service - Merkle Metrics

Prometheus metrics for root publication, proof generation and
verification.

Metrics Categories:
- Root publication
- Tree building
- Proof generation
- Verification outcomes
- Rejected input
"""

import time

from prometheus_client import Counter, Gauge, Histogram, Info

import structlog

logger = structlog.get_logger(__name__)


class MerkleMetrics:
    """
    Centralized metrics for the Merkle Commitment Service.

    Provides visibility into:
    - Root publication and store failures
    - Tree build times and sizes
    - Proof generation times
    - Verification results
    """

    def __init__(self) -> None:
        """Initialize all Merkle metrics."""
        self._init_publication_metrics()
        self._init_tree_metrics()
        self._init_verification_metrics()
        self._init_info_metrics()

    def _init_publication_metrics(self) -> None:
        """Initialize root publication metrics."""
        self.roots_published = Counter(
            "merkle_roots_published_total",
            "Total Merkle roots published to the root store",
        )

        self.root_store_failures = Counter(
            "merkle_root_store_failures_total",
            "Root store operation failures",
            ["operation"],
        )

        self.current_root_version = Gauge(
            "merkle_current_root_version",
            "Version of the currently trusted root",
        )

        self.last_publish_timestamp = Gauge(
            "merkle_last_publish_timestamp",
            "Timestamp of last root publication (Unix epoch)",
        )

    def _init_tree_metrics(self) -> None:
        """Initialize tree building metrics."""
        self.tree_build_duration = Histogram(
            "merkle_tree_build_duration_seconds",
            "Merkle root computation time",
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
        )

        self.tree_size = Histogram(
            "merkle_tree_size",
            "Number of leaves in Merkle tree",
            buckets=[10, 50, 100, 500, 1000, 5000, 10000, 50000],
        )

        self.proof_generation_duration = Histogram(
            "merkle_proof_generation_duration_seconds",
            "Merkle proof generation time",
            buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 1.0],
        )

    def _init_verification_metrics(self) -> None:
        """Initialize verification metrics."""
        self.verifications = Counter(
            "merkle_verifications_total",
            "Merkle proof verifications against the trusted root",
            ["result"],
        )

        self.rejected_inputs = Counter(
            "merkle_rejected_inputs_total",
            "Calls rejected for empty, out of range or malformed input",
            ["operation", "reason"],
        )

    def _init_info_metrics(self) -> None:
        """Initialize info metrics."""
        self.service_info = Info(
            "merkle_commit_service",
            "Merkle Commitment service information",
        )

    # Convenience methods

    def record_root_published(self, version: int, duration: float, tree_size: int) -> None:
        """Record successful root publication."""
        self.roots_published.inc()
        self.current_root_version.set(version)
        self.last_publish_timestamp.set(time.time())
        self.record_tree_build(duration, tree_size)

    def record_tree_build(self, duration: float, tree_size: int) -> None:
        """Record Merkle root computation."""
        self.tree_build_duration.observe(duration)
        self.tree_size.observe(tree_size)

    def record_proof_generated(self, duration: float) -> None:
        """Record Merkle proof generation."""
        self.proof_generation_duration.observe(duration)

    def record_verification(self, valid: bool) -> None:
        """Record Merkle proof verification."""
        result = "valid" if valid else "invalid"
        self.verifications.labels(result=result).inc()

    def record_rejected_input(self, operation: str, reason: str) -> None:
        """Record a call rejected before computation."""
        self.rejected_inputs.labels(operation=operation, reason=reason).inc()

    def record_store_failure(self, operation: str) -> None:
        """Record root store failure."""
        self.root_store_failures.labels(operation=operation).inc()

    def set_service_info(
        self,
        version: str,
        environment: str,
        hash_algorithm: str,
        root_store: str,
    ) -> None:
        """Set service info labels."""
        self.service_info.info({
            "version": version,
            "environment": environment,
            "hash_algorithm": hash_algorithm,
            "root_store": root_store,
        })


# Singleton instance
_merkle_metrics: MerkleMetrics | None = None


def get_merkle_metrics() -> MerkleMetrics:
    """Get global Merkle metrics instance."""
    global _merkle_metrics
    if _merkle_metrics is None:
        _merkle_metrics = MerkleMetrics()
    return _merkle_metrics
