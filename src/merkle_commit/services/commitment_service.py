"""
Merkle Commitment Service - Commitment Service

Orchestrates root publication, proof generation, and verification of
leaf values against the trusted root held by a RootStore.

verify() is the integrity check exposed to untrusted callers: it takes a
value and a proof, reads the trusted root from the store, and never needs
the leaf sequence.
"""

import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

import structlog

from merkle_commit.core.logging import shorten_hex
from merkle_commit.crypto.errors import (
    EmptyInputError,
    IndexOutOfRangeError,
    InvalidInputError,
    MerkleError,
)
from merkle_commit.crypto.hashing import DEFAULT_COMBINATOR, HashCombinator
from merkle_commit.crypto.merkle import (
    MerkleProof,
    MerkleTree,
    build_root,
    validate_leaves,
    verify,
)
from merkle_commit.metrics import MerkleMetrics, get_merkle_metrics
from merkle_commit.services.root_store import (
    RootNotPublishedError,
    RootRecord,
    RootStore,
    RootStoreError,
)

logger = structlog.get_logger(__name__)

REJECTION_REASONS: dict[type[MerkleError], str] = {
    EmptyInputError: "empty_input",
    IndexOutOfRangeError: "index_out_of_range",
    InvalidInputError: "invalid_input",
}


class CommitmentService:
    """
    Merkle commitment service.

    Orchestrates:
    - Root computation and publication to the root store
    - Inclusion proof generation
    - Verification against the trusted root
    """

    def __init__(
        self,
        root_store: RootStore,
        combinator: HashCombinator = DEFAULT_COMBINATOR,
        allow_empty_leaves: bool = True,
        max_leaves: int | None = None,
        metrics: MerkleMetrics | None = None,
    ) -> None:
        """
        Initialize commitment service.

        Args:
            root_store: Holder of the trusted root
            combinator: Pair combinator for new trees
            allow_empty_leaves: Accept zero-valued leaves
            max_leaves: Upper bound on leaves per request, None for no bound
            metrics: Metrics sink (default: global instance)
        """
        self._root_store = root_store
        self._combinator = combinator
        self._allow_empty_leaves = allow_empty_leaves
        self._max_leaves = max_leaves
        self._metrics = metrics or get_merkle_metrics()

    @property
    def root_store(self) -> RootStore:
        """Get the root store."""
        return self._root_store

    @property
    def combinator(self) -> HashCombinator:
        """Get the pair combinator used for new trees."""
        return self._combinator

    def check_leaf_count(self, count: int) -> None:
        """
        Reject a request with more leaves than the configured bound.

        Raises:
            InvalidInputError: If count exceeds max_leaves
        """
        if self._max_leaves is not None and count > self._max_leaves:
            raise InvalidInputError(
                f"{count} leaves exceeds the limit of {self._max_leaves}"
            )

    @contextmanager
    def _rejecting(self, operation: str) -> Iterator[None]:
        """Count and log input errors raised inside the block."""
        try:
            yield
        except MerkleError as e:
            reason = next(
                (r for cls, r in REJECTION_REASONS.items() if isinstance(e, cls)),
                "merkle_error",
            )
            self._metrics.record_rejected_input(operation, reason)
            logger.warning("Rejected input", operation=operation, reason=reason, error=str(e))
            raise

    def _snapshot_leaves(self, leaves: Sequence[int]) -> list[int]:
        """Validate leaves against width, strict mode and size bound."""
        snapshot = validate_leaves(
            leaves,
            self._combinator,
            allow_empty=self._allow_empty_leaves,
        )
        self.check_leaf_count(len(snapshot))
        return snapshot

    async def publish_root(self, leaves: Sequence[int]) -> RootRecord:
        """
        Compute the root over leaves and publish it as the trusted root.

        Args:
            leaves: Finalized, ordered leaf values

        Returns:
            RootRecord for the published root

        Raises:
            EmptyInputError: If leaves is empty
            InvalidInputError: If a leaf is malformed
            RootStoreError: If the store rejects the publication
        """
        with self._rejecting("publish"):
            snapshot = self._snapshot_leaves(leaves)

        start = time.perf_counter()
        root = build_root(snapshot, self._combinator)
        duration = time.perf_counter() - start

        try:
            record = await self._root_store.set_root(
                root,
                algorithm=self._combinator.algorithm,
                leaf_count=len(snapshot),
            )
        except RootStoreError as e:
            self._metrics.record_store_failure("publish")
            logger.error("Failed to publish root", error=str(e))
            raise

        self._metrics.record_root_published(record.version, duration, len(snapshot))
        logger.info(
            "Merkle root published",
            root=shorten_hex(record.root_hex),
            version=record.version,
            leaf_count=record.leaf_count,
            algorithm=record.algorithm,
            duration=round(duration, 6),
        )
        return record

    def build_proof(self, leaves: Sequence[int], index: int) -> MerkleProof:
        """
        Generate the inclusion proof for leaves[index].

        Raises:
            EmptyInputError: If leaves is empty
            IndexOutOfRangeError: If index is outside [0, len(leaves))
            InvalidInputError: If a leaf or the index is malformed
        """
        start = time.perf_counter()
        with self._rejecting("prove"):
            snapshot = self._snapshot_leaves(leaves)
            proof = MerkleTree.from_leaves(snapshot, self._combinator).get_proof(index)

        self._metrics.record_proof_generated(time.perf_counter() - start)
        logger.debug(
            "Merkle proof generated",
            leaf_index=index,
            tree_size=proof.tree_size,
            proof_length=len(proof.siblings),
        )
        return proof

    async def verify(
        self,
        value: int,
        proof: Sequence[int],
        record: RootRecord | None = None,
    ) -> bool:
        """
        Verify a leaf value against the trusted root.

        The proof is checked with the hash primitive the trusted root was
        published with. The store is read once per call; callers that
        already hold the record (to decode input at its width) pass it in
        so the whole request is checked against that one root.

        Args:
            value: Claimed leaf value
            proof: Sibling values in leaf-to-root order
            record: Trusted root record read by the caller, if any

        Returns:
            True if the value is committed to by the trusted root

        Raises:
            RootNotPublishedError: If no trusted root exists yet
            InvalidInputError: If the value or proof is malformed
        """
        if record is None:
            record = await self.get_current_root()
        combinator = HashCombinator(record.algorithm)

        with self._rejecting("verify"):
            verified = verify(value, proof, record.root, combinator)

        self._metrics.record_verification(verified)
        logger.info(
            "Proof verified" if verified else "Proof rejected",
            root_version=record.version,
            proof_length=len(proof),
            verified=verified,
        )
        return verified

    async def get_current_root(self) -> RootRecord:
        """
        Get the trusted root record.

        Raises:
            RootNotPublishedError: If no root has been published
            RootStoreError: If the store cannot be read
        """
        try:
            return await self._root_store.get_record()
        except RootNotPublishedError:
            raise
        except RootStoreError:
            self._metrics.record_store_failure("read")
            raise

    async def get_history(self, limit: int = 50, offset: int = 0) -> tuple[list[RootRecord], int]:
        """Get published roots, newest first, with the total count."""
        records = await self._root_store.history(limit=limit, offset=offset)
        total = await self._root_store.count()
        return records, total
