"""
Merkle Commitment Service - Root Store

Holds the single trusted Merkle root. get and set are atomic with respect
to each other: a reader sees either the previous or the new root.

Access control for set_root belongs to the caller; the HTTP surface gates
publication behind an API key.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

from merkle_commit.crypto.hashing import HashCombinator

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RootRecord:
    """A published root and the tree it was built from."""

    root: int
    algorithm: str
    leaf_count: int
    version: int
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def root_hex(self) -> str:
        return HashCombinator(self.algorithm).to_hex(self.root)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "root": self.root_hex,
            "algorithm": self.algorithm,
            "leaf_count": self.leaf_count,
            "version": self.version,
            "created_at": self.created_at.isoformat(),
        }


class RootStoreError(Exception):
    """Base exception for root store errors."""

    pass


class RootNotPublishedError(RootStoreError):
    """No root has been published yet."""

    pass


class RootStore(ABC):
    """Interface for the trusted root holder."""

    @abstractmethod
    async def get_record(self) -> RootRecord:
        """
        Get the current root record.

        Raises:
            RootNotPublishedError: If no root has been published
        """

    @abstractmethod
    async def set_root(
        self,
        root: int,
        *,
        algorithm: str,
        leaf_count: int,
    ) -> RootRecord:
        """Publish a new trusted root, replacing the current one."""

    @abstractmethod
    async def history(self, limit: int = 50, offset: int = 0) -> list[RootRecord]:
        """List published roots, newest first."""

    @abstractmethod
    async def count(self) -> int:
        """Number of roots published so far."""

    async def get_root(self) -> int:
        """
        Get the current trusted root value.

        Raises:
            RootNotPublishedError: If no root has been published
        """
        record = await self.get_record()
        return record.root

    async def close(self) -> None:
        """Release store resources."""


class InMemoryRootStore(RootStore):
    """
    Process-local root store.

    A threading lock guards the current record, so the store is safe to
    share between the event loop and worker threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[RootRecord] = []

    async def get_record(self) -> RootRecord:
        with self._lock:
            if not self._records:
                raise RootNotPublishedError("No Merkle root has been published")
            return self._records[-1]

    async def set_root(
        self,
        root: int,
        *,
        algorithm: str,
        leaf_count: int,
    ) -> RootRecord:
        HashCombinator(algorithm).check(root, "root")

        with self._lock:
            record = RootRecord(
                root=root,
                algorithm=algorithm,
                leaf_count=leaf_count,
                version=len(self._records) + 1,
            )
            self._records.append(record)

        logger.info(
            "Root published",
            store="memory",
            version=record.version,
            leaf_count=leaf_count,
        )
        return record

    async def history(self, limit: int = 50, offset: int = 0) -> list[RootRecord]:
        with self._lock:
            newest_first = self._records[::-1]
        return newest_first[offset : offset + limit]

    async def count(self) -> int:
        with self._lock:
            return len(self._records)
