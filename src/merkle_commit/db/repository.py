"""
Merkle Commitment Service - Root Repository

Database operations for published Merkle roots. Roots are stored as
0x-prefixed hex so any primitive width fits one column.
"""

from typing import Any

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from merkle_commit.crypto.hashing import HashCombinator
from merkle_commit.services.root_store import RootRecord

logger = structlog.get_logger(__name__)


class RootRepository:
    """Repository for published root records."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session
        """
        self._session = session

    async def insert_root(
        self,
        root: int,
        algorithm: str,
        leaf_count: int,
    ) -> RootRecord:
        """
        Insert a new root row in its own transaction.

        The newest version becomes the trusted root as soon as the
        transaction commits.

        Args:
            root: Root value
            algorithm: Hash primitive the tree was built with
            leaf_count: Number of leaves committed to

        Returns:
            The stored RootRecord
        """
        query = text("""
            INSERT INTO merkle_roots (root, algorithm, leaf_count)
            VALUES (:root, :algorithm, :leaf_count)
            RETURNING version, root, algorithm, leaf_count, created_at
        """)

        result = await self._session.execute(
            query,
            {
                "root": HashCombinator(algorithm).to_hex(root),
                "algorithm": algorithm,
                "leaf_count": leaf_count,
            },
        )
        row = result.fetchone()
        await self._session.commit()

        return self._row_to_record(row)

    async def get_latest_root(self) -> RootRecord | None:
        """
        Get the most recently published root.

        Returns:
            RootRecord or None if nothing was published
        """
        query = text("""
            SELECT version, root, algorithm, leaf_count, created_at
            FROM merkle_roots
            ORDER BY version DESC
            LIMIT 1
        """)

        result = await self._session.execute(query)
        row = result.fetchone()

        if not row:
            return None

        return self._row_to_record(row)

    async def list_roots(self, limit: int = 50, offset: int = 0) -> list[RootRecord]:
        """List published roots, newest first."""
        query = text("""
            SELECT version, root, algorithm, leaf_count, created_at
            FROM merkle_roots
            ORDER BY version DESC
            LIMIT :limit OFFSET :offset
        """)

        result = await self._session.execute(query, {"limit": limit, "offset": offset})
        return [self._row_to_record(row) for row in result.fetchall()]

    async def count_roots(self) -> int:
        """Count published roots."""
        result = await self._session.execute(text("SELECT COUNT(*) FROM merkle_roots"))
        return result.scalar() or 0

    @staticmethod
    def _row_to_record(row: Any) -> RootRecord:
        """Convert a database row to RootRecord."""
        return RootRecord(
            root=HashCombinator(row.algorithm).from_hex(row.root),
            algorithm=row.algorithm,
            leaf_count=row.leaf_count,
            version=row.version,
            created_at=row.created_at,
        )
