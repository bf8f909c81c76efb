"""
Merkle Commitment Service - Database Root Store

Persists published roots in the merkle_roots table. Each publish is a
single INSERT committed in its own transaction and readers select the
highest version, so get and set never observe a partial root.

Transient connection errors are retried with exponential backoff.
"""

from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from merkle_commit.core.config import settings
from merkle_commit.crypto.hashing import HashCombinator
from merkle_commit.db.repository import RootRepository
from merkle_commit.services.root_store import (
    RootNotPublishedError,
    RootRecord,
    RootStore,
    RootStoreError,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _is_transient(error: BaseException) -> bool:
    """Connection-level failures are worth another attempt."""
    if isinstance(error, OperationalError):
        return True
    return isinstance(error, DBAPIError) and error.connection_invalidated


class DatabaseRootStore(RootStore):
    """Root store backed by the merkle_roots table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        retry_count: int | None = None,
        retry_delay: float | None = None,
        retry_max_delay: float | None = None,
    ) -> None:
        """
        Initialize database root store.

        Args:
            session_factory: Factory producing async sessions
            retry_count: Attempts per operation (default from settings)
            retry_delay: Backoff multiplier in seconds (default from settings)
            retry_max_delay: Backoff ceiling in seconds (default from settings)
        """
        self._session_factory = session_factory
        self._retry_count = (
            settings.ROOT_STORE_RETRY_COUNT if retry_count is None else retry_count
        )
        self._retry_delay = (
            settings.ROOT_STORE_RETRY_DELAY if retry_delay is None else retry_delay
        )
        self._retry_max_delay = (
            settings.ROOT_STORE_RETRY_MAX_DELAY
            if retry_max_delay is None
            else retry_max_delay
        )

    async def _run(
        self,
        operation: str,
        work: Callable[[RootRepository], Awaitable[T]],
    ) -> T:
        """Run a repository call in a fresh session, retrying transient errors."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._retry_count),
                wait=wait_exponential(
                    multiplier=self._retry_delay,
                    max=self._retry_max_delay,
                ),
                retry=retry_if_exception_type(DBAPIError),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(
                            "Retrying root store operation",
                            operation=operation,
                            attempt=attempt.retry_state.attempt_number,
                        )
                    async with self._session_factory() as session:
                        try:
                            return await work(RootRepository(session))
                        except DBAPIError as e:
                            if not _is_transient(e):
                                raise RootStoreError(
                                    f"Root store {operation} failed: {e}"
                                ) from e
                            raise
        except SQLAlchemyError as e:
            logger.error("Root store operation failed", operation=operation, error=str(e))
            raise RootStoreError(f"Root store {operation} failed: {e}") from e

    async def get_record(self) -> RootRecord:
        record = await self._run("read", lambda repo: repo.get_latest_root())
        if record is None:
            raise RootNotPublishedError("No Merkle root has been published")
        return record

    async def set_root(
        self,
        root: int,
        *,
        algorithm: str,
        leaf_count: int,
    ) -> RootRecord:
        HashCombinator(algorithm).check(root, "root")

        record = await self._run(
            "publish",
            lambda repo: repo.insert_root(root, algorithm, leaf_count),
        )

        logger.info(
            "Root published",
            store="database",
            version=record.version,
            leaf_count=leaf_count,
        )
        return record

    async def history(self, limit: int = 50, offset: int = 0) -> list[RootRecord]:
        return await self._run("history", lambda repo: repo.list_roots(limit, offset))

    async def count(self) -> int:
        return await self._run("count", lambda repo: repo.count_roots())
