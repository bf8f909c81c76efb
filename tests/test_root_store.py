"""
Unit tests for the root stores.
"""

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

from merkle_commit.crypto.errors import InvalidInputError
from merkle_commit.services.database_root_store import DatabaseRootStore
from merkle_commit.services.root_store import (
    InMemoryRootStore,
    RootNotPublishedError,
    RootRecord,
    RootStoreError,
)

ROOT_HEX = "0x" + "0" * 62 + "2a"


def make_row(version: int = 1, root: str = ROOT_HEX, leaf_count: int = 5) -> SimpleNamespace:
    """Create a merkle_roots row."""
    return SimpleNamespace(
        version=version,
        root=root,
        algorithm="sha256",
        leaf_count=leaf_count,
        created_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
    )


def make_result(row: SimpleNamespace | None = None, rows: list | None = None) -> MagicMock:
    """Create a mock SQLAlchemy result."""
    result = MagicMock()
    result.fetchone.return_value = row
    result.fetchall.return_value = rows or []
    result.scalar.return_value = len(rows or [])
    return result


@pytest.fixture
def mock_session() -> AsyncMock:
    """Create a mock async session."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    return session


@pytest.fixture
def session_factory(mock_session: AsyncMock) -> MagicMock:
    """Session factory yielding the mock session as a context manager."""
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = mock_session
    factory.return_value.__aexit__.return_value = False
    return factory


@pytest.fixture
def database_store(session_factory: MagicMock) -> DatabaseRootStore:
    """Database store that retries without sleeping."""
    return DatabaseRootStore(session_factory, retry_count=3, retry_delay=0, retry_max_delay=0)


class TestRootRecord:
    """Tests for RootRecord."""

    def test_to_dict(self) -> None:
        """Root is hex encoded at full width."""
        record = RootRecord(root=42, algorithm="sha256", leaf_count=5, version=1)
        data = record.to_dict()

        assert data["root"] == ROOT_HEX
        assert data["version"] == 1
        assert data["leaf_count"] == 5
        assert "created_at" in data

    def test_default_created_at(self) -> None:
        """created_at defaults to now, in UTC."""
        record = RootRecord(root=1, algorithm="sha256", leaf_count=1, version=1)
        assert record.created_at.tzinfo is not None


class TestInMemoryRootStore:
    """Tests for InMemoryRootStore."""

    @pytest.mark.asyncio
    async def test_get_before_publish(self) -> None:
        """Reading an empty store raises."""
        store = InMemoryRootStore()

        with pytest.raises(RootNotPublishedError):
            await store.get_root()

    @pytest.mark.asyncio
    async def test_set_then_get(self) -> None:
        """The published root becomes the trusted root."""
        store = InMemoryRootStore()

        record = await store.set_root(42, algorithm="sha256", leaf_count=5)

        assert record.version == 1
        assert await store.get_root() == 42
        assert (await store.get_record()).leaf_count == 5

    @pytest.mark.asyncio
    async def test_republish_replaces_root(self) -> None:
        """The newest root wins and versions increase."""
        store = InMemoryRootStore()

        await store.set_root(1, algorithm="sha256", leaf_count=1)
        second = await store.set_root(2, algorithm="sha256", leaf_count=2)

        assert second.version == 2
        assert await store.get_root() == 2

    @pytest.mark.asyncio
    async def test_history_newest_first(self) -> None:
        """History pages from the newest root."""
        store = InMemoryRootStore()
        for root in (1, 2, 3):
            await store.set_root(root, algorithm="sha256", leaf_count=1)

        assert [r.root for r in await store.history()] == [3, 2, 1]
        assert [r.root for r in await store.history(limit=1, offset=1)] == [2]
        assert await store.count() == 3

    @pytest.mark.asyncio
    async def test_rejects_malformed_root(self) -> None:
        """Roots must fit the primitive's width."""
        store = InMemoryRootStore()

        with pytest.raises(InvalidInputError):
            await store.set_root(2**256, algorithm="sha256", leaf_count=1)

        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_concurrent_publishes(self) -> None:
        """Concurrent publishes get distinct versions."""
        store = InMemoryRootStore()

        records = await asyncio.gather(*(
            store.set_root(i, algorithm="sha256", leaf_count=1) for i in range(1, 21)
        ))

        assert sorted(r.version for r in records) == list(range(1, 21))
        assert (await store.get_record()).version == 20


class TestDatabaseRootStore:
    """Tests for DatabaseRootStore with a mocked session."""

    @pytest.mark.asyncio
    async def test_get_record(
        self,
        database_store: DatabaseRootStore,
        mock_session: AsyncMock,
    ) -> None:
        """Latest row is decoded from hex."""
        mock_session.execute.return_value = make_result(make_row(version=7))

        record = await database_store.get_record()

        assert record.root == 42
        assert record.version == 7
        assert record.algorithm == "sha256"

    @pytest.mark.asyncio
    async def test_get_root_empty_table(
        self,
        database_store: DatabaseRootStore,
        mock_session: AsyncMock,
    ) -> None:
        """An empty table means nothing was published."""
        mock_session.execute.return_value = make_result(None)

        with pytest.raises(RootNotPublishedError):
            await database_store.get_root()

    @pytest.mark.asyncio
    async def test_set_root_inserts_and_commits(
        self,
        database_store: DatabaseRootStore,
        mock_session: AsyncMock,
    ) -> None:
        """Publishing is one INSERT followed by commit."""
        mock_session.execute.return_value = make_result(make_row(version=3))

        record = await database_store.set_root(42, algorithm="sha256", leaf_count=5)

        assert record.version == 3
        params = mock_session.execute.call_args.args[1]
        assert params == {"root": ROOT_HEX, "algorithm": "sha256", "leaf_count": 5}
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_set_root_rejects_malformed_root(
        self,
        database_store: DatabaseRootStore,
        mock_session: AsyncMock,
    ) -> None:
        """Malformed roots never reach the database."""
        with pytest.raises(InvalidInputError):
            await database_store.set_root(-1, algorithm="sha256", leaf_count=5)

        mock_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_transient_error_retried(
        self,
        database_store: DatabaseRootStore,
        mock_session: AsyncMock,
    ) -> None:
        """Connection errors are retried."""
        mock_session.execute.side_effect = [
            OperationalError("SELECT", {}, Exception("connection reset")),
            make_result(make_row()),
        ]

        record = await database_store.get_record()

        assert record.root == 42
        assert mock_session.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted(
        self,
        database_store: DatabaseRootStore,
        mock_session: AsyncMock,
    ) -> None:
        """Persistent connection errors surface as RootStoreError."""
        mock_session.execute.side_effect = OperationalError(
            "SELECT", {}, Exception("connection refused")
        )

        with pytest.raises(RootStoreError):
            await database_store.get_record()

        assert mock_session.execute.await_count == 3

    @pytest.mark.asyncio
    async def test_non_transient_error_not_retried(
        self,
        database_store: DatabaseRootStore,
        mock_session: AsyncMock,
    ) -> None:
        """Statement errors fail immediately."""
        mock_session.execute.side_effect = ProgrammingError(
            "SELECT", {}, Exception("relation does not exist")
        )

        with pytest.raises(RootStoreError, match="read"):
            await database_store.get_record()

        assert mock_session.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_history_and_count(
        self,
        database_store: DatabaseRootStore,
        mock_session: AsyncMock,
    ) -> None:
        """History rows are decoded in order."""
        rows = [make_row(version=2, root="0x02"), make_row(version=1, root="0x01")]
        mock_session.execute.return_value = make_result(rows=rows)

        records = await database_store.history(limit=10)
        total = await database_store.count()

        assert [r.version for r in records] == [2, 1]
        assert [r.root for r in records] == [2, 1]
        assert total == 2

    @pytest.mark.asyncio
    async def test_explicit_zero_retry_count_kept(
        self,
        session_factory: MagicMock,
        mock_session: AsyncMock,
    ) -> None:
        """An explicit retry count of zero is not replaced by the default."""
        store = DatabaseRootStore(session_factory, retry_count=0, retry_delay=0, retry_max_delay=0)
        mock_session.execute.side_effect = OperationalError(
            "SELECT", {}, Exception("connection refused")
        )

        assert store._retry_count == 0
        with pytest.raises(RootStoreError):
            await store.get_record()

        assert mock_session.execute.await_count == 1
