"""Tests for the endorsement store gateway.

Tests cover:
- Stored value serialization (JSON array of base64 strings)
- In-memory store fetch/replace semantics
- SQL store behavior against a mocked session factory
- Error mapping for connection and transaction failures
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from endorsement_distribution.coserv.errors import ErrorClass, StoreError, StoreErrorKind
from endorsement_distribution.services.store import (
    InMemoryEndorsementStore,
    SqlEndorsementStore,
    deserialize_artifacts,
    serialize_artifacts,
)

KEY = "arm-cca.impl-id://0/AAAA"


class TestSerialization:
    """Tests for the kv_val text format."""

    def test_serialize(self):
        """Test that artifacts become a JSON array of base64 strings."""
        assert serialize_artifacts([b"hello", b"\x00\xff"]) == '["aGVsbG8=", "AP8="]'

    def test_deserialize(self):
        """Test decoding a stored value."""
        assert deserialize_artifacts('["aGVsbG8=", "AP8="]') == [b"hello", b"\x00\xff"]

    def test_deserialize_empty_array(self):
        """Test that an empty array decodes to no artifacts."""
        assert deserialize_artifacts("[]") == []

    @pytest.mark.parametrize(
        "value",
        [
            "not json",
            '{"a": 1}',
            "[1, 2]",
            '["not base64!"]',
        ],
    )
    def test_deserialize_malformed(self, value):
        """Test that undecodable values raise MALFORMED_VALUE."""
        with pytest.raises(StoreError) as exc_info:
            deserialize_artifacts(value, KEY)
        assert exc_info.value.kind == StoreErrorKind.MALFORMED_VALUE
        assert exc_info.value.key == KEY
        assert exc_info.value.error_class == ErrorClass.SERVER


class TestInMemoryStore:
    """Tests for InMemoryEndorsementStore."""

    @pytest.mark.asyncio
    async def test_fetch_missing_key(self, memory_store):
        """Test that a missing key raises NOT_FOUND."""
        with pytest.raises(StoreError) as exc_info:
            await memory_store.fetch(KEY)
        assert exc_info.value.kind == StoreErrorKind.NOT_FOUND
        assert exc_info.value.error_class == ErrorClass.NOT_FOUND

    @pytest.mark.asyncio
    async def test_replace_then_fetch(self, memory_store):
        """Test that replaced artifacts are fetched in order."""
        await memory_store.replace(KEY, [b"one", b"two"])
        assert await memory_store.fetch(KEY) == [b"one", b"two"]

    @pytest.mark.asyncio
    async def test_replace_overwrites(self, memory_store):
        """Test that replace swaps every artifact under the key."""
        await memory_store.replace(KEY, [b"old-1", b"old-2"])
        await memory_store.replace(KEY, [b"new"])
        assert await memory_store.fetch(KEY) == [b"new"]

    @pytest.mark.asyncio
    async def test_replace_with_empty_list_removes_key(self, memory_store):
        """Test that replacing with no artifacts deletes the key."""
        await memory_store.replace(KEY, [b"one"])
        await memory_store.replace(KEY, [])

        assert memory_store.keys() == []
        with pytest.raises(StoreError):
            await memory_store.fetch(KEY)

    @pytest.mark.asyncio
    async def test_fetch_count(self, memory_store):
        """Test that every fetch is counted."""
        await memory_store.replace(KEY, [b"one"])
        await memory_store.fetch(KEY)
        with pytest.raises(StoreError):
            await memory_store.fetch("other")
        assert memory_store.fetch_count == 2


def make_session_factory(rows=None, execute_error=None):
    """Build a mock async_sessionmaker whose sessions return rows."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows or []

    session = MagicMock()
    session.execute = AsyncMock(return_value=result, side_effect=execute_error)
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)

    transaction = MagicMock()
    transaction.__aenter__ = AsyncMock(return_value=transaction)
    transaction.__aexit__ = AsyncMock(return_value=False)
    session.begin = MagicMock(return_value=transaction)

    factory = MagicMock(return_value=session)
    return factory, session


class TestSqlStore:
    """Tests for SqlEndorsementStore with a mocked session factory."""

    @pytest.mark.asyncio
    async def test_fetch_concatenates_rows(self):
        """Test that artifacts from every row are returned in row order."""
        factory, _ = make_session_factory(rows=['["YQ==", "Yg=="]', '["Yw=="]'])
        store = SqlEndorsementStore(factory)

        assert await store.fetch(KEY) == [b"a", b"b", b"c"]

    @pytest.mark.asyncio
    async def test_fetch_no_rows(self):
        """Test that a key without rows raises NOT_FOUND."""
        factory, _ = make_session_factory(rows=[])
        store = SqlEndorsementStore(factory)

        with pytest.raises(StoreError) as exc_info:
            await store.fetch(KEY)
        assert exc_info.value.kind == StoreErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_fetch_only_empty_rows(self):
        """Test that rows holding only empty arrays count as NOT_FOUND."""
        factory, _ = make_session_factory(rows=["[]", "[]"])
        store = SqlEndorsementStore(factory)

        with pytest.raises(StoreError) as exc_info:
            await store.fetch(KEY)
        assert exc_info.value.kind == StoreErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_fetch_connection_failure(self):
        """Test that database errors become CONNECTION_FAILURE."""
        error = OperationalError("SELECT", {}, Exception("connection refused"))
        factory, _ = make_session_factory(execute_error=error)
        store = SqlEndorsementStore(factory)

        with pytest.raises(StoreError) as exc_info:
            await store.fetch(KEY)
        assert exc_info.value.kind == StoreErrorKind.CONNECTION_FAILURE
        assert exc_info.value.error_class == ErrorClass.SERVER

    @pytest.mark.asyncio
    async def test_fetch_malformed_row(self):
        """Test that an undecodable row raises MALFORMED_VALUE."""
        factory, _ = make_session_factory(rows=["garbage"])
        store = SqlEndorsementStore(factory)

        with pytest.raises(StoreError) as exc_info:
            await store.fetch(KEY)
        assert exc_info.value.kind == StoreErrorKind.MALFORMED_VALUE

    @pytest.mark.asyncio
    async def test_replace_deletes_then_inserts(self):
        """Test that replace issues a delete and an insert in one transaction."""
        factory, session = make_session_factory()
        store = SqlEndorsementStore(factory)

        await store.replace(KEY, [b"a"])

        session.begin.assert_called_once()
        assert session.execute.await_count == 2
        delete_stmt = session.execute.await_args_list[0].args[0]
        insert_stmt = session.execute.await_args_list[1].args[0]
        assert delete_stmt.is_delete
        assert insert_stmt.is_insert

    @pytest.mark.asyncio
    async def test_replace_with_empty_list_only_deletes(self):
        """Test that replacing with no artifacts only deletes."""
        factory, session = make_session_factory()
        store = SqlEndorsementStore(factory)

        await store.replace(KEY, [])

        assert session.execute.await_count == 1
        assert session.execute.await_args_list[0].args[0].is_delete

    @pytest.mark.asyncio
    async def test_replace_connection_failure(self):
        """Test that connection errors during replace map to CONNECTION_FAILURE."""
        error = OperationalError("DELETE", {}, Exception("server closed the connection"))
        factory, _ = make_session_factory(execute_error=error)
        store = SqlEndorsementStore(factory)

        with pytest.raises(StoreError) as exc_info:
            await store.replace(KEY, [b"a"])
        assert exc_info.value.kind == StoreErrorKind.CONNECTION_FAILURE

    @pytest.mark.asyncio
    async def test_replace_transaction_failure(self):
        """Test that other database errors map to TRANSACTION_FAILURE."""
        error = IntegrityError("INSERT", {}, Exception("constraint"))
        factory, _ = make_session_factory(execute_error=error)
        store = SqlEndorsementStore(factory)

        with pytest.raises(StoreError) as exc_info:
            await store.replace(KEY, [b"a"])
        assert exc_info.value.kind == StoreErrorKind.TRANSACTION_FAILURE
