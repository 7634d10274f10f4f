"""
Tests for the memory, local filesystem and SQLite storage backends.

The contract tests run against every backend so they all honor the same
semantics.
"""

import asyncio
import os
import stat

import pytest
import pytest_asyncio

from docstore import (
    AccessMode,
    AlreadyExists,
    LocalBackend,
    MalformedRequest,
    MemoryBackend,
    SQLiteBackend,
)


pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture(params=["memory", "local", "sqlite"])
async def backend(request, tmp_path):
    """Each backend, freshly created."""
    if request.param == "memory":
        instance = MemoryBackend()
    elif request.param == "local":
        instance = LocalBackend(tmp_path / "records")
    else:
        instance = SQLiteBackend(tmp_path / "records.db")
    yield instance
    await instance.close()


class TestBackendContract:
    """Test the primitive operations shared by every backend."""

    async def test_missing_key(self, backend):
        """Test that absent keys read as None and do not exist."""
        assert await backend.key_exists("documents/doc/v1.bali") is False
        assert await backend.read("documents/doc/v1.bali") is None

    async def test_write_then_read(self, backend):
        """Test that written bytes are read back unchanged."""
        await backend.write("documents/doc/v1.bali", b"content\n", AccessMode.READ_ONLY)

        assert await backend.key_exists("documents/doc/v1.bali") is True
        assert await backend.read("documents/doc/v1.bali") == b"content\n"

    async def test_read_only_write_is_create_once(self, backend):
        """Test that a read-only write never replaces an existing record."""
        await backend.write("types/t/v1.bali", b"first", AccessMode.READ_ONLY)

        with pytest.raises(AlreadyExists):
            await backend.write("types/t/v1.bali", b"second", AccessMode.READ_ONLY)

        assert await backend.read("types/t/v1.bali") == b"first"

    async def test_updatable_write_replaces(self, backend):
        """Test that updatable records can be overwritten."""
        await backend.write("drafts/doc/v1.bali", b"first", AccessMode.UPDATABLE)
        await backend.write("drafts/doc/v1.bali", b"second", AccessMode.UPDATABLE)

        assert await backend.read("drafts/doc/v1.bali") == b"second"

    async def test_delete_reports_removal(self, backend):
        """Test that delete returns True only when it removed the record."""
        await backend.write("drafts/doc/v1.bali", b"draft", AccessMode.UPDATABLE)

        assert await backend.delete("drafts/doc/v1.bali") is True
        assert await backend.delete("drafts/doc/v1.bali") is False
        assert await backend.read("drafts/doc/v1.bali") is None

    async def test_concurrent_deletes_have_one_winner(self, backend):
        """Test that exactly one of several racing deletes succeeds."""
        await backend.write("queues/q/m1.bali", b"message", AccessMode.UPDATABLE)

        results = await asyncio.gather(*(backend.delete("queues/q/m1.bali") for _ in range(5)))

        assert results.count(True) == 1

    async def test_list_keys_by_prefix(self, backend):
        """Test listing only the keys under a prefix."""
        await backend.write("queues/a/1.bali", b"1", AccessMode.UPDATABLE)
        await backend.write("queues/a/2.bali", b"2", AccessMode.UPDATABLE)
        await backend.write("queues/b/3.bali", b"3", AccessMode.UPDATABLE)

        assert await backend.list_keys("queues/a/") == {"queues/a/1.bali", "queues/a/2.bali"}
        assert await backend.list_keys("queues/c/") == set()

    async def test_location(self, backend):
        """Test that every backend describes where it stores records."""
        assert backend.location
        assert backend.location in repr(backend)


class TestMemoryBackend:
    """Test memory backend specifics."""

    async def test_mode_recorded(self):
        """Test that the access mode of each record is kept."""
        backend = MemoryBackend()
        await backend.write("documents/d/v1.bali", b"x", AccessMode.READ_ONLY)

        assert backend.mode_of("documents/d/v1.bali") is AccessMode.READ_ONLY
        assert backend.mode_of("documents/d/v2.bali") is None
        assert len(backend) == 1


class TestLocalBackend:
    """Test filesystem backend specifics."""

    async def test_file_layout(self, tmp_path):
        """Test that keys map onto paths below the root."""
        backend = LocalBackend(tmp_path)
        await backend.write("documents/doc/v1.bali", b"content\n", AccessMode.READ_ONLY)

        path = tmp_path / "documents" / "doc" / "v1.bali"
        assert path.read_bytes() == b"content\n"

    async def test_permissions_follow_access_mode(self, tmp_path):
        """Test that access modes become file permissions."""
        backend = LocalBackend(tmp_path)
        await backend.write("documents/doc/v1.bali", b"d", AccessMode.READ_ONLY)
        await backend.write("drafts/doc/v1.bali", b"d", AccessMode.UPDATABLE)

        document = tmp_path / "documents" / "doc" / "v1.bali"
        draft = tmp_path / "drafts" / "doc" / "v1.bali"
        assert stat.S_IMODE(os.stat(document).st_mode) == 0o400
        assert stat.S_IMODE(os.stat(draft).st_mode) == 0o600

    async def test_no_temporary_files_left(self, tmp_path):
        """Test that writes publish the record and clean up."""
        backend = LocalBackend(tmp_path)
        await backend.write("drafts/doc/v1.bali", b"one", AccessMode.UPDATABLE)
        await backend.write("drafts/doc/v1.bali", b"two", AccessMode.UPDATABLE)
        await backend.write("documents/doc/v1.bali", b"d", AccessMode.READ_ONLY)
        with pytest.raises(AlreadyExists):
            await backend.write("documents/doc/v1.bali", b"d", AccessMode.READ_ONLY)

        assert os.listdir(tmp_path / "drafts" / "doc") == ["v1.bali"]
        assert os.listdir(tmp_path / "documents" / "doc") == ["v1.bali"]

    async def test_hidden_files_not_listed(self, tmp_path):
        """Test that in-flight temporary files are excluded from listings."""
        backend = LocalBackend(tmp_path)
        await backend.write("queues/q/m1.bali", b"m", AccessMode.UPDATABLE)
        (tmp_path / "queues" / "q" / ".inflight.tmp").write_bytes(b"partial")

        assert await backend.list_keys("queues/q/") == {"queues/q/m1.bali"}

    @pytest.mark.parametrize("key", ["", "../outside.bali", "documents/./v1.bali", "documents//v1.bali"])
    async def test_unsafe_keys_rejected(self, tmp_path, key):
        """Test that keys cannot escape the root directory."""
        backend = LocalBackend(tmp_path)

        with pytest.raises(MalformedRequest):
            await backend.read(key)

    async def test_list_missing_directory(self, tmp_path):
        """Test listing a prefix that was never written."""
        backend = LocalBackend(tmp_path / "missing")

        assert await backend.list_keys("queues/q/") == set()

    async def test_location(self, tmp_path):
        """Test location string."""
        assert LocalBackend(tmp_path).location == f"file:{tmp_path}"


class TestSQLiteBackend:
    """Test SQLite backend specifics."""

    async def test_records_persist_across_connections(self, tmp_path):
        """Test that records survive closing and reopening the database."""
        db_path = tmp_path / "records.db"

        backend = SQLiteBackend(db_path)
        await backend.write("documents/doc/v1.bali", b"content", AccessMode.READ_ONLY)
        await backend.close()

        reopened = SQLiteBackend(db_path)
        try:
            assert await reopened.read("documents/doc/v1.bali") == b"content"
            with pytest.raises(AlreadyExists):
                await reopened.write("documents/doc/v1.bali", b"other", AccessMode.READ_ONLY)
        finally:
            await reopened.close()

    async def test_in_memory_database(self):
        """Test the ':memory:' database path."""
        backend = SQLiteBackend(":memory:")
        try:
            await backend.write("drafts/d/v1.bali", b"x", AccessMode.UPDATABLE)
            assert await backend.key_exists("drafts/d/v1.bali") is True
            assert backend.location == "sqlite::memory:"
        finally:
            await backend.close()

    async def test_prefix_is_literal(self, tmp_path):
        """Test that LIKE wildcards in prefixes are not interpreted."""
        backend = SQLiteBackend(tmp_path / "records.db")
        try:
            await backend.write("queues/a_b/1.bali", b"1", AccessMode.UPDATABLE)
            await backend.write("queues/axb/2.bali", b"2", AccessMode.UPDATABLE)

            assert await backend.list_keys("queues/a_b/") == {"queues/a_b/1.bali"}
        finally:
            await backend.close()
