"""
Tests for the backend-driven repository.
"""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from docstore import (
    AccessMode,
    AlreadyCommitted,
    AlreadyExists,
    BackendRepository,
    LocalBackend,
    MalformedRequest,
    MalformedResponse,
    MemoryBackend,
    SQLiteBackend,
    TransportFailure,
)


pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture(params=["memory", "local", "sqlite"])
async def repository(request, tmp_path):
    """Repository over each backend."""
    if request.param == "memory":
        backend = MemoryBackend()
    elif request.param == "local":
        backend = LocalBackend(tmp_path / "records")
    else:
        backend = SQLiteBackend(tmp_path / "records.db")
    async with BackendRepository(backend) as repo:
        yield repo


class TestWriteOnceRecords:
    """Test citations, documents and types."""

    async def test_citation_lifecycle(self, repository):
        """Test create, exists and fetch for citations."""
        assert await repository.citation_exists("bali/doc") is False
        assert await repository.fetch_citation("bali/doc") is None

        await repository.create_citation("bali/doc", "citation-record")

        assert await repository.citation_exists("bali/doc") is True
        assert await repository.fetch_citation("bali/doc") == "citation-record"

    async def test_document_lifecycle(self, repository):
        """Test create, exists and fetch for documents."""
        await repository.create_document("doc", "v1", "[$content: \"x\"]")

        assert await repository.document_exists("doc", "v1") is True
        assert await repository.fetch_document("doc", "v1") == "[$content: \"x\"]"
        assert await repository.fetch_document("doc", "v2") is None

    async def test_type_lifecycle(self, repository):
        """Test create, exists and fetch for types."""
        await repository.create_type("#TYPE", "v1", "type-definition")

        assert await repository.type_exists("#TYPE", "v1") is True
        assert await repository.fetch_type("#TYPE", "v1") == "type-definition"

    async def test_second_create_fails(self, repository):
        """Test that a second create leaves the first value in place."""
        await repository.create_document("doc", "v1", "first")

        with pytest.raises(AlreadyExists) as exc_info:
            await repository.create_document("doc", "v1", "second")

        assert exc_info.value.resource == "document"
        assert exc_info.value.identifier == "doc/v1"
        assert await repository.fetch_document("doc", "v1") == "first"

    async def test_second_citation_and_type_create_fail(self, repository):
        """Test write-once for citations and types."""
        await repository.create_citation("c", "one")
        await repository.create_type("t", "v1", "one")

        with pytest.raises(AlreadyExists):
            await repository.create_citation("c", "two")
        with pytest.raises(AlreadyExists):
            await repository.create_type("t", "v1", "two")

    async def test_families_are_independent(self, repository):
        """Test that a document does not make a type of the same name exist."""
        await repository.create_document("doc", "v1", "document")

        assert await repository.type_exists("doc", "v1") is False
        assert await repository.draft_exists("doc", "v1") is False

    async def test_payload_round_trip_is_exact(self, repository):
        """Test that trailing newlines and unicode survive storage."""
        payload = "line one\nline two\n"
        await repository.create_document("doc", "v1", payload)
        await repository.create_document("doc", "v2", "")
        await repository.create_document("doc", "v3", "κόσμε")

        assert await repository.fetch_document("doc", "v1") == payload
        assert await repository.fetch_document("doc", "v2") == ""
        assert await repository.fetch_document("doc", "v3") == "κόσμε"


class TestDrafts:
    """Test mutable drafts."""

    async def test_save_replace_and_delete(self, repository):
        """Test that drafts can be replaced and deleted."""
        await repository.save_draft("doc", "v1", "first")
        await repository.save_draft("doc", "v1", "second")

        assert await repository.fetch_draft("doc", "v1") == "second"

        await repository.delete_draft("doc", "v1")

        assert await repository.draft_exists("doc", "v1") is False
        assert await repository.fetch_draft("doc", "v1") is None

    async def test_delete_missing_draft(self, repository):
        """Test that deleting an absent draft is not an error."""
        await repository.delete_draft("doc", "v1")

    async def test_save_after_commit_fails(self, repository):
        """Test that a committed document blocks drafts with the same identifier."""
        await repository.save_draft("doc", "v1", "draft")
        await repository.create_document("doc", "v1", "committed")

        with pytest.raises(AlreadyCommitted):
            await repository.save_draft("doc", "v1", "new draft")

        assert await repository.fetch_draft("doc", "v1") == "draft"


class TestQueues:
    """Test enqueue and dequeue through the repository."""

    async def test_empty_queue(self, repository):
        """Test that an empty queue dequeues as None."""
        assert await repository.dequeue_message("jobs") is None

    async def test_two_messages_any_order(self, repository):
        """Test that each message is delivered exactly once."""
        await repository.enqueue_message("jobs", "x")
        await repository.enqueue_message("jobs", "y")

        first = await repository.dequeue_message("jobs")
        second = await repository.dequeue_message("jobs")

        assert {first, second} == {"x", "y"}
        assert await repository.dequeue_message("jobs") is None

    async def test_duplicate_messages_kept(self, repository):
        """Test that identical messages are stored separately."""
        await repository.enqueue_message("jobs", "same")
        await repository.enqueue_message("jobs", "same")

        assert await repository.dequeue_message("jobs") == "same"
        assert await repository.dequeue_message("jobs") == "same"
        assert await repository.dequeue_message("jobs") is None

    async def test_queues_are_independent(self, repository):
        """Test that queues do not share messages."""
        await repository.enqueue_message("a", "for a")

        assert await repository.dequeue_message("b") is None
        assert await repository.dequeue_message("a") == "for a"


class TestIdentifierValidation:
    """Test rejection of unusable identifiers."""

    @pytest.mark.parametrize("tag", ["", "..", "a/b"])
    async def test_invalid_tag(self, repository, tag):
        """Test that invalid tags raise MalformedRequest with context."""
        with pytest.raises(MalformedRequest) as exc_info:
            await repository.create_document(tag, "v1", "content")

        assert exc_info.value.operation == "create_document"

    async def test_invalid_queue(self, repository):
        """Test that invalid queue names raise MalformedRequest."""
        with pytest.raises(MalformedRequest):
            await repository.enqueue_message("a/b", "message")


class TestErrorWrapping:
    """Test how backend failures surface."""

    async def test_transport_failure_gets_context(self):
        """Test that backend failures carry the repository operation."""
        backend = MemoryBackend()
        backend.read = AsyncMock(side_effect=TransportFailure("disk gone", operation="read"))
        repository = BackendRepository(backend)

        with pytest.raises(TransportFailure) as exc_info:
            await repository.fetch_document("doc", "v1")

        error = exc_info.value
        assert error.operation == "fetch_document"
        assert error.resource == "document"
        assert error.identifier == "doc/v1"
        assert isinstance(error.__cause__, TransportFailure)

    async def test_unexpected_error_becomes_transport_failure(self):
        """Test that foreign exceptions are wrapped."""
        backend = MemoryBackend()
        backend.key_exists = AsyncMock(side_effect=RuntimeError("boom"))
        repository = BackendRepository(backend)

        with pytest.raises(TransportFailure) as exc_info:
            await repository.citation_exists("c")

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    async def test_malformed_record(self):
        """Test that undecodable records raise MalformedResponse."""
        backend = MemoryBackend()
        await backend.write("types/t/v1.bali", b"\xff\xfe", AccessMode.READ_ONLY)
        repository = BackendRepository(backend)

        with pytest.raises(MalformedResponse) as exc_info:
            await repository.fetch_type("t", "v1")

        assert exc_info.value.operation == "fetch_type"

    async def test_backend_creation_race(self):
        """Test that a create lost inside the backend is AlreadyExists."""
        backend = MemoryBackend()
        backend.key_exists = AsyncMock(return_value=False)
        await backend.write("documents/doc/v1.bali", b"first\n", AccessMode.READ_ONLY)
        repository = BackendRepository(backend)

        with pytest.raises(AlreadyExists) as exc_info:
            await repository.create_document("doc", "v1", "second")

        assert exc_info.value.identifier == "doc/v1"
        assert await backend.read("documents/doc/v1.bali") == b"first\n"

    async def test_records_use_access_modes(self):
        """Test that write-once records are read-only and drafts updatable."""
        backend = MemoryBackend()
        repository = BackendRepository(backend)

        await repository.create_document("doc", "v1", "d")
        await repository.save_draft("doc", "v2", "d")

        assert backend.mode_of("documents/doc/v1.bali") is AccessMode.READ_ONLY
        assert backend.mode_of("drafts/doc/v2.bali") is AccessMode.UPDATABLE
        assert repository.location == "memory:"

    async def test_malformed_message_names_its_key(self):
        """Test that an undecodable queued message reports which record it was."""
        backend = MemoryBackend()
        await backend.write("queues/jobs/bad.bali", b"\xff\xfe", AccessMode.UPDATABLE)
        repository = BackendRepository(backend)

        with pytest.raises(MalformedResponse) as exc_info:
            await repository.dequeue_message("jobs")

        assert exc_info.value.operation == "dequeue_message"
        assert "queues/jobs/bad.bali" in str(exc_info.value)
