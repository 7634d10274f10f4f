"""
Repository implementation over a StorageBackend

Maps every repository operation onto backend primitives and the shared
name-to-key scheme. Works unchanged with any backend.
"""

import logging
import random
from contextlib import contextmanager
from typing import Iterator, Optional

from .backend import AccessMode, StorageBackend
from .dequeue import dequeue
from .errors import (
    AlreadyCommitted,
    AlreadyExists,
    RepositoryError,
    TransportFailure,
)
from .keys import KeyScheme, decode_record, encode_record
from .repository import Repository


logger = logging.getLogger(__name__)


@contextmanager
def _operation(name: str, resource: str, identifier: str) -> Iterator[None]:
    """Attach operation context to any failure raised by the backend."""
    try:
        yield
    except (AlreadyExists, AlreadyCommitted):
        raise
    except RepositoryError as e:
        logger.error(f"{name} failed for {resource} '{identifier}': {e}")
        raise e.with_context(name, resource, identifier) from e
    except Exception as e:
        logger.error(f"{name} failed unexpectedly for {resource} '{identifier}': {e}")
        raise TransportFailure(
            f"{name} failed for {resource} '{identifier}': {e}",
            operation=name,
            resource=resource,
            identifier=identifier
        ) from e


class BackendRepository(Repository):
    """Repository backed by raw storage primitives"""

    def __init__(
        self,
        backend: StorageBackend,
        keys: Optional[KeyScheme] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize repository.

        Args:
            backend: Storage backend holding the records
            keys: Name-to-key scheme (default layout if None)
            rng: Random source used when selecting queued messages
        """
        self.backend = backend
        self.keys = keys or KeyScheme()
        self._rng = rng

    @property
    def location(self) -> str:
        return self.backend.location

    # Citations

    async def citation_exists(self, name: str) -> bool:
        with _operation("citation_exists", "citation", name):
            return await self.backend.key_exists(self.keys.citation_key(name))

    async def fetch_citation(self, name: str) -> Optional[str]:
        with _operation("fetch_citation", "citation", name):
            return await self._read(self.keys.citation_key(name))

    async def create_citation(self, name: str, citation: str) -> None:
        with _operation("create_citation", "citation", name):
            await self._create(self.keys.citation_key(name), citation, "citation", name)

    # Drafts

    async def draft_exists(self, tag: str, version: str) -> bool:
        with _operation("draft_exists", "draft", f"{tag}/{version}"):
            return await self.backend.key_exists(self.keys.draft_key(tag, version))

    async def fetch_draft(self, tag: str, version: str) -> Optional[str]:
        with _operation("fetch_draft", "draft", f"{tag}/{version}"):
            return await self._read(self.keys.draft_key(tag, version))

    async def save_draft(self, tag: str, version: str, draft: str) -> None:
        identifier = f"{tag}/{version}"
        with _operation("save_draft", "draft", identifier):
            key = self.keys.draft_key(tag, version)
            if await self.backend.key_exists(self.keys.document_key(tag, version)):
                raise AlreadyCommitted(
                    f"A committed document already exists for draft '{identifier}'",
                    operation="save_draft",
                    resource="draft",
                    identifier=identifier
                )
            await self.backend.write(key, encode_record(draft), AccessMode.UPDATABLE)

    async def delete_draft(self, tag: str, version: str) -> None:
        with _operation("delete_draft", "draft", f"{tag}/{version}"):
            await self.backend.delete(self.keys.draft_key(tag, version))

    # Documents

    async def document_exists(self, tag: str, version: str) -> bool:
        with _operation("document_exists", "document", f"{tag}/{version}"):
            return await self.backend.key_exists(self.keys.document_key(tag, version))

    async def fetch_document(self, tag: str, version: str) -> Optional[str]:
        with _operation("fetch_document", "document", f"{tag}/{version}"):
            return await self._read(self.keys.document_key(tag, version))

    async def create_document(self, tag: str, version: str, document: str) -> None:
        identifier = f"{tag}/{version}"
        with _operation("create_document", "document", identifier):
            await self._create(self.keys.document_key(tag, version), document, "document", identifier)

    # Types

    async def type_exists(self, tag: str, version: str) -> bool:
        with _operation("type_exists", "type", f"{tag}/{version}"):
            return await self.backend.key_exists(self.keys.type_key(tag, version))

    async def fetch_type(self, tag: str, version: str) -> Optional[str]:
        with _operation("fetch_type", "type", f"{tag}/{version}"):
            return await self._read(self.keys.type_key(tag, version))

    async def create_type(self, tag: str, version: str, type_: str) -> None:
        identifier = f"{tag}/{version}"
        with _operation("create_type", "type", identifier):
            await self._create(self.keys.type_key(tag, version), type_, "type", identifier)

    # Queues

    async def enqueue_message(self, queue: str, message: str) -> None:
        with _operation("enqueue_message", "queue", queue):
            key = self.keys.message_key(queue)
            await self.backend.write(key, encode_record(message), AccessMode.UPDATABLE)

    async def dequeue_message(self, queue: str) -> Optional[str]:
        with _operation("dequeue_message", "queue", queue):
            message = await dequeue(self.backend, self.keys.queue_prefix(queue), self._rng)
            if message is None:
                return None
            key, data = message
            return decode_record(data, key)

    async def close(self) -> None:
        await self.backend.close()

    async def _read(self, key: str) -> Optional[str]:
        data = await self.backend.read(key)
        return decode_record(data, key) if data is not None else None

    async def _create(self, key: str, value: str, resource: str, identifier: str) -> None:
        if await self.backend.key_exists(key):
            raise _already_exists(resource, identifier)
        try:
            await self.backend.write(key, encode_record(value), AccessMode.READ_ONLY)
        except AlreadyExists as e:
            # Lost a creation race inside the backend
            raise _already_exists(resource, identifier) from e


def _already_exists(resource: str, identifier: str) -> AlreadyExists:
    return AlreadyExists(
        f"The {resource} '{identifier}' already exists",
        operation=f"create_{resource}",
        resource=resource,
        identifier=identifier
    )
