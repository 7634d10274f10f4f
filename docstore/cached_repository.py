"""
Caching wrapper for any Repository

Citations, documents and types are immutable, so a cached value can never be
stale. Drafts and queued messages change independently of this process and
are always passed straight through to the wrapped repository.
"""

import logging
import threading
from collections import OrderedDict
from typing import Dict, Hashable, Optional

from .errors import AlreadyExists
from .repository import Repository


logger = logging.getLogger(__name__)

# Default number of entries per cache
DEFAULT_CAPACITY = 256


class BoundedCache:
    """
    Fixed capacity map with first-in first-out eviction.

    Once the cache holds `capacity` entries, storing a new key evicts the
    earliest inserted entry. Storing an existing key changes nothing.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("Cache capacity must be at least 1")
        self.capacity = capacity
        self._entries: "OrderedDict[Hashable, str]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def exists(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def fetch(self, key: Hashable) -> Optional[str]:
        """Get cached value, returning None on a miss"""
        with self._lock:
            value = self._entries.get(key)
            if value is None:
                self.misses += 1
            else:
                self.hits += 1
            return value

    def store(self, key: Hashable, value: str) -> None:
        """Store value in cache"""
        with self._lock:
            if key in self._entries:
                return
            if len(self._entries) >= self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                self.evictions += 1
                logger.debug(f"Evicted {evicted!r} from cache")
            self._entries[key] = value

    def stats(self) -> Dict[str, int]:
        """Get cache statistics"""
        with self._lock:
            return {
                "entries": len(self._entries),
                "capacity": self.capacity,
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.exists(key)


class CachedRepository(Repository):
    """Read-through cache in front of another repository"""

    def __init__(self, repository: Repository, capacity: int = DEFAULT_CAPACITY):
        """
        Initialize cached repository.

        Args:
            repository: Wrapped repository holding the records
            capacity: Maximum entries per cache (citations, documents, types)
        """
        self.repository = repository
        self.citations = BoundedCache(capacity)
        self.documents = BoundedCache(capacity)
        self.types = BoundedCache(capacity)

    @property
    def location(self) -> str:
        return self.repository.location

    def stats(self) -> Dict[str, Dict[str, int]]:
        return {
            "citations": self.citations.stats(),
            "documents": self.documents.stats(),
            "types": self.types.stats()
        }

    # Citations

    async def citation_exists(self, name: str) -> bool:
        if self.citations.exists(name):
            return True
        return await self.repository.citation_exists(name)

    async def fetch_citation(self, name: str) -> Optional[str]:
        citation = self.citations.fetch(name)
        if citation is None:
            citation = await self.repository.fetch_citation(name)
            if citation is not None:
                self.citations.store(name, citation)
        return citation

    async def create_citation(self, name: str, citation: str) -> None:
        if self.citations.exists(name) or await self.repository.citation_exists(name):
            raise AlreadyExists(
                f"The citation '{name}' already exists",
                operation="create_citation",
                resource="citation",
                identifier=name
            )
        await self.repository.create_citation(name, citation)
        self.citations.store(name, citation)

    # Drafts are mutable and never cached

    async def draft_exists(self, tag: str, version: str) -> bool:
        return await self.repository.draft_exists(tag, version)

    async def fetch_draft(self, tag: str, version: str) -> Optional[str]:
        return await self.repository.fetch_draft(tag, version)

    async def save_draft(self, tag: str, version: str, draft: str) -> None:
        await self.repository.save_draft(tag, version, draft)

    async def delete_draft(self, tag: str, version: str) -> None:
        await self.repository.delete_draft(tag, version)

    # Documents

    async def document_exists(self, tag: str, version: str) -> bool:
        if self.documents.exists((tag, version)):
            return True
        return await self.repository.document_exists(tag, version)

    async def fetch_document(self, tag: str, version: str) -> Optional[str]:
        document = self.documents.fetch((tag, version))
        if document is None:
            document = await self.repository.fetch_document(tag, version)
            if document is not None:
                self.documents.store((tag, version), document)
        return document

    async def create_document(self, tag: str, version: str, document: str) -> None:
        if self.documents.exists((tag, version)) or await self.repository.document_exists(tag, version):
            raise AlreadyExists(
                f"The document '{tag}/{version}' already exists",
                operation="create_document",
                resource="document",
                identifier=f"{tag}/{version}"
            )
        await self.repository.create_document(tag, version, document)
        self.documents.store((tag, version), document)

    # Types

    async def type_exists(self, tag: str, version: str) -> bool:
        if self.types.exists((tag, version)):
            return True
        return await self.repository.type_exists(tag, version)

    async def fetch_type(self, tag: str, version: str) -> Optional[str]:
        type_ = self.types.fetch((tag, version))
        if type_ is None:
            type_ = await self.repository.fetch_type(tag, version)
            if type_ is not None:
                self.types.store((tag, version), type_)
        return type_

    async def create_type(self, tag: str, version: str, type_: str) -> None:
        if self.types.exists((tag, version)) or await self.repository.type_exists(tag, version):
            raise AlreadyExists(
                f"The type '{tag}/{version}' already exists",
                operation="create_type",
                resource="type",
                identifier=f"{tag}/{version}"
            )
        await self.repository.create_type(tag, version, type_)
        self.types.store((tag, version), type_)

    # Queues are consumed destructively and never cached

    async def enqueue_message(self, queue: str, message: str) -> None:
        await self.repository.enqueue_message(queue, message)

    async def dequeue_message(self, queue: str) -> Optional[str]:
        return await self.repository.dequeue_message(queue)

    async def close(self) -> None:
        await self.repository.close()
