"""
Abstract repository interface for the document repository

Defines the contract every repository implementation must follow. Citations,
documents and types are write-once; drafts are mutable; queues are unordered
bags of messages. Absence is reported as None (or False), never as an error.
"""

from abc import ABC, abstractmethod
from typing import Optional


class Repository(ABC):
    """Repository for citations, drafts, documents, types and queued messages"""

    @property
    @abstractmethod
    def location(self) -> str:
        """Human readable description of where the repository keeps records."""
        pass

    # Citations

    @abstractmethod
    async def citation_exists(self, name: str) -> bool:
        """
        Check whether a citation is stored under a name.

        Args:
            name: Logical citation name (may contain '/')

        Returns:
            True if the citation exists
        """
        pass

    @abstractmethod
    async def fetch_citation(self, name: str) -> Optional[str]:
        """
        Fetch the citation stored under a name.

        Returns:
            Citation record or None if not found
        """
        pass

    @abstractmethod
    async def create_citation(self, name: str, citation: str) -> None:
        """
        Create a new citation. Citations are immutable once created.

        Args:
            name: Logical citation name
            citation: Citation record

        Raises:
            AlreadyExists: If a citation with this name exists
        """
        pass

    # Drafts

    @abstractmethod
    async def draft_exists(self, tag: str, version: str) -> bool:
        """
        Check whether a draft exists.

        Args:
            tag: Document tag
            version: Document version

        Returns:
            True if the draft exists
        """
        pass

    @abstractmethod
    async def fetch_draft(self, tag: str, version: str) -> Optional[str]:
        """
        Fetch a draft.

        Returns:
            Draft content or None if not found
        """
        pass

    @abstractmethod
    async def save_draft(self, tag: str, version: str, draft: str) -> None:
        """
        Save a draft, overwriting any previous draft with the same identifier.

        Args:
            tag: Document tag
            version: Document version
            draft: Draft content

        Raises:
            AlreadyCommitted: If a committed document has the same tag and version
        """
        pass

    @abstractmethod
    async def delete_draft(self, tag: str, version: str) -> None:
        """
        Delete a draft. Deleting a missing draft is not an error.

        Args:
            tag: Document tag
            version: Document version
        """
        pass

    # Documents

    @abstractmethod
    async def document_exists(self, tag: str, version: str) -> bool:
        """
        Check whether a committed document exists.

        Returns:
            True if the document exists
        """
        pass

    @abstractmethod
    async def fetch_document(self, tag: str, version: str) -> Optional[str]:
        """
        Fetch a committed document.

        Returns:
            Document content or None if not found
        """
        pass

    @abstractmethod
    async def create_document(self, tag: str, version: str, document: str) -> None:
        """
        Commit a document. Documents are immutable once created.

        Raises:
            AlreadyExists: If a document with this tag and version exists
        """
        pass

    # Types

    @abstractmethod
    async def type_exists(self, tag: str, version: str) -> bool:
        """
        Check whether a type definition exists.

        Returns:
            True if the type exists
        """
        pass

    @abstractmethod
    async def fetch_type(self, tag: str, version: str) -> Optional[str]:
        """
        Fetch a type definition.

        Returns:
            Type definition or None if not found
        """
        pass

    @abstractmethod
    async def create_type(self, tag: str, version: str, type_: str) -> None:
        """
        Commit a type definition. Types are immutable once created.

        Raises:
            AlreadyExists: If a type with this tag and version exists
        """
        pass

    # Queues

    @abstractmethod
    async def enqueue_message(self, queue: str, message: str) -> None:
        """
        Add a message to a queue. Queuing the same message twice stores two copies.

        Args:
            queue: Queue name
            message: Message payload
        """
        pass

    @abstractmethod
    async def dequeue_message(self, queue: str) -> Optional[str]:
        """
        Remove an arbitrary message from a queue.

        No ordering is guaranteed and a message is returned to at most one caller.

        Args:
            queue: Queue name

        Returns:
            Message payload or None if the queue is empty
        """
        pass

    async def close(self) -> None:
        """Release resources held by the repository."""
        return None

    async def __aenter__(self) -> "Repository":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.location})"
