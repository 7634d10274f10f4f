"""
Abstract storage backend interface

A backend exposes raw key operations over opaque bytes. The repository
contract and the queue dequeue algorithm are built only from these
primitives, so every backend must honor the same semantics.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Set


class AccessMode(Enum):
    """Access hint for a written record, mapped to a file permission"""

    READ_ONLY = 0o400
    UPDATABLE = 0o600

    @property
    def permissions(self) -> int:
        return self.value


class StorageBackend(ABC):
    """Primitive key operations every storage substrate must provide"""

    @property
    @abstractmethod
    def location(self) -> str:
        """Human readable description of where records are stored."""
        pass

    @abstractmethod
    async def key_exists(self, key: str) -> bool:
        """
        Check whether a record is stored under a key.

        Args:
            key: Storage key

        Returns:
            True if a record exists, False otherwise (never raises for absence)
        """
        pass

    @abstractmethod
    async def read(self, key: str) -> Optional[bytes]:
        """
        Read the record stored under a key.

        Args:
            key: Storage key

        Returns:
            Stored bytes, or None if nothing is stored
        """
        pass

    @abstractmethod
    async def write(self, key: str, data: bytes, mode: AccessMode) -> None:
        """
        Store a record under a key.

        Backends that can create-if-absent natively raise AlreadyExists when a
        READ_ONLY write targets an existing key. UPDATABLE writes overwrite.

        Args:
            key: Storage key
            data: Record bytes
            mode: Access hint for the stored record

        Raises:
            AlreadyExists: READ_ONLY write to an existing key (where enforceable)
            TransportFailure: Backend failure
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Remove the record stored under a key.

        At most one of several concurrent callers deleting the same key may
        observe True. The queue dequeue algorithm depends on this.

        Args:
            key: Storage key

        Returns:
            True if a record was present and removed, False if already absent
        """
        pass

    @abstractmethod
    async def list_keys(self, prefix: str) -> Set[str]:
        """
        List the keys currently stored under a prefix.

        Partially written records are never included.

        Args:
            prefix: Key prefix (e.g. 'queues/jobs/')

        Returns:
            Set of full keys, possibly empty
        """
        pass

    async def close(self) -> None:
        """Release any resources held by the backend."""
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.location})"
