"""
In-memory implementation of StorageBackend

Records live in a process-local dictionary. Useful for tests and for
single-process deployments that do not need durability.
"""

import logging
from typing import Dict, Optional, Set, Tuple

from .backend import AccessMode, StorageBackend
from .errors import AlreadyExists


logger = logging.getLogger(__name__)


class MemoryBackend(StorageBackend):
    """Dictionary-backed storage"""

    def __init__(self):
        self._records: Dict[str, Tuple[bytes, AccessMode]] = {}

    @property
    def location(self) -> str:
        return "memory:"

    async def key_exists(self, key: str) -> bool:
        return key in self._records

    async def read(self, key: str) -> Optional[bytes]:
        record = self._records.get(key)
        return record[0] if record else None

    async def write(self, key: str, data: bytes, mode: AccessMode) -> None:
        if mode is AccessMode.READ_ONLY and key in self._records:
            raise AlreadyExists(
                f"Record already exists: {key}",
                operation="write",
                identifier=key
            )
        self._records[key] = (bytes(data), mode)
        logger.debug(f"Stored {len(data)} bytes under {key}")

    async def delete(self, key: str) -> bool:
        # dict.pop is a single step, so only one caller can remove the entry
        return self._records.pop(key, None) is not None

    async def list_keys(self, prefix: str) -> Set[str]:
        return {key for key in list(self._records) if key.startswith(prefix)}

    def mode_of(self, key: str) -> Optional[AccessMode]:
        """Access mode a record was written with, or None if absent."""
        record = self._records.get(key)
        return record[1] if record else None

    def __len__(self) -> int:
        return len(self._records)
