"""
Filesystem implementation of StorageBackend

Each key maps to a file below an explicit root directory. Blocking file
operations run in the default executor so the event loop never stalls.
"""

import asyncio
import logging
import os
import tempfile
from functools import partial
from pathlib import Path
from typing import Callable, Optional, Set, Union

from .backend import AccessMode, StorageBackend
from .errors import AlreadyExists, MalformedRequest, RepositoryError, TransportFailure


logger = logging.getLogger(__name__)

# Permissions for directories created below the root
DIRECTORY_MODE = 0o700


class LocalBackend(StorageBackend):
    """
    Stores records as files in a directory tree.

    Records are written to a hidden temporary file and then published in a
    single step, so listings never include partially written records.
    Read-only records are published with a hard link, which fails if the
    target already exists.
    """

    def __init__(self, root: Union[str, Path]):
        """
        Initialize backend.

        Args:
            root: Directory holding all records (created on first write)
        """
        self.root = Path(root)

    @property
    def location(self) -> str:
        return f"file:{self.root}"

    async def key_exists(self, key: str) -> bool:
        path = self._path(key)
        return await self._run("key_exists", key, path.is_file)

    async def read(self, key: str) -> Optional[bytes]:
        return await self._run("read", key, self._read_sync, self._path(key))

    async def write(self, key: str, data: bytes, mode: AccessMode) -> None:
        await self._run("write", key, self._write_sync, key, self._path(key), data, mode)
        logger.debug(f"Wrote {len(data)} bytes to {key}")

    async def delete(self, key: str) -> bool:
        return await self._run("delete", key, self._delete_sync, self._path(key))

    async def list_keys(self, prefix: str) -> Set[str]:
        return await self._run("list_keys", prefix, self._list_sync, prefix)

    def _path(self, key: str) -> Path:
        parts = key.split("/")
        if not key or any(part in ("", ".", "..") for part in parts):
            raise MalformedRequest(f"Invalid storage key: {key!r}", identifier=key)
        return self.root.joinpath(*parts)

    async def _run(self, operation: str, key: str, func: Callable, *args):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(func, *args))
        except RepositoryError:
            raise
        except OSError as e:
            raise TransportFailure(
                f"Filesystem error during {operation} of {key}: {e}",
                operation=operation,
                identifier=key
            ) from e

    @staticmethod
    def _read_sync(path: Path) -> Optional[bytes]:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    @staticmethod
    def _write_sync(key: str, path: Path, data: bytes, mode: AccessMode) -> None:
        path.parent.mkdir(parents=True, exist_ok=True, mode=DIRECTORY_MODE)

        fd, temp = tempfile.mkstemp(prefix=".", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.chmod(temp, mode.permissions)

            if mode is AccessMode.READ_ONLY:
                try:
                    os.link(temp, path)
                except FileExistsError:
                    raise AlreadyExists(
                        f"Record already exists: {key}",
                        operation="write",
                        identifier=key
                    )
            else:
                os.replace(temp, path)
        finally:
            # Already gone after os.replace
            try:
                os.unlink(temp)
            except FileNotFoundError:
                pass

    @staticmethod
    def _delete_sync(path: Path) -> bool:
        try:
            os.unlink(path)
            return True
        except FileNotFoundError:
            return False

    def _list_sync(self, prefix: str) -> Set[str]:
        directory, _, _ = prefix.rpartition("/")
        base = self.root.joinpath(*directory.split("/")) if directory else self.root
        if not base.is_dir():
            return set()

        keys = set()
        for dirpath, _, filenames in os.walk(base):
            for filename in filenames:
                # Hidden files are in-flight writes
                if filename.startswith("."):
                    continue
                key = (Path(dirpath) / filename).relative_to(self.root).as_posix()
                if key.startswith(prefix):
                    keys.add(key)
        return keys
