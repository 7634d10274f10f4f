"""
SQLite implementation of StorageBackend

Provides an async SQLite connection with schema initialization. Each record
is one row keyed by its storage key.
"""

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Optional, Set, Union

import aiosqlite

from .backend import AccessMode, StorageBackend
from .errors import AlreadyExists, TransportFailure


logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS records (
    key TEXT PRIMARY KEY,
    data BLOB NOT NULL,
    mode INTEGER NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


class SQLiteBackend(StorageBackend):
    """
    Stores records in a single SQLite table.

    Features:
    - Lazy connection with schema initialization
    - Primary key insert for read-only records (create-once)
    - Upsert for updatable records
    - Row count based delete detection
    """

    def __init__(self, db_path: Union[str, Path]):
        """
        Initialize backend.

        Args:
            db_path: Path to SQLite database file, or ':memory:'
        """
        self._db_path = str(db_path)
        self._connection: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    @property
    def db_path(self) -> str:
        """Get database file path."""
        return self._db_path

    @property
    def location(self) -> str:
        return f"sqlite:{self._db_path}"

    async def _get_connection(self) -> aiosqlite.Connection:
        async with self._lock:
            if self._connection is None:
                if self._db_path != ":memory:":
                    Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
                conn = await aiosqlite.connect(self._db_path)
                await conn.executescript(SCHEMA_SQL)
                await conn.commit()
                self._connection = conn
                logger.info(f"Opened record database at {self._db_path}")
            return self._connection

    async def key_exists(self, key: str) -> bool:
        row = await self._fetch_one("key_exists", key, "SELECT 1 FROM records WHERE key = ?")
        return row is not None

    async def read(self, key: str) -> Optional[bytes]:
        row = await self._fetch_one("read", key, "SELECT data FROM records WHERE key = ?")
        return bytes(row[0]) if row else None

    async def write(self, key: str, data: bytes, mode: AccessMode) -> None:
        conn = await self._get_connection()
        try:
            if mode is AccessMode.READ_ONLY:
                await conn.execute(
                    "INSERT INTO records (key, data, mode) VALUES (?, ?, ?)",
                    (key, data, mode.permissions)
                )
            else:
                await conn.execute("""
                    INSERT INTO records (key, data, mode) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET data = excluded.data, mode = excluded.mode
                """, (key, data, mode.permissions))
            await conn.commit()
        except sqlite3.IntegrityError as e:
            raise AlreadyExists(
                f"Record already exists: {key}",
                operation="write",
                identifier=key
            ) from e
        except sqlite3.Error as e:
            raise TransportFailure(
                f"Database error during write of {key}: {e}",
                operation="write",
                identifier=key
            ) from e

    async def delete(self, key: str) -> bool:
        conn = await self._get_connection()
        try:
            cursor = await conn.execute("DELETE FROM records WHERE key = ?", (key,))
            await conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise TransportFailure(
                f"Database error during delete of {key}: {e}",
                operation="delete",
                identifier=key
            ) from e

    async def list_keys(self, prefix: str) -> Set[str]:
        conn = await self._get_connection()
        try:
            cursor = await conn.execute(
                "SELECT key FROM records WHERE substr(key, 1, ?) = ?",
                (len(prefix), prefix)
            )
            rows = await cursor.fetchall()
            return {row[0] for row in rows}
        except sqlite3.Error as e:
            raise TransportFailure(
                f"Database error during list_keys of {prefix}: {e}",
                operation="list_keys",
                identifier=prefix
            ) from e

    async def _fetch_one(self, operation: str, key: str, query: str):
        conn = await self._get_connection()
        try:
            cursor = await conn.execute(query, (key,))
            return await cursor.fetchone()
        except sqlite3.Error as e:
            raise TransportFailure(
                f"Database error during {operation} of {key}: {e}",
                operation=operation,
                identifier=key
            ) from e

    async def close(self) -> None:
        async with self._lock:
            if self._connection is not None:
                await self._connection.close()
                self._connection = None
