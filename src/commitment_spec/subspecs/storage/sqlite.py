"""
SQLite storage backend.

All keys live in a single table. Values are stored verbatim in a BLOB column.

SQLite calls block, so every operation runs in a worker thread. A lock
serializes access to the shared connection: concurrent writers to the same
key are therefore ordered, and since facts are content-addressed the last
writer always stores the same bytes as the first.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Iterable, Mapping

from .namespaces import ALL_NAMESPACES, FACTS

logger = logging.getLogger(__name__)


class SQLiteStorage:
    """
    SQLite implementation of the Storage protocol.

    Stores facts in a single SQLite file, or in memory with ":memory:".
    """

    def __init__(self, path: Path | str) -> None:
        """
        Open the database and create tables if they don't exist.

        Args:
            path: Path to SQLite database file.
                  Use ":memory:" for in-memory database.
        """
        self._path = Path(path) if isinstance(path, str) else path

        # Calls are dispatched to worker threads, so the connection must be
        # usable from any thread. The lock below keeps access sequential.
        self._conn = sqlite3.connect(str(self._path), check_same_thread=False)
        self._lock = asyncio.Lock()

        self._init_schema()
        logger.debug("Opened fact store at %s", self._path)

    def _init_schema(self) -> None:
        """Create tables if they don't exist."""
        cursor = self._conn.cursor()
        for namespace in ALL_NAMESPACES:
            cursor.execute(namespace.CREATE_TABLE)
        self._conn.commit()

    # -------------------------------------------------------------------------
    # Blocking helpers
    # -------------------------------------------------------------------------

    def _get(self, key: bytes) -> bytes | None:
        cursor = self._conn.execute(
            f"SELECT value FROM {FACTS.TABLE_NAME} WHERE key = ?",
            (bytes(key),),
        )
        row = cursor.fetchone()
        return None if row is None else bytes(row[0])

    def _mget(self, keys: list[bytes]) -> list[bytes | None]:
        return [self._get(key) for key in keys]

    def _mset(self, updates: list[tuple[bytes, bytes]]) -> None:
        # INSERT OR REPLACE: rewriting a fact with identical content is a no-op.
        self._conn.executemany(
            f"INSERT OR REPLACE INTO {FACTS.TABLE_NAME} (key, value) VALUES (?, ?)",
            updates,
        )
        self._conn.commit()

    def _delete(self, key: bytes) -> None:
        self._conn.execute(f"DELETE FROM {FACTS.TABLE_NAME} WHERE key = ?", (bytes(key),))
        self._conn.commit()

    # -------------------------------------------------------------------------
    # Storage protocol
    # -------------------------------------------------------------------------

    async def get_value(self, key: bytes) -> bytes | None:
        async with self._lock:
            return await asyncio.to_thread(self._get, key)

    async def set_value(self, key: bytes, value: bytes) -> None:
        async with self._lock:
            await asyncio.to_thread(self._mset, [(bytes(key), bytes(value))])

    async def del_value(self, key: bytes) -> None:
        async with self._lock:
            await asyncio.to_thread(self._delete, key)

    async def mget(self, keys: Iterable[bytes]) -> list[bytes | None]:
        async with self._lock:
            return await asyncio.to_thread(self._mget, [bytes(k) for k in keys])

    async def mset(self, updates: Mapping[bytes, bytes]) -> None:
        rows = [(bytes(k), bytes(v)) for k, v in updates.items()]
        async with self._lock:
            await asyncio.to_thread(self._mset, rows)

    async def close(self) -> None:
        """Close database connection."""
        async with self._lock:
            self._conn.close()
        logger.debug("Closed fact store at %s", self._path)
