"""Underlying async key-value stores.

These are the crash-only stores the SafeStore wraps. They store and return
text verbatim and make no promise about what a previous app version, a failed
write or manual tampering left behind.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable

import duckdb

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """Async text key-value store."""

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def remove(self, key: str) -> None: ...

    async def keys(self) -> List[str]: ...


class MemoryKeyValueStore:
    """Volatile dict-backed store; state is lost with the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> List[str]:
        return list(self._data)

    @property
    def data(self) -> Dict[str, str]:
        """Raw contents, bypassing any validation."""
        return self._data


class DuckDBKeyValueStore:
    """Persists entries in a single DuckDB table.

    DuckDB calls are blocking, so every operation is pushed to the default
    executor. The connection is not safe for concurrent use from several
    executor threads and is serialized behind a lock.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self.conn: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.Lock()

    def open(self) -> None:
        """Open the database file and create the schema. Idempotent."""
        if self.conn is not None:
            return
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = duckdb.connect(self.db_path)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_entries (
                key VARCHAR PRIMARY KEY,
                value VARCHAR,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        logger.info(f"Local store opened: {self.db_path}")

    def close(self) -> None:
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None
                logger.debug(f"Local store closed: {self.db_path}")

    def _connection(self) -> duckdb.DuckDBPyConnection:
        if self.conn is None:
            self.open()
        return self.conn

    async def _run(self, fn, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, *args)

    def _get_sync(self, key: str) -> Optional[str]:
        with self._lock:
            row = self._connection().execute(
                "SELECT value FROM kv_entries WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def _set_sync(self, key: str, value: str) -> None:
        with self._lock:
            self._connection().execute("""
                INSERT INTO kv_entries (key, value) VALUES (?, ?)
                ON CONFLICT (key) DO UPDATE
                SET value = excluded.value, updated_at = now()
            """, (key, value))

    def _remove_sync(self, key: str) -> None:
        with self._lock:
            self._connection().execute("DELETE FROM kv_entries WHERE key = ?", (key,))

    def _keys_sync(self) -> List[str]:
        with self._lock:
            rows = self._connection().execute(
                "SELECT key FROM kv_entries ORDER BY key"
            ).fetchall()
        return [row[0] for row in rows]

    async def get(self, key: str) -> Optional[str]:
        return await self._run(self._get_sync, key)

    async def set(self, key: str, value: str) -> None:
        await self._run(self._set_sync, key, value)

    async def remove(self, key: str) -> None:
        await self._run(self._remove_sync, key)

    async def keys(self) -> List[str]:
        return await self._run(self._keys_sync)
