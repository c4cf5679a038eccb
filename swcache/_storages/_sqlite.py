from __future__ import annotations

import logging
import sqlite3
import time
import typing as tp
from contextlib import contextmanager
from pathlib import Path

import anysqlite

from swcache._exceptions import StorageError
from swcache._models import Entry
from swcache._storages._base import AsyncBaseGeneration, AsyncBaseStorage
from swcache._storages._packing import pack, unpack
from swcache._synchronization import AsyncLock
from swcache._utils import ensure_cache_dict

logger = logging.getLogger("swcache.storages")

__all__ = ("AsyncSqliteGeneration", "AsyncSqliteStorage")


@contextmanager
def _storage_errors(message: str) -> tp.Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise StorageError(f"{message}: {exc}") from exc


class AsyncSqliteGeneration(AsyncBaseGeneration):
    def __init__(self, name: str, storage: "AsyncSqliteStorage") -> None:
        super().__init__(name)
        self._storage = storage

    async def get_entry(self, key: str) -> tp.Optional[Entry]:
        connection = await self._storage._ensure_connection()
        with _storage_errors(f"Could not read from {self.name!r}"):
            cursor = await connection.cursor()
            await cursor.execute(
                "SELECT data FROM entries WHERE generation = ? AND cache_key = ?",
                (self.name, key),
            )
            row = await cursor.fetchone()
        return unpack(row[0]) if row is not None else None

    async def set_entry(self, entry: Entry) -> None:
        connection = await self._storage._ensure_connection()
        async with self._storage._lock:
            with _storage_errors(f"Could not store {entry.request.url} in {self.name!r}"):
                cursor = await connection.cursor()
                await cursor.execute(
                    "INSERT OR REPLACE INTO entries (generation, cache_key, data, created_at) VALUES (?, ?, ?, ?)",
                    (self.name, entry.key, pack(entry), entry.created_at),
                )
                await connection.commit()

    async def remove_entry(self, key: str) -> bool:
        connection = await self._storage._ensure_connection()
        async with self._storage._lock:
            with _storage_errors(f"Could not remove an entry from {self.name!r}"):
                cursor = await connection.cursor()
                await cursor.execute(
                    "SELECT 1 FROM entries WHERE generation = ? AND cache_key = ? LIMIT 1",
                    (self.name, key),
                )
                if await cursor.fetchone() is None:
                    return False
                await cursor.execute(
                    "DELETE FROM entries WHERE generation = ? AND cache_key = ?",
                    (self.name, key),
                )
                await connection.commit()
        return True

    async def list_entries(self) -> tp.List[Entry]:
        connection = await self._storage._ensure_connection()
        with _storage_errors(f"Could not list entries of {self.name!r}"):
            cursor = await connection.cursor()
            await cursor.execute(
                "SELECT data FROM entries WHERE generation = ? ORDER BY rowid",
                (self.name,),
            )
            rows = await cursor.fetchall()
        entries = []
        for row in rows:
            entry = unpack(row[0])
            if entry is not None:
                entries.append(entry)
        return entries


class AsyncSqliteStorage(AsyncBaseStorage):
    """
    A storage that keeps every generation in one SQLite database.

    Every ``sqlite3.Error`` is raised as ``StorageError``.

    Args:
        connection: An open anysqlite connection. When omitted, one is
            created on first use at ``database_path``.
        database_path: Database file name. Relative names are placed in
            ``.cache/swcache``.
    """

    def __init__(
        self,
        *,
        connection: tp.Optional[anysqlite.Connection] = None,
        database_path: tp.Union[str, Path] = "swcache.db",
    ) -> None:
        self.connection = connection
        self.database_path: Path = database_path if isinstance(database_path, Path) else Path(database_path)
        self._initialized = False
        self._setup_lock = AsyncLock()
        self._lock = AsyncLock()

    async def _ensure_connection(self) -> anysqlite.Connection:
        """Ensure connection is established and database is initialized."""
        async with self._setup_lock:
            with _storage_errors(f"Could not open {self.database_path}"):
                if self.connection is None:
                    parent = self.database_path.parent if self.database_path.parent != Path(".") else None
                    full_path = ensure_cache_dict(parent) / self.database_path.name
                    self.connection = await anysqlite.connect(str(full_path))
                if not self._initialized:
                    await self._initialize_database()
                    self._initialized = True
            return self.connection

    async def _initialize_database(self) -> None:
        assert self.connection is not None
        cursor = await self.connection.cursor()

        await cursor.execute("""
            CREATE TABLE IF NOT EXISTS generations (
                name TEXT PRIMARY KEY,
                created_at REAL NOT NULL
            )
        """)

        await cursor.execute("""
            CREATE TABLE IF NOT EXISTS entries (
                generation TEXT NOT NULL,
                cache_key TEXT NOT NULL,
                data BLOB NOT NULL,
                created_at REAL NOT NULL,
                PRIMARY KEY (generation, cache_key)
            )
        """)

        await cursor.execute("CREATE INDEX IF NOT EXISTS idx_entries_generation ON entries(generation)")

        await self.connection.commit()

    async def open(self, name: str) -> AsyncSqliteGeneration:
        connection = await self._ensure_connection()
        async with self._lock:
            with _storage_errors(f"Could not open generation {name!r}"):
                cursor = await connection.cursor()
                await cursor.execute(
                    "INSERT OR IGNORE INTO generations (name, created_at) VALUES (?, ?)",
                    (name, time.time()),
                )
                await connection.commit()
        return AsyncSqliteGeneration(name, self)

    async def has(self, name: str) -> bool:
        connection = await self._ensure_connection()
        with _storage_errors(f"Could not look up generation {name!r}"):
            cursor = await connection.cursor()
            await cursor.execute("SELECT 1 FROM generations WHERE name = ? LIMIT 1", (name,))
            return await cursor.fetchone() is not None

    async def keys(self) -> tp.List[str]:
        connection = await self._ensure_connection()
        with _storage_errors("Could not list generations"):
            cursor = await connection.cursor()
            await cursor.execute("SELECT name FROM generations ORDER BY rowid")
            return [row[0] for row in await cursor.fetchall()]

    async def delete(self, name: str) -> bool:
        connection = await self._ensure_connection()
        async with self._lock:
            with _storage_errors(f"Could not delete generation {name!r}"):
                cursor = await connection.cursor()
                await cursor.execute("SELECT 1 FROM generations WHERE name = ? LIMIT 1", (name,))
                existed = await cursor.fetchone() is not None
                await cursor.execute("DELETE FROM generations WHERE name = ?", (name,))
                await cursor.execute("DELETE FROM entries WHERE generation = ?", (name,))
                await connection.commit()
        if existed:
            logger.debug(f"Deleted generation {name!r}")
        return existed

    async def aclose(self) -> None:
        if self.connection is not None:
            await self.connection.close()
            self.connection = None
            self._initialized = False
