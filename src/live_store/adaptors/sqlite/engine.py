"""
This module provides the SQLite implementation of the `StorageEngine` protocol.

The engine owns the database connections: one autocommit connection for
request/response operations and, for file databases, a dedicated connection
for the live feed so that polling never queues behind writes. Schema
management is centralized here; each collection table is created on first use.
"""
import re

import aiosqlite
import logging

from live_store.exceptions import StoreConnectionError
from live_store.protocols import StorageEngine
from .collection import SQLiteCollection

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SQLiteEngine(StorageEngine):
    def __init__(
        self,
        db_path: str,
        *,
        polling_interval: float = 0.2,
        cache_size_kib: int = -16384,
        busy_timeout_ms: int = 5000,
    ):
        if not db_path:
            raise ValueError("`db_path` must be provided in the configuration.")
        self.db_path = db_path
        self.is_memory_db = db_path == ":memory:"
        self._polling_interval = polling_interval
        self._cache_size_kib = cache_size_kib
        self._busy_timeout_ms = busy_timeout_ms
        self._conn: aiosqlite.Connection | None = None
        self._watch_conn: aiosqlite.Connection | None = None

    async def _connect(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.db_path, isolation_level=None)
        try:
            if not self.is_memory_db:
                await conn.execute("PRAGMA journal_mode=WAL;")
                await conn.execute("PRAGMA synchronous = NORMAL;")
            await conn.execute(f"PRAGMA cache_size = {int(self._cache_size_kib)};")
            await conn.execute(f"PRAGMA busy_timeout = {int(self._busy_timeout_ms)};")
        except Exception:
            await conn.close()
            raise
        return conn

    async def open(self):
        """Opens the connections. Safe to call once the engine is already open."""
        if self._conn is not None:
            return
        try:
            self._conn = await self._connect()
            if self.is_memory_db:
                # A private in-memory database only exists on the connection that created it.
                self._watch_conn = self._conn
            else:
                self._watch_conn = await self._connect()
        except aiosqlite.Error as e:
            await self.close()
            raise StoreConnectionError(f"Could not open SQLite database {self.db_path}: {e}") from e
        logging.info(f"SQLite engine opened for {self.db_path}")

    async def collection(self, name: str) -> SQLiteCollection:
        if not _IDENTIFIER.match(name):
            raise ValueError(f"Invalid collection name: {name!r}")
        if self._conn is None:
            raise RuntimeError("SQLite engine is not open")
        try:
            await self._conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {name} (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    key TEXT NOT NULL UNIQUE,
                    body TEXT NOT NULL
                )
                """
            )
        except aiosqlite.Error as e:
            raise StoreConnectionError(f"Could not create collection {name}: {e}") from e
        return SQLiteCollection(
            name, self._conn, self._watch_conn, polling_interval=self._polling_interval
        )

    async def close(self):
        """Closes all connections. Idempotent."""
        watch_conn, conn = self._watch_conn, self._conn
        self._watch_conn = self._conn = None
        if watch_conn is not None and watch_conn is not conn:
            await watch_conn.close()
        if conn is not None:
            await conn.close()
            logging.info(f"SQLite engine closed for {self.db_path}")
