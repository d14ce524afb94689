"""
This module provides the SQLite implementation of the `DocumentCollection` protocol.

Each collection is one table holding a JSON body per document, plus the
document key in its own `UNIQUE` column. Every write is a single statement on
an autocommit connection, so the uniqueness constraint and the `WHERE` clause
of an update are the only concurrency control needed.
"""
from datetime import datetime
from typing import Any, AsyncIterator, List, Tuple
import asyncio
import json
import logging

import aiosqlite
import pydantic_core

from live_store.censor import KEY_FIELD
from live_store.exceptions import DuplicateKeyError
from live_store.keys import format_timestamp
from live_store.protocols import Document, DocumentCollection, Predicate
from .filter_parser import parse_predicate_to_sql


def _encode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_timestamp(value)
    return pydantic_core.to_jsonable_python(value)


def dumps(document: Document) -> str:
    return json.dumps(document, default=_encode_value)


class SQLiteCollection(DocumentCollection):
    """
    A document collection backed by a single SQLite table.

    Writes and point reads go through `conn`. The live feed polls through
    `watch_conn`, which may be the same connection for in-memory databases.
    """

    def __init__(
        self,
        name: str,
        conn: aiosqlite.Connection,
        watch_conn: aiosqlite.Connection,
        polling_interval: float = 0.2,
    ):
        self.name = name
        self._conn = conn
        self._watch_conn = watch_conn
        self._polling_interval = polling_interval

    def _decode(self, body: str, seq: int) -> Document | None:
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            logging.warning(f"Skipping malformed document in {self.name} with seq {seq}: {e}")
            return None

    async def _execute_write(self, query: str, params: Tuple) -> int:
        """Runs one write statement and returns the number of affected rows."""
        try:
            cursor = await self._conn.execute(query, params)
        except aiosqlite.IntegrityError:
            raise
        except aiosqlite.Error as e:
            logging.error(f"Failed to write to SQLite collection {self.name}: {e}")
            raise
        try:
            return cursor.rowcount
        finally:
            await cursor.close()

    async def insert_one(self, document: Document) -> None:
        key = document[KEY_FIELD]
        try:
            await self._execute_write(
                f"INSERT INTO {self.name} (key, body) VALUES (?, ?)",
                (key, dumps(document)),
            )
        except aiosqlite.IntegrityError as e:
            raise DuplicateKeyError(f"Key {key} already exists in {self.name}") from e

    async def update_one(self, predicate: Predicate, document: Document) -> int:
        where, params = parse_predicate_to_sql(predicate)
        # The subquery limits the replacement to a single matching row.
        query = (
            f"UPDATE {self.name} SET key = ?, body = ? "
            f"WHERE seq = (SELECT seq FROM {self.name} WHERE {where} ORDER BY seq LIMIT 1)"
        )
        key = document[KEY_FIELD]
        try:
            return await self._execute_write(query, (key, dumps(document), *params))
        except aiosqlite.IntegrityError as e:
            raise DuplicateKeyError(f"Key {key} already exists in {self.name}") from e

    async def find_one(self, key: str) -> Document | None:
        async with self._conn.execute(
            f"SELECT seq, body FROM {self.name} WHERE key = ?", (key,)
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        seq, body = row
        return self._decode(body, seq)

    async def find(self, predicate: Predicate) -> AsyncIterator[Document]:
        """An async generator over the documents matching `predicate`, in insertion order."""
        where, params = parse_predicate_to_sql(predicate)
        async with self._conn.execute(
            f"SELECT seq, body FROM {self.name} WHERE {where} ORDER BY seq", params
        ) as cursor:
            async for seq, body in cursor:
                document = self._decode(body, seq)
                if document is not None:
                    yield document

    async def delete_one(self, key: str) -> int:
        return await self._execute_write(f"DELETE FROM {self.name} WHERE key = ?", (key,))

    async def watch(self, predicate: Predicate) -> AsyncIterator[Document]:
        where, params = parse_predicate_to_sql(predicate)
        async with self._watch_conn.execute(f"SELECT MAX(seq) FROM {self.name}") as cursor:
            row = await cursor.fetchone()
        last_seq = row[0] if row and row[0] is not None else 0
        logging.info(f"Watching {self.name} from seq {last_seq}")
        return self._tail(last_seq, where, params)

    async def _tail(self, last_seq: int, where: str, params: List[Any]) -> AsyncIterator[Document]:
        """The polling loop behind `watch`."""
        query = f"SELECT seq, body FROM {self.name} WHERE seq > ? AND ({where}) ORDER BY seq"
        while True:
            rows = []
            try:
                async with self._watch_conn.execute(query, (last_seq, *params)) as cursor:
                    rows = await cursor.fetchall()
            except Exception as e:
                logging.error(f"Watch poll loop error on {self.name}: {e}")
            for seq, body in rows:
                last_seq = seq
                document = self._decode(body, seq)
                if document is not None:
                    yield document
            await asyncio.sleep(self._polling_interval)
