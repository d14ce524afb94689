"""
This module defines the abstract contract the live store needs from a storage engine.

The store is written against these `Protocol`s only: an engine hands out named
document collections, and each collection offers point reads, predicate reads,
atomic conditional writes and a live feed of new inserts. Any document database
that can provide those can back a `LiveStore`; `adaptors.sqlite` is the one
shipped with the library.

Predicates are dicts mapping dotted field paths to a literal (equality) or to an
operator dict such as `{"$gt": value}`.
"""
from typing import Any, AsyncIterator, Dict, Protocol

Document = Dict[str, Any]
Predicate = Dict[str, Any]


class DocumentCollection(Protocol):
    """
    A set of JSON-like documents addressed by their `_id` key.
    Every write is a single atomic operation against the engine.
    """

    async def insert_one(self, document: Document) -> None:
        """Persists `document`, raising `DuplicateKeyError` if its key is taken."""
        ...

    async def update_one(self, predicate: Predicate, document: Document) -> int:
        """Replaces at most one document matching `predicate`; returns the affected count."""
        ...

    async def find_one(self, key: str) -> Document | None:
        ...

    def find(self, predicate: Predicate) -> AsyncIterator[Document]:
        ...

    async def delete_one(self, key: str) -> int:
        ...

    async def watch(self, predicate: Predicate) -> AsyncIterator[Document]:
        """
        Fixes a cursor at the current end of the collection and returns a live
        iterator over documents inserted after that point that match `predicate`.
        """
        ...


class StorageEngine(Protocol):
    async def open(self) -> None:
        ...

    async def collection(self, name: str) -> DocumentCollection:
        ...

    async def close(self) -> None:
        ...
