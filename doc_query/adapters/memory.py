"""In-process memory adapter.

Collections are plain lists of documents held by the pool. Every document
crossing the adapter boundary is deep-copied, so callers never share state
with the store.
"""

from __future__ import annotations

import copy
from typing import Any

from doc_query.core.connection import StoreConfig
from doc_query.core.filters import FindOptions, apply_options, apply_patch, matches
from doc_query.core.keys import new_object_id


class MemoryStore:
    """Collections of one memory database."""

    def __init__(self) -> None:
        self.collections: dict[str, list[dict[str, Any]]] = {}

    def collection(self, name: str) -> list[dict[str, Any]]:
        return self.collections.setdefault(name, [])


class MemoryAsyncAdapter:
    """Asynchronous adapter over a process-local ``MemoryStore``."""

    @property
    def name(self) -> str:
        return "memory"

    async def create_pool_async(self, config: StoreConfig) -> MemoryStore:
        """Create the store; the single store object doubles as the pool."""
        return MemoryStore()

    async def acquire_connection_async(self, pool: MemoryStore) -> MemoryStore:
        return pool

    async def release_connection_async(self, connection: MemoryStore, pool: MemoryStore) -> None:
        return None

    async def close_pool_async(self, pool: MemoryStore) -> None:
        pool.collections.clear()

    async def find_async(
        self,
        connection: MemoryStore,
        collection: str,
        filter: dict[str, Any],
        options: FindOptions,
    ) -> list[dict[str, Any]]:
        docs = [doc for doc in connection.collection(collection) if matches(doc, filter)]
        return copy.deepcopy(apply_options(docs, options))

    async def insert_async(
        self, connection: MemoryStore, collection: str, documents: list[dict[str, Any]]
    ) -> list[Any]:
        target = connection.collection(collection)
        ids: list[Any] = []
        for document in documents:
            stored = copy.deepcopy(document)
            if stored.get("_id") is None:
                stored["_id"] = new_object_id()
            target.append(stored)
            ids.append(stored["_id"])
        return ids

    async def update_async(
        self,
        connection: MemoryStore,
        collection: str,
        filter: dict[str, Any],
        patch: dict[str, Any],
    ) -> int:
        target = connection.collection(collection)
        updated = 0
        for index, doc in enumerate(target):
            if matches(doc, filter):
                target[index] = apply_patch(doc, patch)
                updated += 1
        return updated

    async def delete_async(self, connection: MemoryStore, collection: str, filter: dict[str, Any]) -> int:
        target = connection.collection(collection)
        kept = [doc for doc in target if not matches(doc, filter)]
        deleted = len(target) - len(kept)
        target[:] = kept
        return deleted

    async def count_async(self, connection: MemoryStore, collection: str, filter: dict[str, Any]) -> int:
        return sum(1 for doc in connection.collection(collection) if matches(doc, filter))

    async def drop_async(self, connection: MemoryStore, collection: str) -> None:
        connection.collections.pop(collection, None)
