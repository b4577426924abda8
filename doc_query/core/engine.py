"""Store execution engine.

The Engine is the only object that talks to an adapter. Models, queries and
relations hand it a collection name plus a filter, patch or documents, and
get plain dicts back. Driver errors propagate unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from doc_query.core.connection import StoreConfig, StoreManager
from doc_query.core.exceptions import InvalidParameterError
from doc_query.core.filters import FindOptions

logger = logging.getLogger(__name__)

SortSpec = Sequence[tuple[str, int]]


class Engine:
    """Asynchronous document store client."""

    def __init__(self, store_manager: StoreManager) -> None:
        self._store_manager = store_manager

    @classmethod
    def from_config(cls, config: StoreConfig | None = None) -> Engine:
        """Create an Engine from a StoreConfig.

        Args:
            config: StoreConfig instance. Defaults to an in-memory store.

        Returns:
            Engine instance
        """
        return cls(StoreManager(config or StoreConfig()))

    @property
    def driver(self) -> str:
        return self._store_manager.adapter.name

    async def find(
        self,
        collection: str,
        filter: Mapping[str, Any] | None = None,
        *,
        sort: SortSpec = (),
        skip: int | None = None,
        limit: int | None = None,
        projection: Sequence[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch all documents matching ``filter``."""
        options = FindOptions(
            sort=tuple(sort),
            skip=skip,
            limit=limit,
            projection=tuple(projection) if projection else None,
        )
        logger.debug("find %s %r", collection, filter)
        async with self._store_manager.get_connection() as conn:
            return await self._store_manager.adapter.find_async(
                conn, collection, dict(filter or {}), options
            )

    async def find_one(
        self,
        collection: str,
        filter: Mapping[str, Any] | None = None,
        *,
        sort: SortSpec = (),
        projection: Sequence[str] | None = None,
    ) -> dict[str, Any] | None:
        """Fetch the first matching document, or None."""
        rows = await self.find(collection, filter, sort=sort, limit=1, projection=projection)
        return rows[0] if rows else None

    async def insert(
        self,
        collection: str,
        documents: Mapping[str, Any] | Sequence[Mapping[str, Any]],
    ) -> list[Any]:
        """Insert one document or a list of documents. Returns the new ids."""
        if isinstance(documents, Mapping):
            batch = [dict(documents)]
        elif isinstance(documents, Sequence) and not isinstance(documents, str):
            batch = [dict(doc) for doc in documents]
        else:
            raise InvalidParameterError(
                f"insert expects a document or a list of documents instead received {type(documents).__name__}"
            )
        logger.debug("insert %s (%d documents)", collection, len(batch))
        async with self._store_manager.get_connection() as conn:
            return await self._store_manager.adapter.insert_async(conn, collection, batch)

    async def update(
        self,
        collection: str,
        filter: Mapping[str, Any],
        patch: Mapping[str, Any],
    ) -> int:
        """Apply ``patch`` to every matching document. Returns the affected count."""
        logger.debug("update %s %r", collection, filter)
        async with self._store_manager.get_connection() as conn:
            return await self._store_manager.adapter.update_async(
                conn, collection, dict(filter), dict(patch)
            )

    async def delete(self, collection: str, filter: Mapping[str, Any]) -> int:
        """Delete every matching document. Returns the affected count."""
        logger.debug("delete %s %r", collection, filter)
        async with self._store_manager.get_connection() as conn:
            return await self._store_manager.adapter.delete_async(conn, collection, dict(filter))

    async def count(self, collection: str, filter: Mapping[str, Any] | None = None) -> int:
        """Count matching documents."""
        logger.debug("count %s %r", collection, filter)
        async with self._store_manager.get_connection() as conn:
            return await self._store_manager.adapter.count_async(conn, collection, dict(filter or {}))

    async def drop(self, collection: str) -> None:
        """Remove a collection and all of its documents."""
        logger.debug("drop %s", collection)
        async with self._store_manager.get_connection() as conn:
            await self._store_manager.adapter.drop_async(conn, collection)

    async def close(self) -> None:
        """Close the underlying pool."""
        await self._store_manager.close_pool()
