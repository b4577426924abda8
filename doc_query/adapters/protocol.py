"""Store adapter protocol.

Every adapter module MUST implement this protocol so the Engine can drive
any backend through one interface.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from doc_query.core.connection import StoreConfig
from doc_query.core.filters import FindOptions


@runtime_checkable
class AsyncAdapter(Protocol):
    """Asynchronous document store adapter protocol."""

    @property
    def name(self) -> str:
        """Driver name, as used in ``StoreConfig.driver``."""
        ...

    async def create_pool_async(self, config: StoreConfig) -> Any:
        """Create a connection pool."""
        ...

    async def acquire_connection_async(self, pool: Any) -> Any:
        """Acquire a connection from the pool."""
        ...

    async def release_connection_async(self, connection: Any, pool: Any) -> None:
        """Release a connection back to the pool."""
        ...

    async def close_pool_async(self, pool: Any) -> None:
        """Close the pool and release all connections."""
        ...

    async def find_async(
        self,
        connection: Any,
        collection: str,
        filter: dict[str, Any],
        options: FindOptions,
    ) -> list[dict[str, Any]]:
        """Return copies of the documents matching ``filter``."""
        ...

    async def insert_async(
        self, connection: Any, collection: str, documents: list[dict[str, Any]]
    ) -> list[Any]:
        """Insert documents and return their ids, assigning ``_id`` when missing."""
        ...

    async def update_async(
        self,
        connection: Any,
        collection: str,
        filter: dict[str, Any],
        patch: dict[str, Any],
    ) -> int:
        """Patch every matching document. Returns the number updated."""
        ...

    async def delete_async(self, connection: Any, collection: str, filter: dict[str, Any]) -> int:
        """Delete every matching document. Returns the number deleted."""
        ...

    async def count_async(self, connection: Any, collection: str, filter: dict[str, Any]) -> int:
        """Count matching documents."""
        ...

    async def drop_async(self, connection: Any, collection: str) -> None:
        """Remove a whole collection."""
        ...
