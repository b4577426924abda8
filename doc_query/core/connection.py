"""Store configuration and connection management.

StoreConfig is a Pydantic model for type-safe store config.
StoreManager uses the adapter protocol for pool-based connection lifecycle.
"""

from __future__ import annotations

import importlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from pydantic import BaseModel

from doc_query.core.enums import StoreBackend
from doc_query.core.exceptions import AdapterError


class StoreConfig(BaseModel):
    """Configuration for a document store."""

    driver: str = "memory"
    database: str = ":memory:"
    pool_size: int = 1
    extra: dict[str, Any] = {}


# Adapter module mapping: driver name -> (module_path, async_class)
_ADAPTER_MAP: dict[str, tuple[str, str]] = {
    StoreBackend.MEMORY.value: ("doc_query.adapters.memory", "MemoryAsyncAdapter"),
    StoreBackend.SQLITE.value: ("doc_query.adapters.sqlite", "SqliteAsyncAdapter"),
}


def _load_adapter(driver: str) -> Any:
    """Load an async adapter by driver name."""
    driver_lower = driver.lower()
    if driver_lower not in _ADAPTER_MAP:
        raise AdapterError(f"Unsupported store driver: {driver}")

    module_path, cls_name = _ADAPTER_MAP[driver_lower]
    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name)()
    except (ImportError, AttributeError) as e:
        raise AdapterError(f"Failed to load adapter for '{driver}': {e}") from e


class StoreManager:
    """Asynchronous connection manager using the AsyncAdapter protocol."""

    def __init__(self, config: StoreConfig) -> None:
        self.config = config
        self._adapter = _load_adapter(config.driver)
        self._pool: Any = None

    @property
    def adapter(self) -> Any:
        return self._adapter

    async def initialize_pool(self) -> Any:
        """Initialize the connection pool."""
        if self._pool is None:
            self._pool = await self._adapter.create_pool_async(self.config)
        return self._pool

    @asynccontextmanager
    async def get_connection(self) -> AsyncIterator[Any]:
        """Get a connection from the pool as an async context manager."""
        if self._pool is None:
            await self.initialize_pool()
        connection = await self._adapter.acquire_connection_async(self._pool)
        try:
            yield connection
        finally:
            await self._adapter.release_connection_async(connection, self._pool)

    async def close_pool(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            await self._adapter.close_pool_async(self._pool)
            self._pool = None
