"""Contract tests for adapter protocol compliance."""

from __future__ import annotations

from typing import Any

import pytest

from doc_query.adapters.memory import MemoryAsyncAdapter, MemoryStore
from doc_query.adapters.protocol import AsyncAdapter
from doc_query.adapters.sqlite import SqliteAsyncAdapter
from doc_query.core.connection import StoreConfig
from doc_query.core.filters import FindOptions


async def _exercise(adapter: Any, conn: Any) -> None:
    ids = await adapter.insert_async(
        conn, "users", [{"name": "virk", "age": 30}, {"_id": "u2", "name": "nikk", "age": 20}]
    )
    assert len(ids) == 2
    assert ids[1] == "u2"

    rows = await adapter.find_async(conn, "users", {}, FindOptions(sort=(("age", 1),)))
    assert [row["name"] for row in rows] == ["nikk", "virk"]

    assert await adapter.update_async(conn, "users", {"_id": "u2"}, {"$set": {"age": 21}}) == 1
    assert await adapter.count_async(conn, "users", {"age": {"$gt": 20}}) == 2
    assert await adapter.delete_async(conn, "users", {"name": "virk"}) == 1
    assert await adapter.count_async(conn, "users", {}) == 1

    await adapter.drop_async(conn, "users")
    assert await adapter.find_async(conn, "users", {}, FindOptions()) == []


class TestMemoryAdapterProtocol:
    def test_implements_async_protocol(self) -> None:
        adapter = MemoryAsyncAdapter()
        assert isinstance(adapter, AsyncAdapter)

    def test_name(self) -> None:
        assert MemoryAsyncAdapter().name == "memory"

    async def test_lifecycle(self, memory_config: StoreConfig) -> None:
        adapter = MemoryAsyncAdapter()
        pool = await adapter.create_pool_async(memory_config)
        assert isinstance(pool, MemoryStore)

        conn = await adapter.acquire_connection_async(pool)
        assert conn is pool
        await _exercise(adapter, conn)

        await adapter.release_connection_async(conn, pool)
        await adapter.close_pool_async(pool)
        assert pool.collections == {}

    async def test_documents_are_copied(self, memory_config: StoreConfig) -> None:
        adapter = MemoryAsyncAdapter()
        pool = await adapter.create_pool_async(memory_config)
        document: dict[str, Any] = {"tags": ["a"]}
        await adapter.insert_async(pool, "posts", [document])
        document["tags"].append("b")
        rows = await adapter.find_async(pool, "posts", {}, FindOptions())
        rows[0]["tags"].append("c")
        assert (await adapter.find_async(pool, "posts", {}, FindOptions()))[0]["tags"] == ["a"]


class TestSqliteAdapterProtocol:
    def test_implements_async_protocol(self) -> None:
        adapter = SqliteAsyncAdapter()
        assert isinstance(adapter, AsyncAdapter)

    def test_name(self) -> None:
        assert SqliteAsyncAdapter().name == "sqlite"

    async def test_lifecycle(self, sqlite_config: StoreConfig) -> None:
        adapter = SqliteAsyncAdapter()
        pool = await adapter.create_pool_async(sqlite_config)
        assert len(pool) == 1

        conn = await adapter.acquire_connection_async(pool)
        assert conn is not None
        assert len(pool) == 0
        await _exercise(adapter, conn)

        await adapter.release_connection_async(conn, pool)
        assert len(pool) == 1

        await adapter.close_pool_async(pool)
        assert len(pool) == 0

    async def test_memory_database_pool_is_single(self) -> None:
        adapter = SqliteAsyncAdapter()
        pool = await adapter.create_pool_async(StoreConfig(driver="sqlite", database=":memory:", pool_size=4))
        assert len(pool) == 1
        await adapter.close_pool_async(pool)

    async def test_empty_pool(self) -> None:
        with pytest.raises(RuntimeError):
            await SqliteAsyncAdapter().acquire_connection_async([])
