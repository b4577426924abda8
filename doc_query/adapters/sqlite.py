"""SQLite adapter (aiosqlite).

Documents are stored as JSON bodies in a single ``documents`` table keyed by
collection name. Filtering, sorting and patching run through the shared
filter evaluator, so the SQLite backend answers queries exactly like the
memory backend.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

import aiosqlite

from doc_query.core.connection import StoreConfig
from doc_query.core.filters import FindOptions, apply_options, apply_patch, matches
from doc_query.core.keys import new_object_id, normalize_key

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    position INTEGER PRIMARY KEY AUTOINCREMENT,
    collection TEXT NOT NULL,
    doc_id TEXT NOT NULL,
    body TEXT NOT NULL
)
"""
_INDEX = "CREATE INDEX IF NOT EXISTS documents_collection ON documents (collection, doc_id)"


def _encode_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"$date": value.isoformat()}
    if isinstance(value, (set, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _decode_hook(value: dict[str, Any]) -> Any:
    if len(value) == 1 and "$date" in value:
        return datetime.fromisoformat(value["$date"])
    return value


def dumps(document: dict[str, Any]) -> str:
    """Serialize a document body."""
    return json.dumps(document, default=_encode_default)


def loads(body: str) -> dict[str, Any]:
    """Deserialize a document body."""
    return json.loads(body, object_hook=_decode_hook)


class SqliteAsyncAdapter:
    """Asynchronous SQLite adapter using aiosqlite."""

    @property
    def name(self) -> str:
        return "sqlite"

    async def create_pool_async(self, config: StoreConfig) -> list[aiosqlite.Connection]:
        """Create async SQLite connection pool.

        An in-memory database lives inside one connection, so ``:memory:``
        always gets a pool of exactly one.
        """
        size = 1 if config.database == ":memory:" else config.pool_size
        pool: list[aiosqlite.Connection] = []
        for _ in range(size):
            conn = await aiosqlite.connect(config.database)
            conn.row_factory = aiosqlite.Row
            if config.database != ":memory:":
                await conn.execute("PRAGMA journal_mode=WAL")
            pool.append(conn)
        await pool[0].execute(_SCHEMA)
        await pool[0].execute(_INDEX)
        await pool[0].commit()
        return pool

    async def acquire_connection_async(self, pool: list[aiosqlite.Connection]) -> aiosqlite.Connection:
        """Acquire an async connection from the pool."""
        if not pool:
            raise RuntimeError("No connections available in pool")
        return pool.pop()

    async def release_connection_async(
        self, connection: aiosqlite.Connection, pool: list[aiosqlite.Connection]
    ) -> None:
        """Release an async connection back to the pool."""
        pool.append(connection)

    async def close_pool_async(self, pool: list[aiosqlite.Connection]) -> None:
        """Close all async connections."""
        for conn in pool:
            await conn.close()
        pool.clear()

    async def _scan(
        self, connection: aiosqlite.Connection, collection: str, filter: dict[str, Any]
    ) -> list[tuple[int, dict[str, Any]]]:
        cursor = await connection.execute(
            "SELECT position, body FROM documents WHERE collection = :collection ORDER BY position",
            {"collection": collection},
        )
        rows = await cursor.fetchall()
        await cursor.close()
        scanned = [(row["position"], loads(row["body"])) for row in rows]
        return [(position, doc) for position, doc in scanned if matches(doc, filter)]

    async def find_async(
        self,
        connection: aiosqlite.Connection,
        collection: str,
        filter: dict[str, Any],
        options: FindOptions,
    ) -> list[dict[str, Any]]:
        docs = [doc for _, doc in await self._scan(connection, collection, filter)]
        return apply_options(docs, options)

    async def insert_async(
        self, connection: aiosqlite.Connection, collection: str, documents: list[dict[str, Any]]
    ) -> list[Any]:
        ids: list[Any] = []
        for document in documents:
            stored = dict(document)
            if stored.get("_id") is None:
                stored["_id"] = new_object_id()
            await connection.execute(
                "INSERT INTO documents (collection, doc_id, body) VALUES (:collection, :doc_id, :body)",
                {"collection": collection, "doc_id": normalize_key(stored["_id"]), "body": dumps(stored)},
            )
            ids.append(stored["_id"])
        await connection.commit()
        return ids

    async def update_async(
        self,
        connection: aiosqlite.Connection,
        collection: str,
        filter: dict[str, Any],
        patch: dict[str, Any],
    ) -> int:
        matched = await self._scan(connection, collection, filter)
        for position, doc in matched:
            await connection.execute(
                "UPDATE documents SET body = :body WHERE position = :position",
                {"body": dumps(apply_patch(doc, patch)), "position": position},
            )
        await connection.commit()
        return len(matched)

    async def delete_async(
        self, connection: aiosqlite.Connection, collection: str, filter: dict[str, Any]
    ) -> int:
        matched = await self._scan(connection, collection, filter)
        for position, _ in matched:
            await connection.execute(
                "DELETE FROM documents WHERE position = :position", {"position": position}
            )
        await connection.commit()
        return len(matched)

    async def count_async(
        self, connection: aiosqlite.Connection, collection: str, filter: dict[str, Any]
    ) -> int:
        return len(await self._scan(connection, collection, filter))

    async def drop_async(self, connection: aiosqlite.Connection, collection: str) -> None:
        await connection.execute(
            "DELETE FROM documents WHERE collection = :collection", {"collection": collection}
        )
        await connection.commit()
