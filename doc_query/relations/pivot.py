"""Pivot manager: owns the join-collection rows of one BelongsToMany handle.

Attached pivots are cached per related key for the lifetime of the relation
handle, so repeating an ``attach`` returns the very same pivot object and
never inserts a second row.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from doc_query.core.keys import normalize_key
from doc_query.model.pivot import Pivot

if TYPE_CHECKING:
    from doc_query.core.engine import Engine
    from doc_query.model.base import Model

PivotCallback = Callable[[Any], Any]


class PivotManager:
    """Attach, detach and look up join rows for one parent.

    Args:
        engine: Store client holding the pivot collection.
        collection: Pivot collection name.
        foreign_key: Pivot field holding the parent key.
        related_foreign_key: Pivot field holding the related key.
        model: Optional pivot model; rows are then saved through it.
        with_timestamps: Stamp ``created_at``/``updated_at`` on plain pivots.
    """

    def __init__(
        self,
        engine: Engine,
        collection: str,
        foreign_key: str,
        related_foreign_key: str,
        *,
        model: type[Model] | None = None,
        with_timestamps: bool = False,
    ) -> None:
        self.engine = engine
        self.collection = collection
        self.foreign_key = foreign_key
        self.related_foreign_key = related_foreign_key
        self.model = model
        self.with_timestamps = with_timestamps
        self._cache: dict[str, Model] = {}

    @property
    def cached(self) -> dict[str, Model]:
        return dict(self._cache)

    def make(self, document: dict[str, Any]) -> Model:
        """Instantiate a stored pivot row as the pivot record type."""
        return (self.model or Pivot).new_up(document)

    async def find(self, parent_value: Any, related_value: Any) -> Model | None:
        """Cached pivot for ``related_value``, else the stored row."""
        identity = normalize_key(related_value)
        if identity in self._cache:
            return self._cache[identity]
        document = await self.engine.find_one(
            self.collection, {self.foreign_key: parent_value, self.related_foreign_key: related_value}
        )
        if document is None:
            return None
        pivot = self.make(document)
        self._cache[identity] = pivot
        return pivot

    async def _create(self, parent_value: Any, related_value: Any, callback: PivotCallback | None) -> Model:
        values = {self.foreign_key: parent_value, self.related_foreign_key: related_value}
        if self.model is not None:
            pivot = self.model(values)
            await self._apply(callback, pivot)
            await pivot.save()
            return pivot

        pivot = Pivot(values)
        await self._apply(callback, pivot)
        if self.with_timestamps:
            now = datetime.now(timezone.utc)
            pivot.attributes.setdefault("created_at", now)
            pivot.attributes["updated_at"] = now
        ids = await self.engine.insert(self.collection, pivot.attributes)
        pivot.attributes.setdefault("_id", ids[0])
        pivot.mark_persisted()
        return pivot

    @staticmethod
    async def _apply(callback: PivotCallback | None, pivot: Model) -> None:
        if callback is None:
            return
        result = callback(pivot)
        if inspect.isawaitable(result):
            await result

    async def attach(
        self, parent_value: Any, related_value: Any, callback: PivotCallback | None = None
    ) -> Model:
        """Return the pivot linking the pair, inserting one only when none exists."""
        existing = await self.find(parent_value, related_value)
        if existing is not None:
            return existing
        pivot = await self._create(parent_value, related_value, callback)
        self._cache[normalize_key(related_value)] = pivot  # type: ignore[index]
        return pivot

    async def detach(self, parent_value: Any, related_values: Iterable[Any] | None = None) -> int:
        """Delete pivot rows for the parent, optionally only for ``related_values``."""
        filter: dict[str, Any] = {self.foreign_key: parent_value}
        if related_values is None:
            self._cache.clear()
        else:
            related_values = list(related_values)
            filter[self.related_foreign_key] = {"$in": related_values}
            for value in related_values:
                self._cache.pop(normalize_key(value), None)  # type: ignore[arg-type]
        return await self.engine.delete(self.collection, filter)

    async def related_values(self, parent_value: Any) -> list[Any]:
        """Related keys currently attached to the parent, in pivot order."""
        documents = await self.engine.find(
            self.collection,
            {self.foreign_key: parent_value},
            projection=[self.related_foreign_key],
        )
        return [doc.get(self.related_foreign_key) for doc in documents]

    async def rows(self, filter: dict[str, Any]) -> list[dict[str, Any]]:
        return await self.engine.find(self.collection, filter)
