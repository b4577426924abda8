"""HasMany relation: every related row whose foreign key equals the parent's key."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from doc_query.core.enums import RelationKind
from doc_query.relations.base import QueryRelation
from doc_query.relations.capabilities import BulkPersistable, ManyFetchable, Paginatable

if TYPE_CHECKING:
    from doc_query.model.base import Model
    from doc_query.model.serializer import Serializer


class HasMany(ManyFetchable, Paginatable, BulkPersistable, QueryRelation):
    kind = RelationKind.HAS_MANY

    async def fetch(self) -> Serializer[Model]:
        rows = await (await self.scoped_query()).fetch()
        self._adopt(rows.rows)
        return rows

    def _stamp(self, instance: Model) -> None:
        instance.set(self.foreign_key, self.parent_value())

    async def save(self, instance: Model) -> Model:
        """Persist the parent if needed, then link and persist ``instance``."""
        await self._persist_parent()
        self._stamp(instance)
        await instance.save()
        return instance

    async def create(self, attributes: Mapping[str, Any] | None = None, **values: Any) -> Model:
        return await self.save(self.related(attributes, **values))  # type: ignore[misc]
