"""HasOne relation: the related row's foreign key equals the parent's key."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from doc_query.core.enums import RelationKind
from doc_query.relations.base import QueryRelation
from doc_query.relations.capabilities import SingleFetchable

if TYPE_CHECKING:
    from doc_query.model.base import Model


class HasOne(SingleFetchable, QueryRelation):
    kind = RelationKind.HAS_ONE

    async def first(self) -> Model | None:
        row = await (await self.scoped_query()).first()
        if row is not None:
            self._adopt([row])
        return row

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
