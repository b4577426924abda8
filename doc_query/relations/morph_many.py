"""MorphMany relation: HasMany through a polymorphic foreign key."""

from __future__ import annotations

from typing import TYPE_CHECKING

from doc_query.core.enums import RelationKind
from doc_query.relations.base import QueryRelation
from doc_query.relations.capabilities import BulkPersistable, ManyFetchable, Paginatable
from doc_query.relations.morph_one import MorphMixin

if TYPE_CHECKING:
    from doc_query.model.base import Model
    from doc_query.model.serializer import Serializer


class MorphMany(MorphMixin, ManyFetchable, Paginatable, BulkPersistable, QueryRelation):
    kind = RelationKind.MORPH_MANY

    def __init__(
        self,
        parent: Model,
        related: type[Model],
        primary_key: str,
        foreign_key: str,
        determiner: str,
    ) -> None:
        super().__init__(parent, related, primary_key, foreign_key)
        self._init_morph(determiner)

    async def fetch(self) -> Serializer[Model]:
        rows = await (await self.scoped_query()).fetch()
        self._adopt(rows.rows)
        return rows
