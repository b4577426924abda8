"""BelongsTo relation: the inverse of HasOne/HasMany."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from doc_query.core.enums import RelationKind
from doc_query.relations.base import QueryRelation
from doc_query.relations.capabilities import SingleFetchable

if TYPE_CHECKING:
    from doc_query.model.base import Model
    from doc_query.model.query import Query


class BelongsTo(SingleFetchable, QueryRelation):
    """The parent holds ``foreign_key``; the related row holds ``primary_key``."""

    kind = RelationKind.BELONGS_TO

    def __init__(self, parent: Model, related: type[Model], primary_key: str, foreign_key: str) -> None:
        super().__init__(parent, related, primary_key, foreign_key)
        self.parent_key_name = foreign_key

    def related_identity(self, row: Model) -> Any:
        return row.attributes.get(self.primary_key)

    def _constrained(self, query: Query) -> Query:
        return query.where(self.primary_key, self.parent_value())

    async def _eager_rows(self, values: list[Any]) -> list[Model]:
        query = self.query.clone().keep_fields(self.primary_key).where_in(self.primary_key, values)
        return (await query.fetch()).rows

    async def first(self) -> Model | None:
        row = await (await self.scoped_query()).first()
        if row is not None:
            self._adopt([row])
        return row

    async def associate(self, instance: Model) -> Model:
        """Point the parent at ``instance``, saving both as needed."""
        if instance.is_new:
            await instance.save()
        self.parent.set(self.foreign_key, instance.attributes.get(self.primary_key))
        await self.parent.save()
        return self.parent

    async def dissociate(self) -> Model:
        """Clear the parent's foreign key and save it."""
        self.parent.unset(self.foreign_key)
        await self.parent.save()
        return self.parent
