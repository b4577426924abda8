"""MorphOne relation: HasOne through a polymorphic foreign key."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from doc_query.core.enums import RelationKind
from doc_query.relations.base import QueryRelation
from doc_query.relations.capabilities import SingleFetchable

if TYPE_CHECKING:
    from doc_query.model.base import Model
    from doc_query.model.query import Query


class MorphMixin:
    """Foreign key plus determiner matching shared by MorphOne and MorphMany."""

    determiner: str

    def _init_morph(self, determiner: str) -> None:
        self.determiner = determiner

    @property
    def determiner_value(self) -> str:
        return type(self.parent).morph_name()  # type: ignore[attr-defined]

    def _constrained(self, query: Query) -> Query:
        return query.where(self.foreign_key, self.parent_value()).where(  # type: ignore[attr-defined]
            self.determiner, self.determiner_value
        )

    async def _eager_rows(self, values: list[Any]) -> list[Model]:
        query = (
            self.query.clone()  # type: ignore[attr-defined]
            .keep_fields(self.foreign_key, self.determiner)
            .where_in(self.foreign_key, values)  # type: ignore[attr-defined]
            .where(self.determiner, self.determiner_value)
        )
        return (await query.fetch()).rows

    def _stamp(self, instance: Model) -> None:
        instance.set(self.foreign_key, self.parent_value())  # type: ignore[attr-defined]
        instance.set(self.determiner, self.determiner_value)

    async def save(self, instance: Model) -> Model:
        """Persist the parent if needed, then stamp key and determiner and persist."""
        await self._persist_parent()  # type: ignore[attr-defined]
        self._stamp(instance)
        await instance.save()
        return instance

    async def create(self, attributes: Mapping[str, Any] | None = None, **values: Any) -> Model:
        return await self.save(self.related(attributes, **values))  # type: ignore[attr-defined]


class MorphOne(MorphMixin, SingleFetchable, QueryRelation):
    """Related rows carry ``foreign_key`` and ``determiner`` naming the parent type.

    Grouping keeps the last row per parent when several rows match.
    """

    kind = RelationKind.MORPH_ONE

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

    async def first(self) -> Model | None:
        row = await (await self.scoped_query()).first()
        if row is not None:
            self._adopt([row])
        return row
