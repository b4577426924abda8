"""MorphTo relation: the owning model type is named by the row itself."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from doc_query.core.enums import RelationKind
from doc_query.core.exceptions import InvalidParameterError, UnsavedModelInstanceError
from doc_query.core.keys import normalize_key
from doc_query.loading.grouper import attach_grouped
from doc_query.relations.base import BaseRelation
from doc_query.relations.capabilities import SingleFetchable

if TYPE_CHECKING:
    from doc_query.core.registry import ModelRegistry
    from doc_query.model.base import Model
    from doc_query.model.query import Query


class MorphTo(SingleFetchable, BaseRelation):
    """The parent stores ``foreign_key`` and a ``determiner`` naming the owner type.

    Determiner values resolve to model classes through ``registry``. Eager
    loading issues one query per distinct owner type.
    """

    kind = RelationKind.MORPH_TO

    def __init__(
        self,
        parent: Model,
        registry: ModelRegistry,
        primary_key: str,
        foreign_key: str,
        determiner: str,
    ) -> None:
        super().__init__(parent, None, primary_key, foreign_key)
        self.registry = registry
        self.determiner = determiner
        self.parent_key_name = foreign_key
        self._constraint: Any = None

    def _identity(self, type_name: Any, key: Any) -> str | None:
        key = normalize_key(key)
        if type_name is None or key is None:
            return None
        return f"{type_name}:{key}"

    def parent_identity(self, parent: Model) -> Any:
        return self._identity(
            parent.attributes.get(self.determiner), parent.attributes.get(self.foreign_key)
        )

    def related_identity(self, row: Model) -> Any:
        return self._identity(type(row).morph_name(), row.attributes.get(self.primary_key))

    def apply_runtime_constraint(self, constraint: Any) -> None:
        """Keep the constraint; it applies to each owner type's query."""
        if constraint is not None and not callable(constraint):
            raise InvalidParameterError("MorphTo constraints must be callables receiving the owner query")
        self._constraint = constraint

    def _query_for(self, model: type[Model]) -> Query:
        query = model.query()
        if self._constraint is not None:
            self._constraint(query)
        return query

    async def first(self) -> Model | None:
        type_name = self.parent.attributes.get(self.determiner)
        value = self.parent.attributes.get(self.foreign_key)
        if type_name is None or normalize_key(value) is None:
            raise UnsavedModelInstanceError(type(self.parent).__name__)
        model = self.registry.get(type_name)
        row = await self._query_for(model).where(self.primary_key, value).first()
        if row is not None:
            self._adopt([row])
        return row

    async def eager_load(self, relation_name: str, parents: Sequence[Model]) -> list[Model]:
        by_type: dict[str, list[Any]] = {}
        seen: set[str] = set()
        for parent in parents:
            identity = self.parent_identity(parent)
            if identity is None or identity in seen:
                continue
            seen.add(identity)
            by_type.setdefault(parent.attributes[self.determiner], []).append(
                parent.attributes[self.foreign_key]
            )

        rows: list[Model] = []
        for type_name, values in by_type.items():
            model = self.registry.get(type_name)
            query = self._query_for(model).keep_fields(self.primary_key).where_in(self.primary_key, values)
            fetched = await query.fetch()
            rows.extend(fetched.rows)
        self._adopt(rows)
        attach_grouped(parents, relation_name, self.group(rows), self.parent_identity, self.empty_value)
        return rows
