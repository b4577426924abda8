"""EmbedsMany relation: related rows stored as an array on the parent document."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from doc_query.core.enums import RelationKind
from doc_query.core.filters import build_condition, combine, matches
from doc_query.core.keys import new_object_id, normalize_key
from doc_query.loading.grouper import GroupedResult, group_many
from doc_query.model.serializer import Serializer
from doc_query.relations.base import BaseRelation
from doc_query.relations.capabilities import BulkPersistable, Embeddable, ManyFetchable

if TYPE_CHECKING:
    from doc_query.model.base import Model


class EmbedsMany(ManyFetchable, BulkPersistable, Embeddable, BaseRelation):
    """Rows live under ``foreign_key`` (the field name) on the parent.

    Reads never touch the store: they work on the parent's in-memory array.
    Writes update the array and save the parent.
    """

    kind = RelationKind.EMBEDS_MANY

    def __init__(self, parent: Model, related: type[Model], primary_key: str, foreign_key: str) -> None:
        super().__init__(parent, related, primary_key, foreign_key)
        self.field = foreign_key
        self._conditions: list[dict[str, Any]] = []

    def where(self, *args: Any) -> EmbedsMany:
        """Filter embedded rows in memory."""
        self._conditions.append(build_condition(*args))
        return self

    def _documents(self, parent: Model) -> list[dict[str, Any]]:
        return list(parent.attributes.get(self.field) or [])

    def _rows_for(self, parent: Model) -> list[Model]:
        condition = combine(self._conditions)
        rows = [
            self.related.new_up(document)  # type: ignore[union-attr]
            for document in self._documents(parent)
            if matches(document, condition)
        ]
        owner = type(parent).__name__
        for row in rows:
            row.set_parent(owner)
        return rows

    async def fetch(self) -> Serializer[Model]:
        return Serializer(self._rows_for(self.parent))

    async def find(self, value: Any) -> Model | None:
        identity = normalize_key(value)
        for row in self._rows_for(self.parent):
            if normalize_key(row.attributes.get(self.primary_key)) == identity:
                return row
        return None

    def group(self, rows: Sequence[Model]) -> GroupedResult:
        """Embedded rows belong to the bound parent."""
        identity = self.parent_identity(self.parent)
        return group_many(rows, lambda _row: identity, Serializer)

    async def eager_load(self, relation_name: str, parents: Sequence[Model]) -> list[Model]:
        """Read each parent's own array; no query is issued."""
        loaded: list[Model] = []
        for parent in parents:
            rows = self._rows_for(parent)
            parent.set_related(relation_name, Serializer(rows))
            loaded.extend(rows)
        return loaded

    def apply_runtime_constraint(self, constraint: Any) -> None:
        if isinstance(constraint, Mapping):
            unsupported = set(constraint) - {"where"}
            if unsupported:
                raise self._unsupported(", ".join(sorted(unsupported)))
        super().apply_runtime_constraint(constraint)

    async def _write(self, documents: list[dict[str, Any]]) -> None:
        self.parent.set(self.field, documents)
        await self.parent.save()

    async def save(self, instance: Model) -> Model:
        """Append ``instance`` or replace the element with its key, then save the parent.

        New instances run their create hooks and get a key; existing ones run
        their update hooks.
        """
        key = instance.attributes.get(self.primary_key)
        documents = self._documents(self.parent)
        position = next(
            (
                index
                for index, document in enumerate(documents)
                if key is not None and normalize_key(document.get(self.primary_key)) == normalize_key(key)
            ),
            None,
        )
        creating = instance.is_new or position is None
        await instance.run_hooks("before_create" if creating else "before_update")
        await instance.run_hooks("before_save")
        if key is None:
            instance.attributes[self.primary_key] = new_object_id()
        instance.touch(created=creating)
        document = dict(instance.attributes)
        if position is None:
            documents.append(document)
        else:
            documents[position] = document
        await self._write(documents)
        instance.mark_persisted()
        await instance.run_hooks("after_create" if creating else "after_update")
        await instance.run_hooks("after_save")
        return instance

    async def create(self, attributes: Mapping[str, Any] | None = None, **values: Any) -> Model:
        return await self.save(self.related(attributes, **values))  # type: ignore[misc]

    async def delete(self, value: Any) -> int:
        """Remove the element with key ``value``. The field stays, possibly empty."""
        identity = normalize_key(value)
        documents = self._documents(self.parent)
        kept = [doc for doc in documents if normalize_key(doc.get(self.primary_key)) != identity]
        removed = len(documents) - len(kept)
        if removed:
            await self._write(kept)
        return removed

    async def delete_all(self) -> None:
        """Remove the embedded field itself from the parent and save it."""
        self.parent.unset(self.field)
        await self.parent.save()
