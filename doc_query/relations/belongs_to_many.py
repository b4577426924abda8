"""BelongsToMany relation: many-to-many through a pivot collection."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from doc_query.core.enums import RelationKind
from doc_query.core.exceptions import InvalidRelationMethodError
from doc_query.core.filters import build_condition, combine
from doc_query.core.keys import normalize_key, resolve_key
from doc_query.model.base import snake_case
from doc_query.model.serializer import Serializer
from doc_query.relations.base import QueryRelation
from doc_query.relations.capabilities import Attachable, BulkPersistable, ManyFetchable, Paginatable
from doc_query.relations.pivot import PivotCallback, PivotManager

if TYPE_CHECKING:
    from doc_query.model.base import Model
    from doc_query.model.query import Query


class BelongsToMany(ManyFetchable, Paginatable, BulkPersistable, Attachable, QueryRelation):
    """Parent and related rows linked by rows of a pivot collection.

    Each pivot row holds ``foreign_key`` (the parent's ``primary_key``) and
    ``related_foreign_key`` (the related row's ``related_primary_key``).
    Fetched related instances expose their pivot row as the ``pivot``
    relation.

    The pivot collection defaults to both model names, singular and sorted,
    joined by an underscore (``post_user``).
    """

    kind = RelationKind.BELONGS_TO_MANY

    def __init__(
        self,
        parent: Model,
        related: type[Model],
        *,
        foreign_key: str,
        related_foreign_key: str,
        primary_key: str,
        related_primary_key: str,
    ) -> None:
        super().__init__(parent, related, primary_key, foreign_key)
        self.related_foreign_key = related_foreign_key
        self.related_primary_key = related_primary_key
        self._pivot_collection: str | None = None
        self._pivot_model: type[Model] | None = None
        self._with_timestamps = False
        self._pivot_fields: list[str] = []
        self._pivot_conditions: list[dict[str, Any]] = []
        self._pivot_manager: PivotManager | None = None

    # --- configuration ---

    def _conflict(self, method: str, detail: str) -> InvalidRelationMethodError:
        return InvalidRelationMethodError(method, self.name, detail)

    def pivot_collection(self, name: str) -> BelongsToMany:
        if self._pivot_model is not None:
            raise self._conflict(
                "pivot_collection", "Cannot call pivot_collection since pivot_model has been defined"
            )
        self._pivot_collection = name
        self._pivot_manager = None
        return self

    def with_timestamps(self) -> BelongsToMany:
        if self._pivot_model is not None:
            raise self._conflict(
                "with_timestamps", "Cannot call with_timestamps since pivot_model has been defined"
            )
        self._with_timestamps = True
        self._pivot_manager = None
        return self

    def pivot_model(self, model: type[Model] | str) -> BelongsToMany:
        """Store pivot rows through ``model`` so its setters, hooks and timestamps run."""
        if self._pivot_collection is not None or self._with_timestamps:
            raise self._conflict(
                "pivot_model",
                "Cannot call pivot_model since pivot_collection or with_timestamps has been defined",
            )
        if isinstance(model, str):
            model = type(self.parent).get_registry().resolve(model)
        self._pivot_model = model
        self._pivot_manager = None
        return self

    def with_pivot(self, *fields: str) -> BelongsToMany:
        """Expose extra pivot fields on the ``pivot`` relation."""
        self._pivot_fields.extend(fields)
        return self

    def where_pivot(self, *args: Any) -> BelongsToMany:
        """Constrain the pivot rows rather than the related rows."""
        self._pivot_conditions.append(build_condition(*args))
        return self

    @property
    def pivot_collection_name(self) -> str:
        if self._pivot_model is not None:
            return self._pivot_model.collection
        if self._pivot_collection is not None:
            return self._pivot_collection
        names = sorted([snake_case(type(self.parent).__name__), snake_case(self.related.__name__)])  # type: ignore[union-attr]
        return "_".join(names)

    @property
    def pivot(self) -> PivotManager:
        if self._pivot_manager is None:
            self._pivot_manager = PivotManager(
                self.parent.get_engine(),
                self.pivot_collection_name,
                self.foreign_key,
                self.related_foreign_key,
                model=self._pivot_model,
                with_timestamps=self._with_timestamps,
            )
        return self._pivot_manager

    # --- reading ---

    def related_identity(self, row: Model) -> Any:
        pivot = row.get_related("pivot")
        return pivot.attributes.get(self.foreign_key) if pivot is not None else None

    def _pivot_view(self, document: dict[str, Any]) -> Model:
        fields = {"_id", self.foreign_key, self.related_foreign_key, *self._pivot_fields}
        if self._with_timestamps:
            fields.update({"created_at", "updated_at"})
        if self._pivot_model is None:
            document = {key: value for key, value in document.items() if key in fields}
        return self.pivot.make(document)

    async def _pivot_documents(self, parent_values: list[Any]) -> list[dict[str, Any]]:
        condition = combine(
            [{self.foreign_key: {"$in": parent_values}}, *self._pivot_conditions]
        )
        return await self.pivot.rows(condition)

    def _related_ids(self, documents: list[dict[str, Any]]) -> list[Any]:
        seen: set[str] = set()
        ids: list[Any] = []
        for document in documents:
            value = document.get(self.related_foreign_key)
            identity = normalize_key(value)
            if identity is not None and identity not in seen:
                seen.add(identity)
                ids.append(value)
        return ids

    def _zip(self, rows: Sequence[Model], documents: list[dict[str, Any]]) -> list[Model]:
        """Pair related rows with their pivot rows, one instance per pivot row."""
        by_related: dict[str, list[dict[str, Any]]] = {}
        for document in documents:
            identity = normalize_key(document.get(self.related_foreign_key))
            if identity is not None:
                by_related.setdefault(identity, []).append(document)

        result: list[Model] = []
        for row in rows:
            pivots = by_related.get(normalize_key(row.attributes.get(self.related_primary_key)), [])  # type: ignore[arg-type]
            for index, document in enumerate(pivots):
                if index == 0:
                    instance = row
                else:
                    instance = type(row).new_up(row.attributes)
                    for name, value in row.relations.items():
                        instance.put_related(name, value)
                instance.put_related("pivot", self._pivot_view(document))
                result.append(instance)
        return result

    def _constrained_to(self, query: Query, ids: list[Any]) -> Query:
        return query.where_in(self.related_primary_key, ids)

    async def _rows_for(self, parent_values: list[Any], paginate: tuple[int, int] | None = None) -> Serializer[Model]:
        documents = await self._pivot_documents(parent_values)
        query = self._constrained_to(
            self.query.clone().keep_fields(self.related_primary_key), self._related_ids(documents)
        )
        if paginate is None:
            fetched = await query.fetch()
        else:
            fetched = await query.paginate(*paginate)
        rows = self._zip(fetched.rows, documents)
        self._adopt(rows)
        return Serializer(rows, fetched.pages)

    async def fetch(self) -> Serializer[Model]:
        return await self._rows_for([self.parent_value()])

    async def paginate(self, page: int = 1, per_page: int = 20) -> Serializer[Model]:
        """Page through related rows; pagination counts related rows, not pivots."""
        return await self._rows_for([self.parent_value()], (page, per_page))

    async def _eager_rows(self, values: list[Any]) -> list[Model]:
        return (await self._rows_for(values)).rows

    async def _attached_ids(self) -> list[Any]:
        """Related keys linked to the bound parent through pivots passing ``where_pivot``."""
        return self._related_ids(await self._pivot_documents([self.parent_value()]))

    async def scoped_query(self) -> Query:
        return self._constrained_to(self.query.clone(), await self._attached_ids())

    async def delete(self) -> int:
        """Delete the attached related rows and this parent's pivot rows for them."""
        ids = await self._attached_ids()
        deleted = await self._constrained_to(self.query.clone(), ids).delete()
        if ids:
            await self.pivot.detach(self.parent_value(), ids)
        return deleted

    # --- linking ---

    def _related_values(self, ids: Any) -> list[Any]:
        if isinstance(ids, (list, tuple, set, Serializer)):
            items = list(ids)
        else:
            items = [ids]
        return [resolve_key(item, self.related_primary_key) for item in items]

    async def attach(self, ids: Any, callback: PivotCallback | None = None) -> list[Model]:
        """Link one or more related ids, returning one pivot per id.

        Existing pivots, cached on this handle or found in the pivot
        collection, are returned instead of inserting duplicates. ``callback``
        receives each new pivot before it is stored.
        """
        await self._persist_parent()
        parent_value = self.parent_value()
        return [
            await self.pivot.attach(parent_value, value, callback)
            for value in self._related_values(ids)
        ]

    async def detach(self, ids: Any = None) -> int:
        """Remove pivot rows for ``ids``, or every pivot row of the parent."""
        values = None if ids is None else self._related_values(ids)
        return await self.pivot.detach(self.parent_value(), values)

    async def sync(self, ids: Any, callback: PivotCallback | None = None) -> list[Model]:
        """Attach missing ids, detach ids not listed, keep the rest untouched."""
        await self._persist_parent()
        wanted = self._related_values(ids)
        wanted_keys = {normalize_key(value) for value in wanted}
        current = await self.pivot.related_values(self.parent_value())
        current_keys = {normalize_key(value) for value in current}

        stale = [value for value in current if normalize_key(value) not in wanted_keys]
        if stale:
            await self.detach(stale)
        fresh = [value for value in wanted if normalize_key(value) not in current_keys]
        return await self.attach(fresh, callback) if fresh else []

    async def save(self, instance: Model, callback: PivotCallback | None = None) -> Model:
        """Persist ``instance`` if new, then attach it."""
        await self._persist_parent()
        if instance.is_new:
            await instance.save()
        pivots = await self.attach(instance, callback)
        instance.put_related("pivot", pivots[0])
        return instance

    async def create(
        self, attributes: Mapping[str, Any] | None = None, callback: PivotCallback | None = None
    ) -> Model:
        return await self.save(self.related(attributes), callback)  # type: ignore[misc]
