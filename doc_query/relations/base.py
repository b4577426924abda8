"""Relation base contract.

Every relation kind exposes the same surface. Verbs a kind cannot support
are plain methods here that fail before touching the store; the capability
mixins in ``capabilities`` replace them for the kinds that do support them.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, ClassVar

from doc_query.core.enums import RelationKind
from doc_query.core.exceptions import InvalidParameterError, InvalidRelationMethodError, UnsavedModelInstanceError
from doc_query.core.keys import key_values, normalize_key, resolve_key
from doc_query.loading.grouper import GroupedResult, attach_grouped

if TYPE_CHECKING:
    from doc_query.model.base import Model
    from doc_query.model.query import Query


class BaseRelation:
    """State and behaviour shared by every relation kind.

    Args:
        parent: The instance the relation was declared on.
        related: The related model class.
        primary_key: Key field on the owning side.
        foreign_key: Key field pointing at the owning side.
    """

    kind: ClassVar[RelationKind]
    # attribute on the parent whose value scopes the relation
    parent_key_name: str

    def __init__(
        self,
        parent: Model,
        related: type[Model] | None,
        primary_key: str,
        foreign_key: str,
    ) -> None:
        self.parent = parent
        self.related = related
        self.primary_key = primary_key
        self.foreign_key = foreign_key
        self.parent_key_name = primary_key

    @property
    def name(self) -> str:
        return self.kind.value

    def _unsupported(self, method: str) -> InvalidRelationMethodError:
        return InvalidRelationMethodError(method, self.name)

    # --- unsupported unless a capability provides them ---

    def save(self, *args: Any, **kwargs: Any) -> Any:
        raise self._unsupported("save")

    def create(self, *args: Any, **kwargs: Any) -> Any:
        raise self._unsupported("create")

    def save_many(self, *args: Any, **kwargs: Any) -> Any:
        raise self._unsupported("save_many")

    def create_many(self, *args: Any, **kwargs: Any) -> Any:
        raise self._unsupported("create_many")

    def paginate(self, *args: Any, **kwargs: Any) -> Any:
        raise self._unsupported("paginate")

    # --- keys ---

    def parent_value(self) -> Any:
        """Key value of the bound parent.

        Raises:
            UnsavedModelInstanceError: If the value is undefined.
        """
        value = self.parent.attributes.get(self.parent_key_name)
        if normalize_key(value) is None:
            raise UnsavedModelInstanceError(type(self.parent).__name__)
        return value

    def parent_identity(self, parent: Model) -> Any:
        return resolve_key(parent, self.parent_key_name)

    def related_identity(self, row: Model) -> Any:
        return row.attributes.get(self.foreign_key)

    def map_values(self, parents: Sequence[Model]) -> list[Any]:
        """Distinct parent keys for one batched query over all ``parents``."""
        return key_values(parents, self.parent_key_name)

    # --- grouping and eager loading ---

    def group(self, rows: Sequence[Model]) -> GroupedResult:
        raise NotImplementedError

    def empty_value(self) -> Any:
        raise NotImplementedError

    async def _eager_rows(self, values: list[Any]) -> list[Model]:
        raise NotImplementedError

    def _adopt(self, rows: Sequence[Model]) -> None:
        owner = type(self.parent).__name__
        for row in rows:
            row.set_parent(owner)

    async def eager_load(self, relation_name: str, parents: Sequence[Model]) -> list[Model]:
        """Load this relation for every parent with a single query.

        Returns the related rows so nested relations can load on them.
        """
        values = self.map_values(parents)
        rows = await self._eager_rows(values) if values else []
        self._adopt(rows)
        attach_grouped(parents, relation_name, self.group(rows), self.parent_identity, self.empty_value)
        return rows

    def apply_runtime_constraint(self, constraint: Any) -> None:
        """Apply a caller constraint: a callable receiving the relation, or a mapping."""
        if constraint is None:
            return
        if callable(constraint):
            constraint(self)
            return
        for key, value in constraint.items():
            if key == "where":
                self.where(*value) if isinstance(value, tuple) else self.where(value)
            elif key == "select":
                self.select(*([value] if isinstance(value, str) else value))
            elif key == "sort":
                pairs = value.items() if isinstance(value, Mapping) else [(value, "asc")]
                for field, direction in pairs:
                    self.sort(field, direction)
            elif key == "limit":
                self.limit(value)
            elif key == "with":
                self.with_(value)
            else:
                raise InvalidParameterError(f"Unknown relation constraint '{key}'")

    # --- persistence ---

    async def _persist_parent(self) -> None:
        if self.parent.is_new:
            await self.parent.save()


class QueryRelation(BaseRelation):
    """Relation backed by a query over the related model's collection.

    Builder calls are proxied to ``self.query`` and return the relation, so
    ``user.posts().where("likes", ">", 2).fetch()`` stays relation-scoped.
    """

    def __init__(self, parent: Model, related: type[Model], primary_key: str, foreign_key: str) -> None:
        super().__init__(parent, related, primary_key, foreign_key)
        self.query: Query = related.query()

    def where(self, *args: Any) -> Any:
        self.query.where(*args)
        return self

    def or_where(self, *args: Any) -> Any:
        self.query.or_where(*args)
        return self

    def where_in(self, field: str, values: Any) -> Any:
        self.query.where_in(field, values)
        return self

    def where_not_in(self, field: str, values: Any) -> Any:
        self.query.where_not_in(field, values)
        return self

    def where_null(self, field: str) -> Any:
        self.query.where_null(field)
        return self

    def where_not_null(self, field: str) -> Any:
        self.query.where_not_null(field)
        return self

    def select(self, *fields: Any) -> Any:
        self.query.select(*fields)
        return self

    def sort(self, field: str, direction: str | int = "asc") -> Any:
        self.query.sort(field, direction)
        return self

    def limit(self, count: int) -> Any:
        self.query.limit(count)
        return self

    def skip(self, count: int) -> Any:
        self.query.skip(count)
        return self

    def with_(self, *args: Any) -> Any:
        self.query.with_(*args)
        return self

    def scope(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """Apply a local scope of the related model."""
        self.query.scope(name, *args, **kwargs)
        return self

    def ignore_scopes(self, *names: str) -> Any:
        self.query.ignore_scopes(*names)
        return self

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or name in ("query", "related") or not hasattr(self.related, f"scope_{name}"):
            raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")
        return lambda *args, **kwargs: self.scope(name, *args, **kwargs)

    def _constrained(self, query: Query) -> Query:
        return query.where(self.foreign_key, self.parent_value())

    async def scoped_query(self) -> Query:
        """Copy of the relation query restricted to the bound parent."""
        return self._constrained(self.query.clone())

    async def _eager_rows(self, values: list[Any]) -> list[Model]:
        query = self.query.clone().keep_fields(self.foreign_key).where_in(self.foreign_key, values)
        return (await query.fetch()).rows

    async def count(self) -> int:
        return await (await self.scoped_query()).count()

    async def update(self, patch: Mapping[str, Any]) -> int:
        return await (await self.scoped_query()).update(patch)

    async def delete(self) -> int:
        return await (await self.scoped_query()).delete()
