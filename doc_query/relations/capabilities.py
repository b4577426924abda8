"""Capability mixins.

Each mixin supplies one family of verbs. A relation class lists the
capabilities its cardinality supports ahead of ``BaseRelation``; anything it
does not list keeps the base behaviour of failing with
``InvalidRelationMethodError``.
"""

from __future__ import annotations

import abc
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from doc_query.core.exceptions import InvalidParameterError
from doc_query.loading.grouper import GroupedResult, group_many, group_single
from doc_query.model.serializer import Serializer

if TYPE_CHECKING:
    from doc_query.model.base import Model


class SingleFetchable:
    """Relations resolving to at most one related instance."""

    async def first(self) -> Model | None:
        raise NotImplementedError

    async def fetch(self) -> Model | None:
        """Alias of ``first`` for singleton relations."""
        return await self.first()

    async def load(self) -> Model | None:
        return await self.first()

    def group(self, rows: Sequence[Model]) -> GroupedResult:
        """Group rows by parent key; a later row replaces an earlier one."""
        return group_single(rows, self.related_identity)  # type: ignore[attr-defined]

    def empty_value(self) -> None:
        return None


class ManyFetchable:
    """Relations resolving to a collection of related instances."""

    async def fetch(self) -> Serializer[Model]:
        raise NotImplementedError

    async def first(self) -> Model | None:
        return (await self.fetch()).first()

    async def load(self) -> Serializer[Model]:
        return await self.fetch()

    def group(self, rows: Sequence[Model]) -> GroupedResult:
        return group_many(rows, self.related_identity, Serializer)  # type: ignore[attr-defined]

    def empty_value(self) -> Serializer[Model]:
        return Serializer([])


class Paginatable:
    """Relations that can page through their related rows."""

    async def paginate(self, page: int = 1, per_page: int = 20) -> Serializer[Model]:
        query = await self.scoped_query()  # type: ignore[attr-defined]
        rows = await query.paginate(page, per_page)
        self._adopt(rows.rows)  # type: ignore[attr-defined]
        return rows


def _ensure_list(relation: Any, method: str, value: Any) -> None:
    if not isinstance(value, (list, tuple)):
        raise InvalidParameterError(
            f"{relation.name}.{method} expects a list of related model instances "
            f"instead received {type(value).__name__}"
        )


class BulkPersistable:
    """Relations that accept ``save_many`` and ``create_many``."""

    async def save_many(self, instances: Sequence[Model], *args: Any) -> list[Model]:
        """Save each instance through ``save``, in order.

        Raises:
            InvalidParameterError: If ``instances`` is not a list.
        """
        _ensure_list(self, "save_many", instances)
        return [await self.save(instance, *args) for instance in instances]  # type: ignore[attr-defined]

    async def create_many(self, rows: Sequence[dict[str, Any]], *args: Any) -> list[Model]:
        _ensure_list(self, "create_many", rows)
        return [await self.create(row, *args) for row in rows]  # type: ignore[attr-defined]


class Attachable(abc.ABC):
    """Relations linked through join rows."""

    @abc.abstractmethod
    async def attach(self, ids: Any, callback: Any = None) -> list[Any]:
        """Link related ids to the parent, reusing existing join rows."""

    @abc.abstractmethod
    async def detach(self, ids: Any = None) -> int:
        """Unlink related ids, or every id when none are given."""

    @abc.abstractmethod
    async def sync(self, ids: Any, callback: Any = None) -> list[Any]:
        """Make the linked ids exactly ``ids``."""


class Embeddable(abc.ABC):
    """Relations whose rows live inside the parent document."""

    @abc.abstractmethod
    async def find(self, value: Any) -> Model | None:
        """Return the embedded row with key ``value``."""

    @abc.abstractmethod
    async def delete(self, value: Any) -> int:
        """Remove one embedded row."""

    @abc.abstractmethod
    async def delete_all(self) -> None:
        """Remove the embedded field from the parent."""
