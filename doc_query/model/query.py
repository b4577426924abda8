"""Chainable query builder over one model's collection."""

from __future__ import annotations

import copy
import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from doc_query.core.exceptions import InvalidParameterError, MissingDatabaseRowError
from doc_query.core.filters import build_condition, combine
from doc_query.loading.eager import EagerLoader
from doc_query.model.serializer import Pages, Serializer

if TYPE_CHECKING:
    from doc_query.model.base import Model


def _direction(value: Any) -> int:
    if isinstance(value, str):
        lowered = value.lower()
        if lowered in ("asc", "ascending"):
            return 1
        if lowered in ("desc", "descending"):
            return -1
    elif value in (1, -1):
        return int(value)
    raise InvalidParameterError(f"Sort direction must be asc, desc, 1 or -1 instead received {value!r}")


class Query:
    """Builds and runs queries for ``model``.

    Every builder method mutates the query and returns it, so calls chain::

        posts = await Post.query().where("likes", ">", 2).sort("title").fetch()
    """

    def __init__(self, model: type[Model]) -> None:
        self.model = model
        self._conditions: list[dict[str, Any]] = []
        self._sort: list[tuple[str, int]] = []
        self._skip: int | None = None
        self._limit: int | None = None
        self._projection: list[str] = []
        self._eager = EagerLoader()
        # None ignores every global scope
        self._ignored_scopes: set[str] | None = set()
        self._scopes_applied = False

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or name == "model" or not hasattr(self.model, f"scope_{name}"):
            raise AttributeError(f"'Query' object has no attribute '{name}'")
        return lambda *args, **kwargs: self.scope(name, *args, **kwargs)

    # --- builder ---

    def _condition(self, args: tuple[Any, ...]) -> dict[str, Any]:
        if len(args) == 1 and callable(args[0]) and not isinstance(args[0], Mapping):
            group = Query(self.model)
            args[0](group)
            return group.filter
        return build_condition(*args)

    def where(self, *args: Any) -> Query:
        """Add an AND condition.

        Accepts ``(field, value)``, ``(field, op, value)``, a filter mapping,
        or a callable receiving a fresh query whose conditions form one
        group::

            Post.query().where(lambda q: q.where("likes", ">", 5).or_where("pinned", True))
        """
        condition = self._condition(args)
        if condition:
            self._conditions.append(condition)
        return self

    def or_where(self, *args: Any) -> Query:
        """OR a condition with everything added so far."""
        condition = self._condition(args)
        if not condition:
            return self
        if self._conditions:
            self._conditions = [{"$or": [combine(self._conditions), condition]}]
        else:
            self._conditions.append(condition)
        return self

    def where_in(self, field: str, values: Iterable[Any]) -> Query:
        self._conditions.append({field: {"$in": list(values)}})
        return self

    def where_not_in(self, field: str, values: Iterable[Any]) -> Query:
        self._conditions.append({field: {"$nin": list(values)}})
        return self

    def where_null(self, field: str) -> Query:
        self._conditions.append({field: None})
        return self

    def where_not_null(self, field: str) -> Query:
        self._conditions.append({field: {"$ne": None}})
        return self

    def select(self, *fields: str | Iterable[str]) -> Query:
        for item in fields:
            if isinstance(item, str):
                self._projection.append(item)
            else:
                self._projection.extend(item)
        return self

    def sort(self, field: str, direction: str | int = "asc") -> Query:
        self._sort.append((field, _direction(direction)))
        return self

    def skip(self, count: int) -> Query:
        self._skip = count
        return self

    def limit(self, count: int) -> Query:
        self._limit = count
        return self

    def with_(self, *args: Any) -> Query:
        """Eager-load relations on the fetched rows. See ``EagerLoader.add``."""
        self._eager.add(*args)
        return self

    def clone(self) -> Query:
        clone = Query(self.model)
        clone._conditions = copy.deepcopy(self._conditions)
        clone._sort = list(self._sort)
        clone._skip = self._skip
        clone._limit = self._limit
        clone._projection = list(self._projection)
        clone._eager = self._eager.copy()
        clone._ignored_scopes = None if self._ignored_scopes is None else set(self._ignored_scopes)
        clone._scopes_applied = self._scopes_applied
        return clone

    def keep_fields(self, *fields: str) -> Query:
        """Add ``fields`` to an existing projection; no-op when nothing is selected."""
        if self._projection:
            self._projection.extend(f for f in fields if f not in self._projection)
        return self

    @property
    def filter(self) -> dict[str, Any]:
        return combine(self._conditions)

    # --- scopes ---

    def scope(self, name: str, *args: Any, **kwargs: Any) -> Query:
        """Apply the model's local scope ``scope_<name>(query, *args)``.

        Raises:
            InvalidParameterError: If the model defines no such scope.
        """
        method = getattr(self.model, f"scope_{name}", None)
        if method is None:
            raise InvalidParameterError(f"{name} is not a scope on {self.model.__name__} model")
        method(self, *args, **kwargs)
        return self

    def ignore_scopes(self, *names: str) -> Query:
        """Skip the named global scopes, or all of them when none are named."""
        if not names:
            self._ignored_scopes = None
        elif self._ignored_scopes is not None:
            self._ignored_scopes.update(names)
        return self

    def _scoped(self) -> Query:
        """Copy of this query with the model's global scopes applied."""
        if self._scopes_applied:
            return self
        query = self.clone()
        query._scopes_applied = True
        for name, callback in self.model._global_scopes.items():
            if self._ignored_scopes is None or name in self._ignored_scopes:
                continue
            callback(query)
        return query

    # --- execution ---

    async def _documents(self, **overrides: Any) -> list[dict[str, Any]]:
        query = self._scoped()
        options: dict[str, Any] = {
            "sort": query._sort,
            "skip": query._skip,
            "limit": query._limit,
            "projection": query._projection or None,
        }
        options.update(overrides)
        return await self.model.get_engine().find(self.model.collection, query.filter, **options)

    async def fetch(self) -> Serializer[Model]:
        """Fetch all matching rows with their eager-loaded relations."""
        rows = [self.model.new_up(doc) for doc in await self._documents()]
        await self._eager.load_for_many(rows)
        await self.model._hooks.run("after_fetch", rows)
        return Serializer(rows)

    async def first(self) -> Model | None:
        """Fetch the first matching row, or None."""
        docs = await self._documents(limit=1)
        if not docs:
            return None
        row = self.model.new_up(docs[0])
        await self._eager.load_for_one(row)
        await self.model._hooks.run("after_find", row)
        return row

    async def first_or_fail(self) -> Model:
        row = await self.first()
        if row is None:
            raise MissingDatabaseRowError(self.model.__name__)
        return row

    async def paginate(self, page: int = 1, per_page: int = 20) -> Serializer[Model]:
        """Fetch one page of rows plus pagination metadata.

        Raises:
            InvalidParameterError: If ``page`` or ``per_page`` is below 1.
        """
        if page < 1 or per_page < 1:
            raise InvalidParameterError("paginate expects page and per_page to be positive integers")
        total = await self.count()
        docs = await self._documents(skip=(page - 1) * per_page, limit=per_page)
        rows = [self.model.new_up(doc) for doc in docs]
        await self._eager.load_for_many(rows)
        pages = Pages(
            total=total,
            per_page=per_page,
            page=page,
            last_page=math.ceil(total / per_page),
        )
        await self.model._hooks.run("after_paginate", rows, pages)
        return Serializer(rows, pages)

    async def count(self) -> int:
        return await self.model.get_engine().count(self.model.collection, self._scoped().filter)

    async def _column(self, field: str) -> list[Any]:
        docs = await self._documents(projection=[field])
        return [doc[field] for doc in docs if doc.get(field) is not None]

    async def sum(self, field: str) -> Any:
        return sum(await self._column(field))

    async def avg(self, field: str) -> float | None:
        values = await self._column(field)
        return sum(values) / len(values) if values else None

    async def max(self, field: str) -> Any:
        values = await self._column(field)
        return max(values) if values else None

    async def min(self, field: str) -> Any:
        values = await self._column(field)
        return min(values) if values else None

    async def distinct(self, field: str) -> list[Any]:
        """Distinct non-null values of ``field``, in first-seen order."""
        values: list[Any] = []
        for value in await self._column(field):
            if value not in values:
                values.append(value)
        return values

    async def ids(self) -> list[Any]:
        return await self._column(self.model.primary_key)

    async def pair(self, key: str, value: str) -> dict[Any, Any]:
        """Map ``key`` to ``value`` across the matching rows."""
        docs = await self._documents(projection=[key, value])
        return {doc.get(key): doc.get(value) for doc in docs}

    async def update(self, patch: Mapping[str, Any]) -> int:
        """Patch every matching document, stamping the update timestamp."""
        patch = dict(patch)
        column = self.model.updated_at_column
        if column:
            now = datetime.now(timezone.utc)
            if any(key.startswith("$") for key in patch):
                patch.setdefault("$set", {})
                patch["$set"] = {**patch["$set"], column: now}
            else:
                patch[column] = now
        return await self.model.get_engine().update(self.model.collection, self._scoped().filter, patch)

    async def delete(self) -> int:
        return await self.model.get_engine().delete(self.model.collection, self._scoped().filter)
