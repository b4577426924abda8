"""Result collections returned by ``fetch`` and ``paginate``."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Pages(BaseModel):
    """Pagination metadata."""

    total: int
    per_page: int
    page: int
    last_page: int


class Serializer(Generic[T]):
    """Ordered collection of model instances.

    Args:
        rows: Model instances in result order.
        pages: Pagination metadata when the rows come from ``paginate``.
    """

    def __init__(self, rows: list[T] | None = None, pages: Pages | None = None) -> None:
        self.rows: list[T] = list(rows or [])
        self.pages = pages

    def size(self) -> int:
        return len(self.rows)

    def first(self) -> T | None:
        return self.rows[0] if self.rows else None

    def last(self) -> T | None:
        return self.rows[-1] if self.rows else None

    def is_empty(self) -> bool:
        return not self.rows

    def to_dict(self) -> Any:
        """Serialize rows, wrapping them with pagination metadata when paginated."""
        data = [row.to_dict() for row in self.rows]  # type: ignore[attr-defined]
        if self.pages is None:
            return data
        return {**self.pages.model_dump(), "data": data}

    def __iter__(self) -> Iterator[T]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __getitem__(self, index: int) -> T:
        return self.rows[index]

    def __repr__(self) -> str:
        return f"Serializer(size={len(self.rows)}, pages={self.pages!r})"
