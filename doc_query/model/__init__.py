"""Model layer - document-backed records, queries and result collections."""

from __future__ import annotations

from doc_query.model.base import Model, pluralize, relation, snake_case
from doc_query.model.hooks import Hooks
from doc_query.model.pivot import Pivot
from doc_query.model.query import Query
from doc_query.model.serializer import Pages, Serializer

__all__ = [
    "Model",
    "Pivot",
    "Query",
    "Hooks",
    "Serializer",
    "Pages",
    "relation",
    "snake_case",
    "pluralize",
]
