"""Loading layer - batch relation queries and attach results to parents."""

from __future__ import annotations

from doc_query.loading.eager import EagerLoader, EagerNode
from doc_query.loading.grouper import (
    GroupedEntry,
    GroupedResult,
    attach_grouped,
    group_many,
    group_single,
)

__all__ = [
    "EagerLoader",
    "EagerNode",
    "GroupedEntry",
    "GroupedResult",
    "attach_grouped",
    "group_many",
    "group_single",
]
