"""Eager-load grouper.

Partitions a flat result set, fetched once for every parent, back onto the
owning parents. Single pass over the rows using an identity map, in the
order identities are first seen.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from doc_query.core.keys import normalize_key

IdentityOf = Callable[[Any], Any]


@dataclass(frozen=True)
class GroupedEntry:
    """One parent identity and the related value that belongs to it."""

    identity: str
    value: Any


@dataclass(frozen=True)
class GroupedResult:
    """Grouped related rows, one entry per distinct parent identity."""

    values: tuple[GroupedEntry, ...] = ()

    def get(self, identity: Any, default: Any = None) -> Any:
        identity = normalize_key(identity)
        for entry in self.values:
            if entry.identity == identity:
                return entry.value
        return default

    def as_dict(self) -> dict[str, Any]:
        return {entry.identity: entry.value for entry in self.values}

    def __len__(self) -> int:
        return len(self.values)


def group_single(rows: Iterable[Any], identity_of: IdentityOf) -> GroupedResult:
    """Group rows for a singleton relation.

    When several rows share a parent identity the last one wins, while the
    entry keeps the position where that identity was first seen.
    """
    positions: dict[str, int] = {}
    entries: list[GroupedEntry] = []
    for row in rows:
        identity = normalize_key(identity_of(row))
        if identity is None:
            continue
        if identity in positions:
            entries[positions[identity]] = GroupedEntry(identity, row)
        else:
            positions[identity] = len(entries)
            entries.append(GroupedEntry(identity, row))
    return GroupedResult(tuple(entries))


def group_many(
    rows: Iterable[Any],
    identity_of: IdentityOf,
    collection: Callable[[list[Any]], Any] = list,
) -> GroupedResult:
    """Group rows for a collection relation, keeping row order per parent.

    Args:
        rows: Related instances fetched for all parents.
        identity_of: Returns the parent key a row belongs to.
        collection: Wraps each bucket, e.g. a result collection class.
    """
    buckets: dict[str, list[Any]] = {}
    for row in rows:
        identity = normalize_key(identity_of(row))
        if identity is None:
            continue
        buckets.setdefault(identity, []).append(row)
    return GroupedResult(
        tuple(GroupedEntry(identity, collection(items)) for identity, items in buckets.items())
    )


def distinct(instances: Iterable[Any]) -> list[Any]:
    """Drop None and repeated objects, keeping first-seen order."""
    seen: set[int] = set()
    result: list[Any] = []
    for instance in instances:
        if instance is None or id(instance) in seen:
            continue
        seen.add(id(instance))
        result.append(instance)
    return result


def attach_grouped(
    parents: Sequence[Any],
    relation_name: str,
    grouped: GroupedResult,
    identity_of: IdentityOf,
    empty: Callable[[], Any],
) -> None:
    """Store each parent's slice of ``grouped`` under ``relation_name``.

    Parents without a match get ``empty()``: None for singleton relations,
    an empty collection for the others.

    Raises:
        CannotOverrideRelationError: If a parent already holds the relation.
    """
    lookup = grouped.as_dict()
    for parent in distinct(parents):
        identity = normalize_key(identity_of(parent))
        value = lookup.get(identity) if identity is not None else None
        parent.set_related(relation_name, empty() if value is None else value)
