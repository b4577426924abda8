"""Eager-load orchestrator.

Turns ``with_`` arguments into a tree of relation paths and loads every
node with one batched relation query per parent class. Constraints belong
to the path segment they were given for; nested segments load on the rows
produced by their parent segment.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from doc_query.core.exceptions import (
    CannotOverrideRelationError,
    InvalidParameterError,
    RelationNotFoundError,
)
from doc_query.loading.grouper import distinct

logger = logging.getLogger(__name__)


@dataclass
class EagerNode:
    """One relation segment of an eager-load tree."""

    name: str
    constraint: Any = None
    children: dict[str, EagerNode] = field(default_factory=dict)


def _check_constraint(constraint: Any) -> Any:
    if constraint is None or callable(constraint) or isinstance(constraint, Mapping):
        return constraint
    raise InvalidParameterError(
        f"Relation constraint must be a callable or a mapping instead received {type(constraint).__name__}"
    )


class EagerLoader:
    """Collects requested relations and loads them onto parent instances."""

    def __init__(self) -> None:
        self.nodes: dict[str, EagerNode] = {}

    @classmethod
    def from_args(cls, *args: Any) -> EagerLoader:
        loader = cls()
        loader.add(*args)
        return loader

    def add(self, *args: Any) -> EagerLoader:
        """Register relations to load.

        Accepts ``("profile")``, ``("profile", constraint)``,
        ``(["profile", "posts.comments"])``, ``({"profile": constraint})`` or
        several names as separate arguments. A constraint is a callable
        receiving the relation, or a mapping with ``where``, ``select``,
        ``sort``, ``limit`` and ``with`` keys.
        """
        if len(args) == 2 and isinstance(args[0], str) and not isinstance(args[1], str):
            self._add_path(args[0], _check_constraint(args[1]))
            return self
        for arg in args:
            if isinstance(arg, str):
                self._add_path(arg, None)
            elif isinstance(arg, Mapping):
                for path, constraint in arg.items():
                    self._add_path(path, _check_constraint(constraint))
            elif isinstance(arg, Sequence):
                self.add(*arg)
            else:
                raise InvalidParameterError(
                    f"Cannot eagerload relations from {type(arg).__name__}"
                )
        return self

    def _add_path(self, path: str, constraint: Any) -> None:
        nodes = self.nodes
        segments = path.split(".")
        for index, segment in enumerate(segments):
            node = nodes.get(segment)
            if node is None:
                node = nodes[segment] = EagerNode(segment)
            if index == len(segments) - 1 and constraint is not None:
                node.constraint = constraint
            nodes = node.children

    def is_empty(self) -> bool:
        return not self.nodes

    def copy(self) -> EagerLoader:
        """Independent loader with the same relation tree."""
        loader = EagerLoader()
        loader.nodes = copy.deepcopy(self.nodes)
        return loader

    async def load_for_one(self, instance: Any) -> None:
        await self.load_for_many([instance])

    async def load_for_many(self, parents: Sequence[Any]) -> None:
        """Load every registered relation onto ``parents``."""
        parents = distinct(parents)
        if not parents:
            return
        for node in self.nodes.values():
            await self._load_node(node, parents)

    async def _load_node(self, node: EagerNode, parents: list[Any]) -> None:
        by_model: dict[type, list[Any]] = {}
        for parent in parents:
            by_model.setdefault(type(parent), []).append(parent)

        for model, members in by_model.items():
            factory = model.__relations__.get(node.name)
            if factory is None:
                raise RelationNotFoundError(node.name, model.__name__)
            for member in members:
                if member.has_related(node.name):
                    raise CannotOverrideRelationError(node.name)

            relation = factory(members[0])
            relation.apply_runtime_constraint(node.constraint)
            logger.debug(
                "eager loading %s.%s for %d parents", model.__name__, node.name, len(members)
            )
            related = await relation.eager_load(node.name, members)

            if node.children:
                child = EagerLoader()
                child.nodes = node.children
                await child.load_for_many(related)
