"""Model lifecycle hooks."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any

from doc_query.core.exceptions import InvalidParameterError

EVENTS = ("create", "update", "save", "delete", "find", "fetch", "paginate")
PHASES = ("before", "after")

Handler = Callable[..., Any]


class Hooks:
    """Per-model registry of lifecycle handlers.

    Handlers may be plain functions or coroutine functions; they run in
    registration order and each one is awaited before the next starts.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    @staticmethod
    def validate(name: str) -> str:
        phase, _, event = name.partition("_")
        if phase not in PHASES or event not in EVENTS:
            raise InvalidParameterError(
                f"{name} is not a valid hook name. Use before_<event> or after_<event> "
                f"with event one of {', '.join(EVENTS)}"
            )
        return name

    def add(self, name: str, handler: Handler) -> None:
        self._handlers.setdefault(self.validate(name), []).append(handler)

    def remove(self, name: str) -> None:
        self._handlers.pop(self.validate(name), None)

    def handlers(self, name: str) -> list[Handler]:
        return list(self._handlers.get(name, []))

    def copy(self) -> Hooks:
        clone = Hooks()
        clone._handlers = {name: list(items) for name, items in self._handlers.items()}
        return clone

    async def run(self, name: str, *args: Any) -> None:
        for handler in self._handlers.get(name, []):
            result = handler(*args)
            if inspect.isawaitable(result):
                await result
