"""Identity and key resolution.

Document ids may be strings, integers or driver-specific objects. Keys are
compared by their string form, so ``normalize_key`` is the single place that
decides whether two keys refer to the same document.
"""

from __future__ import annotations

import itertools
import os
import random
import time
from collections.abc import Iterable
from typing import Any

_counter = itertools.count(random.randrange(1 << 24))


def new_object_id() -> str:
    """Generate a 24 hex char id, increasing within one process."""
    seconds = int(time.time()) & 0xFFFFFFFF
    return f"{seconds:08x}{os.getpid() & 0xFFFF:04x}{next(_counter) & 0xFFFFFFFFFFFF:012x}"


def normalize_key(value: Any) -> str | None:
    """Return the comparison form of a key, or None if it is undefined."""
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.hex()
    return str(value)


def resolve_key(value: Any, key_name: str | None = None) -> Any:
    """Extract a raw key from a model instance, or pass a raw id through.

    Args:
        value: A model instance or a raw identifier.
        key_name: Attribute to read from a model. Defaults to the model's
            primary key.
    """
    attributes = getattr(value, "attributes", None)
    if attributes is not None and hasattr(type(value), "primary_key"):
        return attributes.get(key_name or type(value).primary_key)
    return value


def key_values(instances: Iterable[Any], key_name: str) -> list[Any]:
    """Collect distinct, defined keys from instances in first-seen order."""
    seen: set[str] = set()
    values: list[Any] = []
    for instance in instances:
        value = resolve_key(instance, key_name)
        identity = normalize_key(value)
        if identity is None or identity in seen:
            continue
        seen.add(identity)
        values.append(value)
    return values
