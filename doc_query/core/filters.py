"""Document filter dialect.

Filters are plain mappings in the usual document-store style::

    {"likes": {"$gt": 2}, "determiner": "User"}
    {"$or": [{"title": "A"}, {"title": "B"}]}

Adapters that cannot push filters down to the driver evaluate them with
``matches``; ``apply_patch`` and ``apply_options`` cover writes and cursor
options the same way.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any

from doc_query.core.exceptions import InvalidParameterError

_MISSING = object()

# where(field, op, value) operators -> filter operators
_OPERATORS: dict[str, str] = {
    "=": "$eq",
    "==": "$eq",
    "!=": "$ne",
    "<>": "$ne",
    ">": "$gt",
    ">=": "$gte",
    "<": "$lt",
    "<=": "$lte",
    "in": "$in",
    "not in": "$nin",
}


@dataclass(frozen=True)
class FindOptions:
    """Cursor options for a find call."""

    sort: tuple[tuple[str, int], ...] = ()
    skip: int | None = None
    limit: int | None = None
    projection: tuple[str, ...] | None = None


def build_condition(*args: Any) -> dict[str, Any]:
    """Turn ``where``-style arguments into a filter mapping.

    Accepts ``(mapping)``, ``(field, value)`` or ``(field, op, value)``.
    """
    if len(args) == 1 and isinstance(args[0], Mapping):
        return dict(args[0])
    if len(args) == 2 and isinstance(args[0], str):
        return {args[0]: args[1]}
    if len(args) == 3 and isinstance(args[0], str) and isinstance(args[1], str):
        operator = _OPERATORS.get(args[1].lower())
        if operator is None:
            raise InvalidParameterError(f"Unsupported where operator '{args[1]}'")
        if operator == "$eq":
            return {args[0]: args[2]}
        return {args[0]: {operator: args[2]}}
    raise InvalidParameterError(
        "where expects a mapping, a (field, value) pair or a (field, operator, value) triple"
    )


def combine(conditions: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    """AND together a list of filter mappings."""
    conditions = [c for c in conditions if c]
    if not conditions:
        return {}
    if len(conditions) == 1:
        return dict(conditions[0])
    return {"$and": [dict(c) for c in conditions]}


def get_path(document: Mapping[str, Any], path: str) -> Any:
    """Read a dotted path, returning a private sentinel when absent."""
    current: Any = document
    for part in path.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return _MISSING
    return current


def _equals(actual: Any, expected: Any) -> bool:
    if actual is _MISSING:
        return expected is None
    if isinstance(actual, list) and not isinstance(expected, list):
        return any(_equals(item, expected) for item in actual)
    if actual is not None and expected is not None and type(actual) is not type(expected):
        # ids round-trip through drivers as strings
        if isinstance(actual, (str, int)) and isinstance(expected, (str, int)):
            return str(actual) == str(expected) and not isinstance(actual, bool)
    return bool(actual == expected)


def _ordered(actual: Any, expected: Any, test: Callable[[int], bool]) -> bool:
    if actual is _MISSING or actual is None or expected is None:
        return False
    if isinstance(actual, list):
        return any(_ordered(item, expected, test) for item in actual)
    try:
        return test((actual > expected) - (actual < expected))
    except TypeError:
        return False


def _match_operators(actual: Any, operators: Mapping[str, Any]) -> bool:
    for operator, expected in operators.items():
        if operator == "$eq":
            ok = _equals(actual, expected)
        elif operator == "$ne":
            ok = not _equals(actual, expected)
        elif operator == "$gt":
            ok = _ordered(actual, expected, lambda c: c > 0)
        elif operator == "$gte":
            ok = _ordered(actual, expected, lambda c: c >= 0)
        elif operator == "$lt":
            ok = _ordered(actual, expected, lambda c: c < 0)
        elif operator == "$lte":
            ok = _ordered(actual, expected, lambda c: c <= 0)
        elif operator == "$in":
            ok = any(_equals(actual, value) for value in expected)
        elif operator == "$nin":
            ok = not any(_equals(actual, value) for value in expected)
        elif operator == "$exists":
            ok = (actual is not _MISSING) == bool(expected)
        elif operator == "$regex":
            ok = isinstance(actual, str) and re.search(expected, actual) is not None
        else:
            raise InvalidParameterError(f"Unsupported filter operator '{operator}'")
        if not ok:
            return False
    return True


def _is_operator_map(value: Any) -> bool:
    return isinstance(value, Mapping) and bool(value) and all(
        isinstance(key, str) and key.startswith("$") for key in value
    )


def matches(document: Mapping[str, Any], filter: Mapping[str, Any] | None) -> bool:
    """Evaluate a filter mapping against a document."""
    if not filter:
        return True
    for key, expected in filter.items():
        if key == "$and":
            ok = all(matches(document, sub) for sub in expected)
        elif key == "$or":
            ok = any(matches(document, sub) for sub in expected)
        elif key == "$nor":
            ok = not any(matches(document, sub) for sub in expected)
        elif key.startswith("$"):
            raise InvalidParameterError(f"Unsupported filter operator '{key}'")
        elif _is_operator_map(expected):
            ok = _match_operators(get_path(document, key), expected)
        else:
            ok = _equals(get_path(document, key), expected)
        if not ok:
            return False
    return True


def _set_path(document: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current = document
    for part in parts[:-1]:
        current = current.setdefault(part, {})
    current[parts[-1]] = value


def _unset_path(document: dict[str, Any], path: str) -> None:
    parts = path.split(".")
    current: Any = document
    for part in parts[:-1]:
        current = current.get(part) if isinstance(current, dict) else None
        if current is None:
            return
    if isinstance(current, dict):
        current.pop(parts[-1], None)


def apply_patch(document: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Return a patched copy of a document.

    A patch without ``$`` operators is treated as ``{"$set": patch}``.
    """
    result = copy.deepcopy(dict(document))
    if not _is_operator_map(patch):
        patch = {"$set": patch}
    for operator, fields in patch.items():
        if operator == "$set":
            for path, value in fields.items():
                _set_path(result, path, copy.deepcopy(value))
        elif operator == "$unset":
            names = fields if isinstance(fields, (list, tuple)) else list(fields)
            for path in names:
                _unset_path(result, path)
        elif operator == "$inc":
            for path, amount in fields.items():
                current = get_path(result, path)
                _set_path(result, path, (0 if current is _MISSING else current) + amount)
        else:
            raise InvalidParameterError(f"Unsupported update operator '{operator}'")
    return result


def _compare(a: Any, b: Any) -> int:
    if a is _MISSING:
        a = None
    if b is _MISSING:
        b = None
    if a is None or b is None:
        return (a is not None) - (b is not None)
    try:
        return (a > b) - (a < b)
    except TypeError:
        return (str(a) > str(b)) - (str(a) < str(b))


def project(document: Mapping[str, Any], fields: Sequence[str], key_name: str = "_id") -> dict[str, Any]:
    """Keep only the selected top-level fields plus the document id."""
    keep = {key_name, *fields}
    return {key: value for key, value in document.items() if key in keep}


def apply_options(documents: list[dict[str, Any]], options: FindOptions) -> list[dict[str, Any]]:
    """Apply sort, skip, limit and projection to an in-memory result."""
    result = list(documents)
    for field, direction in reversed(options.sort):
        result.sort(
            key=cmp_to_key(lambda a, b, f=field: _compare(get_path(a, f), get_path(b, f))),
            reverse=direction < 0,
        )
    if options.skip:
        result = result[options.skip :]
    if options.limit is not None:
        result = result[: options.limit]
    if options.projection:
        result = [project(doc, options.projection) for doc in result]
    return result
