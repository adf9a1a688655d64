"""Structural differ for JSON-like payloads."""

import json
from typing import Any

from ..models import Added, Changed, DiffNode, Nested, Removed


def _normalize(value: Any) -> Any:
    # JSON has one number type: 10 and 10.0 compare equal, True stays a boolean
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict):
        return {key: _normalize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_normalize(item) for item in value]
    return value


def _canonical(value: Any) -> str:
    return json.dumps(
        _normalize(value), sort_keys=True, separators=(",", ":"), default=str
    )


def values_equal(previous: Any, current: Any) -> bool:
    """Deep equality by serialized comparison."""
    return _canonical(previous) == _canonical(current)


def diff(previous: Any, current: Any) -> DiffNode | None:
    """
    Compute the structural diff between two JSON-like values.

    Objects are compared key by key and recursed into; arrays and scalars
    are atomic, so any difference inside an array marks the whole array
    as changed.

    Returns:
        A DiffNode, or None when the values are equal.
    """
    if isinstance(previous, dict) and isinstance(current, dict):
        children: dict[str, DiffNode] = {}
        keys = list(previous) + [key for key in current if key not in previous]

        for key in keys:
            if key not in previous:
                children[key] = Added(current[key])
            elif key not in current:
                children[key] = Removed(previous[key])
            else:
                child = diff(previous[key], current[key])
                if child is not None:
                    children[key] = child

        return Nested(children) if children else None

    if values_equal(previous, current):
        return None
    return Changed(previous, current)
