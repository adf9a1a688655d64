"""Structural diff data models."""

from dataclasses import dataclass
from typing import Any, Union

# JSON-like payloads: dict / list / str / int / float / bool / None
JSONValue = Any


@dataclass(frozen=True)
class Added:
    """Key present only in the current payload."""

    value: JSONValue

    def to_dict(self) -> dict:
        return {"added": self.value}


@dataclass(frozen=True)
class Removed:
    """Key present only in the previous payload."""

    value: JSONValue

    def to_dict(self) -> dict:
        return {"removed": self.value}


@dataclass(frozen=True)
class Changed:
    """Leaf or array value that differs between payloads."""

    previous: JSONValue
    current: JSONValue

    def to_dict(self) -> dict:
        return {"previous": self.previous, "current": self.current}


@dataclass(frozen=True)
class Nested:
    """Per-key diff of two objects. Never empty."""

    children: dict[str, "DiffNode"]

    def __post_init__(self) -> None:
        if not self.children:
            raise ValueError("Nested diff must contain at least one child")

    def to_dict(self) -> dict:
        return {key: child.to_dict() for key, child in self.children.items()}


DiffNode = Union[Added, Removed, Changed, Nested]
