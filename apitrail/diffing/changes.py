"""Change map between two calls to the same endpoint."""

from dataclasses import dataclass
from typing import Any

from ..models import Added, CallRecord, DiffNode, Nested, Removed
from .differ import diff

FIRST_CALL_SUMMARY = "First call to this endpoint"
NO_CHANGES_SUMMARY = "No changes detected"

_SECTIONS = (
    ("request_body", "Request body"),
    ("response_body", "Response body"),
)


@dataclass(frozen=True)
class ChangeSet:
    """Merged request/response diff plus a human-readable summary."""

    diff: DiffNode | None
    summary: str

    @property
    def has_changes(self) -> bool:
        return self.diff is not None


def _section_diff(previous: Any, current: Any) -> tuple[DiffNode | None, str | None]:
    if previous is not None and current is not None:
        node = diff(previous, current)
        return node, "changed" if node is not None else None
    if current is not None:
        return Added(current), "added"
    if previous is not None:
        return Removed(previous), "removed"
    return None, None


def compare_calls(previous: CallRecord | None, current: CallRecord) -> ChangeSet:
    """Diff request and response bodies of two calls into one change map."""
    if previous is None:
        return ChangeSet(diff=None, summary=FIRST_CALL_SUMMARY)

    children: dict[str, DiffNode] = {}
    descriptions: list[str] = []

    for key, label in _SECTIONS:
        node, verb = _section_diff(getattr(previous, key), getattr(current, key))
        if node is not None:
            children[key] = node
            descriptions.append(f"{label} {verb}")

    if not children:
        return ChangeSet(diff=None, summary=NO_CHANGES_SUMMARY)
    return ChangeSet(diff=Nested(children), summary="; ".join(descriptions))
