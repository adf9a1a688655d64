"""Diffing module."""

from .changes import FIRST_CALL_SUMMARY, NO_CHANGES_SUMMARY, ChangeSet, compare_calls
from .differ import diff, values_equal

__all__ = [
    "diff",
    "values_equal",
    "compare_calls",
    "ChangeSet",
    "FIRST_CALL_SUMMARY",
    "NO_CHANGES_SUMMARY",
]
