"""Core data models for apitrail."""

from .diff import Added, Changed, DiffNode, JSONValue, Nested, Removed
from .items import Item
from .records import ANONYMOUS, CallRecord, ErrorDetails, ErrorEvent, ErrorType
from .tracking import EnrichedWriteEvent, RingBufferEntry

__all__ = [
    # Diff
    "Added",
    "Removed",
    "Changed",
    "Nested",
    "DiffNode",
    "JSONValue",
    # Records
    "ANONYMOUS",
    "CallRecord",
    "ErrorDetails",
    "ErrorEvent",
    "ErrorType",
    # Tracking
    "EnrichedWriteEvent",
    "RingBufferEntry",
    # Items
    "Item",
]
