"""Write-tracking and local event log models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .diff import DiffNode
from .records import ANONYMOUS, CallRecord


@dataclass(frozen=True)
class EnrichedWriteEvent:
    """Current call + the previous call to the same endpoint + their diff."""

    current: CallRecord
    previous: CallRecord | None
    diff: DiffNode | None
    is_first_call: bool
    change_summary: str

    def __post_init__(self) -> None:
        if self.is_first_call != (self.previous is None):
            raise ValueError("is_first_call must be True iff there is no previous call")

    def to_properties(self) -> dict[str, Any]:
        current = self.current
        properties: dict[str, Any] = {
            "method": current.method,
            "path": current.path,
            "url": current.url,
            "status_code": current.status_code,
            "duration_ms": current.duration_ms,
            "timestamp": current.timestamp.isoformat(),
            "is_first_call": self.is_first_call,
            "change_summary": self.change_summary,
        }
        if current.request_body is not None:
            properties["request_body"] = current.request_body
        if current.response_body is not None:
            properties["response_body"] = current.response_body

        previous = self.previous
        if previous is not None:
            properties["previous_call"] = previous.to_properties()
            # Flat copies for filtering in the store's UI
            properties["previous_request_body"] = previous.request_body
            properties["previous_response_body"] = previous.response_body
            properties["previous_timestamp"] = previous.timestamp.isoformat()
            properties["previous_status_code"] = previous.status_code
            properties["previous_duration_ms"] = previous.duration_ms
            if previous.event_id:
                properties["previous_event_id"] = previous.event_id

        if self.diff is not None:
            properties["changes"] = self.diff.to_dict()

        if current.session_id:
            properties["$session_id"] = current.session_id
        if current.user_id and current.user_id != ANONYMOUS:
            properties["user_id"] = current.user_id
        return properties


@dataclass(frozen=True)
class RingBufferEntry:
    """One locally retained telemetry event."""

    distinct_id: str
    event_name: str
    properties: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "distinct_id": self.distinct_id,
            "event_name": self.event_name,
            "properties": self.properties,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
