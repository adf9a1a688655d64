"""Call and error record models."""

import traceback
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class CallRecord:
    """A single mutating API call as observed by the interceptor."""

    method: str
    path: str
    url: str
    status_code: int
    duration_ms: float
    timestamp: datetime
    user_id: str = ANONYMOUS
    request_body: Any = None
    response_body: Any = None
    session_id: str | None = None
    event_id: str | None = None

    @property
    def endpoint_key(self) -> tuple[str, str]:
        """(method, path) pair identifying the call site."""
        return self.method.upper(), self.path

    def to_properties(self) -> dict[str, Any]:
        """Flatten into the store's property naming."""
        return {
            "request_body": self.request_body,
            "response_body": self.response_body,
            "timestamp": self.timestamp.isoformat(),
            "status_code": self.status_code,
            "duration_ms": self.duration_ms,
            "method": self.method,
            "path": self.path,
            "url": self.url,
            "user_id": self.user_id,
            "event_id": self.event_id,
        }


class ErrorType(str, Enum):
    """Where a failure originated."""

    FRONTEND = "frontend"
    BACKEND = "backend"
    API = "api"

    @property
    def wire_value(self) -> str:
        return f"{self.value}_error"


@dataclass
class ErrorDetails:
    """Raw failure description handed to the error funnel."""

    error_message: str
    error_name: str | None = None
    error_stack: str | None = None
    context: dict[str, Any] | None = None
    user_id: str = ANONYMOUS

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        context: dict[str, Any] | None = None,
        user_id: str = ANONYMOUS,
    ) -> "ErrorDetails":
        """Describe an exception, including its formatted traceback."""
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return cls(
            error_message=str(exc) or repr(exc),
            error_name=type(exc).__name__,
            error_stack=stack,
            context=context,
            user_id=user_id,
        )


@dataclass(frozen=True)
class ErrorEvent:
    """Canonical error event. One per failure occurrence."""

    error_name: str
    error_message: str
    error_type: ErrorType
    user_id: str
    timestamp: datetime
    error_stack: str | None = None
    session_id: str | None = None
    context: dict[str, Any] = field(default_factory=dict)
    replay_url: str | None = None

    def to_properties(self) -> dict[str, Any]:
        properties: dict[str, Any] = {
            "error_name": self.error_name,
            "error_message": self.error_message,
            "error_type": self.error_type.wire_value,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.error_stack:
            properties["error_stack"] = self.error_stack
        if self.context:
            properties["context"] = self.context
        if self.session_id:
            properties["$session_id"] = self.session_id
            properties["$error_with_session_replay"] = True
        if self.replay_url:
            properties["session_replay_url"] = self.replay_url
        if self.user_id and self.user_id != ANONYMOUS:
            properties["user_id"] = self.user_id
        return properties
