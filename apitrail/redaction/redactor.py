"""Payload redaction and truncation.

Everything that leaves the process (write events, error events, the local
event log) passes through here first. All functions are total: ``None`` in
gives ``None`` out, and oversized payloads are replaced by a truncation
marker instead of raising.
"""

import json
from collections.abc import Iterable, Mapping
from typing import Any

from ..config import DEFAULT_SENSITIVE_FIELDS, DEFAULT_SENSITIVE_HEADERS

REDACTED = "[REDACTED]"

DEFAULT_MAX_BODY_BYTES = 1000
DEFAULT_MAX_RESPONSE_BYTES = 2000

_MARKER_KEYS = frozenset({"truncated", "size", "preview"})

HEADER_CONTEXT_KEYS = frozenset({"request_headers", "requestHeaders"})
BODY_CONTEXT_KEYS = frozenset({"request_body", "requestBody"})


def serialize(value: Any) -> str:
    """Compact JSON used for size checks and equality."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def is_truncation_marker(value: Any) -> bool:
    """True for objects produced by :func:`truncate`."""
    return (
        isinstance(value, dict)
        and set(value) == _MARKER_KEYS
        and value.get("truncated") is True
    )


def truncate(value: Any, max_bytes: int) -> Any:
    """Replace ``value`` by a truncation marker when it serializes above ``max_bytes``."""
    if value is None or is_truncation_marker(value):
        return value

    encoded = serialize(value).encode("utf-8")
    if len(encoded) <= max_bytes:
        return value

    # Cut on a byte boundary; a split multi-byte character is dropped
    preview = encoded[:max_bytes].decode("utf-8", errors="ignore") + "..."
    return {"truncated": True, "size": len(encoded), "preview": preview}


class Redactor:
    """Sanitizes request bodies, headers, responses and error context."""

    def __init__(
        self,
        sensitive_fields: Iterable[str] = DEFAULT_SENSITIVE_FIELDS,
        sensitive_headers: Iterable[str] = DEFAULT_SENSITIVE_HEADERS,
        max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
        max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES,
    ):
        self._sensitive_fields = frozenset(f.lower() for f in sensitive_fields)
        self._sensitive_headers = frozenset(h.lower() for h in sensitive_headers)
        self._max_body_bytes = max_body_bytes
        self._max_response_bytes = max_response_bytes

    @classmethod
    def from_settings(cls, settings) -> "Redactor":
        """Build a redactor from TelemetrySettings."""
        return cls(
            sensitive_fields=settings.sensitive_fields,
            sensitive_headers=settings.sensitive_headers,
            max_body_bytes=settings.max_body_bytes,
            max_response_bytes=settings.max_response_bytes,
        )

    def redact_fields(self, value: Any) -> Any:
        """Recursively mask values stored under sensitive keys."""
        if isinstance(value, dict):
            return {
                key: REDACTED
                if str(key).lower() in self._sensitive_fields
                else self.redact_fields(item)
                for key, item in value.items()
            }
        if isinstance(value, list):
            return [self.redact_fields(item) for item in value]
        return value

    def sanitize_body(self, value: Any) -> Any:
        """Redact sensitive fields, then truncate to the request size limit."""
        if value is None:
            return None
        if is_truncation_marker(value):
            return value
        return truncate(self.redact_fields(value), self._max_body_bytes)

    def sanitize_headers(self, headers: Mapping[str, Any] | None) -> dict[str, Any] | None:
        """Mask sensitive header values. Header names are matched case-insensitively."""
        if headers is None:
            return None
        return {
            key: REDACTED if key.lower() in self._sensitive_headers else value
            for key, value in headers.items()
        }

    def sanitize_response(self, value: Any) -> Any:
        """Redact sensitive fields, then truncate to the response size limit."""
        if value is None:
            return None
        if is_truncation_marker(value):
            return value
        return truncate(self.redact_fields(value), self._max_response_bytes)

    def sanitize_context(self, context: Mapping[str, Any] | None) -> dict[str, Any] | None:
        """Sanitize an error context map: headers, body, and any sensitive keys."""
        if context is None:
            return None

        sanitized: dict[str, Any] = {}
        for key, value in context.items():
            if key in HEADER_CONTEXT_KEYS and isinstance(value, Mapping):
                sanitized[key] = self.sanitize_headers(value)
            elif key in BODY_CONTEXT_KEYS:
                sanitized[key] = self.sanitize_body(value)
            elif str(key).lower() in self._sensitive_fields:
                sanitized[key] = REDACTED
            else:
                sanitized[key] = self.redact_fields(value)
        return sanitized


_default = Redactor()


def sanitize_body(value: Any) -> Any:
    """Sanitize a request body with the default field set and limit."""
    return _default.sanitize_body(value)


def sanitize_headers(headers: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Sanitize headers with the default header set."""
    return _default.sanitize_headers(headers)


def sanitize_response(value: Any) -> Any:
    """Sanitize a response body with the default field set and limit."""
    return _default.sanitize_response(value)
