"""Redaction module."""

from .redactor import (
    REDACTED,
    Redactor,
    is_truncation_marker,
    sanitize_body,
    sanitize_headers,
    sanitize_response,
    serialize,
    truncate,
)

__all__ = [
    "REDACTED",
    "Redactor",
    "is_truncation_marker",
    "sanitize_body",
    "sanitize_headers",
    "sanitize_response",
    "serialize",
    "truncate",
]
