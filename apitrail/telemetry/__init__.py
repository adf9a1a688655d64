"""Telemetry module."""

from .emitter import EventEmitter, IEventEmitter
from .service import (
    ERROR_EVENT,
    IDENTIFY_EVENT,
    WRITE_EVENT,
    ITelemetryService,
    TelemetryService,
)

__all__ = [
    "EventEmitter",
    "IEventEmitter",
    "ITelemetryService",
    "TelemetryService",
    "WRITE_EVENT",
    "ERROR_EVENT",
    "IDENTIFY_EVENT",
]
