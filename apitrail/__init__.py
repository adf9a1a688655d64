"""Write-request tracking and error reporting for HTTP APIs."""

from .app import Application, IApplication
from .config import TelemetrySettings
from .diffing import ChangeSet, compare_calls, diff
from .errors import ErrorFunnel, IErrorFunnel
from .event_buffer import EventRingBuffer, IEventRingBuffer
from .event_store import EventStoreClient, IEventStoreClient, RetrievalOutcome
from .models import (
    Added,
    CallRecord,
    Changed,
    EnrichedWriteEvent,
    ErrorDetails,
    ErrorEvent,
    ErrorType,
    Item,
    Nested,
    Removed,
    RingBufferEntry,
)
from .redaction import Redactor
from .storage import IStorage, Storage
from .telemetry import EventEmitter, IEventEmitter, ITelemetryService, TelemetryService
from .tracker import IWriteTracker, WriteTracker

__all__ = [
    # Application
    "Application",
    "IApplication",
    "TelemetrySettings",
    # Models
    "CallRecord",
    "EnrichedWriteEvent",
    "ErrorDetails",
    "ErrorEvent",
    "ErrorType",
    "RingBufferEntry",
    "Item",
    "Added",
    "Removed",
    "Changed",
    "Nested",
    # Components
    "Redactor",
    "diff",
    "compare_calls",
    "ChangeSet",
    "IEventStoreClient",
    "EventStoreClient",
    "RetrievalOutcome",
    "IEventEmitter",
    "EventEmitter",
    "ITelemetryService",
    "TelemetryService",
    "IEventRingBuffer",
    "EventRingBuffer",
    "IWriteTracker",
    "WriteTracker",
    "IErrorFunnel",
    "ErrorFunnel",
    "IStorage",
    "Storage",
]
