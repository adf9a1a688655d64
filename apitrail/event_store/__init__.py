"""Event store query module."""

from .client import EventStoreClient, IEventStoreClient
from .project import extract_project_id, resolve_project_id
from .tiers import (
    EventListTier,
    IQueryTier,
    QueryContext,
    RetrievalOutcome,
    StructuredQueryTier,
    TierResult,
    parse_call_record,
)

__all__ = [
    "EventStoreClient",
    "IEventStoreClient",
    "IQueryTier",
    "StructuredQueryTier",
    "EventListTier",
    "QueryContext",
    "RetrievalOutcome",
    "TierResult",
    "parse_call_record",
    "extract_project_id",
    "resolve_project_id",
]
