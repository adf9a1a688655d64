"""Query tiers for retrieving the previous call to an endpoint.

Each tier returns a TierResult and never raises. The client walks the
tiers in order and stops at the first conclusive outcome.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

import httpx

from ..logging_config import get_logger
from ..models import ANONYMOUS, CallRecord
from ..telemetry import WRITE_EVENT

logger = get_logger(__name__)


class RetrievalOutcome(str, Enum):
    """Why a retrieval produced (or did not produce) a record."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    NOT_CONFIGURED = "not_configured"
    NO_PROJECT = "no_project"
    UNAUTHORIZED = "unauthorized"
    BAD_RESPONSE = "bad_response"
    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"

    @property
    def conclusive(self) -> bool:
        """Conclusive outcomes end the tier chain."""
        return self in (
            RetrievalOutcome.FOUND,
            RetrievalOutcome.NOT_FOUND,
            RetrievalOutcome.TIMEOUT,
        )


@dataclass(frozen=True)
class TierResult:
    """Outcome of one tier (or of the whole chain)."""

    outcome: RetrievalOutcome
    record: CallRecord | None = None
    tier: str | None = None


@dataclass(frozen=True)
class QueryContext:
    """Everything a tier needs to look up one endpoint."""

    host: str
    project_id: str
    api_key: str
    method: str
    path: str
    user_id: str | None = None
    timeout: float = 5.0

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }


class IQueryTier(Protocol):
    """One way of asking the store for the latest matching event."""

    name: str

    async def fetch(self, client: httpx.AsyncClient, ctx: QueryContext) -> TierResult:
        """Look up the latest event for ctx.method + ctx.path."""
        ...


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


def _loads_if_str(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return None
    return value


def parse_call_record(event: Any, method: str, path: str) -> CallRecord | None:
    """
    Build a CallRecord from one store event.

    Accepts the shapes the store returns: a dict, a row list whose first
    element is the event, or a JSON string. ``properties`` may itself be
    a JSON string.

    Raises:
        ValueError: If numeric fields cannot be converted.
    """
    event = _loads_if_str(event)
    if isinstance(event, list):
        event = _loads_if_str(event[0]) if event else None
    if not isinstance(event, dict):
        return None

    properties = _loads_if_str(event.get("properties", event))
    if not isinstance(properties, dict):
        properties = {}

    return CallRecord(
        method=properties.get("method") or method,
        path=properties.get("path") or path,
        url=properties.get("url") or "",
        status_code=int(properties.get("status_code") or 0),
        duration_ms=float(properties.get("duration_ms") or 0),
        timestamp=_parse_timestamp(
            properties.get("timestamp") or event.get("timestamp") or event.get("created_at")
        ),
        user_id=properties.get("user_id") or event.get("distinct_id") or ANONYMOUS,
        request_body=properties.get("request_body"),
        response_body=properties.get("response_body"),
        session_id=properties.get("$session_id"),
        event_id=event.get("uuid") or event.get("id") or event.get("event_id"),
    )


async def _execute(
    tier: str,
    client: httpx.AsyncClient,
    ctx: QueryContext,
    method: str,
    url: str,
    **kwargs: Any,
) -> tuple[RetrievalOutcome | None, Any]:
    """Send one request; map transport and status failures to outcomes."""
    try:
        response = await client.request(
            method, url, headers=ctx.headers, timeout=ctx.timeout, **kwargs
        )
    except httpx.TimeoutException:
        logger.warning("Event store %s timed out for %s %s", tier, ctx.method, ctx.path)
        return RetrievalOutcome.TIMEOUT, None
    except httpx.HTTPError as e:
        logger.warning("Event store %s unreachable: %s", tier, e)
        return RetrievalOutcome.UNREACHABLE, None

    if response.status_code in (401, 403):
        logger.warning(
            "Event store %s rejected credentials: %s", tier, response.status_code
        )
        return RetrievalOutcome.UNAUTHORIZED, None
    if not response.is_success:
        logger.warning(
            "Event store %s failed: %s",
            tier,
            response.status_code,
            extra={"context": {"body": response.text[:500]}},
        )
        return RetrievalOutcome.BAD_RESPONSE, None

    try:
        return None, response.json()
    except ValueError:
        logger.warning("Event store %s returned malformed JSON", tier)
        return RetrievalOutcome.BAD_RESPONSE, None


def _to_result(tier: str, events: Any, ctx: QueryContext) -> TierResult:
    if not isinstance(events, list):
        return TierResult(RetrievalOutcome.BAD_RESPONSE, tier=tier)
    if not events:
        return TierResult(RetrievalOutcome.NOT_FOUND, tier=tier)
    try:
        record = parse_call_record(events[0], ctx.method, ctx.path)
    except (TypeError, ValueError) as e:
        logger.warning("Event store %s returned an unreadable event: %s", tier, e)
        return TierResult(RetrievalOutcome.BAD_RESPONSE, tier=tier)
    if record is None:
        return TierResult(RetrievalOutcome.BAD_RESPONSE, tier=tier)
    return TierResult(RetrievalOutcome.FOUND, record=record, tier=tier)


class StructuredQueryTier:
    """Tier A: structured events query with property predicates."""

    name = "structured_query"

    def __init__(self, event_name: str = WRITE_EVENT):
        self._event_name = event_name

    def build_query(self, ctx: QueryContext) -> dict[str, Any]:
        return {
            "query": {
                "kind": "EventsQuery",
                "select": ["*"],
                "event": self._event_name,
                "where": [
                    f"properties.method = '{_escape(ctx.method)}'",
                    f"properties.path = '{_escape(ctx.path)}'",
                ],
                "orderBy": ["timestamp DESC"],
                "limit": 1,
            }
        }

    async def fetch(self, client: httpx.AsyncClient, ctx: QueryContext) -> TierResult:
        url = f"{ctx.host}/api/projects/{ctx.project_id}/query/"
        outcome, data = await _execute(
            self.name, client, ctx, "POST", url, json=self.build_query(ctx)
        )
        if outcome is not None:
            return TierResult(outcome, tier=self.name)
        if not isinstance(data, dict):
            return TierResult(RetrievalOutcome.BAD_RESPONSE, tier=self.name)
        return _to_result(self.name, data.get("results", []), ctx)


class EventListTier:
    """Tier B: plain event list filtered through query-string parameters."""

    name = "event_list"

    def __init__(self, event_name: str = WRITE_EVENT):
        self._event_name = event_name

    def build_params(self, ctx: QueryContext) -> dict[str, str]:
        params = {
            "event": self._event_name,
            "limit": "1",
            "orderBy": "-timestamp",
            "properties": json.dumps(
                [
                    {"key": "method", "value": ctx.method, "operator": "exact"},
                    {"key": "path", "value": ctx.path, "operator": "exact"},
                ]
            ),
        }
        if ctx.user_id and ctx.user_id != ANONYMOUS:
            params["distinct_id"] = ctx.user_id
        return params

    async def fetch(self, client: httpx.AsyncClient, ctx: QueryContext) -> TierResult:
        url = f"{ctx.host}/api/projects/{ctx.project_id}/events/"
        outcome, data = await _execute(
            self.name, client, ctx, "GET", url, params=self.build_params(ctx)
        )
        if outcome is not None:
            return TierResult(outcome, tier=self.name)

        if isinstance(data, list):
            events = data
        elif isinstance(data, dict):
            events = data.get("results", data.get("events", []))
        else:
            events = None
        return _to_result(self.name, events, ctx)
