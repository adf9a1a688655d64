"""Telemetry API routes."""

from typing import Any

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel, Field

from ...app import Application
from ...event_store import resolve_project_id
from ...models import ErrorDetails, ErrorType
from ...telemetry import ERROR_EVENT, WRITE_EVENT
from ..middleware import session_id_from, user_id_from

DEFAULT_EVENTS_LIMIT = 50
MAX_EVENTS_LIMIT = 100


class TelemetryInfoResponse(BaseModel):
    """Response model for telemetry status."""

    configured: bool
    host: str
    project_id: str | None = None
    event_log_size: int
    buffer_capacity: int
    tracked_events: list[str]


class EventLogEntry(BaseModel):
    distinct_id: str
    event_name: str
    properties: dict[str, Any]
    timestamp: str | None = None


class EventLogResponse(BaseModel):
    """Response model for the local event log."""

    events: list[EventLogEntry]
    count: int
    note: str


class FrontendErrorRequest(BaseModel):
    """Request model for a client-side error report."""

    error_message: str = Field(min_length=1)
    error_name: str | None = None
    error_stack: str | None = None
    context: dict[str, Any] | None = None
    user_id: str | None = None
    url: str | None = None


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


def create_telemetry_router(app: Application) -> APIRouter:
    """Create telemetry router."""
    router = APIRouter(prefix="/api/telemetry", tags=["telemetry"])

    @router.get("/info", response_model=TelemetryInfoResponse)
    async def get_info() -> dict:
        """Configuration status of the telemetry pipeline."""
        info = app.telemetry.status()
        info["project_id"] = resolve_project_id(app.settings)
        info["tracked_events"] = [WRITE_EVENT, ERROR_EVENT]
        return info

    @router.get("/events", response_model=EventLogResponse)
    async def get_events(
        limit: int = Query(DEFAULT_EVENTS_LIMIT, ge=1, le=MAX_EVENTS_LIMIT),
    ) -> dict:
        """Most recent locally recorded events, newest first."""
        events = [entry.to_dict() for entry in app.telemetry.recent_events(limit)]
        return {
            "events": events,
            "count": len(events),
            "note": (
                f"Local log of the last {app.settings.buffer_capacity} events "
                "recorded by this process; not a query against the event store"
            ),
        }

    @router.delete("/events", response_model=StatusResponse)
    async def clear_events() -> dict:
        """Clear the local event log."""
        app.telemetry.clear_event_log()
        return {"status": "cleared"}

    @router.post("/errors", response_model=StatusResponse, status_code=202)
    async def report_error(payload: FrontendErrorRequest, request: Request) -> dict:
        """Accept an error reported by a client application."""
        context = dict(payload.context or {})
        if payload.url:
            context["url"] = payload.url
        context["user_agent"] = request.headers.get("user-agent")

        app.error_funnel.capture_error(
            ErrorType.FRONTEND,
            ErrorDetails(
                error_message=payload.error_message,
                error_name=payload.error_name,
                error_stack=payload.error_stack,
                context=context,
                user_id=payload.user_id or user_id_from(request),
            ),
            session_id=session_id_from(request),
        )
        return {"status": "captured"}

    return router
