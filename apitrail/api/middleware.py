"""Request interceptor: write tracking and backend error capture."""

import json
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from ..logging_config import get_logger
from ..models import ANONYMOUS, CallRecord, ErrorType
from ..tracker import WriteTracker

logger = get_logger(__name__)

USER_HEADER = "x-user-id"
SESSION_HEADER = "x-session-id"

# The pipeline's own endpoints are never write-tracked
UNTRACKED_PREFIXES = ("/api/telemetry",)


def is_tracked(request: Request) -> bool:
    """Mutating calls outside the pipeline's own endpoints."""
    if request.url.path.startswith(UNTRACKED_PREFIXES):
        return False
    return WriteTracker.should_track(request.method)


def user_id_from(request: Request) -> str:
    """Caller identity as forwarded by the auth gateway."""
    return request.headers.get(USER_HEADER) or ANONYMOUS


def session_id_from(request: Request) -> str | None:
    return request.headers.get(SESSION_HEADER) or None


def endpoint_path(request: Request) -> str:
    """Route template when routing matched, raw path otherwise."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def parse_body(raw: bytes) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, ValueError):
        return raw.decode("utf-8", errors="replace")


def request_context(request: Request, request_body: Any = None) -> dict[str, Any]:
    """Error context for a failed request. Headers and body are redacted downstream."""
    return {
        "method": request.method,
        "url": str(request.url),
        "path": request.url.path,
        "query": dict(request.query_params),
        "request_body": request_body,
        "request_headers": dict(request.headers),
    }


class WriteTrackingMiddleware(BaseHTTPMiddleware):
    """
    Observes every request without altering it.

    Successful POST/PUT/PATCH calls are handed to the write tracker in the
    background. Exceptions escaping the route are reported to the error
    funnel as backend errors and then re-raised.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        application = request.app.state.application
        tracked = is_tracked(request)

        raw_body = await request.body()
        request_body = parse_body(raw_body)
        started = time.perf_counter()
        timestamp = datetime.now(timezone.utc)

        try:
            response = await call_next(request)
        except Exception as e:
            context = request_context(request, request_body)
            context["status_code"] = 500
            context["duration_ms"] = _elapsed_ms(started)
            application.error_funnel.capture_exception(
                e,
                source=ErrorType.BACKEND,
                context=context,
                user_id=user_id_from(request),
                session_id=session_id_from(request),
            )
            raise

        if not tracked or response.status_code >= 400:
            return response

        # Buffer the streamed body so it can be both returned and recorded
        chunks = [chunk async for chunk in response.body_iterator]
        content = b"".join(chunks)
        duration_ms = _elapsed_ms(started)

        record = CallRecord(
            method=request.method,
            path=endpoint_path(request),
            url=str(request.url),
            status_code=response.status_code,
            duration_ms=duration_ms,
            timestamp=timestamp,
            user_id=user_id_from(request),
            request_body=request_body,
            response_body=parse_body(content),
            session_id=session_id_from(request),
        )
        application.tracker.schedule(record)

        replayed = Response(content=content, status_code=response.status_code)
        # Raw list keeps repeated headers such as Set-Cookie
        replayed.raw_headers = list(response.raw_headers)
        return replayed


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
