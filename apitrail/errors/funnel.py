"""ErrorFunnel: single entry point for error reporting from every origin."""

from datetime import datetime, timezone
from typing import Any, Protocol

from ..config import TelemetrySettings
from ..event_store import resolve_project_id
from ..logging_config import get_logger
from ..models import ANONYMOUS, ErrorDetails, ErrorEvent, ErrorType
from ..redaction import Redactor
from ..telemetry import ERROR_EVENT, ITelemetryService

logger = get_logger(__name__)

MAX_STACK_CHARS = 1000
DEFAULT_ERROR_NAME = "Error"


class IErrorFunnel(Protocol):
    """Normalizes failures into one canonical error event each."""

    def capture_error(
        self,
        source: ErrorType,
        details: ErrorDetails,
        session_id: str | None = None,
    ) -> ErrorEvent | None:
        """Build and emit one ErrorEvent."""
        ...


class ErrorFunnel:
    """Builds ErrorEvents, links them to session replays and hands them to telemetry."""

    def __init__(
        self,
        telemetry: ITelemetryService,
        redactor: Redactor,
        settings: TelemetrySettings,
    ):
        self._telemetry = telemetry
        self._redactor = redactor
        self._settings = settings

    def replay_url(self, session_id: str) -> str:
        """Replay link for a session; degrades to a project-less URL."""
        project_id = resolve_project_id(self._settings)
        if project_id:
            return f"{self._settings.host}/project/{project_id}/replay/{session_id}"

        logger.warning(
            "Could not resolve project id for session replay URL",
            extra={"context": {"session_id": session_id}},
        )
        return f"{self._settings.host}/replay/{session_id}"

    def build_event(
        self,
        source: ErrorType,
        details: ErrorDetails,
        session_id: str | None = None,
    ) -> ErrorEvent:
        """Normalize details into an ErrorEvent without emitting it."""
        stack = details.error_stack[:MAX_STACK_CHARS] if details.error_stack else None
        return ErrorEvent(
            error_name=details.error_name or DEFAULT_ERROR_NAME,
            error_message=details.error_message,
            error_type=ErrorType(source),
            user_id=details.user_id or ANONYMOUS,
            timestamp=datetime.now(timezone.utc),
            error_stack=stack,
            session_id=session_id or None,
            context=self._redactor.sanitize_context(details.context) or {},
            replay_url=self.replay_url(session_id) if session_id else None,
        )

    def capture_error(
        self,
        source: ErrorType,
        details: ErrorDetails,
        session_id: str | None = None,
    ) -> ErrorEvent | None:
        """
        Emit exactly one error event for one failure.

        Details without a message are not a failure and produce nothing.

        Returns:
            The emitted ErrorEvent, or None if nothing was emitted.
        """
        if not details.error_message:
            logger.warning("Ignoring error report without a message")
            return None

        event = self.build_event(source, details, session_id)
        self._telemetry.submit(event.user_id, ERROR_EVENT, event.to_properties())

        logger.error(
            "%s error captured: %s: %s",
            event.error_type.value,
            event.error_name,
            event.error_message,
            extra={"context": {"session_id": event.session_id, "replay_url": event.replay_url}},
        )
        return event

    def capture_exception(
        self,
        exc: BaseException,
        source: ErrorType = ErrorType.BACKEND,
        context: dict[str, Any] | None = None,
        user_id: str = ANONYMOUS,
        session_id: str | None = None,
    ) -> ErrorEvent | None:
        """Shortcut for capture_error with details taken from an exception."""
        details = ErrorDetails.from_exception(exc, context=context, user_id=user_id)
        return self.capture_error(source, details, session_id)
