"""WriteTracker: enriched tracking of mutating API calls."""

import asyncio
from dataclasses import replace
from typing import Protocol

from ..diffing import compare_calls
from ..event_store import IEventStoreClient
from ..logging_config import get_logger
from ..models import CallRecord, EnrichedWriteEvent
from ..redaction import Redactor
from ..telemetry import WRITE_EVENT, ITelemetryService

logger = get_logger(__name__)

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH"})


class IWriteTracker(Protocol):
    """Compares each write call with the previous call to the same endpoint."""

    async def track_write(self, record: CallRecord) -> EnrichedWriteEvent | None:
        """Look up history, diff, emit one enriched event."""
        ...

    def schedule(self, record: CallRecord) -> asyncio.Task | None:
        """Run track_write in the background."""
        ...


class WriteTracker:
    """Looks up the previous call, diffs it against the current one, emits once."""

    def __init__(
        self,
        event_store: IEventStoreClient,
        telemetry: ITelemetryService,
        redactor: Redactor,
    ):
        self._event_store = event_store
        self._telemetry = telemetry
        self._redactor = redactor

    @staticmethod
    def should_track(method: str) -> bool:
        """Only create/update/partial-update calls are tracked."""
        return method.upper() in MUTATING_METHODS

    def _sanitize(self, record: CallRecord) -> CallRecord:
        return replace(
            record,
            request_body=self._redactor.sanitize_body(record.request_body),
            response_body=self._redactor.sanitize_response(record.response_body),
        )

    async def _previous_call(self, current: CallRecord) -> CallRecord | None:
        try:
            previous = await self._event_store.get_previous_call(
                current.method, current.path, current.user_id
            )
        except Exception as e:
            logger.warning(
                "Previous call lookup failed for %s %s: %s",
                current.method,
                current.path,
                e,
                exc_info=True,
            )
            return None
        return self._sanitize(previous) if previous is not None else None

    async def track_write(self, record: CallRecord) -> EnrichedWriteEvent | None:
        """Look up history, diff, emit one enriched event.

        Returns the emitted event, or None for methods that are not tracked.
        """
        if not self.should_track(record.method):
            logger.debug("Skipping write tracking for %s %s", record.method, record.path)
            return None

        current = self._sanitize(replace(record, method=record.method.upper()))
        previous = await self._previous_call(current)
        changes = compare_calls(previous, current)

        event = EnrichedWriteEvent(
            current=current,
            previous=previous,
            diff=changes.diff,
            is_first_call=previous is None,
            change_summary=changes.summary,
        )

        await self._telemetry.track(current.user_id, WRITE_EVENT, event.to_properties())
        logger.info(
            "Tracked %s %s: %s",
            current.method,
            current.path,
            changes.summary,
            extra={"context": {"session_id": current.session_id}},
        )
        return event

    def schedule(self, record: CallRecord) -> asyncio.Task | None:
        """Run track_write detached from the request; errors stay inside the task."""
        if not self.should_track(record.method):
            return None
        return self._telemetry.spawn(
            self.track_write(record),
            name=f"track_write:{record.method.upper()} {record.path}",
        )
