"""TelemetryService: emission, local event log and background task supervision."""

import asyncio
from collections.abc import Coroutine
from datetime import datetime, timezone
from typing import Any, Protocol

from ..config import TelemetrySettings
from ..event_buffer import IEventRingBuffer
from ..logging_config import get_logger
from ..models import ANONYMOUS, RingBufferEntry
from .emitter import IEventEmitter

logger = get_logger(__name__)

WRITE_EVENT = "api_write_request"
ERROR_EVENT = "error_occurred"
IDENTIFY_EVENT = "$identify"


class ITelemetryService(Protocol):
    """Single emission point shared by the tracker and the error funnel."""

    async def track(
        self, distinct_id: str, event_name: str, properties: dict[str, Any]
    ) -> RingBufferEntry:
        """Record locally and send to the store."""
        ...

    def submit(
        self, distinct_id: str, event_name: str, properties: dict[str, Any]
    ) -> RingBufferEntry:
        """Record locally now and send in the background."""
        ...

    def spawn(self, coro: Coroutine, name: str | None = None) -> asyncio.Task:
        """Run a coroutine detached from the request."""
        ...


class TelemetryService:
    """Owns the event emitter, the ring buffer and outstanding background tasks."""

    def __init__(
        self,
        emitter: IEventEmitter,
        buffer: IEventRingBuffer,
        settings: TelemetrySettings,
    ):
        self._emitter = emitter
        self._buffer = buffer
        self._settings = settings
        self._tasks: set[asyncio.Task] = set()

    @property
    def buffer(self) -> IEventRingBuffer:
        return self._buffer

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    def _record(
        self, distinct_id: str, event_name: str, properties: dict[str, Any]
    ) -> RingBufferEntry:
        entry = RingBufferEntry(
            distinct_id=distinct_id or ANONYMOUS,
            event_name=event_name,
            properties=properties,
            timestamp=datetime.now(timezone.utc),
        )
        self._buffer.append(entry)
        return entry

    async def track(
        self, distinct_id: str, event_name: str, properties: dict[str, Any]
    ) -> RingBufferEntry:
        """Record the event locally, then send it. Never raises on send failure."""
        entry = self._record(distinct_id, event_name, properties)
        await self._emitter.emit(entry.distinct_id, event_name, properties)
        return entry

    def submit(
        self, distinct_id: str, event_name: str, properties: dict[str, Any]
    ) -> RingBufferEntry:
        """Record the event locally now and send it from a background task."""
        entry = self._record(distinct_id, event_name, properties)
        self.spawn(
            self._emitter.emit(entry.distinct_id, event_name, properties),
            name=f"emit:{event_name}",
        )
        return entry

    async def identify(self, distinct_id: str, properties: dict[str, Any]) -> bool:
        """Attach person properties to a distinct id in the store.

        Entry point for the authentication service, which identifies a user
        at sign-in; nothing inside the request pipeline calls it.
        """
        return await self._emitter.emit(
            distinct_id, IDENTIFY_EVENT, {"$set": properties}
        )

    def spawn(self, coro: Coroutine, name: str | None = None) -> asyncio.Task:
        """Run ``coro`` as a supervised background task."""
        task = asyncio.create_task(self._guard(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(self, coro: Coroutine, name: str | None) -> Any:
        try:
            return await coro
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.error("Background task %s failed", name or "telemetry", exc_info=True)
            return None

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for outstanding tasks; cancel whatever is left after ``timeout``."""
        if timeout is None:
            timeout = self._settings.shutdown_timeout

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        # Tasks may spawn follow-up tasks, so loop until the set is empty
        while self._tasks:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            await asyncio.wait(set(self._tasks), timeout=remaining)

        leftover = set(self._tasks)
        if leftover:
            logger.warning("Cancelling %s telemetry tasks at shutdown", len(leftover))
            for task in leftover:
                task.cancel()
            await asyncio.gather(*leftover, return_exceptions=True)

    def recent_events(self, limit: int | None = None) -> list[RingBufferEntry]:
        return self._buffer.recent(limit)

    def clear_event_log(self) -> None:
        self._buffer.clear()
        logger.info("Telemetry event log cleared")

    def status(self) -> dict[str, Any]:
        """Configuration status for the info endpoint."""
        return {
            "configured": self._settings.is_configured,
            "host": self._settings.host,
            "event_log_size": len(self._buffer),
            "buffer_capacity": self._settings.buffer_capacity,
        }
