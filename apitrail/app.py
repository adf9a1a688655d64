"""Application bootstrap and lifecycle management."""

import os
from typing import Protocol

import httpx

from .config import TelemetrySettings, resolve_db_path
from .errors import ErrorFunnel
from .event_buffer import EventRingBuffer
from .event_store import EventStoreClient
from .logging_config import get_logger
from .redaction import Redactor
from .storage import IStorage, Storage
from .telemetry import EventEmitter, TelemetryService
from .tracker import WriteTracker

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset data between test runs."""
        ...


class Application:
    """Owns every pipeline component; one instance per process."""

    def __init__(
        self,
        settings: TelemetrySettings | None = None,
        db_path: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings or TelemetrySettings.from_env()
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)
        self._transport = transport

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._http: httpx.AsyncClient | None = None
        self._redactor: Redactor | None = None
        self._telemetry: TelemetryService | None = None
        self._event_store: EventStoreClient | None = None
        self._tracker: WriteTracker | None = None
        self._error_funnel: ErrorFunnel | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. Shared HTTP client for the event store
        self._http = httpx.AsyncClient(
            transport=self._transport,
            timeout=self._settings.query_timeout,
        )

        # 3. Redactor (pure, settings only)
        self._redactor = Redactor.from_settings(self._settings)

        # 4. Telemetry (emitter + ring buffer)
        self._telemetry = TelemetryService(
            emitter=EventEmitter(self._http, self._settings),
            buffer=EventRingBuffer(self._settings.buffer_capacity),
            settings=self._settings,
        )
        if self._settings.is_configured:
            logger.info("Telemetry initialized for %s", self._settings.host)
        else:
            logger.warning(
                "TELEMETRY_INGEST_KEY not configured; events are kept locally only"
            )

        # 5. EventStoreClient (depends on HTTP client)
        self._event_store = EventStoreClient(self._http, self._settings)

        # 6. WriteTracker (depends on EventStoreClient + Telemetry + Redactor)
        self._tracker = WriteTracker(
            event_store=self._event_store,
            telemetry=self._telemetry,
            redactor=self._redactor,
        )

        # 7. ErrorFunnel (depends on Telemetry + Redactor)
        self._error_funnel = ErrorFunnel(
            telemetry=self._telemetry,
            redactor=self._redactor,
            settings=self._settings,
        )
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._telemetry:
            await self._telemetry.drain()
            logger.info("Telemetry drained")
        if self._http:
            await self._http.aclose()
            self._http = None
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Reset data between test runs."""
        if self._telemetry:
            await self._telemetry.drain()
            self._telemetry.clear_event_log()
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")
        logger.info("Reset complete")

    @property
    def settings(self) -> TelemetrySettings:
        return self._settings

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def redactor(self) -> Redactor:
        """Get redactor instance."""
        if not self._redactor:
            raise RuntimeError("Application not started")
        return self._redactor

    @property
    def telemetry(self) -> TelemetryService:
        """Get telemetry service instance."""
        if not self._telemetry:
            raise RuntimeError("Application not started")
        return self._telemetry

    @property
    def event_store(self) -> EventStoreClient:
        """Get event store client instance."""
        if not self._event_store:
            raise RuntimeError("Application not started")
        return self._event_store

    @property
    def tracker(self) -> WriteTracker:
        """Get write tracker instance."""
        if not self._tracker:
            raise RuntimeError("Application not started")
        return self._tracker

    @property
    def error_funnel(self) -> ErrorFunnel:
        """Get error funnel instance."""
        if not self._error_funnel:
            raise RuntimeError("Application not started")
        return self._error_funnel
