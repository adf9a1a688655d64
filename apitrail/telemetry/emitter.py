"""Ingestion client for the remote event store."""

import json
from datetime import datetime, timezone
from typing import Any, Protocol

import httpx

from ..config import TelemetrySettings
from ..logging_config import get_logger

logger = get_logger(__name__)


class IEventEmitter(Protocol):
    """Fire telemetry to the remote store. Never raises."""

    async def emit(
        self, distinct_id: str, event_name: str, properties: dict[str, Any]
    ) -> bool:
        """Send one event. Returns True if the store accepted it."""
        ...


class EventEmitter:
    """Sends events to ``{host}/capture/`` using the ingestion key."""

    def __init__(self, client: httpx.AsyncClient, settings: TelemetrySettings):
        self._client = client
        self._settings = settings

    @property
    def enabled(self) -> bool:
        return self._settings.is_configured

    async def emit(
        self, distinct_id: str, event_name: str, properties: dict[str, Any]
    ) -> bool:
        """Send one event. A missing ingestion key turns this into a no-op."""
        if not self.enabled:
            return False

        payload = {
            "api_key": self._settings.ingest_key,
            "event": event_name,
            "distinct_id": distinct_id,
            "properties": properties,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        try:
            response = await self._client.post(
                f"{self._settings.host}/capture/",
                content=json.dumps(payload, default=str),
                headers={"Content-Type": "application/json"},
                timeout=self._settings.query_timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Event store rejected %s: %s",
                event_name,
                e.response.status_code,
                extra={"context": {"event": event_name, "body": e.response.text[:200]}},
            )
            return False
        except httpx.HTTPError as e:
            logger.warning("Failed to send %s to event store: %s", event_name, e)
            return False

        logger.debug("Event sent to event store: %s", event_name)
        return True
