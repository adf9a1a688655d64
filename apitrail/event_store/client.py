"""Client for querying call history from the remote event store."""

from collections.abc import Sequence
from typing import Protocol

import httpx

from ..config import TelemetrySettings
from ..logging_config import get_logger
from ..models import CallRecord
from .project import resolve_project_id
from .tiers import (
    EventListTier,
    IQueryTier,
    QueryContext,
    RetrievalOutcome,
    StructuredQueryTier,
    TierResult,
)

logger = get_logger(__name__)


class IEventStoreClient(Protocol):
    """Retrieval of the most recent prior call to an endpoint."""

    async def get_previous_call(
        self, method: str, path: str, user_id: str | None = None
    ) -> CallRecord | None:
        """Latest recorded call for (method, path), or None if unavailable."""
        ...


class EventStoreClient:
    """Queries the store through a chain of tiers; never raises."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: TelemetrySettings,
        tiers: Sequence[IQueryTier] | None = None,
    ):
        self._client = client
        self._settings = settings
        self._tiers: list[IQueryTier] = list(
            tiers if tiers is not None else (StructuredQueryTier(), EventListTier())
        )
        self._degraded_warned = False

    def resolve_project_id(self) -> str | None:
        """Resolve the store project; warn instead of guessing when it is unknown."""
        project_id = resolve_project_id(self._settings)
        if project_id is None:
            logger.warning(
                "Event store project id not found; set TELEMETRY_PROJECT_ID"
            )
        return project_id

    async def get_previous_call(
        self, method: str, path: str, user_id: str | None = None
    ) -> CallRecord | None:
        """Latest recorded call for (method, path), or None if unavailable."""
        result = await self.retrieve(method, path, user_id)
        return result.record

    async def retrieve(
        self, method: str, path: str, user_id: str | None = None
    ) -> TierResult:
        """Run the tier chain and report the outcome alongside the record."""
        api_key, degraded = self._settings.query_credential
        if api_key is None:
            logger.warning("Event store key not configured; cannot query previous calls")
            return TierResult(RetrievalOutcome.NOT_CONFIGURED)

        if degraded and not self._degraded_warned:
            logger.warning(
                "Querying the event store with the ingestion key; "
                "reads usually need TELEMETRY_QUERY_KEY"
            )
            self._degraded_warned = True

        project_id = self.resolve_project_id()
        if project_id is None:
            return TierResult(RetrievalOutcome.NO_PROJECT)

        ctx = QueryContext(
            host=self._settings.host,
            project_id=project_id,
            api_key=api_key,
            method=method.upper(),
            path=path,
            user_id=user_id,
            timeout=self._settings.query_timeout,
        )

        result = TierResult(RetrievalOutcome.UNREACHABLE)
        for tier in self._tiers:
            try:
                result = await tier.fetch(self._client, ctx)
            except Exception:
                logger.error("Query tier %s raised", tier.name, exc_info=True)
                result = TierResult(RetrievalOutcome.BAD_RESPONSE, tier=tier.name)

            if result.outcome.conclusive:
                break
            logger.warning(
                "Query tier %s failed (%s), falling back",
                tier.name,
                result.outcome.value,
            )

        context = {"method": ctx.method, "path": path, "outcome": result.outcome.value}
        if result.outcome is RetrievalOutcome.FOUND:
            logger.info("Found previous call for %s %s", ctx.method, path, extra={"context": context})
        else:
            logger.warning(
                "No previous call available for %s %s",
                ctx.method,
                path,
                extra={"context": context},
            )
        return result
