"""Pytest configuration and fixtures."""

import json
import re
import sys
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from apitrail.config import TelemetrySettings  # noqa: E402

STORE_HOST = "https://store.test"
_WHERE_VALUE = re.compile(r"^properties\.(\w+) = '(.*)'$")


class FakeEventStore:
    """In-process stand-in for the remote event store.

    Captured events are kept in order and served back by both query tiers,
    so a second call to an endpoint sees the first one as history.
    """

    def __init__(self):
        self.events: list[dict] = []
        self.requests: list[httpx.Request] = []
        self.query_status = 200
        self.list_status = 200
        self.query_error: Exception | None = None
        self.list_error: Exception | None = None
        self.capture_status = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/capture/":
            if self.capture_status != 200:
                return httpx.Response(self.capture_status, json={"detail": "rejected"})
            payload = json.loads(request.content)
            payload["uuid"] = f"evt-{len(self.events) + 1}"
            self.events.append(payload)
            return httpx.Response(200, json={"status": 1})

        if path.endswith("/query/"):
            if self.query_error is not None:
                raise self.query_error
            if self.query_status != 200:
                return httpx.Response(self.query_status, json={"detail": "query failed"})
            query = json.loads(request.content)["query"]
            filters = {}
            for clause in query["where"]:
                match = _WHERE_VALUE.match(clause)
                filters[match.group(1)] = match.group(2)
            found = self.latest(query["event"], filters["method"], filters["path"])
            return httpx.Response(200, json={"results": [[event] for event in found]})

        if path.endswith("/events/"):
            if self.list_error is not None:
                raise self.list_error
            if self.list_status != 200:
                return httpx.Response(self.list_status, json={"detail": "list failed"})
            params = request.url.params
            filters = {p["key"]: p["value"] for p in json.loads(params["properties"])}
            found = self.latest(params["event"], filters["method"], filters["path"])
            return httpx.Response(200, json={"results": found})

        return httpx.Response(404, json={"detail": "not found"})

    def latest(self, event_name: str, method: str, path: str) -> list[dict]:
        for event in reversed(self.events):
            props = event["properties"]
            if (
                event["event"] == event_name
                and props.get("method") == method
                and props.get("path") == path
            ):
                return [event]
        return []

    def named(self, event_name: str) -> list[dict]:
        return [event for event in self.events if event["event"] == event_name]

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture
def settings():
    """Fully configured settings pointing at the fake store."""
    return TelemetrySettings(
        ingest_key="phc_ingest_key",
        query_key="phx_query_key",
        host=STORE_HOST,
        project_id="42",
        buffer_capacity=10,
    )


@pytest.fixture
def fake_store():
    return FakeEventStore()


@pytest_asyncio.fixture
async def http_client(fake_store):
    """HTTP client wired to the fake store."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_store.handler))
    yield client
    await client.aclose()


@pytest.fixture
def redactor(settings):
    from apitrail.redaction import Redactor

    return Redactor.from_settings(settings)


@pytest_asyncio.fixture
async def telemetry(http_client, settings):
    """Create TelemetryService backed by the fake store."""
    from apitrail.event_buffer import EventRingBuffer
    from apitrail.telemetry import EventEmitter, TelemetryService

    service = TelemetryService(
        emitter=EventEmitter(http_client, settings),
        buffer=EventRingBuffer(settings.buffer_capacity),
        settings=settings,
    )
    yield service
    await service.drain(timeout=1.0)


@pytest.fixture
def event_store(http_client, settings):
    from apitrail.event_store import EventStoreClient

    return EventStoreClient(http_client, settings)


@pytest.fixture
def write_tracker(event_store, telemetry, redactor):
    """Create WriteTracker with real collaborators."""
    from apitrail.tracker import WriteTracker

    return WriteTracker(event_store=event_store, telemetry=telemetry, redactor=redactor)


@pytest.fixture
def error_funnel(telemetry, redactor, settings):
    from apitrail.errors import ErrorFunnel

    return ErrorFunnel(telemetry=telemetry, redactor=redactor, settings=settings)


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from apitrail.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest_asyncio.fixture
async def application(settings, fake_store):
    """Started Application using in-memory storage and the fake store."""
    from apitrail.app import Application

    app = Application(
        settings=settings,
        db_path=":memory:",
        transport=httpx.MockTransport(fake_store.handler),
    )
    await app.start()
    yield app
    await app.stop()


@pytest.fixture
def fastapi_app(application):
    from apitrail.api import create_fastapi_app

    return create_fastapi_app(application)


@pytest_asyncio.fixture
async def api_client(fastapi_app):
    """HTTP client calling the FastAPI app in-process."""
    transport = httpx.ASGITransport(app=fastapi_app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
