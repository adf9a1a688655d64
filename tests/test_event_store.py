"""Tests for EventStoreClient and its query tiers."""

import json
import logging

import httpx
import pytest

from apitrail.config import TelemetrySettings
from apitrail.event_store import (
    EventListTier,
    EventStoreClient,
    QueryContext,
    RetrievalOutcome,
    StructuredQueryTier,
    extract_project_id,
    parse_call_record,
    resolve_project_id,
)
from apitrail.telemetry import WRITE_EVENT


def stored_event(fake_store, method="POST", path="/api/items", **properties):
    props = {
        "method": method,
        "path": path,
        "url": f"http://testserver{path}",
        "status_code": 201,
        "duration_ms": 4.2,
        "timestamp": "2024-05-01T10:00:00+00:00",
        "request_body": {"name": "Old Item"},
        "response_body": {"id": 1},
    }
    props.update(properties)
    event = {
        "uuid": f"evt-{len(fake_store.events) + 1}",
        "event": WRITE_EVENT,
        "distinct_id": "u1",
        "properties": props,
    }
    fake_store.events.append(event)
    return event


class TestProjectResolution:
    """Tests for project id resolution."""

    @pytest.mark.parametrize(
        "key,expected",
        [
            ("phc_12345_abcdef", "12345"),
            ("phc_12345", "12345"),
            ("phc_abc123_def", None),
            ("phx_12345_abc", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract_project_id(self, key, expected):
        assert extract_project_id(key) == expected

    def test_explicit_project_wins(self):
        settings = TelemetrySettings(ingest_key="phc_999_x", project_id="42")
        assert resolve_project_id(settings) == "42"

    def test_query_key_before_ingest_key(self):
        settings = TelemetrySettings(ingest_key="phc_111_x", query_key="phc_222_y")
        assert resolve_project_id(settings) == "222"

    def test_falls_back_to_ingest_key(self):
        settings = TelemetrySettings(ingest_key="phc_111_x", query_key="phx_personal")
        assert resolve_project_id(settings) == "111"

    def test_non_numeric_is_never_guessed(self):
        settings = TelemetrySettings(ingest_key="phc_abcdef")
        assert resolve_project_id(settings) is None


class TestParseCallRecord:
    """Tests for parse_call_record()."""

    def test_dict_event(self):
        record = parse_call_record(
            {
                "uuid": "e1",
                "distinct_id": "u9",
                "properties": {
                    "method": "PUT",
                    "path": "/api/items/{item_id}",
                    "status_code": 200,
                    "duration_ms": 1.5,
                    "timestamp": "2024-05-01T10:00:00Z",
                    "request_body": {"name": "a"},
                },
            },
            "PUT",
            "/api/items/{item_id}",
        )
        assert record.method == "PUT"
        assert record.status_code == 200
        assert record.user_id == "u9"
        assert record.event_id == "e1"
        assert record.request_body == {"name": "a"}
        assert record.timestamp.tzinfo is not None

    def test_row_with_json_string(self):
        row = [json.dumps({"uuid": "e2", "properties": json.dumps({"method": "POST"})})]
        record = parse_call_record(row, "POST", "/api/items")
        assert record.event_id == "e2"
        assert record.path == "/api/items"

    def test_unreadable_event(self):
        assert parse_call_record(42, "POST", "/x") is None
        assert parse_call_record([], "POST", "/x") is None


class TestStructuredQueryTier:
    """Tests for the structured query tier."""

    def test_query_body(self):
        ctx = QueryContext(
            host="https://store.test",
            project_id="42",
            api_key="k",
            method="POST",
            path="/api/it'ems",
        )
        query = StructuredQueryTier().build_query(ctx)["query"]
        assert query["kind"] == "EventsQuery"
        assert query["event"] == WRITE_EVENT
        assert query["where"] == [
            "properties.method = 'POST'",
            "properties.path = '/api/it\\'ems'",
        ]
        assert query["orderBy"] == ["timestamp DESC"]
        assert query["limit"] == 1


class TestEventListTier:
    """Tests for the event list tier."""

    def test_params_include_distinct_id_for_known_user(self):
        ctx = QueryContext("https://s", "42", "k", "POST", "/p", user_id="u1")
        params = EventListTier().build_params(ctx)
        assert params["distinct_id"] == "u1"
        assert params["limit"] == "1"
        assert json.loads(params["properties"]) == [
            {"key": "method", "value": "POST", "operator": "exact"},
            {"key": "path", "value": "/p", "operator": "exact"},
        ]

    def test_params_skip_anonymous(self):
        ctx = QueryContext("https://s", "42", "k", "POST", "/p", user_id="anonymous")
        assert "distinct_id" not in EventListTier().build_params(ctx)


class TestEventStoreClient:
    """Tests for EventStoreClient.get_previous_call()."""

    async def test_found_by_structured_query(self, event_store, fake_store):
        stored_event(fake_store)

        result = await event_store.retrieve("post", "/api/items")

        assert result.outcome is RetrievalOutcome.FOUND
        assert result.tier == "structured_query"
        assert result.record.request_body == {"name": "Old Item"}
        assert result.record.event_id == "evt-1"
        request = fake_store.requests[0]
        assert request.url.path == "/api/projects/42/query/"
        assert request.headers["authorization"] == "Bearer phx_query_key"

    async def test_not_found_does_not_fall_back(self, event_store, fake_store):
        """Test that an empty successful answer ends the chain."""
        assert await event_store.get_previous_call("POST", "/api/items") is None
        assert fake_store.paths() == ["/api/projects/42/query/"]

    @pytest.mark.parametrize("status", [400, 401, 403, 500])
    async def test_falls_back_to_event_list(self, event_store, fake_store, status):
        stored_event(fake_store)
        fake_store.query_status = status

        result = await event_store.retrieve("POST", "/api/items", "u1")

        assert result.outcome is RetrievalOutcome.FOUND
        assert result.tier == "event_list"
        assert fake_store.paths() == [
            "/api/projects/42/query/",
            "/api/projects/42/events/",
        ]

    async def test_malformed_json_falls_back(self, http_client, settings, fake_store):
        stored_event(fake_store)

        def handler(request):
            if request.url.path.endswith("/query/"):
                return httpx.Response(200, content=b"not json")
            return fake_store.handler(request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await EventStoreClient(client, settings).retrieve("POST", "/api/items")
        assert result.outcome is RetrievalOutcome.FOUND
        assert result.tier == "event_list"

    async def test_both_tiers_fail(self, event_store, fake_store):
        fake_store.query_status = 500
        fake_store.list_status = 502

        result = await event_store.retrieve("POST", "/api/items")

        assert result.outcome is RetrievalOutcome.BAD_RESPONSE
        assert result.record is None

    async def test_unreachable_falls_back(self, event_store, fake_store):
        stored_event(fake_store)
        fake_store.query_error = httpx.ConnectError("refused")

        result = await event_store.retrieve("POST", "/api/items")
        assert result.tier == "event_list"
        assert result.outcome is RetrievalOutcome.FOUND

    async def test_timeout_ends_chain(self, event_store, fake_store, caplog):
        """Test that a timeout is not retried and not followed by tier B."""
        stored_event(fake_store)
        fake_store.query_error = httpx.ReadTimeout("slow")

        with caplog.at_level(logging.WARNING):
            result = await event_store.retrieve("POST", "/api/items")

        assert result.outcome is RetrievalOutcome.TIMEOUT
        assert result.record is None
        assert fake_store.paths() == ["/api/projects/42/query/"]
        assert "timed out" in caplog.text

    async def test_not_configured(self, http_client, fake_store):
        client = EventStoreClient(http_client, TelemetrySettings())
        result = await client.retrieve("POST", "/api/items")
        assert result.outcome is RetrievalOutcome.NOT_CONFIGURED
        assert fake_store.requests == []

    async def test_no_project_skips_query(self, http_client, fake_store, caplog):
        settings = TelemetrySettings(ingest_key="phc_ingest", query_key="phx_query")
        client = EventStoreClient(http_client, settings)

        with caplog.at_level(logging.WARNING):
            result = await client.retrieve("POST", "/api/items")

        assert result.outcome is RetrievalOutcome.NO_PROJECT
        assert fake_store.requests == []
        assert "TELEMETRY_PROJECT_ID" in caplog.text

    async def test_degraded_credential_warns_once(self, http_client, fake_store, caplog):
        settings = TelemetrySettings(ingest_key="phc_42_ingest")
        client = EventStoreClient(http_client, settings)

        with caplog.at_level(logging.WARNING):
            await client.retrieve("POST", "/api/items")
            await client.retrieve("POST", "/api/items")

        warnings = [r for r in caplog.records if "ingestion key" in r.getMessage()]
        assert len(warnings) == 1
        assert fake_store.requests[0].headers["authorization"] == "Bearer phc_42_ingest"
        assert fake_store.requests[0].url.path == "/api/projects/42/query/"

    async def test_raising_tier_is_contained(self, http_client, settings):
        class BrokenTier:
            name = "broken"

            async def fetch(self, client, ctx):
                raise RuntimeError("bug")

        client = EventStoreClient(http_client, settings, tiers=[BrokenTier()])
        assert await client.get_previous_call("POST", "/api/items") is None
