"""Tests for configuration."""

from pathlib import Path

import pytest

from apitrail.config import (
    DEFAULT_HOST,
    DEFAULT_SENSITIVE_FIELDS,
    PROJECT_ROOT,
    TelemetrySettings,
    resolve_db_path,
)


class TestTelemetrySettings:
    """Tests for TelemetrySettings."""

    def test_defaults(self):
        settings = TelemetrySettings()
        assert settings.host == DEFAULT_HOST
        assert settings.buffer_capacity == 100
        assert settings.max_body_bytes == 1000
        assert settings.max_response_bytes == 2000
        assert not settings.is_configured

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("TELEMETRY_INGEST_KEY", "phc_1_a")
        monkeypatch.setenv("TELEMETRY_QUERY_KEY", "phx_q")
        monkeypatch.setenv("TELEMETRY_HOST", "https://eu.store.test/")
        monkeypatch.setenv("TELEMETRY_PROJECT_ID", "7")
        monkeypatch.setenv("TELEMETRY_BUFFER_CAPACITY", "25")
        monkeypatch.setenv("TELEMETRY_SENSITIVE_FIELDS", "ssn, pin")

        settings = TelemetrySettings.from_env()

        assert settings.ingest_key == "phc_1_a"
        assert settings.query_key == "phx_q"
        assert settings.host == "https://eu.store.test"
        assert settings.project_id == "7"
        assert settings.buffer_capacity == 25
        assert settings.sensitive_fields == DEFAULT_SENSITIVE_FIELDS + ("ssn", "pin")

    def test_invalid_number_fails_fast(self, monkeypatch):
        monkeypatch.setenv("TELEMETRY_BUFFER_CAPACITY", "lots")
        with pytest.raises(ValueError):
            TelemetrySettings.from_env()

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            TelemetrySettings(buffer_capacity=0)

    def test_placeholder_key_is_unset(self):
        settings = TelemetrySettings(ingest_key="phc_your_api_key_here")
        assert settings.ingest_key is None
        assert not settings.is_configured

    def test_query_credential_prefers_query_key(self):
        settings = TelemetrySettings(ingest_key="phc_i", query_key="phx_q")
        assert settings.query_credential == ("phx_q", False)

    def test_query_credential_degraded(self):
        settings = TelemetrySettings(ingest_key="phc_i")
        assert settings.query_credential == ("phc_i", True)

    def test_query_credential_missing(self):
        assert TelemetrySettings().query_credential == (None, False)


class TestResolveDbPath:
    """Tests for resolve_db_path()."""

    def test_memory(self):
        assert resolve_db_path(":memory:") == ":memory:"

    def test_relative_path_is_anchored(self):
        assert resolve_db_path("data/test.db") == PROJECT_ROOT / "data" / "test.db"

    def test_absolute_path_kept(self, tmp_path):
        target = tmp_path / "x.db"
        assert resolve_db_path(target) == Path(target)
