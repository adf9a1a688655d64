"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"
LOGS_DIR = PROJECT_ROOT / "logs"
DEFAULT_DB_PATH = DATA_DIR / "apitrail.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DEFAULT_HOST = "https://app.posthog.com"
PLACEHOLDER_KEY = "phc_your_api_key_here"

DEFAULT_SENSITIVE_FIELDS = ("password", "token", "secret", "apiKey", "access_token")
DEFAULT_SENSITIVE_HEADERS = ("authorization", "cookie", "x-api-key", "x-session-id")


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _clean_key(value: str | None) -> str | None:
    if not value or value == PLACEHOLDER_KEY:
        return None
    return value


def _split_list(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _merge(defaults: tuple[str, ...], extra: tuple[str, ...]) -> tuple[str, ...]:
    merged = list(defaults)
    for item in extra:
        if item not in merged:
            merged.append(item)
    return tuple(merged)


@dataclass(frozen=True)
class TelemetrySettings:
    """Settings for the write-tracking and error-tracking pipeline."""

    ingest_key: str | None = None
    query_key: str | None = None
    host: str = DEFAULT_HOST
    project_id: str | None = None
    buffer_capacity: int = 100
    max_body_bytes: int = 1000
    max_response_bytes: int = 2000
    sensitive_fields: tuple[str, ...] = DEFAULT_SENSITIVE_FIELDS
    sensitive_headers: tuple[str, ...] = DEFAULT_SENSITIVE_HEADERS
    query_timeout: float = 5.0
    shutdown_timeout: float = 10.0

    def __post_init__(self) -> None:
        # Normalise values that may come straight from callers or the environment
        object.__setattr__(self, "ingest_key", _clean_key(self.ingest_key))
        object.__setattr__(self, "query_key", _clean_key(self.query_key))
        object.__setattr__(self, "host", (self.host or DEFAULT_HOST).rstrip("/"))
        object.__setattr__(self, "project_id", self.project_id or None)
        if self.buffer_capacity < 1:
            raise ValueError("buffer_capacity must be >= 1")
        if self.max_body_bytes < 1 or self.max_response_bytes < 1:
            raise ValueError("size thresholds must be >= 1")
        if self.query_timeout <= 0:
            raise ValueError("query_timeout must be > 0")

    @classmethod
    def from_env(cls) -> "TelemetrySettings":
        """Build settings from TELEMETRY_* environment variables."""
        return cls(
            ingest_key=os.getenv("TELEMETRY_INGEST_KEY"),
            query_key=os.getenv("TELEMETRY_QUERY_KEY"),
            host=os.getenv("TELEMETRY_HOST", DEFAULT_HOST),
            project_id=os.getenv("TELEMETRY_PROJECT_ID"),
            buffer_capacity=int(os.getenv("TELEMETRY_BUFFER_CAPACITY", "100")),
            max_body_bytes=int(os.getenv("TELEMETRY_MAX_BODY_BYTES", "1000")),
            max_response_bytes=int(os.getenv("TELEMETRY_MAX_RESPONSE_BYTES", "2000")),
            sensitive_fields=_merge(
                DEFAULT_SENSITIVE_FIELDS,
                _split_list(os.getenv("TELEMETRY_SENSITIVE_FIELDS")),
            ),
            sensitive_headers=_merge(
                DEFAULT_SENSITIVE_HEADERS,
                _split_list(os.getenv("TELEMETRY_SENSITIVE_HEADERS")),
            ),
            query_timeout=float(os.getenv("TELEMETRY_QUERY_TIMEOUT", "5.0")),
            shutdown_timeout=float(os.getenv("TELEMETRY_SHUTDOWN_TIMEOUT", "10.0")),
        )

    @property
    def is_configured(self) -> bool:
        """True when an ingestion key is available."""
        return self.ingest_key is not None

    @property
    def query_credential(self) -> tuple[str | None, bool]:
        """Return (key, degraded) for querying the event store.

        The query key carries read scope. Falling back to the ingestion key
        is flagged as degraded because most stores reject it for reads.
        """
        if self.query_key:
            return self.query_key, False
        if self.ingest_key:
            return self.ingest_key, True
        return None, False
