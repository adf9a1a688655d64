"""Project (namespace) resolution for the event store."""

import re

from ..config import TelemetrySettings

# Project keys may embed the numeric project id: phc_<id>_<random>
_KEY_PATTERN = re.compile(r"^phc_([^_]+)")


def extract_project_id(key: str | None) -> str | None:
    """Return the project id embedded in a key, only if it is strictly numeric."""
    if not key:
        return None
    match = _KEY_PATTERN.match(key)
    if match and match.group(1).isdigit():
        return match.group(1)
    return None


def resolve_project_id(settings: TelemetrySettings) -> str | None:
    """Explicit configuration first, then the query credential, then the ingest key."""
    if settings.project_id:
        return settings.project_id

    query_key, _ = settings.query_credential
    for key in (query_key, settings.ingest_key):
        project_id = extract_project_id(key)
        if project_id:
            return project_id
    return None
