"""Structured logging configuration for apitrail."""

import json
import logging
import logging.config
import logging.handlers
import os
from datetime import datetime, timezone
from pathlib import Path

from .config import DEFAULT_LOG_PATH

SERVICE_NAME = "apitrail"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as one JSON line."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Pipeline code attaches endpoint/session details via extra={"context": ...}
        if hasattr(record, "context"):
            log_data["context"] = record.context

        return json.dumps(log_data, default=str)


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    console_only: bool = False,
) -> None:
    """
    Setup structured logging for the application.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
                   Defaults to LOG_LEVEL env var or INFO.
        log_file: Path to log file. Defaults to logs/app.log.
        console_only: Skip the rotating file handler (containers, tests).
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")

    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stdout",
        },
    }

    if not console_only:
        if log_file is None:
            log_file = str(DEFAULT_LOG_PATH)
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,  # 10 MB
            "backupCount": 5,
            "formatter": "json",
            "encoding": "utf-8",
        }

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "apitrail.logging_config.JSONFormatter",
            },
        },
        "handlers": handlers,
        "root": {
            "level": log_level.upper(),
            "handlers": list(handlers),
        },
        "loggers": {
            # httpx logs every request at INFO, which would echo telemetry traffic
            "httpx": {"level": "WARNING"},
        },
    }

    logging.config.dictConfig(logging_config)


def get_logger(name: str) -> logging.Logger:
    """Module logger; handlers are attached to the root by setup_logging()."""
    return logging.getLogger(name)
