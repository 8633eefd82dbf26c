"""Logging configuration.

Two output styles, selected by ``LOG_FORMAT``:

- ``console``: human-readable lines for local development
- ``json``: one JSON object per line, for log aggregation
"""

import json
import logging
import logging.config
from datetime import datetime, timezone

from hrms.config import settings

_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Render a record as a single JSON line, including ``extra=`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def get_logging_config(level: str, log_format: str) -> dict:
    """Build a ``logging.config.dictConfig`` mapping."""
    level = level.upper()
    if log_format == "json":
        formatter = {"()": "hrms.logging_config.JsonFormatter"}
    else:
        formatter = {
            "format": "[{asctime}] {levelname} {name} {message}",
            "style": "{",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "hrms": {"handlers": ["console"], "level": level, "propagate": False},
            "uvicorn.error": {"level": "INFO"},
            "sqlalchemy.engine": {"level": "WARNING"},
        },
        "root": {"handlers": ["console"], "level": "WARNING"},
    }


def configure_logging() -> None:
    """Apply the logging configuration derived from settings."""
    logging.config.dictConfig(
        get_logging_config(settings.LOG_LEVEL, settings.LOG_FORMAT),
    )
