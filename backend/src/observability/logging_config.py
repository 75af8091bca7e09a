"""Logging setup: JSON lines in production, readable text in development.

Every record carries the current request id. Workflow code passes
identifiers through ``extra=`` (submission_id, document_id, channel, ...)
so one submission can be followed through upload, review and notification.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from .request_id import get_request_id

# Attributes lifted from ``extra=`` into the JSON payload
_EXTRA_FIELDS = (
    "user_id",
    "submission_id",
    "document_id",
    "action",
    "channel",
    "status_code",
    "duration_ms",
)

_TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s"

# Libraries that are chatty at INFO
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "botocore", "urllib3", "celery.app.trace")


class RequestIDFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", "no-request-id"),
            "message": record.getMessage(),
        }

        for name in _EXTRA_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value if isinstance(value, (int, float, bool)) else str(value)

        if record.exc_info:
            entry["error"] = str(record.exc_info[1])
            entry["traceback"] = self.formatException(record.exc_info)

        return json.dumps(entry)


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines when True, plain text otherwise
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(_TEXT_FORMAT))
    handler.addFilter(RequestIDFilter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
