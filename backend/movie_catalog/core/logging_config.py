"""
Centralized Logging Configuration for the Movie Catalog Service

Provides:
- Consistent log format across all modules
- Structured JSON logging for production (CloudWatch friendly)
- Request ID injection into log records

Usage:
    from movie_catalog.core.logging_config import setup_logging

    # At process start
    setup_logging(level="INFO", log_format="json")

    # In modules
    logger = logging.getLogger(__name__)
    logger.info("Message", extra={"movie_id": "m1"})
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime
from typing import Optional

__all__ = [
    "setup_logging",
    "set_request_id",
    "get_request_id",
    "RequestIdFilter",
    "JsonFormatter",
    "StandardFormatter",
    "LOG_LEVELS",
]

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# LogRecord attributes that are not user supplied "extra" context
_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message", "request_id",
))


def set_request_id(request_id: Optional[str]) -> None:
    """Set the current request ID for logging context"""
    request_id_var.set(request_id)


def get_request_id() -> Optional[str]:
    """Get the current request ID from logging context"""
    return request_id_var.get()


class RequestIdFilter(logging.Filter):
    """Adds request_id to every record so formatters can rely on it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


class JsonFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging in production.
    One object per line, extra fields merged at the top level.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        return json.dumps(log_data, default=str)


class StandardFormatter(logging.Formatter):
    """Text formatter with request ID for development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)8s] [%(request_id)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )


def setup_logging(
    level: Optional[str] = None,
    log_format: Optional[str] = None,
    is_production: bool = False,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format ("json" or "text")
        is_production: Picks the defaults for the two above (INFO/json, else DEBUG/text)
    """
    level = level or ("INFO" if is_production else "DEBUG")
    log_format = log_format or ("json" if is_production else "text")

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    log_level = LOG_LEVELS.get(level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(RequestIdFilter())

    if log_format.lower() == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(StandardFormatter())

    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("mangum").setLevel(logging.WARNING)

    logging.info(
        f"Logging configured: level={level}, format={log_format}, production={is_production}"
    )
