"""Structured JSON logging with session_key support."""
from __future__ import annotations

import contextvars
import json
import logging
from datetime import datetime, timezone
from typing import Any

# Correlation token of the attempt currently being executed
session_key_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "session_key", default=""
)


class JSONFormatter(logging.Formatter):
    """Custom JSON log formatter."""

    def __init__(self, service_name: str = "unknown") -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service_name": self.service_name,
            "session_key": session_key_var.get(""),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])
        return json.dumps(log_entry)


def setup_logging(
    service_name: str,
    level: str = "INFO",
    logger_name: str | None = None,
) -> logging.Logger:
    """Configure structured JSON logging.

    Args:
        service_name: Name stamped on every log entry.
        level: Log level string (e.g. "INFO", "DEBUG").
        logger_name: Logger to configure.  Defaults to *service_name*;
            pass ``"src"`` to capture every module logger in the project.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(logger_name or service_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter(service_name=service_name))
    logger.addHandler(handler)

    return logger


def bind_session_key(session_key: str | None) -> None:
    """Stamp *session_key* on log records emitted from the current context."""
    session_key_var.set(session_key or "")
