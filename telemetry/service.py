"""
Telemetry helpers for structured logging and session auditing.

This module provides structured JSON logging and a single entry point for
session lifecycle audit events. Raw session keys are secrets and are never
passed to the logger.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

AUDIT_LOGGER_NAME = "session.audit"

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class JSONFormatter(logging.Formatter):
    """
    Custom log formatter that outputs logs in JSON format.

    Each log entry contains:
    - timestamp: ISO 8601 formatted UTC timestamp
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - message: The log message
    - logger: Name of the logger that produced the entry

    Additional fields can be included via the 'extra_data' attribute
    on the log record.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format a log record as a JSON string.

        Args:
            record: The log record to format

        Returns:
            JSON-formatted string containing the log entry
        """
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        # Add module and function information for debugging
        if record.module:
            log_data["module"] = record.module
        if record.funcName and record.funcName != "<module>":
            log_data["function"] = record.funcName
        if record.lineno:
            log_data["line"] = record.lineno

        # Include any extra data attached to the record
        if hasattr(record, "extra_data") and record.extra_data:
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_trace"] = record.stack_info

        return json.dumps(log_data, default=str)


def configure_logging(log_level: str = "INFO") -> logging.Logger:
    """
    Configure structured JSON logging on the root logger.

    Existing root handlers are replaced by a single stdout handler using
    JSONFormatter, so calling this twice does not duplicate output.

    Args:
        log_level: Name of the logging level. Unknown names fall back to INFO.

    Returns:
        The root logger
    """
    level_name = log_level.strip().upper()
    if level_name not in VALID_LOG_LEVELS:
        level_name = "INFO"
    level = getattr(logging, level_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicate logs
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(level)
    stdout_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(stdout_handler)

    logging.getLogger(__name__).debug(
        "Structured logging configured",
        extra={"extra_data": {"log_level": level_name}},
    )
    return root_logger


def log_session_event(event: str, level: int = logging.INFO, **details: Any) -> None:
    """
    Log a session lifecycle audit event.

    Expired and missing keys are reported as distinct events so that an
    auditor can tell stale tokens from forged or replayed ones.

    Args:
        event: Event name (e.g., "session.rotated", "session.expired")
        level: Logging level for the entry
        **details: Additional context; must not contain raw keys
    """
    audit_data = {"audit_event": True, "event_type": event}
    if details:
        audit_data.update(details)

    logging.getLogger(AUDIT_LOGGER_NAME).log(
        level,
        f"Session event: {event}",
        extra={"extra_data": audit_data},
    )
