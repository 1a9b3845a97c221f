"""
Telemetry module for structured logging.

This module provides:
- JSONFormatter for structured JSON log output
- configure_logging to install it on the root logger
- log_session_event for session lifecycle audit entries
"""

from telemetry.service import (
    AUDIT_LOGGER_NAME,
    JSONFormatter,
    configure_logging,
    log_session_event,
)

__all__ = [
    "AUDIT_LOGGER_NAME",
    "JSONFormatter",
    "configure_logging",
    "log_session_event",
]
