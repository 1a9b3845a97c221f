"""
Error code catalog for the single-use key session store.

This module defines all error codes raised by the store, covering lookup
failures, caller errors, configuration errors, and infrastructure
failures. Each code carries a default HTTP status so that a web layer can
translate store failures into responses without the store knowing about
HTTP.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """
    Enumeration of all error codes used by the session store.

    Each error code maps to a specific HTTP status code and error category:
    - Lookup errors (4xx): The presented key is unusable
    - Caller errors (4xx): Invalid payloads handed to the store
    - Configuration errors (5xx): Invalid or conflicting store options
    - Infrastructure errors (5xx): Randomness source or backend failures
    """

    # Lookup errors (4xx)
    KEY_NOT_FOUND = "KEY_NOT_FOUND"
    """Key is absent, already consumed, or removed (HTTP 404)"""

    KEY_EXPIRED = "KEY_EXPIRED"
    """Key existed but its time-to-live has elapsed (HTTP 401)"""

    # Caller errors (4xx)
    NIL_PAYLOAD = "NIL_PAYLOAD"
    """No payload was given for a new session (HTTP 400)"""

    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    """Payload cannot be stored by the selected backend (HTTP 400)"""

    # Configuration errors (5xx)
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """One or more store options were rejected (HTTP 500)"""

    OPTION_ALREADY_SET = "OPTION_ALREADY_SET"
    """The same kind of option was supplied twice (HTTP 500)"""

    NIL_REDIS_CLIENT = "NIL_REDIS_CLIENT"
    """A Redis backend was requested without a client (HTTP 500)"""

    INVALID_KEY_LENGTH = "INVALID_KEY_LENGTH"
    """Key length is zero, negative, or not an integer (HTTP 500)"""

    INVALID_KEY_DURATION = "INVALID_KEY_DURATION"
    """Key time-to-live is not a positive duration (HTTP 500)"""

    INVALID_KEY_GENERATOR = "INVALID_KEY_GENERATOR"
    """Custom key generator is not callable (HTTP 500)"""

    # Infrastructure errors (5xx)
    RANDOM_SOURCE_UNAVAILABLE = "RANDOM_SOURCE_UNAVAILABLE"
    """The OS secure randomness source cannot be read (HTTP 500)"""

    SESSION_STORE_UNAVAILABLE = "SESSION_STORE_UNAVAILABLE"
    """Redis unavailable or the operation was cancelled (HTTP 503)"""


# Mapping of error codes to their default HTTP status codes
ERROR_CODE_STATUS_MAP: dict[ErrorCode, int] = {
    ErrorCode.KEY_NOT_FOUND: 404,
    ErrorCode.KEY_EXPIRED: 401,
    ErrorCode.NIL_PAYLOAD: 400,
    ErrorCode.INVALID_PAYLOAD: 400,
    ErrorCode.CONFIGURATION_ERROR: 500,
    ErrorCode.OPTION_ALREADY_SET: 500,
    ErrorCode.NIL_REDIS_CLIENT: 500,
    ErrorCode.INVALID_KEY_LENGTH: 500,
    ErrorCode.INVALID_KEY_DURATION: 500,
    ErrorCode.INVALID_KEY_GENERATOR: 500,
    ErrorCode.RANDOM_SOURCE_UNAVAILABLE: 500,
    ErrorCode.SESSION_STORE_UNAVAILABLE: 503,
}


def get_default_status_code(error_code: ErrorCode) -> int:
    """
    Get the default HTTP status code for an error code.

    Args:
        error_code: The error code to look up

    Returns:
        The default HTTP status code for the error code
    """
    return ERROR_CODE_STATUS_MAP.get(error_code, 500)
