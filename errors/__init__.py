"""
Error handling module for the session store.

This module provides structured error handling with:
- ErrorCode enum for standardized error codes
- AppException class and one subclass per failure condition
- A default HTTP status per error code for web integrations
"""

from errors.codes import ErrorCode, get_default_status_code
from errors.exceptions import (
    AppException,
    InvalidKeyDurationError,
    InvalidKeyGeneratorError,
    InvalidKeyLengthError,
    InvalidPayloadError,
    KeyExpiredError,
    KeyNotFoundError,
    NilPayloadError,
    NilRedisClientError,
    OptionAlreadySetError,
    OptionError,
    RandomSourceUnavailableError,
    SessionStoreUnavailableError,
)

__all__ = [
    "ErrorCode",
    "get_default_status_code",
    "AppException",
    # Lookup errors
    "KeyNotFoundError",
    "KeyExpiredError",
    # Caller errors
    "NilPayloadError",
    "InvalidPayloadError",
    # Infrastructure errors
    "RandomSourceUnavailableError",
    "SessionStoreUnavailableError",
    # Configuration errors
    "OptionError",
    "OptionAlreadySetError",
    "NilRedisClientError",
    "InvalidKeyLengthError",
    "InvalidKeyDurationError",
    "InvalidKeyGeneratorError",
]
