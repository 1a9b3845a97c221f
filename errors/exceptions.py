"""
Exception classes for the single-use key session store.

This module provides the AppException base class and one subclass per
failure condition the store can raise, so callers can tell "no such
session" from "session expired" from "infrastructure failure" with a
plain ``except`` clause while still getting a structured error code.

Raw session keys are never placed in messages or details.
"""

from typing import Any, Optional

from errors.codes import ErrorCode, get_default_status_code


class AppException(Exception):
    """
    Base exception class for all session store errors.

    This exception provides structured error information including:
    - error_code: A standardized error code from the ErrorCode enum
    - message: A human-readable error message
    - status_code: The HTTP status code a web layer should return
    - details: Optional additional context (e.g., the offending option)

    Example:
        raise AppException(
            error_code=ErrorCode.INVALID_PAYLOAD,
            message="Payload is not JSON serializable",
            details={"type": "set"}
        )
    """

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None
    ):
        """
        Initialize an AppException.

        Args:
            error_code: The error code from the ErrorCode enum
            message: A human-readable error message
            status_code: The HTTP status code (defaults to the error code's default)
            details: Optional dictionary with additional error context
        """
        self.error_code = error_code
        self.message = message
        self.status_code = status_code or get_default_status_code(error_code)
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the exception to a dictionary for JSON serialization.

        Returns:
            Dictionary containing error_code, message, and details
        """
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(error_code={self.error_code.value!r}, "
            f"message={self.message!r}, status_code={self.status_code}, "
            f"details={self.details!r})"
        )


# Lookup errors

class KeyNotFoundError(AppException):
    """Raised when a key is absent, already consumed, or removed."""

    def __init__(
        self,
        message: str = "No session was found with the given key",
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(ErrorCode.KEY_NOT_FOUND, message, details=details)


class KeyExpiredError(AppException):
    """
    Raised when a key existed but its time-to-live had elapsed.

    The record is removed before this is raised, so a retry with the same
    key fails with KeyNotFoundError.
    """

    def __init__(
        self,
        message: str = "The given key has expired",
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(ErrorCode.KEY_EXPIRED, message, details=details)


# Caller errors

class NilPayloadError(AppException):
    """Raised when a session is created without a payload."""

    def __init__(
        self,
        message: str = "A session payload is required",
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(ErrorCode.NIL_PAYLOAD, message, details=details)


class InvalidPayloadError(AppException):
    """Raised when the backend cannot serialize the payload."""

    def __init__(
        self,
        message: str = "The session payload cannot be stored",
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(ErrorCode.INVALID_PAYLOAD, message, details=details)


# Infrastructure errors

class RandomSourceUnavailableError(AppException):
    """
    Raised when the OS secure randomness source cannot be read.

    This is fatal: a store must not issue keys without it.
    """

    def __init__(
        self,
        message: str = "Secure randomness source is unavailable",
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(ErrorCode.RANDOM_SOURCE_UNAVAILABLE, message, details=details)


class SessionStoreUnavailableError(AppException):
    """Raised when the external backend fails or the call was cancelled."""

    def __init__(
        self,
        message: str = "Session store unavailable",
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(ErrorCode.SESSION_STORE_UNAVAILABLE, message, details=details)


# Configuration errors

class OptionError(AppException):
    """
    Base class for a single rejected store option.

    Option errors are collected while the options are applied and raised
    together inside a ConfigurationError.

    Attributes:
        option: Name of the option function that rejected its input
    """

    def __init__(
        self,
        error_code: ErrorCode,
        option: str,
        message: str,
        details: Optional[dict[str, Any]] = None
    ):
        self.option = option
        super().__init__(error_code, message, details={"option": option, **(details or {})})


class OptionAlreadySetError(OptionError):
    """Raised when an option of the same kind is supplied twice."""

    def __init__(self, option: str, setting: str):
        super().__init__(
            ErrorCode.OPTION_ALREADY_SET,
            option,
            f"A {setting} was already registered for this session storage",
            details={"setting": setting},
        )


class NilRedisClientError(OptionError):
    """Raised when with_redis receives no client."""

    def __init__(self, option: str = "with_redis"):
        super().__init__(
            ErrorCode.NIL_REDIS_CLIENT,
            option,
            "The given Redis client is None",
        )


class InvalidKeyLengthError(OptionError):
    """Raised when the key length is not a positive integer."""

    def __init__(self, value: Any, option: str = "with_key_length"):
        super().__init__(
            ErrorCode.INVALID_KEY_LENGTH,
            option,
            f"Key length must be a positive integer, got {value!r}",
            details={"value": repr(value)},
        )


class InvalidKeyDurationError(OptionError):
    """Raised when the key time-to-live is not a positive duration."""

    def __init__(self, value: Any, option: str = "with_key_duration"):
        super().__init__(
            ErrorCode.INVALID_KEY_DURATION,
            option,
            f"Key duration must be a positive duration, got {value!r}",
            details={"value": repr(value)},
        )


class InvalidKeyGeneratorError(OptionError):
    """Raised when a custom key generator is not callable."""

    def __init__(self, value: Any, option: str = "with_key_generator"):
        super().__init__(
            ErrorCode.INVALID_KEY_GENERATOR,
            option,
            f"Key generator must be callable, got {type(value).__name__}",
        )
