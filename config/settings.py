"""
Configuration management for the session store.

This module provides environment-driven configuration using Pydantic
settings. Every field can be set through a ``SUK_``-prefixed environment
variable or a ``.env`` file, e.g. ``SUK_KEY_LENGTH=48`` or
``SUK_REDIS_URL=redis://localhost:6379/0``.

It also defines ConfigurationError, the aggregate error raised both when
settings fail to load and when store options are rejected.
"""

from typing import Any, List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from errors.codes import ErrorCode


class Settings(BaseSettings):
    """
    Session store settings loaded from environment variables.

    Defaults match the defaults of the store options, so an empty
    environment yields an in-memory store with 32-character keys valid for
    10 minutes and no background sweep.
    """

    key_length: int = Field(
        default=32,
        ge=1,
        description="Length of generated session keys"
    )
    key_ttl_seconds: float = Field(
        default=600,
        gt=0,
        description="Seconds a key stays valid if unused; also the sweep interval"
    )
    auto_clear_expired_keys: bool = Field(
        default=False,
        description="Evict expired in-memory keys in a background thread"
    )

    # Redis Configuration
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL; sessions are kept in memory when unset"
    )
    redis_key_prefix: str = Field(
        default="suk:",
        description="Namespace prepended to every Redis key"
    )

    # Observability Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_prefix="SUK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate that redis_url uses a Redis scheme when provided."""
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("redis_url must start with redis://, rediss:// or unix://")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.strip().upper()
        if v not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(valid_levels))}")
        return v


class ConfigurationError(Exception):
    """
    Exception raised when configuration validation fails.

    Collects every problem found rather than only the first one. Store
    option rejections are kept as exception objects in ``errors`` so
    callers can match on their types.
    """

    error_code = ErrorCode.CONFIGURATION_ERROR

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None,
                 invalid_fields: Optional[dict] = None, errors: Optional[List[Any]] = None):
        self.message = message
        self.missing_fields = missing_fields or []
        self.invalid_fields = dict(invalid_fields or {})
        self.errors = list(errors or [])
        for index, error in enumerate(self.errors):
            name = getattr(error, "option", "option")
            self.invalid_fields[f"{name}[{index}]"] = str(error)
        super().__init__(self.format_error_message())

    def format_error_message(self) -> str:
        """Format a descriptive error message listing all issues."""
        parts = [self.message]

        if self.missing_fields:
            parts.append(f"\nMissing required fields: {', '.join(self.missing_fields)}")

        if self.invalid_fields:
            invalid_parts = [f"  - {field}: {error}" for field, error in self.invalid_fields.items()]
            parts.append("\nInvalid field values:\n" + "\n".join(invalid_parts))

        return "".join(parts)


def load_settings(**overrides: Any) -> Settings:
    """
    Load and validate settings from the environment.

    Args:
        **overrides: Field values that take precedence over the environment.

    Returns:
        Settings: Validated settings.

    Raises:
        ConfigurationError: If any setting is missing or invalid.
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        missing_fields = []
        invalid_fields = {}

        for error in e.errors():
            field_name = '.'.join(str(loc) for loc in error.get('loc', []))
            if error.get('type') == 'missing':
                missing_fields.append(field_name)
            else:
                invalid_fields[field_name] = error.get('msg', str(error))

        raise ConfigurationError(
            "Failed to load session store configuration",
            missing_fields=missing_fields,
            invalid_fields=invalid_fields
        ) from e


# Global settings cache
_settings_cache: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the settings singleton.

    Settings are loaded once and cached for subsequent calls.

    Raises:
        ConfigurationError: If any setting is missing or invalid.
    """
    global _settings_cache

    if _settings_cache is None:
        _settings_cache = load_settings()

    return _settings_cache


def clear_settings_cache() -> None:
    """
    Clear the settings cache.

    This is primarily useful for testing to allow reloading settings
    with different environment variables.
    """
    global _settings_cache
    _settings_cache = None
