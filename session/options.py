"""
Functional options for building a session store.

Each ``with_*`` function returns an option that validates its input and
writes it into a StoreConfig. resolve_options applies every option, collects
every rejection, and raises them together in one ConfigurationError instead
of stopping at the first one.

Example:
    config = resolve_options(
        with_key_length(10),
        with_key_duration(timedelta(minutes=5)),
        with_auto_clear_expired_keys(),
    )
"""

import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Optional, Union

from config.settings import ConfigurationError
from errors.exceptions import (
    InvalidKeyDurationError,
    InvalidKeyGeneratorError,
    InvalidKeyLengthError,
    NilRedisClientError,
    OptionAlreadySetError,
    OptionError,
)
from session.keygen import DEFAULT_KEY_LENGTH, KeyGenerator, generate_key
from session.redis_store import DEFAULT_KEY_PREFIX

DEFAULT_KEY_TTL = timedelta(minutes=10)

# Expiry timestamps and the sweeper's wait timeout must stay representable.
MAX_KEY_TTL = min(timedelta(days=36500), timedelta(seconds=threading.TIMEOUT_MAX))


@dataclass
class StoreConfig:
    """
    Resolved configuration of a session store.

    Attributes:
        key_length: Length of generated keys. Default is 32.
        key_ttl: Lifetime of a key, also the sweep interval. Default is
            10 minutes.
        auto_clear_expired: Whether a sweeper evicts expired in-memory
            records. Default is False.
        redis_client: Redis client; when set, sessions live in Redis.
        redis_cancel_event: Optional event that cancels Redis calls.
        redis_key_prefix: Namespace for keys written to Redis.
        key_generator: Callable producing a key of a given length.
    """
    key_length: int = DEFAULT_KEY_LENGTH
    key_ttl: timedelta = field(default_factory=lambda: DEFAULT_KEY_TTL)
    auto_clear_expired: bool = False
    redis_client: Optional[Any] = None
    redis_cancel_event: Optional[threading.Event] = None
    redis_key_prefix: str = DEFAULT_KEY_PREFIX
    key_generator: KeyGenerator = generate_key
    _applied: set[str] = field(default_factory=set, repr=False, compare=False)

    def ensure_unset(self, option: str, setting: str) -> None:
        """
        Reject a second option of the same kind.

        Raises:
            OptionAlreadySetError: If the option was applied before.
        """
        if option in self._applied:
            raise OptionAlreadySetError(option, setting)

    def mark_applied(self, option: str) -> None:
        self._applied.add(option)

    @property
    def uses_redis(self) -> bool:
        return self.redis_client is not None


Option = Callable[[StoreConfig], None]


def with_redis(
    client: Any,
    cancel_event: Optional[threading.Event] = None,
    key_prefix: str = DEFAULT_KEY_PREFIX,
) -> Option:
    """
    Store sessions in Redis instead of in process memory.

    Args:
        client: A ``redis.Redis`` client.
        cancel_event: Optional event; once set, Redis calls fail fast.
        key_prefix: Namespace for the keys written by the store.
    """
    def apply(config: StoreConfig) -> None:
        config.ensure_unset("with_redis", "Redis client")
        if client is None:
            raise NilRedisClientError()
        config.mark_applied("with_redis")
        config.redis_client = client
        config.redis_cancel_event = cancel_event
        config.redis_key_prefix = key_prefix

    return apply


def with_key_length(length: int) -> Option:
    """Set the length of generated keys. The default of 32 is fine for most uses."""
    def apply(config: StoreConfig) -> None:
        config.ensure_unset("with_key_length", "custom key length")
        if isinstance(length, bool) or not isinstance(length, int) or length <= 0:
            raise InvalidKeyLengthError(length)
        config.mark_applied("with_key_length")
        config.key_length = length

    return apply


def with_key_duration(duration: Union[timedelta, int, float]) -> Option:
    """
    Set how long a key stays valid if it is never used.

    Args:
        duration: A timedelta, or a number of seconds. Must be positive
            and no longer than MAX_KEY_TTL.
    """
    def apply(config: StoreConfig) -> None:
        config.ensure_unset("with_key_duration", "custom key duration")

        if isinstance(duration, timedelta):
            ttl = duration
        elif isinstance(duration, (int, float)) and not isinstance(duration, bool):
            try:
                ttl = timedelta(seconds=duration)
            except (OverflowError, ValueError) as e:
                raise InvalidKeyDurationError(duration) from e
        else:
            raise InvalidKeyDurationError(duration)

        if ttl <= timedelta(0) or ttl > MAX_KEY_TTL:
            raise InvalidKeyDurationError(duration)
        config.mark_applied("with_key_duration")
        config.key_ttl = ttl

    return apply


def with_auto_clear_expired_keys() -> Option:
    """
    Evict expired in-memory keys in the background.

    The sweep runs once per key duration. Ignored for Redis, which expires
    keys natively.
    """
    def apply(config: StoreConfig) -> None:
        config.ensure_unset("with_auto_clear_expired_keys", "auto clear for expired keys")
        config.mark_applied("with_auto_clear_expired_keys")
        config.auto_clear_expired = True

    return apply


def with_key_generator(generator: KeyGenerator) -> Option:
    """
    Replace the default key generator.

    The generator must draw from a cryptographically secure source; keys
    are the only secret protecting a session.
    """
    def apply(config: StoreConfig) -> None:
        config.ensure_unset("with_key_generator", "custom key generator")
        if not callable(generator):
            raise InvalidKeyGeneratorError(generator)
        config.mark_applied("with_key_generator")
        config.key_generator = generator

    return apply


def resolve_options(*options: Option) -> StoreConfig:
    """
    Apply options in order and return the resolved configuration.

    Raises:
        ConfigurationError: If any option was rejected; carries every
            rejection, in order.
    """
    config = StoreConfig()
    errors: list[OptionError] = []
    for option in options:
        try:
            option(config)
        except OptionError as e:
            errors.append(e)

    if errors:
        raise ConfigurationError("Invalid session store options", errors=errors)

    return config
