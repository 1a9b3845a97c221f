"""
Single-use key session store.

SessionStore is the facade applications use. It hands out a key for a
payload, and every successful read of that key invalidates it and returns
the payload with a replacement key. Keys also expire after a configurable
duration even if never read.

Example:
    store = SessionStore(
        with_key_length(10),
        with_key_duration(timedelta(minutes=5)),
        with_auto_clear_expired_keys(),
    )
    key = store.set({"user_id": 42})
    payload, key = store.get(key)
    store.remove(key)
    store.destroy()
"""

import logging
import threading
from typing import Any, Optional

from errors.exceptions import KeyExpiredError, KeyNotFoundError
from session.backend import SessionBackend
from session.keygen import assert_random_source_available
from session.memory_store import InMemorySessionBackend
from session.options import (
    Option,
    StoreConfig,
    resolve_options,
    with_auto_clear_expired_keys,
    with_key_duration,
    with_key_length,
    with_redis,
)
from session.redis_store import RedisSessionBackend
from session.sweeper import ExpiredKeySweeper
from telemetry.service import log_session_event

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Facade over one session backend.

    A single store-wide lock serializes set, get, remove, clear_expired and
    clear, so operations on one store are totally ordered. The sweeper, when
    enabled, goes through the same lock.

    Backend selection:
    - Redis when ``with_redis`` was given (native TTL, no sweeper)
    - In-memory otherwise (sweeper when ``with_auto_clear_expired_keys``)
    """

    def __init__(self, *options: Option):
        """
        Build a store from functional options.

        Args:
            *options: Options from session.options.

        Raises:
            ConfigurationError: If any option was rejected.
            RandomSourceUnavailableError: If no secure randomness is available.
        """
        self._config = resolve_options(*options)
        assert_random_source_available()

        self._backend = self._create_backend(self._config)
        self._lock = threading.Lock()
        self._destroyed = False
        self._sweeper: Optional[ExpiredKeySweeper] = None

        if self._config.auto_clear_expired and not self._backend.native_ttl:
            self._sweeper = ExpiredKeySweeper(self.clear_expired, self._config.key_ttl)
            self._sweeper.start()

        logger.info(
            "Session store initialized",
            extra={"extra_data": {
                "backend": type(self._backend).__name__,
                "key_length": self._config.key_length,
                "key_ttl_seconds": self._config.key_ttl.total_seconds(),
                "auto_clear_expired": self._sweeper is not None,
            }},
        )

    @classmethod
    def from_settings(cls, settings: Any, redis_client: Optional[Any] = None) -> "SessionStore":
        """
        Build a store from a Settings instance.

        Args:
            settings: A config.settings.Settings instance.
            redis_client: Redis client to use; when None, sessions are kept
                in memory even if settings name a Redis URL.
        """
        options = [
            with_key_length(settings.key_length),
            with_key_duration(settings.key_ttl_seconds),
        ]
        if settings.auto_clear_expired_keys:
            options.append(with_auto_clear_expired_keys())
        if redis_client is not None:
            options.append(with_redis(redis_client, key_prefix=settings.redis_key_prefix))
        return cls(*options)

    @staticmethod
    def _create_backend(config: StoreConfig) -> SessionBackend:
        if config.uses_redis:
            return RedisSessionBackend(
                config.redis_client,
                ttl=config.key_ttl,
                key_length=config.key_length,
                key_generator=config.key_generator,
                cancel_event=config.redis_cancel_event,
                key_prefix=config.redis_key_prefix,
            )
        return InMemorySessionBackend(
            ttl=config.key_ttl,
            key_length=config.key_length,
            key_generator=config.key_generator,
        )

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def backend(self) -> SessionBackend:
        return self._backend

    @property
    def sweeper(self) -> Optional[ExpiredKeySweeper]:
        return self._sweeper

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def _ensure_alive(self) -> None:
        if self._destroyed:
            raise RuntimeError("Session store has been destroyed")

    def set(self, payload: Any) -> str:
        """
        Create a session for payload.

        Returns:
            The key of the new session.

        Raises:
            NilPayloadError: If payload is None.
            InvalidPayloadError: If the backend cannot store the payload.
            RandomSourceUnavailableError: If no key could be generated.
            SessionStoreUnavailableError: If Redis fails.
        """
        self._ensure_alive()
        with self._lock:
            key = self._backend.set(payload)
        log_session_event("session.created")
        return key

    def get(self, key: str) -> tuple[Any, str]:
        """
        Consume key and rotate its session to a new key.

        Returns:
            Tuple of (payload, new_key). The presented key is no longer valid.

        Raises:
            KeyNotFoundError: If the key is unknown, used, or removed.
            KeyExpiredError: If the key outlived its duration.
            RandomSourceUnavailableError: If no new key could be generated.
            SessionStoreUnavailableError: If Redis fails.
        """
        self._ensure_alive()
        try:
            with self._lock:
                result = self._backend.get_and_rotate(key)
        except KeyExpiredError:
            log_session_event("session.expired", level=logging.WARNING)
            raise
        except KeyNotFoundError:
            log_session_event("session.not_found", level=logging.WARNING)
            raise
        log_session_event("session.rotated")
        return result

    def remove(self, key: str) -> None:
        """Invalidate key. Removing an unknown key is not an error."""
        self._ensure_alive()
        with self._lock:
            self._backend.remove(key)
        log_session_event("session.removed")

    def clear_expired(self) -> int:
        """
        Evict expired sessions now.

        Returns:
            Number of sessions evicted; always 0 for Redis.
        """
        self._ensure_alive()
        with self._lock:
            evicted = self._backend.clear_expired()
        if evicted:
            log_session_event("session.swept", evicted=evicted)
        return evicted

    def clear(self) -> None:
        """Drop every session held by this store."""
        self._ensure_alive()
        with self._lock:
            self._backend.clear()
        log_session_event("session.cleared")

    def health_check(self) -> bool:
        """Return True when the store is usable."""
        if self._destroyed:
            return False
        return self._backend.health_check()

    def destroy(self) -> None:
        """
        Stop the sweeper, if any, and make the store inert.

        Calling destroy again is a no-op. Every other operation raises
        RuntimeError afterwards.
        """
        if self._destroyed:
            return
        if self._sweeper is not None:
            self._sweeper.stop()
        self._destroyed = True
        logger.info("Session store destroyed")

    def __enter__(self) -> "SessionStore":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.destroy()
