"""
Redis-based session backend.

This module provides a Redis-backed implementation of the SessionBackend
interface. Redis expires keys natively, so no sweeper runs against it and
an expired key simply reads as absent.

Payloads are stored as JSON-serialized strings under a key prefix
("suk:" by default) for namespace isolation, so payloads must be JSON
serializable.

Rotation runs as a single server-side Lua script: the fresh key is checked
for collisions, the old record is read and deleted, and the payload is
written under the fresh key with a new TTL, all atomically. A crash of the
client can therefore never leave the payload lost or the old key alive.

On Redis Cluster both keys of a rotation must hash to the same slot, so the
prefix needs a hash tag such as "{suk}:".
"""

import json
import logging
import re
import threading
from contextlib import contextmanager
from datetime import timedelta
from typing import Any, Iterator, Optional

import redis

from errors.exceptions import (
    InvalidPayloadError,
    KeyNotFoundError,
    NilPayloadError,
    SessionStoreUnavailableError,
)
from session.backend import SessionBackend
from session.keygen import DEFAULT_KEY_LENGTH, KeyGenerator, generate_key

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "suk:"

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")

# Script replies: 0 when the fresh key is taken, -1 when the old key is
# absent, otherwise the stored payload.
ROTATE_COLLISION = 0
ROTATE_NOT_FOUND = -1

ROTATE_SCRIPT = """
if redis.call('EXISTS', KEYS[2]) == 1 then
    return 0
end
local value = redis.call('GET', KEYS[1])
if not value then
    return -1
end
redis.call('DEL', KEYS[1])
redis.call('SET', KEYS[2], value, 'PX', ARGV[1])
return value
"""


class RedisSessionBackend(SessionBackend):
    """
    Redis-backed session backend.

    Collision-free insertion relies on ``SET ... NX``; the client retries
    with a new candidate key whenever Redis reports the key as taken.

    Attributes:
        ttl: Lifetime of each key, enforced by Redis
        key_length: Length of generated keys
        key_prefix: Namespace prepended to every Redis key
    """

    native_ttl = True

    def __init__(
        self,
        client: "redis.Redis",
        ttl: timedelta,
        key_length: int = DEFAULT_KEY_LENGTH,
        key_generator: KeyGenerator = generate_key,
        cancel_event: Optional[threading.Event] = None,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ):
        """
        Initialize the Redis session backend.

        Args:
            client: A connected ``redis.Redis`` client. Connection timeouts
                are configured on the client by the caller.
            ttl: Key lifetime. Sub-millisecond values are rounded up to one
                millisecond.
            key_length: Length of generated keys.
            key_generator: Callable producing a key of the given length.
            cancel_event: Optional event; once set, every call fails with
                SessionStoreUnavailableError before touching the network.
            key_prefix: Namespace for the keys written by this backend.
        """
        self.ttl = ttl
        self.key_length = key_length
        self.key_prefix = key_prefix
        self._client = client
        self._generate = key_generator
        self._cancel_event = cancel_event
        self._ttl_ms = max(1, int(ttl.total_seconds() * 1000))
        self._rotate_script = client.register_script(ROTATE_SCRIPT)

    def _redis_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    @contextmanager
    def _redis_errors(self, operation: str) -> Iterator[None]:
        """
        Check for cancellation and translate Redis failures.

        Raises:
            SessionStoreUnavailableError: If the call was cancelled or Redis
                raised; the original exception is chained.
        """
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise SessionStoreUnavailableError(
                f"Redis {operation} cancelled",
                details={"operation": operation, "cancelled": True},
            )
        try:
            yield
        except redis.RedisError as e:
            logger.error(
                "Redis operation failed",
                extra={"extra_data": {"operation": operation, "error": str(e)}},
            )
            raise SessionStoreUnavailableError(
                f"Redis {operation} failed: {e}",
                details={"operation": operation},
            ) from e

    def set(self, payload: Any) -> str:
        if payload is None:
            raise NilPayloadError()
        try:
            data = json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise InvalidPayloadError(
                f"Session payload is not JSON serializable: {e}"
            ) from e

        with self._redis_errors("set"):
            while True:
                key = self._generate(self.key_length)
                if self._client.set(self._redis_key(key), data, nx=True, px=self._ttl_ms):
                    return key
                logger.debug("Generated key collided with a live key, regenerating")

    def get_and_rotate(self, key: str) -> tuple[Any, str]:
        with self._redis_errors("get"):
            while True:
                new_key = self._generate(self.key_length)
                result = self._rotate_script(
                    keys=[self._redis_key(key), self._redis_key(new_key)],
                    args=[self._ttl_ms],
                )
                if isinstance(result, int):
                    if result == ROTATE_NOT_FOUND:
                        raise KeyNotFoundError()
                    logger.debug("Generated key collided with a live key, regenerating")
                    continue
                return json.loads(result), new_key

    def remove(self, key: str) -> None:
        with self._redis_errors("remove"):
            self._client.delete(self._redis_key(key))

    def clear_expired(self) -> int:
        # Redis evicts expired keys itself.
        return 0

    def clear(self) -> None:
        """Delete every key under this backend's prefix."""
        with self._redis_errors("clear"):
            pattern = _GLOB_SPECIAL.sub(r"\\\1", self.key_prefix) + "*"
            keys = list(self._client.scan_iter(match=pattern))
            if keys:
                self._client.delete(*keys)

    def health_check(self) -> bool:
        if self._cancel_event is not None and self._cancel_event.is_set():
            return False
        try:
            return self._client.ping() is True
        except Exception:
            return False
