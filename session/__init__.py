"""
Single-use key session management.

This package issues random session keys bound to opaque payloads. Reading a
key consumes it and re-issues the payload under a fresh key; unused keys
expire after a configurable duration. Sessions live in process memory by
default or in Redis when a client is supplied.
"""

from session.backend import SessionBackend, SessionRecord
from session.factory import create_session_store
from session.keygen import ALPHABET, DEFAULT_KEY_LENGTH, generate_key
from session.memory_store import InMemorySessionBackend
from session.options import (
    DEFAULT_KEY_TTL,
    MAX_KEY_TTL,
    StoreConfig,
    resolve_options,
    with_auto_clear_expired_keys,
    with_key_duration,
    with_key_generator,
    with_key_length,
    with_redis,
)
from session.redis_store import RedisSessionBackend
from session.store import SessionStore
from session.sweeper import ExpiredKeySweeper, SweeperState

__all__ = [
    "SessionStore",
    "create_session_store",
    # Options
    "StoreConfig",
    "DEFAULT_KEY_TTL",
    "MAX_KEY_TTL",
    "resolve_options",
    "with_redis",
    "with_key_length",
    "with_key_duration",
    "with_auto_clear_expired_keys",
    "with_key_generator",
    # Backends
    "SessionBackend",
    "SessionRecord",
    "InMemorySessionBackend",
    "RedisSessionBackend",
    # Keys
    "ALPHABET",
    "DEFAULT_KEY_LENGTH",
    "generate_key",
    # Sweeper
    "ExpiredKeySweeper",
    "SweeperState",
]
