"""
Shared pytest fixtures and configuration for all tests.
"""
import logging
import os
import re
from typing import Generator, Iterable
from unittest.mock import MagicMock

import pytest

# Hypothesis configuration for property-based testing
from hypothesis import settings, Verbosity, Phase

# Default profile: balanced for local development
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,  # Key generation time varies with OS entropy
    print_blob=True,  # Print failing examples for debugging
)

# CI profile: more thorough testing for continuous integration
settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    derandomize=True,  # Reproducible results in CI
)

# Debug profile: minimal examples for quick debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    phases=[Phase.explicit, Phase.reuse, Phase.generate],  # Skip shrinking for speed
)

# Fast profile: quick smoke tests
settings.register_profile(
    "fast",
    max_examples=20,
    verbosity=Verbosity.normal,
    deadline=None,
)

# Load profile from environment variable HYPOTHESIS_PROFILE, default to "default"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


def redis_glob(pattern: str) -> "re.Pattern[str]":
    """
    Compile a Redis MATCH pattern.

    Supports ``*``, ``?`` and backslash escapes, which is all the session
    backends emit.
    """
    parts = []
    chars = iter(pattern)
    for char in chars:
        if char == "\\":
            parts.append(re.escape(next(chars, "\\")))
        elif char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.DOTALL)


@pytest.fixture
def restore_root_logger():
    """Restore root logger handlers and level changed by configure_logging."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def scripted_keys():
    """Return a factory for key generators that yield fixed keys in order."""
    def factory(keys: Iterable[str]):
        iterator = iter(keys)

        def generator(length: int) -> str:
            return next(iterator)

        return generator

    return factory


@pytest.fixture
def mock_redis() -> MagicMock:
    """
    Create a mock Redis client backed by a dict.

    Supports the calls RedisSessionBackend makes: SET with NX/PX, DEL,
    SCAN, PING, and the registered rotation script. Stored values are
    reachable through ``mock.data`` and the PX of each key through
    ``mock.ttls``.
    """
    data: dict[str, str] = {}
    ttls: dict[str, int] = {}
    mock = MagicMock()

    def set_(name, value, nx=False, px=None):
        if nx and name in data:
            return None
        data[name] = value
        ttls[name] = px
        return True

    def delete(*names):
        return sum(1 for name in names if data.pop(name, None) is not None)

    def scan_iter(match="*"):
        pattern = redis_glob(match)
        return [name for name in list(data) if pattern.fullmatch(name)]

    def rotate(keys, args):
        old_key, new_key = keys
        if new_key in data:
            return 0
        if old_key not in data:
            return -1
        value = data.pop(old_key)
        data[new_key] = value
        ttls[new_key] = args[0]
        return value

    mock.set.side_effect = set_
    mock.delete.side_effect = delete
    mock.scan_iter.side_effect = scan_iter
    mock.ping.return_value = True
    mock.register_script.return_value = MagicMock(side_effect=rotate)
    mock.data = data
    mock.ttls = ttls
    return mock


@pytest.fixture
def memory_store() -> Generator:
    """Create an in-memory SessionStore and destroy it after the test."""
    from session.store import SessionStore

    store = SessionStore()
    yield store
    store.destroy()
