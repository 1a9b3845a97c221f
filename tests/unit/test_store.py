"""
Unit tests for the SessionStore facade.

Tests cover:
- Backend selection from options and settings
- Single-use rotation through the facade
- Expiration, manual and background eviction
- Lifecycle (destroy, context manager)
- Concurrent use from many threads
- Audit logging without raw keys
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from unittest.mock import patch

import pytest

from config.settings import ConfigurationError, Settings
from errors.exceptions import (
    InvalidKeyDurationError,
    KeyExpiredError,
    KeyNotFoundError,
    NilPayloadError,
    NilRedisClientError,
    RandomSourceUnavailableError,
)
from session.factory import create_session_store
from session.memory_store import InMemorySessionBackend
from session.options import (
    with_auto_clear_expired_keys,
    with_key_duration,
    with_key_length,
    with_redis,
)
from session.redis_store import RedisSessionBackend
from session.store import SessionStore
from session.sweeper import SweeperState
from telemetry.service import AUDIT_LOGGER_NAME, JSONFormatter


def wait_until(condition, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll condition until it holds or timeout elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(interval)
    return condition()


class TestConstruction:
    """Tests for building a store from options."""

    def test_defaults_to_memory_backend_without_sweeper(self, memory_store):
        assert isinstance(memory_store.backend, InMemorySessionBackend)
        assert memory_store.sweeper is None
        assert memory_store.config.key_length == 32
        assert memory_store.config.key_ttl == timedelta(minutes=10)

    def test_redis_option_selects_redis_backend(self, mock_redis):
        with SessionStore(with_redis(mock_redis)) as store:
            assert isinstance(store.backend, RedisSessionBackend)

    def test_redis_never_starts_sweeper(self, mock_redis):
        """Test that auto clear is ignored when the backend expires keys itself."""
        with SessionStore(with_redis(mock_redis), with_auto_clear_expired_keys()) as store:
            assert store.sweeper is None

    def test_auto_clear_starts_sweeper(self):
        with SessionStore(with_auto_clear_expired_keys()) as store:
            assert store.sweeper is not None
            assert store.sweeper.state == SweeperState.RUNNING
            assert store.sweeper.interval == timedelta(minutes=10)

    def test_invalid_options_raise_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc_info:
            SessionStore(with_redis(None), with_key_length(0))

        assert len(exc_info.value.errors) == 2
        assert isinstance(exc_info.value.errors[0], NilRedisClientError)

    @pytest.mark.parametrize("duration", [timedelta.max, timedelta(days=10**8)])
    def test_unrepresentable_duration_rejected(self, duration):
        """Test that a duration too long for expiry timestamps fails at construction."""
        with pytest.raises(ConfigurationError) as exc_info:
            SessionStore(with_key_duration(duration), with_auto_clear_expired_keys())

        assert isinstance(exc_info.value.errors[0], InvalidKeyDurationError)

    def test_missing_random_source_fails_construction(self):
        with patch("session.keygen.os.urandom", side_effect=OSError("no entropy")):
            with pytest.raises(RandomSourceUnavailableError):
                SessionStore()


class TestOperations:
    """Tests for set, get, remove and clear through the facade."""

    def test_set_then_get_rotates(self, memory_store):
        key = memory_store.set(10)

        payload, new_key = memory_store.get(key)

        assert payload == 10
        assert new_key != key
        with pytest.raises(KeyNotFoundError):
            memory_store.get(key)

    def test_rotated_key_is_usable(self, memory_store):
        key = memory_store.set("payload")
        _, key = memory_store.get(key)
        payload, _ = memory_store.get(key)

        assert payload == "payload"

    def test_custom_key_length(self):
        with SessionStore(with_key_length(10)) as store:
            key = store.set("payload")
            _, new_key = store.get(key)

        assert len(key) == 10
        assert len(new_key) == 10

    def test_none_payload_rejected(self, memory_store):
        with pytest.raises(NilPayloadError):
            memory_store.set(None)

    def test_unknown_key(self, memory_store):
        with pytest.raises(KeyNotFoundError):
            memory_store.get("nope")

    def test_expired_key(self):
        with SessionStore(with_key_duration(timedelta(milliseconds=1))) as store:
            key = store.set("payload")
            time.sleep(0.02)

            with pytest.raises(KeyExpiredError):
                store.get(key)
            with pytest.raises(KeyNotFoundError):
                store.get(key)

    def test_remove(self, memory_store):
        key = memory_store.set("payload")

        memory_store.remove(key)
        memory_store.remove(key)

        with pytest.raises(KeyNotFoundError):
            memory_store.get(key)

    def test_clear_expired(self):
        with SessionStore(with_key_duration(timedelta(milliseconds=1))) as store:
            for i in range(5):
                store.set(i)
            time.sleep(0.02)

            assert store.clear_expired() == 5
            assert len(store.backend) == 0

    def test_clear(self, memory_store):
        keys = [memory_store.set(i) for i in range(3)]

        memory_store.clear()

        for key in keys:
            with pytest.raises(KeyNotFoundError):
                memory_store.get(key)

    def test_redis_round_trip(self, mock_redis):
        with SessionStore(with_redis(mock_redis)) as store:
            key = store.set({"user_id": 42})
            payload, new_key = store.get(key)

            assert payload == {"user_id": 42}
            assert store.clear_expired() == 0
            with pytest.raises(KeyNotFoundError):
                store.get(key)
            store.remove(new_key)
            assert mock_redis.data == {}

    def test_health_check(self, memory_store):
        assert memory_store.health_check() is True


class TestBackgroundSweep:
    """Tests for automatic eviction of expired in-memory keys."""

    def test_sweeper_evicts_expired_keys(self):
        store = SessionStore(
            with_key_duration(timedelta(milliseconds=50)),
            with_auto_clear_expired_keys(),
        )
        try:
            for i in range(5):
                store.set(i)

            assert wait_until(lambda: len(store.backend) == 0)
        finally:
            store.destroy()

    def test_sweeper_keeps_live_keys(self):
        store = SessionStore(
            with_key_duration(timedelta(seconds=30)),
            with_auto_clear_expired_keys(),
        )
        try:
            key = store.set("payload")
            store.clear_expired()

            payload, _ = store.get(key)
            assert payload == "payload"
        finally:
            store.destroy()


class TestLifecycle:
    """Tests for destroy and the context manager."""

    def test_destroy_stops_sweeper(self):
        store = SessionStore(with_auto_clear_expired_keys())
        sweeper = store.sweeper

        store.destroy()

        assert store.destroyed is True
        assert sweeper.state == SweeperState.STOPPED

    def test_destroy_is_idempotent(self, memory_store):
        memory_store.destroy()
        memory_store.destroy()

        assert memory_store.destroyed is True

    @pytest.mark.parametrize(
        "operation",
        [
            lambda store: store.set("payload"),
            lambda store: store.get("key"),
            lambda store: store.remove("key"),
            lambda store: store.clear_expired(),
            lambda store: store.clear(),
        ],
    )
    def test_operations_after_destroy_raise(self, memory_store, operation):
        memory_store.destroy()

        with pytest.raises(RuntimeError):
            operation(memory_store)

    def test_health_check_after_destroy(self, memory_store):
        memory_store.destroy()

        assert memory_store.health_check() is False

    def test_context_manager_destroys(self):
        with SessionStore(with_auto_clear_expired_keys()) as store:
            sweeper = store.sweeper

        assert store.destroyed is True
        assert sweeper.state == SweeperState.STOPPED


class TestConcurrency:
    """Tests for many threads sharing one store."""

    @pytest.mark.parametrize("count", [10, 1_000])
    def test_concurrent_sets_and_gets(self, memory_store, count):
        def round_trip(i):
            key = memory_store.set(i)
            payload, new_key = memory_store.get(key)
            return key, payload, new_key

        with ThreadPoolExecutor(max_workers=32) as executor:
            results = list(executor.map(round_trip, range(count)))

        assert [payload for _, payload, _ in results] == list(range(count))
        new_keys = {new_key for _, _, new_key in results}
        assert len(new_keys) == count
        assert len(memory_store.backend) == count

    @pytest.mark.slow
    def test_hundred_thousand_concurrent_sets(self):
        count = 100_000
        with SessionStore(with_key_length(16)) as store:
            with ThreadPoolExecutor(max_workers=64) as executor:
                keys = list(executor.map(store.set, range(count)))

            assert len(set(keys)) == count
            assert len(store.backend) == count

    def test_concurrent_gets_of_one_key(self, memory_store):
        key = memory_store.set("payload")
        barrier = threading.Barrier(8)

        def consume(_):
            barrier.wait()
            try:
                return memory_store.get(key)
            except KeyNotFoundError:
                return None

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(consume, range(8)))

        assert len([r for r in results if r is not None]) == 1


class TestAuditLogging:
    """Tests for session lifecycle audit events."""

    def audit_events(self, caplog):
        return [
            r.extra_data["event_type"]
            for r in caplog.records
            if r.name == AUDIT_LOGGER_NAME
        ]

    def test_lifecycle_events(self, memory_store, caplog):
        with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER_NAME):
            key = memory_store.set("payload")
            _, key = memory_store.get(key)
            memory_store.remove(key)
            memory_store.clear()

        assert self.audit_events(caplog) == [
            "session.created",
            "session.rotated",
            "session.removed",
            "session.cleared",
        ]

    def test_expired_and_missing_are_distinct(self, caplog):
        with SessionStore(with_key_duration(timedelta(milliseconds=1))) as store:
            key = store.set("payload")
            time.sleep(0.02)
            with caplog.at_level(logging.WARNING, logger=AUDIT_LOGGER_NAME):
                with pytest.raises(KeyExpiredError):
                    store.get(key)
                with pytest.raises(KeyNotFoundError):
                    store.get(key)

        assert self.audit_events(caplog) == ["session.expired", "session.not_found"]
        assert all(r.levelno == logging.WARNING for r in caplog.records if r.name == AUDIT_LOGGER_NAME)

    def test_sweep_event_reports_count(self, caplog):
        with SessionStore(with_key_duration(timedelta(milliseconds=1))) as store:
            store.set(1)
            store.set(2)
            time.sleep(0.02)
            with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER_NAME):
                store.clear_expired()

        swept = [
            r for r in caplog.records
            if r.name == AUDIT_LOGGER_NAME and r.extra_data["event_type"] == "session.swept"
        ]
        assert len(swept) == 1
        assert swept[0].extra_data["evicted"] == 2

    def test_raw_keys_are_never_logged(self, caplog):
        with caplog.at_level(logging.DEBUG):
            with SessionStore() as store:
                key = store.set("payload")
                _, new_key = store.get(key)
                store.remove(new_key)

        for record in caplog.records:
            text = record.getMessage() + repr(getattr(record, "extra_data", {}))
            assert key not in text
            assert new_key not in text


@pytest.mark.usefixtures("restore_root_logger")
class TestSettingsConstruction:
    """Tests for building a store from Settings."""

    def test_from_settings(self):
        settings = Settings(key_length=12, key_ttl_seconds=30, auto_clear_expired_keys=True)

        with SessionStore.from_settings(settings) as store:
            assert store.config.key_length == 12
            assert store.config.key_ttl == timedelta(seconds=30)
            assert store.sweeper is not None

    def test_from_settings_with_redis_client(self, mock_redis):
        settings = Settings(redis_key_prefix="app:")

        with SessionStore.from_settings(settings, redis_client=mock_redis) as store:
            key = store.set("payload")

        assert f"app:{key}" in mock_redis.data

    def test_factory_uses_memory_without_url(self):
        with create_session_store(Settings()) as store:
            assert isinstance(store.backend, InMemorySessionBackend)

    def test_factory_connects_to_redis_url(self, mock_redis):
        settings = Settings(redis_url="redis://localhost:6379/0")

        with patch("session.factory.redis.from_url", return_value=mock_redis) as from_url:
            with create_session_store(settings) as store:
                assert isinstance(store.backend, RedisSessionBackend)

        from_url.assert_called_once_with("redis://localhost:6379/0")

    def test_factory_loads_settings_from_environment(self, monkeypatch):
        from config.settings import clear_settings_cache

        monkeypatch.setenv("SUK_KEY_LENGTH", "20")
        clear_settings_cache()
        try:
            with create_session_store() as store:
                assert store.config.key_length == 20
        finally:
            clear_settings_cache()

    def test_factory_applies_log_level(self):
        with create_session_store(Settings(log_level="WARNING")):
            pass

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
