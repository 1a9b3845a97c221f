"""
In-memory session backend.

Sessions live in a process-local dict and are lost when the process stops.
Expiration is tracked per record and enforced on every read; physically
removing stale records is the job of the sweeper (see session.sweeper).
"""

import logging
import threading
from datetime import timedelta
from typing import Any, Optional

from errors.exceptions import KeyExpiredError, KeyNotFoundError, NilPayloadError
from session.backend import SessionBackend, SessionRecord, utc_now
from session.keygen import DEFAULT_KEY_LENGTH, KeyGenerator, generate_key

logger = logging.getLogger(__name__)


class InMemorySessionBackend(SessionBackend):
    """
    Thread-safe in-memory session backend.

    A single lock guards the mapping, so key candidates are checked and
    inserted in one critical section and a rotation removes the old record
    and inserts the new one without any other caller observing the gap.

    Attributes:
        ttl: Lifetime of each record from the moment it is (re)issued
        key_length: Length of generated keys
    """

    native_ttl = False

    def __init__(
        self,
        ttl: timedelta,
        key_length: int = DEFAULT_KEY_LENGTH,
        key_generator: KeyGenerator = generate_key,
    ):
        """
        Initialize the in-memory backend.

        Args:
            ttl: Record lifetime. Not validated here; a non-positive value
                yields records that are expired as soon as they are stored.
            key_length: Length of generated keys.
            key_generator: Callable producing a key of the given length.
        """
        self.ttl = ttl
        self.key_length = key_length
        self._generate = key_generator
        self._records: dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def _free_key(self, retired: Optional[str] = None) -> str:
        # Caller must hold self._lock. A rotated session never gets back the
        # key it was read with.
        key = self._generate(self.key_length)
        while key in self._records or key == retired:
            logger.debug("Generated key collided with a live key, regenerating")
            key = self._generate(self.key_length)
        return key

    def _store(self, key: str, payload: Any) -> None:
        self._records[key] = SessionRecord(payload=payload, expires_at=utc_now() + self.ttl)

    def set(self, payload: Any) -> str:
        if payload is None:
            raise NilPayloadError()

        with self._lock:
            key = self._free_key()
            self._store(key, payload)
            return key

    def get_and_rotate(self, key: str) -> tuple[Any, str]:
        with self._lock:
            record = self._records.get(key)
            if record is None:
                raise KeyNotFoundError()
            if record.is_expired(utc_now()):
                del self._records[key]
                raise KeyExpiredError()

            # The old record stays in place until a fresh key exists.
            new_key = self._free_key(retired=key)
            del self._records[key]
            self._store(new_key, record.payload)
            return record.payload, new_key

    def remove(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)

    def clear_expired(self) -> int:
        now = utc_now()
        with self._lock:
            expired = [key for key, record in self._records.items() if record.is_expired(now)]
            for key in expired:
                del self._records[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def health_check(self) -> bool:
        return True

    def keys(self) -> list[str]:
        """Return a snapshot of the live and not yet swept keys."""
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
