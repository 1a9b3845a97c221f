"""
Session backend abstraction.

This module defines the contract every storage backend of the session store
fulfils. A backend maps single-use keys to opaque payloads; reading a key
consumes it and binds the payload to a freshly generated key.

Backends are either in-process (expiration tracked locally and enforced on
read, with a sweeper evicting stale records) or external services with
native per-key TTL.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass
class SessionRecord:
    """
    A stored session.

    Attributes:
        payload: The opaque value bound to the session
        expires_at: Absolute UTC time after which the record is invalid
    """
    payload: Any
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Return True once ``now`` has reached the expiration time."""
        return (now or utc_now()) >= self.expires_at


class SessionBackend(ABC):
    """
    Abstract base class for session storage backends.

    Implementations must never overwrite a live record: every key they hand
    out is checked against the live keys atomically with its insertion.

    Attributes:
        native_ttl: True when the underlying service expires keys itself,
            in which case no sweeper is needed.
    """

    native_ttl: bool = False

    @abstractmethod
    def set(self, payload: Any) -> str:
        """
        Store a payload under a new, collision-free key.

        Args:
            payload: The value to bind to the session. Must not be None.

        Returns:
            The generated key.

        Raises:
            NilPayloadError: If payload is None.
            RandomSourceUnavailableError: If no key could be generated.
            SessionStoreUnavailableError: If the underlying store fails.
        """

    @abstractmethod
    def get_and_rotate(self, key: str) -> tuple[Any, str]:
        """
        Consume a key and re-issue its payload under a fresh key.

        The old key is invalid once this returns or raises KeyExpiredError.

        Args:
            key: The key presented by the caller.

        Returns:
            Tuple of (payload, new_key).

        Raises:
            KeyNotFoundError: If no record exists for key.
            KeyExpiredError: If the record exists but has expired. The
                record is removed as a side effect.
            RandomSourceUnavailableError: If no new key could be generated.
            SessionStoreUnavailableError: If the underlying store fails.
        """

    @abstractmethod
    def remove(self, key: str) -> None:
        """
        Delete the record at key.

        This operation is idempotent - removing an absent key is not an
        error.

        Raises:
            SessionStoreUnavailableError: If the underlying store fails.
        """

    @abstractmethod
    def clear_expired(self) -> int:
        """
        Evict every expired record.

        Returns:
            The number of records evicted. Always 0 for backends with
            native TTL.
        """

    @abstractmethod
    def clear(self) -> None:
        """Remove every record owned by this backend."""

    @abstractmethod
    def health_check(self) -> bool:
        """
        Check that the backend is usable.

        Returns:
            True if healthy, False otherwise.

        Note:
            This method should not raise exceptions - connectivity issues
            should be caught and result in a False return value.
        """
