"""
Background sweeper for expired sessions.

Backends without native TTL keep expired records until something removes
them. The sweeper is a daemon thread that calls a clear function once per
interval until it is stopped.

State machine:
- IDLE -> RUNNING: start()
- RUNNING -> STOPPED: stop()

A stopped sweeper never runs again.
"""

import logging
import threading
from datetime import timedelta
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class SweeperState(Enum):
    """Lifecycle states of an ExpiredKeySweeper."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class ExpiredKeySweeper:
    """
    Periodically evicts expired sessions on a background thread.

    The thread waits on a stop event with the interval as timeout, so stop()
    takes effect immediately instead of after the current tick.

    Example:
        sweeper = ExpiredKeySweeper(backend.clear_expired, timedelta(minutes=10))
        sweeper.start()
        ...
        sweeper.stop()
    """

    def __init__(self, clear_expired: Callable[[], int], interval: timedelta):
        """
        Initialize the sweeper.

        Args:
            clear_expired: Called once per tick; returns the number of
                records it evicted.
            interval: Time between ticks. Must be positive.
        """
        if interval.total_seconds() <= 0:
            raise ValueError(f"Sweep interval must be positive, got {interval}")
        if interval.total_seconds() > threading.TIMEOUT_MAX:
            raise ValueError(f"Sweep interval must not exceed {threading.TIMEOUT_MAX} seconds")

        self.interval = interval
        self._clear_expired = clear_expired
        self._state = SweeperState.IDLE
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._state_lock = threading.Lock()

    @property
    def state(self) -> SweeperState:
        """Get the current sweeper state."""
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == SweeperState.RUNNING

    def start(self) -> None:
        """
        Start the background thread.

        Raises:
            RuntimeError: If the sweeper was already started or stopped.
        """
        with self._state_lock:
            if self._state != SweeperState.IDLE:
                raise RuntimeError(f"Sweeper cannot be started from state {self._state.value}")

            self._thread = threading.Thread(
                target=self._run, daemon=True, name="session-sweeper"
            )
            self._state = SweeperState.RUNNING
            self._thread.start()

        logger.info(
            "Session sweeper started",
            extra={"extra_data": {"interval_seconds": self.interval.total_seconds()}},
        )

    def _run(self) -> None:
        interval_seconds = self.interval.total_seconds()
        while True:
            try:
                if self._stop_event.wait(interval_seconds):
                    return
            except (OverflowError, ValueError):
                logger.exception("Session sweeper cannot wait for its interval, stopping")
                with self._state_lock:
                    self._state = SweeperState.STOPPED
                return

            try:
                evicted = self._clear_expired()
            except Exception:
                logger.exception("Session sweep failed")
                continue
            if evicted:
                logger.debug(
                    "Session sweep evicted expired records",
                    extra={"extra_data": {"evicted": evicted}},
                )

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """
        Stop the background thread and wait for it to exit.

        Stopping an idle or already stopped sweeper only marks it stopped.

        Args:
            timeout: Seconds to wait for the thread to finish a tick in
                progress. None waits indefinitely.
        """
        with self._state_lock:
            if self._state == SweeperState.STOPPED:
                return
            self._state = SweeperState.STOPPED
            self._stop_event.set()
            thread = self._thread

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Session sweeper did not stop within %s seconds", timeout)
                return

        logger.info("Session sweeper stopped")
