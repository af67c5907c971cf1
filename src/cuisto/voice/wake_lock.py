"""Screen wake-lock handling.

Keeps the display awake while hands-free mode is on. The platform wake
lock is optional; refusing or lacking one never stops hands-free mode.
"""

import logging
import threading
from typing import Protocol

logger = logging.getLogger(__name__)


class WakeLock(Protocol):
    """Interface for a screen wake-lock capability."""

    def request(self) -> None:
        """Acquire the wake lock.

        Raises:
            RuntimeError: If the platform refuses the request
        """
        ...

    def release(self) -> None:
        """Release the wake lock. Safe to call when not held."""
        ...


class WakeLockGuard:
    """At-most-one-holder wrapper around a WakeLock capability.

    Acquiring while held is a no-op. The platform may drop the lock on
    its own (e.g. the app goes to background); it then calls
    released_externally().
    """

    def __init__(self, wake_lock: WakeLock | None) -> None:
        self._wake_lock = wake_lock
        self._held = False
        self._lock = threading.Lock()

    @property
    def available(self) -> bool:
        return self._wake_lock is not None

    @property
    def held(self) -> bool:
        with self._lock:
            return self._held

    def acquire(self) -> bool:
        """Best-effort acquire.

        Returns:
            True if the lock is held after the call.
        """
        with self._lock:
            if self._held:
                return True
            if self._wake_lock is None:
                logger.info("Wake lock not available, screen may dim")
                return False
            try:
                self._wake_lock.request()
            except Exception as e:
                logger.warning(f"Wake lock refused: {e}")
                return False
            self._held = True
            logger.debug("Wake lock acquired")
            return True

    def release(self) -> None:
        """Release the lock if held."""
        with self._lock:
            if not self._held:
                return
            self._held = False
            if self._wake_lock is None:
                return
            try:
                self._wake_lock.release()
                logger.debug("Wake lock released")
            except Exception as e:
                logger.warning(f"Failed to release wake lock: {e}")

    def released_externally(self) -> None:
        """Record that the platform dropped the lock."""
        with self._lock:
            if self._held:
                logger.info("Wake lock released by the platform")
            self._held = False


__all__ = ["WakeLock", "WakeLockGuard"]
