"""Unit tests for the wake-lock guard."""

from unittest.mock import MagicMock

from cuisto.voice.mock import MockWakeLock
from cuisto.voice.wake_lock import WakeLockGuard


class TestWakeLockGuard:
    """Tests for WakeLockGuard."""

    def test_acquire_and_release(self) -> None:
        """Test the lock is requested and released."""
        lock = MockWakeLock()
        guard = WakeLockGuard(lock)

        assert guard.acquire() is True
        assert lock.held is True
        guard.release()
        assert lock.held is False
        assert guard.held is False

    def test_reacquire_is_noop(self) -> None:
        """Test acquiring while held does not request again."""
        lock = MockWakeLock()
        guard = WakeLockGuard(lock)
        guard.acquire()
        guard.acquire()
        assert lock.request_count == 1

    def test_release_is_idempotent(self) -> None:
        """Test releasing twice only releases once."""
        lock = MagicMock()
        guard = WakeLockGuard(lock)
        guard.acquire()
        guard.release()
        guard.release()
        lock.release.assert_called_once()

    def test_refusal_is_not_fatal(self) -> None:
        """Test a refused request returns False without raising."""
        guard = WakeLockGuard(MockWakeLock(refuse=True))
        assert guard.acquire() is False
        assert guard.held is False

    def test_missing_capability(self) -> None:
        """Test a guard without a wake lock."""
        guard = WakeLockGuard(None)
        assert guard.available is False
        assert guard.acquire() is False
        guard.release()

    def test_external_release(self) -> None:
        """Test a platform release clears the held flag and allows re-acquire."""
        lock = MockWakeLock()
        guard = WakeLockGuard(lock)
        guard.acquire()

        guard.released_externally()

        assert guard.held is False
        assert guard.acquire() is True
        assert lock.request_count == 2
