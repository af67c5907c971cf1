"""Speech recognition supervision.

Provides the recognizer protocol, the system-wide recognition channel and
the supervisor that keeps continuous recognition alive with a bounded
restart policy.
"""

import logging
import threading
from collections.abc import Callable
from enum import Enum, auto
from typing import Protocol

from ..errors import RecognitionBusyError

logger = logging.getLogger(__name__)

NO_SPEECH_ERROR = "no-speech"


class Recognizer(Protocol):
    """Interface for a speech recognition capability.

    Implementations report through the callbacks given to bind(): a final
    lower-cased transcript, an error code, and the end of the recognition
    session.
    """

    def bind(
        self,
        on_result: Callable[[str], None],
        on_error: Callable[[str], None],
        on_end: Callable[[], None],
    ) -> None:
        """Attach result, error and end callbacks."""
        ...

    def start(self, continuous: bool) -> None:
        """Start recognizing.

        Raises:
            RuntimeError: If recognition cannot be started
        """
        ...

    def stop(self) -> None:
        """Stop recognizing. Safe to call when not started."""
        ...


class RecognitionChannel:
    """The single recognition session of the process.

    At most one owner (hands-free controller or manual toggle) holds the
    channel. Re-acquiring by the holder is a no-op.
    """

    def __init__(self) -> None:
        self._holder: str | None = None
        self._lock = threading.Lock()

    @property
    def holder(self) -> str | None:
        with self._lock:
            return self._holder

    def acquire(self, owner: str) -> None:
        """Take the channel for an owner.

        Raises:
            RecognitionBusyError: If another owner holds the channel.
        """
        with self._lock:
            if self._holder is not None and self._holder != owner:
                raise RecognitionBusyError(self._holder)
            self._holder = owner

    def release(self, owner: str) -> None:
        """Give the channel back. Ignored if owner is not the holder."""
        with self._lock:
            if self._holder == owner:
                self._holder = None


class SupervisorState(Enum):
    """Lifecycle of a supervised recognition session."""

    IDLE = auto()  # Not listening
    LISTENING = auto()  # Recognizer running
    NEEDS_REACTIVATION = auto()  # Stopped after a failure, manual restart required


class RecognitionSupervisor:
    """Keeps one recognizer running for one owner.

    The recognizer callbacks are bound to the supervisor holding the
    channel. In continuous mode an unexpected end triggers exactly one restart
    attempt. If that attempt raises, or the recognizer reports a hard
    error, the supervisor parks in NEEDS_REACTIVATION and stops retrying.
    """

    def __init__(
        self,
        recognizer: Recognizer | None,
        channel: RecognitionChannel,
        owner: str,
        on_transcript: Callable[[str], None],
        on_state_change: Callable[[SupervisorState], None] | None = None,
    ) -> None:
        """Initialize the supervisor.

        Args:
            recognizer: Recognition capability, None if unavailable.
            channel: Shared recognition channel.
            owner: Name used to hold the channel.
            on_transcript: Receives every final transcript.
            on_state_change: Notified on every state transition.
        """
        self._recognizer = recognizer
        self._channel = channel
        self._owner = owner
        self._on_transcript = on_transcript
        self._on_state_change = on_state_change
        self._state = SupervisorState.IDLE
        self._continuous = False
        self._lock = threading.RLock()

    @property
    def available(self) -> bool:
        return self._recognizer is not None

    @property
    def state(self) -> SupervisorState:
        with self._lock:
            return self._state

    @property
    def is_listening(self) -> bool:
        return self.state == SupervisorState.LISTENING

    def start(self, continuous: bool = True) -> bool:
        """Start listening.

        Args:
            continuous: Keep listening after each recognition session ends.

        Returns:
            True if listening after the call.

        Raises:
            RecognitionBusyError: If another owner holds the channel.
        """
        if self._recognizer is None:
            logger.info("Speech recognition not available")
            return False

        with self._lock:
            if self._state == SupervisorState.LISTENING:
                return True
            self._channel.acquire(self._owner)
            self._continuous = continuous
            self._recognizer.bind(self._handle_result, self._handle_error, self._handle_end)
            try:
                self._recognizer.start(continuous)
            except Exception as e:
                logger.warning(f"Failed to start speech recognition: {e}")
                self._channel.release(self._owner)
                self._set_state(SupervisorState.NEEDS_REACTIVATION)
                return False
            self._set_state(SupervisorState.LISTENING)
            logger.info(f"Speech recognition started for {self._owner}")
            return True

    def stop(self) -> None:
        """Stop listening and free the channel."""
        with self._lock:
            was_active = self._state == SupervisorState.LISTENING
            self._set_state(SupervisorState.IDLE)
            self._channel.release(self._owner)
        if was_active and self._recognizer is not None:
            try:
                self._recognizer.stop()
            except Exception as e:
                logger.warning(f"Failed to stop speech recognition: {e}")
            logger.info(f"Speech recognition stopped for {self._owner}")

    def _handle_result(self, transcript: str) -> None:
        if self.state != SupervisorState.LISTENING:
            return
        text = transcript.lower().strip()
        if not text:
            return
        logger.info(f"Heard: '{text}'")
        self._on_transcript(text)

    def _handle_error(self, error: str) -> None:
        if error == NO_SPEECH_ERROR:
            logger.debug("No speech detected")
            return
        logger.warning(f"Speech recognition error: {error}")
        with self._lock:
            if self._state != SupervisorState.LISTENING:
                return
            self._set_state(SupervisorState.NEEDS_REACTIVATION)
            self._channel.release(self._owner)

    def _handle_end(self) -> None:
        with self._lock:
            if self._state != SupervisorState.LISTENING:
                return
            if not self._continuous:
                self._set_state(SupervisorState.IDLE)
                self._channel.release(self._owner)
                return
            try:
                self._recognizer.start(True)
                logger.debug("Speech recognition restarted after unexpected end")
            except Exception as e:
                logger.warning(f"Speech recognition restart failed, manual reactivation needed: {e}")
                self._set_state(SupervisorState.NEEDS_REACTIVATION)
                self._channel.release(self._owner)

    def _set_state(self, state: SupervisorState) -> None:
        if state == self._state:
            return
        self._state = state
        if self._on_state_change is not None:
            try:
                self._on_state_change(state)
            except Exception:
                logger.exception("Recognition state callback failed")


class ManualListening:
    """Plain listen on/off toggle, outside hands-free mode.

    Shares the recognition channel with hands-free mode, so the two are
    mutually exclusive.
    """

    OWNER = "manual"

    def __init__(
        self,
        recognizer: Recognizer | None,
        channel: RecognitionChannel,
        on_transcript: Callable[[str], None],
        on_started: Callable[[], None] | None = None,
    ) -> None:
        self._supervisor = RecognitionSupervisor(
            recognizer, channel, self.OWNER, on_transcript
        )
        self._on_started = on_started

    @property
    def supervisor(self) -> RecognitionSupervisor:
        return self._supervisor

    @property
    def is_listening(self) -> bool:
        return self._supervisor.is_listening

    def toggle(self) -> bool:
        """Start or stop listening.

        Returns:
            True if listening after the call.

        Raises:
            RecognitionBusyError: If hands-free mode holds the channel.
        """
        if self._supervisor.is_listening:
            self._supervisor.stop()
            return False
        started = self._supervisor.start(continuous=True)
        if started and self._on_started is not None:
            self._on_started()
        return started


__all__ = [
    "NO_SPEECH_ERROR",
    "ManualListening",
    "RecognitionChannel",
    "RecognitionSupervisor",
    "Recognizer",
    "SupervisorState",
]
