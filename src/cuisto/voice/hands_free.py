"""Hands-free cooking mode.

Combines continuous speech recognition, a screen wake lock and automatic
step narration around one cooking session.
"""

import logging
import threading
from collections.abc import Callable
from enum import Enum

from ..config import HandsFreeConfig
from ..config.phrases import PhraseTable, default_phrase_table
from ..cooking.session import CookingSession
from ..errors import RecognitionBusyError
from .commands import CommandInterpreter, VoiceCommand
from .recognition import RecognitionChannel, RecognitionSupervisor, Recognizer, SupervisorState
from .speech import SpeechArbiter
from .wake_lock import WakeLockGuard

logger = logging.getLogger(__name__)


class HandsFreeState(Enum):
    """Hands-free mode lifecycle."""

    IDLE = "idle"
    ACTIVE = "active"


class HandsFreeController:
    """Drives one cooking session by voice.

    While active, every recognized transcript is interpreted and
    dispatched, and every step change is read aloud after a short delay.
    Deactivation releases the wake lock and the recognition channel before
    returning.
    """

    OWNER = "hands-free"

    def __init__(
        self,
        session: CookingSession,
        speech: SpeechArbiter,
        recognizer: Recognizer | None,
        channel: RecognitionChannel,
        wake_lock: WakeLockGuard,
        interpreter: CommandInterpreter | None = None,
        phrases: PhraseTable | None = None,
        config: HandsFreeConfig | None = None,
        dispatch: Callable[[VoiceCommand], None] | None = None,
        on_degraded: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the controller in the IDLE state.

        Args:
            session: Session to narrate.
            speech: Shared speech arbiter.
            recognizer: Recognition capability, None if unavailable.
            channel: Shared recognition channel.
            wake_lock: Shared wake-lock guard.
            interpreter: Command interpreter.
            phrases: Phrase table for confirmations.
            config: Delays and auto-read setting.
            dispatch: Command sink, defaults to session.dispatch.
            on_degraded: Called once if recognition is unavailable.
        """
        self.session = session
        self._speech = speech
        self._wake_lock = wake_lock
        self._phrases = phrases or default_phrase_table()
        self._interpreter = interpreter or CommandInterpreter(self._phrases)
        self._config = config or HandsFreeConfig()
        self._dispatch = dispatch or session.dispatch
        self._on_degraded = on_degraded
        self._degraded_signalled = False

        self._supervisor = RecognitionSupervisor(
            recognizer,
            channel,
            self.OWNER,
            on_transcript=self.handle_transcript,
            on_state_change=self._on_recognition_state,
        )

        self._state = HandsFreeState.IDLE
        self._lock = threading.RLock()
        self._pending: set[threading.Timer] = set()
        self._narration: threading.Timer | None = None
        self.auto_read = self._config.auto_read
        self.last_transcript: str | None = None

    @property
    def state(self) -> HandsFreeState:
        with self._lock:
            return self._state

    @property
    def is_active(self) -> bool:
        return self.state == HandsFreeState.ACTIVE

    @property
    def is_listening(self) -> bool:
        return self._supervisor.is_listening

    @property
    def needs_reactivation(self) -> bool:
        """Check if recognition stopped after a failure while active."""
        return self.is_active and self._supervisor.state == SupervisorState.NEEDS_REACTIVATION

    @property
    def wake_lock_held(self) -> bool:
        return self._wake_lock.held

    def activate(self) -> bool:
        """Enter hands-free mode.

        Returns:
            True if the mode was entered, False if it was already active.

        Raises:
            RecognitionBusyError: If manual listening holds the channel.
        """
        with self._lock:
            if self._state == HandsFreeState.ACTIVE:
                return False

            if self._config.keep_screen_awake:
                self._wake_lock.acquire()

            try:
                listening = self._supervisor.start(continuous=True)
            except RecognitionBusyError:
                self._wake_lock.release()
                raise

            if not listening and not self._supervisor.available:
                self._signal_degraded("speech recognition unavailable")

            self._state = HandsFreeState.ACTIVE
            self.session.narrating = True
            self.session.add_step_listener(self._on_step_changed)

        logger.info(f"Hands-free mode on for '{self.session.recipe.title}'")
        self._speech.say(self._phrases.say("hands_free_on", title=self.session.recipe.title))
        self._schedule(self._config.settle_delay, self.session.announce_current_step)
        return True

    def deactivate(self, announce: bool = True) -> bool:
        """Leave hands-free mode.

        Args:
            announce: Speak the deactivation confirmation.

        Returns:
            True if the mode was left, False if it was not active.
        """
        with self._lock:
            if self._state != HandsFreeState.ACTIVE:
                return False
            self._state = HandsFreeState.IDLE
            self._cancel_pending()
            self.session.remove_step_listener(self._on_step_changed)
            self.session.narrating = False

        self._wake_lock.release()
        self._supervisor.stop()
        logger.info(f"Hands-free mode off for '{self.session.recipe.title}'")
        if announce:
            self._speech.say(self._phrases.say("hands_free_off"))
        return True

    def toggle(self) -> bool:
        """Flip hands-free mode. Returns True if active afterwards."""
        if self.is_active:
            self.deactivate()
            return False
        self.activate()
        return True

    def reactivate_listening(self) -> bool:
        """Restart recognition after it parked in NEEDS_REACTIVATION.

        Returns:
            True if listening after the call.
        """
        if not self.is_active:
            return False
        return self._supervisor.start(continuous=True)

    def handle_transcript(self, transcript: str) -> VoiceCommand:
        """Interpret and dispatch one transcript."""
        self.last_transcript = transcript
        command = self._interpreter.interpret(transcript)
        try:
            self._dispatch(command)
        except Exception as e:
            logger.error(f"Failed to dispatch '{transcript}': {e}")
        return command

    def _on_step_changed(self, _index: int) -> None:
        if not self.auto_read:
            return
        with self._lock:
            if self._narration is not None:
                self._narration.cancel()
                self._pending.discard(self._narration)
                self._narration = None
        self._narration = self._schedule(
            self._config.auto_read_delay, self.session.announce_current_step
        )

    def _on_recognition_state(self, state: SupervisorState) -> None:
        if state == SupervisorState.NEEDS_REACTIVATION:
            logger.warning("Voice control stopped, tap to reactivate listening")

    def _schedule(self, delay: float, action: Callable[[], None]) -> threading.Timer | None:
        if delay <= 0:
            self._run_if_active(action)
            return None

        timer = threading.Timer(delay, self._run_if_active, args=(action,))
        timer.daemon = True
        with self._lock:
            self._pending.add(timer)
        timer.start()
        return timer

    def _run_if_active(self, action: Callable[[], None]) -> None:
        with self._lock:
            if self._state != HandsFreeState.ACTIVE or self.session.is_closed:
                return
        try:
            action()
        except Exception as e:
            logger.error(f"Hands-free narration failed: {e}")

    def _cancel_pending(self) -> None:
        for timer in self._pending:
            timer.cancel()
        self._pending.clear()
        self._narration = None

    def _signal_degraded(self, reason: str) -> None:
        if self._degraded_signalled:
            return
        self._degraded_signalled = True
        logger.warning(f"Hands-free degraded: {reason}")
        if self._on_degraded is not None:
            try:
                self._on_degraded(reason)
            except Exception:
                logger.exception("Degraded-capability callback failed")


__all__ = ["HandsFreeController", "HandsFreeState"]
