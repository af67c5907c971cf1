"""Multi-recipe cooking orchestrator.

Coordinates several cooking sessions cooked in parallel: one shared timer
scheduler, one speech arbiter, one recognition channel and one wake lock.
Voice commands go to an explicitly selected active session.
"""

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from ..config import CuistoConfig, load_phrase_table, load_preferences
from ..config.phrases import PhraseTable, default_phrase_table
from ..errors import UnknownSessionError, UnknownTimerError
from ..voice.commands import CommandInterpreter, CommandType, VoiceCommand
from ..voice.hands_free import HandsFreeController
from ..voice.recognition import ManualListening, RecognitionChannel, Recognizer
from ..voice.speech import SpeechArbiter, Synthesizer
from ..voice.wake_lock import WakeLock, WakeLockGuard
from .alerts import AlertBoard
from .duration import split_minutes
from .events import EngineEvents
from .scheduler import StartPolicy, TimerKey, TimerScheduler, TimerSnapshot
from .session import CookingSession, Recipe

if TYPE_CHECKING:
    from ..storage.recorder import CompletionRecorder

logger = logging.getLogger(__name__)


class CookingOrchestrator:
    """Runs any number of cooking sessions side by side."""

    def __init__(
        self,
        scheduler: TimerScheduler,
        speech: SpeechArbiter,
        phrases: PhraseTable | None = None,
        events: EngineEvents | None = None,
        alerts: AlertBoard | None = None,
        recognizer: Recognizer | None = None,
        wake_lock: WakeLock | None = None,
        config: CuistoConfig | None = None,
        recorder: "CompletionRecorder | None" = None,
        user_id: str | None = None,
        on_degraded: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            scheduler: Shared timer scheduler.
            speech: Shared speech arbiter.
            phrases: Phrase table for commands and confirmations.
            events: Engine events to fire.
            alerts: Alert board, created from config if omitted.
            recognizer: Speech recognition capability, None if unavailable.
            wake_lock: Screen wake-lock capability, None if unavailable.
            config: Engine configuration.
            recorder: Persists completed sessions.
            user_id: Cook credited for completed sessions.
            on_degraded: Called once per missing capability.
        """
        self._config = config or CuistoConfig()
        self._scheduler = scheduler
        self._speech = speech
        self._phrases = phrases or default_phrase_table()
        self._events = events or EngineEvents()
        self._alerts = alerts or AlertBoard(self._config.alerts.display_seconds, self._events)
        self._recognizer = recognizer
        self._channel = RecognitionChannel()
        self._wake_lock = WakeLockGuard(wake_lock)
        self._interpreter = CommandInterpreter(self._phrases)
        self._recorder = recorder
        self._user_id = user_id
        self._on_degraded = on_degraded
        self._degraded: set[str] = set()

        self._sessions: dict[str, CookingSession] = {}
        self._active_id: str | None = None
        self._hands_free: HandsFreeController | None = None
        self._lock = threading.RLock()

        self._manual = ManualListening(
            recognizer,
            self._channel,
            on_transcript=self.handle_transcript,
            on_started=lambda: self._say("listening_on"),
        )

        self._scheduler.add_listener(self._on_timer_finished)

    @classmethod
    def from_config(
        cls,
        config: CuistoConfig,
        synthesizer: Synthesizer | None = None,
        recognizer: Recognizer | None = None,
        wake_lock: WakeLock | None = None,
        events: EngineEvents | None = None,
        recorder: "CompletionRecorder | None" = None,
        user_id: str | None = None,
        preferences_path: Path | None = None,
        on_degraded: Callable[[str], None] | None = None,
    ) -> "CookingOrchestrator":
        """Create an orchestrator from configuration.

        Args:
            config: Engine configuration.
            synthesizer: Speech synthesis capability.
            recognizer: Speech recognition capability.
            wake_lock: Screen wake-lock capability.
            events: Engine events to fire.
            recorder: Persists completed sessions.
            user_id: Cook credited for completed sessions.
            preferences_path: Voice preference file, defaults to ~/.cuisto.
            on_degraded: Called once per missing capability.

        Returns:
            Configured CookingOrchestrator instance
        """
        if config.phrases_path:
            phrases = load_phrase_table(config.phrases_path)
        else:
            phrases = default_phrase_table()

        preferences = load_preferences(preferences_path)
        speech = SpeechArbiter(
            synthesizer,
            phrases=phrases,
            preferences=preferences,
            config=config.speech,
            on_degraded=on_degraded,
            preferences_path=preferences_path,
        )

        try:
            policy = StartPolicy(config.scheduler.start_policy)
        except ValueError:
            logger.warning(
                f"Unknown start policy '{config.scheduler.start_policy}', using overwrite"
            )
            policy = StartPolicy.OVERWRITE

        scheduler = TimerScheduler(
            tick_interval=config.scheduler.tick_interval,
            start_policy=policy,
        )
        events = events or EngineEvents()

        return cls(
            scheduler=scheduler,
            speech=speech,
            phrases=phrases,
            events=events,
            alerts=AlertBoard(config.alerts.display_seconds, events),
            recognizer=recognizer,
            wake_lock=wake_lock,
            config=config,
            recorder=recorder,
            user_id=user_id,
            on_degraded=on_degraded,
        )

    @property
    def scheduler(self) -> TimerScheduler:
        return self._scheduler

    @property
    def speech(self) -> SpeechArbiter:
        return self._speech

    @property
    def alerts(self) -> AlertBoard:
        return self._alerts

    @property
    def events(self) -> EngineEvents:
        return self._events

    @property
    def channel(self) -> RecognitionChannel:
        return self._channel

    @property
    def wake_lock(self) -> WakeLockGuard:
        return self._wake_lock

    @property
    def hands_free(self) -> HandsFreeController | None:
        """Controller of the session in hands-free mode, if any."""
        return self._hands_free

    @property
    def sessions(self) -> list[CookingSession]:
        """Open sessions in the order they were opened."""
        with self._lock:
            return list(self._sessions.values())

    @property
    def active_session(self) -> CookingSession | None:
        """Session receiving voice commands."""
        with self._lock:
            if self._active_id is None:
                return None
            return self._sessions.get(self._active_id)

    def get(self, session_id: str) -> CookingSession:
        """Look up an open session.

        Raises:
            UnknownSessionError: If no open session has this id.
        """
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise UnknownSessionError(session_id)
        return session

    def open_session(self, recipe: Recipe, session_id: str | None = None) -> CookingSession:
        """Start cooking a recipe and make it the active session.

        Raises:
            ValueError: If the recipe has no steps.
        """
        session = CookingSession(
            recipe,
            self._scheduler,
            self._speech,
            phrases=self._phrases,
            events=self._events,
            session_id=session_id,
            recorder=self._recorder,
            user_id=self._user_id,
        )
        with self._lock:
            self._sessions[session.session_id] = session
            self._active_id = session.session_id
        logger.info(f"Opened session {session.session_id} for '{recipe.title}'")
        return session

    def close_session(self, session_id: str) -> None:
        """Tear down a session, its hands-free mode and its timers.

        Raises:
            UnknownSessionError: If no open session has this id.
        """
        session = self.get(session_id)

        hands_free = self._hands_free
        if hands_free is not None and hands_free.session is session:
            hands_free.deactivate(announce=False)
            self._hands_free = None

        session.close()
        with self._lock:
            del self._sessions[session_id]
            if self._active_id == session_id:
                remaining = list(self._sessions)
                self._active_id = remaining[-1] if remaining else None

    def select(self, session_id: str) -> CookingSession:
        """Route voice commands to a session.

        Raises:
            UnknownSessionError: If no open session has this id.
        """
        session = self.get(session_id)
        with self._lock:
            self._active_id = session_id
        logger.debug(f"Active session is now {session_id}")
        return session

    def completion_ratio(self, session_id: str) -> float:
        return self.get(session_id).completion_ratio

    def add_global_timer(self, name: str, seconds: int, category: str = "") -> TimerSnapshot:
        """Add a free-standing timer.

        Raises:
            ValueError: If seconds is not positive.
        """
        return self._scheduler.add_global_timer(name, seconds, category)

    def queue_recipe_timers(self, session_id: str) -> list[TimerSnapshot]:
        """Queue every timed step of a session as a free-standing timer."""
        return self.get(session_id).queue_all_step_timers()

    def go_to_step(self, session_id: str, step_index: int) -> None:
        """Jump a session to a step.

        Raises:
            UnknownSessionError: If no open session has this id.
            IndexError: If the step is outside the recipe.
        """
        self.get(session_id).go_to(step_index)

    def start_timer(
        self,
        session_id: str,
        step_index: int,
        policy: StartPolicy | None = None,
    ) -> TimerSnapshot | None:
        """Start the countdown of one step of a session.

        Returns:
            The timer snapshot, or None if the step has no duration.
        """
        return self.get(session_id).start_timer_for(step_index, policy=policy)

    def toggle_step_timer(self, session_id: str, step_index: int) -> bool:
        """Start or flip the timer of one step of a session."""
        return self.get(session_id).toggle_timer_for(step_index)

    def toggle_timer(self, key: TimerKey) -> bool:
        """Flip a registered timer between running and paused.

        Raises:
            UnknownTimerError: If the key is not registered.
        """
        self._require_timer(key)
        return self._scheduler.toggle(key)

    def reset_timer(self, key: TimerKey) -> None:
        """Restore a timer to its full duration, paused.

        Raises:
            UnknownTimerError: If the key is not registered.
        """
        self._require_timer(key)
        self._scheduler.reset(key)

    def delete_timer(self, key: TimerKey) -> None:
        """Remove a timer.

        Raises:
            UnknownTimerError: If the key is not registered.
        """
        if not self._scheduler.delete(key):
            raise UnknownTimerError(f"No timer registered for {key}")

    def pause_all(self) -> None:
        self._scheduler.pause_all()
        logger.info("Paused all timers")

    def resume_all(self) -> None:
        self._scheduler.resume_all()
        logger.info("Resumed all timers")

    def active_timers(self) -> list[TimerSnapshot]:
        return self._scheduler.active_timers()

    def interpret(self, transcript: str) -> VoiceCommand:
        return self._interpreter.interpret(transcript)

    def dispatch(self, command: VoiceCommand, session_id: str | None = None) -> None:
        """Perform a voice command.

        Args:
            command: Interpreted command.
            session_id: Target session, defaults to the active session.

        Raises:
            UnknownSessionError: If session_id is given but not open.
        """
        session = self.get(session_id) if session_id is not None else self.active_session
        if session is None:
            self._dispatch_without_session(command)
            return
        session.dispatch(command)

    def handle_transcript(self, transcript: str) -> VoiceCommand:
        """Interpret a transcript and dispatch it to the active session."""
        command = self.interpret(transcript)
        self.dispatch(command)
        return command

    def toggle_listening(self) -> bool:
        """Plain listen on/off toggle, outside hands-free mode.

        Raises:
            RecognitionBusyError: If hands-free mode holds the recognizer.
        """
        listening = self._manual.toggle()
        if not listening and not self._manual.supervisor.available:
            self._signal_degraded("speech recognition unavailable")
        return listening

    def activate_hands_free(self, session_id: str | None = None) -> HandsFreeController:
        """Put a session in hands-free mode.

        Any other session in hands-free mode is switched off first, and the
        session becomes the active one.

        Args:
            session_id: Target session, defaults to the active session.

        Raises:
            UnknownSessionError: If there is no such session.
            RecognitionBusyError: If manual listening holds the recognizer.
        """
        if session_id is not None:
            session = self.select(session_id)
        else:
            session = self.active_session
            if session is None:
                raise UnknownSessionError("<none>")

        current = self._hands_free
        if current is not None:
            if current.session is session and current.is_active:
                return current
            current.deactivate(announce=False)
            self._hands_free = None

        controller = HandsFreeController(
            session,
            self._speech,
            self._recognizer,
            self._channel,
            self._wake_lock,
            interpreter=self._interpreter,
            phrases=self._phrases,
            config=self._config.hands_free,
            dispatch=lambda command: self.dispatch(command, session.session_id),
            on_degraded=self._signal_degraded,
        )
        controller.activate()
        self._hands_free = controller
        return controller

    def deactivate_hands_free(self, announce: bool = True) -> bool:
        """Leave hands-free mode.

        Returns:
            True if hands-free mode was on.
        """
        controller = self._hands_free
        self._hands_free = None
        if controller is None:
            return False
        return controller.deactivate(announce=announce)

    def start(self) -> None:
        """Start the timer tick."""
        self._scheduler.start()
        logger.info("Cooking orchestrator started")

    def shutdown(self) -> None:
        """Leave hands-free mode, close every session and stop the tick."""
        self.deactivate_hands_free(announce=False)
        if self._manual.is_listening:
            self._manual.toggle()
        for session in self.sessions:
            self.close_session(session.session_id)
        self._scheduler.stop()
        self._speech.cancel()
        if self._recorder is not None:
            self._recorder.close()
        logger.info("Cooking orchestrator shut down")

    def _dispatch_without_session(self, command: VoiceCommand) -> None:
        if command.type == CommandType.PAUSE_TIMER:
            self.pause_all()
            self._say("all_paused")
        elif command.type == CommandType.RESUME_TIMER:
            self.resume_all()
            self._say("all_resumed")
        elif command.type == CommandType.QUERY_REMAINING:
            self._announce_active_timers()
        elif command.type == CommandType.HELP:
            self._say("help")
        else:
            logger.info(f"No session for command: '{command.raw}'")
            self._say("not_understood")

    def _announce_active_timers(self) -> None:
        timers = self.active_timers()
        if not timers:
            self._say("no_active_timers")
            return
        items = []
        for timer in timers:
            minutes, _ = split_minutes(timer.remaining_seconds)
            items.append(self._phrases.say("timer_summary_item", label=timer.label, minutes=minutes))
        self._say("active_timers_summary", summary=", ".join(items))

    def _on_timer_finished(self, snapshot: TimerSnapshot) -> None:
        if snapshot.is_global:
            spoken = self._phrases.say("global_timer_finished", name=snapshot.label)
            alert = self._phrases.say("global_timer_alert", name=snapshot.label)
        else:
            with self._lock:
                session = self._sessions.get(snapshot.key.owner)
            if session is None:
                logger.debug(f"Timer {snapshot.key} finished for a closed session")
                return
            number = (snapshot.step_index or 0) + 1
            title = session.recipe.title
            spoken = self._phrases.say("step_timer_finished", title=title, number=number)
            alert = self._phrases.say("step_timer_alert", title=title, number=number)

        self._speech.say(spoken)
        self._alerts.push(alert)
        self._events.timer_finished(snapshot.key)

    def _require_timer(self, key: TimerKey) -> None:
        if self._scheduler.get(key) is None:
            raise UnknownTimerError(f"No timer registered for {key}")

    def _signal_degraded(self, reason: str) -> None:
        if reason in self._degraded:
            return
        self._degraded.add(reason)
        logger.warning(f"Degraded capability: {reason}")
        if self._on_degraded is not None:
            try:
                self._on_degraded(reason)
            except Exception:
                logger.exception("Degraded-capability callback failed")

    def _say(self, key: str, **values: object) -> None:
        self._speech.say(self._phrases.say(key, **values))


__all__ = ["CookingOrchestrator"]
