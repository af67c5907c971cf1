"""Guided cooking session state machine.

A CookingSession walks one recipe step by step. It owns the step timers
registered under its session id and speaks through the shared
SpeechArbiter.
"""

import logging
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..config.phrases import PhraseTable, default_phrase_table
from ..voice.commands import CommandType, VoiceCommand
from .duration import parse_step_duration, split_minutes
from .events import EngineEvents
from .scheduler import StartPolicy, TimerKey, TimerScheduler, TimerSnapshot

if TYPE_CHECKING:
    from ..storage.recorder import CompletionRecorder
    from ..voice.speech import SpeechArbiter

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Recette"

# Spoken before the command runs; the command's own feedback follows.
_ACKNOWLEDGEMENTS: dict[CommandType, str] = {
    CommandType.NEXT: "ack_next",
    CommandType.PREVIOUS: "ack_previous",
    CommandType.START_TIMER: "ack_start_timer",
    CommandType.REPEAT: "ack_repeat",
    CommandType.COMPLETE: "ack_complete",
}


@dataclass(frozen=True)
class Step:
    """One recipe step.

    Attributes:
        instruction: What to do.
        duration: Optional explicit duration text ("10 min").
    """

    instruction: str
    duration: str | None = None


@dataclass(frozen=True)
class Recipe:
    """A read-only recipe as supplied by the recipe store."""

    id: str
    title: str
    steps: tuple[Step, ...]
    category: str = DEFAULT_CATEGORY

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Recipe":
        """Build a recipe from a plain mapping.

        Steps may be strings or mappings with 'instruction' and 'duration'.
        """
        steps = []
        for raw in data.get("steps", []) or []:
            if isinstance(raw, str):
                steps.append(Step(instruction=raw))
            else:
                duration = raw.get("duration")
                steps.append(
                    Step(
                        instruction=str(raw.get("instruction", "")),
                        duration=str(duration) if duration else None,
                    )
                )
        return cls(
            id=str(data.get("id") or f"temp_{uuid.uuid4().hex[:8]}"),
            title=str(data.get("title") or DEFAULT_CATEGORY),
            steps=tuple(steps),
            category=str(data.get("category") or DEFAULT_CATEGORY),
        )


class StepState(Enum):
    """Progress of a single step."""

    PENDING = "pending"
    CURRENT = "current"
    DONE = "done"


class CookingSession:
    """Step-by-step walkthrough of one recipe."""

    def __init__(
        self,
        recipe: Recipe,
        scheduler: TimerScheduler,
        speech: "SpeechArbiter",
        phrases: PhraseTable | None = None,
        events: EngineEvents | None = None,
        session_id: str | None = None,
        recorder: "CompletionRecorder | None" = None,
        user_id: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize a session positioned on the first step.

        Args:
            recipe: Recipe to cook.
            scheduler: Shared timer scheduler.
            speech: Shared speech arbiter.
            phrases: Phrase table for spoken feedback.
            events: Engine events to fire.
            session_id: Explicit id, generated if omitted.
            recorder: Receives the completed session for persistence.
            user_id: Cook to credit on completion, None if anonymous.
            clock: Monotonic time source in seconds.

        Raises:
            ValueError: If the recipe has no steps.
        """
        if not recipe.steps:
            raise ValueError(f"Recipe '{recipe.title}' has no steps")

        self.recipe = recipe
        self.session_id = session_id or str(uuid.uuid4())
        self.started_at = datetime.now(UTC)
        self.narrating = False

        self._scheduler = scheduler
        self._speech = speech
        self._phrases = phrases or default_phrase_table()
        self._events = events or EngineEvents()
        self._recorder = recorder
        self._user_id = user_id
        self._clock = clock
        self._started = clock()

        self._done = [False] * len(recipe.steps)
        self._current = 0
        self._finished_minutes: int | None = None
        self._closed = False
        self._step_listeners: list[Callable[[int], None]] = []
        self._lock = threading.RLock()

    @property
    def current_step_index(self) -> int:
        return self._current

    @property
    def current_step(self) -> Step:
        return self.recipe.steps[self._current]

    @property
    def step_count(self) -> int:
        return len(self.recipe.steps)

    @property
    def is_last_step(self) -> bool:
        return self._current == len(self.recipe.steps) - 1

    @property
    def completed_step_indices(self) -> frozenset[int]:
        return frozenset(i for i, done in enumerate(self._done) if done)

    @property
    def completion_ratio(self) -> float:
        """Fraction of steps marked done."""
        return sum(self._done) / len(self._done)

    @property
    def is_complete(self) -> bool:
        """Check if every step is marked done."""
        return all(self._done)

    @property
    def is_finished(self) -> bool:
        """Check if the session-completed event has fired."""
        return self._finished_minutes is not None

    @property
    def finished_minutes(self) -> int | None:
        return self._finished_minutes

    @property
    def is_closed(self) -> bool:
        return self._closed

    def step_states(self) -> list[StepState]:
        """Per-step state, with the cursor shown as CURRENT unless done."""
        states = []
        with self._lock:
            for index, done in enumerate(self._done):
                if done:
                    states.append(StepState.DONE)
                elif index == self._current:
                    states.append(StepState.CURRENT)
                else:
                    states.append(StepState.PENDING)
        return states

    def elapsed_minutes(self) -> int:
        """Whole minutes since the session started, at least one."""
        return max(1, round((self._clock() - self._started) / 60))

    def add_step_listener(self, listener: Callable[[int], None]) -> None:
        """Call listener with the new index after every step change."""
        self._step_listeners.append(listener)

    def remove_step_listener(self, listener: Callable[[int], None]) -> None:
        if listener in self._step_listeners:
            self._step_listeners.remove(listener)

    def next(self) -> bool:
        """Advance one step.

        Returns:
            True if moved, False if already on the last step.
        """
        index = self._step_by(1)
        if index is None:
            self._say("last_step")
            return False
        self._step_changed(index)
        return True

    def previous(self) -> bool:
        """Go back one step.

        Returns:
            True if moved, False if already on the first step.
        """
        index = self._step_by(-1)
        if index is None:
            self._say("first_step")
            return False
        self._step_changed(index)
        return True

    def go_to(self, index: int) -> None:
        """Jump to a step.

        Raises:
            IndexError: If the index is outside the recipe.
        """
        self._check_index(index)
        with self._lock:
            if index == self._current:
                return
            self._current = index
        self._step_changed(index)

    def mark_complete(self, index: int | None = None) -> bool:
        """Mark a step done and move past it.

        Completing the last step finishes the session.

        Args:
            index: Step to mark, defaults to the current step.

        Returns:
            True if this call finished the session.
        """
        with self._lock:
            index = self._current if index is None else index
            self._check_index(index)
            self._done[index] = True
            logger.debug(f"Session {self.session_id}: step {index + 1} done")

            if index < len(self.recipe.steps) - 1:
                self._current = index + 1
                minutes = None
            else:
                minutes = self._claim_finish()

        if index < len(self.recipe.steps) - 1:
            self._step_changed(index + 1)
            return False
        if minutes is None:
            return False
        self._announce_finish(minutes)
        return True

    def timer_key(self, index: int) -> TimerKey:
        return TimerKey(self.session_id, index)

    def step_duration(self, index: int) -> int | None:
        """Countdown length of a step, None if its text has none."""
        step = self.recipe.steps[index]
        return parse_step_duration(step.instruction, step.duration)

    def step_label(self, index: int) -> str:
        return self._phrases.say("step_label", title=self.recipe.title, number=index + 1)

    @property
    def timers(self) -> dict[int, TimerSnapshot]:
        """Snapshots of this session's step timers keyed by step index."""
        return {int(s.key.slot): s for s in self._scheduler.timers_for(self.session_id)}

    def start_current_timer(self) -> TimerSnapshot | None:
        return self.start_timer_for(self._current)

    def start_timer_for(
        self,
        index: int,
        policy: StartPolicy | None = None,
    ) -> TimerSnapshot | None:
        """Start the countdown of a step.

        Args:
            index: Step index.
            policy: Overrides the scheduler's start policy.

        Returns:
            The timer snapshot, or None if the step has no duration.
        """
        self._check_index(index)
        seconds = self.step_duration(index)
        if seconds is None:
            self._say("no_duration")
            return None

        key = self.timer_key(index)
        existing = self._scheduler.get(key)
        snapshot = self._scheduler.start_timer(
            key, seconds, label=self.step_label(index), policy=policy
        )

        resumed = (
            existing is not None
            and existing.remaining_seconds > 0
            and (policy or self._scheduler.start_policy) == StartPolicy.RESUME_IF_EXISTS
        )
        if resumed:
            self._say("timer_resumed")
            return snapshot

        minutes, secs = split_minutes(seconds)
        if minutes > 0:
            self._say("timer_started_minutes", minutes=minutes, plural="s" if minutes > 1 else "")
        else:
            self._say("timer_started_seconds", seconds=secs)
        return snapshot

    def pause_current_timer(self) -> bool:
        """Pause the current step's timer.

        Returns:
            True if a running timer was paused.
        """
        if self.step_duration(self._current) is None:
            self._say("no_duration")
            return False
        if self._scheduler.pause(self.timer_key(self._current)):
            self._say("timer_paused")
            return True
        self._say("no_timer")
        return False

    def resume_current_timer(self) -> bool:
        """Resume the current step's timer.

        Returns:
            True if a paused timer was resumed.
        """
        if self.step_duration(self._current) is None:
            self._say("no_duration")
            return False
        if self._scheduler.resume(self.timer_key(self._current)):
            self._say("timer_resumed")
            return True
        self._say("no_timer")
        return False

    def toggle_timer_for(self, index: int) -> bool:
        """Start a step's timer, or flip it if it already exists.

        Returns:
            True if a timer changed state.
        """
        self._check_index(index)
        key = self.timer_key(index)
        if self._scheduler.get(key) is None:
            return self.start_timer_for(index) is not None
        return self._scheduler.toggle(key)

    def queue_all_step_timers(self) -> list[TimerSnapshot]:
        """Add a free-standing timer for every step that has a duration."""
        added = []
        for index in range(len(self.recipe.steps)):
            seconds = self.step_duration(index)
            if seconds is None:
                continue
            added.append(
                self._scheduler.add_global_timer(
                    self.step_label(index), seconds, self.recipe.category
                )
            )
        count = len(added)
        self._say("timers_queued", count=count, plural="s" if count > 1 else "")
        return added

    def announce_current_step(self) -> None:
        """Speak the current step number, instruction and duration."""
        step = self.current_step
        duration = ""
        if step.duration:
            duration = self._phrases.say("duration_suffix", duration=step.duration)
        self._say(
            "step_announcement",
            number=self._current + 1,
            instruction=step.instruction,
            duration=duration,
        )

    def announce_remaining(self) -> None:
        """Speak the time left on the current step's timer."""
        snapshot = self._scheduler.get(self.timer_key(self._current))
        if snapshot is None or snapshot.remaining_seconds <= 0:
            self._say("no_timer")
            return
        minutes, secs = split_minutes(snapshot.remaining_seconds)
        self._say("remaining", minutes=minutes, seconds=secs)

    def announce_help(self) -> None:
        self._say("help")

    def dispatch(self, command: VoiceCommand) -> None:
        """Perform a voice command on this session.

        Unrecognized commands only produce spoken feedback.
        """
        handlers: dict[CommandType, Callable[[], Any]] = {
            CommandType.NEXT: self.next,
            CommandType.PREVIOUS: self.previous,
            CommandType.START_TIMER: self.start_current_timer,
            CommandType.PAUSE_TIMER: self.pause_current_timer,
            CommandType.RESUME_TIMER: self.resume_current_timer,
            CommandType.REPEAT: self.announce_current_step,
            CommandType.COMPLETE: self.mark_complete,
            CommandType.QUERY_REMAINING: self.announce_remaining,
            CommandType.HELP: self.announce_help,
        }
        handler = handlers.get(command.type)
        if handler is None:
            logger.info(f"Unrecognized command: '{command.raw}'")
            self._say("not_understood")
            return

        logger.info(f"Session {self.session_id}: {command.type.value}")
        ack = _ACKNOWLEDGEMENTS.get(command.type)
        if ack is not None and ack in self._phrases.messages:
            self._say(ack)
        handler()

    def close(self) -> None:
        """Destroy the session's timers and listeners."""
        if self._closed:
            return
        removed = self._scheduler.delete_owner(self.session_id)
        self._step_listeners.clear()
        self._closed = True
        logger.info(f"Closed session {self.session_id} ({removed} timers removed)")

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.recipe.steps):
            raise IndexError(f"Step {index} out of range for '{self.recipe.title}'")

    def _step_by(self, delta: int) -> int | None:
        with self._lock:
            target = self._current + delta
            if not 0 <= target < len(self.recipe.steps):
                return None
            self._current = target
            return target

    def _step_changed(self, index: int) -> None:
        if not self.narrating:
            self._say("step_number", number=index + 1)
        self._events.step_changed(self.session_id, index)
        for listener in list(self._step_listeners):
            try:
                listener(index)
            except Exception:
                logger.exception("Step listener failed")

    def _claim_finish(self) -> int | None:
        # Caller holds the lock; only the first claim gets the minutes.
        if self._finished_minutes is not None:
            return None
        self._finished_minutes = self.elapsed_minutes()
        return self._finished_minutes

    def _announce_finish(self, minutes: int) -> None:
        logger.info(f"Session {self.session_id} completed '{self.recipe.title}' in {minutes} min")
        self._say("recipe_finished")
        self._events.session_completed(self.session_id, minutes)

        if self._recorder is not None and self._user_id is not None:
            self._recorder.submit(self._user_id, self.recipe.id, self.recipe.title, minutes)

    def _say(self, key: str, **values: Any) -> None:
        self._speech.say(self._phrases.say(key, **values))


__all__ = [
    "DEFAULT_CATEGORY",
    "CookingSession",
    "Recipe",
    "Step",
    "StepState",
]
