"""Countdown scheduling for step timers and free-standing timers.

Every countdown in the engine lives in one registry owned by the
TimerScheduler. A single periodic tick decrements all running entries;
callers only ever see read-only snapshots.
"""

import itertools
import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

GLOBAL_OWNER = "global"


@dataclass(frozen=True)
class TimerKey:
    """Registry key of a countdown.

    Attributes:
        owner: Session id, or GLOBAL_OWNER for free-standing timers.
        slot: Step index for session timers, timer id for global timers.
    """

    owner: str
    slot: int | str

    @property
    def is_global(self) -> bool:
        """Check if the key belongs to a free-standing timer."""
        return self.owner == GLOBAL_OWNER


class StartPolicy(Enum):
    """What start_timer does when the key already has an entry.

    - OVERWRITE: replace the entry, discarding its progress
    - RESUME_IF_EXISTS: keep the entry and resume it if time is left
    """

    OVERWRITE = "overwrite"
    RESUME_IF_EXISTS = "resume_if_exists"


@dataclass
class Countdown:
    """Mutable registry entry. Only the scheduler touches these."""

    key: TimerKey
    total_seconds: int
    remaining_seconds: int
    running: bool
    sequence: int
    label: str = ""

    def snapshot(self) -> "TimerSnapshot":
        return TimerSnapshot(
            key=self.key,
            label=self.label,
            total_seconds=self.total_seconds,
            remaining_seconds=self.remaining_seconds,
            running=self.running,
            sequence=self.sequence,
            category=None,
        )


@dataclass
class StepTimer(Countdown):
    """Countdown bound to one step of a cooking session."""

    @property
    def step_index(self) -> int:
        return int(self.key.slot)


@dataclass
class GlobalTimer(Countdown):
    """Free-standing countdown not bound to any session."""

    name: str = ""
    category: str = ""

    @property
    def id(self) -> str:
        return str(self.key.slot)

    def snapshot(self) -> "TimerSnapshot":
        return TimerSnapshot(
            key=self.key,
            label=self.label or self.name,
            total_seconds=self.total_seconds,
            remaining_seconds=self.remaining_seconds,
            running=self.running,
            sequence=self.sequence,
            category=self.category,
        )


@dataclass(frozen=True)
class TimerSnapshot:
    """Read-only view of a countdown at one instant.

    Attributes:
        key: Registry key.
        label: Human-readable name.
        total_seconds: Initial duration.
        remaining_seconds: Seconds left.
        running: Whether the countdown is ticking.
        sequence: Insertion order, used to break ties.
        category: Category of a global timer, None for step timers.
    """

    key: TimerKey
    label: str
    total_seconds: int
    remaining_seconds: int
    running: bool
    sequence: int
    category: str | None

    @property
    def is_global(self) -> bool:
        return self.key.is_global

    @property
    def step_index(self) -> int | None:
        """Step index for session timers, None for global timers."""
        if self.key.is_global:
            return None
        return int(self.key.slot)

    @property
    def progress(self) -> float:
        """Elapsed fraction in [0, 1]."""
        if self.total_seconds <= 0:
            return 1.0
        return (self.total_seconds - self.remaining_seconds) / self.total_seconds


TimerListener = Callable[[TimerSnapshot], None]


class TimerScheduler:
    """Single registry of every countdown, driven by one periodic tick.

    All mutation happens under one lock, so a tick is atomic for the
    whole registry. Completion listeners run after the lock is released
    and after every running entry has been decremented.
    """

    def __init__(
        self,
        tick_interval: float = 1.0,
        start_policy: StartPolicy = StartPolicy.OVERWRITE,
    ) -> None:
        """Initialize the scheduler.

        Args:
            tick_interval: Seconds between ticks of the background thread.
            start_policy: Default behavior of start_timer on an existing key.
        """
        self._tick_interval = tick_interval
        self._start_policy = start_policy
        self._entries: dict[TimerKey, Countdown] = {}
        self._lock = threading.RLock()
        self._sequence = itertools.count()
        self._listeners: list[TimerListener] = []
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def tick_interval(self) -> float:
        return self._tick_interval

    @property
    def start_policy(self) -> StartPolicy:
        return self._start_policy

    @property
    def is_running(self) -> bool:
        """Check if the background tick thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def add_listener(self, listener: TimerListener) -> None:
        """Register a completion listener called with the finished snapshot."""
        self._listeners.append(listener)

    def remove_listener(self, listener: TimerListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def start_timer(
        self,
        key: TimerKey,
        duration_seconds: int,
        label: str = "",
        policy: StartPolicy | None = None,
    ) -> TimerSnapshot:
        """Start a countdown for a key.

        Args:
            key: Registry key.
            duration_seconds: Countdown length, must be positive.
            label: Human-readable name.
            policy: Overrides the scheduler's default start policy.

        Returns:
            Snapshot of the started entry.

        Raises:
            ValueError: If the duration is not positive or the key is global.
        """
        if duration_seconds <= 0:
            raise ValueError(f"Timer duration must be positive, got {duration_seconds}")
        if key.is_global:
            raise ValueError(f"Global timer {key.slot} can only be reset, not started as a step")

        policy = policy or self._start_policy

        with self._lock:
            existing = self._entries.get(key)
            if (
                existing is not None
                and policy == StartPolicy.RESUME_IF_EXISTS
                and existing.remaining_seconds > 0
            ):
                existing.running = True
                logger.debug(f"Resumed existing timer {key} ({existing.remaining_seconds}s left)")
                return existing.snapshot()

            sequence = existing.sequence if existing is not None else next(self._sequence)
            entry = StepTimer(
                key=key,
                total_seconds=duration_seconds,
                remaining_seconds=duration_seconds,
                running=True,
                sequence=sequence,
                label=label,
            )
            self._entries[key] = entry
            logger.debug(f"Started timer {key} for {duration_seconds}s")
            return entry.snapshot()

    def add_global_timer(
        self,
        name: str,
        duration_seconds: int,
        category: str = "",
    ) -> TimerSnapshot:
        """Register a running free-standing timer.

        Args:
            name: Timer name, also used as its label.
            duration_seconds: Countdown length, must be positive.
            category: Free-form category (e.g. "Viandes").

        Returns:
            Snapshot of the new timer.

        Raises:
            ValueError: If the duration is not positive.
        """
        if duration_seconds <= 0:
            raise ValueError(f"Timer duration must be positive, got {duration_seconds}")

        key = TimerKey(GLOBAL_OWNER, str(uuid.uuid4()))
        with self._lock:
            entry = GlobalTimer(
                key=key,
                total_seconds=duration_seconds,
                remaining_seconds=duration_seconds,
                running=True,
                sequence=next(self._sequence),
                name=name,
                category=category,
            )
            self._entries[key] = entry
            logger.info(f"Added timer '{name}' for {duration_seconds}s")
            return entry.snapshot()

    def get(self, key: TimerKey) -> TimerSnapshot | None:
        """Get a snapshot of one entry, or None if not registered."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.snapshot() if entry is not None else None

    def timers_for(self, owner: str) -> list[TimerSnapshot]:
        """Get snapshots of every entry belonging to an owner."""
        with self._lock:
            return [e.snapshot() for e in self._entries.values() if e.key.owner == owner]

    def all_timers(self) -> list[TimerSnapshot]:
        """Get snapshots of every entry in insertion order."""
        with self._lock:
            return [e.snapshot() for e in self._entries.values()]

    def toggle(self, key: TimerKey) -> bool:
        """Flip a timer between running and paused.

        Resuming a timer with no time left does nothing.

        Returns:
            True if the state changed, False otherwise.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.running:
                entry.running = False
                return True
            if entry.remaining_seconds <= 0:
                return False
            entry.running = True
            return True

    def pause(self, key: TimerKey) -> bool:
        """Pause a running timer.

        Returns:
            True if paused, False if not found or not running.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.running:
                return False
            entry.running = False
            return True

    def resume(self, key: TimerKey) -> bool:
        """Resume a paused timer that still has time left.

        Returns:
            True if resumed, False otherwise.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.running or entry.remaining_seconds <= 0:
                return False
            entry.running = True
            return True

    def reset(self, key: TimerKey) -> bool:
        """Restore a timer to its full duration, paused.

        Returns:
            True if reset, False if not found.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            entry.remaining_seconds = entry.total_seconds
            entry.running = False
            return True

    def delete(self, key: TimerKey) -> bool:
        """Remove a timer.

        Returns:
            True if removed, False if not found.
        """
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_owner(self, owner: str) -> int:
        """Remove every timer of an owner.

        Returns:
            Number of timers removed.
        """
        with self._lock:
            keys = [k for k in self._entries if k.owner == owner]
            for key in keys:
                del self._entries[key]
            return len(keys)

    def pause_all(self) -> None:
        """Pause every timer."""
        with self._lock:
            for entry in self._entries.values():
                entry.running = False

    def resume_all(self) -> None:
        """Resume every timer that still has time left."""
        with self._lock:
            for entry in self._entries.values():
                entry.running = entry.remaining_seconds > 0

    def active_timers(self) -> list[TimerSnapshot]:
        """List timers with time left, shortest first.

        Ties keep insertion order.
        """
        with self._lock:
            active = [e.snapshot() for e in self._entries.values() if e.remaining_seconds > 0]
        return sorted(active, key=lambda s: (s.remaining_seconds, s.sequence))

    def tick(self) -> list[TimerSnapshot]:
        """Advance every running timer by one second.

        Returns:
            Snapshots of the timers that reached zero on this tick.
        """
        finished: list[TimerSnapshot] = []
        with self._lock:
            for entry in self._entries.values():
                if not entry.running:
                    continue
                entry.remaining_seconds = max(0, entry.remaining_seconds - 1)
                if entry.remaining_seconds == 0:
                    entry.running = False
                    finished.append(entry.snapshot())

        for snapshot in finished:
            logger.info(f"Timer finished: {snapshot.label or snapshot.key}")
            self._notify(snapshot)

        return finished

    def start(self) -> None:
        """Start the background tick thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._tick_loop, name="cuisto-tick", daemon=True)
        self._thread.start()
        logger.debug(f"Tick thread started ({self._tick_interval}s interval)")

    def stop(self) -> None:
        """Stop the background tick thread."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None

    def _tick_loop(self) -> None:
        while not self._stop_event.wait(self._tick_interval):
            self.tick()

    def _notify(self, snapshot: TimerSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Timer listener failed for {snapshot.key}")


__all__ = [
    "GLOBAL_OWNER",
    "Countdown",
    "GlobalTimer",
    "StartPolicy",
    "StepTimer",
    "TimerKey",
    "TimerListener",
    "TimerScheduler",
    "TimerSnapshot",
]
