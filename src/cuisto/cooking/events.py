"""Engine events exposed to collaborators.

Collaborators (UI, notification boundary) register plain callables. A
failing callback is logged and never interrupts the engine.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .scheduler import TimerKey

logger = logging.getLogger(__name__)


@dataclass
class EngineEvents:
    """Optional callbacks fired by the engine.

    Attributes:
        on_step_changed: Called with (session_id, step_index) after a move.
        on_timer_finished: Called with the key of a timer that reached zero.
        on_session_completed: Called with (session_id, minutes) once per session.
        on_alert: Called with the message of every new alert.
    """

    on_step_changed: Callable[[str, int], None] | None = None
    on_timer_finished: Callable[[TimerKey], None] | None = None
    on_session_completed: Callable[[str, int], None] | None = None
    on_alert: Callable[[str], None] | None = None

    def step_changed(self, session_id: str, step_index: int) -> None:
        self._fire("on_step_changed", session_id, step_index)

    def timer_finished(self, key: TimerKey) -> None:
        self._fire("on_timer_finished", key)

    def session_completed(self, session_id: str, minutes: int) -> None:
        self._fire("on_session_completed", session_id, minutes)

    def alert(self, message: str) -> None:
        self._fire("on_alert", message)

    def _fire(self, name: str, *args: Any) -> None:
        callback = getattr(self, name)
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception(f"Event callback {name} failed")


__all__ = ["EngineEvents"]
