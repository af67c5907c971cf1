"""Cooking sessions and countdown timers.

Provides duration parsing, the shared timer scheduler, the step-by-step
cooking session, engine events and the alert board. The multi-recipe
orchestrator lives in cuisto.cooking.orchestrator.
"""

from .alerts import ALERT_DISPLAY_SECONDS, Alert, AlertBoard
from .duration import format_clock, parse_duration, parse_step_duration, split_minutes
from .events import EngineEvents
from .scheduler import (
    GLOBAL_OWNER,
    StartPolicy,
    TimerKey,
    TimerScheduler,
    TimerSnapshot,
)
from .session import DEFAULT_CATEGORY, CookingSession, Recipe, Step, StepState

__all__ = [
    "ALERT_DISPLAY_SECONDS",
    "Alert",
    "AlertBoard",
    "CookingSession",
    "DEFAULT_CATEGORY",
    "EngineEvents",
    "GLOBAL_OWNER",
    "Recipe",
    "StartPolicy",
    "Step",
    "StepState",
    "TimerKey",
    "TimerScheduler",
    "TimerSnapshot",
    "format_clock",
    "parse_duration",
    "parse_step_duration",
    "split_minutes",
]
