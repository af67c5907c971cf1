"""Short-lived timer alerts.

Alerts are advisory banners ("Pâtes - Étape 2 terminée !") that disappear
after a fixed display window. They are never authoritative state.
"""

import itertools
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from .events import EngineEvents

logger = logging.getLogger(__name__)

ALERT_DISPLAY_SECONDS: float = 5.0


@dataclass(frozen=True)
class Alert:
    """A transient alert.

    Attributes:
        id: Monotonic alert id.
        message: Text to display.
        created_at: When the alert was raised.
    """

    id: int
    message: str
    created_at: datetime


class AlertBoard:
    """Holds the alerts currently on display."""

    def __init__(
        self,
        display_seconds: float = ALERT_DISPLAY_SECONDS,
        events: EngineEvents | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the board.

        Args:
            display_seconds: How long an alert stays visible.
            events: Engine events receiving on_alert.
            clock: Time source, defaults to the current UTC time.
        """
        self._window = timedelta(seconds=display_seconds)
        self._events = events or EngineEvents()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._alerts: list[Alert] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def push(self, message: str) -> Alert:
        """Raise a new alert and notify listeners."""
        alert = Alert(id=next(self._ids), message=message, created_at=self._clock())
        with self._lock:
            self._alerts.append(alert)
        logger.info(f"Alert: {message}")
        self._events.alert(message)
        return alert

    def active(self) -> list[Alert]:
        """Return alerts still inside their display window, oldest first."""
        now = self._clock()
        with self._lock:
            self._alerts = [a for a in self._alerts if now - a.created_at < self._window]
            return list(self._alerts)

    def dismiss(self, alert_id: int) -> bool:
        """Remove an alert before it expires."""
        with self._lock:
            before = len(self._alerts)
            self._alerts = [a for a in self._alerts if a.id != alert_id]
            return len(self._alerts) < before


__all__ = ["ALERT_DISPLAY_SECONDS", "Alert", "AlertBoard"]
