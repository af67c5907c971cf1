"""Mock voice capabilities for testing.

Provides controllable in-process implementations of the synthesizer,
recognizer and wake-lock protocols for unit tests and the text-driven CLI.
"""

import logging
from collections.abc import Callable

from .speech import CancellationToken, Utterance, Voice

logger = logging.getLogger(__name__)


class MockSynthesizer:
    """Mock synthesizer that records what it was asked to say."""

    def __init__(
        self,
        voices: list[Voice] | None = None,
        echo: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize mock synthesizer.

        Args:
            voices: Voices to advertise.
            echo: Optional sink for spoken text (e.g. print in the CLI).
        """
        self._voices = voices if voices is not None else [
            Voice(name="Amélie", lang="fr-CA"),
            Voice(name="Thomas", lang="fr-FR"),
            Voice(name="Samantha", lang="en-US"),
        ]
        self._echo = echo
        self._utterances: list[Utterance] = []
        self._tokens: list[CancellationToken] = []
        self._cancel_count = 0
        self._fail_next = False

    def get_voices(self) -> list[Voice]:
        return list(self._voices)

    def speak(self, utterance: Utterance, token: CancellationToken) -> None:
        if self._fail_next:
            self._fail_next = False
            raise RuntimeError("Mock synthesis failure")
        self._utterances.append(utterance)
        self._tokens.append(token)
        if self._echo is not None:
            self._echo(utterance.text)

    def cancel(self) -> None:
        self._cancel_count += 1

    def fail_next(self) -> None:
        """Make the next speak() call raise."""
        self._fail_next = True

    @property
    def utterances(self) -> list[Utterance]:
        return list(self._utterances)

    @property
    def spoken_texts(self) -> list[str]:
        return [u.text for u in self._utterances]

    @property
    def last_text(self) -> str | None:
        return self._utterances[-1].text if self._utterances else None

    @property
    def tokens(self) -> list[CancellationToken]:
        return list(self._tokens)

    @property
    def cancel_count(self) -> int:
        return self._cancel_count

    def clear(self) -> None:
        """Reset mock state."""
        self._utterances.clear()
        self._tokens.clear()
        self._cancel_count = 0


class MockRecognizer:
    """Mock recognizer driven by the test.

    Call hear(), fail() or end() to simulate the platform callbacks.
    """

    def __init__(self) -> None:
        self._on_result: Callable[[str], None] | None = None
        self._on_error: Callable[[str], None] | None = None
        self._on_end: Callable[[], None] | None = None
        self._running = False
        self._start_count = 0
        self._stop_count = 0
        self._fail_starts = 0

    def bind(
        self,
        on_result: Callable[[str], None],
        on_error: Callable[[str], None],
        on_end: Callable[[], None],
    ) -> None:
        self._on_result = on_result
        self._on_error = on_error
        self._on_end = on_end

    def start(self, continuous: bool) -> None:
        self._start_count += 1
        if self._fail_starts > 0:
            self._fail_starts -= 1
            raise RuntimeError("Mock recognition already started")
        self._running = True

    def stop(self) -> None:
        self._stop_count += 1
        self._running = False

    def fail_next_starts(self, count: int = 1) -> None:
        """Make the next count start() calls raise."""
        self._fail_starts = count

    def hear(self, transcript: str) -> None:
        """Deliver a final transcript."""
        if self._on_result is not None:
            self._on_result(transcript)

    def fail(self, error: str) -> None:
        """Report a recognition error; the platform then ends the session."""
        self._running = False
        if self._on_error is not None:
            self._on_error(error)
        if self._on_end is not None:
            self._on_end()

    def end(self) -> None:
        """End the recognition session without an error."""
        self._running = False
        if self._on_end is not None:
            self._on_end()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def start_count(self) -> int:
        return self._start_count

    @property
    def stop_count(self) -> int:
        return self._stop_count


class MockWakeLock:
    """Mock screen wake lock."""

    def __init__(self, refuse: bool = False) -> None:
        self._refuse = refuse
        self._held = False
        self._request_count = 0

    def request(self) -> None:
        self._request_count += 1
        if self._refuse:
            raise RuntimeError("Wake lock request denied")
        self._held = True

    def release(self) -> None:
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    @property
    def request_count(self) -> int:
        return self._request_count


__all__ = ["MockRecognizer", "MockSynthesizer", "MockWakeLock"]
