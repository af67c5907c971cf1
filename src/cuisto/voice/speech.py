"""Spoken feedback arbitration.

The SpeechArbiter owns the single utterance slot of the engine. Saying
something new cancels whatever is queued or playing (barge-in); there is
never more than one utterance in flight.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ..config import SpeechConfig
from ..config.phrases import PhraseTable, default_phrase_table
from ..config.preferences import VoicePreferences, save_preferences

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Voice:
    """A synthetic voice offered by the platform.

    Attributes:
        name: Platform voice name (e.g. "Amélie").
        lang: BCP-47 language tag (e.g. "fr-CA").
    """

    name: str
    lang: str


@dataclass(frozen=True)
class Utterance:
    """A unit of synthesized speech.

    Attributes:
        text: Text to speak.
        voice_preference: Requested voice gender.
        voice: Selected voice, None to let the platform decide.
        lang: Language tag.
        pitch: Pitch multiplier.
        rate: Speaking rate multiplier.
    """

    text: str
    voice_preference: str
    voice: Voice | None
    lang: str
    pitch: float
    rate: float


class CancellationToken:
    """Marks an utterance as superseded."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


class Synthesizer(Protocol):
    """Interface for a speech synthesis capability.

    Implementations wrap a platform engine. speak() must not block until
    playback ends; the engine reports the end through
    SpeechArbiter.finished().
    """

    def get_voices(self) -> list[Voice]:
        """Return the voices currently available."""
        ...

    def speak(self, utterance: Utterance, token: CancellationToken) -> None:
        """Start speaking an utterance.

        Args:
            utterance: What to say and how.
            token: Cancelled when the utterance is superseded.

        Raises:
            RuntimeError: If synthesis cannot be started
        """
        ...

    def cancel(self) -> None:
        """Stop current speech and drop anything queued.

        Safe to call even if nothing is playing.
        """
        ...


class SpeechArbiter:
    """Single-slot, cancel-and-replace dispatcher for spoken feedback."""

    def __init__(
        self,
        synthesizer: Synthesizer | None,
        phrases: PhraseTable | None = None,
        preferences: VoicePreferences | None = None,
        config: SpeechConfig | None = None,
        on_degraded: Callable[[str], None] | None = None,
        preferences_path: Path | None = None,
    ) -> None:
        """Initialize the arbiter.

        Args:
            synthesizer: Speech synthesis capability, None if unavailable.
            phrases: Phrase table providing voice names and sample phrases.
            preferences: Persisted voice preferences.
            config: Speech configuration (language, rate, pitches).
            on_degraded: Called once if speech has to be disabled.
            preferences_path: Where to persist preference changes.
        """
        self._synth = synthesizer
        self._phrases = phrases or default_phrase_table()
        self._config = config or SpeechConfig()
        self._preferences = preferences or VoicePreferences(
            voice_gender=self._config.default_gender
        )
        self._preferences_path = preferences_path
        self._on_degraded = on_degraded
        self._degraded_signalled = False
        self._lock = threading.RLock()
        self._current: Utterance | None = None
        self._current_token: CancellationToken | None = None
        self.voice_error = False

    @property
    def available(self) -> bool:
        """Check if a synthesizer is present."""
        return self._synth is not None

    @property
    def degraded(self) -> bool:
        """Check if the degraded signal has been raised."""
        return self._degraded_signalled

    @property
    def voice_gender(self) -> str:
        return self._preferences.voice_gender

    @property
    def current(self) -> Utterance | None:
        """The utterance occupying the slot, if any."""
        with self._lock:
            return self._current

    def say(self, text: str) -> Utterance | None:
        """Speak text, cancelling anything currently queued or playing.

        Args:
            text: Text to speak.

        Returns:
            The dispatched utterance, or None when speech is unavailable.
        """
        if self._synth is None:
            self._signal_degraded("speech synthesis unavailable")
            return None

        utterance = self._build_utterance(text)
        with self._lock:
            if self._current_token is not None:
                self._current_token.cancel()
            token = CancellationToken()
            self._current = utterance
            self._current_token = token

            try:
                self._synth.cancel()
                self._synth.speak(utterance, token)
                self.voice_error = False
                logger.debug(f"Speaking: '{text}'")
            except Exception as e:
                logger.warning(f"Speech synthesis failed: {e}")
                self.voice_error = True
                self._current = None
                self._current_token = None

        return utterance

    def finished(self, token: CancellationToken) -> None:
        """Free the slot when the utterance owning token ends."""
        with self._lock:
            if token is self._current_token:
                self._current = None
                self._current_token = None

    def cancel(self) -> None:
        """Silence current speech and empty the slot."""
        with self._lock:
            if self._current_token is not None:
                self._current_token.cancel()
            self._current = None
            self._current_token = None
            if self._synth is not None:
                try:
                    self._synth.cancel()
                except Exception as e:
                    logger.warning(f"Failed to cancel speech: {e}")

    def set_voice_gender(self, gender: str) -> Utterance | None:
        """Change and persist the voice gender, then speak a sample.

        Raises:
            ValueError: If the gender is not supported.
        """
        self._preferences.set_voice_gender(gender)
        save_preferences(self._preferences, self._preferences_path)
        logger.info(f"Voice gender set to {self._preferences.voice_gender}")
        return self.say(self._phrases.say(f"voice_sample_{self._preferences.voice_gender}"))

    def available_voices(self) -> list[Voice]:
        """Voices matching the target language."""
        if self._synth is None:
            return []
        try:
            voices = self._synth.get_voices()
        except Exception as e:
            logger.warning(f"Could not list synthesizer voices: {e}")
            return []
        prefix = self._config.language.split("-")[0].lower()
        return [v for v in voices if v.lang.lower().startswith(prefix)]

    def select_voice(self, gender: str) -> Voice | None:
        """Pick the best voice for a gender using a first-name heuristic.

        Falls back to any voice not named like the other gender, then to
        position in the list, then to the first voice in the language.
        """
        voices = self.available_voices()
        if not voices:
            return None

        other = "male" if gender == "female" else "female"
        wanted_names = self._phrases.voice_names.get(gender, [])
        other_names = self._phrases.voice_names.get(other, [])

        for voice in voices:
            if any(n in voice.name.lower() for n in wanted_names):
                return voice

        for voice in voices:
            if not any(n in voice.name.lower() for n in other_names):
                return voice

        if len(voices) > 1:
            return voices[1] if gender == "female" else voices[0]
        return voices[0]

    def _build_utterance(self, text: str) -> Utterance:
        gender = self._preferences.voice_gender
        pitch = self._config.female_pitch if gender == "female" else self._config.male_pitch
        return Utterance(
            text=text,
            voice_preference=gender,
            voice=self.select_voice(gender),
            lang=self._config.language,
            pitch=pitch,
            rate=self._config.rate,
        )

    def _signal_degraded(self, reason: str) -> None:
        if self._degraded_signalled:
            return
        self._degraded_signalled = True
        logger.warning(f"Spoken feedback disabled: {reason}")
        if self._on_degraded is not None:
            try:
                self._on_degraded(reason)
            except Exception:
                logger.exception("Degraded-capability callback failed")


__all__ = [
    "CancellationToken",
    "SpeechArbiter",
    "Synthesizer",
    "Utterance",
    "Voice",
]
