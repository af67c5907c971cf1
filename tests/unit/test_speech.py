"""Unit tests for the speech output arbiter."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from cuisto.config import SpeechConfig, VoicePreferences
from cuisto.voice.mock import MockSynthesizer
from cuisto.voice.speech import SpeechArbiter, Voice


@pytest.fixture
def synth() -> MockSynthesizer:
    """Create a mock synthesizer with French and English voices."""
    return MockSynthesizer()


@pytest.fixture
def arbiter(synth: MockSynthesizer) -> SpeechArbiter:
    """Create an arbiter over the mock synthesizer."""
    return SpeechArbiter(synth, preferences=VoicePreferences())


class TestSay:
    """Tests for single-slot speech dispatch."""

    def test_say_dispatches_utterance(
        self, arbiter: SpeechArbiter, synth: MockSynthesizer
    ) -> None:
        """Test say() builds and plays an utterance."""
        utterance = arbiter.say("Étape 1")

        assert synth.last_text == "Étape 1"
        assert utterance is not None
        assert utterance.lang == "fr-FR"
        assert utterance.rate == 0.9
        assert arbiter.current == utterance

    def test_barge_in_cancels_previous(
        self, arbiter: SpeechArbiter, synth: MockSynthesizer
    ) -> None:
        """Test a new utterance cancels the one in flight."""
        arbiter.say("premier")
        arbiter.say("second")

        first_token, second_token = synth.tokens
        assert first_token.is_cancelled is True
        assert second_token.is_cancelled is False
        assert synth.cancel_count == 2
        assert arbiter.current.text == "second"

    def test_finished_frees_slot(self, arbiter: SpeechArbiter, synth: MockSynthesizer) -> None:
        """Test the slot empties when the current utterance ends."""
        arbiter.say("bonjour")
        arbiter.finished(synth.tokens[-1])
        assert arbiter.current is None

    def test_finished_ignores_superseded_token(
        self, arbiter: SpeechArbiter, synth: MockSynthesizer
    ) -> None:
        """Test a stale end notification keeps the newer utterance."""
        arbiter.say("premier")
        arbiter.say("second")
        arbiter.finished(synth.tokens[0])
        assert arbiter.current.text == "second"

    def test_cancel_silences(self, arbiter: SpeechArbiter, synth: MockSynthesizer) -> None:
        """Test cancel empties the slot and cancels the token."""
        arbiter.say("bonjour")
        arbiter.cancel()
        assert arbiter.current is None
        assert synth.tokens[-1].is_cancelled is True

    def test_synthesis_failure_is_contained(
        self, arbiter: SpeechArbiter, synth: MockSynthesizer
    ) -> None:
        """Test a synthesizer exception sets voice_error instead of raising."""
        synth.fail_next()
        arbiter.say("bonjour")

        assert arbiter.voice_error is True
        assert arbiter.current is None

        arbiter.say("encore")
        assert arbiter.voice_error is False

    def test_no_synthesizer_signals_once(self) -> None:
        """Test the degraded signal fires once without a synthesizer."""
        on_degraded = MagicMock()
        arbiter = SpeechArbiter(None, on_degraded=on_degraded)

        assert arbiter.say("un") is None
        assert arbiter.say("deux") is None

        on_degraded.assert_called_once()
        assert arbiter.degraded is True
        assert arbiter.available is False


class TestVoiceSelection:
    """Tests for the voice-name heuristic."""

    def test_filters_target_language(self, arbiter: SpeechArbiter) -> None:
        """Test only voices of the target language are offered."""
        names = [v.name for v in arbiter.available_voices()]
        assert names == ["Amélie", "Thomas"]

    def test_female_by_name(self, arbiter: SpeechArbiter) -> None:
        """Test a female first name is preferred for the female voice."""
        assert arbiter.select_voice("female").name == "Amélie"

    def test_male_by_name(self, arbiter: SpeechArbiter) -> None:
        """Test a male first name is preferred for the male voice."""
        assert arbiter.select_voice("male").name == "Thomas"

    def test_falls_back_to_not_other_gender(self) -> None:
        """Test an unknown name beats a name of the other gender."""
        synth = MockSynthesizer(voices=[Voice("Thomas", "fr-FR"), Voice("Google français", "fr-FR")])
        arbiter = SpeechArbiter(synth, preferences=VoicePreferences())
        assert arbiter.select_voice("female").name == "Google français"

    def test_falls_back_to_position(self) -> None:
        """Test position decides when every voice has the other gender's name."""
        synth = MockSynthesizer(voices=[Voice("Thomas", "fr-FR"), Voice("Pierre", "fr-FR")])
        arbiter = SpeechArbiter(synth, preferences=VoicePreferences())
        assert arbiter.select_voice("female").name == "Pierre"

    def test_no_voice_in_language(self) -> None:
        """Test no voice is selected when none matches the language."""
        synth = MockSynthesizer(voices=[Voice("Samantha", "en-US")])
        arbiter = SpeechArbiter(synth, preferences=VoicePreferences())
        assert arbiter.select_voice("female") is None
        assert arbiter.say("bonjour").voice is None

    def test_pitch_follows_gender(self, synth: MockSynthesizer) -> None:
        """Test pitch comes from the preferred gender."""
        female = SpeechArbiter(synth, preferences=VoicePreferences(voice_gender="female"))
        male = SpeechArbiter(synth, preferences=VoicePreferences(voice_gender="male"))

        assert female.say("a").pitch == 1.1
        assert male.say("b").pitch == 0.8
        assert male.say("c").voice.name == "Thomas"

    def test_rate_is_configurable(self, synth: MockSynthesizer) -> None:
        """Test the speaking rate comes from config."""
        arbiter = SpeechArbiter(
            synth, preferences=VoicePreferences(), config=SpeechConfig(rate=0.92)
        )
        assert arbiter.say("a").rate == 0.92


class TestVoiceGenderPreference:
    """Tests for set_voice_gender."""

    def test_persists_and_speaks_sample(self, synth: MockSynthesizer, tmp_path: Path) -> None:
        """Test the preference is saved and a sample phrase is spoken."""
        path = tmp_path / "preferences.json"
        arbiter = SpeechArbiter(synth, preferences=VoicePreferences(), preferences_path=path)

        utterance = arbiter.set_voice_gender("male")

        assert arbiter.voice_gender == "male"
        assert json.loads(path.read_text())["voice_gender"] == "male"
        assert utterance.text == "Bonjour, je suis votre assistant de cuisine."
        assert utterance.pitch == 0.8

    def test_rejects_unknown_gender(self, arbiter: SpeechArbiter, tmp_path: Path) -> None:
        """Test an unsupported gender raises ValueError."""
        with pytest.raises(ValueError):
            arbiter.set_voice_gender("robot")
        assert arbiter.voice_gender == "female"
