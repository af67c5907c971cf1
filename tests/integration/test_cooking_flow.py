"""Integration tests for a full hands-free cooking session."""

from pathlib import Path

import mongomock
import pytest

from cuisto.config.loader import load_config
from cuisto.cooking.events import EngineEvents
from cuisto.cooking.orchestrator import CookingOrchestrator
from cuisto.cooking.session import Recipe
from cuisto.storage import CompletionRecorder, CookingStatsRepository
from cuisto.voice.mock import MockRecognizer, MockSynthesizer, MockWakeLock

RECIPE = Recipe.from_dict(
    {
        "id": "pates-carbonara",
        "title": "Pâtes carbonara",
        "category": "Pâtes",
        "steps": [
            "Porter l'eau à ébullition",
            {"instruction": "Faire revenir les lardons", "duration": "3 sec"},
            "Mélanger et servir",
        ],
    }
)


@pytest.mark.integration
class TestHandsFreeCooking:
    """Cook a recipe start to finish by voice."""

    @pytest.fixture
    def repository(self) -> CookingStatsRepository:
        db = mongomock.MongoClient()["cuisto_test"]
        return CookingStatsRepository(db["profiles"], db["activities"])

    def test_cook_by_voice(self, repository: CookingStatsRepository, tmp_path: Path) -> None:
        """Test navigating, timing and finishing a recipe hands-free."""
        completed: list[tuple[str, int]] = []
        synth = MockSynthesizer()
        recognizer = MockRecognizer()
        wake_lock = MockWakeLock()
        recorder = CompletionRecorder(repository)

        orchestrator = CookingOrchestrator.from_config(
            load_config(profile="test"),
            synthesizer=synth,
            recognizer=recognizer,
            wake_lock=wake_lock,
            events=EngineEvents(on_session_completed=lambda sid, m: completed.append((sid, m))),
            recorder=recorder,
            user_id="user-1",
            preferences_path=tmp_path / "preferences.json",
        )
        session = orchestrator.open_session(RECIPE)
        orchestrator.activate_hands_free()

        assert synth.last_text == "Étape 1. Porter l'eau à ébullition"

        recognizer.hear("euh donc on passe à la suivante")
        assert synth.last_text == "Étape 2. Faire revenir les lardons Durée: 3 sec."

        recognizer.hear("lance le timer")
        assert synth.last_text == "Timer de 3 secondes lancé"

        for _ in range(3):
            orchestrator.scheduler.tick()
        assert synth.last_text == "Timer terminé pour Pâtes carbonara, étape 2"
        assert orchestrator.alerts.active()[0].message == "Pâtes carbonara - Étape 2 terminée !"

        recognizer.hear("c'est fait")
        assert session.current_step_index == 2
        recognizer.hear("terminé")
        recognizer.hear("terminé")

        assert session.is_finished is True
        assert completed == [(session.session_id, 1)]

        orchestrator.shutdown()

        stats = repository.get_stats("user-1")
        assert stats.recipes_cooked == 1
        assert stats.total_cooking_time == 1
        assert repository.get_recent_activity("user-1")[0].recipe_title == "Pâtes carbonara"
        assert wake_lock.held is False

    def test_recognition_failure_and_recovery(self, tmp_path: Path) -> None:
        """Test a recognition error parks listening until reactivated."""
        synth = MockSynthesizer()
        recognizer = MockRecognizer()
        orchestrator = CookingOrchestrator.from_config(
            load_config(profile="test"),
            synthesizer=synth,
            recognizer=recognizer,
            wake_lock=MockWakeLock(),
            preferences_path=tmp_path / "preferences.json",
        )
        session = orchestrator.open_session(RECIPE)
        controller = orchestrator.activate_hands_free()

        recognizer.fail("no-speech")
        assert controller.is_listening is True

        recognizer.fail("network")
        assert controller.needs_reactivation is True
        recognizer.hear("suivant")
        assert session.current_step_index == 0

        controller.reactivate_listening()
        recognizer.hear("suivant")
        assert session.current_step_index == 1

        orchestrator.shutdown()
