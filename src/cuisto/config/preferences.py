"""Persisted voice preferences.

Stores the spoken-feedback voice gender chosen by the cook so it survives
between sessions.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

VOICE_GENDERS = ("female", "male")


def _get_preferences_path() -> Path:
    """Get the path to the preferences file.

    Returns:
        Path to ~/.cuisto/preferences.json
    """
    cuisto_dir = Path.home() / ".cuisto"
    cuisto_dir.mkdir(parents=True, exist_ok=True)
    return cuisto_dir / "preferences.json"


@dataclass
class VoicePreferences:
    """Voice preferences for spoken feedback.

    Attributes:
        version: Schema version for future migrations.
        voice_gender: "female" or "male".
        extra: Unrecognized keys kept so saving does not drop them.
    """

    version: int = 1
    voice_gender: str = "female"
    extra: dict = field(default_factory=dict)

    def set_voice_gender(self, gender: str) -> None:
        """Set the preferred voice gender.

        Args:
            gender: "female" or "male".

        Raises:
            ValueError: If the gender is not supported.
        """
        gender = gender.strip().lower()
        if gender not in VOICE_GENDERS:
            raise ValueError(f"Unsupported voice gender: {gender}")
        self.voice_gender = gender


def load_preferences(path: Path | None = None) -> VoicePreferences:
    """Load voice preferences from JSON file.

    Args:
        path: Optional path to preferences file. Defaults to ~/.cuisto/preferences.json

    Returns:
        VoicePreferences with loaded data or defaults if file doesn't exist.
    """
    if path is None:
        path = _get_preferences_path()

    if not path.exists():
        logger.debug(f"Preferences not found at {path}, using defaults")
        return VoicePreferences()

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        gender = str(data.get("voice_gender", "female")).strip().lower()
        if gender not in VOICE_GENDERS:
            logger.warning(f"Ignoring unknown voice gender in preferences: {gender}")
            gender = "female"

        extra = {k: v for k, v in data.items() if k not in ("version", "voice_gender")}
        return VoicePreferences(
            version=data.get("version", 1),
            voice_gender=gender,
            extra=extra,
        )

    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in preferences: {e}")
        return VoicePreferences()
    except OSError as e:
        logger.error(f"Failed to load preferences: {e}")
        return VoicePreferences()


def save_preferences(preferences: VoicePreferences, path: Path | None = None) -> bool:
    """Save voice preferences to JSON file.

    Args:
        preferences: VoicePreferences to save.
        path: Optional path to preferences file. Defaults to ~/.cuisto/preferences.json

    Returns:
        True if saved successfully, False otherwise.
    """
    if path is None:
        path = _get_preferences_path()

    try:
        path.parent.mkdir(parents=True, exist_ok=True)

        data = dict(preferences.extra)
        data["version"] = preferences.version
        data["voice_gender"] = preferences.voice_gender

        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

        logger.debug(f"Saved preferences to {path}")
        return True

    except OSError as e:
        logger.error(f"Failed to save preferences: {e}")
        return False


__all__ = [
    "VOICE_GENDERS",
    "VoicePreferences",
    "load_preferences",
    "save_preferences",
]
