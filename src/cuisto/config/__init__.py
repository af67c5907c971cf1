"""Configuration module for the cooking engine.

This module provides configuration loading and persisted voice preferences.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .phrases import PhraseTable, default_phrase_table, load_phrase_table
from .preferences import VoicePreferences, load_preferences, save_preferences


@dataclass
class SpeechConfig:
    """Spoken feedback configuration."""

    language: str = "fr-FR"
    rate: float = 0.9
    female_pitch: float = 1.1
    male_pitch: float = 0.8
    default_gender: str = "female"


@dataclass
class SchedulerConfig:
    """Countdown scheduler configuration."""

    tick_interval: float = 1.0
    start_policy: str = "overwrite"


@dataclass
class HandsFreeConfig:
    """Hands-free mode configuration."""

    settle_delay: float = 3.0
    auto_read: bool = True
    auto_read_delay: float = 0.5
    keep_screen_awake: bool = True


@dataclass
class AlertConfig:
    """Timer alert configuration."""

    display_seconds: float = 5.0


@dataclass
class StorageConfig:
    """Cooking statistics storage configuration."""

    enabled: bool = False
    uri: str = "mongodb://localhost:27017"
    database: str = "cuisto"
    server_selection_timeout_ms: int = 2000


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"


@dataclass
class CuistoConfig:
    """Main cooking engine configuration."""

    speech: SpeechConfig = field(default_factory=SpeechConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    hands_free: HandsFreeConfig = field(default_factory=HandsFreeConfig)
    alerts: AlertConfig = field(default_factory=AlertConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    phrases_path: str | None = None


class ConfigLoader(Protocol):
    """Protocol for configuration loading."""

    def load(self, path: Path) -> CuistoConfig:
        """Load configuration from file path."""
        ...

    def load_profile(self, profile: str) -> CuistoConfig:
        """Load configuration by profile name (dev, prod, test)."""
        ...

    def get_config_dir(self) -> Path:
        """Get the configuration directory path."""
        ...


__all__ = [
    "AlertConfig",
    "ConfigLoader",
    "CuistoConfig",
    "HandsFreeConfig",
    "LoggingConfig",
    "PhraseTable",
    "SchedulerConfig",
    "SpeechConfig",
    "StorageConfig",
    "VoicePreferences",
    "default_phrase_table",
    "load_phrase_table",
    "load_preferences",
    "save_preferences",
]
