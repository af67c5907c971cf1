"""Localized phrase tables.

A phrase table carries everything language-specific the engine needs:
keyword synonym lists for voice commands, spoken confirmation templates,
and the first names used to guess a synthetic voice's gender.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# A synonym is a substring, or a group of substrings that must all appear.
Synonym = str | tuple[str, ...]

_DEFAULT_KEYWORDS: dict[str, list[Synonym]] = {
    "next": ["suivant", "next", "étape suivante", "après"],
    "previous": ["précédent", "retour", "étape précédente", "avant"],
    "start_timer": ["lance le timer", "lance le minuteur", "démarre", "start"],
    "pause_timer": ["stop", "arrête", "pause", "stoppe"],
    "resume_timer": ["reprendre", "reprends", "continue", "resume"],
    "repeat": ["répète", "relis", "encore", "redis"],
    "complete": ["terminé", "fait", "fini", "ok", "valide"],
    "query_remaining": [("combien", "temps"), "temps restant"],
    "help": ["aide", "commande"],
}

_DEFAULT_MESSAGES: dict[str, str] = {
    "step_number": "Étape {number}",
    "step_announcement": "Étape {number}. {instruction}{duration}",
    "duration_suffix": " Durée: {duration}.",
    "last_step": "Vous êtes à la dernière étape",
    "first_step": "Vous êtes à la première étape",
    "recipe_finished": "Félicitations ! Vous avez terminé la recette. Bon appétit !",
    "timer_started_minutes": "Timer de {minutes} minute{plural} lancé",
    "timer_started_seconds": "Timer de {seconds} secondes lancé",
    "no_duration": "Pas de durée détectée pour cette étape",
    "timer_paused": "Timer en pause",
    "timer_resumed": "Timer repris",
    "no_timer": "Aucun timer en cours pour cette étape",
    "remaining": "Il reste {minutes} minutes et {seconds} secondes",
    "help": (
        "Commandes disponibles: suivant, précédent, lance le timer, arrête, "
        "reprends, répète, terminé, combien de temps"
    ),
    "not_understood": "Commande non reconnue",
    "ack_next": "Étape suivante",
    "ack_previous": "Étape précédente",
    "ack_start_timer": "Lancement du timer",
    "ack_repeat": "Je répète",
    "ack_complete": "Étape validée",
    "hands_free_on": (
        "Mode mains libres activé pour {title}. L'écran restera allumé. "
        "Dites suivant, précédent, lance le timer, ou terminé."
    ),
    "hands_free_off": "Mode mains libres désactivé",
    "listening_on": "Assistant vocal activé",
    "step_label": "{title} - Étape {number}",
    "step_timer_finished": "Timer terminé pour {title}, étape {number}",
    "global_timer_finished": "Timer {name} terminé",
    "step_timer_alert": "{title} - Étape {number} terminée !",
    "global_timer_alert": "{name} terminé !",
    "timers_queued": "{count} timer{plural} ajouté{plural}",
    "all_paused": "Tous les timers en pause",
    "all_resumed": "Timers repris",
    "no_active_timers": "Aucun timer en cours",
    "active_timers_summary": "Timers en cours: {summary}",
    "timer_summary_item": "{label}: {minutes} minutes",
    "voice_sample_female": "Bonjour, je suis votre assistante de cuisine.",
    "voice_sample_male": "Bonjour, je suis votre assistant de cuisine.",
}

_DEFAULT_VOICE_NAMES: dict[str, list[str]] = {
    "female": [
        "amélie", "amelie", "aurelie", "julie", "marie", "audrey",
        "celine", "lea", "sophie", "virginie", "hortense", "denise",
    ],
    "male": ["thomas", "pierre", "nicolas", "paul", "guillaume", "henri", "lucas"],
}


@dataclass
class PhraseTable:
    """Language-specific phrases used by the engine.

    Attributes:
        language: BCP-47 language tag the phrases are written in.
        keywords: Synonym lists keyed by command name.
        messages: Spoken templates keyed by message name.
        voice_names: First names keyed by voice gender.
    """

    language: str = "fr-FR"
    keywords: dict[str, list[Synonym]] = field(
        default_factory=lambda: {k: list(v) for k, v in _DEFAULT_KEYWORDS.items()}
    )
    messages: dict[str, str] = field(default_factory=lambda: dict(_DEFAULT_MESSAGES))
    voice_names: dict[str, list[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in _DEFAULT_VOICE_NAMES.items()}
    )

    def say(self, key: str, **values: Any) -> str:
        """Render a message template.

        Args:
            key: Message name.
            **values: Template values.

        Returns:
            The rendered message.

        Raises:
            KeyError: If no template exists for the key.
        """
        return self.messages[key].format(**values)

    def synonyms(self, command: str) -> list[Synonym]:
        """Return the synonym list for a command name (empty if none)."""
        return self.keywords.get(command, [])


def default_phrase_table() -> PhraseTable:
    """Return the built-in French phrase table."""
    return PhraseTable()


def _parse_synonyms(values: list[Any]) -> list[Synonym]:
    synonyms: list[Synonym] = []
    for value in values:
        if isinstance(value, list | tuple):
            synonyms.append(tuple(str(v).lower() for v in value))
        else:
            synonyms.append(str(value).lower())
    return synonyms


def load_phrase_table(path: Path | str) -> PhraseTable:
    """Load a phrase table from YAML, layered over the defaults.

    Only the keys present in the file replace the built-in ones, so a file
    may override a single message.

    Args:
        path: Path to the YAML file.

    Returns:
        The merged PhraseTable.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Phrase table not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    table = default_phrase_table()
    table.language = data.get("language", table.language)

    for command, values in (data.get("keywords") or {}).items():
        table.keywords[command] = _parse_synonyms(values or [])

    for key, template in (data.get("messages") or {}).items():
        table.messages[key] = str(template)

    for gender, names in (data.get("voice_names") or {}).items():
        table.voice_names[gender] = [str(n).lower() for n in names or []]

    logger.debug(f"Loaded phrase table from {path} ({table.language})")
    return table


__all__ = [
    "PhraseTable",
    "Synonym",
    "default_phrase_table",
    "load_phrase_table",
]
