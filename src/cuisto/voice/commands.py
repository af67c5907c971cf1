"""Voice command interpretation.

Maps a recognized transcript to one discrete cooking command using
ordered keyword matching.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from ..config.phrases import PhraseTable, Synonym, default_phrase_table

logger = logging.getLogger(__name__)


class CommandType(Enum):
    """Commands a cook can give by voice."""

    NEXT = "next"
    PREVIOUS = "previous"
    START_TIMER = "start_timer"
    PAUSE_TIMER = "pause_timer"
    RESUME_TIMER = "resume_timer"
    REPEAT = "repeat"
    COMPLETE = "complete"
    QUERY_REMAINING = "query_remaining"
    HELP = "help"
    UNRECOGNIZED = "unrecognized"


# Matching order; the first category with a hit wins
COMMAND_PRIORITY: tuple[CommandType, ...] = (
    CommandType.NEXT,
    CommandType.PREVIOUS,
    CommandType.START_TIMER,
    CommandType.PAUSE_TIMER,
    CommandType.RESUME_TIMER,
    CommandType.REPEAT,
    CommandType.COMPLETE,
    CommandType.QUERY_REMAINING,
    CommandType.HELP,
)


@dataclass(frozen=True)
class VoiceCommand:
    """An interpreted command.

    Attributes:
        type: The command.
        raw: The normalized transcript it came from.
    """

    type: CommandType
    raw: str = ""

    @property
    def recognized(self) -> bool:
        return self.type != CommandType.UNRECOGNIZED


def _matches(transcript: str, synonym: Synonym) -> bool:
    if isinstance(synonym, str):
        return synonym in transcript
    return all(part in transcript for part in synonym)


class CommandInterpreter:
    """Keyword-based command interpreter.

    A transcript containing keywords of two categories resolves to the
    category checked first. Substring matching tolerates disfluent speech
    ("euh donc on passe à la suivante").
    """

    def __init__(self, phrases: PhraseTable | None = None) -> None:
        self._phrases = phrases or default_phrase_table()

    def interpret(self, transcript: str) -> VoiceCommand:
        """Interpret a transcript.

        Args:
            transcript: Recognized speech.

        Returns:
            The matching VoiceCommand, or UNRECOGNIZED with the raw text.
        """
        text = transcript.lower().strip()
        for command_type in COMMAND_PRIORITY:
            for synonym in self._phrases.synonyms(command_type.value):
                if _matches(text, synonym):
                    logger.debug(f"Interpreted '{text}' as {command_type.value}")
                    return VoiceCommand(type=command_type, raw=text)

        logger.debug(f"No command matched '{text}'")
        return VoiceCommand(type=CommandType.UNRECOGNIZED, raw=text)


__all__ = [
    "COMMAND_PRIORITY",
    "CommandInterpreter",
    "CommandType",
    "VoiceCommand",
]
