"""Duration extraction from recipe instructions.

Finds a countdown length in free text such as "Cuire 10 minutes" or
"Laisser reposer 1 heure et 30 minutes".
"""

import re

# "2-3 minutes", "2 à 3 minutes": only the left-most numeral counts
_RANGE = r"(?:\s*[-–]\s*\d+|\s+(?:à|a|to|ou|or)\s+\d+)?"

_UNIT_PATTERNS: tuple[tuple[re.Pattern[str], int], ...] = (
    (re.compile(rf"(\d+){_RANGE}\s*(?:heures?|hours?|hrs?|h)\b", re.IGNORECASE), 3600),
    (re.compile(rf"(\d+){_RANGE}\s*(?:minutes?|mins?|mn|m)\b", re.IGNORECASE), 60),
    (re.compile(rf"(\d+){_RANGE}\s*(?:secondes?|seconds?|secs?|s)\b", re.IGNORECASE), 1),
)


def parse_duration(text: str | None) -> int | None:
    """Parse a countdown length from free text.

    Each unit category (hours, minutes, seconds) is scanned independently
    and only its first occurrence is used. The matched units are summed.

    Args:
        text: Instruction or duration text.

    Returns:
        Duration in seconds, or None if no unit matched. A total of zero
        is reported as None.

    Examples:
        >>> parse_duration("Mijoter à feu doux pendant 3 heures")
        10800
        >>> parse_duration("Cuire 2-3 minutes")
        120
        >>> parse_duration("Dressage final") is None
        True
    """
    if not text:
        return None

    total_seconds = 0
    for pattern, multiplier in _UNIT_PATTERNS:
        match = pattern.search(text)
        if match:
            total_seconds += int(match.group(1)) * multiplier

    return total_seconds if total_seconds > 0 else None


def parse_step_duration(instruction: str | None, duration: str | None) -> int | None:
    """Parse a step's countdown, preferring the instruction text.

    Args:
        instruction: The step instruction.
        duration: The step's explicit duration text, if any.

    Returns:
        Duration in seconds, or None if neither text has one.
    """
    return parse_duration(instruction) or parse_duration(duration)


def split_minutes(seconds: int) -> tuple[int, int]:
    """Split seconds into whole minutes and leftover seconds."""
    return divmod(max(0, seconds), 60)


def format_clock(seconds: int) -> str:
    """Format seconds as a clock string.

    Args:
        seconds: Number of seconds.

    Returns:
        "M:SS" below one hour, "H:MM:SS" otherwise.
    """
    seconds = max(0, seconds)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


__all__ = [
    "format_clock",
    "parse_duration",
    "parse_step_duration",
    "split_minutes",
]
