"""Voice input and output.

Provides the speech arbiter, the keyword command interpreter, recognition
supervision, the wake-lock guard and mock capabilities. Hands-free mode
lives in cuisto.voice.hands_free.
"""

from .commands import COMMAND_PRIORITY, CommandInterpreter, CommandType, VoiceCommand
from .mock import MockRecognizer, MockSynthesizer, MockWakeLock
from .recognition import (
    NO_SPEECH_ERROR,
    ManualListening,
    RecognitionChannel,
    RecognitionSupervisor,
    Recognizer,
    SupervisorState,
)
from .speech import CancellationToken, SpeechArbiter, Synthesizer, Utterance, Voice
from .wake_lock import WakeLock, WakeLockGuard

__all__ = [
    "COMMAND_PRIORITY",
    "CancellationToken",
    "CommandInterpreter",
    "CommandType",
    "ManualListening",
    "MockRecognizer",
    "MockSynthesizer",
    "MockWakeLock",
    "NO_SPEECH_ERROR",
    "RecognitionChannel",
    "RecognitionSupervisor",
    "Recognizer",
    "SpeechArbiter",
    "SupervisorState",
    "Synthesizer",
    "Utterance",
    "Voice",
    "VoiceCommand",
    "WakeLock",
    "WakeLockGuard",
]
