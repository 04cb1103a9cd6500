"""Voice client: capture, orchestration and playback.

Backends that need the ``voice`` extras (``stt_speechrecognition`` and
``tts_pyttsx3``) are not imported here.
"""

from .api_client import AriaApiClient, AssistantReply
from .input import RecognitionRecovery, SpeechCapture, VoiceListeningMode, WakeWordGate
from .intents import SpecialCommand, SpecialCommandParser
from .interfaces import SpeechRecognizer, SpeechSynthesizer
from .orchestrator import AssistantState, OrchestratorConfig, VoiceOrchestrator
from .output import AudioOutputDevice, CommandAudioPlayer, PlaybackError, SpeechFallback
from .timers import AsyncioTimers, Timers

__all__ = [
    "AriaApiClient",
    "AssistantReply",
    "AssistantState",
    "AsyncioTimers",
    "AudioOutputDevice",
    "CommandAudioPlayer",
    "OrchestratorConfig",
    "PlaybackError",
    "RecognitionRecovery",
    "SpecialCommand",
    "SpecialCommandParser",
    "SpeechCapture",
    "SpeechFallback",
    "SpeechRecognizer",
    "SpeechSynthesizer",
    "Timers",
    "VoiceListeningMode",
    "VoiceOrchestrator",
    "WakeWordGate",
]
