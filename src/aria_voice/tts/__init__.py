"""Server-side speech synthesis and audio caching."""

from .cache import AudioCache, FileAudioCache, MemoryAudioCache, cache_key
from .edge_cli import EdgeTTSCliSynthesizer
from .elevenlabs import ElevenLabsSynthesizer
from .relay import TTSRelay

__all__ = [
    "AudioCache",
    "EdgeTTSCliSynthesizer",
    "ElevenLabsSynthesizer",
    "FileAudioCache",
    "MemoryAudioCache",
    "TTSRelay",
    "cache_key",
]
