"""Cached text-to-speech relay."""

from __future__ import annotations

import logging
import time

from aria_voice.catalog import VOICES, resolve_voice
from aria_voice.errors import InvalidInput, SynthesisError
from aria_voice.models import AudioReference
from aria_voice.text_cleaning import sanitize_for_speech
from aria_voice.tts.cache import AudioCache, cache_key
from aria_voice.voice.interfaces import SpeechSynthesizer


class TTSRelay:
    """Serves clips from ``cache`` and synthesizes the misses.

    Identical requests that arrive while the first is still synthesizing are
    not coalesced; each one invokes the engine.
    """

    def __init__(
        self,
        *,
        synthesizer: SpeechSynthesizer,
        cache: AudioCache,
        max_chars: int = 800,
        logger: logging.Logger | None = None,
    ) -> None:
        self._synthesizer = synthesizer
        self._cache = cache
        self._max_chars = max_chars
        self._logger = logger or logging.getLogger("aria_voice.tts.relay")

    @property
    def cache(self) -> AudioCache:
        return self._cache

    async def synthesize(self, text: str, voice: str | None = None, speed: int = 0) -> AudioReference:
        if not (text or "").strip():
            raise InvalidInput("Text is required")

        voice_key = resolve_voice(voice)
        key = cache_key(text, voice_key, speed)
        cached = self._cache.lookup(key)
        if cached is not None:
            self._logger.info("tts_cache_hit", extra={"key": key, "voice": voice_key})
            return cached

        spoken = sanitize_for_speech(text, self._max_chars)
        started = time.perf_counter()
        audio = await self._synthesizer.synthesize(spoken, VOICES[voice_key].id, f"{speed:+d}%")
        if not audio:
            raise SynthesisError("Speech engine returned no audio")

        try:
            reference = self._cache.store(key, audio)
        except OSError as exc:
            raise SynthesisError("Could not store synthesized audio", details=str(exc)) from exc

        self._logger.info(
            "tts_synthesized",
            extra={
                "key": key,
                "voice": voice_key,
                "bytes": len(audio),
                "latency_ms": round((time.perf_counter() - started) * 1000),
            },
        )
        return reference
