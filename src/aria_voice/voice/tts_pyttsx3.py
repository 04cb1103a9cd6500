"""Text-to-speech backends powered by ``pyttsx3``."""

from __future__ import annotations

import asyncio
import tempfile
import threading
from pathlib import Path

from aria_voice.errors import SynthesisError

from .interfaces import SpeechSynthesizer
from .output import PlaybackError, normalize_for_speech


def _load_pyttsx3():
    try:
        import pyttsx3
    except ImportError as exc:  # pragma: no cover - import guard
        raise RuntimeError(
            "Local voice backend unavailable. Install extras with: pip install 'aria-voice[voice]'"
        ) from exc
    return pyttsx3


def _words_per_minute(rate: str, base: int = 200) -> int:
    """Translate an edge-style ``+10%`` rate into pyttsx3 words per minute."""
    try:
        percent = int(rate.strip().rstrip("%"))
    except ValueError:
        percent = 0
    return max(50, round(base * (100 + percent) / 100))


class Pyttsx3Synthesizer(SpeechSynthesizer):
    """Offline synthesis to a WAV file using the platform speech engine."""

    def __init__(self, *, base_rate: int = 200) -> None:
        self._pyttsx3 = _load_pyttsx3()
        self._base_rate = base_rate
        self._lock = threading.Lock()

    async def synthesize(self, text: str, voice: str, rate: str) -> bytes:
        return await asyncio.to_thread(self._render, text, voice, rate)

    def _render(self, text: str, voice: str, rate: str) -> bytes:
        with self._lock, tempfile.TemporaryDirectory(prefix="aria-pyttsx3-") as workdir:
            output = Path(workdir) / "speech.wav"
            try:
                engine = self._pyttsx3.init()
                if voice:
                    matching = [item.id for item in engine.getProperty("voices") if voice.lower() in str(item.id).lower()]
                    if matching:
                        engine.setProperty("voice", matching[0])
                engine.setProperty("rate", _words_per_minute(rate, self._base_rate))
                engine.save_to_file(text, str(output))
                engine.runAndWait()
            except RuntimeError as exc:
                raise SynthesisError("Local speech engine failed", details=str(exc)) from exc
            if not output.is_file() or output.stat().st_size == 0:
                raise SynthesisError("Local speech engine did not write any audio")
            return output.read_bytes()


class Pyttsx3SpeechFallback:
    """Speaks replies on the local speakers when the server sent no audio."""

    def __init__(
        self,
        *,
        voice_id: str | None = None,
        rate: int | None = None,
        volume: float | None = None,
        max_chars: int = 800,
    ) -> None:
        pyttsx3 = _load_pyttsx3()
        self._engine = pyttsx3.init()
        self._max_chars = max_chars
        if voice_id:
            self._engine.setProperty("voice", voice_id)
        if rate is not None:
            self._engine.setProperty("rate", rate)
        if volume is not None:
            clamped = max(0.0, min(1.0, volume))
            self._engine.setProperty("volume", clamped)

    async def speak(self, text: str) -> None:
        spoken = normalize_for_speech(text, self._max_chars)
        if not spoken:
            return
        await asyncio.to_thread(self._say, spoken)

    def stop(self) -> None:
        self._engine.stop()

    def _say(self, text: str) -> None:
        try:
            self._engine.say(text)
            self._engine.runAndWait()
        except RuntimeError as exc:
            raise PlaybackError(f"Local speech failed: {exc}") from exc
