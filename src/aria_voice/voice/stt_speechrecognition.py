"""Microphone capture and speech-to-text powered by ``speech_recognition``."""

from __future__ import annotations

import logging

from aria_voice.errors import RecognitionError

from .input import SpeechCapture
from .interfaces import SpeechRecognizer


class SpeechRecognitionCapture(SpeechCapture, SpeechRecognizer):
    """Listens on the default microphone and transcribes with Google's web recognizer.

    Failures are raised as ``RecognitionError`` using the browser recognition
    error names so the orchestrator can apply one recovery policy to both.
    """

    def __init__(
        self,
        *,
        language: str = "pt-BR",
        phrase_time_limit: float = 8.0,
        timeout: float | None = 5.0,
        sample_rate: int = 16_000,
        chunk_size: int = 1024,
        adjust_noise_seconds: float = 0.2,
        logger: logging.Logger | None = None,
    ) -> None:
        try:
            import speech_recognition as sr
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "Microphone backend unavailable. Install extras with: pip install 'aria-voice[voice]'"
            ) from exc
        self._sr = sr
        self._recognizer = sr.Recognizer()
        self._sample_rate = sample_rate
        self._chunk_size = chunk_size
        self._microphone = None
        self.language = language
        self._phrase_time_limit = phrase_time_limit
        self._timeout = timeout
        self._adjust_noise_seconds = max(0.0, adjust_noise_seconds)
        self._active = False
        self._logger = logger or logging.getLogger("aria_voice.voice.stt")

    def start(self) -> None:
        if self._microphone is None:
            try:
                self._microphone = self._sr.Microphone(sample_rate=self._sample_rate, chunk_size=self._chunk_size)
            except (OSError, AttributeError) as exc:
                # AttributeError is what speech_recognition raises when PyAudio is missing.
                raise RecognitionError("audio-capture", f"No usable microphone: {exc}") from exc
        self._active = True

    def stop(self) -> None:
        self._active = False

    def listen_once(self) -> str:
        if not self._active:
            raise RecognitionError("aborted")
        if self._microphone is None:
            self.start()

        try:
            with self._microphone as source:
                if self._adjust_noise_seconds > 0:
                    self._recognizer.adjust_for_ambient_noise(source, duration=self._adjust_noise_seconds)
                audio = self._recognizer.listen(
                    source,
                    timeout=self._timeout,
                    phrase_time_limit=self._phrase_time_limit,
                )
        except self._sr.WaitTimeoutError as exc:
            raise RecognitionError("no-speech") from exc
        except PermissionError as exc:
            raise RecognitionError("not-allowed", "Microphone access was denied") from exc
        except OSError as exc:
            raise RecognitionError("audio-capture", f"Microphone read failed: {exc}") from exc

        if not self._active:
            raise RecognitionError("aborted")

        try:
            transcript = self._recognizer.recognize_google(audio, language=self.language)
        except self._sr.UnknownValueError as exc:
            raise RecognitionError("no-speech") from exc
        except self._sr.RequestError as exc:
            self._logger.warning("recognition_request_failed", extra={"error": str(exc)})
            raise RecognitionError("network", "Speech recognition service request failed") from exc
        return transcript.strip()
