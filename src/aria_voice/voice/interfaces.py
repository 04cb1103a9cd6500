"""Contracts for speech recognition and synthesis."""

from typing import Protocol


class SpeechRecognizer(Protocol):
    """Blocks until one utterance has been heard and returns its transcript."""

    def listen_once(self) -> str:
        """Return recognized text, or an empty string when nothing was understood."""


class SpeechSynthesizer(Protocol):
    """Converts text into encoded audio."""

    async def synthesize(self, text: str, voice: str, rate: str) -> bytes:
        """Return audio bytes for ``text`` spoken by engine voice ``voice`` at ``rate`` (e.g. ``+10%``)."""
