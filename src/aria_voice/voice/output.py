"""Playback of assistant replies."""

from __future__ import annotations

import asyncio
import logging
import shlex
from collections.abc import Sequence
from typing import Protocol


class PlaybackError(RuntimeError):
    """Audio could not be played."""


class AudioOutputDevice(Protocol):
    """Interface for a speaker/audio sink."""

    async def play(self, audio_bytes: bytes) -> None:
        """Play encoded audio and return once playback ended."""

    def stop(self) -> None:
        """Interrupt playback, if any."""


class SpeechFallback(Protocol):
    """Speaks text locally when no server audio is available."""

    async def speak(self, text: str) -> None:
        """Speak ``text`` and return once finished."""

    def stop(self) -> None:
        """Interrupt local speech, if any."""


def normalize_for_speech(text: str, max_chars: int = 800) -> str:
    normalized = " ".join((text or "").split())
    return normalized[:max_chars]


class CommandAudioPlayer:
    """Pipes audio into an external player such as ``ffplay`` or ``mpg123``."""

    def __init__(self, command: str | Sequence[str], *, logger: logging.Logger | None = None) -> None:
        self._command = shlex.split(command) if isinstance(command, str) else list(command)
        if not self._command:
            raise ValueError("command must name an audio player")
        self._process: asyncio.subprocess.Process | None = None
        self._logger = logger or logging.getLogger("aria_voice.voice.output")

    async def play(self, audio_bytes: bytes) -> None:
        if not audio_bytes:
            return
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self._command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise PlaybackError(f"Could not start audio player {self._command[0]}") from exc

        process = self._process
        try:
            await process.communicate(audio_bytes)
        except (BrokenPipeError, ConnectionResetError):
            self._logger.info("playback_interrupted")
        finally:
            self._process = None

        # Negative return codes mean we terminated the player ourselves.
        if process.returncode and process.returncode > 0:
            raise PlaybackError(f"Audio player exited with code {process.returncode}")

    def stop(self) -> None:
        if self._process is not None and self._process.returncode is None:
            self._process.terminate()
