"""Audio cache keyed by synthesis inputs."""

from __future__ import annotations

import base64
import hashlib
import logging
import os
import time
from pathlib import Path
from typing import Callable, Protocol

from aria_voice.models import AudioReference

KEY_LENGTH = 12


def cache_key(text: str, voice: str, speed: int = 0) -> str:
    """Deterministic key for a clip; speed only participates when it differs from normal."""
    material = text + voice if speed == 0 else f"{text}{voice}{speed:+d}"
    return hashlib.md5(material.encode("utf-8")).hexdigest()[:KEY_LENGTH]


class AudioCache(Protocol):
    def lookup(self, key: str) -> AudioReference | None:
        """Return a reference for a stored clip, or ``None``."""

    def store(self, key: str, audio: bytes) -> AudioReference:
        """Persist ``audio`` under ``key`` and return a reference to it."""

    def load(self, key: str) -> bytes | None:
        """Return the stored clip bytes, or ``None``."""

    def sweep(self, now: float) -> int:
        """Delete entries older than the TTL; returns how many were removed."""


class FileAudioCache:
    """Stores clips as files under a publicly served directory."""

    def __init__(
        self,
        directory: str | Path,
        *,
        url_prefix: str = "/audio",
        suffix: str = ".mp3",
        ttl_seconds: float = 600.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)
        self._url_prefix = url_prefix.rstrip("/")
        self._suffix = suffix
        self._ttl_seconds = ttl_seconds
        self._logger = logger or logging.getLogger("aria_voice.tts.cache")

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, key: str) -> Path:
        return self._directory / f"{key}{self._suffix}"

    def lookup(self, key: str) -> AudioReference | None:
        if not self.path_for(key).is_file():
            return None
        return AudioReference(key=key, url=self._url_for(key), cached=True)

    def store(self, key: str, audio: bytes) -> AudioReference:
        target = self.path_for(key)
        partial = target.with_name(target.name + ".part")
        try:
            partial.write_bytes(audio)
            os.replace(partial, target)
        finally:
            partial.unlink(missing_ok=True)
        return AudioReference(key=key, url=self._url_for(key), cached=False)

    def load(self, key: str) -> bytes | None:
        try:
            return self.path_for(key).read_bytes()
        except FileNotFoundError:
            return None

    def sweep(self, now: float) -> int:
        removed = 0
        for path in self._directory.iterdir():
            if not path.is_file():
                continue
            try:
                age = now - path.stat().st_mtime
                if age > self._ttl_seconds:
                    path.unlink()
                    removed += 1
            except FileNotFoundError:
                continue
        if removed:
            self._logger.info("audio_cache_swept", extra={"removed": removed, "directory": str(self._directory)})
        return removed

    def _url_for(self, key: str) -> str:
        return f"{self._url_prefix}/{key}{self._suffix}"


class MemoryAudioCache:
    """Keeps clips as base64 strings in process memory."""

    def __init__(
        self,
        *,
        ttl_seconds: float = 600.0,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, str]] = {}
        self._logger = logger or logging.getLogger("aria_voice.tts.cache")

    def lookup(self, key: str) -> AudioReference | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return AudioReference(key=key, audio_base64=entry[1], cached=True)

    def store(self, key: str, audio: bytes) -> AudioReference:
        encoded = base64.b64encode(audio).decode("ascii")
        self._entries[key] = (self._clock(), encoded)
        return AudioReference(key=key, audio_base64=encoded, cached=False)

    def load(self, key: str) -> bytes | None:
        entry = self._entries.get(key)
        return base64.b64decode(entry[1]) if entry else None

    def sweep(self, now: float) -> int:
        expired = [key for key, (created, _) in self._entries.items() if now - created > self._ttl_seconds]
        for key in expired:
            del self._entries[key]
        if expired:
            self._logger.info("audio_cache_swept", extra={"removed": len(expired)})
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
