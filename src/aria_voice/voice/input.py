"""Speech capture contracts, wake-word gating and recognition error recovery."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class VoiceListeningMode(str, Enum):
    """Available listening modes for speech capture."""

    PUSH_TO_TALK = "push_to_talk"
    CONTINUOUS = "continuous"


class SpeechCapture(Protocol):
    """A recognizer session the orchestrator can switch on and off."""

    def start(self) -> None:
        """Begin capturing; raises ``RecognitionError`` when the device is unusable."""

    def stop(self) -> None:
        """Stop capturing."""


@dataclass(slots=True)
class WakeWordGate:
    """Drops final transcripts until one mentions the wake word.

    The transcript carrying the wake word only arms the gate; the next
    utterance is let through. The gate stays armed until ``disarm`` is
    called after a request has been dispatched.
    """

    wake_word: str = "aria"
    enabled: bool = False
    armed: bool = False

    def update(self, *, wake_word: str | None = None, enabled: bool | None = None) -> None:
        if wake_word is not None:
            self.wake_word = wake_word.strip().lower()
        if enabled is not None:
            self.enabled = enabled
            self.armed = False

    def admit(self, transcript: str) -> bool:
        """Return True when ``transcript`` should be processed further."""
        if not self.enabled or self.armed:
            return True
        if contains_wake_word(transcript, self.wake_word):
            self.armed = True
        return False

    def disarm(self) -> None:
        self.armed = False


def contains_wake_word(transcript: str, wake_word: str) -> bool:
    wake = wake_word.lower().strip()
    return bool(wake) and wake in transcript.lower()


class RecoveryKind(str, Enum):
    FATAL = "fatal"
    BACKOFF = "backoff"
    RETRY = "retry"
    IGNORE = "ignore"
    GIVE_UP = "give_up"


@dataclass(frozen=True, slots=True)
class RecoveryAction:
    kind: RecoveryKind
    delay_seconds: float | None = None


_FATAL_CODES = frozenset({"not-allowed"})
_BACKOFF_CODES = frozenset({"network", "service-not-allowed"})
_EXPECTED_CODES = frozenset({"no-speech", "aborted"})


class RecognitionRecovery:
    """Decides how to react to a recognition error code.

    Transient service errors back off exponentially (1s, 2s, 4s, ...) up to
    ``max_retries`` attempts, after which the caller should give up.
    """

    def __init__(
        self,
        *,
        max_retries: int = 3,
        base_delay_seconds: float = 1.0,
        retry_delay_seconds: float = 1.0,
        ignore_delay_seconds: float = 0.2,
    ) -> None:
        self._max_retries = max_retries
        self._base_delay_seconds = base_delay_seconds
        self._retry_delay_seconds = retry_delay_seconds
        self._ignore_delay_seconds = ignore_delay_seconds
        self._retry_count = 0

    @property
    def retry_count(self) -> int:
        return self._retry_count

    def reset(self) -> None:
        self._retry_count = 0

    def next_action(self, code: str) -> RecoveryAction:
        if code in _FATAL_CODES:
            return RecoveryAction(RecoveryKind.FATAL)
        if code in _BACKOFF_CODES:
            if self._retry_count >= self._max_retries:
                self._retry_count = 0
                return RecoveryAction(RecoveryKind.GIVE_UP)
            delay = self._base_delay_seconds * (2**self._retry_count)
            self._retry_count += 1
            return RecoveryAction(RecoveryKind.BACKOFF, delay)
        if code in _EXPECTED_CODES:
            return RecoveryAction(RecoveryKind.IGNORE, self._ignore_delay_seconds)
        return RecoveryAction(RecoveryKind.RETRY, self._retry_delay_seconds)
