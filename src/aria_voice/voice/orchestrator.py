"""Client-side conversation state machine.

The orchestrator owns the ``idle → listening → thinking → speaking → idle``
cycle. Speech capture feeds it transcripts, it forwards them to the relay
server and plays whatever comes back, falling back to local speech when the
server sent no audio. Every delay goes through an injected ``Timers`` so the
whole cycle can be driven deterministically.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from aria_voice.errors import AriaVoiceError, RecognitionError
from aria_voice.models import UserSettings

from .api_client import AssistantReply
from .input import RecognitionRecovery, RecoveryAction, RecoveryKind, SpeechCapture, WakeWordGate
from .intents import SpecialCommand, SpecialCommandParser
from .output import AudioOutputDevice, PlaybackError, SpeechFallback
from .timers import TimerHandle, Timers


class AssistantState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    THINKING = "thinking"
    SPEAKING = "speaking"
    ERROR = "error"


class AssistantApi(Protocol):
    async def voice(self, message: str, *, session_id: str, voice: str | None = None) -> AssistantReply:
        """Send a transcript and return the reply with optional audio."""

    async def clear(self, session_id: str) -> bool:
        """Forget the server-side history of ``session_id``."""


@dataclass(slots=True)
class OrchestratorConfig:
    silence_timeout_seconds: float = 0.8
    error_recovery_seconds: float = 2.0
    relisten_delay_seconds: float = 0.4
    interrupt_relisten_delay_seconds: float = 0.2
    request_timeout_seconds: float = 30.0
    max_recognition_retries: int = 3
    continuous_mode: bool = True
    voice: str | None = None
    wake_word: str = "aria"
    wake_word_enabled: bool = False

    @classmethod
    def for_device(cls, *, mobile: bool = False, **overrides) -> OrchestratorConfig:
        """Mobile recognizers deliver results more slowly, so wait longer for silence."""
        overrides.setdefault("silence_timeout_seconds", 1.2 if mobile else 0.8)
        return cls(**overrides)

    @classmethod
    def from_settings(cls, user_settings: UserSettings, *, mobile: bool = False) -> OrchestratorConfig:
        return cls.for_device(
            mobile=mobile,
            continuous_mode=user_settings.continuous_mode,
            voice=user_settings.voice,
            wake_word=user_settings.wake_word,
            wake_word_enabled=user_settings.wake_word_enabled,
        )


def _default_session_id() -> str:
    return f"session_{int(time.time() * 1000)}"


class VoiceOrchestrator:
    """Drives one conversation between a speech capture and the relay server."""

    def __init__(
        self,
        *,
        api: AssistantApi,
        capture: SpeechCapture,
        player: AudioOutputDevice,
        timers: Timers,
        fallback: SpeechFallback | None = None,
        config: OrchestratorConfig | None = None,
        session_id_factory: Callable[[], str] = _default_session_id,
        on_state_change: Callable[[AssistantState], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._api = api
        self._capture = capture
        self._player = player
        self._fallback = fallback
        self._timers = timers
        self._config = config or OrchestratorConfig()
        self._session_id_factory = session_id_factory
        self._on_state_change = on_state_change
        self._logger = logger or logging.getLogger("aria_voice.voice.orchestrator")

        self._commands = SpecialCommandParser()
        self._recovery = RecognitionRecovery(max_retries=self._config.max_recognition_retries)
        self._gate = WakeWordGate(
            wake_word=self._config.wake_word,
            enabled=self._config.wake_word_enabled,
        )

        self._state = AssistantState.IDLE
        self._session_id = session_id_factory()
        self._pending_transcript = ""
        self._silence_timer: TimerHandle | None = None
        self._scheduled: TimerHandle | None = None
        self._last_audio: bytes | None = None
        self._last_reply: AssistantReply | None = None
        self._last_error: Exception | None = None

    @property
    def state(self) -> AssistantState:
        return self._state

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    @property
    def last_audio(self) -> bytes | None:
        return self._last_audio

    @property
    def last_reply(self) -> AssistantReply | None:
        return self._last_reply

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    @property
    def retry_count(self) -> int:
        return self._recovery.retry_count

    def _set_state(self, state: AssistantState) -> None:
        if state == self._state:
            return
        previous, self._state = self._state, state
        self._logger.info("assistant_state_changed", extra={"from": previous.value, "to": state.value})
        if self._on_state_change is not None:
            self._on_state_change(state)

    def _schedule(self, delay: float, callback: Callable[[], object]) -> None:
        if self._scheduled is not None:
            self._scheduled.cancel()
        self._scheduled = self._timers.call_later(delay, callback)

    def _cancel_silence_timer(self) -> None:
        if self._silence_timer is not None:
            self._silence_timer.cancel()
            self._silence_timer = None

    # -- listening control ---------------------------------------------------

    def start_listening(self) -> bool:
        """Start capture from ``idle``; any other state rejects the request."""
        if self._state != AssistantState.IDLE:
            return False
        try:
            self._capture.start()
        except RecognitionError as exc:
            self.handle_recognition_error(exc.code)
            return False
        self._pending_transcript = ""
        self._set_state(AssistantState.LISTENING)
        return True

    def stop_listening(self) -> None:
        self._cancel_silence_timer()
        self._pending_transcript = ""
        self._capture.stop()
        if self._state == AssistantState.LISTENING:
            self._set_state(AssistantState.IDLE)

    def stop(self) -> None:
        """Explicit user stop: silence everything and return to ``idle``."""
        self._cancel_silence_timer()
        if self._scheduled is not None:
            self._scheduled.cancel()
            self._scheduled = None
        self._pending_transcript = ""
        self._capture.stop()
        self._player.stop()
        if self._fallback is not None:
            self._fallback.stop()
        self._gate.disarm()
        self._set_state(AssistantState.IDLE)

    def _relisten_later(self, delay: float) -> None:
        if self._config.continuous_mode:
            self._schedule(delay, self.start_listening)

    # -- transcripts ---------------------------------------------------------

    async def handle_transcript(self, text: str, *, is_final: bool = True) -> None:
        transcript = (text or "").strip()
        if not transcript:
            return
        self._recovery.reset()

        if self._state == AssistantState.SPEAKING:
            if is_final:
                await self._run_command(transcript)
            return
        if self._state != AssistantState.LISTENING:
            return

        if not is_final:
            self._pending_transcript = transcript
            self._cancel_silence_timer()
            self._silence_timer = self._timers.call_later(self._config.silence_timeout_seconds, self._on_silence)
            return

        self._cancel_silence_timer()
        self._pending_transcript = ""
        await self._process_final(transcript)

    def _on_silence(self):
        self._silence_timer = None
        transcript, self._pending_transcript = self._pending_transcript, ""
        if self._state != AssistantState.LISTENING or not transcript:
            return None
        self._logger.info("silence_timeout", extra={"transcript": transcript})
        return self._process_final(transcript)

    async def _process_final(self, transcript: str) -> None:
        if not self._gate.admit(transcript):
            self._logger.info("wake_word_gate", extra={"armed": self._gate.armed})
            return
        if await self._run_command(transcript):
            return
        self._gate.disarm()
        await self.submit(transcript)

    async def _run_command(self, transcript: str) -> bool:
        """Run the first special command that applies; True when one was consumed."""
        for command in self._commands.matches(transcript):
            if command == SpecialCommand.STOP and self._state == AssistantState.SPEAKING:
                self.interrupt()
                return True
            if command == SpecialCommand.NEW_CONVERSATION:
                await self.new_conversation()
                return True
            if command == SpecialCommand.REPEAT and self._last_audio:
                await self.repeat()
                return True
        return False

    # -- commands ------------------------------------------------------------

    def interrupt(self) -> None:
        """Stop playback and go back to listening shortly after."""
        self._player.stop()
        if self._fallback is not None:
            self._fallback.stop()
        self._set_state(AssistantState.IDLE)
        self._relisten_later(self._config.interrupt_relisten_delay_seconds)

    async def new_conversation(self) -> str:
        old_session = self._session_id
        try:
            await self._api.clear(old_session)
        except AriaVoiceError as exc:
            self._logger.warning("session_clear_failed", extra={"session_id": old_session, "error": exc.message})
        self._session_id = self._session_id_factory()
        self._last_reply = None
        self._logger.info("conversation_restarted", extra={"old": old_session, "new": self._session_id})
        return self._session_id

    async def repeat(self) -> bool:
        if not self._last_audio:
            return False
        self._cancel_silence_timer()
        self._capture.stop()
        await self._speak(self._last_audio, None)
        return True

    # -- request/response ----------------------------------------------------

    async def submit(self, transcript: str) -> AssistantReply | None:
        """Send ``transcript`` to the server and speak the reply."""
        if self._state in (AssistantState.THINKING, AssistantState.SPEAKING):
            return None
        self._capture.stop()
        self._set_state(AssistantState.THINKING)
        started = time.perf_counter()
        try:
            reply = await asyncio.wait_for(
                self._api.voice(transcript, session_id=self._session_id, voice=self._config.voice),
                timeout=self._config.request_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            self._fail(exc, "request_timeout")
            return None
        except AriaVoiceError as exc:
            self._fail(exc, "request_failed")
            return None

        if self._state != AssistantState.THINKING:
            # Stopped while waiting for the server.
            return None
        self._last_reply = reply
        self._logger.info(
            "assistant_reply",
            extra={
                "session_id": self._session_id,
                "sentiment": reply.sentiment.value,
                "has_audio": reply.audio is not None,
                "elapsed_ms": round((time.perf_counter() - started) * 1000, 1),
            },
        )
        if reply.audio:
            self._last_audio = reply.audio
        await self._speak(reply.audio, reply.text)
        return reply

    async def _speak(self, audio: bytes | None, text: str | None) -> None:
        self._set_state(AssistantState.SPEAKING)
        try:
            if audio:
                await self._player.play(audio)
            elif text and self._fallback is not None:
                await self._fallback.speak(text)
        except PlaybackError as exc:
            self._fail(exc, "playback_failed")
            return

        if self._state != AssistantState.SPEAKING:
            return
        self._set_state(AssistantState.IDLE)
        self._relisten_later(self._config.relisten_delay_seconds)

    def _fail(self, exc: Exception, event: str) -> None:
        self._last_error = exc
        self._logger.warning(event, extra={"session_id": self._session_id, "error": str(exc)})
        self._set_state(AssistantState.ERROR)
        self._schedule(self._config.error_recovery_seconds, self._recover)

    def _recover(self) -> None:
        if self._state != AssistantState.ERROR:
            return
        self._set_state(AssistantState.IDLE)
        if self._config.continuous_mode:
            self.start_listening()

    # -- recognition failures ------------------------------------------------

    def handle_recognition_error(self, code: str) -> RecoveryAction:
        """Apply the recovery policy for a recognizer error code."""
        self._cancel_silence_timer()
        self._pending_transcript = ""
        action = self._recovery.next_action(code)
        self._logger.warning(
            "recognition_error",
            extra={"code": code, "action": action.kind.value, "delay": action.delay_seconds},
        )

        if action.kind in (RecoveryKind.FATAL, RecoveryKind.GIVE_UP):
            self._capture.stop()
            self._last_error = RecognitionError(code)
            self._set_state(AssistantState.ERROR)
            return action

        if self._state == AssistantState.LISTENING:
            self._set_state(AssistantState.IDLE)
        if self._state == AssistantState.IDLE:
            self._schedule(action.delay_seconds or 0.0, self.start_listening)
        return action
