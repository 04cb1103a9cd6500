"""Application state shared by the HTTP handlers.

Everything the relay mutates lives on one ``AppContext`` that is built by
``build_context`` and attached to the FastAPI app.
"""

from __future__ import annotations

import logging
import shlex
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from aria_voice.chat import ChatRelay
from aria_voice.config import Settings
from aria_voice.llm_client import ChatCompletionClient, OpenRouterChatClient
from aria_voice.scheduler import PeriodicTask
from aria_voice.sessions import SessionStore
from aria_voice.stores import ConversationLog, JsonDocument, MemoryStore, SettingsStore
from aria_voice.telemetry import LoggingTelemetry, Telemetry
from aria_voice.tts import EdgeTTSCliSynthesizer, ElevenLabsSynthesizer, FileAudioCache, MemoryAudioCache, TTSRelay
from aria_voice.tts.cache import AudioCache
from aria_voice.voice.interfaces import SpeechSynthesizer

logger = logging.getLogger("aria_voice.server.context")


@dataclass(slots=True)
class AppContext:
    config: Settings
    settings_store: SettingsStore
    memory: MemoryStore
    conversation_log: ConversationLog
    chat: ChatRelay
    chat_client: ChatCompletionClient
    tts: TTSRelay | None
    synthesizer: SpeechSynthesizer | None = None
    telemetry: Telemetry = field(default_factory=LoggingTelemetry)
    tasks: list[PeriodicTask] = field(default_factory=list)
    clock: Callable[[], float] = time.time
    started_at: float = 0.0

    @property
    def sessions(self) -> SessionStore:
        return self.chat.sessions

    def uptime(self) -> float:
        return max(0.0, self.clock() - self.started_at)

    def flush(self, *, force: bool = False) -> int:
        """Persist dirty JSON documents; returns how many were written."""
        written = 0
        for store in (self.settings_store, self.memory, self.conversation_log):
            try:
                written += int(store.flush(force=force))
            except OSError:
                logger.exception("store_flush_failed", extra={"store": type(store).__name__})
        return written

    async def start(self) -> None:
        for task in self.tasks:
            await task.start()
        logger.info(
            "app_context_started",
            extra={"tts": self.tts is not None, "tasks": [task.name for task in self.tasks]},
        )

    async def stop(self) -> None:
        for task in self.tasks:
            await task.stop()
        self.flush()
        for resource in (self.chat_client, self.synthesizer):
            close = getattr(resource, "aclose", None)
            if close is not None:
                await close()
        logger.info("app_context_stopped")


def build_synthesizer(config: Settings) -> SpeechSynthesizer | None:
    """Pick the speech backend; ``None`` means clients speak replies themselves."""
    backend = config.tts_backend.lower()
    if config.serverless or backend == "none":
        return None
    if backend == "edge":
        return EdgeTTSCliSynthesizer(shlex.split(config.edge_tts_binary), timeout_seconds=config.tts_timeout_seconds)
    if backend == "elevenlabs":
        return ElevenLabsSynthesizer(
            api_key=config.elevenlabs_api_key,
            default_voice_id=config.elevenlabs_voice_id,
            model_id=config.elevenlabs_model,
            url=config.elevenlabs_url,
            timeout_seconds=config.tts_timeout_seconds,
        )
    if backend == "pyttsx3":
        from aria_voice.voice.tts_pyttsx3 import Pyttsx3Synthesizer

        try:
            return Pyttsx3Synthesizer()
        except RuntimeError as exc:
            logger.warning("tts_backend_unavailable", extra={"backend": backend, "error": str(exc)})
            return None
    raise ValueError(f"Unknown TTS backend: {config.tts_backend}")


def build_audio_cache(config: Settings, *, clock: Callable[[], float] = time.time) -> AudioCache:
    if config.audio_cache.lower() == "memory":
        return MemoryAudioCache(ttl_seconds=config.audio_ttl_seconds, clock=clock)
    suffix = ".wav" if config.tts_backend.lower() == "pyttsx3" else ".mp3"
    return FileAudioCache(
        config.audio_dir,
        url_prefix=config.audio_url_prefix,
        suffix=suffix,
        ttl_seconds=config.audio_ttl_seconds,
    )


def build_context(
    config: Settings,
    *,
    chat_client: ChatCompletionClient | None = None,
    synthesizer: SpeechSynthesizer | None = None,
    audio_cache: AudioCache | None = None,
    telemetry: Telemetry | None = None,
    clock: Callable[[], float] = time.time,
) -> AppContext:
    """Wire stores, relays and background tasks from ``config``.

    ``chat_client``, ``synthesizer`` and ``audio_cache`` override the
    configured backends.
    """
    data_dir = config.data_dir
    settings_store = SettingsStore(JsonDocument(data_dir / "settings.json"))
    memory = MemoryStore(JsonDocument(data_dir / "memory.json"), max_facts=config.memory_fact_cap)
    conversation_log = ConversationLog(
        JsonDocument(data_dir / "history.json"),
        max_entries=config.conversation_log_max,
        keep=config.conversation_log_keep,
    )

    if chat_client is None:
        if not config.openrouter_api_key:
            logger.warning("chat_api_key_missing", extra={"hint": "set OPENROUTER_API_KEY"})
        chat_client = OpenRouterChatClient(
            api_key=config.openrouter_api_key,
            url=config.openrouter_url,
            temperature=config.chat_temperature,
            top_p=config.chat_top_p,
            max_tokens=config.chat_max_tokens,
            referer=config.openrouter_referer,
            title=config.openrouter_title,
            timeout_seconds=config.chat_timeout_seconds,
        )

    chat = ChatRelay(
        client=chat_client,
        sessions=SessionStore(max_turns=config.session_history_cap),
        memory=memory,
        conversation_log=conversation_log,
        default_model=settings_store.get().model,
        prompt_history_turns=config.prompt_history_turns,
        memory_prompt_facts=config.memory_prompt_facts,
    )

    if synthesizer is None:
        synthesizer = build_synthesizer(config)
    tts = None
    if synthesizer is not None:
        cache = audio_cache or build_audio_cache(config, clock=clock)
        tts = TTSRelay(synthesizer=synthesizer, cache=cache, max_chars=config.tts_max_chars)

    context = AppContext(
        config=config,
        settings_store=settings_store,
        memory=memory,
        conversation_log=conversation_log,
        chat=chat,
        chat_client=chat_client,
        tts=tts,
        synthesizer=synthesizer,
        telemetry=telemetry or LoggingTelemetry(),
        clock=clock,
        started_at=clock(),
    )

    if tts is not None:
        context.tasks.append(
            PeriodicTask("audio-sweep", config.audio_sweep_interval_seconds, tts.cache.sweep, clock=clock)
        )
    context.tasks.append(
        PeriodicTask("json-flush", config.flush_interval_seconds, lambda now: context.flush(), clock=clock)
    )
    return context
