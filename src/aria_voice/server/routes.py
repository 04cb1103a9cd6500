"""JSON endpoints of the relay."""

from __future__ import annotations

import base64
import logging
import time
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request

from aria_voice import __version__
from aria_voice.catalog import MODELS, model_listing, voice_listing
from aria_voice.errors import InvalidInput, SynthesisError
from aria_voice.models import AudioReference
from aria_voice.stores import coerce_speed

from .context import AppContext
from .schemas import ChatRequest, ClearRequest, MemoryRequest, TTSRequest, VoiceRequest

logger = logging.getLogger("aria_voice.server.routes")

router = APIRouter(prefix="/api")


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def _elapsed_ms(started: float) -> int:
    return round((time.perf_counter() - started) * 1000)


def _inline_audio(context: AppContext, reference: AudioReference) -> str | None:
    if reference.audio_base64:
        return reference.audio_base64
    audio = context.tts.cache.load(reference.key) if context.tts else None
    return base64.b64encode(audio).decode("ascii") if audio else None


async def _speak_or_none(context: AppContext, text: str, voice: str | None, speed: int) -> AudioReference | None:
    """Synthesize ``text``; failures are logged and leave speaking to the client."""
    if context.tts is None:
        return None
    try:
        return await context.tts.synthesize(text, voice, speed)
    except (SynthesisError, InvalidInput) as exc:
        logger.warning("tts_fallback_to_client", extra={"error": exc.message, "details": exc.details})
        return None


@router.get("/health")
async def health(context: AppContext = Depends(get_context)) -> dict[str, Any]:
    return {
        "status": "ok",
        "version": __version__,
        "model": context.settings_store.get().model,
        "memory": len(context.memory.facts),
        "uptime": round(context.uptime(), 3),
        "serverless": context.config.serverless,
    }


@router.post("/chat")
async def chat(body: ChatRequest, context: AppContext = Depends(get_context)) -> dict[str, Any]:
    started = time.perf_counter()
    user_settings = context.settings_store.get()
    model = body.model if body.model in MODELS else user_settings.model
    reply = await context.chat.chat(body.message or "", body.session_id, model)

    audio_base64 = None
    if context.config.inline_chat_audio:
        reference = await _speak_or_none(context, reply.text, user_settings.voice, user_settings.speed)
        if reference is not None:
            audio_base64 = _inline_audio(context, reference)

    payload: dict[str, Any] = {
        "response": reply.text,
        "sentiment": reply.sentiment.value,
        "sessionId": body.session_id,
        "useBrowserTTS": audio_base64 is None,
        "time": _elapsed_ms(started),
    }
    if audio_base64 is not None:
        payload["audioBase64"] = audio_base64
    context.telemetry.emit("chat_completed", {"session_id": body.session_id, "elapsed_ms": payload["time"]})
    return payload


@router.post("/voice")
async def voice(body: VoiceRequest, context: AppContext = Depends(get_context)) -> dict[str, Any]:
    started = time.perf_counter()
    user_settings = context.settings_store.get()
    reply = await context.chat.chat(body.message or "", body.session_id, user_settings.model)
    reference = await _speak_or_none(context, reply.text, body.voice or user_settings.voice, user_settings.speed)

    payload: dict[str, Any] = {
        "response": reply.text,
        "audioUrl": reference.url if reference else None,
        "sentiment": reply.sentiment.value,
        "cached": bool(reference and reference.cached),
        "processingTime": _elapsed_ms(started),
    }
    if reference is not None and reference.audio_base64:
        payload["audioBase64"] = reference.audio_base64
    context.telemetry.emit(
        "voice_completed",
        {"session_id": body.session_id, "elapsed_ms": payload["processingTime"], "has_audio": reference is not None},
    )
    return payload


@router.post("/tts")
async def tts(body: TTSRequest, context: AppContext = Depends(get_context)) -> dict[str, Any]:
    if not (body.text or "").strip():
        raise InvalidInput("Text is required")
    if context.tts is None:
        raise SynthesisError("Server-side speech is disabled")

    user_settings = context.settings_store.get()
    speed = coerce_speed(body.rate) if body.rate is not None else None
    reference = await context.tts.synthesize(
        body.text,
        body.voice or user_settings.voice,
        user_settings.speed if speed is None else speed,
    )
    payload: dict[str, Any] = {"audioUrl": reference.url, "cached": reference.cached}
    if reference.audio_base64:
        payload["audioBase64"] = reference.audio_base64
    return payload


@router.get("/settings")
async def get_settings(context: AppContext = Depends(get_context)) -> dict[str, Any]:
    return context.settings_store.get().to_dict()


@router.post("/settings")
async def update_settings(
    partial: dict[str, Any] | None = Body(default=None),
    context: AppContext = Depends(get_context),
) -> dict[str, Any]:
    updated = context.settings_store.update(partial or {})
    context.settings_store.flush()
    logger.info("settings_updated", extra={"settings": updated.to_dict()})
    return updated.to_dict()


@router.get("/memory")
async def get_memory(context: AppContext = Depends(get_context)) -> dict[str, Any]:
    return context.memory.to_dict()


@router.post("/memory")
async def add_memory(body: MemoryRequest, context: AppContext = Depends(get_context)) -> dict[str, Any]:
    if body.fact:
        context.memory.add_fact(body.fact)
    if body.preference:
        context.memory.add_preferences(body.preference)
    context.memory.flush()
    return context.memory.to_dict()


@router.delete("/memory")
async def clear_memory(context: AppContext = Depends(get_context)) -> dict[str, Any]:
    context.memory.clear()
    context.memory.flush()
    logger.info("memory_cleared")
    return context.memory.to_dict()


@router.post("/clear")
async def clear_session(body: ClearRequest, context: AppContext = Depends(get_context)) -> dict[str, bool]:
    if body.session_id:
        context.chat.clear(body.session_id)
    return {"success": True}


@router.get("/history")
async def history(
    limit: int = Query(default=50, ge=0, le=1_000),
    context: AppContext = Depends(get_context),
) -> dict[str, Any]:
    return {
        "conversations": [entry.to_dict() for entry in context.conversation_log.recent(limit)],
        "total": len(context.conversation_log),
    }


@router.get("/models")
async def models(context: AppContext = Depends(get_context)) -> dict[str, Any]:
    return {"models": model_listing(), "current": context.settings_store.get().model}


@router.get("/voices")
async def voices(context: AppContext = Depends(get_context)) -> dict[str, Any]:
    return {"voices": voice_listing(), "current": context.settings_store.get().voice}
