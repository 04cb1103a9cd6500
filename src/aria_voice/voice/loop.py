"""Blocking microphone loop that feeds the orchestrator."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from aria_voice.errors import RecognitionError

from .input import VoiceListeningMode
from .interfaces import SpeechRecognizer
from .orchestrator import AssistantState, VoiceOrchestrator

logger = logging.getLogger("aria_voice.voice.loop")


async def run_voice_loop(
    orchestrator: VoiceOrchestrator,
    recognizer: SpeechRecognizer,
    *,
    mode: VoiceListeningMode = VoiceListeningMode.CONTINUOUS,
    wait_for_key: Callable[[str], object] = input,
    on_transcript: Callable[[str], None] | None = None,
    max_utterances: int | None = None,
    poll_seconds: float = 0.05,
) -> int:
    """Listen, hand transcripts over and repeat until capture fails for good.

    In continuous mode the orchestrator re-arms listening by itself after each
    reply; in push-to-talk mode every capture waits for Enter. Returns the
    number of transcripts handled.
    """
    handled = 0
    if mode == VoiceListeningMode.CONTINUOUS:
        orchestrator.start_listening()

    while max_utterances is None or handled < max_utterances:
        state = orchestrator.state
        if state == AssistantState.ERROR and isinstance(orchestrator.last_error, RecognitionError):
            logger.error("voice_loop_stopped", extra={"code": orchestrator.last_error.code})
            break

        if state == AssistantState.IDLE and mode == VoiceListeningMode.PUSH_TO_TALK:
            await asyncio.to_thread(wait_for_key, "Press Enter to talk (Ctrl+C to quit) ...")
            orchestrator.start_listening()
            continue

        if state != AssistantState.LISTENING:
            await asyncio.sleep(poll_seconds)
            continue

        try:
            transcript = await asyncio.to_thread(recognizer.listen_once)
        except RecognitionError as exc:
            orchestrator.handle_recognition_error(exc.code)
            continue

        if not transcript:
            continue
        handled += 1
        if on_transcript is not None:
            on_transcript(transcript)
        await orchestrator.handle_transcript(transcript, is_final=True)

    return handled
