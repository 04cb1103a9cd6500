from __future__ import annotations

import asyncio

from aria_voice.errors import RecognitionError
from aria_voice.voice.input import VoiceListeningMode
from aria_voice.voice.loop import run_voice_loop
from aria_voice.voice.orchestrator import AssistantState, OrchestratorConfig, VoiceOrchestrator
from aria_voice.voice.timers import AsyncioTimers

from test_orchestrator import FakeApi, FakeCapture, FakeFallback, FakePlayer


class ScriptedRecognizer:
    def __init__(self, *results) -> None:
        self.results = list(results)

    def listen_once(self) -> str:
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _orchestrator(api: FakeApi, **config) -> VoiceOrchestrator:
    return VoiceOrchestrator(
        api=api,
        capture=FakeCapture(),
        player=FakePlayer(),
        fallback=FakeFallback(),
        timers=AsyncioTimers(),
        config=OrchestratorConfig(relisten_delay_seconds=0.0, **config),
    )


def test_continuous_loop_relistens_after_each_reply() -> None:
    api = FakeApi()
    recognizer = ScriptedRecognizer("primeira", "segunda")
    heard: list[str] = []

    async def _run() -> int:
        orchestrator = _orchestrator(api)
        return await run_voice_loop(orchestrator, recognizer, on_transcript=heard.append, max_utterances=2)

    handled = asyncio.run(_run())

    assert handled == 2
    assert heard == ["primeira", "segunda"]
    assert [message for message, _, _ in api.sent] == ["primeira", "segunda"]


def test_push_to_talk_waits_for_key_before_listening() -> None:
    api = FakeApi()
    prompts: list[str] = []

    async def _run() -> VoiceOrchestrator:
        orchestrator = _orchestrator(api, continuous_mode=False)
        await run_voice_loop(
            orchestrator,
            ScriptedRecognizer("olá"),
            mode=VoiceListeningMode.PUSH_TO_TALK,
            wait_for_key=prompts.append,
            max_utterances=1,
        )
        return orchestrator

    orchestrator = asyncio.run(_run())

    assert len(prompts) == 1
    assert [message for message, _, _ in api.sent] == ["olá"]
    assert orchestrator.state == AssistantState.IDLE


def test_fatal_recognition_error_ends_loop() -> None:
    async def _run() -> tuple[int, VoiceOrchestrator]:
        orchestrator = _orchestrator(FakeApi())
        handled = await run_voice_loop(orchestrator, ScriptedRecognizer(RecognitionError("not-allowed")))
        return handled, orchestrator

    handled, orchestrator = asyncio.run(_run())

    assert handled == 0
    assert orchestrator.state == AssistantState.ERROR
