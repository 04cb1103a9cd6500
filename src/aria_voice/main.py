"""CLI entrypoint for ARIA Voice."""

from __future__ import annotations

import asyncio

import typer
from rich import print

from aria_voice.catalog import DEFAULT_MODEL, model_listing, voice_listing
from aria_voice.config import settings
from aria_voice.errors import AriaVoiceError
from aria_voice.models import UserSettings
from aria_voice.stores import SettingsStore
from aria_voice.telemetry import configure_logging
from aria_voice.voice.api_client import AriaApiClient

app = typer.Typer(help="ARIA Voice relay server and voice client")


@app.command()
def serve(
    host: str = typer.Option(None, help="Bind address (defaults to ARIA_VOICE_HOST)"),
    port: int = typer.Option(None, help="Port (defaults to ARIA_VOICE_PORT / PORT)"),
) -> None:
    """Run the chat and speech relay."""
    import uvicorn

    from aria_voice.server import create_app

    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(config=settings),
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


@app.command()
def ask(
    message: str,
    session_id: str = typer.Option("cli", help="Conversation session id"),
    model: str = typer.Option(None, help="Model id, see `aria-voice models`"),
    server_url: str = typer.Option(None, help="Relay base URL"),
) -> None:
    """Send one text message to a running relay and print the reply."""
    client = AriaApiClient(server_url or settings.server_url, timeout_seconds=settings.client_timeout_seconds)

    async def _run():
        try:
            return await client.chat(message, session_id=session_id, model=model)
        finally:
            await client.aclose()

    try:
        reply = asyncio.run(_run())
    except AriaVoiceError as exc:
        print({"error": exc.message, "details": exc.details})
        raise typer.Exit(code=1)
    print({"response": reply.text, "sentiment": reply.sentiment.value})


@app.command()
def check(server_url: str = typer.Option(None, help="Relay base URL")) -> None:
    """Report relay health and current settings."""
    client = AriaApiClient(server_url or settings.server_url, timeout_seconds=settings.client_timeout_seconds)

    async def _run() -> tuple[dict, dict]:
        try:
            return await client.health(), await client.get_settings()
        finally:
            await client.aclose()

    try:
        health, current = asyncio.run(_run())
    except AriaVoiceError as exc:
        print({"status": "unreachable", "error": exc.message, "details": exc.details})
        raise typer.Exit(code=1)
    print({"health": health, "settings": current})


@app.command()
def voices() -> None:
    """List the voices the relay can speak with."""
    print({"voices": voice_listing()})


@app.command()
def models() -> None:
    """List the chat models that can be selected."""
    print({"models": model_listing(), "default": DEFAULT_MODEL})


@app.command()
def voice(
    server_url: str = typer.Option(None, help="Relay base URL"),
    push_to_talk: bool = typer.Option(False, help="Press Enter before each utterance"),
    mobile: bool = typer.Option(False, help="Use the longer mobile silence timeout"),
    language: str = typer.Option(None, help="Recognition language, defaults to the server setting"),
    local_voice: bool = typer.Option(True, help="Speak locally when the server sends no audio"),
) -> None:
    """Run the interactive voice loop against a relay."""
    from aria_voice.voice.input import VoiceListeningMode
    from aria_voice.voice.loop import run_voice_loop
    from aria_voice.voice.orchestrator import OrchestratorConfig, VoiceOrchestrator
    from aria_voice.voice.output import CommandAudioPlayer
    from aria_voice.voice.timers import AsyncioTimers

    try:
        from aria_voice.voice.stt_speechrecognition import SpeechRecognitionCapture
        from aria_voice.voice.tts_pyttsx3 import Pyttsx3SpeechFallback
    except ImportError:
        print({"error": "Voice extras are missing. Install with: pip install 'aria-voice[voice]'"})
        raise typer.Exit(code=1)

    configure_logging(settings.log_level)
    client = AriaApiClient(server_url or settings.server_url, timeout_seconds=settings.client_timeout_seconds)

    async def _run() -> int:
        try:
            remote = await client.get_settings()
        except AriaVoiceError as exc:
            print({"error": exc.message, "details": exc.details})
            await client.aclose()
            return 1

        store = SettingsStore()
        store.update(remote)
        user_settings: UserSettings = store.get()

        try:
            capture = SpeechRecognitionCapture(language=language or user_settings.language)
            fallback = Pyttsx3SpeechFallback() if local_voice else None
        except RuntimeError as exc:
            print({"error": str(exc)})
            await client.aclose()
            return 1

        config = OrchestratorConfig.from_settings(user_settings, mobile=mobile)
        if push_to_talk:
            config.continuous_mode = False
        timers = AsyncioTimers()
        orchestrator = VoiceOrchestrator(
            api=client,
            capture=capture,
            player=CommandAudioPlayer(settings.audio_player_command),
            fallback=fallback,
            timers=timers,
            config=config,
            on_state_change=lambda state: print({"state": state.value}),
        )
        mode = VoiceListeningMode.PUSH_TO_TALK if push_to_talk else VoiceListeningMode.CONTINUOUS
        print({"voice": "started", "mode": mode.value, "session": orchestrator.session_id, "hint": "Ctrl+C to quit"})
        try:
            await run_voice_loop(orchestrator, capture, mode=mode, on_transcript=lambda text: print({"heard": text}))
        finally:
            orchestrator.stop()
            timers.cancel_all()
            await client.aclose()
        return 0

    try:
        code = asyncio.run(_run())
    except KeyboardInterrupt:
        code = 0
    print({"voice": "stopped"})
    if code:
        raise typer.Exit(code=code)


if __name__ == "__main__":
    app()
