from __future__ import annotations

import base64
import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from aria_voice.config import Settings
from aria_voice.errors import SynthesisError, UpstreamError
from aria_voice.llm_client import OpenRouterChatClient
from aria_voice.server import build_context, create_app


class FakeChatClient:
    def __init__(self, reply: str = "Olá! Como posso ajudar?", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[tuple[list[dict[str, str]], str]] = []

    async def complete(self, messages: list[dict[str, str]], *, model: str) -> str:
        self.calls.append((messages, model))
        if self.error is not None:
            raise self.error
        return self.reply


class FakeSynthesizer:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, str, str]] = []

    async def synthesize(self, text: str, voice: str, rate: str) -> bytes:
        self.calls.append((text, voice, rate))
        if self.fail:
            raise SynthesisError("engine crashed", details="exit 1")
        return b"ID3" + text.encode("utf-8")


def _config(tmp_path: Path, **overrides) -> Settings:
    return Settings(
        data_dir=tmp_path / "data",
        audio_dir=tmp_path / "audio",
        tts_backend=overrides.pop("tts_backend", "edge"),
        **overrides,
    )


@pytest.fixture
def chat_client() -> FakeChatClient:
    return FakeChatClient()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def client(tmp_path: Path, chat_client: FakeChatClient, synthesizer: FakeSynthesizer):
    context = build_context(_config(tmp_path), chat_client=chat_client, synthesizer=synthesizer)
    with TestClient(create_app(context)) as test_client:
        yield test_client


def test_health_reports_runtime_fields(client: TestClient) -> None:
    body = client.get("/api/health").json()

    assert body["status"] == "ok"
    assert body["model"] == "openai/gpt-4o-mini"
    assert body["memory"] == 0
    assert body["serverless"] is False
    assert body["uptime"] >= 0


def test_empty_message_returns_400_without_provider_call(client: TestClient, chat_client: FakeChatClient) -> None:
    response = client.post("/api/chat", json={"message": "", "sessionId": "s1"})

    assert response.status_code == 400
    assert response.json()["error"] == "Message is required"
    assert chat_client.calls == []


def test_chat_returns_text_and_asks_client_to_speak(client: TestClient, chat_client: FakeChatClient) -> None:
    chat_client.reply = "Claro! **Aqui está** a resposta."

    body = client.post("/api/chat", json={"message": "Como você está?", "sessionId": "s1"}).json()

    assert body["response"] == "Claro! Aqui está a resposta."
    assert body["sentiment"] == "curious"
    assert body["sessionId"] == "s1"
    assert body["useBrowserTTS"] is True
    assert "audioBase64" not in body


def test_chat_provider_failure_maps_to_500(client: TestClient, chat_client: FakeChatClient) -> None:
    chat_client.error = UpstreamError("Rate limited", upstream_status=429)

    response = client.post("/api/chat", json={"message": "oi", "sessionId": "s1"})

    assert response.status_code == 500
    assert response.json()["error"] == "Rate limited"


def test_missing_api_key_fails_the_request_not_the_server(tmp_path: Path) -> None:
    context = build_context(
        _config(tmp_path),
        chat_client=OpenRouterChatClient(api_key=None),
        synthesizer=FakeSynthesizer(),
    )
    with TestClient(create_app(context)) as test_client:
        response = test_client.post("/api/chat", json={"message": "oi"})
        health = test_client.get("/api/health")

    assert response.status_code == 500
    assert "API key" in response.json()["error"]
    assert health.status_code == 200


def test_chat_inline_audio_when_enabled(tmp_path: Path) -> None:
    context = build_context(
        _config(tmp_path, inline_chat_audio=True),
        chat_client=FakeChatClient("Bom dia!"),
        synthesizer=FakeSynthesizer(),
    )
    with TestClient(create_app(context)) as test_client:
        body = test_client.post("/api/chat", json={"message": "oi", "sessionId": "s1"}).json()

    assert body["useBrowserTTS"] is False
    assert base64.b64decode(body["audioBase64"]) == b"ID3Bom dia!"


def test_voice_returns_audio_url_and_serves_cached_file(client: TestClient, synthesizer: FakeSynthesizer) -> None:
    first = client.post("/api/voice", json={"message": "oi", "sessionId": "s1", "voice": "antonio"}).json()
    second = client.post("/api/voice", json={"message": "oi", "sessionId": "s2", "voice": "antonio"}).json()

    assert first["response"] == "Olá! Como posso ajudar?"
    assert first["audioUrl"].startswith("/audio/") and first["audioUrl"].endswith(".mp3")
    assert first["cached"] is False
    assert second["cached"] is True
    assert len(synthesizer.calls) == 1
    assert synthesizer.calls[0][1] == "pt-BR-AntonioNeural"

    audio = client.get(first["audioUrl"])
    assert audio.status_code == 200
    assert audio.content == b"ID3" + "Olá! Como posso ajudar?".encode("utf-8")


def test_voice_falls_back_to_client_speech_when_tts_fails(tmp_path: Path) -> None:
    context = build_context(_config(tmp_path), chat_client=FakeChatClient(), synthesizer=FakeSynthesizer(fail=True))
    with TestClient(create_app(context)) as test_client:
        response = test_client.post("/api/voice", json={"message": "oi", "sessionId": "s1"})

    assert response.status_code == 200
    assert response.json()["audioUrl"] is None
    assert response.json()["response"] == "Olá! Como posso ajudar?"


def test_tts_failure_returns_500(tmp_path: Path) -> None:
    context = build_context(_config(tmp_path), chat_client=FakeChatClient(), synthesizer=FakeSynthesizer(fail=True))
    with TestClient(create_app(context)) as test_client:
        response = test_client.post("/api/tts", json={"text": "Olá", "voice": "francisca"})

    assert response.status_code == 500
    assert response.json() == {"error": "engine crashed", "details": "exit 1"}
    assert list((tmp_path / "audio").iterdir()) == []


def test_tts_uses_rate_and_rejects_empty_text(client: TestClient, synthesizer: FakeSynthesizer) -> None:
    empty = client.post("/api/tts", json={"text": " "})
    body = client.post("/api/tts", json={"text": "Olá", "voice": "jenny", "rate": "+20%"}).json()

    assert empty.status_code == 400
    assert body["cached"] is False
    assert synthesizer.calls == [("Olá", "en-US-JennyNeural", "+20%")]


def test_tts_disabled_without_backend(tmp_path: Path) -> None:
    context = build_context(_config(tmp_path, tts_backend="none"), chat_client=FakeChatClient())
    with TestClient(create_app(context)) as test_client:
        tts = test_client.post("/api/tts", json={"text": "Olá"})
        voice = test_client.post("/api/voice", json={"message": "oi"})

    assert tts.status_code == 500
    assert voice.json()["audioUrl"] is None


def test_settings_update_validates_and_persists(client: TestClient, tmp_path: Path) -> None:
    before = client.get("/api/settings").json()
    after = client.post("/api/settings", json={"voice": "nonexistent", "speed": 999, "wakeWordEnabled": True}).json()

    assert after["voice"] == before["voice"] == "francisca"
    assert after["speed"] == 50
    assert after["wakeWordEnabled"] is True
    saved = json.loads((tmp_path / "data" / "settings.json").read_text(encoding="utf-8"))
    assert saved["speed"] == 50


def test_chat_with_unknown_model_uses_stored_model(client: TestClient, chat_client: FakeChatClient) -> None:
    client.post("/api/settings", json={"model": "openai/gpt-4o"})

    client.post("/api/chat", json={"message": "oi", "sessionId": "s1", "model": "bogus/model"})
    client.post("/api/chat", json={"message": "oi", "sessionId": "s1", "model": "google/gemini-pro-1.5"})

    assert [model for _, model in chat_client.calls] == ["openai/gpt-4o", "google/gemini-pro-1.5"]


def test_memory_endpoints(client: TestClient, tmp_path: Path) -> None:
    client.post("/api/memory", json={"fact": "Nome: João"})
    client.post("/api/memory", json={"fact": "Nome: João", "preference": {"tema": "escuro"}})
    body = client.get("/api/memory").json()

    assert body == {"facts": ["Nome: João"], "preferences": {"tema": "escuro"}, "count": 1}
    assert client.delete("/api/memory").json()["count"] == 0
    saved = json.loads((tmp_path / "data" / "memory.json").read_text(encoding="utf-8"))
    assert saved == {"facts": [], "preferences": {}}


def test_remember_marker_reaches_memory_endpoint(client: TestClient, chat_client: FakeChatClient) -> None:
    chat_client.reply = "Prazer, João! [LEMBRAR: Nome: João]"

    body = client.post("/api/chat", json={"message": "Meu nome é João", "sessionId": "s1"}).json()

    assert body["response"] == "Prazer, João!"
    assert client.get("/api/memory").json()["facts"] == ["Nome: João"]


def test_clear_is_idempotent(client: TestClient, chat_client: FakeChatClient) -> None:
    client.post("/api/chat", json={"message": "oi", "sessionId": "s1"})

    assert client.post("/api/clear", json={"sessionId": "s1"}).json() == {"success": True}
    assert client.post("/api/clear", json={"sessionId": "s1"}).json() == {"success": True}

    client.post("/api/chat", json={"message": "de novo", "sessionId": "s1"})
    messages, _ = chat_client.calls[-1]
    assert [message["content"] for message in messages[1:]] == ["de novo"]


def test_history_returns_newest_entries(client: TestClient) -> None:
    for index in range(3):
        client.post("/api/chat", json={"message": f"mensagem {index}", "sessionId": "s1"})

    body = client.get("/api/history", params={"limit": 2}).json()

    assert body["total"] == 3
    assert [entry["user"] for entry in body["conversations"]] == ["mensagem 1", "mensagem 2"]


def test_model_and_voice_listings(client: TestClient) -> None:
    models = client.get("/api/models").json()
    voices = client.get("/api/voices").json()

    assert models["current"] == "openai/gpt-4o-mini"
    assert len(models["models"]) == 8
    assert {voice["id"] for voice in voices["voices"]} >= {"francisca", "jenny", "aria-en"}
    assert voices["current"] == "francisca"


def test_shutdown_flushes_conversation_log(tmp_path: Path) -> None:
    context = build_context(_config(tmp_path), chat_client=FakeChatClient(), synthesizer=FakeSynthesizer())
    with TestClient(create_app(context)) as test_client:
        test_client.post("/api/chat", json={"message": "oi", "sessionId": "s1"})

    saved = json.loads((tmp_path / "data" / "history.json").read_text(encoding="utf-8"))
    assert len(saved["conversations"]) == 1
