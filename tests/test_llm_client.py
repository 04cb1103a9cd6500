from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from aria_voice.errors import UpstreamError
from aria_voice.llm_client import OpenRouterChatClient


def _client(handler, api_key: str | None = "sk-test") -> OpenRouterChatClient:
    return OpenRouterChatClient(
        api_key=api_key,
        url="https://llm.test/chat/completions",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def test_complete_sends_generation_parameters() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "  Olá!  "}}]})

    text = asyncio.run(_client(handler).complete([{"role": "user", "content": "oi"}], model="openai/gpt-4o-mini"))

    assert text == "Olá!"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["model"] == "openai/gpt-4o-mini"
    assert seen["body"]["temperature"] == 0.7
    assert seen["body"]["top_p"] == 0.9
    assert seen["body"]["max_tokens"] == 150


def test_provider_error_message_is_passed_through() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(402, json={"error": {"message": "Insufficient credits"}})

    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(_client(handler).complete([], model="openai/gpt-4o"))

    assert excinfo.value.message == "Insufficient credits"
    assert excinfo.value.upstream_status == 402


def test_missing_api_key_fails_without_calling_provider() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    client = _client(handler, api_key=None)

    with pytest.raises(UpstreamError):
        asyncio.run(client.complete([], model="openai/gpt-4o"))
    assert calls == []
    assert client.configured is False


def test_transport_error_becomes_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError):
        asyncio.run(_client(handler).complete([], model="openai/gpt-4o"))


def test_unexpected_payload_becomes_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": []})

    with pytest.raises(UpstreamError):
        asyncio.run(_client(handler).complete([], model="openai/gpt-4o"))
