from __future__ import annotations

import asyncio

import pytest

from aria_voice.chat import PERSONA_PROMPT, ChatRelay, build_system_prompt
from aria_voice.errors import InvalidInput
from aria_voice.models import Sentiment
from aria_voice.sessions import SessionStore
from aria_voice.stores import ConversationLog, MemoryStore


class FakeChatClient:
    def __init__(self, *replies: str) -> None:
        self.replies = list(replies)
        self.calls: list[tuple[list[dict[str, str]], str]] = []

    async def complete(self, messages: list[dict[str, str]], *, model: str) -> str:
        self.calls.append((messages, model))
        return self.replies.pop(0) if self.replies else "ok"


def _relay(client: FakeChatClient, **kwargs) -> ChatRelay:
    return ChatRelay(
        client=client,
        sessions=kwargs.pop("sessions", SessionStore(max_turns=20)),
        memory=kwargs.pop("memory", MemoryStore()),
        conversation_log=kwargs.pop("conversation_log", ConversationLog()),
        **kwargs,
    )


def test_chat_extracts_memory_and_strips_markdown() -> None:
    memory = MemoryStore()
    log = ConversationLog()
    client = FakeChatClient("Prazer, **João**! [LEMBRAR: Nome: João]")
    relay = _relay(client, memory=memory, conversation_log=log)

    reply = asyncio.run(relay.chat("Meu nome é João", "s1"))

    assert reply.text == "Prazer, João!"
    assert reply.facts == ["Nome: João"]
    assert memory.facts == ["Nome: João"]
    assert [turn.text for turn in relay.sessions.history("s1")] == ["Meu nome é João", "Prazer, João!"]
    assert log.recent()[0].assistant == "Prazer, João!"


def test_empty_message_is_rejected_without_provider_call() -> None:
    client = FakeChatClient()
    relay = _relay(client)

    with pytest.raises(InvalidInput):
        asyncio.run(relay.chat("   ", "s1"))
    assert client.calls == []


def test_prompt_carries_history_window_and_user_message() -> None:
    client = FakeChatClient()
    sessions = SessionStore(max_turns=20)
    for index in range(8):
        sessions.append_exchange("s1", f"u{index}", f"a{index}")
    relay = _relay(client, sessions=sessions, prompt_history_turns=4)

    asyncio.run(relay.chat("nova pergunta", "s1"))

    messages, _ = client.calls[0]
    assert messages[0]["role"] == "system"
    assert [message["content"] for message in messages[1:]] == ["u6", "a6", "u7", "a7", "nova pergunta"]


def test_unknown_model_falls_back_to_default() -> None:
    client = FakeChatClient("oi", "oi")
    relay = _relay(client, default_model="anthropic/claude-3-haiku")

    asyncio.run(relay.chat("oi", "s1", model="made/up"))
    asyncio.run(relay.chat("oi", "s1", model="openai/gpt-4o"))

    assert [model for _, model in client.calls] == ["anthropic/claude-3-haiku", "openai/gpt-4o"]


def test_sentiment_is_computed_on_user_message() -> None:
    relay = _relay(FakeChatClient("Que pena ouvir isso."))

    reply = asyncio.run(relay.chat("Estou feliz demais", "s1"))

    assert reply.sentiment == Sentiment.POSITIVE


def test_system_prompt_rebuilt_only_after_memory_changes() -> None:
    memory = MemoryStore()
    relay = _relay(FakeChatClient(), memory=memory)

    first = relay.system_prompt()
    assert relay.system_prompt() is first

    memory.add_fact("Gosta de café")
    second = relay.system_prompt()
    assert second is not first
    assert "Gosta de café" in second

    memory.clear()
    assert "Gosta de café" not in relay.system_prompt()


def test_system_prompt_lists_newest_facts_and_preferences() -> None:
    prompt = build_system_prompt([f"fato {index}" for index in range(15)], {"tema": "escuro"}, max_facts=10)

    assert prompt.startswith(PERSONA_PROMPT)
    assert "fato 4" not in prompt
    assert "fato 5" in prompt and "fato 14" in prompt
    assert '"tema": "escuro"' in prompt


def test_clear_drops_session() -> None:
    relay = _relay(FakeChatClient())
    asyncio.run(relay.chat("oi", "s1"))

    assert relay.clear("s1") is True
    assert relay.clear("s1") is False
