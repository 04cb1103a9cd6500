"""Chat relay: prompt assembly, provider call and reply post-processing."""

from __future__ import annotations

import json
import logging

from aria_voice.catalog import MODELS, resolve_model
from aria_voice.errors import InvalidInput
from aria_voice.llm_client import ChatCompletionClient
from aria_voice.models import ChatReply, ConversationEntry
from aria_voice.sessions import SessionStore
from aria_voice.stores import ConversationLog, MemoryStore
from aria_voice.text_cleaning import analyze_sentiment, extract_memories, strip_markdown

PERSONA_PROMPT = """Você é ARIA, uma assistente de voz inteligente e empática.

PERSONALIDADE:
- Amigável, natural e expressiva
- Tom conversacional, como uma amiga próxima
- Lembra do contexto e referencia conversas anteriores

REGRAS DE RESPOSTA:
- Respostas MUITO CURTAS (1-3 frases), naturais para fala
- Sem markdown, asteriscos, listas, emojis ou formatação
- Português brasileiro natural e moderno
- Vá direto ao ponto

IMPORTANTE: Quando o usuário compartilhar informações pessoais importantes (nome, profissão, gostos),
responda naturalmente E adicione [LEMBRAR: informação] no final para eu salvar."""


def build_system_prompt(facts: list[str], preferences: dict, *, max_facts: int = 10) -> str:
    sections = [PERSONA_PROMPT]
    if facts and max_facts > 0:
        sections.append("MEMÓRIA DO USUÁRIO:\n" + "\n".join(facts[-max_facts:]))
    if preferences:
        sections.append("PREFERÊNCIAS: " + json.dumps(preferences, ensure_ascii=False))
    return "\n\n".join(sections)


class ChatRelay:
    """Forwards user messages to the chat provider with bounded session context."""

    def __init__(
        self,
        *,
        client: ChatCompletionClient,
        sessions: SessionStore,
        memory: MemoryStore,
        conversation_log: ConversationLog | None = None,
        default_model: str | None = None,
        prompt_history_turns: int = 10,
        memory_prompt_facts: int = 10,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self._sessions = sessions
        self._memory = memory
        self._conversation_log = conversation_log
        self._default_model = resolve_model(default_model)
        self._prompt_history_turns = prompt_history_turns
        self._memory_prompt_facts = memory_prompt_facts
        self._logger = logger or logging.getLogger("aria_voice.chat")
        self._cached_prompt: tuple[int, str] | None = None

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    def system_prompt(self) -> str:
        """Return the preamble, rebuilding it only after memory changed."""
        revision = self._memory.revision
        if self._cached_prompt is None or self._cached_prompt[0] != revision:
            prompt = build_system_prompt(
                self._memory.facts,
                self._memory.preferences,
                max_facts=self._memory_prompt_facts,
            )
            self._cached_prompt = (revision, prompt)
        return self._cached_prompt[1]

    def build_messages(self, message: str, session_id: str) -> list[dict[str, str]]:
        history = self._sessions.history(session_id, limit=self._prompt_history_turns)
        return [
            {"role": "system", "content": self.system_prompt()},
            *(turn.as_message() for turn in history),
            {"role": "user", "content": message},
        ]

    async def chat(self, message: str, session_id: str, model: str | None = None) -> ChatReply:
        text = (message or "").strip()
        if not text:
            raise InvalidInput("Message is required")

        chosen_model = model if model in MODELS else self._default_model
        messages = self.build_messages(text, session_id)
        raw = await self._client.complete(messages, model=chosen_model)

        visible, facts = extract_memories(raw)
        reply_text = strip_markdown(visible)
        if facts:
            added = self._memory.add_facts(facts)
            self._logger.info("memory_facts_added", extra={"session_id": session_id, "facts": added})

        self._sessions.append_exchange(session_id, text, reply_text)
        sentiment = analyze_sentiment(text)
        if self._conversation_log is not None:
            self._conversation_log.append(ConversationEntry(user=text, assistant=reply_text, sentiment=sentiment))

        self._logger.info(
            "chat_reply",
            extra={"session_id": session_id, "model": chosen_model, "sentiment": sentiment.value},
        )
        return ChatReply(text=reply_text, model=chosen_model, sentiment=sentiment, facts=facts)

    def clear(self, session_id: str) -> bool:
        cleared = self._sessions.clear(session_id)
        self._logger.info("session_cleared", extra={"session_id": session_id, "existed": cleared})
        return cleared
