"""OpenAI-compatible chat-completion client for OpenRouter."""

from __future__ import annotations

import logging
import time
from typing import Protocol

import httpx

from aria_voice.errors import UpstreamError

_MAX_DETAIL_CHARS = 800


class ChatCompletionClient(Protocol):
    """Sends a message list to a chat model and returns the reply text."""

    async def complete(self, messages: list[dict[str, str]], *, model: str) -> str:
        """Return the raw assistant text for ``messages``."""


class OpenRouterChatClient:
    """Chat client speaking the OpenRouter ``/chat/completions`` wire format."""

    def __init__(
        self,
        *,
        api_key: str | None,
        url: str = "https://openrouter.ai/api/v1/chat/completions",
        temperature: float = 0.7,
        top_p: float = 0.9,
        max_tokens: int = 150,
        referer: str = "https://aria-voice.app",
        title: str = "ARIA Voice",
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._api_key = api_key
        self._url = url
        self._temperature = temperature
        self._top_p = top_p
        self._max_tokens = max_tokens
        self._referer = referer
        self._title = title
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))
        self._logger = logger or logging.getLogger("aria_voice.llm_client")

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def complete(self, messages: list[dict[str, str]], *, model: str) -> str:
        if not self._api_key:
            raise UpstreamError("Chat provider API key is not configured")

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self._referer,
            "X-Title": self._title,
        }
        payload = {
            "model": model,
            "messages": messages,
            "temperature": self._temperature,
            "top_p": self._top_p,
            "max_tokens": self._max_tokens,
        }

        started = time.perf_counter()
        try:
            response = await self._http.post(self._url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            self._logger.warning("chat_request_failed", extra={"model": model, "error": str(exc)})
            raise UpstreamError("Chat provider request failed", details=str(exc)) from exc

        if response.status_code >= 400:
            message = _error_message(response)
            self._logger.warning(
                "chat_provider_error",
                extra={"model": model, "status_code": response.status_code, "error": message},
            )
            raise UpstreamError(message, upstream_status=response.status_code)

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise UpstreamError("Chat provider returned an unexpected payload", details=response.text[:_MAX_DETAIL_CHARS]) from exc

        self._logger.info(
            "chat_completed",
            extra={"model": model, "latency_ms": round((time.perf_counter() - started) * 1000)},
        )
        return (content or "").strip()

    async def aclose(self) -> None:
        await self._http.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    detail = (response.text or "").strip()
    return detail[:_MAX_DETAIL_CHARS] or f"Chat provider error {response.status_code}"
