"""HTTP client for the ARIA relay server."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from aria_voice.errors import InvalidInput, UpstreamError
from aria_voice.models import Sentiment


@dataclass(slots=True)
class AssistantReply:
    """Text reply plus the audio to play, when the server produced any."""

    text: str
    audio: bytes | None = None
    sentiment: Sentiment = Sentiment.NEUTRAL
    cached: bool = False


def _decode_audio(encoded: str) -> bytes:
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise UpstreamError("Server returned an invalid payload", details="audioBase64") from exc


def _sentiment(value: Any) -> Sentiment:
    try:
        return Sentiment(value)
    except ValueError:
        return Sentiment.NEUTRAL


class AriaApiClient:
    """Thin async wrapper over the relay's JSON endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds)
        self._owns_http = http_client is None
        self._logger = logger or logging.getLogger("aria_voice.voice.api_client")

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise UpstreamError("Server request timed out", details=path) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError("Server is unreachable", details=str(exc)) from exc

        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = {}
            message = payload.get("error") if isinstance(payload, dict) else None
            details = payload.get("details") if isinstance(payload, dict) else None
            if response.status_code == 400:
                raise InvalidInput(message or "Invalid request", details=details)
            raise UpstreamError(
                message or f"Server answered {response.status_code}",
                details=details,
                upstream_status=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(
                "Server returned an invalid payload",
                details=response.headers.get("content-type"),
            ) from exc
        if not isinstance(payload, dict):
            raise UpstreamError("Server returned an invalid payload", details=type(payload).__name__)
        return payload

    async def chat(self, message: str, *, session_id: str, model: str | None = None) -> AssistantReply:
        body: dict[str, Any] = {"message": message, "sessionId": session_id}
        if model:
            body["model"] = model
        payload = await self._request("POST", "/api/chat", json=body)
        audio = _decode_audio(payload["audioBase64"]) if payload.get("audioBase64") else None
        return AssistantReply(text=payload.get("response", ""), audio=audio, sentiment=_sentiment(payload.get("sentiment")))

    async def voice(self, message: str, *, session_id: str, voice: str | None = None) -> AssistantReply:
        """Ask for a reply plus server-side speech.

        Missing or unreachable audio is not an error: the reply comes back
        with ``audio=None`` and the caller speaks it locally.
        """
        body: dict[str, Any] = {"message": message, "sessionId": session_id}
        if voice:
            body["voice"] = voice
        payload = await self._request("POST", "/api/voice", json=body)
        reply = AssistantReply(
            text=payload.get("response", ""),
            sentiment=_sentiment(payload.get("sentiment")),
            cached=bool(payload.get("cached")),
        )
        if payload.get("audioBase64"):
            reply.audio = _decode_audio(payload["audioBase64"])
        elif payload.get("audioUrl"):
            reply.audio = await self.fetch_audio(payload["audioUrl"])
        return reply

    async def fetch_audio(self, url: str) -> bytes | None:
        try:
            response = await self._http.get(url)
        except httpx.HTTPError as exc:
            self._logger.warning("audio_fetch_failed", extra={"url": url, "error": str(exc)})
            return None
        if response.status_code >= 400 or not response.content:
            self._logger.warning("audio_fetch_failed", extra={"url": url, "status": response.status_code})
            return None
        return response.content

    async def clear(self, session_id: str) -> bool:
        payload = await self._request("POST", "/api/clear", json={"sessionId": session_id})
        return bool(payload.get("success"))

    async def get_settings(self) -> dict[str, Any]:
        return await self._request("GET", "/api/settings")

    async def update_settings(self, **changes: Any) -> dict[str, Any]:
        return await self._request("POST", "/api/settings", json=changes)

    async def health(self) -> dict[str, Any]:
        return await self._request("GET", "/api/health")
