"""Speech synthesis through the ElevenLabs HTTP API."""

from __future__ import annotations

import logging
from collections.abc import Mapping

import httpx

from aria_voice.errors import SynthesisError


class ElevenLabsSynthesizer:
    """Posts text to ``/v1/text-to-speech/<voice_id>`` and returns the MP3 body.

    Engine voice ids from the voice table are translated through ``voice_ids``;
    anything unmapped is spoken by ``default_voice_id``. The hosted API has no
    rate control, so ``rate`` is ignored.
    """

    def __init__(
        self,
        *,
        api_key: str | None,
        default_voice_id: str,
        model_id: str = "eleven_multilingual_v2",
        url: str = "https://api.elevenlabs.io/v1/text-to-speech",
        voice_ids: Mapping[str, str] | None = None,
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._api_key = api_key
        self._default_voice_id = default_voice_id
        self._model_id = model_id
        self._url = url.rstrip("/")
        self._voice_ids = dict(voice_ids or {})
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))
        self._logger = logger or logging.getLogger("aria_voice.tts.elevenlabs")

    async def synthesize(self, text: str, voice: str, rate: str) -> bytes:
        if not self._api_key:
            raise SynthesisError("ElevenLabs API key is not configured")

        voice_id = self._voice_ids.get(voice, self._default_voice_id)
        try:
            response = await self._http.post(
                f"{self._url}/{voice_id}",
                headers={"xi-api-key": self._api_key, "Accept": "audio/mpeg", "Content-Type": "application/json"},
                json={
                    "text": text,
                    "model_id": self._model_id,
                    "voice_settings": {"stability": 0.5, "similarity_boost": 0.75},
                },
            )
        except httpx.HTTPError as exc:
            raise SynthesisError("ElevenLabs request failed", details=str(exc)) from exc

        if response.status_code >= 400:
            detail = (response.text or "").strip()[:500]
            self._logger.warning("elevenlabs_failed", extra={"status_code": response.status_code, "voice_id": voice_id})
            raise SynthesisError(f"ElevenLabs error {response.status_code}", details=detail or None)
        return response.content

    async def aclose(self) -> None:
        await self._http.aclose()
