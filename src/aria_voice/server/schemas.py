"""Request bodies accepted by the relay endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ChatRequest(_Body):
    message: str | None = None
    session_id: str = Field(default="default", alias="sessionId")
    model: str | None = None


class VoiceRequest(_Body):
    message: str | None = None
    session_id: str = Field(default="default", alias="sessionId")
    voice: str | None = None


class TTSRequest(_Body):
    text: str | None = None
    voice: str | None = None
    rate: int | float | str | None = None


class ClearRequest(_Body):
    session_id: str | None = Field(default=None, alias="sessionId")


class MemoryRequest(_Body):
    fact: str | None = None
    preference: dict[str, Any] | None = None
