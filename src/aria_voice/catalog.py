"""Supported speech voices and chat models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class VoiceInfo:
    id: str
    name: str
    gender: str
    style: str
    lang: str = "pt"


@dataclass(frozen=True, slots=True)
class ModelInfo:
    name: str
    tier: str


VOICES: dict[str, VoiceInfo] = {
    "francisca": VoiceInfo(id="pt-BR-FranciscaNeural", name="Francisca", gender="F", style="friendly"),
    "thalita": VoiceInfo(id="pt-BR-ThalitaNeural", name="Thalita", gender="F", style="cheerful"),
    "leila": VoiceInfo(id="pt-BR-LeilaNeural", name="Leila", gender="F", style="calm"),
    "leticia": VoiceInfo(id="pt-BR-LeticiaNeural", name="Letícia", gender="F", style="professional"),
    "manuela": VoiceInfo(id="pt-BR-ManuelaNeural", name="Manuela", gender="F", style="warm"),
    "yara": VoiceInfo(id="pt-BR-YaraNeural", name="Yara", gender="F", style="expressive"),
    "antonio": VoiceInfo(id="pt-BR-AntonioNeural", name="Antonio", gender="M", style="friendly"),
    "fabio": VoiceInfo(id="pt-BR-FabioNeural", name="Fábio", gender="M", style="casual"),
    "humberto": VoiceInfo(id="pt-BR-HumbertoNeural", name="Humberto", gender="M", style="professional"),
    "jenny": VoiceInfo(id="en-US-JennyNeural", name="Jenny (EN)", gender="F", style="friendly", lang="en"),
    "guy": VoiceInfo(id="en-US-GuyNeural", name="Guy (EN)", gender="M", style="casual", lang="en"),
    "aria-en": VoiceInfo(id="en-US-AriaNeural", name="Aria (EN)", gender="F", style="expressive", lang="en"),
}

MODELS: dict[str, ModelInfo] = {
    "openai/gpt-4o-mini": ModelInfo(name="GPT-4o Mini", tier="fast"),
    "openai/gpt-4o": ModelInfo(name="GPT-4o", tier="premium"),
    "anthropic/claude-3.5-sonnet": ModelInfo(name="Claude 3.5 Sonnet", tier="premium"),
    "anthropic/claude-3-haiku": ModelInfo(name="Claude 3 Haiku", tier="fast"),
    "meta-llama/llama-3.1-70b-instruct": ModelInfo(name="Llama 3.1 70B", tier="mid"),
    "meta-llama/llama-3.1-8b-instruct": ModelInfo(name="Llama 3.1 8B", tier="free"),
    "google/gemini-pro-1.5": ModelInfo(name="Gemini Pro 1.5", tier="mid"),
    "mistralai/mistral-7b-instruct": ModelInfo(name="Mistral 7B", tier="free"),
}

DEFAULT_VOICE = "francisca"
DEFAULT_MODEL = "openai/gpt-4o-mini"


def resolve_voice(voice: str | None) -> str:
    """Return ``voice`` when it is a known key, else the default voice key."""
    if voice and voice in VOICES:
        return voice
    return DEFAULT_VOICE


def resolve_model(model: str | None) -> str:
    if model and model in MODELS:
        return model
    return DEFAULT_MODEL


def voice_listing() -> list[dict]:
    return [{"id": key, **_voice_fields(info)} for key, info in VOICES.items()]


def model_listing() -> list[dict]:
    return [{"id": key, "name": info.name, "tier": info.tier} for key, info in MODELS.items()]


def _voice_fields(info: VoiceInfo) -> dict:
    return {"voiceId": info.id, "name": info.name, "gender": info.gender, "style": info.style, "lang": info.lang}
