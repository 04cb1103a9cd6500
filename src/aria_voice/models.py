from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    CURIOUS = "curious"
    NEUTRAL = "neutral"


@dataclass(frozen=True, slots=True)
class Turn:
    role: Role
    text: str

    def as_message(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.text}


@dataclass(slots=True)
class ChatReply:
    text: str
    model: str
    sentiment: Sentiment = Sentiment.NEUTRAL
    facts: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class AudioReference:
    """Where a synthesized clip can be fetched from."""

    key: str
    url: str | None = None
    audio_base64: str | None = None
    cached: bool = False


@dataclass(slots=True)
class ConversationEntry:
    user: str
    assistant: str
    sentiment: Sentiment
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "user": self.user,
            "assistant": self.assistant,
            "sentiment": self.sentiment.value,
        }

    @classmethod
    def from_dict(cls, payload: dict) -> ConversationEntry:
        return cls(
            user=str(payload.get("user", "")),
            assistant=str(payload.get("assistant", "")),
            sentiment=Sentiment(payload.get("sentiment", Sentiment.NEUTRAL.value)),
            timestamp=datetime.fromisoformat(payload["timestamp"]) if payload.get("timestamp") else datetime.now(timezone.utc),
        )


@dataclass(slots=True)
class UserSettings:
    voice: str
    speed: int
    model: str
    language: str = "pt-BR"
    wake_word: str = "aria"
    wake_word_enabled: bool = False
    continuous_mode: bool = True

    @property
    def rate(self) -> str:
        """Speed rendered the way speech engines expect it (``+10%``)."""
        return f"{self.speed:+d}%"

    def to_dict(self) -> dict:
        return {
            "voice": self.voice,
            "speed": self.speed,
            "model": self.model,
            "language": self.language,
            "wakeWord": self.wake_word,
            "wakeWordEnabled": self.wake_word_enabled,
            "continuousMode": self.continuous_mode,
        }
