"""Spoken control commands recognized before a transcript is sent to the assistant."""

from __future__ import annotations

from enum import Enum


class SpecialCommand(str, Enum):
    STOP = "stop"
    NEW_CONVERSATION = "new_conversation"
    REPEAT = "repeat"


# Checked in this order; the first command whose action applies wins.
COMMAND_PHRASES: tuple[tuple[SpecialCommand, tuple[str, ...]], ...] = (
    (SpecialCommand.STOP, ("pare", "para", "stop", "silêncio", "silencio", "silence", "cala a boca")),
    (
        SpecialCommand.NEW_CONVERSATION,
        ("nova conversa", "recomeçar", "recomecar", "limpar conversa", "novo chat", "new conversation"),
    ),
    (SpecialCommand.REPEAT, ("repita", "repetir", "de novo", "outra vez", "repeat")),
)


class SpecialCommandParser:
    """Case-insensitive substring matcher over ``COMMAND_PHRASES``."""

    def __init__(self, phrases: tuple[tuple[SpecialCommand, tuple[str, ...]], ...] = COMMAND_PHRASES) -> None:
        self._phrases = phrases

    def matches(self, utterance: str) -> list[SpecialCommand]:
        """Return every command mentioned in ``utterance``, in priority order."""
        lowered = " ".join(utterance.strip().split()).lower()
        if not lowered:
            return []
        return [command for command, phrases in self._phrases if any(phrase in lowered for phrase in phrases)]

    def parse(self, utterance: str) -> SpecialCommand | None:
        found = self.matches(utterance)
        return found[0] if found else None
