"""JSON-file backed settings, memory and conversation log."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from aria_voice.catalog import DEFAULT_MODEL, DEFAULT_VOICE, MODELS, VOICES
from aria_voice.models import ConversationEntry, UserSettings

SPEED_MIN = -50
SPEED_MAX = 50

_logger = logging.getLogger("aria_voice.stores")


class JsonDocument:
    """One JSON file that is read once and replaced wholesale on save."""

    def __init__(self, file_path: str | Path) -> None:
        self._path = Path(file_path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self, default: dict) -> dict:
        if not self._path.exists():
            return default
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, ValueError):
            _logger.exception("json_document_unreadable", extra={"path": str(self._path)})
            return default
        if not isinstance(payload, dict):
            _logger.warning("json_document_not_an_object", extra={"path": str(self._path)})
            return default
        return payload

    def save(self, payload: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self._path)


def coerce_speed(value: Any) -> int | None:
    """Parse a speed given as a number or as ``"+10%"`` and clamp it; ``None`` if unusable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        stripped = value.strip().rstrip("%").strip()
        try:
            value = float(stripped)
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    if value != value:  # NaN
        return None
    return int(max(SPEED_MIN, min(SPEED_MAX, round(value))))


def _coerce_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"1", "true", "yes", "on", "0", "false", "no", "off"}:
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return None


class SettingsStore:
    """Validated user settings with lazy persistence."""

    _ALIASES = {
        "wakeWord": "wake_word",
        "wakeWordEnabled": "wake_word_enabled",
        "continuousMode": "continuous_mode",
    }

    def __init__(self, document: JsonDocument | None = None) -> None:
        self._document = document
        self._settings = UserSettings(voice=DEFAULT_VOICE, speed=0, model=DEFAULT_MODEL)
        self._dirty = False
        if document is not None:
            self._apply(document.load({}))

    def get(self) -> UserSettings:
        return self._settings

    def update(self, partial: Mapping[str, Any]) -> UserSettings:
        """Merge ``partial`` into the current settings, ignoring invalid values."""
        if self._apply(partial):
            self._dirty = True
        return self._settings

    def flush(self, *, force: bool = False) -> bool:
        if self._document is None or not (self._dirty or force):
            return False
        self._document.save(self._settings.to_dict())
        self._dirty = False
        return True

    def _apply(self, partial: Mapping[str, Any]) -> bool:
        values = {self._ALIASES.get(key, key): value for key, value in partial.items()}
        current = self._settings
        changed = False

        voice = values.get("voice")
        if isinstance(voice, str) and voice in VOICES and voice != current.voice:
            current.voice = voice
            changed = True

        model = values.get("model")
        if isinstance(model, str) and model in MODELS and model != current.model:
            current.model = model
            changed = True

        if "speed" in values:
            speed = coerce_speed(values["speed"])
            if speed is not None and speed != current.speed:
                current.speed = speed
                changed = True

        for text_field in ("language", "wake_word"):
            value = values.get(text_field)
            if isinstance(value, str) and value.strip() and value.strip() != getattr(current, text_field):
                setattr(current, text_field, value.strip())
                changed = True

        for flag_field in ("wake_word_enabled", "continuous_mode"):
            if flag_field in values:
                flag = _coerce_bool(values[flag_field])
                if flag is not None and flag != getattr(current, flag_field):
                    setattr(current, flag_field, flag)
                    changed = True

        return changed


class MemoryStore:
    """Remembered facts and preferences that are fed back into the system prompt.

    ``revision`` increases on every mutation so that callers caching a prompt
    built from this memory can tell when it went stale.
    """

    def __init__(self, document: JsonDocument | None = None, *, max_facts: int = 50) -> None:
        self._document = document
        self._max_facts = max_facts
        self._facts: list[str] = []
        self._preferences: dict[str, Any] = {}
        self._revision = 0
        self._dirty = False
        if document is not None:
            payload = document.load({"facts": [], "preferences": {}})
            self._merge_facts(str(fact) for fact in payload.get("facts", []) if str(fact).strip())
            preferences = payload.get("preferences")
            if isinstance(preferences, dict):
                self._preferences = dict(preferences)

    @property
    def facts(self) -> list[str]:
        return list(self._facts)

    @property
    def preferences(self) -> dict[str, Any]:
        return dict(self._preferences)

    @property
    def revision(self) -> int:
        return self._revision

    def add_fact(self, fact: str) -> bool:
        return bool(self.add_facts([fact]))

    def add_facts(self, facts: Iterable[str]) -> list[str]:
        """Append new facts, skipping duplicates; returns the facts actually added."""
        added = self._merge_facts(fact.strip() for fact in facts if fact and fact.strip())
        if added:
            self._touch()
        return added

    def add_preferences(self, preferences: Mapping[str, Any]) -> None:
        if not preferences:
            return
        self._preferences.update(preferences)
        self._touch()

    def clear(self) -> None:
        self._facts = []
        self._preferences = {}
        self._touch()

    def to_dict(self) -> dict:
        return {"facts": self.facts, "preferences": self.preferences, "count": len(self._facts)}

    def flush(self, *, force: bool = False) -> bool:
        if self._document is None or not (self._dirty or force):
            return False
        self._document.save({"facts": self._facts, "preferences": self._preferences})
        self._dirty = False
        return True

    def _merge_facts(self, facts: Iterable[str]) -> list[str]:
        added: list[str] = []
        for fact in facts:
            if fact in self._facts:
                continue
            self._facts.append(fact)
            added.append(fact)
        if len(self._facts) > self._max_facts:
            self._facts = self._facts[-self._max_facts :]
        return added

    def _touch(self) -> None:
        self._revision += 1
        self._dirty = True


class ConversationLog:
    """Append-only exchange log, trimmed to ``keep`` entries once it passes ``max_entries``."""

    def __init__(self, document: JsonDocument | None = None, *, max_entries: int = 1_000, keep: int = 500) -> None:
        self._document = document
        self._max_entries = max_entries
        self._keep = keep
        self._entries: list[ConversationEntry] = []
        self._dirty = False
        if document is not None:
            payload = document.load({"conversations": []})
            for item in payload.get("conversations", []):
                try:
                    self._entries.append(ConversationEntry.from_dict(item))
                except (KeyError, TypeError, ValueError):
                    _logger.warning("conversation_entry_skipped", extra={"path": str(document.path)})

    def append(self, entry: ConversationEntry) -> None:
        self._entries.append(entry)
        if len(self._entries) > self._max_entries:
            self._entries = self._entries[-self._keep :]
        self._dirty = True

    def recent(self, limit: int = 50) -> list[ConversationEntry]:
        if limit <= 0:
            return []
        return self._entries[-limit:]

    def __len__(self) -> int:
        return len(self._entries)

    def flush(self, *, force: bool = False) -> bool:
        if self._document is None or not (self._dirty or force):
            return False
        self._document.save({"conversations": [entry.to_dict() for entry in self._entries]})
        self._dirty = False
        return True
