"""Bounded per-session turn history."""

from __future__ import annotations

from collections import deque

from aria_voice.models import Role, Turn


class SessionStore:
    """Keeps the newest ``max_turns`` turns of every session in memory."""

    def __init__(self, max_turns: int = 20) -> None:
        if max_turns < 2:
            raise ValueError("max_turns must hold at least one user/assistant pair")
        self._max_turns = max_turns
        self._sessions: dict[str, deque[Turn]] = {}

    @property
    def max_turns(self) -> int:
        return self._max_turns

    def history(self, session_id: str, limit: int | None = None) -> list[Turn]:
        turns = list(self._sessions.get(session_id, ()))
        if limit is not None:
            return turns[-limit:] if limit > 0 else []
        return turns

    def append_exchange(self, session_id: str, user_text: str, assistant_text: str) -> None:
        turns = self._sessions.setdefault(session_id, deque(maxlen=self._max_turns))
        turns.append(Turn(role=Role.USER, text=user_text))
        turns.append(Turn(role=Role.ASSISTANT, text=assistant_text))

    def clear(self, session_id: str) -> bool:
        """Drop a session; returns whether anything was stored for it."""
        return self._sessions.pop(session_id, None) is not None

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
