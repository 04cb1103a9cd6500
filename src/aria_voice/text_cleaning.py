"""Text normalization for speakable assistant replies.

Markdown is removed by applying ``MARKDOWN_RULES`` in ascending ``order``.
Several rules overlap (fenced code contains inline backticks, ``***`` contains
``**``), so the order is part of the contract and is pinned by tests.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from aria_voice.models import Sentiment


@dataclass(frozen=True, slots=True)
class MarkdownRule:
    name: str
    pattern: re.Pattern[str]
    replacement: str
    order: int

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


def _rule(name: str, pattern: str, replacement: str, order: int, flags: int = 0) -> MarkdownRule:
    return MarkdownRule(name=name, pattern=re.compile(pattern, flags), replacement=replacement, order=order)


MARKDOWN_RULES: tuple[MarkdownRule, ...] = tuple(
    sorted(
        (
            _rule("code_fence", r"```[\s\S]*?```", "", 10),
            _rule("inline_code", r"`([^`]+)`", r"\1", 20),
            _rule("image", r"!\[([^\]]*)\]\([^)]+\)", "", 30),
            _rule("link", r"\[([^\]]+)\]\([^)]+\)", r"\1", 40),
            _rule("header", r"^[ \t]*#{1,6}[ \t]*", "", 50, re.MULTILINE),
            _rule("table_divider", r"^[ \t]*\|[ \t:|-]*\|[ \t]*$", "", 60, re.MULTILINE),
            _rule("horizontal_rule", r"^[ \t]*[-*_]{3,}[ \t]*$", "", 70, re.MULTILINE),
            _rule("bullet", r"^[ \t]*[-*+][ \t]+", "", 80, re.MULTILINE),
            _rule("numbered_list", r"^[ \t]*\d+\.[ \t]+", "", 90, re.MULTILINE),
            _rule("blockquote", r"^[ \t]*>[ \t]*", "", 100, re.MULTILINE),
            _rule("bold_italic_asterisk", r"\*\*\*(.+?)\*\*\*", r"\1", 110),
            _rule("bold_asterisk", r"\*\*(.+?)\*\*", r"\1", 120),
            _rule("italic_asterisk", r"\*(.+?)\*", r"\1", 130),
            _rule("bold_italic_underscore", r"___(.+?)___", r"\1", 140),
            _rule("bold_underscore", r"__(.+?)__", r"\1", 150),
            _rule("italic_underscore", r"_(.+?)_", r"\1", 160),
            _rule("table_pipe", r"\|", ",", 170),
            _rule("stray_markup", r"[*_~`#]", "", 180),
        ),
        key=lambda rule: rule.order,
    )
)

_REMEMBER_RE = re.compile(r"\[(?:LEMBRAR|REMEMBER):\s*(.+?)\]", re.IGNORECASE)

_POSITIVE_RE = re.compile(
    r"\b(?:feliz|ótimo|otimo|maravilh\w*|incr[íi]vel|ador[eo]\w*|am[oe]|bom|legal|massa|top|show|perfeito|excelente"
    r"|happy|great|awesome|love|perfect|excellent)\b",
    re.IGNORECASE,
)
_NEGATIVE_RE = re.compile(
    r"\b(?:triste|ruim|péssimo|pessimo|horrível|horrivel|odeio|chato|irritad\w*|nervos\w*|bravo|ansios\w*"
    r"|preocupad\w*|medo|cansad\w*|sad|bad|terrible|hate|angry|tired|worried)\b",
    re.IGNORECASE,
)
_QUESTION_RE = re.compile(
    r"\?|\b(?:como|quando|onde|quem|qual|por\s?que|o\s?que|how|when|where|who|which|why|what)\b",
    re.IGNORECASE,
)


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces and strip ends."""
    return " ".join((text or "").split())


def strip_markdown(text: str, rules: tuple[MarkdownRule, ...] = MARKDOWN_RULES) -> str:
    """Remove Markdown syntax so the text can be spoken verbatim."""
    cleaned = text or ""
    for rule in rules:
        cleaned = rule.apply(cleaned)
    return normalize_whitespace(cleaned)


def extract_memories(text: str) -> tuple[str, list[str]]:
    """Split ``[LEMBRAR: ...]`` markers out of ``text``.

    Returns the text without markers and the captured facts in order of
    appearance.
    """
    facts = [match.group(1).strip() for match in _REMEMBER_RE.finditer(text or "")]
    cleaned = _REMEMBER_RE.sub("", text or "").strip()
    return cleaned, [fact for fact in facts if fact]


def sanitize_for_speech(text: str, max_chars: int) -> str:
    """Normalize quotes and newlines and bound the length handed to a speech engine."""
    flattened = (text or "").replace('"', "'").replace("\r", " ").replace("\n", " ")
    return flattened[:max_chars]


def analyze_sentiment(text: str) -> Sentiment:
    if _POSITIVE_RE.search(text or ""):
        return Sentiment.POSITIVE
    if _NEGATIVE_RE.search(text or ""):
        return Sentiment.NEGATIVE
    if _QUESTION_RE.search(text or ""):
        return Sentiment.CURIOUS
    return Sentiment.NEUTRAL
