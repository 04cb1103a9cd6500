from __future__ import annotations

import pytest

from aria_voice.models import Sentiment
from aria_voice.text_cleaning import (
    MARKDOWN_RULES,
    analyze_sentiment,
    extract_memories,
    sanitize_for_speech,
    strip_markdown,
)


def test_rule_order_is_pinned() -> None:
    assert [rule.name for rule in MARKDOWN_RULES] == [
        "code_fence",
        "inline_code",
        "image",
        "link",
        "header",
        "table_divider",
        "horizontal_rule",
        "bullet",
        "numbered_list",
        "blockquote",
        "bold_italic_asterisk",
        "bold_asterisk",
        "italic_asterisk",
        "bold_italic_underscore",
        "bold_underscore",
        "italic_underscore",
        "table_pipe",
        "stray_markup",
    ]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("**Olá**, tudo *bem*?", "Olá, tudo bem?"),
        ("***muito*** importante", "muito importante"),
        ("__forte__ e _leve_", "forte e leve"),
        ("# Título\nTexto", "Título Texto"),
        ("Veja [o site](https://example.com).", "Veja o site."),
        ("Foto: ![gato](gato.png) fim", "Foto: fim"),
        ("- um\n- dois\n1. três", "um dois três"),
        ("> citação", "citação"),
        ("Use `pip`", "Use pip"),
        ("antes\n```python\nprint('x')\n```\ndepois", "antes depois"),
        ("| a | b |\n|---|---|\n| 1 | 2 |", ", a , b , , 1 , 2 ,"),
    ],
)
def test_strip_markdown(raw: str, expected: str) -> None:
    assert strip_markdown(raw) == expected


def test_strip_markdown_leaves_no_markup_characters() -> None:
    raw = "## Lista\n* **um** _dois_ `três`\n---\n~~quatro~~ #hashtag"

    cleaned = strip_markdown(raw)

    assert not any(char in cleaned for char in "*_`#")
    assert "  " not in cleaned


def test_extract_memories_removes_markers() -> None:
    cleaned, facts = extract_memories("Prazer, João! [LEMBRAR: Nome: João]")

    assert cleaned == "Prazer, João!"
    assert facts == ["Nome: João"]


def test_extract_memories_accepts_english_marker_and_multiple_facts() -> None:
    cleaned, facts = extract_memories("Nice. [remember: likes jazz] Cool [REMEMBER: lives in Porto]")

    assert facts == ["likes jazz", "lives in Porto"]
    assert "[" not in cleaned


def test_sanitize_for_speech_flattens_and_truncates() -> None:
    spoken = sanitize_for_speech('Ele disse "oi"\nagora', max_chars=12)

    assert spoken == "Ele disse 'o"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Estou muito feliz hoje", Sentiment.POSITIVE),
        ("Que dia ruim", Sentiment.NEGATIVE),
        ("Como funciona isso", Sentiment.CURIOUS),
        ("Vai chover amanhã?", Sentiment.CURIOUS),
        ("Abra a janela", Sentiment.NEUTRAL),
    ],
)
def test_analyze_sentiment(text: str, expected: Sentiment) -> None:
    assert analyze_sentiment(text) == expected
