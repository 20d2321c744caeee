"""Text signals used by the semantic rerankers and result highlighting."""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_SECONDS_PER_DAY = 86400.0


def query_words(text: str | None) -> list[str]:
    """Lower-cased whitespace tokens of *text* (empty list for blank input)."""
    if not text:
        return []
    return text.lower().split()


def text_match_ratio(query: str | None, text: str | None) -> float:
    """Fraction of query words that occur as substrings of *text* (case-insensitive)."""
    words = query_words(query)
    if not words or not text:
        return 0.0
    haystack = text.lower()
    return sum(1 for word in words if word in haystack) / len(words)


def recency_boost(timestamp: datetime | None, now: datetime | None = None, half_life_days: float = 30.0) -> float:
    """Exponential decay ``exp(-age_days / half_life_days)``; 0.0 when the timestamp is unknown.

    Future timestamps count as age 0.
    """
    if timestamp is None:
        return 0.0
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    age_days = max(0.0, (now - timestamp).total_seconds() / _SECONDS_PER_DAY)
    return math.exp(-age_days / half_life_days)


def _word_pattern(words: list[str]) -> re.Pattern[str] | None:
    unique = sorted({w for w in words if w}, key=len, reverse=True)
    if not unique:
        return None
    return re.compile(r"\b(?:" + "|".join(re.escape(w) for w in unique) + r")\b", re.IGNORECASE)


def highlight_text(text: str, words: list[str], tag: str = "em") -> str:
    """Wrap each whole-word occurrence of *words* in ``<tag>…</tag>`` (single pass)."""
    pattern = _word_pattern(words)
    if pattern is None or not text:
        return text
    return pattern.sub(lambda m: f"<{tag}>{m.group(0)}</{tag}>", text)


def generate_highlight(
    title: str | None,
    content: str | None,
    query_text: str | None,
    tag: str = "em",
    max_sentences: int = 3,
) -> dict[str, object] | None:
    """Highlight the title and up to *max_sentences* content sentences that contain a match."""
    words = query_words(query_text)
    if not words:
        return None

    marker = f"<{tag}>"
    matched = False
    highlight: dict[str, object] = {}
    if title:
        highlight["title"] = highlight_text(title, words, tag)
        matched = marker in highlight["title"]

    if content:
        sentences: list[str] = []
        for sentence in _SENTENCE_SPLIT.split(content):
            sentence = sentence.strip()
            if not sentence:
                continue
            highlighted = highlight_text(sentence, words, tag)
            if marker in highlighted:
                sentences.append(highlighted)
                if len(sentences) >= max_sentences:
                    break
        highlight["content"] = sentences
        matched = matched or bool(sentences)

    return highlight if matched else None
