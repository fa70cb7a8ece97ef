"""Shared utilities used across the voice ordering pipeline."""

import math
import re

_CODE_FENCE_OPEN = re.compile(r"^```(?:json|JSON)?\s*\n?")
_CODE_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence from model output.

    Examples:
        >>> strip_code_fence('```json\\n{"a": 1}\\n```')
        '{"a": 1}'
        >>> strip_code_fence('{"a": 1}')
        '{"a": 1}'
    """
    text = text.strip()
    if text.startswith("```"):
        text = _CODE_FENCE_OPEN.sub("", text)
        text = _CODE_FENCE_CLOSE.sub("", text)
    return text.strip()


def format_cents(cents: int) -> str:
    """Render an integer amount of minor currency units as a decimal string.

    Examples:
        >>> format_cents(1234)
        '12.34'
        >>> format_cents(-5)
        '-0.05'
    """
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    return f"{sign}{whole}.{frac:02d}"


def clamp_score(value: float) -> float:
    """Clamp a relevance score to the closed interval [0, 1].

    Raises ValueError for NaN and infinities, which have no meaningful rank.
    """
    score = float(value)
    if not math.isfinite(score):
        raise ValueError(f"Non-finite score: {value!r}")
    return max(0.0, min(1.0, score))


def truncate_for_speech(text: str, limit: int) -> str:
    """Cut text to at most ``limit`` characters, preferring a word boundary."""
    text = text.strip()
    if len(text) <= limit:
        return text
    cut = text[: max(limit - 3, 0)]
    space = cut.rfind(" ")
    if space > limit // 2:
        cut = cut[:space]
    return cut.rstrip(" ,.;:") + "..."


def pluralize(count: int, word: str) -> str:
    """Return ``word`` with an ``s`` suffix unless count is exactly one."""
    return word if count == 1 else f"{word}s"
