"""Distress keyword detection over listing descriptions."""

from __future__ import annotations

from typing import Any, Sequence

MAX_DISTRESS_SCORE = 10
POINTS_PER_KEYWORD = 2


def detect_distress(text: Any, keywords: Sequence[str] | None) -> tuple[list[str], int]:
    """Return the keywords found in ``text`` (case-insensitive) and a 0..10 score."""
    if not isinstance(text, str) or not text or not keywords:
        return [], 0

    lowered = text.lower()
    matched = [kw for kw in keywords if isinstance(kw, str) and kw and kw.lower() in lowered]
    return matched, min(MAX_DISTRESS_SCORE, len(matched) * POINTS_PER_KEYWORD)
