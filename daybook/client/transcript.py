from __future__ import annotations

import re

FILLERS: tuple[str, ...] = ("um", "uh", "like", "you know", "sort of")

_WHITESPACE = re.compile(r"\s+")
_FILLER = re.compile(
    r"\b(?:" + "|".join(re.escape(word) for word in FILLERS) + r")\b",
    re.IGNORECASE,
)
_SPACE_BEFORE_PUNCT = re.compile(r"\s+([.,!?])")
_PUNCT_RUN = re.compile(r"([.,!?])(?:\s*[.,!?])+")
_MISSING_SPACE = re.compile(r"([.,!?])(\w)")
_LEADING = re.compile(r"^[\s.,!?]+")
_TRAILING = re.compile(r"[\s,]+$")


def format_transcript(text: str) -> str:
    """Tidy a raw speech transcript into a readable sentence.

    >>> format_transcript("um so today I, like, went for a walk")
    'So today I, went for a walk.'
    """

    if not text or not text.strip():
        return ""

    formatted = _WHITESPACE.sub(" ", text).strip()
    formatted = _FILLER.sub("", formatted)
    formatted = _WHITESPACE.sub(" ", formatted).strip()
    formatted = _SPACE_BEFORE_PUNCT.sub(r"\1", formatted)
    formatted = _PUNCT_RUN.sub(r"\1", formatted)
    formatted = _MISSING_SPACE.sub(r"\1 \2", formatted)
    formatted = _LEADING.sub("", formatted)
    formatted = _TRAILING.sub("", formatted)
    if not formatted:
        return ""

    formatted = formatted[0].upper() + formatted[1:]
    if formatted[-1] not in ".!?":
        formatted += "."
    return formatted


__all__ = ["FILLERS", "format_transcript"]
