from __future__ import annotations

import json
import re
from collections.abc import Sequence
from typing import Any

_FENCE_RE = re.compile(r"```(?:json)?\s*", flags=re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

DAILY_SYSTEM_PROMPT = (
    "You are a reflective journal summarizer. You do not give advice, judge, "
    "motivate or analyze psychology. Turn a spoken daily reflection into a calm, "
    "factual journal page."
)

WEEKLY_SYSTEM_PROMPT = (
    "You are a warm personal assistant narrating a spoken weekly reflection. "
    "Speak to the user as 'you', in flowing sentences without markdown, "
    "200-350 words, suitable for text-to-speech."
)


def build_daily_prompt(transcript: str) -> str:
    return (
        "Transform the following daily reflection into a structured journal entry.\n"
        "Respond with JSON only, using the keys day_summary (2-3 sentences), "
        "what_was_done (3-6 short items), energy_level (low|medium|high|unclear), "
        "emotional_tone (neutral|heavy|positive|mixed) and reflection (1-2 sentences).\n"
        f'INPUT:\n"""\n{transcript}\n"""'
    )


def build_weekly_prompt(days: Sequence[dict[str, Any]]) -> str:
    blocks = []
    for day in days:
        blocks.append(
            f"{day['date']}\n"
            f"Summary: {day['day_summary']}\n"
            f"Activities: {', '.join(day['what_was_done'])}\n"
            f"Energy: {day['energy_level']}\n"
            f"Mood: {day['emotional_tone']}\n"
            f"Reflection: {day['reflection']}"
        )
    joined = "\n\n".join(blocks)
    return (
        "Here are the journal entries from the past week:\n\n"
        f"{joined}\n\n"
        'Respond with JSON only: {"reflection_text": "...", "key_achievement": "..."}'
    )


def extract_json(content: str) -> dict[str, Any]:
    """Parse a model reply that should be a JSON object, tolerating markdown fences."""

    try:
        parsed = json.loads(content)
    except json.JSONDecodeError:
        cleaned = _FENCE_RE.sub("", content).replace("```", "").strip()
        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError:
            match = _OBJECT_RE.search(cleaned)
            if match is None:
                raise ValueError("model reply did not contain a JSON object") from None
            parsed = json.loads(match.group(0))
    if not isinstance(parsed, dict):
        raise ValueError("model reply was not a JSON object")
    return parsed
