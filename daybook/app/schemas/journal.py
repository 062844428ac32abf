from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, Field, field_validator

EnergyLevel = Literal["low", "medium", "high", "unclear"]
EmotionalTone = Literal["neutral", "heavy", "positive", "mixed"]

ENERGY_LEVELS: tuple[str, ...] = ("low", "medium", "high", "unclear")
EMOTIONAL_TONES: tuple[str, ...] = ("neutral", "heavy", "positive", "mixed")
MAX_ACTIVITIES = 6


class Summary(BaseModel):
    """Structured distillation of one day's transcript."""

    day_summary: str = ""
    what_was_done: list[str] = Field(default_factory=list)
    energy_level: EnergyLevel = "unclear"
    emotional_tone: EmotionalTone = "neutral"
    reflection: str = ""

    @field_validator("what_was_done", mode="before")
    @classmethod
    def _limit_activities(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        items = [str(item).strip() for item in value if str(item).strip()]  # type: ignore[union-attr]
        return items[:MAX_ACTIVITIES]

    @field_validator("energy_level", mode="before")
    @classmethod
    def _coerce_energy(cls, value: object) -> str:
        normalized = str(value or "").strip().lower()
        return normalized if normalized in ENERGY_LEVELS else "unclear"

    @field_validator("emotional_tone", mode="before")
    @classmethod
    def _coerce_tone(cls, value: object) -> str:
        normalized = str(value or "").strip().lower()
        return normalized if normalized in EMOTIONAL_TONES else "neutral"


PENDING_SUMMARY = Summary(
    day_summary="Generating your AI summary...",
    what_was_done=[],
    energy_level="unclear",
    emotional_tone="neutral",
    reflection="Your summary will appear shortly.",
)


class JournalCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=20000)
    date: dt.date

    @field_validator("text")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("text must not be blank")
        return stripped


class JournalCreateResponse(BaseModel):
    entry_id: int
    status: Literal["pending", "summarized"] = "pending"
    summary: Summary | None = None


class JournalEntryStatus(BaseModel):
    id: int
    date: dt.date
    summary: Summary | None = None
    is_summarized: bool = False


class CreditsResponse(BaseModel):
    credits: int


__all__ = [
    "CreditsResponse",
    "EMOTIONAL_TONES",
    "ENERGY_LEVELS",
    "EmotionalTone",
    "EnergyLevel",
    "JournalCreate",
    "JournalCreateResponse",
    "JournalEntryStatus",
    "PENDING_SUMMARY",
    "Summary",
]
