from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, Field


class WeeklyStats(BaseModel):
    days_journaled: int = Field(default=0, ge=0, le=7)
    avg_energy_level: str = "unclear"
    dominant_mood: str = "neutral"
    top_activities: list[str] = Field(default_factory=list)
    key_achievement: str = ""


class WeeklySummaryRequest(BaseModel):
    end_date: dt.date | None = None


class WeeklySummaryResult(BaseModel):
    status: Literal["success", "empty", "error"]
    summary_text: str | None = None
    audio_path: str | None = None
    week_start_date: dt.date | None = None
    week_end_date: dt.date | None = None
    stats: WeeklyStats | None = None
    days_included: int | None = None
    message: str | None = None
    error: str | None = None


class WeeklySummaryItem(BaseModel):
    week_start_date: dt.date
    week_end_date: dt.date
    summary_text: str
    audio_path: str | None = None
    stats: WeeklyStats
    created_at: dt.datetime


class WeeklySummaryListResponse(BaseModel):
    items: list[WeeklySummaryItem]


__all__ = [
    "WeeklyStats",
    "WeeklySummaryItem",
    "WeeklySummaryListResponse",
    "WeeklySummaryRequest",
    "WeeklySummaryResult",
]
