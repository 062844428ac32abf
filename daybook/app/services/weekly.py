from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Sequence
from datetime import date, datetime, timedelta
from typing import Any

import httpx

from ..ai.openai_client import OpenAIClient
from ..ai.prompts import WEEKLY_SYSTEM_PROMPT, build_weekly_prompt, extract_json
from ..ai.tts import GoogleTTSClient
from ..metrics import WEEKLY_GENERATIONS
from ..schemas.journal import Summary
from ..schemas.weekly import WeeklyStats, WeeklySummaryResult
from ..utils.timeouts import retry_async
from .audio import AudioStorage
from .storage import StorageService

logger = logging.getLogger(__name__)

WINDOW_DAYS = 7
TOP_ACTIVITIES = 5
_ENERGY_SCORES = {"low": 1, "medium": 2, "high": 3}


class WeeklySummaryService:
    """Roll the trailing seven days of summaries into a narrated weekly reflection."""

    def __init__(
        self,
        storage: StorageService,
        *,
        openai_client: OpenAIClient,
        tts_client: GoogleTTSClient,
        audio_storage: AudioStorage,
        max_tokens: int = 800,
        retry_attempts: int = 3,
        retry_delay: float = 0.5,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._storage = storage
        self._openai = openai_client
        self._tts = tts_client
        self._audio = audio_storage
        self._max_tokens = max_tokens
        self._retry_attempts = retry_attempts
        self._retry_delay = retry_delay
        self._clock = clock or datetime.utcnow

    @staticmethod
    def window(end_date: date) -> tuple[date, date]:
        return end_date - timedelta(days=WINDOW_DAYS - 1), end_date

    async def generate(self, user_id: int, end_date: date | None = None) -> WeeklySummaryResult:
        end = end_date or self._clock().date()
        start, end = self.window(end)

        try:
            entries = await self._storage.list_summarized_entries(user_id, start, end)
            if not entries:
                WEEKLY_GENERATIONS.labels(status="empty").inc()
                return WeeklySummaryResult(
                    status="empty",
                    message="No journal entries found for the past week",
                    week_start_date=start,
                    week_end_date=end,
                    days_included=0,
                )

            days = [self._day_payload(entry.journal_date, entry.summary) for entry in entries]
            stats = self.compute_stats(days)
            narrative, achievement = await self._narrate(days, stats)
            if achievement:
                stats.key_achievement = achievement

            audio_path = await self._synthesize(user_id, start, narrative)
            await self._storage.save_weekly_summary(
                user_id=user_id,
                week_start=start,
                week_end=end,
                summary_text=narrative,
                audio_path=audio_path,
                stats=stats.model_dump(),
            )
        except Exception as exc:
            logger.exception("Weekly summary generation failed")
            WEEKLY_GENERATIONS.labels(status="error").inc()
            return WeeklySummaryResult(status="error", error=str(exc) or exc.__class__.__name__)

        WEEKLY_GENERATIONS.labels(status="success").inc()
        logger.info(
            "Weekly summary stored",
            extra={"extra_fields": {"week_start": start.isoformat(), "days": len(days)}},
        )
        return WeeklySummaryResult(
            status="success",
            summary_text=narrative,
            audio_path=audio_path,
            week_start_date=start,
            week_end_date=end,
            stats=stats,
            days_included=len(days),
        )

    @staticmethod
    def _day_payload(journal_date: date, raw_summary: str | None) -> dict[str, Any]:
        summary = Summary.model_validate_json(raw_summary) if raw_summary else Summary()
        payload = summary.model_dump()
        payload["date"] = journal_date.isoformat()
        return payload

    @staticmethod
    def compute_stats(days: Sequence[dict[str, Any]]) -> WeeklyStats:
        scores = [
            _ENERGY_SCORES[day["energy_level"]]
            for day in days
            if day["energy_level"] in _ENERGY_SCORES
        ]
        if scores:
            mean = sum(scores) / len(scores)
            if mean < 1.5:
                avg_energy = "low"
            elif mean < 2.5:
                avg_energy = "medium"
            else:
                avg_energy = "high"
        else:
            avg_energy = "unclear"

        tones = Counter(day["emotional_tone"] for day in days)
        dominant_mood = tones.most_common(1)[0][0] if tones else "neutral"

        activity_counts: Counter[str] = Counter()
        spelling: dict[str, str] = {}
        for day in days:
            for item in day["what_was_done"]:
                key = " ".join(item.lower().split())
                if not key:
                    continue
                spelling.setdefault(key, item.strip())
                activity_counts[key] += 1
        top_activities = [spelling[key] for key, _ in activity_counts.most_common(TOP_ACTIVITIES)]

        return WeeklyStats(
            days_journaled=len({day["date"] for day in days}),
            avg_energy_level=avg_energy,
            dominant_mood=dominant_mood,
            top_activities=top_activities,
            key_achievement=top_activities[0] if top_activities else "",
        )

    async def _narrate(
        self,
        days: Sequence[dict[str, Any]],
        stats: WeeklyStats,
    ) -> tuple[str, str | None]:
        completion = await self._openai.complete(
            kind="weekly_summary",
            system=WEEKLY_SYSTEM_PROMPT,
            prompt=build_weekly_prompt(days),
            max_tokens=self._max_tokens,
            temperature=0.8,
        )
        if completion.offline:
            return self._offline_narrative(days, stats), None
        try:
            payload = extract_json(completion.text)
        except ValueError:
            # Plain prose reply is still a usable narrative
            return completion.text, None
        narrative = str(payload.get("reflection_text") or "").strip()
        if not narrative:
            raise ValueError("language model returned an empty weekly reflection")
        achievement = payload.get("key_achievement")
        return narrative, str(achievement).strip() if achievement else None

    @staticmethod
    def _offline_narrative(days: Sequence[dict[str, Any]], stats: WeeklyStats) -> str:
        parts = [
            f"This week you journaled on {stats.days_journaled} "
            f"day{'s' if stats.days_journaled != 1 else ''}."
        ]
        if stats.top_activities:
            parts.append(f"You spent time on {', '.join(stats.top_activities[:3])}.")
        if stats.avg_energy_level != "unclear":
            parts.append(f"Your energy was mostly {stats.avg_energy_level}.")
        parts.append(f"The overall mood of the week felt {stats.dominant_mood}.")
        closing = days[-1].get("reflection")
        if closing:
            parts.append(closing)
        return " ".join(parts)

    async def _synthesize(self, user_id: int, week_start: date, narrative: str) -> str | None:
        if not self._tts.available:
            return None
        audio = await retry_async(
            lambda: self._tts.synthesize(narrative),
            attempts=self._retry_attempts,
            delay=self._retry_delay,
            retry_on=(httpx.TransportError,),
        )
        if not audio:
            return None
        path = AudioStorage.weekly_path(user_id, week_start.isoformat())
        return await self._audio.save(path, audio)
