from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path

import httpx
import pytest

from daybook.app.ai.openai_client import Completion, OpenAIClient
from daybook.app.services.audio import AudioStorage
from daybook.app.services.storage import StorageService
from daybook.app.services.weekly import WeeklySummaryService


class _RecordingOpenAI:
    available = True

    def __init__(self, text: str) -> None:
        self.text = text
        self.calls = 0

    async def complete(self, **kwargs) -> Completion:
        self.calls += 1
        return Completion(text=self.text, tokens_in=100, tokens_out=80, source="openai")


class _FakeTTS:
    def __init__(self, available: bool = True, failures: int = 0) -> None:
        self.available = available
        self.failures = failures
        self.calls = 0

    async def synthesize(self, text: str) -> bytes | None:
        self.calls += 1
        if self.calls <= self.failures:
            raise httpx.ConnectError("tts unreachable")
        return b"ID3-fake-mp3"


def _day(energy: str, tone: str, activities: list[str]) -> dict:
    return {
        "date": "2024-05-01",
        "day_summary": "",
        "what_was_done": activities,
        "energy_level": energy,
        "emotional_tone": tone,
        "reflection": "",
    }


async def _seed(storage: StorageService, user_id: int, day: int, summary: dict) -> None:
    entry = await storage.upsert_journal_entry(
        user_id=user_id,
        journal_date=date(2024, 5, day),
        transcript=f"day {day}",
    )
    await storage.mark_summarized(entry.id, summary)


def _service(storage: StorageService, openai, tts, tmp_path: Path) -> WeeklySummaryService:
    return WeeklySummaryService(
        storage,
        openai_client=openai,
        tts_client=tts,
        audio_storage=AudioStorage(tmp_path / "audio"),
        retry_delay=0,
        clock=lambda: datetime(2024, 5, 7, 20, 0),
    )


def test_window_covers_seven_days() -> None:
    assert WeeklySummaryService.window(date(2024, 5, 7)) == (date(2024, 5, 1), date(2024, 5, 7))


def test_compute_stats() -> None:
    days = [
        {**_day("high", "positive", ["Gym", "cooking"]), "date": "2024-05-01"},
        {**_day("medium", "positive", ["gym ", "reading"]), "date": "2024-05-02"},
        {**_day("unclear", "mixed", ["Cooking"]), "date": "2024-05-03"},
    ]

    stats = WeeklySummaryService.compute_stats(days)

    assert stats.days_journaled == 3
    assert stats.avg_energy_level == "high"
    assert stats.dominant_mood == "positive"
    assert stats.top_activities == ["Gym", "cooking", "reading"]
    assert stats.key_achievement == "Gym"


def test_compute_stats_without_energy_scores() -> None:
    stats = WeeklySummaryService.compute_stats([_day("unclear", "heavy", [])])

    assert stats.avg_energy_level == "unclear"
    assert stats.dominant_mood == "heavy"
    assert stats.top_activities == []
    assert stats.key_achievement == ""


@pytest.mark.anyio
async def test_generate_empty_week_skips_model_audio_and_storage(
    storage_service: StorageService,
    tmp_path: Path,
) -> None:
    user = await storage_service.create_user()
    openai = _RecordingOpenAI("{}")
    tts = _FakeTTS()
    service = _service(storage_service, openai, tts, tmp_path)

    result = await service.generate(user.id, date(2024, 5, 7))

    assert result.status == "empty"
    assert result.days_included == 0
    assert openai.calls == 0
    assert tts.calls == 0
    assert await storage_service.list_weekly_summaries(user.id) == []
    assert not (tmp_path / "audio" / str(user.id)).exists()


@pytest.mark.anyio
async def test_generate_success_writes_audio_and_row(
    storage_service: StorageService,
    tmp_path: Path,
) -> None:
    user = await storage_service.create_user()
    await _seed(
        storage_service,
        user.id,
        2,
        {"what_was_done": ["hiked"], "energy_level": "low", "emotional_tone": "mixed"},
    )
    await _seed(
        storage_service,
        user.id,
        5,
        {"what_was_done": ["hiked", "baked"], "energy_level": "low", "emotional_tone": "mixed"},
    )
    reply = json.dumps({"reflection_text": "You kept moving this week.", "key_achievement": "Finished the trail"})
    tts = _FakeTTS(failures=1)
    service = _service(storage_service, _RecordingOpenAI(reply), tts, tmp_path)

    result = await service.generate(user.id)

    assert result.status == "success"
    assert result.week_start_date == date(2024, 5, 1)
    assert result.summary_text == "You kept moving this week."
    assert result.days_included == 2
    assert result.stats is not None
    assert result.stats.key_achievement == "Finished the trail"
    assert result.stats.avg_energy_level == "low"
    assert result.audio_path == f"{user.id}/2024-05-01/weekly-summary.mp3"
    assert tts.calls == 2
    assert (tmp_path / "audio" / result.audio_path).read_bytes() == b"ID3-fake-mp3"

    stored = await storage_service.get_weekly_summary(user.id, date(2024, 5, 1))
    assert stored is not None
    assert stored.tts_audio_path == result.audio_path
    assert json.loads(stored.stats)["top_activities"] == ["hiked", "baked"]


@pytest.mark.anyio
async def test_generate_offline_without_tts(storage_service: StorageService, tmp_path: Path) -> None:
    user = await storage_service.create_user()
    await _seed(
        storage_service,
        user.id,
        7,
        {"what_was_done": ["painted"], "energy_level": "high", "emotional_tone": "positive", "reflection": "Good."},
    )
    service = _service(storage_service, OpenAIClient(api_key=None), _FakeTTS(available=False), tmp_path)

    result = await service.generate(user.id, date(2024, 5, 7))

    assert result.status == "success"
    assert result.audio_path is None
    assert "journaled on 1 day." in (result.summary_text or "")
    assert "painted" in (result.summary_text or "")


@pytest.mark.anyio
async def test_generate_reports_error_on_empty_reflection(
    storage_service: StorageService,
    tmp_path: Path,
) -> None:
    user = await storage_service.create_user()
    await _seed(storage_service, user.id, 3, {"what_was_done": ["swam"]})
    service = _service(
        storage_service,
        _RecordingOpenAI(json.dumps({"reflection_text": ""})),
        _FakeTTS(),
        tmp_path,
    )

    result = await service.generate(user.id, date(2024, 5, 7))

    assert result.status == "error"
    assert result.error
    assert await storage_service.list_weekly_summaries(user.id) == []
