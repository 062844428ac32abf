from __future__ import annotations

import json
import logging
from datetime import date

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import FileResponse

from ...core.security import resolve_authenticated_user
from ...db.models import JournalEntry, WeeklySummary
from ...metrics import JOURNAL_SUBMISSIONS
from ...schemas.journal import (
    CreditsResponse,
    JournalCreate,
    JournalCreateResponse,
    JournalEntryStatus,
    Summary,
)
from ...schemas.weekly import (
    WeeklyStats,
    WeeklySummaryItem,
    WeeklySummaryListResponse,
    WeeklySummaryRequest,
    WeeklySummaryResult,
)
from ...services.audio import AudioStorage
from ...services.storage import StorageService
from ...services.summarizer import JournalSummarizer
from ...services.weekly import WeeklySummaryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["journal"])


def get_storage_service(request: Request) -> StorageService:
    return request.app.state.storage_service


def get_summarizer(request: Request) -> JournalSummarizer:
    return request.app.state.summarizer


def get_weekly_service(request: Request) -> WeeklySummaryService:
    return request.app.state.weekly_service


def get_audio_storage(request: Request) -> AudioStorage:
    return request.app.state.audio_storage


def _entry_status(entry: JournalEntry) -> JournalEntryStatus:
    summary = Summary.model_validate_json(entry.summary) if entry.summary else None
    return JournalEntryStatus(
        id=entry.id,
        date=entry.journal_date,
        summary=summary,
        is_summarized=entry.is_summarized,
    )


def _weekly_item(entry: WeeklySummary) -> WeeklySummaryItem:
    return WeeklySummaryItem(
        week_start_date=entry.week_start_date,
        week_end_date=entry.week_end_date,
        summary_text=entry.summary_text,
        audio_path=entry.tts_audio_path,
        stats=WeeklyStats.model_validate(json.loads(entry.stats or "{}")),
        created_at=entry.created_at,
    )


@router.post(
    "/journal",
    response_model=JournalCreateResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def create_journal_entry(
    payload: JournalCreate,
    background_tasks: BackgroundTasks,
    storage: StorageService = Depends(get_storage_service),
    summarizer: JournalSummarizer = Depends(get_summarizer),
    user_id: int = Depends(resolve_authenticated_user),
) -> JournalCreateResponse:
    if not await storage.consume_credit(user_id):
        JOURNAL_SUBMISSIONS.labels(result="no_credits").inc()
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "insufficient-credits", "message": "Insufficient credits"},
        )

    try:
        entry = await storage.upsert_journal_entry(
            user_id=user_id,
            journal_date=payload.date,
            transcript=payload.text,
        )
    except Exception:
        await storage.refund_credit(user_id)
        JOURNAL_SUBMISSIONS.labels(result="error").inc()
        raise

    background_tasks.add_task(summarizer.summarize_entry, entry.id)
    JOURNAL_SUBMISSIONS.labels(result="accepted").inc()
    logger.info(
        "Journal entry accepted",
        extra={"entry_id": entry.id, "extra_fields": {"text_length": len(payload.text)}},
    )
    return JournalCreateResponse(entry_id=entry.id, status="pending")


@router.get("/journal/{entry_id}", response_model=JournalEntryStatus)
async def read_journal_entry(
    entry_id: int,
    storage: StorageService = Depends(get_storage_service),
    user_id: int = Depends(resolve_authenticated_user),
) -> JournalEntryStatus:
    entry = await storage.get_journal_entry_for_user(user_id, entry_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="entry not found")
    return _entry_status(entry)


@router.get("/journal", response_model=JournalEntryStatus)
async def read_journal_by_date(
    journal_date: date = Query(alias="date"),
    storage: StorageService = Depends(get_storage_service),
    user_id: int = Depends(resolve_authenticated_user),
) -> JournalEntryStatus:
    entry = await storage.get_journal_by_date(user_id, journal_date)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="entry not found")
    return _entry_status(entry)


@router.get("/credits", response_model=CreditsResponse)
async def read_credits(
    storage: StorageService = Depends(get_storage_service),
    user_id: int = Depends(resolve_authenticated_user),
) -> CreditsResponse:
    return CreditsResponse(credits=await storage.get_credits(user_id))


@router.post("/weekly", response_model=WeeklySummaryResult)
async def generate_weekly_summary(
    payload: WeeklySummaryRequest | None = None,
    service: WeeklySummaryService = Depends(get_weekly_service),
    user_id: int = Depends(resolve_authenticated_user),
) -> WeeklySummaryResult:
    end_date = payload.end_date if payload else None
    return await service.generate(user_id, end_date)


@router.get("/weekly", response_model=WeeklySummaryListResponse)
async def list_weekly_summaries(
    limit: int = Query(default=12, ge=1, le=52),
    storage: StorageService = Depends(get_storage_service),
    user_id: int = Depends(resolve_authenticated_user),
) -> WeeklySummaryListResponse:
    rows = await storage.list_weekly_summaries(user_id, limit=limit)
    return WeeklySummaryListResponse(items=[_weekly_item(row) for row in rows])


@router.get("/weekly/{week_start}", response_model=WeeklySummaryItem)
async def read_weekly_summary(
    week_start: date,
    storage: StorageService = Depends(get_storage_service),
    user_id: int = Depends(resolve_authenticated_user),
) -> WeeklySummaryItem:
    entry = await storage.get_weekly_summary(user_id, week_start)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="weekly summary not found")
    return _weekly_item(entry)


@router.get("/weekly/{week_start}/audio")
async def read_weekly_audio(
    week_start: date,
    storage: StorageService = Depends(get_storage_service),
    audio_storage: AudioStorage = Depends(get_audio_storage),
    user_id: int = Depends(resolve_authenticated_user),
) -> FileResponse:
    entry = await storage.get_weekly_summary(user_id, week_start)
    if entry is None or not entry.tts_audio_path or not audio_storage.exists(entry.tts_audio_path):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="audio not found")
    return FileResponse(
        audio_storage.resolve(entry.tts_audio_path),
        media_type="audio/mpeg",
        filename="weekly-summary.mp3",
    )
