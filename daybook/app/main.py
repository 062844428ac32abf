from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from daybook.db import create_engine, create_session_factory, init_db

from .ai import GoogleTTSClient, OpenAIClient
from .api.v1.routes import router as v1_router
from .core.config import Settings, get_settings
from .core.logging import configure_logging
from .middleware import RequestLoggingMiddleware
from .services.audio import AudioStorage
from .services.storage import StorageService
from .services.summarizer import JournalSummarizer
from .services.weekly import WeeklySummaryService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Wire storage, model and speech providers onto the application state."""

    configure_logging()
    settings: Settings = get_settings()

    engine = create_engine(settings.database_url)
    session_factory = create_session_factory(engine)
    await init_db(engine, session_factory, settings.version)
    storage_service = StorageService(
        session_factory,
        default_credits=settings.default_journal_credits,
        session_ttl_days=settings.session_ttl_days,
    )

    openai_client = OpenAIClient(settings.openai_api_key, model=settings.openai_model)
    tts_client = GoogleTTSClient(
        settings.google_tts_api_key,
        voice_name=settings.tts_voice_name,
        language_code=settings.tts_language_code,
        speaking_rate=settings.tts_speaking_rate,
        pitch=settings.tts_pitch,
        timeout=settings.request_timeout_seconds,
    )
    audio_storage = AudioStorage(settings.audio_dir)

    app.state.settings = settings
    app.state.db_engine = engine
    app.state.db_session_factory = session_factory
    app.state.storage_service = storage_service
    app.state.audio_storage = audio_storage
    app.state.summarizer = JournalSummarizer(
        storage_service,
        openai_client,
        max_tokens=settings.summary_max_tokens,
    )
    app.state.weekly_service = WeeklySummaryService(
        storage_service,
        openai_client=openai_client,
        tts_client=tts_client,
        audio_storage=audio_storage,
        max_tokens=settings.weekly_max_tokens,
        retry_attempts=settings.retry_attempts,
    )

    logger.info(
        "Daybook started version=%s llm=%s tts=%s",
        settings.version,
        "openai" if openai_client.available else "offline",
        "google" if tts_client.available else "disabled",
    )

    try:
        yield
    finally:
        await app.state.db_engine.dispose()


app = FastAPI(title="Daybook", version=get_settings().version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(v1_router)


@app.get("/healthz")
async def healthz(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return {"status": "ok", "version": settings.version}


@app.get("/readyz")
async def readyz(request: Request) -> dict[str, Any]:
    storage: StorageService = request.app.state.storage_service

    db_ok = True
    db_detail = "ok"
    schema_version: str | None = None
    try:
        await storage.healthcheck()
        schema_version = await storage.get_schema_version()
    except Exception as exc:
        logger.warning("Database readiness check failed: %s", exc)
        db_ok = False
        db_detail = str(exc)

    return {
        "ready": db_ok,
        "db": {"ok": db_ok, "detail": db_detail, "schema_version": schema_version},
    }


@app.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
