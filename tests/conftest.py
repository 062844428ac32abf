from __future__ import annotations

from collections.abc import AsyncIterator, Generator
from pathlib import Path
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from daybook.app.core import config
from daybook.app.services.storage import StorageService
from daybook.db import create_engine, create_session_factory, init_db


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def test_client(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[TestClient, None, None]:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_TTS_API_KEY", raising=False)
    monkeypatch.setenv("VERSION", "0.1.0-test")
    monkeypatch.setenv("DEFAULT_JOURNAL_CREDITS", "3")
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "logs" / "daybook.log"))
    monkeypatch.setenv("AUDIO_DIR", str(tmp_path / "audio"))
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / f'test_{uuid4().hex}.db'}")
    config.get_settings.cache_clear()

    from daybook.app.main import app

    with TestClient(app) as client:
        storage: StorageService = app.state.storage_service
        user = client.portal.call(storage.create_user)
        session_token = client.portal.call(storage.issue_session, user.id)
        client.headers.update({"Authorization": f"Bearer {session_token.token}"})
        client.user_id = user.id  # type: ignore[attr-defined]
        yield client

    config.get_settings.cache_clear()


@pytest.fixture()
async def storage_service(tmp_path: Path) -> AsyncIterator[StorageService]:
    database_url = f"sqlite+aiosqlite:///{tmp_path / f'unit_{uuid4().hex}.db'}"
    engine = create_engine(database_url)
    session_factory = create_session_factory(engine)
    await init_db(engine, session_factory, "test")
    try:
        yield StorageService(session_factory, default_credits=3)
    finally:
        await engine.dispose()
