from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Backend configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/daybook.db",
        alias="DATABASE_URL",
    )
    log_file: Path = Field(default=Path("logs/daybook.log"))
    request_timeout_seconds: float = Field(default=30.0)
    retry_attempts: int = Field(default=3)

    # Language model
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    summary_max_tokens: int = Field(default=300, alias="SUMMARY_MAX_TOKENS")
    weekly_max_tokens: int = Field(default=800, alias="WEEKLY_MAX_TOKENS")

    # Speech synthesis
    google_tts_api_key: str | None = Field(default=None, alias="GOOGLE_TTS_API_KEY")
    tts_voice_name: str = Field(default="en-US-Neural2-F", alias="TTS_VOICE_NAME")
    tts_language_code: str = Field(default="en-US", alias="TTS_LANGUAGE_CODE")
    tts_speaking_rate: float = Field(default=0.92, alias="TTS_SPEAKING_RATE")
    tts_pitch: float = Field(default=0.5, alias="TTS_PITCH")
    audio_dir: Path = Field(default=Path("data/audio"), alias="AUDIO_DIR")

    # Credits and sessions
    default_journal_credits: int = Field(default=3, alias="DEFAULT_JOURNAL_CREDITS")
    session_ttl_days: int = Field(default=30, alias="SESSION_TTL_DAYS")

    version: str = Field(default_factory=lambda: Settings._load_version())

    @staticmethod
    def _load_version() -> str:
        version_env = os.getenv("VERSION")
        if version_env:
            return version_env
        version_file = Path("VERSION")
        if version_file.exists():
            return version_file.read_text(encoding="utf-8").strip()
        return "0.0.0"

    @field_validator("log_file", mode="before")
    @classmethod
    def _validate_log_file(cls, value: Path | str) -> Path:
        path = Path(value)
        if not path.parent.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
        return path

    @field_validator("audio_dir", mode="before")
    @classmethod
    def _validate_audio_dir(cls, value: Path | str) -> Path:
        path = Path(value)
        path.mkdir(parents=True, exist_ok=True)
        return path

    @field_validator("default_journal_credits", mode="before")
    @classmethod
    def _validate_credits(cls, value: int | str | None) -> int:
        if value is None:
            return 3
        return max(int(value), 0)

    @field_validator("database_url", mode="before")
    @classmethod
    def _validate_database_url(cls, value: str | None) -> str:
        if not value:
            value = "sqlite:///./data/daybook.db"

        normalized = str(value)
        if normalized.startswith("postgres://"):
            normalized = normalized.replace("postgres://", "postgresql://", 1)
        if normalized.startswith("postgresql://") and "+asyncpg" not in normalized:
            normalized = normalized.replace("postgresql://", "postgresql+asyncpg://", 1)
        if normalized.startswith("sqlite://") and "+aiosqlite" not in normalized:
            normalized = normalized.replace("sqlite://", "sqlite+aiosqlite://", 1)

        if normalized.startswith("sqlite+aiosqlite:///"):
            db_path = normalized.split("///", maxsplit=1)[-1]
            if db_path and db_path != ":memory:":
                db_file = Path(db_path)
                db_file.parent.mkdir(parents=True, exist_ok=True)

        return normalized


@lru_cache
def get_settings() -> Settings:
    """Cached settings accessor."""

    return Settings()
