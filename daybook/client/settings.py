from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Device-side configuration loaded from ``DAYBOOK_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DAYBOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_base_url: str = Field(default="http://localhost:8000")
    access_token: str | None = Field(default=None)
    cache_dir: Path = Field(default=Path(".daybook"))
    cache_ttl_hours: float = Field(default=24.0, gt=0)
    poll_interval_seconds: float = Field(default=1.0, ge=0)
    poll_attempts: int = Field(default=10, ge=1)
    request_timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("api_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return str(value).rstrip("/")

    @field_validator("access_token", mode="before")
    @classmethod
    def _blank_token_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = str(value).strip()
        return value or None


@lru_cache
def get_client_settings() -> ClientSettings:
    return ClientSettings()


__all__ = ["ClientSettings", "get_client_settings"]
