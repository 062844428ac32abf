from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import ValidationError

from daybook.app.schemas.journal import (
    CreditsResponse,
    JournalCreateResponse,
    JournalEntryStatus,
    Summary,
)
from daybook.app.schemas.weekly import (
    WeeklySummaryItem,
    WeeklySummaryListResponse,
    WeeklySummaryResult,
)

from .errors import (
    BackendRequestError,
    DaybookError,
    InsufficientCreditsError,
    NoActiveSessionError,
    NotFoundError,
    TransientBackendError,
    UnauthenticatedError,
)
from .settings import ClientSettings

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@dataclass(frozen=True)
class CreateJournalResult:
    """Outcome of a create call: an id still being summarized, or the summary itself."""

    entry_id: int | None = None
    summary: Summary | None = None

    @property
    def pending(self) -> bool:
        return self.summary is None


def _as_iso(value: dt.date | str) -> str:
    return value.isoformat() if isinstance(value, dt.date) else value


def _detail(response: httpx.Response) -> Any:
    try:
        payload = response.json()
    except ValueError:
        return response.text or None
    if isinstance(payload, dict):
        return payload.get("detail", payload)
    return payload


class BackendClient:
    """Bearer-authenticated client for the Daybook HTTP API."""

    def __init__(
        self,
        base_url: str,
        *,
        access_token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> BackendClient:
        return cls(
            settings.api_base_url,
            access_token=settings.access_token,
            timeout=settings.request_timeout_seconds,
            transport=transport,
        )

    @property
    def has_session(self) -> bool:
        return bool(self._access_token)

    def set_access_token(self, token: str | None) -> None:
        self._access_token = token or None

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> BackendClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        if not self._access_token:
            raise NoActiveSessionError("No active session")

        headers = {"Authorization": f"Bearer {self._access_token}"}
        try:
            response = await self._client.request(
                method,
                f"{API_PREFIX}{path}",
                json=json,
                params=params,
                headers=headers,
            )
        except httpx.TimeoutException as exc:
            raise TransientBackendError("Request timed out") from exc
        except httpx.TransportError as exc:
            raise TransientBackendError(f"Connection failed: {exc}") from exc

        self._raise_for_status(response)
        try:
            return response.json()
        except ValueError as exc:
            raise TransientBackendError("Backend returned an invalid response") from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        status_code = response.status_code
        if status_code < 400:
            return

        detail = _detail(response)
        code = detail.get("code") if isinstance(detail, dict) else None
        message = detail.get("message") if isinstance(detail, dict) else detail
        message = str(message) if message else None

        if status_code == 401:
            raise UnauthenticatedError(message or "Session expired, please sign in again")
        if status_code == 403 and code == InsufficientCreditsError.code:
            raise InsufficientCreditsError()
        if status_code == 404:
            raise NotFoundError(message or "Not found")
        if status_code >= 500:
            raise TransientBackendError(message or f"Backend error ({status_code})")
        raise BackendRequestError(
            message or f"Request rejected ({status_code})",
            status_code=status_code,
        )

    @staticmethod
    def _parse(model: type[Any], payload: Any) -> Any:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise TransientBackendError("Backend returned an unexpected payload") from exc

    async def create_journal_entry(self, text: str, date: dt.date | str) -> CreateJournalResult:
        payload = await self._request(
            "POST",
            "/journal",
            json={"text": text, "date": _as_iso(date)},
        )
        if isinstance(payload, dict) and "entry_id" not in payload and "day_summary" in payload:
            return CreateJournalResult(summary=self._parse(Summary, payload))
        response: JournalCreateResponse = self._parse(JournalCreateResponse, payload)
        return CreateJournalResult(entry_id=response.entry_id, summary=response.summary)

    async def get_journal_entry(self, entry_id: int) -> JournalEntryStatus:
        payload = await self._request("GET", f"/journal/{entry_id}")
        return self._parse(JournalEntryStatus, payload)

    async def get_journal_by_date(self, date: dt.date | str) -> Summary | None:
        try:
            payload = await self._request("GET", "/journal", params={"date": _as_iso(date)})
        except NotFoundError:
            return None
        status: JournalEntryStatus = self._parse(JournalEntryStatus, payload)
        return status.summary

    async def get_credits(self) -> int:
        payload = await self._request("GET", "/credits")
        response: CreditsResponse = self._parse(CreditsResponse, payload)
        return response.credits

    async def generate_weekly_summary(
        self,
        end_date: dt.date | str | None = None,
    ) -> WeeklySummaryResult:
        end = _as_iso(end_date) if end_date is not None else dt.date.today().isoformat()
        logger.info("Generating weekly summary ending on %s", end)
        try:
            payload = await self._request("POST", "/weekly", json={"end_date": end})
            return self._parse(WeeklySummaryResult, payload)
        except DaybookError as exc:
            logger.error("Weekly summary generation failed: %s", exc.message)
            return WeeklySummaryResult(status="error", error=exc.message)

    async def get_weekly_summary(self, week_start: dt.date | str) -> WeeklySummaryItem | None:
        try:
            payload = await self._request("GET", f"/weekly/{_as_iso(week_start)}")
        except NotFoundError:
            return None
        return self._parse(WeeklySummaryItem, payload)

    async def list_weekly_summaries(self, limit: int = 12) -> list[WeeklySummaryItem]:
        payload = await self._request("GET", "/weekly", params={"limit": limit})
        response: WeeklySummaryListResponse = self._parse(WeeklySummaryListResponse, payload)
        return response.items

    def weekly_audio_url(self, audio_path: str) -> str:
        """Map a stored ``{user}/{week_start}/weekly-summary.mp3`` path to its download URL."""

        parts = [part for part in audio_path.split("/") if part]
        if len(parts) < 2:
            raise ValueError(f"unrecognised audio path: {audio_path!r}")
        week_start = parts[-2]
        return f"{self._base_url}{API_PREFIX}/weekly/{week_start}/audio"


__all__ = ["API_PREFIX", "BackendClient", "CreateJournalResult"]
