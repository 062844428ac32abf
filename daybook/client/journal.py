from __future__ import annotations

import asyncio
import datetime as dt
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from daybook.app.schemas.journal import PENDING_SUMMARY, JournalEntryStatus, Summary

from .api import BackendClient, CreateJournalResult
from .cache import JournalCache
from .credits import CreditStore
from .errors import DaybookError, InsufficientCreditsError, NoActiveSessionError
from .settings import ClientSettings
from .storage import JsonFileStore

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_POLL_ATTEMPTS = 10


class JournalBackend(Protocol):
    async def create_journal_entry(self, text: str, date: dt.date | str) -> CreateJournalResult: ...

    async def get_journal_entry(self, entry_id: int) -> JournalEntryStatus: ...

    async def get_journal_by_date(self, date: dt.date | str) -> Summary | None: ...


class CreateState(str, Enum):
    SUBMITTING = "submitting"
    POLLING = "polling"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset(
    {CreateState.RESOLVED, CreateState.TIMED_OUT, CreateState.FAILED, CreateState.CANCELLED}
)


class CancellationToken:
    """Set by the caller when the result of a create call is no longer wanted."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


@dataclass(frozen=True)
class CreateOutcome:
    state: CreateState
    summary: Summary | None = None
    entry_id: int | None = None
    attempts: int = 0
    error: DaybookError | None = None

    @property
    def is_placeholder(self) -> bool:
        return self.state is CreateState.TIMED_OUT


def _date_key(date: dt.date | str) -> str:
    return date.isoformat() if isinstance(date, dt.date) else date


def _has_content(summary: Summary | None) -> bool:
    return summary is not None and bool(summary.day_summary.strip())


class JournalOrchestrator:
    """Submit a transcript and wait, within bounds, for its summary.

    ``SUBMITTING`` leads to ``RESOLVED`` when the backend answers with a
    summary, ``FAILED`` when the submission is rejected, or ``POLLING``.
    Polling ends in ``RESOLVED``, ``TIMED_OUT`` once every attempt is used, or
    ``CANCELLED`` when the caller's token is set.
    """

    def __init__(
        self,
        backend: JournalBackend,
        cache: JournalCache,
        credits: CreditStore,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        poll_attempts: int = DEFAULT_POLL_ATTEMPTS,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if poll_attempts < 1:
            raise ValueError("poll_attempts must be at least 1")
        self._backend = backend
        self._cache = cache
        self._credits = credits
        self._poll_interval = poll_interval
        self._poll_attempts = poll_attempts
        self._sleep = sleep
        self._state: CreateState | None = None

    @property
    def state(self) -> CreateState | None:
        return self._state

    @property
    def credits(self) -> CreditStore:
        return self._credits

    async def create(
        self,
        text: str,
        date: dt.date | str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> CreateOutcome:
        token = cancel_token or CancellationToken()
        date_key = _date_key(date)
        self._state = CreateState.SUBMITTING

        if not self._credits.loaded or self._credits.error is not None:
            await self._credits.refresh()
        if self._credits.error is not None:
            logger.warning("Journal creation blocked: credits unavailable (%s)", self._credits.error.code)
            return self._finish(CreateState.FAILED, error=self._credits.error)
        if self._credits.credits <= 0:
            logger.info("Journal creation blocked: no credits left")
            return self._finish(CreateState.FAILED, error=InsufficientCreditsError())

        logger.info("Submitting journal entry for %s", date_key)
        try:
            result = await self._backend.create_journal_entry(text, date_key)
        except NoActiveSessionError as exc:
            return self._finish(CreateState.FAILED, error=exc)
        except DaybookError as exc:
            logger.warning("Journal submission failed: %s", exc.message)
            await self._refresh_credits()
            return self._finish(CreateState.FAILED, error=exc)

        if result.summary is not None:
            await self._remember(date_key, result.summary)
            await self._refresh_credits()
            return self._finish(CreateState.RESOLVED, summary=result.summary, entry_id=result.entry_id)

        outcome = await self._poll(result.entry_id, date_key, token)
        await self._refresh_credits()
        return outcome

    async def _poll(
        self,
        entry_id: int | None,
        date_key: str,
        token: CancellationToken,
    ) -> CreateOutcome:
        self._state = CreateState.POLLING
        for attempt in range(1, self._poll_attempts + 1):
            if token.cancelled:
                return self._finish(CreateState.CANCELLED, entry_id=entry_id, attempts=attempt - 1)

            status: JournalEntryStatus | None = None
            try:
                status = await self._backend.get_journal_entry(entry_id)  # type: ignore[arg-type]
            except Exception as exc:
                logger.warning(
                    "Polling for summary failed (%s/%s): %s",
                    attempt,
                    self._poll_attempts,
                    exc,
                )

            if token.cancelled:
                return self._finish(CreateState.CANCELLED, entry_id=entry_id, attempts=attempt)

            if status is not None and status.is_summarized and _has_content(status.summary):
                logger.info("Summary ready after %s attempt(s)", attempt)
                await self._remember(date_key, status.summary)
                return self._finish(
                    CreateState.RESOLVED,
                    summary=status.summary,
                    entry_id=entry_id,
                    attempts=attempt,
                )

            if attempt < self._poll_attempts:
                await self._sleep(self._poll_interval)

        logger.warning("Summary generation timed out; it will appear when ready")
        return self._finish(
            CreateState.TIMED_OUT,
            summary=PENDING_SUMMARY.model_copy(deep=True),
            entry_id=entry_id,
            attempts=self._poll_attempts,
        )

    def _finish(self, state: CreateState, **fields: Any) -> CreateOutcome:
        self._state = state
        return CreateOutcome(state=state, **fields)

    async def _remember(self, date_key: str, summary: Summary) -> None:
        try:
            await self._cache.set(date_key, summary)
        except Exception:
            logger.exception("Caching journal summary for %s failed", date_key)

    async def _refresh_credits(self) -> None:
        try:
            await self._credits.refresh()
        except Exception:
            logger.exception("Credit refresh after journal creation failed")


class JournalStore:
    """UI-facing journal state: the entry on screen and the flags around it."""

    def __init__(
        self,
        backend: JournalBackend,
        cache: JournalCache,
        orchestrator: JournalOrchestrator,
    ) -> None:
        self._backend = backend
        self._cache = cache
        self._orchestrator = orchestrator
        self.current_entry: Summary | None = None
        self.loading = False
        self.creating = False
        self.error: str | None = None

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        backend: BackendClient | None = None,
    ) -> JournalStore:
        backend = backend or BackendClient.from_settings(settings)
        cache = JournalCache(JsonFileStore(settings.cache_dir), ttl_hours=settings.cache_ttl_hours)
        orchestrator = JournalOrchestrator(
            backend,
            cache,
            CreditStore(backend),
            poll_interval=settings.poll_interval_seconds,
            poll_attempts=settings.poll_attempts,
        )
        return cls(backend, cache, orchestrator)

    @property
    def credits(self) -> CreditStore:
        return self._orchestrator.credits

    async def fetch_journal(self, date: dt.date | str) -> Summary | None:
        date_key = _date_key(date)
        self.loading = True
        self.current_entry = None
        self.error = None
        try:
            cached = await self._cache.get(date_key)
            if cached is not None:
                self.current_entry = cached.summary
                return self.current_entry

            summary = await self._backend.get_journal_by_date(date_key)
            if summary is not None:
                try:
                    await self._cache.set(date_key, summary)
                except Exception:
                    logger.exception("Caching journal summary for %s failed", date_key)
                self.current_entry = summary
        except DaybookError as exc:
            logger.error("Fetching journal for %s failed: %s", date_key, exc.message)
            self.error = exc.message
        finally:
            self.loading = False
        return self.current_entry

    async def create_journal(
        self,
        text: str,
        date: dt.date | str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> bool:
        self.creating = True
        self.error = None
        try:
            outcome = await self._orchestrator.create(text, date, cancel_token=cancel_token)
        finally:
            self.creating = False

        if outcome.state is CreateState.FAILED:
            self.error = outcome.error.message if outcome.error else "Failed to create journal"
            return False
        if outcome.state is CreateState.CANCELLED:
            return False
        self.current_entry = outcome.summary
        return True


__all__ = [
    "CancellationToken",
    "CreateOutcome",
    "CreateState",
    "JournalBackend",
    "JournalOrchestrator",
    "JournalStore",
    "TERMINAL_STATES",
]
