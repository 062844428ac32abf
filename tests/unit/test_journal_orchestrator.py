from __future__ import annotations

from datetime import date

import pytest

from daybook.app.schemas.journal import PENDING_SUMMARY, JournalEntryStatus, Summary
from daybook.client.api import BackendClient, CreateJournalResult
from daybook.client.cache import JournalCache
from daybook.client.credits import CreditStore
from daybook.client.errors import (
    NO_CREDITS_MESSAGE,
    InsufficientCreditsError,
    NoActiveSessionError,
    TransientBackendError,
    UnauthenticatedError,
)
from daybook.client.journal import (
    CancellationToken,
    CreateState,
    JournalOrchestrator,
    JournalStore,
)
from daybook.client.storage import MemoryStore

READY = Summary(day_summary="Ready.", what_was_done=["a", "b", "c"], energy_level="high")


class _FakeBackend:
    def __init__(self, *, credits: int = 3, ready_on: int | None = None, create_error=None) -> None:
        self.credits = credits
        self.ready_on = ready_on
        self.create_error = create_error
        self.create_calls = 0
        self.poll_calls = 0
        self.credit_calls = 0
        self.poll_errors: set[int] = set()
        self.sync_summary: Summary | None = None
        self.by_date: dict[str, Summary] = {}
        self.on_poll = None

    async def get_credits(self) -> int:
        self.credit_calls += 1
        return self.credits

    async def create_journal_entry(self, text, date) -> CreateJournalResult:
        self.create_calls += 1
        if self.create_error is not None:
            raise self.create_error
        if self.sync_summary is not None:
            return CreateJournalResult(entry_id=5, summary=self.sync_summary)
        return CreateJournalResult(entry_id=5)

    async def get_journal_entry(self, entry_id: int) -> JournalEntryStatus:
        self.poll_calls += 1
        if self.on_poll is not None:
            self.on_poll(self.poll_calls)
        if self.poll_calls in self.poll_errors:
            raise TransientBackendError("flaky")
        ready = self.ready_on is not None and self.poll_calls >= self.ready_on
        return JournalEntryStatus(
            id=entry_id,
            date=date(2024, 5, 1),
            summary=READY.model_copy(update={"reflection": f"attempt {self.poll_calls}"}) if ready else None,
            is_summarized=ready,
        )

    async def get_journal_by_date(self, date) -> Summary | None:
        return self.by_date.get(str(date))


class _Sleeps:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class _FailingStore(MemoryStore):
    async def set_item(self, key: str, value: str) -> None:
        raise OSError("read-only")


def _orchestrator(backend: _FakeBackend, *, store=None, sleeps: _Sleeps | None = None):
    cache = JournalCache(store or MemoryStore())
    credits = CreditStore(backend)
    orchestrator = JournalOrchestrator(
        backend,
        cache,
        credits,
        poll_interval=1.0,
        poll_attempts=10,
        sleep=sleeps or _Sleeps(),
    )
    return orchestrator, cache, credits


@pytest.mark.anyio
@pytest.mark.parametrize("ready_on", [1, 4, 10])
async def test_resolves_on_first_summarized_poll(ready_on: int) -> None:
    backend = _FakeBackend(ready_on=ready_on)
    sleeps = _Sleeps()
    orchestrator, cache, _ = _orchestrator(backend, sleeps=sleeps)

    outcome = await orchestrator.create("text", "2024-05-01")

    assert outcome.state is CreateState.RESOLVED
    assert outcome.attempts == ready_on
    assert outcome.summary is not None and outcome.summary.reflection == f"attempt {ready_on}"
    assert backend.poll_calls == ready_on
    assert sleeps.delays == [1.0] * (ready_on - 1)
    cached = await cache.get("2024-05-01")
    assert cached is not None and cached.summary.reflection == f"attempt {ready_on}"


@pytest.mark.anyio
async def test_times_out_with_placeholder_after_ten_attempts() -> None:
    backend = _FakeBackend(ready_on=None)
    sleeps = _Sleeps()
    orchestrator, cache, _ = _orchestrator(backend, sleeps=sleeps)

    outcome = await orchestrator.create("text", date(2024, 5, 1))

    assert outcome.state is CreateState.TIMED_OUT
    assert outcome.is_placeholder
    assert outcome.summary == PENDING_SUMMARY
    assert outcome.summary is not PENDING_SUMMARY
    assert backend.poll_calls == 10
    assert sleeps.delays == [1.0] * 9
    assert await cache.get("2024-05-01") is None
    assert orchestrator.state is CreateState.TIMED_OUT


@pytest.mark.anyio
async def test_poll_errors_count_as_attempts() -> None:
    backend = _FakeBackend(ready_on=3)
    backend.poll_errors = {1, 2}
    orchestrator, _, _ = _orchestrator(backend)

    outcome = await orchestrator.create("text", "2024-05-01")

    assert outcome.state is CreateState.RESOLVED
    assert outcome.attempts == 3


@pytest.mark.anyio
async def test_no_credits_blocks_submission() -> None:
    backend = _FakeBackend(credits=0)
    orchestrator, _, credits = _orchestrator(backend)

    outcome = await orchestrator.create("text", "2024-05-01")

    assert outcome.state is CreateState.FAILED
    assert isinstance(outcome.error, InsufficientCreditsError)
    assert outcome.error.message == NO_CREDITS_MESSAGE
    assert backend.create_calls == 0
    assert backend.credit_calls == 1
    assert credits.loaded


@pytest.mark.anyio
async def test_submit_failure_fails_without_retry_and_refreshes_credits() -> None:
    backend = _FakeBackend(create_error=UnauthenticatedError("expired"))
    orchestrator, _, _ = _orchestrator(backend)

    outcome = await orchestrator.create("text", "2024-05-01")

    assert outcome.state is CreateState.FAILED
    assert isinstance(outcome.error, UnauthenticatedError)
    assert backend.create_calls == 1
    assert backend.poll_calls == 0
    assert backend.credit_calls == 2


@pytest.mark.anyio
async def test_synchronous_summary_resolves_without_polling() -> None:
    backend = _FakeBackend()
    backend.sync_summary = READY
    orchestrator, cache, _ = _orchestrator(backend)

    outcome = await orchestrator.create("text", "2024-05-01")

    assert outcome.state is CreateState.RESOLVED
    assert outcome.attempts == 0
    assert backend.poll_calls == 0
    assert (await cache.get("2024-05-01")) is not None


@pytest.mark.anyio
async def test_cancellation_stops_polling_and_discards_result() -> None:
    backend = _FakeBackend(ready_on=3)
    token = CancellationToken()
    backend.on_poll = lambda attempt: token.cancel() if attempt == 3 else None
    orchestrator, cache, _ = _orchestrator(backend)

    outcome = await orchestrator.create("text", "2024-05-01", cancel_token=token)

    assert outcome.state is CreateState.CANCELLED
    assert outcome.summary is None
    assert backend.poll_calls == 3
    assert await cache.get("2024-05-01") is None


@pytest.mark.anyio
async def test_cancellation_during_sleep_prevents_next_poll() -> None:
    backend = _FakeBackend(ready_on=None)
    token = CancellationToken()

    async def cancelling_sleep(delay: float) -> None:
        token.cancel()

    orchestrator = JournalOrchestrator(
        backend,
        JournalCache(MemoryStore()),
        CreditStore(backend),
        sleep=cancelling_sleep,
    )

    outcome = await orchestrator.create("text", "2024-05-01", cancel_token=token)

    assert outcome.state is CreateState.CANCELLED
    assert backend.poll_calls == 1
    assert outcome.attempts == 1


@pytest.mark.anyio
async def test_refreshes_credits_after_resolution() -> None:
    backend = _FakeBackend(credits=1, ready_on=1)
    orchestrator, _, credits = _orchestrator(backend)

    async def drain() -> int:
        backend.credit_calls += 1
        return 0

    await credits.refresh()
    backend.get_credits = drain  # type: ignore[method-assign]
    await orchestrator.create("text", "2024-05-01")

    assert credits.credits == 0
    assert backend.credit_calls == 2


@pytest.mark.anyio
async def test_cache_write_failure_does_not_abort() -> None:
    backend = _FakeBackend(ready_on=1)
    orchestrator, _, _ = _orchestrator(backend, store=_FailingStore())

    outcome = await orchestrator.create("text", "2024-05-01")

    assert outcome.state is CreateState.RESOLVED


@pytest.mark.anyio
async def test_journal_store_create_and_fetch() -> None:
    backend = _FakeBackend(ready_on=2)
    orchestrator, cache, _ = _orchestrator(backend)
    store = JournalStore(backend, cache, orchestrator)

    assert await store.create_journal("text", "2024-05-01") is True
    assert not store.creating and store.error is None
    assert store.current_entry is not None and store.current_entry.reflection == "attempt 2"

    await store.fetch_journal("2024-05-01")
    assert store.current_entry is not None and store.current_entry.reflection == "attempt 2"
    assert not store.loading


@pytest.mark.anyio
async def test_journal_store_fetch_falls_back_to_backend() -> None:
    backend = _FakeBackend()
    backend.by_date["2024-05-02"] = READY
    orchestrator, cache, _ = _orchestrator(backend)
    store = JournalStore(backend, cache, orchestrator)

    assert await store.fetch_journal("2024-05-02") == READY
    assert (await cache.get("2024-05-02")) is not None
    assert await store.fetch_journal("2024-05-03") is None
    assert store.current_entry is None


@pytest.mark.anyio
async def test_journal_store_reports_no_credits() -> None:
    backend = _FakeBackend(credits=0)
    orchestrator, cache, _ = _orchestrator(backend)
    store = JournalStore(backend, cache, orchestrator)

    assert await store.create_journal("text", "2024-05-01") is False
    assert store.error == NO_CREDITS_MESSAGE
    assert backend.create_calls == 0


@pytest.mark.anyio
async def test_unreachable_credits_fail_as_transient() -> None:
    backend = _FakeBackend()

    async def unreachable() -> int:
        backend.credit_calls += 1
        raise TransientBackendError("Connection failed")

    backend.get_credits = unreachable  # type: ignore[method-assign]
    orchestrator, _, credits = _orchestrator(backend)

    outcome = await orchestrator.create("text", "2024-05-01")

    assert outcome.state is CreateState.FAILED
    assert isinstance(outcome.error, TransientBackendError)
    assert outcome.error.message != NO_CREDITS_MESSAGE
    assert backend.create_calls == 0
    assert credits.credits == 0


@pytest.mark.anyio
async def test_missing_session_is_reported_before_credits() -> None:
    client = BackendClient("http://daybook.test")
    orchestrator = JournalOrchestrator(
        client,
        JournalCache(MemoryStore()),
        CreditStore(client),
        sleep=_Sleeps(),
    )
    try:
        outcome = await orchestrator.create("text", "2024-05-01")
    finally:
        await client.aclose()

    assert outcome.state is CreateState.FAILED
    assert isinstance(outcome.error, NoActiveSessionError)


@pytest.mark.anyio
async def test_credits_are_retried_after_a_failed_refresh() -> None:
    backend = _FakeBackend(credits=2, ready_on=1)
    orchestrator, _, credits = _orchestrator(backend)
    credits.loaded = True
    credits.error = TransientBackendError("earlier outage")

    outcome = await orchestrator.create("text", "2024-05-01")

    assert outcome.state is CreateState.RESOLVED
    assert backend.create_calls == 1


@pytest.mark.anyio
async def test_empty_summary_is_not_treated_as_ready() -> None:
    backend = _FakeBackend(ready_on=None)
    empty_polls = {1, 2}

    async def get_journal_entry(entry_id: int) -> JournalEntryStatus:
        backend.poll_calls += 1
        summary = Summary() if backend.poll_calls in empty_polls else READY
        return JournalEntryStatus(
            id=entry_id,
            date=date(2024, 5, 1),
            summary=summary,
            is_summarized=True,
        )

    backend.get_journal_entry = get_journal_entry  # type: ignore[method-assign]
    orchestrator, _, _ = _orchestrator(backend)

    outcome = await orchestrator.create("text", "2024-05-01")

    assert outcome.state is CreateState.RESOLVED
    assert outcome.attempts == 3
    assert outcome.summary == READY
