from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from daybook.app.schemas.journal import Summary

from .storage import KeyValueStore

logger = logging.getLogger(__name__)

CACHE_KEY = "journal_cache"
DEFAULT_TTL_HOURS = 24.0


def _epoch_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CachedJournal:
    summary: Summary
    fetched_at: int

    def to_payload(self) -> dict[str, Any]:
        return {"summary": self.summary.model_dump(), "fetchedAt": self.fetched_at}


class JournalCache:
    """Time-boxed mirror of journal summaries keyed by ISO date.

    The whole map lives in one persisted blob under ``journal_cache``. Expiry
    is checked on read; stale records stay on disk until overwritten or
    cleared.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        ttl_hours: float = DEFAULT_TTL_HOURS,
        clock: Callable[[], int] = _epoch_millis,
    ) -> None:
        self._store = store
        self._ttl_ms = int(ttl_hours * 3600 * 1000)
        self._clock = clock

    async def get_all(self) -> dict[str, dict[str, Any]]:
        try:
            raw = await self._store.get_item(CACHE_KEY)
            if not raw:
                return {}
            data = json.loads(raw)
        except (OSError, ValueError) as exc:
            logger.warning("Journal cache read failed: %s", exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Journal cache blob is not a mapping; ignoring it")
            return {}
        return data

    async def get(self, date: str) -> CachedJournal | None:
        record = (await self.get_all()).get(date)
        if not isinstance(record, dict):
            return None
        try:
            fetched_at = int(record["fetchedAt"])
            summary = Summary.model_validate(record["summary"])
        except (KeyError, TypeError, ValueError, ValidationError):
            logger.warning("Discarding malformed cache record for %s", date)
            return None
        if self._clock() - fetched_at > self._ttl_ms:
            return None
        return CachedJournal(summary=summary, fetched_at=fetched_at)

    async def set(self, date: str, summary: Summary) -> None:
        cache = await self.get_all()
        cache[date] = CachedJournal(summary=summary, fetched_at=self._clock()).to_payload()
        await self._store.set_item(CACHE_KEY, json.dumps(cache, ensure_ascii=False))

    async def clear(self) -> None:
        await self._store.remove_item(CACHE_KEY)


__all__ = ["CACHE_KEY", "CachedJournal", "JournalCache"]
