from __future__ import annotations

import logging
import re

from pydantic import ValidationError

from ..ai.openai_client import OpenAIClient
from ..ai.prompts import DAILY_SYSTEM_PROMPT, build_daily_prompt, extract_json
from ..metrics import SUMMARIZATION_RESULTS
from ..schemas.journal import MAX_ACTIVITIES, Summary
from .storage import StorageService

logger = logging.getLogger(__name__)

_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")


def offline_summary(transcript: str) -> Summary:
    """Extractive summary used when no language model is configured."""

    sentences = [part.strip() for part in _SENTENCE_RE.split(transcript.strip()) if part.strip()]
    if not sentences:
        sentences = [transcript.strip()]
    return Summary(
        day_summary=" ".join(sentences[:2]),
        what_was_done=sentences[:MAX_ACTIVITIES],
        energy_level="unclear",
        emotional_tone="neutral",
        reflection=sentences[-1],
    )


class JournalSummarizer:
    """Background job that turns a stored transcript into a structured summary."""

    def __init__(
        self,
        storage: StorageService,
        openai_client: OpenAIClient,
        *,
        max_tokens: int = 300,
    ) -> None:
        self._storage = storage
        self._openai = openai_client
        self._max_tokens = max_tokens

    async def summarize_transcript(self, transcript: str) -> Summary:
        completion = await self._openai.complete(
            kind="daily_summary",
            system=DAILY_SYSTEM_PROMPT,
            prompt=build_daily_prompt(transcript),
            max_tokens=self._max_tokens,
            temperature=0.2,
        )
        if completion.offline:
            return offline_summary(transcript)
        payload = extract_json(completion.text)
        return Summary.model_validate(payload)

    async def summarize_entry(self, entry_id: int) -> Summary | None:
        entry = await self._storage.get_journal_entry(entry_id)
        if entry is None:
            logger.warning("Summarization skipped: entry missing", extra={"entry_id": entry_id})
            SUMMARIZATION_RESULTS.labels(result="missing").inc()
            return None
        if entry.is_summarized and entry.summary:
            return Summary.model_validate_json(entry.summary)

        transcript = entry.raw_transcript
        try:
            summary = await self.summarize_transcript(transcript)
        except (ValueError, ValidationError) as exc:
            logger.error(
                "Summarization produced an unusable reply: %s",
                exc,
                extra={"entry_id": entry_id},
            )
            SUMMARIZATION_RESULTS.labels(result="invalid").inc()
            return None
        except Exception:
            logger.exception("Summarization failed", extra={"entry_id": entry_id})
            SUMMARIZATION_RESULTS.labels(result="error").inc()
            return None

        stored = await self._storage.mark_summarized(
            entry_id,
            summary.model_dump(),
            expected_transcript=transcript,
        )
        if not stored:
            logger.info("Entry changed during summarization", extra={"entry_id": entry_id})
            SUMMARIZATION_RESULTS.labels(result="stale").inc()
            return None

        SUMMARIZATION_RESULTS.labels(result="success").inc()
        logger.info("Journal entry summarized", extra={"entry_id": entry_id})
        return summary
