from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import date, datetime, timedelta
from secrets import token_urlsafe
from typing import Any

from sqlalchemy import select, text, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..db.models import (
    JournalEntry,
    SessionToken,
    SettingEntry,
    UsageCredit,
    User,
    WeeklySummary,
)


class StorageService:
    """Persist users, credits, journal entries and weekly summaries."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        *,
        default_credits: int = 3,
        session_ttl_days: int = 30,
    ) -> None:
        self._session_factory = session_factory
        self._default_credits = default_credits
        self._session_ttl_days = session_ttl_days

    async def healthcheck(self) -> None:
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))

    async def get_schema_version(self) -> str | None:
        async with self._session_factory() as session:
            return await session.scalar(
                select(SettingEntry.value).where(SettingEntry.key == "schema_version")
            )

    # -- users and sessions ----------------------------------------------
    async def create_user(self, *, email: str | None = None, timezone: str | None = None) -> User:
        async with self._session_factory() as session:
            user = User(email=email, timezone=timezone)
            session.add(user)
            await session.flush()
            session.add(
                UsageCredit(user_id=user.id, daily_journal_credits=self._default_credits)
            )
            await session.commit()
            await session.refresh(user)
            return user

    async def get_user_by_id(self, user_id: int) -> User | None:
        async with self._session_factory() as session:
            return await session.get(User, user_id)

    async def get_user_by_session(self, token: str) -> User | None:
        async with self._session_factory() as session:
            query = (
                select(User)
                .join(SessionToken)
                .where(SessionToken.token == token)
                .where(SessionToken.expires_at > datetime.utcnow())
            )
            return await session.scalar(query)

    async def issue_session(self, user_id: int, ttl_days: int | None = None) -> SessionToken:
        if ttl_days is None:
            ttl_days = self._session_ttl_days
        async with self._session_factory() as session:
            session_token = SessionToken(
                user_id=user_id,
                token=token_urlsafe(32),
                expires_at=datetime.utcnow() + timedelta(days=ttl_days),
            )
            session.add(session_token)
            await session.commit()
            await session.refresh(session_token)
            return session_token

    # -- credits ---------------------------------------------------------
    async def get_credits(self, user_id: int) -> int:
        async with self._session_factory() as session:
            value = await session.scalar(
                select(UsageCredit.daily_journal_credits).where(UsageCredit.user_id == user_id)
            )
            return int(value or 0)

    async def set_credits(self, user_id: int, credits: int) -> None:
        async with self._session_factory() as session:
            entry = await session.get(UsageCredit, user_id)
            if entry is None:
                session.add(UsageCredit(user_id=user_id, daily_journal_credits=credits))
            else:
                entry.daily_journal_credits = credits
            await session.commit()

    async def consume_credit(self, user_id: int) -> bool:
        """Atomically take one credit; ``False`` when the balance is already empty."""

        async with self._session_factory() as session:
            result = await session.execute(
                update(UsageCredit)
                .where(UsageCredit.user_id == user_id)
                .where(UsageCredit.daily_journal_credits > 0)
                .values(daily_journal_credits=UsageCredit.daily_journal_credits - 1)
            )
            await session.commit()
            return result.rowcount == 1

    async def refund_credit(self, user_id: int) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(UsageCredit)
                .where(UsageCredit.user_id == user_id)
                .values(daily_journal_credits=UsageCredit.daily_journal_credits + 1)
            )
            await session.commit()

    # -- journal entries -------------------------------------------------
    async def upsert_journal_entry(
        self,
        *,
        user_id: int,
        journal_date: date,
        transcript: str,
    ) -> JournalEntry:
        async with self._session_factory() as session:
            entry = await session.scalar(
                select(JournalEntry)
                .where(JournalEntry.user_id == user_id)
                .where(JournalEntry.journal_date == journal_date)
            )
            if entry is None:
                entry = JournalEntry(
                    user_id=user_id,
                    journal_date=journal_date,
                    raw_transcript=transcript,
                )
                session.add(entry)
            else:
                entry.raw_transcript = transcript
                entry.summary = None
                entry.is_summarized = False
                entry.summarized_at = None
            await session.commit()
            await session.refresh(entry)
            return entry

    async def get_journal_entry(self, entry_id: int) -> JournalEntry | None:
        async with self._session_factory() as session:
            return await session.get(JournalEntry, entry_id)

    async def get_journal_entry_for_user(self, user_id: int, entry_id: int) -> JournalEntry | None:
        async with self._session_factory() as session:
            return await session.scalar(
                select(JournalEntry)
                .where(JournalEntry.id == entry_id)
                .where(JournalEntry.user_id == user_id)
            )

    async def get_journal_by_date(self, user_id: int, journal_date: date) -> JournalEntry | None:
        async with self._session_factory() as session:
            return await session.scalar(
                select(JournalEntry)
                .where(JournalEntry.user_id == user_id)
                .where(JournalEntry.journal_date == journal_date)
            )

    async def mark_summarized(
        self,
        entry_id: int,
        summary: dict[str, Any],
        *,
        expected_transcript: str | None = None,
    ) -> bool:
        async with self._session_factory() as session:
            entry = await session.get(JournalEntry, entry_id)
            if entry is None:
                return False
            if expected_transcript is not None and entry.raw_transcript != expected_transcript:
                return False
            entry.summary = json.dumps(summary, ensure_ascii=False)
            entry.is_summarized = True
            entry.summarized_at = datetime.utcnow()
            await session.commit()
            return True

    async def list_summarized_entries(
        self,
        user_id: int,
        start: date,
        end: date,
    ) -> Sequence[JournalEntry]:
        async with self._session_factory() as session:
            result = await session.scalars(
                select(JournalEntry)
                .where(JournalEntry.user_id == user_id)
                .where(JournalEntry.journal_date >= start)
                .where(JournalEntry.journal_date <= end)
                .where(JournalEntry.is_summarized.is_(True))
                .order_by(JournalEntry.journal_date.asc())
            )
            return list(result)

    # -- weekly summaries ------------------------------------------------
    async def save_weekly_summary(
        self,
        *,
        user_id: int,
        week_start: date,
        week_end: date,
        summary_text: str,
        audio_path: str | None,
        stats: dict[str, Any],
    ) -> WeeklySummary:
        payload = {
            "week_end_date": week_end,
            "summary_text": summary_text,
            "tts_audio_path": audio_path,
            "stats": json.dumps(stats, ensure_ascii=False),
        }
        async with self._session_factory() as session:
            entry = await session.scalar(
                select(WeeklySummary)
                .where(WeeklySummary.user_id == user_id)
                .where(WeeklySummary.week_start_date == week_start)
            )
            if entry is None:
                entry = WeeklySummary(user_id=user_id, week_start_date=week_start, **payload)
                session.add(entry)
            else:
                for key, value in payload.items():
                    setattr(entry, key, value)
                entry.created_at = datetime.utcnow()
            await session.commit()
            await session.refresh(entry)
            return entry

    async def get_weekly_summary(self, user_id: int, week_start: date) -> WeeklySummary | None:
        async with self._session_factory() as session:
            return await session.scalar(
                select(WeeklySummary)
                .where(WeeklySummary.user_id == user_id)
                .where(WeeklySummary.week_start_date == week_start)
            )

    async def list_weekly_summaries(self, user_id: int, limit: int = 12) -> Sequence[WeeklySummary]:
        async with self._session_factory() as session:
            result = await session.scalars(
                select(WeeklySummary)
                .where(WeeklySummary.user_id == user_id)
                .order_by(WeeklySummary.week_start_date.desc())
                .limit(limit)
            )
            return list(result)
