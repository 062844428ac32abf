"""Database models for Daybook."""

from .models import (
    Base,
    JournalEntry,
    SessionToken,
    SettingEntry,
    UsageCredit,
    User,
    WeeklySummary,
)

__all__ = [
    "Base",
    "JournalEntry",
    "SessionToken",
    "SettingEntry",
    "UsageCredit",
    "User",
    "WeeklySummary",
]
