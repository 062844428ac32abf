"""Device-side Daybook logic: cache, backend client, speech sessions and journal flow."""

from .api import BackendClient, CreateJournalResult
from .cache import CachedJournal, JournalCache
from .credits import CreditStore
from .journal import CancellationToken, CreateOutcome, CreateState, JournalOrchestrator, JournalStore
from .settings import ClientSettings, get_client_settings
from .storage import JsonFileStore, MemoryStore
from .transcript import format_transcript

__all__ = [
    "BackendClient",
    "CachedJournal",
    "CancellationToken",
    "ClientSettings",
    "CreateJournalResult",
    "CreateOutcome",
    "CreateState",
    "CreditStore",
    "JournalCache",
    "JournalOrchestrator",
    "JournalStore",
    "JsonFileStore",
    "MemoryStore",
    "format_transcript",
    "get_client_settings",
]
