from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "daybook_requests_total",
    "Total HTTP requests processed by Daybook",
    ("method", "path", "status"),
)

REQUEST_LATENCY = Histogram(
    "daybook_request_latency_seconds",
    "HTTP request latency in seconds",
    ("method", "path"),
)

REQUEST_ERRORS = Counter(
    "daybook_request_errors_total",
    "HTTP requests resulting in server errors",
    ("method", "path", "status"),
)

JOURNAL_SUBMISSIONS = Counter(
    "daybook_journal_submissions_total",
    "Journal submissions by outcome",
    ("result",),
)

SUMMARIZATION_RESULTS = Counter(
    "daybook_summarizations_total",
    "Background journal summarization jobs by outcome",
    ("result",),
)

WEEKLY_GENERATIONS = Counter(
    "daybook_weekly_generations_total",
    "Weekly summary generations by status",
    ("status",),
)

AI_REQUESTS = Counter(
    "daybook_ai_requests_total",
    "Language model requests",
    ("kind", "source"),
)

AI_TOKENS = Counter(
    "daybook_ai_tokens_total",
    "Tokens consumed by language model requests",
    ("direction",),
)

__all__ = [
    "AI_REQUESTS",
    "AI_TOKENS",
    "JOURNAL_SUBMISSIONS",
    "REQUEST_COUNT",
    "REQUEST_ERRORS",
    "REQUEST_LATENCY",
    "SUMMARIZATION_RESULTS",
    "WEEKLY_GENERATIONS",
]
