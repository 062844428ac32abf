from __future__ import annotations

import logging
from typing import Protocol

from .errors import DaybookError, TransientBackendError

logger = logging.getLogger(__name__)


class CreditsSource(Protocol):
    async def get_credits(self) -> int: ...


class CreditStore:
    """Read-only mirror of the backend credit balance.

    A failed refresh shows a balance of 0 and keeps the cause in ``error`` so
    callers can tell an unknown balance from an empty one.
    """

    def __init__(self, source: CreditsSource) -> None:
        self._source = source
        self.credits = 0
        self.loading = False
        self.loaded = False
        self.error: DaybookError | None = None

    async def refresh(self) -> int:
        self.loading = True
        try:
            self.credits = await self._source.get_credits()
            self.error = None
        except DaybookError as exc:
            logger.warning("Credit refresh failed: %s", exc.message)
            self.credits = 0
            self.error = exc
        except Exception as exc:
            logger.exception("Unexpected error while refreshing credits")
            self.credits = 0
            self.error = TransientBackendError(str(exc) or "Could not load credits")
        finally:
            self.loading = False
            self.loaded = True
        return self.credits


__all__ = ["CreditStore", "CreditsSource"]
