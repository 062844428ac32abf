from __future__ import annotations

from enum import Enum

NO_CREDITS_MESSAGE = "You have used your daily journal credit."


class ErrorCategory(str, Enum):
    PERMISSION = "permission"
    TRANSIENT = "transient"
    PRECONDITION = "precondition"
    EMPTY = "empty"


class DaybookError(Exception):
    """Base error for the device-side code; carries a machine-readable code."""

    code = "unknown"
    category = ErrorCategory.TRANSIENT

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class UnauthenticatedError(DaybookError):
    code = "unauthenticated"
    category = ErrorCategory.PERMISSION


class NoActiveSessionError(DaybookError):
    code = "no-active-session"
    category = ErrorCategory.PRECONDITION


class InsufficientCreditsError(DaybookError):
    code = "insufficient-credits"
    category = ErrorCategory.PRECONDITION

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or NO_CREDITS_MESSAGE)


class TransientBackendError(DaybookError):
    code = "backend-unavailable"
    category = ErrorCategory.TRANSIENT


class BackendRequestError(DaybookError):
    code = "bad-request"
    category = ErrorCategory.PRECONDITION

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(DaybookError):
    code = "not-found"
    category = ErrorCategory.EMPTY


__all__ = [
    "BackendRequestError",
    "DaybookError",
    "ErrorCategory",
    "InsufficientCreditsError",
    "NO_CREDITS_MESSAGE",
    "NoActiveSessionError",
    "NotFoundError",
    "TransientBackendError",
    "UnauthenticatedError",
]
