from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..errors import ErrorCategory

IOS_CANCELLED_CODE = 216


class SpeechErrorKind(str, Enum):
    PERMISSION_DENIED = "permission-denied"
    PERMISSION_RESTRICTED = "permission-restricted"
    NO_SPEECH_MATCH = "no-speech-match"
    SERVICE_UNAVAILABLE = "service-unavailable"
    NETWORK_REQUIRED = "network-required"
    SERVICE_BUSY = "service-busy"
    UNKNOWN = "unknown"


_CATEGORIES = {
    SpeechErrorKind.PERMISSION_DENIED: ErrorCategory.PERMISSION,
    SpeechErrorKind.PERMISSION_RESTRICTED: ErrorCategory.PERMISSION,
    SpeechErrorKind.NO_SPEECH_MATCH: ErrorCategory.EMPTY,
    SpeechErrorKind.SERVICE_UNAVAILABLE: ErrorCategory.TRANSIENT,
    SpeechErrorKind.NETWORK_REQUIRED: ErrorCategory.TRANSIENT,
    SpeechErrorKind.SERVICE_BUSY: ErrorCategory.TRANSIENT,
    SpeechErrorKind.UNKNOWN: ErrorCategory.TRANSIENT,
}


@dataclass(frozen=True)
class SpeechError:
    kind: SpeechErrorKind
    message: str
    code: str | None = None
    fatal: bool = False

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES[self.kind]


# code -> (kind, fatal, default message)
_PLATFORM_CODES: dict[str, tuple[SpeechErrorKind, bool, str]] = {
    "ERROR_AUDIO": (
        SpeechErrorKind.SERVICE_UNAVAILABLE,
        False,
        "Microphone is in use by another app. Please close other apps using the microphone.",
    ),
    "ERROR_CLIENT": (
        SpeechErrorKind.SERVICE_UNAVAILABLE,
        True,
        "Speech recognition failed. This may happen if the speech service is outdated "
        "or another app is using the microphone.",
    ),
    "ERROR_INSUFFICIENT_PERMISSIONS": (
        SpeechErrorKind.PERMISSION_DENIED,
        True,
        "Microphone permission not granted. Please enable microphone access in Settings.",
    ),
    "ERROR_NETWORK": (
        SpeechErrorKind.NETWORK_REQUIRED,
        False,
        "Internet connection required. Speech recognition needs an active connection.",
    ),
    "ERROR_NETWORK_TIMEOUT": (
        SpeechErrorKind.NETWORK_REQUIRED,
        False,
        "Network timeout. Please check your internet connection.",
    ),
    "ERROR_NO_MATCH": (
        SpeechErrorKind.NO_SPEECH_MATCH,
        False,
        "No speech detected. Please speak clearly.",
    ),
    "ERROR_SPEECH_TIMEOUT": (
        SpeechErrorKind.UNKNOWN,
        False,
        "No speech detected. Please speak into the microphone.",
    ),
    "ERROR_RECOGNIZER_BUSY": (
        SpeechErrorKind.SERVICE_BUSY,
        False,
        "Speech recognizer is busy. Please wait a moment and try again.",
    ),
    "ERROR_SERVER": (
        SpeechErrorKind.SERVICE_UNAVAILABLE,
        False,
        "Speech service error. Please try again later.",
    ),
    "NOT_AVAILABLE": (
        SpeechErrorKind.SERVICE_UNAVAILABLE,
        False,
        "Speech recognition is not available. Please make sure a speech service is installed and updated.",
    ),
    "PERMISSION_DENIED": (
        SpeechErrorKind.PERMISSION_DENIED,
        True,
        "User denied access to speech recognition.",
    ),
    "PERMISSION_RESTRICTED": (
        SpeechErrorKind.PERMISSION_RESTRICTED,
        True,
        "Speech recognition is restricted on this device.",
    ),
    "PERMISSION_NOT_DETERMINED": (
        SpeechErrorKind.PERMISSION_DENIED,
        False,
        "Speech recognition permission has not been granted yet.",
    ),
}


def map_platform_error(code: str | int | None, message: str | None = None) -> SpeechError | None:
    """Translate a native recognizer error into a :class:`SpeechError`.

    Returns ``None`` for the iOS cancellation code, which is emitted whenever a
    session is stopped on purpose.
    """

    if code is not None and str(code) == str(IOS_CANCELLED_CODE):
        return None

    key = str(code).upper() if code is not None else ""
    mapped = _PLATFORM_CODES.get(key)
    if mapped is None:
        text = message or f"Speech recognition error (code: {code}). Please try again."
        return SpeechError(SpeechErrorKind.UNKNOWN, text, str(code) if code is not None else None)

    kind, fatal, default_message = mapped
    return SpeechError(kind=kind, message=message or default_message, code=key, fatal=fatal)


def user_message(error: SpeechError) -> str:
    if error.kind is SpeechErrorKind.PERMISSION_DENIED:
        return "Microphone access is off. Open Settings to allow Daybook to hear you."
    if error.kind is SpeechErrorKind.PERMISSION_RESTRICTED:
        return "Speech recognition is restricted on this device. Check Screen Time or device policies in Settings."
    if error.kind is SpeechErrorKind.NETWORK_REQUIRED:
        return "Speech recognition needs an internet connection. Reconnect and try again."
    if error.kind is SpeechErrorKind.SERVICE_BUSY:
        return "The speech service is busy. Wait a moment and try again."
    return error.message


def requires_settings(error: SpeechError) -> bool:
    """Whether the UI should offer a shortcut to the OS settings screen."""

    return error.category is ErrorCategory.PERMISSION or error.code == "ERROR_CLIENT"


__all__ = [
    "IOS_CANCELLED_CODE",
    "SpeechError",
    "SpeechErrorKind",
    "map_platform_error",
    "requires_settings",
    "user_message",
]
