from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from .errors import SpeechError, SpeechErrorKind, map_platform_error
from .events import EventChannel, Subscription

logger = logging.getLogger(__name__)

ResultCallback = Callable[[str, bool], None]
ErrorCallback = Callable[[str | int | None, str | None], None]


class Recognizer(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...

    def destroy(self) -> None: ...


class RecognitionPlatform(Protocol):
    async def check_permission(self) -> bool: ...

    def create_recognizer(self, on_result: ResultCallback, on_error: ErrorCallback) -> Recognizer: ...


@dataclass(frozen=True)
class TranscriptEvent:
    transcript: str
    is_final: bool


class SpeechToTextSession:
    """Owns at most one native recognizer and turns its callbacks into events.

    Partial and final results share the ``results`` channel. The first final
    result of a session is authoritative: later results are dropped until
    :meth:`start_listening` begins a new session.
    """

    def __init__(self, platform: RecognitionPlatform) -> None:
        self._platform = platform
        self._recognizer: Recognizer | None = None
        self._listening = False
        self._transcript = ""
        self._final = False
        self._start_lock = asyncio.Lock()
        self.results: EventChannel[TranscriptEvent] = EventChannel("speech.results")
        self.errors: EventChannel[SpeechError] = EventChannel("speech.errors")

    @property
    def is_listening(self) -> bool:
        return self._listening

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def has_recognizer(self) -> bool:
        return self._recognizer is not None

    def on_result(self, callback: Callable[[TranscriptEvent], None]) -> Subscription:
        return self.results.subscribe(callback)

    def on_error(self, callback: Callable[[SpeechError], None]) -> Subscription:
        return self.errors.subscribe(callback)

    async def check_permission(self) -> bool:
        return await self._platform.check_permission()

    async def start_listening(self) -> bool:
        async with self._start_lock:
            if self._listening:
                return True

            if not await self._platform.check_permission():
                self._handle_error(
                    SpeechError(
                        SpeechErrorKind.PERMISSION_DENIED,
                        "User denied access to speech recognition.",
                        "PERMISSION_DENIED",
                        fatal=True,
                    )
                )
                return False

            self._transcript = ""
            self._final = False
            if self._recognizer is None:
                logger.info("Creating speech recognizer")
                self._recognizer = self._platform.create_recognizer(
                    self._on_platform_result,
                    self._on_platform_error,
                )

            try:
                self._recognizer.start()
            except Exception as exc:
                logger.exception("Speech recognizer failed to start")
                self._handle_error(SpeechError(SpeechErrorKind.UNKNOWN, str(exc), "START_ERROR"))
                return False

            self._listening = True
            logger.info("Speech recognition started")
            return True

    def stop_listening(self) -> str:
        if self._listening and self._recognizer is not None:
            try:
                self._recognizer.stop()
            except Exception:
                logger.exception("Speech recognizer failed to stop")
        self._listening = False
        return self._transcript

    def close(self) -> None:
        self._listening = False
        self._destroy_recognizer()
        self.results.clear()
        self.errors.clear()

    def _destroy_recognizer(self) -> None:
        recognizer, self._recognizer = self._recognizer, None
        if recognizer is None:
            return
        try:
            recognizer.destroy()
        except Exception:
            logger.exception("Destroying speech recognizer failed")

    def _on_platform_result(self, transcript: str, is_final: bool) -> None:
        if self._final:
            return
        self._transcript = transcript
        if is_final:
            self._final = True
        self.results.emit(TranscriptEvent(transcript=transcript, is_final=is_final))

    def _on_platform_error(self, code: str | int | None, message: str | None) -> None:
        error = map_platform_error(code, message)
        if error is None:
            logger.debug("Ignoring cancelled recognition task")
            return
        self._handle_error(error)

    def _handle_error(self, error: SpeechError) -> None:
        if error.kind is SpeechErrorKind.NO_SPEECH_MATCH:
            logger.debug("No speech matched; still listening")
            return

        logger.warning("Speech recognition error %s: %s", error.code, error.message)
        self._listening = False
        if error.fatal:
            self._destroy_recognizer()
        self.errors.emit(error)


__all__ = [
    "RecognitionPlatform",
    "Recognizer",
    "SpeechToTextSession",
    "TranscriptEvent",
]
