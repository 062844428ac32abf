from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol
from uuid import uuid4

from .events import EventChannel

logger = logging.getLogger(__name__)


class SynthesisPlatform(Protocol):
    def bind(
        self,
        on_start: Callable[[str], None],
        on_done: Callable[[str], None],
        on_error: Callable[[str, str], None],
    ) -> None: ...

    def speak(self, text: str, pitch: float, rate: float, utterance_id: str) -> None: ...

    def stop(self) -> None: ...


@dataclass(frozen=True)
class SynthesisError:
    utterance_id: str
    message: str


class TextToSpeechSession:
    """Plays one utterance at a time; a new ``speak`` replaces the current one."""

    def __init__(self, platform: SynthesisPlatform) -> None:
        self._platform = platform
        self._current: str | None = None
        self.started: EventChannel[str] = EventChannel("tts.started")
        self.done: EventChannel[str] = EventChannel("tts.done")
        self.errors: EventChannel[SynthesisError] = EventChannel("tts.errors")
        platform.bind(self._on_start, self._on_done, self._on_error)

    @property
    def is_speaking(self) -> bool:
        return self._current is not None

    @property
    def current_utterance(self) -> str | None:
        return self._current

    def speak(self, text: str, *, pitch: float = 1.0, rate: float = 1.0) -> str:
        if not text or not text.strip():
            raise ValueError("text to speak must not be blank")
        if self.is_speaking:
            self.stop()

        utterance_id = uuid4().hex
        self._current = utterance_id
        try:
            self._platform.speak(text, pitch, rate, utterance_id)
        except Exception as exc:
            logger.exception("Speech synthesis failed to start")
            self._current = None
            self.errors.emit(SynthesisError(utterance_id, str(exc) or "Failed to speak text"))
        return utterance_id

    def stop(self) -> None:
        if self._current is None:
            return
        self._current = None
        try:
            self._platform.stop()
        except Exception as exc:
            logger.exception("Speech synthesis failed to stop")
            self.errors.emit(SynthesisError("", str(exc) or "Failed to stop speech"))

    def close(self) -> None:
        self.stop()
        self.started.clear()
        self.done.clear()
        self.errors.clear()

    def _on_start(self, utterance_id: str) -> None:
        if utterance_id != self._current:
            return
        self.started.emit(utterance_id)

    def _on_done(self, utterance_id: str) -> None:
        if utterance_id != self._current:
            return
        self._current = None
        self.done.emit(utterance_id)

    def _on_error(self, utterance_id: str, message: str) -> None:
        if utterance_id != self._current:
            return
        self._current = None
        logger.warning("Speech synthesis error: %s", message)
        self.errors.emit(SynthesisError(utterance_id, message or "TTS error occurred"))


__all__ = ["SynthesisError", "SynthesisPlatform", "TextToSpeechSession"]
