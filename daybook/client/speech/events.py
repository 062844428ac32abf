from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription:
    """Handle returned by :meth:`EventChannel.subscribe`; removing twice is harmless."""

    def __init__(self, detach: Callable[[], None]) -> None:
        self._detach: Callable[[], None] | None = detach

    @property
    def active(self) -> bool:
        return self._detach is not None

    def remove(self) -> None:
        detach, self._detach = self._detach, None
        if detach is not None:
            detach()


class EventChannel(Generic[T]):
    """Synchronous fan-out of platform events to subscribers."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._listeners: dict[int, Callable[[T], None]] = {}
        self._next_id = 0

    @property
    def name(self) -> str:
        return self._name

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        listener_id = self._next_id
        self._next_id += 1
        self._listeners[listener_id] = callback
        return Subscription(lambda: self._listeners.pop(listener_id, None))

    def emit(self, value: T) -> None:
        for callback in list(self._listeners.values()):
            try:
                callback(value)
            except Exception:
                logger.exception("Listener on %s raised", self._name)

    def clear(self) -> None:
        self._listeners.clear()


__all__ = ["EventChannel", "Subscription"]
