from __future__ import annotations

import logging

from daybook.client.speech import EventChannel


def test_emit_reaches_every_subscriber_in_order() -> None:
    channel: EventChannel[int] = EventChannel("numbers")
    seen: list[tuple[str, int]] = []
    channel.subscribe(lambda value: seen.append(("a", value)))
    channel.subscribe(lambda value: seen.append(("b", value)))

    channel.emit(7)

    assert seen == [("a", 7), ("b", 7)]
    assert len(channel) == 2


def test_remove_is_idempotent() -> None:
    channel: EventChannel[str] = EventChannel("words")
    seen: list[str] = []
    subscription = channel.subscribe(seen.append)

    subscription.remove()
    subscription.remove()
    channel.emit("ignored")

    assert seen == []
    assert not subscription.active
    assert len(channel) == 0


def test_failing_listener_does_not_block_others(caplog) -> None:
    channel: EventChannel[str] = EventChannel("words")
    seen: list[str] = []

    def explode(_: str) -> None:
        raise RuntimeError("boom")

    channel.subscribe(explode)
    channel.subscribe(seen.append)

    with caplog.at_level(logging.ERROR):
        channel.emit("hello")

    assert seen == ["hello"]
    assert "words" in caplog.text


def test_clear_drops_listeners() -> None:
    channel: EventChannel[str] = EventChannel("words")
    seen: list[str] = []
    channel.subscribe(seen.append)

    channel.clear()
    channel.emit("late")

    assert seen == []
