from __future__ import annotations

import pytest

from daybook.client.speech import TextToSpeechSession


class _FakeSynth:
    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []
        self.fail_speak = False

    def bind(self, on_start, on_done, on_error) -> None:
        self.on_start = on_start
        self.on_done = on_done
        self.on_error = on_error

    def speak(self, text: str, pitch: float, rate: float, utterance_id: str) -> None:
        if self.fail_speak:
            raise RuntimeError("engine missing")
        self.calls.append(("speak", text, utterance_id))

    def stop(self) -> None:
        self.calls.append(("stop",))


def test_speak_then_done_emits_once() -> None:
    platform = _FakeSynth()
    session = TextToSpeechSession(platform)
    done: list[str] = []
    started: list[str] = []
    session.done.subscribe(done.append)
    session.started.subscribe(started.append)

    uid = session.speak("Hello there")
    platform.on_start(uid)
    platform.on_done(uid)
    platform.on_done(uid)

    assert started == [uid]
    assert done == [uid]
    assert not session.is_speaking


def test_new_utterance_stops_the_previous_one_first() -> None:
    platform = _FakeSynth()
    session = TextToSpeechSession(platform)
    done: list[str] = []
    session.done.subscribe(done.append)

    first = session.speak("first")
    second = session.speak("second")

    assert [call[0] for call in platform.calls] == ["speak", "stop", "speak"]
    assert session.current_utterance == second

    platform.on_done(first)
    assert done == []
    platform.on_done(second)
    assert done == [second]


def test_stop_while_idle_is_a_noop() -> None:
    platform = _FakeSynth()
    session = TextToSpeechSession(platform)

    session.stop()

    assert platform.calls == []


def test_stop_suppresses_late_events() -> None:
    platform = _FakeSynth()
    session = TextToSpeechSession(platform)
    done: list[str] = []
    errors = []
    session.done.subscribe(done.append)
    session.errors.subscribe(errors.append)

    uid = session.speak("Hello")
    session.stop()
    platform.on_done(uid)
    platform.on_error(uid, "interrupted")

    assert done == []
    assert errors == []


def test_platform_error_is_published() -> None:
    platform = _FakeSynth()
    session = TextToSpeechSession(platform)
    errors = []
    session.errors.subscribe(errors.append)

    uid = session.speak("Hello")
    platform.on_error(uid, "")

    assert errors[0].utterance_id == uid
    assert errors[0].message == "TTS error occurred"
    assert not session.is_speaking


def test_speak_failure_is_published() -> None:
    platform = _FakeSynth()
    platform.fail_speak = True
    session = TextToSpeechSession(platform)
    errors = []
    session.errors.subscribe(errors.append)

    uid = session.speak("Hello")

    assert errors[0].utterance_id == uid
    assert errors[0].message == "engine missing"
    assert not session.is_speaking


def test_blank_text_is_rejected() -> None:
    session = TextToSpeechSession(_FakeSynth())

    with pytest.raises(ValueError):
        session.speak("   ")
