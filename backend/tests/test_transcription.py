import asyncio

import pytest

from interview_runtime.transcription.adapter import TranscriptionAdapter, build_transcription_adapter
from interview_runtime.transcription.continuous import ContinuousRecognition
from interview_runtime.transcription.relay import SegmentedRelayRecognition
from runtime_core.state import RecognizerState


class _Recognizer:
    def __init__(self):
        self.starts = 0
        self.stops = 0

    def start(self):
        self.starts += 1

    def stop(self):
        self.stops += 1


def _continuous(**kwargs):
    recognizer = _Recognizer()
    recognition = ContinuousRecognition(
        recognizer,
        silence_sec=kwargs.get("silence_sec", 1.5),
        idle_restart_sec=kwargs.get("idle_restart_sec", 8.0),
        max_run_sec=kwargs.get("max_run_sec", 55.0),
        clock=lambda: 0.0,
    )
    emitted: list[str] = []
    recognition.bind(lambda text, source: emitted.append(text))
    recognition.start(now=0.0)
    return recognition, recognizer, emitted


def test_silence_after_results_finalizes_pending_and_interim_text():
    recognition, _, emitted = _continuous()

    recognition.on_result("I worked on", is_final=True, now=1.0)
    recognition.on_result("payments", is_final=False, now=1.4)
    assert recognition.tick(now=2.0) is None
    assert recognition.tick(now=2.9) == "finalized"
    assert emitted == ["I worked on payments"]
    assert recognition.interim == ""


def test_watchdog_restarts_idle_recognizer():
    recognition, recognizer, _ = _continuous(idle_restart_sec=8.0)

    assert recognition.tick(now=5.0) is None
    recognition.on_activity(now=6.0)
    assert recognition.tick(now=13.0) is None
    assert recognition.tick(now=14.5) == "restart_idle"
    assert recognizer.stops == 1
    assert recognizer.starts == 2
    assert recognition.restarts == 1


def test_watchdog_restarts_long_running_recognizer():
    recognition, _, _ = _continuous(idle_restart_sec=100.0, max_run_sec=55.0)

    for second in range(5, 60, 5):
        recognition.on_activity(now=float(second))
        recognition.tick(now=float(second))
    assert recognition.tick(now=56.0) == "restart_max_run"


def test_self_ended_recognizer_keeps_finals_and_restarts():
    recognition, recognizer, emitted = _continuous()

    recognition.on_result("we shipped it", is_final=True, now=3.0)
    recognition.on_end(now=3.2)
    assert emitted == ["we shipped it"]
    assert recognizer.starts == 2


def test_end_right_after_finalize_does_not_duplicate_text():
    recognition, _, emitted = _continuous(silence_sec=0.5)

    recognition.on_result("hello there", is_final=True, now=1.0)
    assert recognition.tick(now=1.6) == "finalized"
    recognition.on_result("again", is_final=True, now=1.65)
    recognition.on_end(now=1.7)
    assert emitted == ["hello there"]


def test_suspend_drops_buffers_and_ignores_results():
    recognition, recognizer, emitted = _continuous()

    recognition.on_result("half a sentence", is_final=False, now=1.0)
    recognition.suspend()
    recognition.on_result("bot echo", is_final=True, now=1.2)
    assert recognition.tick(now=10.0) is None
    assert recognition.state == RecognizerState.SUSPENDED
    assert recognition.interim == ""
    assert recognizer.stops == 1
    assert emitted == []


@pytest.mark.asyncio
async def test_drive_loop_stops_on_event():
    recognition, _, _ = _continuous()
    stop_event = asyncio.Event()

    task = asyncio.create_task(recognition.drive(stop_event, interval_sec=0.01))
    await asyncio.sleep(0.03)
    stop_event.set()
    await asyncio.wait_for(task, timeout=1.0)


class _SegmentRecorder:
    def __init__(self):
        self.started = 0
        self.cancelled = 0

    def start(self):
        self.started += 1

    def cancel(self):
        self.cancelled += 1


class _Transcriber:
    def __init__(self, replies):
        self.replies = list(replies)

    async def transcribe(self, payload: bytes) -> str:
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.mark.asyncio
async def test_relay_skips_failed_segment_and_keeps_going():
    relay = SegmentedRelayRecognition(_SegmentRecorder(), _Transcriber([RuntimeError("502"), "second segment"]))
    adapter = TranscriptionAdapter(relay)
    adapter.start()

    assert await relay.on_segment(b"one") is None
    assert await relay.on_segment(b"two") == "second segment"
    assert adapter.pending_text == "second segment"
    assert (relay.sent, relay.failed) == (2, 1)


@pytest.mark.asyncio
async def test_relay_ignores_segments_while_suspended():
    recorder = _SegmentRecorder()
    relay = SegmentedRelayRecognition(recorder, _Transcriber(["should not be used"]))
    relay.start()
    relay.suspend()

    assert await relay.on_segment(b"audio") is None
    assert recorder.cancelled == 1
    relay.resume()
    assert relay.state == RecognizerState.RUNNING
    assert recorder.started == 2


def test_strategy_selection_by_speech_provider():
    relay_adapter = build_transcription_adapter(
        "azure", segment_recorder=_SegmentRecorder(), relay_transcriber=_Transcriber([])
    )
    assert relay_adapter.name == "relay"

    local_adapter = build_transcription_adapter(None, recognizer=_Recognizer())
    assert local_adapter.name == "continuous"

    assert build_transcription_adapter("RELAY") is None
    assert build_transcription_adapter("browser") is None
