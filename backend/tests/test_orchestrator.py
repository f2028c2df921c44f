import asyncio

import numpy as np
import pytest

from interview_runtime.attempts.models import AttemptConfig
from interview_runtime.errors import AttemptLockedError, GatewayError, InvalidTokenError
from interview_runtime.session.orchestrator import SessionOrchestrator, recording_attempt_id
from interview_runtime.session.registry import SessionRegistry
from interview_runtime.transcription.adapter import TranscriptionAdapter
from interview_runtime.uploads.http_uploader import HttpChunkUploader
from interview_runtime.uploads.models import MediaChunk
from runtime_core.state import ProctorStatus, RecognizerState, TurnTakingState


def _payload(**overrides) -> dict:
    interview = {
        "id": "iv-1",
        "title": "Backend Engineer",
        "durationMinutes": 0,
        "interactionMode": "TEXT_ONLY",
        "skills": ["Communication"],
    }
    interview.update(overrides.pop("interview", {}))
    payload = {"candidateId": "c-1", "attemptsAllowed": 2, "attemptsUsed": 0, "interview": interview}
    payload.update(overrides)
    return payload


class FakeGateway:
    def __init__(self, payload=None, replies=None, saves=None, config_error=None):
        self.payload = payload or _payload()
        self.replies = list(replies or [])
        self.saves = list(saves or [])
        self.config_error = config_error
        self.chat_calls: list[dict] = []
        self.save_calls: list[dict] = []
        self.statuses: list[str] = []
        self.photos: list[bytes] = []

    async def get_attempt_config(self, token):
        if self.config_error is not None:
            raise self.config_error
        return AttemptConfig.from_payload(token, self.payload)

    async def chat_turn(self, config, history, user_text, remaining_seconds=None):
        self.chat_calls.append({"history": [t.text for t in history], "user_text": user_text})
        reply = self.replies.pop(0) if self.replies else f"Follow-up {len(self.chat_calls)}"
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def save_transcript(self, token, turns, force_new_attempt=False):
        self.save_calls.append({"turns": len(turns), "force": force_new_attempt})
        outcome = self.saves.pop(0) if self.saves else (2 if force_new_attempt else 1)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def update_status(self, token, status):
        self.statuses.append(status)
        return {"ok": True, "status": status}

    async def upload_proctor_photo(self, token, image, mime_type="image/jpeg"):
        self.photos.append(image)
        return 1


class FakeUploader:
    def __init__(self):
        self.seqs: list[int] = []

    async def upload(self, chunk):
        self.seqs.append(chunk.seq)
        return {"ok": True}


async def _no_sleep(_delay):
    return None


def _orchestrator(gateway, **kwargs) -> SessionOrchestrator:
    kwargs.setdefault("registry", SessionRegistry())
    kwargs.setdefault("uploader", FakeUploader())
    kwargs.setdefault("sleep", _no_sleep)
    return SessionOrchestrator("tok-1", gateway, **kwargs)


@pytest.mark.asyncio
async def test_exhausted_attempts_refuse_to_start():
    gateway = FakeGateway(payload=_payload(attemptsAllowed=1, attemptsUsed=1))
    registry = SessionRegistry()
    session = _orchestrator(gateway, registry=registry)

    assert await session.start() is False
    assert session.phase == "refused"
    assert "Attempts exhausted" in session.terminal_message
    assert gateway.chat_calls == []
    assert registry.active_count() == 0


@pytest.mark.asyncio
async def test_invalid_token_refuses_with_message():
    session = _orchestrator(FakeGateway(config_error=InvalidTokenError()))
    assert await session.start() is False
    assert "invalid" in session.terminal_message


@pytest.mark.asyncio
async def test_text_interview_round_trip():
    gateway = FakeGateway(replies=["Tell me about yourself.", "What did you learn?"])
    registry = SessionRegistry()
    session = _orchestrator(gateway, registry=registry)

    assert await session.start() is True
    assert registry.active_count() == 1
    assert gateway.statuses == ["IN_PROGRESS"]
    assert "camera_unavailable" in session.degraded

    reply = await session.submit("  I build payment systems.  ")
    assert reply == "What did you learn?"
    assert gateway.chat_calls[1] == {"history": ["Tell me about yourself."], "user_text": "I build payment systems."}
    assert [(t.role, t.text) for t in session.transcript] == [
        ("assistant", "Tell me about yourself."),
        ("user", "I build payment systems."),
        ("assistant", "What did you learn?"),
    ]

    assert await session.end() == 1
    assert await session.end() == 1
    assert gateway.save_calls == [{"turns": 3, "force": False}]
    assert gateway.statuses == ["IN_PROGRESS", "COMPLETED"]
    assert registry.active_count() == 0
    assert await session.submit("late") is None


@pytest.mark.asyncio
async def test_chat_failure_uses_local_reply():
    gateway = FakeGateway(replies=[GatewayError("down"), GatewayError("down")])
    session = _orchestrator(gateway)

    await session.start()
    reply = await session.submit("I have five years of experience")

    assert session.transcript[0].text == "Hi! Can you walk me through a recent project?"
    assert reply == "What was your most impactful contribution?"
    await session.end()


@pytest.mark.asyncio
async def test_locked_attempt_is_saved_as_a_new_attempt():
    gateway = FakeGateway(saves=[AttemptLockedError(), 2])
    session = _orchestrator(gateway)

    await session.start()
    assert await session.end() == 2
    assert gateway.save_calls == [{"turns": 1, "force": False}, {"turns": 1, "force": True}]


@pytest.mark.asyncio
async def test_transient_save_failures_are_retried():
    delays: list[float] = []

    async def _sleep(delay):
        delays.append(delay)

    gateway = FakeGateway(saves=[GatewayError("503"), GatewayError("503"), 1])
    session = _orchestrator(gateway, sleep=_sleep, save_retries=2)

    await session.start()
    assert await session.end() == 1
    assert len(gateway.save_calls) == 3
    assert delays == [0.5, 1.0]


@pytest.mark.asyncio
async def test_timer_expiry_ends_the_session():
    now = [0.0]
    gateway = FakeGateway(payload=_payload(interview={"durationMinutes": 1}))
    session = _orchestrator(gateway, clock=lambda: now[0], tick_sec=0.01)

    await session.start()
    assert session.remaining_seconds() == 60
    now[0] = 61.0
    for _ in range(100):
        if session.ended:
            break
        await asyncio.sleep(0.01)

    assert session.phase == "completed"
    assert session.end_reason == "timer"
    assert gateway.statuses[-1] == "COMPLETED"


class _Strategy:
    name = "fake"

    def __init__(self):
        self.state = RecognizerState.STOPPED
        self.sink = None

    def bind(self, sink):
        self.sink = sink

    def start(self):
        self.state = RecognizerState.RUNNING

    def suspend(self):
        self.state = RecognizerState.SUSPENDED

    def resume(self):
        self.state = RecognizerState.RUNNING

    def stop(self):
        self.state = RecognizerState.STOPPED


class _Synth:
    def __init__(self):
        self.spoken: list[str] = []

    async def speak(self, text):
        self.spoken.append(text)

    def cancel(self):
        pass


@pytest.mark.asyncio
async def test_voice_interview_listens_between_bot_turns():
    strategy = _Strategy()
    synth = _Synth()
    gateway = FakeGateway(payload=_payload(interview={"interactionMode": "VOICE"}), replies=["Hello!", "Thanks."])
    session = _orchestrator(gateway, adapter=TranscriptionAdapter(strategy), synthesizer=synth)

    await session.start()
    assert synth.spoken == ["Hello!"]
    assert session.coordinator.state == TurnTakingState.LISTENING

    strategy.sink("I am ready", "fake")
    assert await session.submit() == "Thanks."
    assert session.transcript[1].text == "I am ready"
    assert synth.spoken == ["Hello!", "Thanks."]

    await session.end()
    assert strategy.state == RecognizerState.STOPPED


@pytest.mark.asyncio
async def test_voice_without_recognizer_is_degraded_not_blocked():
    gateway = FakeGateway(payload=_payload(interview={"interactionMode": "VOICE"}))
    session = _orchestrator(gateway)

    assert await session.start() is True
    assert "recognizer_unavailable" in session.degraded
    assert await session.submit("typed answer") is not None
    await session.end()


class _Frames:
    async def read_frame(self):
        frame = np.zeros((120, 160, 3), dtype=np.uint8)
        frame[10:70, 10:70] = 128
        return frame


class _Detector:
    name = "native"

    def detect(self, frame):
        return [(10, 10, 60, 60)]


@pytest.mark.asyncio
async def test_baseline_photo_is_uploaded_once():
    async def _factory():
        return _Detector()

    gateway = FakeGateway()
    session = _orchestrator(gateway, frame_source=_Frames(), detector_factory=_factory)

    await session.start()
    for _ in range(100):
        if gateway.photos:
            break
        await asyncio.sleep(0.01)

    assert len(gateway.photos) == 1
    assert session.proctor_status == ProctorStatus.BASELINE_CAPTURED
    await session.end()
    assert session.monitor.running is False


@pytest.mark.asyncio
async def test_media_chunks_upload_until_the_session_ends():
    uploader = FakeUploader()
    session = _orchestrator(FakeGateway(), uploader=uploader)

    await session.start()
    session.on_media_chunk(b"one")
    session.on_media_chunk(b"two")
    await session.drain_uploads()
    await session.end()
    session.on_media_chunk(b"three")
    await session.drain_uploads()

    assert uploader.seqs == [1, 2]
    assert session.recording_id.startswith("attempt_tok-1_")
    assert session.upload_queue.attempt_id == session.recording_id


@pytest.mark.asyncio
async def test_default_uploader_files_chunks_under_the_candidate_attempt():
    session = _orchestrator(FakeGateway(), uploader=None)

    await session.start()
    uploader = session.upload_queue.uploader
    await session.end()

    assert isinstance(uploader, HttpChunkUploader)
    assert uploader.attempt_id == session.recording_id
    assert uploader.interview_id == "iv-1"
    assert uploader._form_fields(MediaChunk(seq=1, payload=b"x"))["attemptId"].startswith("attempt_tok-1_")


def test_recording_attempt_id_format():
    assert recording_attempt_id(" tok-9 ", 1_700_000_000_000) == "attempt_tok-9_1700000000000"
    assert recording_attempt_id("", 5) == "attempt_anonymous_5"
