from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Awaitable, Callable

from interview_runtime.attempts.models import ROLE_ASSISTANT, ROLE_USER, AttemptConfig, TranscriptTurn
from interview_runtime.errors import AttemptLockedError, AttemptsExhaustedError, SessionError
from interview_runtime.proctoring.detectors import select_detector
from interview_runtime.proctoring.monitor import FrameSource, ProctorCheck, ProctoringMonitor
from interview_runtime.session.gateway import RuntimeGateway
from interview_runtime.session.registry import SessionRegistry, session_registry
from interview_runtime.session.replies import OPENING_LINE, local_reply
from interview_runtime.system_metrics import decrement_metric, increment_metric
from interview_runtime.transcription.adapter import TranscriptionAdapter
from interview_runtime.turn_taking.coordinator import SpeechSynthesizer, TurnTakingCoordinator
from interview_runtime.uploads.http_uploader import HttpChunkUploader
from interview_runtime.uploads.models import MediaChunk
from interview_runtime.uploads.queue import ChunkUploader, ChunkUploadQueue
from interview_runtime.uploads.recorder_feed import RecorderFeed
from runtime_core.config import TRANSCRIPT_SAVE_RETRIES
from runtime_core.logger import log_event
from runtime_core.state import AttemptStatus, InteractionMode, ProctorStatus

logger = logging.getLogger("interview_runtime.session.orchestrator")

PHASE_PENDING = "pending"
PHASE_RUNNING = "running"
PHASE_COMPLETED = "completed"
PHASE_REFUSED = "refused"


def recording_attempt_id(token: str, started_at_ms: int) -> str:
    """Id the recording chunks are filed under: attempt_<token>_<epoch ms at start>."""
    return f"attempt_{str(token or '').strip() or 'anonymous'}_{int(started_at_ms)}"


class SessionOrchestrator:
    """
    One candidate attempt, start to finish.

    Owns the transcript (single writer), the interview clock and the
    background tasks. Policy errors refuse the start; everything else
    degrades and the interview carries on.
    """

    def __init__(
        self,
        token: str,
        gateway: RuntimeGateway | None = None,
        *,
        synthesizer: SpeechSynthesizer | None = None,
        adapter: TranscriptionAdapter | None = None,
        frame_source: FrameSource | None = None,
        detector_factory=select_detector,
        uploader: ChunkUploader | None = None,
        registry: SessionRegistry = session_registry,
        clock: Callable[[], float] = time.monotonic,
        tick_sec: float = 1.0,
        save_retries: int = TRANSCRIPT_SAVE_RETRIES,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        session_id: str | None = None,
    ):
        self.token = str(token or "").strip()
        self.session_id = session_id or uuid.uuid4().hex
        self.gateway = gateway or RuntimeGateway()
        self.synthesizer = synthesizer
        self.frame_source = frame_source
        self.registry = registry
        self._detector_factory = detector_factory
        self._uploader = uploader
        self._clock = clock
        self._tick_sec = max(0.01, float(tick_sec))
        self._save_retries = max(0, int(save_retries))
        self._sleep = sleep

        self.coordinator = TurnTakingCoordinator(self.session_id, adapter)
        self.config: AttemptConfig | None = None
        self.transcript: list[TranscriptTurn] = []
        self.monitor: ProctoringMonitor | None = None
        self.upload_queue: ChunkUploadQueue | None = None
        self.recorder_feed: RecorderFeed | None = None

        self.phase = PHASE_PENDING
        self.terminal_message = ""
        self.end_reason = ""
        self.attempt_number: int | None = None
        self.recording_id: str | None = None
        self.proctor_status: ProctorStatus | None = None
        self.degraded: set[str] = set()
        self.started_at: float | None = None

        self.stop_event = asyncio.Event()
        self.tasks: list[asyncio.Task] = []
        self._turn_lock = asyncio.Lock()

    # -------------------------
    # PROPERTIES
    # -------------------------

    @property
    def ended(self) -> bool:
        return self.phase in {PHASE_COMPLETED, PHASE_REFUSED}

    @property
    def voice_enabled(self) -> bool:
        return bool(self.config) and self.config.interaction_mode != InteractionMode.TEXT_ONLY.value

    def remaining_seconds(self) -> int | None:
        if self.config is None or self.config.duration_sec <= 0 or self.started_at is None:
            return None
        return max(0, int(self.config.duration_sec - (self._clock() - self.started_at)))

    def create_task(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self.tasks.append(task)
        return task

    # -------------------------
    # LIFECYCLE
    # -------------------------

    async def start(self) -> bool:
        if self.phase != PHASE_PENDING:
            return self.phase == PHASE_RUNNING

        try:
            self.config = await self.gateway.get_attempt_config(self.token)
        except SessionError as exc:
            self._refuse(exc.message)
            return False
        if self.config.attempts_exhausted:
            self._refuse(AttemptsExhaustedError().message)
            return False

        self.phase = PHASE_RUNNING
        self.started_at = self._clock()
        self.recording_id = recording_attempt_id(self.token, int(time.time() * 1000))
        self.registry.register(self.session_id, self, token=self.token)
        increment_metric("sessions_active")
        log_event(
            "session",
            "started",
            self.session_id,
            interview_id=self.config.interview_id,
            attempts_used=self.config.attempts_used,
            attempts_allowed=self.config.attempts_allowed,
            mode=self.config.interaction_mode,
            recording_id=self.recording_id,
        )

        try:
            await self.gateway.update_status(self.token, AttemptStatus.IN_PROGRESS.value)
        except SessionError as exc:
            logger.warning("status update failed | session=%s err=%s", self.session_id, exc.message)

        self._start_uploads()
        self._start_proctoring()
        self._start_listening()
        self.create_task(self._clock_loop())

        await self._bot_turn("")
        return True

    def _refuse(self, message: str) -> None:
        self.phase = PHASE_REFUSED
        self.terminal_message = message
        increment_metric("sessions_refused")
        log_event("session", "refused", self.session_id, level=logging.WARNING, reason=message)

    def _start_uploads(self) -> None:
        uploader = self._uploader or HttpChunkUploader(self.recording_id, self.config.interview_id)
        self.upload_queue = ChunkUploadQueue(uploader, attempt_id=self.recording_id)
        self.recorder_feed = RecorderFeed(self.upload_queue)

    def _start_proctoring(self) -> None:
        if self.frame_source is None:
            self.degraded.add("camera_unavailable")
            return
        self.monitor = ProctoringMonitor(
            self.frame_source,
            self.session_id,
            detector_factory=self._detector_factory,
            listener=self._on_proctor_check,
        )
        self.tasks.append(self.monitor.start())

    def _start_listening(self) -> None:
        if not self.voice_enabled:
            return
        adapter = self.coordinator.adapter
        if adapter is None:
            self.degraded.add("recognizer_unavailable")
            return
        self.coordinator.start_listening()
        drive = getattr(adapter.strategy, "drive", None)
        if drive is not None:
            self.create_task(drive(self.stop_event))

    async def _clock_loop(self) -> None:
        while not self.stop_event.is_set():
            remaining = self.remaining_seconds()
            if remaining is not None and remaining <= 0:
                await self.end("timer")
                return
            try:
                await asyncio.wait_for(self.stop_event.wait(), timeout=self._tick_sec)
            except asyncio.TimeoutError:
                continue

    async def end(self, reason: str = "explicit") -> int | None:
        """Idempotent. Stops listening and proctoring, disables uploads, persists the transcript."""
        if self.phase != PHASE_RUNNING:
            return self.attempt_number
        self.phase = PHASE_COMPLETED
        self.end_reason = reason
        self.stop_event.set()

        self.coordinator.end()
        if self.monitor is not None:
            await self.monitor.stop()
        if self.upload_queue is not None:
            self.upload_queue.disable()

        self.attempt_number = await self._save_transcript()
        try:
            await self.gateway.update_status(self.token, AttemptStatus.COMPLETED.value)
        except SessionError as exc:
            logger.warning("status update failed | session=%s err=%s", self.session_id, exc.message)

        current = asyncio.current_task()
        pending = [task for task in self.tasks if task is not current]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        self.registry.mark_inactive(self.session_id)
        decrement_metric("sessions_active")
        increment_metric("sessions_completed")
        log_event(
            "session",
            "completed",
            self.session_id,
            reason=reason,
            turns=len(self.transcript),
            attempt_number=self.attempt_number,
            proctor_status=self.proctor_status.value if self.proctor_status else None,
        )
        return self.attempt_number

    async def drain_uploads(self) -> None:
        if self.upload_queue is not None:
            await self.upload_queue.drain()

    # -------------------------
    # CONVERSATION
    # -------------------------

    def on_media_chunk(self, payload: bytes, captured_at_ms: int | None = None) -> MediaChunk | None:
        if self.recorder_feed is None:
            return None
        return self.recorder_feed.on_data(payload, captured_at_ms)

    def set_muted(self, muted: bool) -> None:
        self.coordinator.set_muted(muted)

    async def submit(self, typed: str = "") -> str | None:
        """Send buffered recognition text plus typed text as one candidate turn."""
        if self.phase != PHASE_RUNNING:
            return None
        adapter = self.coordinator.adapter
        text = adapter.compose(typed) if adapter is not None else str(typed or "").strip()
        if not text:
            return None

        self.registry.touch(self.session_id)
        self._append(ROLE_USER, text)
        return await self._bot_turn(text)

    async def _bot_turn(self, user_text: str) -> str | None:
        async with self._turn_lock:
            history = self.transcript[:-1] if user_text else list(self.transcript)
            try:
                reply = await self.gateway.chat_turn(self.config, history, user_text, self.remaining_seconds())
            except Exception as exc:
                increment_metric("chat_fallback_replies")
                logger.warning("chat turn failed, using local reply | session=%s err=%s", self.session_id, exc)
                reply = local_reply(user_text) if user_text else OPENING_LINE

            if self.phase != PHASE_RUNNING:
                return None
            self._append(ROLE_ASSISTANT, reply)

        if self.voice_enabled and self.synthesizer is not None:
            await self.coordinator.speak(reply, self.synthesizer)
        return reply

    def _append(self, role: str, text: str) -> None:
        self.transcript.append(TranscriptTurn(role=role, text=text))

    # -------------------------
    # PERSISTENCE
    # -------------------------

    async def _save_transcript(self) -> int | None:
        turns = list(self.transcript)
        if not turns:
            return None

        force_new = False
        failures = 0
        while True:
            try:
                return await self.gateway.save_transcript(self.token, turns, force_new_attempt=force_new)
            except AttemptLockedError:
                if force_new:
                    logger.error("transcript save rejected twice | session=%s", self.session_id)
                    return None
                # the latest attempt belongs to an earlier session
                force_new = True
            except AttemptsExhaustedError as exc:
                self.terminal_message = exc.message
                logger.error("transcript save refused | session=%s err=%s", self.session_id, exc.message)
                return None
            except SessionError as exc:
                failures += 1
                logger.warning(
                    "transcript save failed | session=%s try=%s err=%s", self.session_id, failures, exc.message
                )
                if failures > self._save_retries:
                    return None
                await self._sleep(0.5 * failures)

    # -------------------------
    # PROCTORING
    # -------------------------

    def _on_proctor_check(self, check: ProctorCheck) -> None:
        self.proctor_status = check.status
        if check.status == ProctorStatus.DETECTOR_FAILED:
            self.degraded.add("detector_failed")
        if check.status == ProctorStatus.BASELINE_CAPTURED and self.monitor is not None:
            snapshot = self.monitor.baseline_snapshot
            if snapshot:
                self.create_task(self._upload_photo(snapshot))

    async def _upload_photo(self, image: bytes) -> None:
        try:
            await self.gateway.upload_proctor_photo(self.token, image)
        except SessionError as exc:
            logger.warning("proctor photo upload failed | session=%s err=%s", self.session_id, exc.message)
