from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Protocol

from interview_runtime.system_metrics import increment_metric
from interview_runtime.transcription.adapter import TextSink
from runtime_core.config import (
    RECENT_FINALIZE_GRACE_SEC,
    RECOGNIZER_IDLE_RESTART_SEC,
    RECOGNIZER_MAX_RUN_SEC,
    SILENCE_FINALIZE_SEC,
)
from runtime_core.state import RecognizerState

logger = logging.getLogger("interview_runtime.transcription.continuous")


class Recognizer(Protocol):
    """Streaming speech recognizer that periodically ends on its own."""

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


class ContinuousRecognition:
    """
    Streaming recognition with silence-inferred finalization.

    Time is always passed in, so the silence timer and the watchdog are
    plain transitions: on_result / on_end / on_error feed events, tick
    advances the clock. drive() is the asyncio loop that calls tick.
    """

    name = "continuous"

    def __init__(
        self,
        recognizer: Recognizer,
        *,
        silence_sec: float = SILENCE_FINALIZE_SEC,
        idle_restart_sec: float = RECOGNIZER_IDLE_RESTART_SEC,
        max_run_sec: float = RECOGNIZER_MAX_RUN_SEC,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.recognizer = recognizer
        self.silence_sec = float(silence_sec)
        self.idle_restart_sec = float(idle_restart_sec)
        self.max_run_sec = float(max_run_sec)
        self._clock = clock
        self._sink: TextSink | None = None

        self.state = RecognizerState.STOPPED
        self.interim = ""
        self._pending_final = ""
        self._silence_deadline: float | None = None
        self._last_event_at = 0.0
        self._run_started_at = 0.0
        self._recent_finalized_at = float("-inf")
        self.restarts = 0

    def bind(self, sink: TextSink) -> None:
        self._sink = sink

    # -------------------------
    # STRATEGY API (COORDINATOR)
    # -------------------------

    def start(self, now: float | None = None) -> None:
        if self.state == RecognizerState.RUNNING:
            return
        ts = self._now(now)
        self._reset_buffers()
        self._start_recognizer()
        self.state = RecognizerState.RUNNING
        self._last_event_at = ts
        self._run_started_at = ts

    def suspend(self) -> None:
        if self.state == RecognizerState.STOPPED:
            return
        self.state = RecognizerState.SUSPENDED
        self._stop_recognizer()
        self._reset_buffers()

    def resume(self, now: float | None = None) -> None:
        if self.state == RecognizerState.RUNNING:
            return
        self.state = RecognizerState.STOPPED
        self.start(now)

    def stop(self) -> None:
        if self.state == RecognizerState.STOPPED:
            return
        self.state = RecognizerState.STOPPED
        self._stop_recognizer()
        self._reset_buffers()

    # -------------------------
    # RECOGNIZER EVENTS
    # -------------------------

    def on_activity(self, now: float | None = None) -> None:
        """audio/sound/speech start and no-match events only refresh the watchdog."""
        if self.state == RecognizerState.RUNNING:
            self._last_event_at = self._now(now)

    def on_result(self, text: str, is_final: bool, now: float | None = None) -> None:
        if self.state != RecognizerState.RUNNING:
            return
        ts = self._now(now)
        fragment = str(text or "").strip()
        if is_final:
            if fragment:
                self._pending_final = f"{self._pending_final} {fragment}".strip() if self._pending_final else fragment
            self.interim = ""
        elif fragment:
            self.interim = fragment
        self._last_event_at = ts
        self._silence_deadline = ts + self.silence_sec

    def on_end(self, now: float | None = None) -> None:
        """The recognizer ended by itself; keep what it finalized and start it again."""
        if self.state != RecognizerState.RUNNING:
            return
        ts = self._now(now)
        if ts - self._recent_finalized_at > RECENT_FINALIZE_GRACE_SEC:
            pending = self._pending_final.strip()
            if pending:
                self._pending_final = ""
                self.interim = ""
                self._emit(pending)
        self._silence_deadline = None
        self._start_recognizer()
        self._run_started_at = ts
        self._last_event_at = ts

    def on_error(self, now: float | None = None) -> None:
        if self.state != RecognizerState.RUNNING:
            return
        self._restart("error", self._now(now))

    # -------------------------
    # TIME PROGRESSION
    # -------------------------

    def tick(self, now: float | None = None) -> str | None:
        """
        Advance timers. Returns the name of the transition taken, if any:
        "finalized", "restart_idle" or "restart_max_run".
        """
        if self.state != RecognizerState.RUNNING:
            return None
        ts = self._now(now)

        if self._silence_deadline is not None and ts >= self._silence_deadline:
            self._silence_deadline = None
            if self._finalize(ts):
                return "finalized"

        if ts - self._last_event_at > self.idle_restart_sec:
            self._restart("idle", ts)
            return "restart_idle"
        if ts - self._run_started_at > self.max_run_sec:
            self._restart("max_run", ts)
            return "restart_max_run"
        return None

    async def drive(self, stop_event: asyncio.Event, interval_sec: float = 0.05) -> None:
        while not stop_event.is_set():
            try:
                self.tick()
            except Exception as exc:
                logger.warning("recognition tick failed | err=%s", exc)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_sec)
            except asyncio.TimeoutError:
                continue

    # -------------------------
    # INTERNALS
    # -------------------------

    def _finalize(self, ts: float) -> bool:
        text = f"{self._pending_final} {self.interim}".strip()
        self._pending_final = ""
        self.interim = ""
        if not text:
            return False
        self._emit(text)
        self._recent_finalized_at = ts
        return True

    def _emit(self, text: str) -> None:
        if self._sink is not None:
            self._sink(text, self.name)

    def _restart(self, reason: str, ts: float) -> None:
        self.restarts += 1
        increment_metric("recognizer_restarts")
        logger.info("recognizer restart | reason=%s", reason)
        self._stop_recognizer()
        self._start_recognizer()
        self._last_event_at = ts
        self._run_started_at = ts

    def _start_recognizer(self) -> None:
        try:
            self.recognizer.start()
        except Exception as exc:
            logger.warning("recognizer start failed | err=%s", exc)

    def _stop_recognizer(self) -> None:
        try:
            self.recognizer.stop()
        except Exception as exc:
            logger.warning("recognizer stop failed | err=%s", exc)

    def _reset_buffers(self) -> None:
        self.interim = ""
        self._pending_final = ""
        self._silence_deadline = None

    def _now(self, now: float | None) -> float:
        return float(now) if now is not None else float(self._clock())
