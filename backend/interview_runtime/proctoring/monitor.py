from __future__ import annotations

import asyncio
import logging
import random
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Protocol

import cv2
import numpy as np

from interview_runtime.proctoring.descriptor import face_descriptor, largest_face, mean_abs_diff
from interview_runtime.proctoring.detectors import DETECTOR_UNAVAILABLE, FaceDetector, select_detector
from interview_runtime.system_metrics import increment_metric
from runtime_core.config import (
    PROCTOR_GRID_SIZE,
    PROCTOR_MAX_INTERVAL_SEC,
    PROCTOR_MIN_INTERVAL_SEC,
    PROCTOR_MISMATCH_THRESHOLD,
)
from runtime_core.logger import log_event
from runtime_core.state import ProctorStatus

logger = logging.getLogger("interview_runtime.proctoring")

# recent checks kept for inspection; older ones only count toward `checks`
HISTORY_LIMIT = 50


class FrameSource(Protocol):
    async def read_frame(self) -> np.ndarray | None:
        ...


@dataclass
class ProctorCheck:
    status: ProctorStatus
    faces: int = 0
    difference: float | None = None
    at: float = field(default_factory=time.time)


StatusListener = Callable[[ProctorCheck], None]
DetectorFactory = Callable[[], Awaitable[FaceDetector]]


class ProctoringMonitor:
    """
    Advisory identity check on a randomized schedule.

    One immediate check after the detector loads, then one every
    min..max seconds. The first single-face sample becomes the baseline;
    later samples are compared against it. Never ends the interview.
    """

    def __init__(
        self,
        frame_source: FrameSource,
        session_id: str = "",
        *,
        detector_factory: DetectorFactory = select_detector,
        listener: StatusListener | None = None,
        min_interval_sec: float = PROCTOR_MIN_INTERVAL_SEC,
        max_interval_sec: float = PROCTOR_MAX_INTERVAL_SEC,
        threshold: float = PROCTOR_MISMATCH_THRESHOLD,
        grid_size: int = PROCTOR_GRID_SIZE,
        rng: Callable[[], float] = random.random,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.frame_source = frame_source
        self.session_id = str(session_id or "")
        self.listener = listener
        self.min_interval_sec = float(min_interval_sec)
        self.max_interval_sec = max(self.min_interval_sec, float(max_interval_sec))
        self.threshold = float(threshold)
        self.grid_size = int(grid_size)
        self._detector_factory = detector_factory
        self._rng = rng
        self._sleep = sleep

        self.detector: FaceDetector | None = None
        self.status = ProctorStatus.STARTING
        self.baseline: np.ndarray | None = None
        self.baseline_snapshot: bytes | None = None
        self.history: deque[ProctorCheck] = deque(maxlen=HISTORY_LIMIT)
        self.checks = 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        self._task = asyncio.create_task(self._run())
        return self._task

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self.baseline = None

    def next_delay(self) -> float:
        return self.min_interval_sec + self._rng() * (self.max_interval_sec - self.min_interval_sec)

    async def _run(self) -> None:
        self._set_status(ProctorCheck(ProctorStatus.STARTING))
        try:
            self.detector = await self._detector_factory()
        except Exception as exc:
            logger.warning("detector init failed | session=%s err=%s", self.session_id, exc)
            self.detector = None

        if self.detector is None or getattr(self.detector, "name", "") == DETECTOR_UNAVAILABLE:
            increment_metric("proctor_detector_failures")
            self._set_status(ProctorCheck(ProctorStatus.DETECTOR_FAILED))
            return

        log_event("proctoring", "detector_ready", self.session_id, detector=getattr(self.detector, "name", "?"))
        while True:
            try:
                await self.check_once()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("proctor check failed | session=%s err=%s", self.session_id, exc)
            await self._sleep(self.next_delay())

    async def check_once(self) -> ProctorCheck | None:
        if self.detector is None:
            return None
        frame = await self.frame_source.read_frame()
        if frame is None or getattr(frame, "size", 0) == 0:
            return None
        faces = await asyncio.to_thread(self.detector.detect, frame)
        check = self.evaluate(frame, faces)
        self._set_status(check)
        return check

    def evaluate(self, frame: np.ndarray, faces: list) -> ProctorCheck:
        increment_metric("proctor_checks")
        if not faces:
            return ProctorCheck(ProctorStatus.NO_FACE, faces=0)
        if len(faces) > 1:
            return ProctorCheck(ProctorStatus.MULTIPLE_PERSONS, faces=len(faces))

        box = largest_face(faces)
        vector = face_descriptor(frame, box, self.grid_size)
        if vector is None:
            return ProctorCheck(ProctorStatus.NO_FACE, faces=0)

        if self.baseline is None:
            self.baseline = vector
            self.baseline_snapshot = self._encode_snapshot(frame)
            return ProctorCheck(ProctorStatus.BASELINE_CAPTURED, faces=1)

        difference = mean_abs_diff(vector, self.baseline)
        if difference > self.threshold:
            increment_metric("proctor_mismatches")
            return ProctorCheck(ProctorStatus.FACE_MISMATCH, faces=1, difference=difference)
        return ProctorCheck(ProctorStatus.OK, faces=1, difference=difference)

    def _encode_snapshot(self, frame: np.ndarray) -> bytes | None:
        try:
            ok, encoded = cv2.imencode(".jpg", frame)
        except Exception as exc:
            logger.debug("snapshot encode failed | session=%s err=%s", self.session_id, exc)
            return None
        return encoded.tobytes() if ok else None

    def _set_status(self, check: ProctorCheck) -> None:
        changed = check.status != self.status
        self.status = check.status
        self.history.append(check)
        self.checks += 1
        if changed:
            log_event(
                "proctoring",
                "status",
                self.session_id,
                status=check.status.value,
                faces=check.faces,
                difference=None if check.difference is None else round(check.difference, 4),
            )
        if self.listener is not None:
            try:
                self.listener(check)
            except Exception as exc:
                logger.warning("proctor listener failed | session=%s err=%s", self.session_id, exc)
