from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Protocol

from interview_runtime.system_metrics import (
    decrement_metric,
    increment_metric,
    observe_upload_latency_ms,
)
from interview_runtime.uploads.models import MediaChunk
from runtime_core.config import (
    UPLOAD_BACKOFF_MULTIPLIER,
    UPLOAD_INITIAL_BACKOFF_SEC,
    UPLOAD_MAX_ATTEMPTS,
)
from runtime_core.logger import log_event

logger = logging.getLogger("interview_runtime.uploads.queue")

SleepFn = Callable[[float], Awaitable[None]]

# sequence numbers remembered for inspection; totals live in the counters
RECENT_SEQ_LIMIT = 200


class ChunkUploader(Protocol):
    async def upload(self, chunk: MediaChunk) -> dict:
        ...


class ChunkUploadQueue:
    """
    Single-worker FIFO for media chunks.

    At most one upload is in flight; the worker only advances after the
    current chunk is acknowledged or has exhausted its retries, so the
    receiver sees sequence numbers in order. Lost chunks are logged and
    skipped.
    """

    def __init__(
        self,
        uploader: ChunkUploader,
        attempt_id: str = "",
        *,
        max_attempts: int = UPLOAD_MAX_ATTEMPTS,
        initial_backoff_sec: float = UPLOAD_INITIAL_BACKOFF_SEC,
        backoff_multiplier: float = UPLOAD_BACKOFF_MULTIPLIER,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.uploader = uploader
        self.attempt_id = str(attempt_id or "")
        self.max_attempts = max(1, int(max_attempts))
        self.initial_backoff_sec = max(0.0, float(initial_backoff_sec))
        self.backoff_multiplier = max(1.0, float(backoff_multiplier))
        self._sleep = sleep
        self._pending: deque[MediaChunk] = deque()
        self._worker: asyncio.Task | None = None
        self._enabled = True
        self.in_flight = 0
        self.delivered: deque[int] = deque(maxlen=RECENT_SEQ_LIMIT)
        self.dropped: deque[int] = deque(maxlen=RECENT_SEQ_LIMIT)
        self.delivered_count = 0
        self.dropped_count = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def __len__(self) -> int:
        return len(self._pending)

    def enqueue(self, chunk: MediaChunk) -> bool:
        if chunk is None or not chunk.payload:
            return False
        if not self._enabled:
            increment_metric("chunks_rejected_disabled")
            logger.info("enqueue ignored (queue disabled) | attempt=%s seq=%s", self.attempt_id, chunk.seq)
            return False

        self._pending.append(chunk)
        increment_metric("chunks_enqueued")
        if not self.running:
            self._worker = asyncio.create_task(self._run())
        return True

    def disable(self) -> None:
        """Refuse new chunks; whatever is queued or in flight still finishes."""
        if not self._enabled:
            return
        self._enabled = False
        log_event(
            "upload_queue",
            "disabled",
            self.attempt_id,
            pending=len(self._pending),
            in_flight=self.in_flight,
        )

    async def drain(self) -> None:
        while self.running:
            await asyncio.shield(self._worker)

    async def _run(self) -> None:
        while self._pending:
            chunk = self._pending.popleft()
            await self._deliver(chunk)

    async def _deliver(self, chunk: MediaChunk) -> bool:
        backoff = self.initial_backoff_sec
        for attempt in range(1, self.max_attempts + 1):
            started = time.perf_counter()
            self.in_flight += 1
            increment_metric("uploads_in_flight")
            try:
                await self.uploader.upload(chunk)
            except Exception as exc:
                logger.warning(
                    "chunk upload attempt failed | attempt=%s seq=%s try=%s/%s source=%s err=%s",
                    self.attempt_id,
                    chunk.seq,
                    attempt,
                    self.max_attempts,
                    chunk.source,
                    exc,
                )
            else:
                observe_upload_latency_ms((time.perf_counter() - started) * 1000.0)
                increment_metric("chunks_uploaded")
                self.delivered.append(chunk.seq)
                self.delivered_count += 1
                return True
            finally:
                self.in_flight -= 1
                decrement_metric("uploads_in_flight")

            if attempt < self.max_attempts:
                increment_metric("chunk_upload_retries")
                await self._sleep(backoff)
                backoff *= self.backoff_multiplier

        increment_metric("chunks_dropped")
        self.dropped.append(chunk.seq)
        self.dropped_count += 1
        logger.error(
            "chunk dropped after retries | attempt=%s seq=%s source=%s",
            self.attempt_id,
            chunk.seq,
            chunk.source,
        )
        log_event("upload_queue", "chunk_lost", self.attempt_id, seq=chunk.seq, attempts=self.max_attempts)
        return False
