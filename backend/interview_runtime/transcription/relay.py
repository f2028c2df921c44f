from __future__ import annotations

import logging
from typing import Protocol

import httpx

from interview_runtime.system_metrics import increment_metric
from interview_runtime.transcription.adapter import TextSink
from runtime_core.config import HTTP_TIMEOUT_SEC, RUNTIME_API_BASE_URL
from runtime_core.state import RecognizerState

logger = logging.getLogger("interview_runtime.transcription.relay")

TRANSCRIBE_PATH = "/api/transcribe"


class SegmentRecorder(Protocol):
    """Captures short fixed-length microphone segments."""

    def start(self) -> None:
        ...

    def cancel(self) -> None:
        ...


class RelayTranscriber(Protocol):
    async def transcribe(self, payload: bytes) -> str:
        ...


class HttpRelayTranscriber:
    """Posts one audio segment to the transcription endpoint and returns its text."""

    def __init__(
        self,
        base_url: str = RUNTIME_API_BASE_URL,
        client: httpx.AsyncClient | None = None,
        timeout_sec: float = HTTP_TIMEOUT_SEC,
        mime_type: str = "audio/webm",
    ):
        self.url = f"{str(base_url or '').rstrip('/')}{TRANSCRIBE_PATH}"
        self._client = client
        self._timeout_sec = timeout_sec
        self.mime_type = mime_type

    async def transcribe(self, payload: bytes) -> str:
        files = {"audio": ("segment.webm", payload, self.mime_type)}
        if self._client is not None:
            response = await self._client.post(self.url, files=files)
        else:
            async with httpx.AsyncClient(timeout=self._timeout_sec) as client:
                response = await client.post(self.url, files=files)
        response.raise_for_status()
        body = response.json()
        return str((body or {}).get("text") or "").strip()


class SegmentedRelayRecognition:
    """
    Records short segments and relays each one to a server-side transcriber.
    A segment that fails to transcribe is skipped; the next one still goes out.
    """

    name = "relay"

    def __init__(self, recorder: SegmentRecorder, transcriber: RelayTranscriber):
        self.recorder = recorder
        self.transcriber = transcriber
        self.state = RecognizerState.STOPPED
        self._sink: TextSink | None = None
        self.sent = 0
        self.failed = 0

    def bind(self, sink: TextSink) -> None:
        self._sink = sink

    def start(self) -> None:
        if self.state == RecognizerState.RUNNING:
            return
        self.recorder.start()
        self.state = RecognizerState.RUNNING

    def suspend(self) -> None:
        if self.state == RecognizerState.STOPPED:
            return
        self.state = RecognizerState.SUSPENDED
        self._cancel_recorder()

    def resume(self) -> None:
        if self.state == RecognizerState.RUNNING:
            return
        self.state = RecognizerState.STOPPED
        self.start()

    def stop(self) -> None:
        if self.state == RecognizerState.STOPPED:
            return
        self.state = RecognizerState.STOPPED
        self._cancel_recorder()

    async def on_segment(self, payload: bytes) -> str | None:
        if self.state != RecognizerState.RUNNING or not payload:
            return None

        self.sent += 1
        increment_metric("relay_segments_sent")
        try:
            text = await self.transcriber.transcribe(payload)
        except Exception as exc:
            self.failed += 1
            increment_metric("relay_segments_failed")
            logger.warning("relay transcription failed | bytes=%s err=%s", len(payload), exc)
            return None

        text = str(text or "").strip()
        if not text:
            return None
        if self._sink is not None:
            self._sink(text, self.name)
        return text

    def _cancel_recorder(self) -> None:
        try:
            self.recorder.cancel()
        except Exception as exc:
            logger.warning("segment recorder cancel failed | err=%s", exc)
