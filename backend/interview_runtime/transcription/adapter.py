from __future__ import annotations

import logging
from typing import Callable, Protocol

from runtime_core.state import RecognizerState

logger = logging.getLogger("interview_runtime.transcription")

TextSink = Callable[[str, str], None]
TextGate = Callable[[str, str], bool]


class TranscriptionStrategy(Protocol):
    """Recognition back-end driven by the turn-taking coordinator."""

    name: str
    state: RecognizerState

    def bind(self, sink: TextSink) -> None:
        ...

    def start(self) -> None:
        ...

    def suspend(self) -> None:
        ...

    def resume(self) -> None:
        ...

    def stop(self) -> None:
        ...


class PendingTranscript:
    """
    Recognized text waiting for an explicit send.
    Recognition only ever appends here; compose() is the submit step.
    """

    def __init__(self):
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    def __bool__(self) -> bool:
        return bool(self._text)

    def append(self, fragment: str) -> str:
        cleaned = " ".join(str(fragment or "").split())
        if not cleaned:
            return self._text
        self._text = f"{self._text} {cleaned}".strip() if self._text else cleaned
        return self._text

    def clear(self) -> None:
        self._text = ""

    def compose(self, typed: str = "") -> str:
        buffered = self._text.strip()
        typed_text = str(typed or "").strip()
        if buffered and typed_text:
            text = buffered if buffered == typed_text else f"{buffered} {typed_text}".strip()
        else:
            text = (buffered or typed_text).strip()
        self._text = ""
        return text


class TranscriptionAdapter:
    """
    One interface over the local-continuous and segmented-relay strategies.

    Text coming out of either strategy passes the gate (the turn-taking
    coordinator) before it reaches the pending buffer.
    """

    def __init__(self, strategy: TranscriptionStrategy, buffer: PendingTranscript | None = None):
        self.strategy = strategy
        self.buffer = buffer or PendingTranscript()
        self._gate: TextGate | None = None
        self.strategy.bind(self._on_text)

    @property
    def name(self) -> str:
        return str(getattr(self.strategy, "name", self.strategy.__class__.__name__))

    @property
    def state(self) -> RecognizerState:
        return self.strategy.state

    @property
    def pending_text(self) -> str:
        return self.buffer.text

    def set_gate(self, gate: TextGate | None) -> None:
        self._gate = gate

    def start(self) -> None:
        self.strategy.start()

    def suspend(self) -> None:
        self.strategy.suspend()

    def resume(self) -> None:
        self.strategy.resume()

    def stop(self) -> None:
        self.strategy.stop()

    def compose(self, typed: str = "") -> str:
        return self.buffer.compose(typed)

    def _on_text(self, text: str, source: str) -> None:
        if self._gate is not None and not self._gate(text, source):
            return
        self.buffer.append(text)


def build_transcription_adapter(
    speech_provider: str | None,
    *,
    recognizer=None,
    segment_recorder=None,
    relay_transcriber=None,
) -> TranscriptionAdapter | None:
    """
    Pick the strategy once per session. Providers that transcribe on the
    server ("AZURE", "RELAY") use the segmented relay; everything else uses
    continuous local recognition. Returns None when the needed capability
    is missing (recognizer unavailable).
    """
    from interview_runtime.transcription.continuous import ContinuousRecognition
    from interview_runtime.transcription.relay import SegmentedRelayRecognition

    provider = str(speech_provider or "").strip().upper()
    if provider in {"AZURE", "RELAY"}:
        if segment_recorder is None or relay_transcriber is None:
            logger.warning("relay recognition unavailable | provider=%s", provider)
            return None
        return TranscriptionAdapter(SegmentedRelayRecognition(segment_recorder, relay_transcriber))

    if recognizer is None:
        logger.warning("local recognizer unavailable | provider=%s", provider or "default")
        return None
    return TranscriptionAdapter(ContinuousRecognition(recognizer))
