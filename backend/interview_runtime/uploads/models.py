from dataclasses import dataclass, field
import time


@dataclass(frozen=True)
class MediaChunk:
    """
    One recorded media segment.
    Sequence numbers are per attempt and strictly increasing.
    """
    seq: int
    payload: bytes
    captured_at_ms: int = field(default_factory=lambda: int(time.time() * 1000))
    source: str = "InterviewRecorder"
    mime_type: str = "video/webm"

    @property
    def filename(self) -> str:
        return f"chunk-{self.seq}.webm"
