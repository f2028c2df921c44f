import time

from interview_runtime.uploads.models import MediaChunk
from interview_runtime.uploads.queue import ChunkUploadQueue


class RecorderFeed:
    """
    Bridges a media recorder's data callback to the upload queue.
    Empty slices are ignored; every accepted slice gets the next sequence number.
    """

    def __init__(self, queue: ChunkUploadQueue, source: str = "InterviewRecorder", mime_type: str = "video/webm"):
        self.queue = queue
        self.source = source
        self.mime_type = mime_type
        self._seq = 0

    @property
    def last_seq(self) -> int:
        return self._seq

    def on_data(self, payload: bytes, captured_at_ms: int | None = None) -> MediaChunk | None:
        if not payload:
            return None
        self._seq += 1
        chunk = MediaChunk(
            seq=self._seq,
            payload=bytes(payload),
            captured_at_ms=int(captured_at_ms if captured_at_ms is not None else time.time() * 1000),
            source=self.source,
            mime_type=self.mime_type,
        )
        self.queue.enqueue(chunk)
        return chunk
