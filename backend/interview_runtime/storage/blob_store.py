from __future__ import annotations

import asyncio
import datetime
import logging
import re
import uuid
from pathlib import Path

from runtime_core.config import BLOB_STORE_DIR

logger = logging.getLogger("interview_runtime.storage.blob_store")

_UNSAFE_SEGMENT = re.compile(r"[^A-Za-z0-9._-]+")


def _safe_segment(value: str) -> str:
    cleaned = _UNSAFE_SEGMENT.sub("_", str(value or "").strip()).strip("._")
    return cleaned or "unknown"


def chunk_blob_name(attempt_id: str, seq: int, ts_ms: int | None = None) -> str:
    """<attemptId>/<YYYYMMDD_HHMMSS of ts>/chunk-<seq padded to 5>.webm"""
    if ts_ms is None:
        moment = datetime.datetime.now(datetime.timezone.utc)
    else:
        moment = datetime.datetime.fromtimestamp(int(ts_ms) / 1000.0, tz=datetime.timezone.utc)
    return f"{_safe_segment(attempt_id)}/{moment.strftime('%Y%m%d_%H%M%S')}/chunk-{int(seq):05d}.webm"


def proctor_photo_blob_name(interview_id: str, filename: str = "") -> str:
    ext = (str(filename or "").rsplit(".", 1)[-1] if "." in str(filename or "") else "jpg").lower()
    return f"interviews/{_safe_segment(interview_id)}/proctor-{uuid.uuid4()}.{_safe_segment(ext)}"


class LocalBlobStore:
    """Directory-backed blob store; blob names map to relative paths."""

    def __init__(self, root: Path | str = BLOB_STORE_DIR):
        self.root = Path(root)

    def _path(self, blob_name: str) -> Path:
        parts = [_safe_segment(part) for part in str(blob_name or "").split("/") if part and part not in {".", ".."}]
        if not parts:
            raise ValueError("blob name required")
        return self.root.joinpath(*parts)

    def _write(self, blob_name: str, payload: bytes) -> Path:
        path = self._path(blob_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(payload)
        return path

    async def put(self, blob_name: str, payload: bytes) -> str:
        path = await asyncio.to_thread(self._write, blob_name, bytes(payload or b""))
        logger.debug("blob stored | name=%s bytes=%s", blob_name, len(payload or b""))
        return path.relative_to(self.root).as_posix()

    def url_for(self, blob_name: str) -> str:
        return self._path(blob_name).resolve().as_uri()

    def exists(self, blob_name: str) -> bool:
        return self._path(blob_name).exists()

    def read(self, blob_name: str) -> bytes:
        return self._path(blob_name).read_bytes()


_store: LocalBlobStore | None = None


def get_blob_store() -> LocalBlobStore:
    global _store
    if _store is None:
        _store = LocalBlobStore()
    return _store
