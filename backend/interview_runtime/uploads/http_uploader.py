from __future__ import annotations

import logging

import httpx

from interview_runtime.uploads.models import MediaChunk
from runtime_core.config import HTTP_TIMEOUT_SEC, RUNTIME_API_BASE_URL

logger = logging.getLogger("interview_runtime.uploads.http")

CHUNK_UPLOAD_PATH = "/api/record/chunk"


class HttpChunkUploader:
    """Posts one chunk as multipart form data to the record endpoint."""

    def __init__(
        self,
        attempt_id: str,
        interview_id: str | None = None,
        base_url: str = RUNTIME_API_BASE_URL,
        client: httpx.AsyncClient | None = None,
        timeout_sec: float = HTTP_TIMEOUT_SEC,
    ):
        self.attempt_id = str(attempt_id or "").strip()
        self.interview_id = str(interview_id or "").strip() or None
        self.url = f"{str(base_url or '').rstrip('/')}{CHUNK_UPLOAD_PATH}"
        self._client = client
        self._timeout_sec = timeout_sec

    def _form_fields(self, chunk: MediaChunk) -> dict[str, str]:
        if not self.attempt_id:
            raise ValueError("Missing attempt id for upload")
        data = {
            "seq": str(chunk.seq),
            "ts": str(chunk.captured_at_ms),
            "attemptId": self.attempt_id,
        }
        if self.interview_id:
            data["interviewId"] = self.interview_id
        if chunk.source:
            data["source"] = chunk.source
        return data

    async def upload(self, chunk: MediaChunk) -> dict:
        data = self._form_fields(chunk)
        files = {"chunk": (chunk.filename, chunk.payload, chunk.mime_type)}
        logger.debug("uploading chunk | attempt=%s seq=%s source=%s", self.attempt_id, chunk.seq, chunk.source)

        if self._client is not None:
            response = await self._client.post(self.url, data=data, files=files)
        else:
            async with httpx.AsyncClient(timeout=self._timeout_sec) as client:
                response = await client.post(self.url, data=data, files=files)

        response.raise_for_status()
        try:
            return response.json()
        except ValueError:
            return {}
