from __future__ import annotations

import logging

import httpx

from interview_runtime.attempts.models import AttemptConfig, TranscriptTurn
from interview_runtime.errors import (
    AttemptLockedError,
    AttemptsExhaustedError,
    GatewayError,
    InvalidTokenError,
)
from runtime_core.config import HTTP_TIMEOUT_SEC, RUNTIME_API_BASE_URL

logger = logging.getLogger("interview_runtime.session.gateway")


class RuntimeGateway:
    """httpx client for the candidate-facing runtime API."""

    def __init__(
        self,
        base_url: str = RUNTIME_API_BASE_URL,
        client: httpx.AsyncClient | None = None,
        timeout_sec: float = HTTP_TIMEOUT_SEC,
    ):
        self.base_url = str(base_url or "").rstrip("/")
        self._client = client
        self._owns_client = client is None
        self._timeout_sec = timeout_sec

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self._timeout_sec)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, *, token_scoped: bool = False, **kwargs) -> dict:
        """
        token_scoped marks calls where a 400 can only come from the token
        check; elsewhere a 400 is a rejected request, not a bad link.
        """
        try:
            response = await self._http().request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise GatewayError(f"Runtime API unreachable: {exc}") from exc

        if response.status_code == 404 and path.startswith("/api/candidate"):
            raise InvalidTokenError()
        if response.status_code == 400 and token_scoped:
            raise InvalidTokenError()
        if response.status_code == 403:
            raise AttemptsExhaustedError()
        if response.status_code == 409:
            raise AttemptLockedError()
        if response.status_code >= 400:
            raise GatewayError(f"Runtime API error {response.status_code} on {path}", upstream_status=response.status_code)
        try:
            return response.json() or {}
        except ValueError:
            return {}

    async def get_attempt_config(self, token: str) -> AttemptConfig:
        token = str(token or "").strip()
        if not token:
            raise InvalidTokenError()
        payload = await self._request("GET", "/api/candidate/session", token_scoped=True, params={"token": token})
        return AttemptConfig.from_payload(token, payload)

    async def chat_turn(
        self,
        config: AttemptConfig,
        history: list[TranscriptTurn],
        user_text: str,
        remaining_seconds: int | None = None,
    ) -> str:
        body = {
            "token": config.token,
            "interviewId": config.interview_id,
            "userText": user_text,
            "history": [{"role": t.role, "content": t.text} for t in history],
            "timing": {
                "remainingSeconds": remaining_seconds,
                "totalMinutes": int(config.duration_minutes) if config.duration_minutes else None,
            },
        }
        payload = await self._request("POST", "/api/llm/chat", json=body)
        reply = str(payload.get("reply") or "").strip()
        if not reply:
            raise GatewayError("Empty interviewer reply")
        return reply

    async def save_transcript(self, token: str, turns: list[TranscriptTurn], force_new_attempt: bool = False) -> int:
        payload = await self._request(
            "POST",
            "/api/candidate/transcript",
            token_scoped=True,
            json={
                "token": token,
                "history": [t.to_dict() for t in turns],
                "forceNewAttempt": bool(force_new_attempt),
            },
        )
        return int(payload.get("attemptNumber") or 0)

    async def update_status(self, token: str, status: str) -> dict:
        return await self._request("POST", "/api/candidate/status", json={"token": token, "status": status})

    async def upload_proctor_photo(self, token: str, image: bytes, mime_type: str = "image/jpeg") -> int:
        payload = await self._request(
            "POST",
            "/api/candidate/proctor-photo",
            params={"token": token},
            files={"photo": ("proctor.jpg", image, mime_type)},
        )
        return int(payload.get("attemptNumber") or 0)
