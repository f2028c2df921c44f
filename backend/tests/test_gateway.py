import httpx
import pytest

from interview_runtime.attempts.models import TranscriptTurn
from interview_runtime.errors import AttemptLockedError, GatewayError, InvalidTokenError
from interview_runtime.session.gateway import RuntimeGateway


def _gateway(status_by_path: dict[str, int]) -> RuntimeGateway:
    def _handler(request: httpx.Request) -> httpx.Response:
        status = status_by_path.get(request.url.path, 200)
        return httpx.Response(status, json={"detail": "nope"} if status >= 400 else {"ok": True, "attemptNumber": 1})

    client = httpx.AsyncClient(base_url="http://runtime.test", transport=httpx.MockTransport(_handler))
    return RuntimeGateway(base_url="http://runtime.test", client=client)


@pytest.mark.asyncio
async def test_bad_request_on_status_is_not_an_invalid_token():
    gateway = _gateway({"/api/candidate/status": 400})

    with pytest.raises(GatewayError) as excinfo:
        await gateway.update_status("tok-1", "PAUSED")

    assert excinfo.value.upstream_status == 400
    assert not isinstance(excinfo.value, InvalidTokenError)


@pytest.mark.asyncio
async def test_bad_request_on_token_calls_means_invalid_token():
    gateway = _gateway({"/api/candidate/session": 400, "/api/candidate/transcript": 400})

    with pytest.raises(InvalidTokenError):
        await gateway.get_attempt_config("tok-1")
    with pytest.raises(InvalidTokenError):
        await gateway.save_transcript("tok-1", [TranscriptTurn(role="user", text="hi")])


@pytest.mark.asyncio
async def test_not_found_and_conflict_mapping():
    gateway = _gateway({"/api/candidate/status": 404, "/api/candidate/transcript": 409})

    with pytest.raises(InvalidTokenError):
        await gateway.update_status("tok-1", "COMPLETED")
    with pytest.raises(AttemptLockedError):
        await gateway.save_transcript("tok-1", [TranscriptTurn(role="user", text="hi")])


@pytest.mark.asyncio
async def test_successful_save_returns_attempt_number():
    gateway = _gateway({})
    assert await gateway.save_transcript("tok-2", [TranscriptTurn(role="user", text="hi")]) == 1
