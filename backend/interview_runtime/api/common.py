from fastapi import HTTPException

from interview_runtime.errors import SessionError


def http_error(exc: SessionError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


def require_token(token: str | None) -> str:
    value = str(token or "").strip()
    if not value:
        raise HTTPException(status_code=400, detail="token is required")
    return value
