import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from interview_runtime.api.common import http_error, require_token
from interview_runtime.db import attempt_repo
from interview_runtime.db.database import get_db
from interview_runtime.errors import SessionError
from interview_runtime.schemas import StatusRequest, TranscriptRequest
from interview_runtime.storage.blob_store import get_blob_store, proctor_photo_blob_name
from runtime_core.logger import log_event

router = APIRouter(prefix="/api/candidate")
logger = logging.getLogger("interview_runtime.api.candidate")


@router.get("/session")
async def get_session_config(token: str | None = None, db: AsyncSession = Depends(get_db)):
    token = require_token(token)
    try:
        return await attempt_repo.session_config(db, token)
    except SessionError as exc:
        raise http_error(exc)


@router.post("/transcript")
async def save_transcript(req: TranscriptRequest, db: AsyncSession = Depends(get_db)):
    token = require_token(req.token)
    try:
        attempt_number = await attempt_repo.save_transcript(db, token, req.history, req.forceNewAttempt)
    except SessionError as exc:
        raise http_error(exc)
    log_event("candidate", "transcript_saved", token, attempt_number=attempt_number, turns=len(req.history))
    return {"ok": True, "attemptNumber": attempt_number}


@router.post("/status")
async def update_status(req: StatusRequest, db: AsyncSession = Depends(get_db)):
    token = require_token(req.token)
    try:
        return await attempt_repo.update_status(db, token, req.status)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid status: {req.status}")
    except SessionError as exc:
        raise http_error(exc)


@router.post("/proctor-photo")
async def upload_proctor_photo(
    token: str | None = None,
    photo: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_db),
):
    token = require_token(token)
    if photo is None:
        raise HTTPException(status_code=400, detail="photo is required")
    payload = await photo.read()
    if not payload:
        raise HTTPException(status_code=400, detail="photo is empty")

    try:
        invitation, _ = await attempt_repo.require_invitation(db, token)
        blob_name = proctor_photo_blob_name(invitation.interview_id, photo.filename or "")
        await get_blob_store().put(blob_name, payload)
        attempt_number = await attempt_repo.attach_proctor_photo(db, token, blob_name, photo.content_type or "image/jpeg")
    except SessionError as exc:
        raise http_error(exc)

    logger.info("proctor photo stored | interview=%s attempt=%s bytes=%s", invitation.interview_id, attempt_number, len(payload))
    return {"ok": True, "attemptNumber": attempt_number, "blobName": blob_name}
