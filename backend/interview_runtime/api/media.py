import logging

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from interview_runtime.ai_reasoning.llm import transcribe_audio
from interview_runtime.storage.blob_store import chunk_blob_name, get_blob_store
from interview_runtime.system_metrics import increment_metric

router = APIRouter()
logger = logging.getLogger("interview_runtime.api.media")


def _safe_int(value, default: int | None = None) -> int | None:
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return default


@router.post("/api/record/chunk")
async def record_chunk(
    chunk: UploadFile | None = File(None),
    seq: str | None = Form(None),
    ts: str | None = Form(None),
    attemptId: str | None = Form(None),
    interviewId: str | None = Form(None),
    source: str | None = Form(None),
):
    attempt_id = str(attemptId or "").strip()
    seq_value = _safe_int(seq)
    if chunk is None or not attempt_id or seq_value is None:
        raise HTTPException(status_code=400, detail="chunk, seq and attemptId are required")

    payload = await chunk.read()
    blob_name = chunk_blob_name(attempt_id, seq_value, _safe_int(ts))
    store = get_blob_store()
    await store.put(blob_name, payload)

    increment_metric("chunks_stored")
    logger.info(
        "chunk stored | attempt=%s interview=%s seq=%s source=%s bytes=%s",
        attempt_id,
        interviewId or "-",
        seq_value,
        source or "-",
        len(payload),
    )
    return {"ok": True, "url": store.url_for(blob_name), "blobName": blob_name}


@router.post("/api/transcribe")
async def transcribe(audio: UploadFile | None = File(None)):
    if audio is None:
        raise HTTPException(status_code=400, detail="audio is required")
    payload = await audio.read()
    if not payload:
        raise HTTPException(status_code=400, detail="audio is empty")

    try:
        text = await transcribe_audio(payload, audio.filename or "segment.webm")
    except Exception as exc:
        increment_metric("transcribe_failures")
        logger.warning("transcription failed | bytes=%s err=%s", len(payload), exc)
        raise HTTPException(status_code=502, detail="Transcription unavailable")
    return {"text": text}
