import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from interview_runtime.api.common import http_error
from interview_runtime.chat_service import clean_history, interviewer_reply
from interview_runtime.db import attempt_repo
from interview_runtime.db.database import get_db
from interview_runtime.db.report_repo import get_rubric_or_default
from interview_runtime.errors import SessionError
from interview_runtime.schemas import ChatTurnRequest, ChatTurnResponse
from interview_runtime.system_metrics import increment_metric

router = APIRouter()
logger = logging.getLogger("interview_runtime.api.chat")


@router.post("/api/llm/chat", response_model=ChatTurnResponse)
async def chat_turn(req: ChatTurnRequest, db: AsyncSession = Depends(get_db)):
    user_text = str(req.userText or "").strip()
    history = clean_history(req.history)
    if not user_text and history:
        raise HTTPException(status_code=400, detail="userText is required")

    token = str(req.token or "").strip()
    interview_id = str(req.interviewId or "").strip()
    if token:
        try:
            invitation, _ = await attempt_repo.require_invitation(db, token)
        except SessionError as exc:
            raise http_error(exc)
        interview_id = invitation.interview_id

    interview: dict = {}
    skills: list[str] = []
    total_minutes = req.timing.totalMinutes
    if interview_id:
        row = await attempt_repo.get_interview(db, interview_id)
        rubric, _ = await get_rubric_or_default(db, interview_id)
        skills = [p.name for p in rubric.parameters]
        if row is not None:
            interview = {"title": row.title, "context": row.context, "interviewerRole": row.interviewer_role}
            total_minutes = total_minutes or row.duration_minutes

    try:
        reply = await interviewer_reply(
            history,
            user_text,
            interview=interview,
            remaining_seconds=req.timing.remainingSeconds,
            total_minutes=total_minutes,
            skills=skills,
            session_id=token,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        increment_metric("chat_llm_failures")
        logger.warning("interviewer reply failed | interview=%s err=%s", interview_id, exc)
        raise HTTPException(status_code=502, detail="Interviewer reply unavailable")

    if token:
        snapshot = list(history)
        if user_text:
            snapshot.append({"role": "user", "content": user_text})
        snapshot.append({"role": "assistant", "content": reply})
        try:
            await attempt_repo.persist_chat_snapshot(db, token, snapshot)
        except Exception as exc:
            await db.rollback()
            logger.warning("chat snapshot not persisted | interview=%s err=%s", interview_id, exc)

    return {"reply": reply}
