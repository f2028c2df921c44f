from __future__ import annotations

import datetime
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from interview_runtime.attempts.models import has_content, parse_turns
from interview_runtime.attempts.policy import (
    is_exhausted,
    photo_target_attempt,
    resolve_allowed_attempts,
    transcript_target_attempt,
)
from interview_runtime.db.tables import AttemptRecord, Interview, Invitation, RubricRecord
from interview_runtime.errors import AttemptLockedError, InvalidTokenError
from runtime_core.state import AttemptStatus

logger = logging.getLogger("interview_runtime.db.attempt_repo")


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


async def create_interview(db: AsyncSession, interview_id: str, **fields) -> Interview:
    interview = Interview(id=str(interview_id), **fields)
    db.add(interview)
    await db.commit()
    return interview


async def create_invitation(
    db: AsyncSession,
    token: str,
    interview_id: str,
    candidate_id: str,
    max_attempts: int | None = None,
    candidate_name: str | None = None,
) -> Invitation:
    invitation = Invitation(
        token=str(token),
        interview_id=str(interview_id),
        candidate_id=str(candidate_id),
        max_attempts=max_attempts,
        candidate_name=candidate_name,
    )
    db.add(invitation)
    await db.commit()
    return invitation


async def get_interview(db: AsyncSession, interview_id: str) -> Interview | None:
    result = await db.execute(select(Interview).where(Interview.id == str(interview_id)))
    return result.scalar_one_or_none()


async def require_invitation(db: AsyncSession, token: str) -> tuple[Invitation, Interview | None]:
    token = str(token or "").strip()
    result = await db.execute(select(Invitation).where(Invitation.token == token))
    invitation = result.scalar_one_or_none()
    if invitation is None:
        raise InvalidTokenError()
    return invitation, await get_interview(db, invitation.interview_id)


async def list_attempts(db: AsyncSession, interview_id: str, candidate_id: str) -> list[AttemptRecord]:
    result = await db.execute(
        select(AttemptRecord)
        .where(AttemptRecord.interview_id == interview_id, AttemptRecord.candidate_id == candidate_id)
        .order_by(AttemptRecord.attempt_number.asc())
    )
    return list(result.scalars().all())


async def get_attempt(db: AsyncSession, interview_id: str, candidate_id: str, attempt_number: int) -> AttemptRecord | None:
    result = await db.execute(
        select(AttemptRecord).where(
            AttemptRecord.interview_id == interview_id,
            AttemptRecord.candidate_id == candidate_id,
            AttemptRecord.attempt_number == int(attempt_number),
        )
    )
    return result.scalar_one_or_none()


def allowed_attempts(invitation: Invitation, interview: Interview | None) -> int:
    return resolve_allowed_attempts(invitation.max_attempts, interview.max_attempts if interview else None)


def _used(rows: list[AttemptRecord]) -> int:
    return sum(1 for row in rows if has_content(row.content))


async def session_config(db: AsyncSession, token: str) -> dict:
    invitation, interview = await require_invitation(db, token)
    rows = await list_attempts(db, invitation.interview_id, invitation.candidate_id)
    rubric = await db.get(RubricRecord, invitation.interview_id)
    allowed = allowed_attempts(invitation, interview)
    used = _used(rows)
    interview = interview or Interview(id=invitation.interview_id, title="")
    return {
        "interviewId": invitation.interview_id,
        "candidateId": invitation.candidate_id,
        "attemptsAllowed": allowed,
        "attemptsUsed": used,
        "attemptsExhausted": is_exhausted(used, allowed),
        "status": invitation.status,
        "interview": {
            "id": interview.id,
            "title": interview.title or "",
            "description": interview.description,
            "context": interview.context,
            "interviewerRole": interview.interviewer_role,
            "durationMinutes": interview.duration_minutes,
            "interactionMode": interview.interaction_mode or "VOICE",
            "speechProvider": interview.speech_provider,
            "skills": [str(p.get("name") or "") for p in list(rubric.parameters or [])] if rubric else [],
        },
        "candidate": {"id": invitation.candidate_id, "name": invitation.candidate_name},
    }


async def save_transcript(db: AsyncSession, token: str, history: list, force_new_attempt: bool = False) -> int:
    """Writes the full turn list to the target attempt and returns its number."""
    invitation, interview = await require_invitation(db, token)
    rows = await list_attempts(db, invitation.interview_id, invitation.candidate_id)
    latest = rows[-1] if rows else None
    target = transcript_target_attempt(
        latest.attempt_number if latest else None,
        has_content(latest.content) if latest else False,
        allowed_attempts(invitation, interview),
        force_new_attempt=force_new_attempt,
    )

    content = [turn.to_dict() for turn in parse_turns(history)]
    row = next((r for r in rows if r.attempt_number == target), None)
    if row is not None and row.status == AttemptStatus.COMPLETED.value:
        raise AttemptLockedError()

    if row is None:
        row = AttemptRecord(
            interview_id=invitation.interview_id,
            candidate_id=invitation.candidate_id,
            attempt_number=target,
            content=content,
            status=AttemptStatus.IN_PROGRESS.value,
            started_at=_now(),
        )
        db.add(row)
    else:
        row.content = content
        if row.status == AttemptStatus.NOT_STARTED.value:
            row.status = AttemptStatus.IN_PROGRESS.value
            row.started_at = row.started_at or _now()
    await db.commit()
    return target


async def persist_chat_snapshot(db: AsyncSession, token: str, history: list) -> int | None:
    """
    Best-effort copy of the chat history into the attempt that is currently
    open, so reports always have the raw transcript. Never opens an attempt
    beyond the allowed count and never touches a completed attempt.
    """
    invitation, interview = await require_invitation(db, token)
    rows = await list_attempts(db, invitation.interview_id, invitation.candidate_id)
    latest = rows[-1] if rows else None
    allowed = allowed_attempts(invitation, interview)

    if latest is not None and latest.status != AttemptStatus.COMPLETED.value:
        target = latest.attempt_number
    else:
        target = (latest.attempt_number if latest else 0) + 1
    if target > allowed:
        return None

    content = [turn.to_dict() for turn in parse_turns(history)]
    if not content:
        return None
    if latest is not None and latest.attempt_number == target:
        latest.content = content
        if latest.status == AttemptStatus.NOT_STARTED.value:
            latest.status = AttemptStatus.IN_PROGRESS.value
            latest.started_at = latest.started_at or _now()
    else:
        db.add(
            AttemptRecord(
                interview_id=invitation.interview_id,
                candidate_id=invitation.candidate_id,
                attempt_number=target,
                content=content,
                status=AttemptStatus.IN_PROGRESS.value,
                started_at=_now(),
            )
        )
    await db.commit()
    return target


async def update_status(db: AsyncSession, token: str, status: str) -> dict:
    invitation, _ = await require_invitation(db, token)
    status = AttemptStatus(str(status or "").strip().upper())
    now = _now()

    invitation.status = status.value
    if status == AttemptStatus.IN_PROGRESS and invitation.started_at is None:
        invitation.started_at = now
    if status == AttemptStatus.COMPLETED:
        invitation.completed_at = now

    rows = await list_attempts(db, invitation.interview_id, invitation.candidate_id)
    latest = rows[-1] if rows else None
    if latest is not None and latest.status != AttemptStatus.COMPLETED.value:
        if status == AttemptStatus.IN_PROGRESS and latest.started_at is None:
            latest.started_at = now
        if status == AttemptStatus.COMPLETED:
            latest.completed_at = now
        if status != AttemptStatus.NOT_STARTED:
            latest.status = status.value

    await db.commit()
    return {
        "ok": True,
        "status": invitation.status,
        "startedAt": invitation.started_at.isoformat() if invitation.started_at else None,
        "completedAt": invitation.completed_at.isoformat() if invitation.completed_at else None,
    }


async def attach_proctor_photo(db: AsyncSession, token: str, blob_name: str, mime_type: str) -> int:
    invitation, _ = await require_invitation(db, token)
    rows = await list_attempts(db, invitation.interview_id, invitation.candidate_id)
    latest = rows[-1] if rows else None
    target = photo_target_attempt(
        latest.attempt_number if latest else None,
        has_content(latest.content) if latest else False,
        latest_open=latest is not None and latest.status == AttemptStatus.IN_PROGRESS.value,
    )

    row = latest if latest is not None and latest.attempt_number == target else None
    if row is None:
        row = AttemptRecord(
            interview_id=invitation.interview_id,
            candidate_id=invitation.candidate_id,
            attempt_number=target,
            content=[],
            status=AttemptStatus.NOT_STARTED.value,
        )
        db.add(row)
    row.proctor_photo_blob = blob_name
    row.proctor_photo_mime = mime_type or "image/jpeg"
    row.proctor_photo_captured_at = _now()
    await db.commit()
    return target
