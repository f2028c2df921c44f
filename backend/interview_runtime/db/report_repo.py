from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from interview_runtime.db.attempt_repo import get_interview
from interview_runtime.db.tables import ReportRecord, RubricRecord
from interview_runtime.reports.models import Report, Rubric
from interview_runtime.reports.rubric import default_rubric, normalize_rubric


async def get_rubric(db: AsyncSession, interview_id: str) -> Rubric | None:
    row = await db.get(RubricRecord, str(interview_id))
    if row is None:
        return None
    return normalize_rubric(
        {
            "parameters": row.parameters or [],
            "includeOverall": row.include_overall,
            "includeSkillLevels": row.include_skill_levels,
            "cefrEnabled": row.cefr_enabled,
        }
    )


async def get_rubric_or_default(db: AsyncSession, interview_id: str) -> tuple[Rubric, bool]:
    """Returns (rubric, is_default)."""
    rubric = await get_rubric(db, interview_id)
    if rubric is not None and rubric.parameters:
        return rubric, False
    interview = await get_interview(db, interview_id)
    return default_rubric(interview.interviewer_role if interview else ""), True


async def save_rubric(db: AsyncSession, interview_id: str, raw, template_summary: str | None = None) -> Rubric:
    rubric = normalize_rubric(raw)
    row = await db.get(RubricRecord, str(interview_id))
    if row is None:
        row = RubricRecord(interview_id=str(interview_id))
        db.add(row)
    row.parameters = [p.to_dict() for p in rubric.parameters]
    row.include_overall = rubric.include_overall
    row.include_skill_levels = rubric.include_skill_levels
    row.cefr_enabled = rubric.cefr_enabled
    row.template_summary = template_summary
    await db.commit()
    return rubric


async def get_template_summary(db: AsyncSession, interview_id: str) -> str | None:
    row = await db.get(RubricRecord, str(interview_id))
    return row.template_summary if row is not None else None


def record_to_dict(row: ReportRecord) -> dict:
    return {
        "interviewId": row.interview_id,
        "candidateId": row.candidate_id,
        "attemptNumber": row.attempt_number,
        "parameters": list(row.parameters or []),
        "summary": row.summary or "",
        "overall": row.overall,
        "scoringMode": row.scoring_mode,
        "createdAt": row.created_at.isoformat() if row.created_at else None,
    }


async def get_report(db: AsyncSession, interview_id: str, candidate_id: str, attempt_number: int) -> ReportRecord | None:
    result = await db.execute(
        select(ReportRecord).where(
            ReportRecord.interview_id == interview_id,
            ReportRecord.candidate_id == candidate_id,
            ReportRecord.attempt_number == int(attempt_number),
        )
    )
    return result.scalar_one_or_none()


async def delete_report(db: AsyncSession, interview_id: str, candidate_id: str, attempt_number: int) -> None:
    await db.execute(
        delete(ReportRecord).where(
            ReportRecord.interview_id == interview_id,
            ReportRecord.candidate_id == candidate_id,
            ReportRecord.attempt_number == int(attempt_number),
        )
    )
    await db.commit()


async def store_report(
    db: AsyncSession,
    interview_id: str,
    candidate_id: str,
    attempt_number: int,
    report: Report,
) -> ReportRecord:
    """Insert once per attempt; a concurrent insert for the same key wins and is returned."""
    row = ReportRecord(
        interview_id=interview_id,
        candidate_id=candidate_id,
        attempt_number=int(attempt_number),
        parameters=[p.to_dict() for p in report.parameters],
        summary=report.summary,
        overall=report.overall,
        scoring_mode=report.scoring_mode,
    )
    db.add(row)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await get_report(db, interview_id, candidate_id, attempt_number)
        if existing is None:
            raise
        return existing
    return row
