import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from interview_runtime.attempts.models import has_content
from interview_runtime.db import attempt_repo, report_repo
from interview_runtime.db.database import get_db
from interview_runtime.reports.engine import MODE_AUTO, MODE_FALLBACK, MODE_LLM, ReportScoringEngine
from interview_runtime.reports.rubric import default_rubric, normalize_rubric
from interview_runtime.reports.templates import RubricTemplateGenerator
from interview_runtime.schemas import RubricRequest, ScoreRequest
from runtime_core.logger import log_event

router = APIRouter(prefix="/api")
logger = logging.getLogger("interview_runtime.api.reports")

report_engine = ReportScoringEngine()
template_generator = RubricTemplateGenerator()

_MODES = {MODE_AUTO, MODE_LLM, MODE_FALLBACK}


def _check_mode(mode: str | None) -> str:
    value = str(mode or MODE_AUTO).strip().lower()
    if value not in _MODES:
        raise HTTPException(status_code=400, detail=f"mode must be one of {sorted(_MODES)}")
    return value


@router.get("/interviews/{interview_id}/rubric")
async def get_rubric(interview_id: str, db: AsyncSession = Depends(get_db)):
    rubric, is_default = await report_repo.get_rubric_or_default(db, interview_id)
    payload = rubric.to_dict()
    payload["isDefault"] = is_default
    payload["templateSummary"] = None if is_default else await report_repo.get_template_summary(db, interview_id)
    return payload


@router.put("/interviews/{interview_id}/rubric")
async def put_rubric(interview_id: str, req: RubricRequest, db: AsyncSession = Depends(get_db)):
    if not req.parameters:
        raise HTTPException(status_code=400, detail="parameters must not be empty")
    rubric = normalize_rubric(req.model_dump())
    summary = await template_generator.summarize(rubric)
    rubric = await report_repo.save_rubric(db, interview_id, rubric, template_summary=summary)
    payload = rubric.to_dict()
    payload["templateSummary"] = summary
    return payload


@router.post("/interviews/{interview_id}/rubric/generate")
async def generate_rubric(interview_id: str, db: AsyncSession = Depends(get_db)):
    interview = await attempt_repo.get_interview(db, interview_id)
    if interview is None:
        raise HTTPException(status_code=404, detail="Interview not found")

    generated = await template_generator.generate(
        {
            "title": interview.title,
            "description": interview.description,
            "context": interview.context,
            "interviewerRole": interview.interviewer_role,
        }
    )
    rubric = await report_repo.save_rubric(db, interview_id, generated.rubric, template_summary=generated.summary)
    log_event(
        "reports",
        "rubric_generated",
        interview_id,
        source=generated.source,
        parameters=len(rubric.parameters),
    )
    payload = rubric.to_dict()
    payload["templateSummary"] = generated.summary
    payload["source"] = generated.source
    return payload


@router.post("/reports/score")
async def score_transcript(req: ScoreRequest):
    mode = _check_mode(req.mode)
    if req.rubric is not None and req.rubric.parameters:
        rubric = normalize_rubric(req.rubric.model_dump())
    else:
        rubric = default_rubric(req.interviewerRole or "")
    report = await report_engine.score(rubric, req.transcript, mode)
    return report.to_dict()


async def _resolve_attempt(db: AsyncSession, interview_id: str, candidate_id: str, attempt: int | None):
    rows = await attempt_repo.list_attempts(db, interview_id, candidate_id)
    if attempt is not None:
        row = next((r for r in rows if r.attempt_number == int(attempt)), None)
    else:
        row = next((r for r in reversed(rows) if has_content(r.content)), None)
    if row is None or not has_content(row.content):
        raise HTTPException(status_code=404, detail="Transcript not found")
    return row


async def _generate(db: AsyncSession, interview_id: str, candidate_id: str, row, mode: str) -> dict:
    attempt_number, content = row.attempt_number, list(row.content or [])
    rubric, is_default = await report_repo.get_rubric_or_default(db, interview_id)
    report = await report_engine.score(rubric, content, mode)
    stored = await report_repo.store_report(db, interview_id, candidate_id, attempt_number, report)
    log_event(
        "reports",
        "generated",
        f"{interview_id}:{candidate_id}:{attempt_number}",
        scoring_mode=stored.scoring_mode,
        overall=stored.overall,
        default_rubric=is_default,
    )
    return report_repo.record_to_dict(stored)


@router.get("/interviews/{interview_id}/candidates/{candidate_id}/report")
async def get_or_generate_report(
    interview_id: str,
    candidate_id: str,
    attempt: int | None = None,
    mode: str = MODE_AUTO,
    db: AsyncSession = Depends(get_db),
):
    mode = _check_mode(mode)
    row = await _resolve_attempt(db, interview_id, candidate_id, attempt)
    existing = await report_repo.get_report(db, interview_id, candidate_id, row.attempt_number)
    if existing is not None:
        return report_repo.record_to_dict(existing)
    return await _generate(db, interview_id, candidate_id, row, mode)


@router.post("/interviews/{interview_id}/candidates/{candidate_id}/report/regenerate")
async def regenerate_report(
    interview_id: str,
    candidate_id: str,
    attempt: int | None = None,
    mode: str = MODE_AUTO,
    db: AsyncSession = Depends(get_db),
):
    mode = _check_mode(mode)
    row = await _resolve_attempt(db, interview_id, candidate_id, attempt)
    await report_repo.delete_report(db, interview_id, candidate_id, row.attempt_number)
    logger.info("report regenerate | interview=%s candidate=%s attempt=%s", interview_id, candidate_id, row.attempt_number)
    return await _generate(db, interview_id, candidate_id, row, mode)
