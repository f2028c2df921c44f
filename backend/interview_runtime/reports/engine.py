from __future__ import annotations

import logging
import math
from typing import Awaitable, Callable

from interview_runtime.ai_reasoning.llm import call_llm, llm_available
from interview_runtime.attempts.models import TranscriptTurn, parse_turns
from interview_runtime.reports.cefr import align_score_and_band, normalize_band
from interview_runtime.reports.fallback import candidate_words, fallback_summary, score_parameter
from interview_runtime.reports.models import (
    SCORING_FALLBACK,
    SCORING_LLM,
    SCORING_MIXED,
    ParameterScore,
    Report,
    Rubric,
)
from interview_runtime.reports.parsing import extract_json_dict
from interview_runtime.reports.prompts import build_followup_prompt, build_grounding_prompt
from interview_runtime.reports.rubric import normalize_rubric
from interview_runtime.reports.scorer import calculate_overall, relative_score
from interview_runtime.system_metrics import increment_metric

logger = logging.getLogger("interview_runtime.reports.engine")

MODE_AUTO = "auto"
MODE_LLM = "llm"
MODE_FALLBACK = "fallback"

Completion = Callable[[str], Awaitable[str]]


class ReportScoringEngine:
    """
    Transcript + rubric -> Report.

    LLM path: one grounding prompt, then at most one follow-up for the
    parameter ids that came back missing or invalid. Whatever is still
    missing is scored by the deterministic fallback. Never raises.
    """

    def __init__(self, complete: Completion | None = None, llm_enabled: bool | None = None):
        self._complete = complete or call_llm
        self._llm_enabled = llm_enabled

    @property
    def llm_enabled(self) -> bool:
        if self._llm_enabled is not None:
            return self._llm_enabled
        return llm_available()

    async def score(self, rubric, transcript, mode: str = MODE_AUTO) -> Report:
        rubric = normalize_rubric(rubric)
        turns = parse_turns(transcript)
        words = candidate_words(turns)

        llm_scores: dict[str, ParameterScore] = {}
        summary = ""
        use_llm = mode != MODE_FALLBACK and (mode == MODE_LLM or self.llm_enabled)
        if use_llm and rubric.parameters and words:
            llm_scores, summary = await self._score_with_llm(rubric, turns)

        scores: list[ParameterScore] = []
        for parameter in rubric.parameters:
            item = llm_scores.get(parameter.id)
            if item is None:
                item = score_parameter(parameter, words)
            if rubric.cefr_enabled:
                item.score, item.cefr_band = align_score_and_band(item.score, parameter.scale, item.cefr_band)
            scores.append(item)

        llm_count = sum(1 for s in scores if s.source == SCORING_LLM)
        if scores and llm_count == len(scores):
            scoring_mode = SCORING_LLM
        elif llm_count:
            scoring_mode = SCORING_MIXED
        else:
            scoring_mode = SCORING_FALLBACK

        if scoring_mode != SCORING_LLM:
            increment_metric("reports_fallback_scored")

        if not summary:
            params = rubric.by_id()
            relative = {s.parameter_id: relative_score(s.score, params[s.parameter_id].scale) for s in scores}
            summary = fallback_summary(len(words), scores, relative)

        increment_metric("reports_generated")
        return Report(
            parameters=scores,
            summary=summary,
            overall=calculate_overall(rubric, scores),
            scoring_mode=scoring_mode,
        )

    async def _score_with_llm(self, rubric: Rubric, turns: list[TranscriptTurn]) -> tuple[dict[str, ParameterScore], str]:
        wanted = [p.id for p in rubric.parameters]
        scores, summary = await self._request(build_grounding_prompt(rubric, turns), rubric, wanted)

        missing = [pid for pid in wanted if pid not in scores]
        if missing:
            increment_metric("llm_followups")
            logger.info("report follow-up | missing=%s", ",".join(missing))
            extra, extra_summary = await self._request(build_followup_prompt(rubric, missing, turns), rubric, missing)
            scores.update(extra)
            summary = summary or extra_summary
        return scores, summary

    async def _request(self, prompt: str, rubric: Rubric, wanted: list[str]) -> tuple[dict[str, ParameterScore], str]:
        try:
            raw = await self._complete(prompt)
        except Exception as exc:
            logger.warning("report completion failed | err=%s", exc)
            return {}, ""

        parsed = extract_json_dict(raw)
        if not parsed.ok:
            logger.warning("report json parse failed | err=%s", parsed.error)
            return {}, ""

        return self._collect(parsed.data, rubric, set(wanted)), str(parsed.data.get("summary") or "").strip()

    @staticmethod
    def _collect(data: dict, rubric: Rubric, wanted: set[str]) -> dict[str, ParameterScore]:
        params = rubric.by_id()
        collected: dict[str, ParameterScore] = {}
        for item in list(data.get("parameters") or []):
            if not isinstance(item, dict):
                continue
            param_id = str(item.get("id") or "").strip()
            parameter = params.get(param_id)
            if parameter is None or param_id not in wanted or param_id in collected:
                continue
            try:
                score = float(item.get("score"))
            except (TypeError, ValueError):
                continue
            if not math.isfinite(score):
                continue
            collected[param_id] = ParameterScore(
                parameter_id=param_id,
                name=parameter.name,
                score=parameter.scale.clamp(score),
                justification=str(item.get("justification") or item.get("comment") or "").strip(),
                cefr_band=normalize_band(item.get("cefr")),
                source=SCORING_LLM,
            )
        return collected
