from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from interview_runtime.ai_reasoning.llm import call_llm, llm_available
from interview_runtime.reports.models import Rubric
from interview_runtime.reports.parsing import extract_json_dict
from interview_runtime.reports.rubric import default_rubric, normalize_rubric
from interview_runtime.system_metrics import increment_metric

logger = logging.getLogger("interview_runtime.reports.templates")

TEMPLATE_SOURCE_LLM = "llm"
TEMPLATE_SOURCE_FALLBACK = "fallback"

Completion = Callable[[str], Awaitable[str]]


def build_rubric_template_prompt(interview: dict) -> str:
    interview = interview or {}
    lines = [
        "You are an expert technical hiring assistant. Generate an interview evaluation template as strict JSON.",
        "The template must include a set of evaluation parameters tailored to the role and context, "
        "with default weight percentages and rating scales.",
        'Return ONLY valid JSON with this exact shape: { "parameters": [ { "id": string, "name": string, '
        '"description": string, "weight": number, "scale": { "type": "1-5"|"percentage"|"stars", '
        '"min": number, "max": number } } ], "includeOverall": boolean, "includeSkillLevels": boolean }.',
        "- parameters.weight should sum to 100 across all parameters.",
        "- Include soft skills (e.g., communication, empathy), problem solving, and role-specific technical skills.",
        "- Prefer 1-5 scale for most parameters; use percentage for overall if included.",
        "- Generate 6-10 parameters depending on the role complexity.",
        f"Role: {str(interview.get('interviewerRole') or '').strip()}",
        f"Title: {str(interview.get('title') or '').strip()}",
        f"Context: {str(interview.get('context') or '').strip()}",
    ]
    description = str(interview.get("description") or "").strip()
    if description:
        lines.append(f"Description: {description}")
    return "\n".join(lines)


def build_template_summary_prompt(rubric: Rubric) -> str:
    lines = [
        "Summarize this interview evaluation template for a hiring manager in 3-6 concise bullet points.",
        'Return ONLY valid JSON with this exact shape: { "bullets": [ string ] }.',
        "Parameters (name, weight, scale):",
    ]
    for p in rubric.parameters:
        description = f" - {p.description}" if p.description else ""
        lines.append(f"- {p.name}; weight={p.weight:g}; scale={p.scale.type}{description}")
    lines.append(f"Overall score included: {'yes' if rubric.include_overall else 'no'}.")
    return "\n".join(lines)


@dataclass
class GeneratedTemplate:
    rubric: Rubric
    source: str
    summary: str | None = None


class RubricTemplateGenerator:
    """
    Drafts a rubric tailored to an interview. Anything short of a usable
    LLM template falls back to the role-aware default rubric; the short
    summary is best effort and may be None.
    """

    def __init__(self, complete: Completion | None = None, llm_enabled: bool | None = None):
        self._complete = complete or call_llm
        self._llm_enabled = llm_enabled

    @property
    def llm_enabled(self) -> bool:
        if self._llm_enabled is not None:
            return self._llm_enabled
        return llm_available()

    async def generate(self, interview: dict) -> GeneratedTemplate:
        role = str((interview or {}).get("interviewerRole") or "")
        rubric = None
        if self.llm_enabled:
            rubric = await self._draft(interview)

        if rubric is None:
            increment_metric("rubric_templates_fallback")
            generated = GeneratedTemplate(default_rubric(role), TEMPLATE_SOURCE_FALLBACK)
        else:
            generated = GeneratedTemplate(rubric, TEMPLATE_SOURCE_LLM)
        generated.summary = await self.summarize(generated.rubric)
        return generated

    async def _draft(self, interview: dict) -> Rubric | None:
        try:
            raw = await self._complete(build_rubric_template_prompt(interview))
        except Exception as exc:
            logger.warning("rubric template completion failed | err=%s", exc)
            return None

        parsed = extract_json_dict(raw)
        if not parsed.ok:
            logger.warning("rubric template json parse failed | err=%s", parsed.error)
            return None
        rubric = normalize_rubric(parsed.data)
        if not rubric.parameters:
            logger.warning("rubric template had no parameters")
            return None
        return rubric

    async def summarize(self, rubric: Rubric) -> str | None:
        if not self.llm_enabled or not rubric.parameters:
            return None
        try:
            raw = await self._complete(build_template_summary_prompt(rubric))
        except Exception as exc:
            logger.warning("template summary completion failed | err=%s", exc)
            return None

        parsed = extract_json_dict(raw)
        if not parsed.ok:
            return None
        bullets = parsed.data.get("bullets")
        if isinstance(bullets, str):
            bullets = [bullets]
        lines = [str(b).strip().lstrip("-• ").strip() for b in list(bullets or [])]
        lines = [line for line in lines if line]
        return "\n".join(f"- {line}" for line in lines) or None
