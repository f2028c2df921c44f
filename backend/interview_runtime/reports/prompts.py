from __future__ import annotations

from interview_runtime.attempts.models import ROLE_ASSISTANT, ROLE_USER, TranscriptTurn
from interview_runtime.reports.cefr import CEFR_BANDS
from interview_runtime.reports.models import Rubric, RubricParameter

NO_ANSWER = "(no answer)"

SCORING_RULES = [
    "- 1-5 scales: default to 2/5 with limited evidence; 1/5 if weak/missing; 4-5/5 ONLY with multiple, specific, technical evidences.",
    "- Percentage scales: default to 40-55% with limited evidence; <40% if weak/missing; >80% ONLY with strong evidence.",
    "- Stars scales: same bands as 1-5 scales; half stars allowed.",
    "- Be conservative. Penalize vague or missing evidence. Reward concrete, correct, role-relevant details.",
    "- Ensure scores are within each parameter's min/max. Use integers on 1-5 scales.",
    "- Justifications must cite specific evidence from the answers (short quotes or precise paraphrases).",
    "- If insufficient evidence for a parameter, explicitly state that and assign a lower score.",
    "- A question marked (no answer) is evidence of a missing answer, not of a weak one.",
]


def pair_exchanges(turns: list[TranscriptTurn]) -> list[tuple[str, str]]:
    """
    Pair every interviewer turn with the candidate turns that follow it,
    up to the next interviewer turn. Candidate turns before the first
    question are kept with an empty question.
    """
    exchanges: list[tuple[str, list[str]]] = []
    for turn in turns:
        text = str(turn.text or "").strip()
        if not text:
            continue
        if turn.role == ROLE_ASSISTANT:
            exchanges.append((text, []))
        elif turn.role == ROLE_USER:
            if not exchanges:
                exchanges.append(("", []))
            exchanges[-1][1].append(text)

    return [(question, " ".join(answers) if answers else NO_ANSWER) for question, answers in exchanges]


def _parameter_lines(parameters: list[RubricParameter]) -> list[str]:
    lines = []
    for p in parameters:
        description = f"; description={p.description}" if p.description else ""
        lines.append(
            f"- id={p.id}; name={p.name}; weight={p.weight:g}; scale={p.scale.type} [{p.scale.min:g}, {p.scale.max:g}]{description}"
        )
    return lines


def _exchange_lines(turns: list[TranscriptTurn]) -> list[str]:
    lines = []
    for index, (question, answer) in enumerate(pair_exchanges(turns), start=1):
        if question:
            lines.append(f"Q{index}: {question}")
        lines.append(f"A{index}: {answer}")
    return lines


def _shape_line(cefr_enabled: bool) -> str:
    cefr = ', "cefr": "A1"|"A2"|"B1"|"B2"|"C1"|"C2"' if cefr_enabled else ""
    return (
        'Return ONLY valid JSON with this exact shape: { "summary": string, "parameters": '
        f'[ {{ "id": string, "score": number, "justification": string{cefr} }} ] }}.'
    )


def build_grounding_prompt(rubric: Rubric, turns: list[TranscriptTurn]) -> str:
    lines = [
        "You are a strict technical interviewer. Generate an interview evaluation as strict JSON only.",
        "Use ONLY the candidate's answers below as evidence; each answer is shown under the question it responds to.",
        "Evaluation parameters (id, name, weight, scale[min,max]):",
    ]
    lines.extend(_parameter_lines(rubric.parameters))
    lines.append("Interview (chronological):")
    lines.extend(_exchange_lines(turns))
    lines.append(_shape_line(rubric.cefr_enabled))
    lines.append("Scoring rules:")
    lines.extend(SCORING_RULES)
    if rubric.cefr_enabled:
        lines.append(f"- Also rate each parameter on the CEFR bands {', '.join(CEFR_BANDS)}; the band must match the score.")
    lines.append("- Score every parameter listed above exactly once, using its id.")
    return "\n".join(lines)


def build_followup_prompt(rubric: Rubric, missing_ids: list[str], turns: list[TranscriptTurn]) -> str:
    wanted = set(missing_ids)
    parameters = [p for p in rubric.parameters if p.id in wanted]
    lines = [
        "Your previous evaluation was incomplete. Score ONLY the parameters below, as strict JSON only.",
        "Evaluation parameters (id, name, weight, scale[min,max]):",
    ]
    lines.extend(_parameter_lines(parameters))
    lines.append("Interview (chronological):")
    lines.extend(_exchange_lines(turns))
    lines.append(_shape_line(rubric.cefr_enabled))
    lines.append("Scoring rules:")
    lines.extend(SCORING_RULES)
    return "\n".join(lines)
