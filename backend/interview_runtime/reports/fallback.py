"""
Deterministic scoring used when the LLM is unavailable or returns nothing
usable. Same transcript and rubric always give the same scores.
"""

import re

from interview_runtime.attempts.models import ROLE_USER, TranscriptTurn
from interview_runtime.reports.cefr import scale_granularity
from interview_runtime.reports.models import SCORING_FALLBACK, ParameterScore, RubricParameter
from interview_runtime.reports.rubric import js_round
from runtime_core.config import (
    FALLBACK_KEYWORD_CAP,
    FALLBACK_KEYWORD_STEP,
    FALLBACK_LENGTH_CAP_WORDS,
    FALLBACK_LENGTH_SHARE,
    FALLBACK_MIN_WORDS,
)

_WORD_RE = re.compile(r"[a-z0-9][a-z0-9'+#.-]*", re.IGNORECASE)

STOP_WORDS = {
    "about", "above", "after", "again", "also", "been", "before", "being", "both", "could",
    "does", "doing", "down", "during", "each", "from", "further", "have", "having", "here",
    "into", "just", "more", "most", "only", "other", "over", "same", "should", "some",
    "such", "than", "that", "their", "them", "then", "there", "these", "they", "this",
    "those", "through", "under", "until", "very", "were", "what", "when", "where", "which",
    "while", "will", "with", "would", "your", "core", "relevant", "role",
}


def tokenize(text: str) -> list[str]:
    return [w.strip(".'-").lower() for w in _WORD_RE.findall(str(text or "")) if w.strip(".'-")]


def candidate_words(turns: list[TranscriptTurn]) -> list[str]:
    words: list[str] = []
    for turn in turns:
        if turn.role == ROLE_USER:
            words.extend(tokenize(turn.text))
    return words


def keywords(text: str) -> set[str]:
    return {w for w in tokenize(text) if len(w) >= 4 and w.isalpha() and w not in STOP_WORDS}


def round_to_granularity(value: float, step: float) -> float:
    return js_round(value / step) * step


def fallback_score(parameter: RubricParameter, words: list[str]) -> float:
    scale = parameter.scale
    if len(words) < FALLBACK_MIN_WORDS:
        return scale.min

    length_share = min(len(words), FALLBACK_LENGTH_CAP_WORDS) / FALLBACK_LENGTH_CAP_WORDS * FALLBACK_LENGTH_SHARE
    overlap = keywords(f"{parameter.name} {parameter.description}") & set(words)
    bonus = min(FALLBACK_KEYWORD_CAP, len(overlap) * FALLBACK_KEYWORD_STEP)

    raw = scale.min + scale.span * (length_share + bonus)
    return scale.clamp(round_to_granularity(raw, scale_granularity(scale.type)))


def score_parameter(parameter: RubricParameter, words: list[str]) -> ParameterScore:
    score = fallback_score(parameter, words)
    if len(words) < FALLBACK_MIN_WORDS:
        justification = f"Insufficient evidence: {len(words)} candidate words."
    else:
        justification = f"Heuristic score from {len(words)} candidate words and topic overlap."
    return ParameterScore(
        parameter_id=parameter.id,
        name=parameter.name,
        score=score,
        justification=justification,
        source=SCORING_FALLBACK,
    )


def fallback_summary(word_count: int, scores: list[ParameterScore], relative: dict[str, float]) -> str:
    if word_count < FALLBACK_MIN_WORDS or not scores:
        return f"Automatic summary: the candidate said {word_count} words, too little evidence for a detailed assessment."

    ranked = sorted(scores, key=lambda s: (-relative.get(s.parameter_id, 0.0), s.name))
    strongest = ranked[0].name
    weakest = ranked[-1].name
    return (
        f"Automatic summary based on {word_count} candidate words. "
        f"Strongest area: {strongest}. Weakest area: {weakest}."
    )
