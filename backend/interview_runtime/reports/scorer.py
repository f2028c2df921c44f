import math

from interview_runtime.reports.models import ParameterScore, Rubric, Scale
from interview_runtime.reports.rubric import js_round


def relative_score(score: float, scale: Scale) -> float:
    """(score - min) / (max - min), clamped to [0, 1]."""
    if scale.span <= 0:
        return 0.0
    return (scale.clamp(score) - scale.min) / scale.span


def calculate_overall(rubric: Rubric, scores: list[ParameterScore]) -> int:
    """
    Weighted mean of per-parameter percentages. Parameters with a zero or
    invalid weight, or a non-numeric score, drop out of both sums.
    """
    params = rubric.by_id()
    total_weight = 0.0
    accumulated = 0.0
    for item in scores:
        parameter = params.get(item.parameter_id)
        if parameter is None:
            continue
        weight = parameter.weight
        try:
            score = float(item.score)
        except (TypeError, ValueError):
            continue
        if not math.isfinite(weight) or weight <= 0 or not math.isfinite(score):
            continue
        accumulated += relative_score(score, parameter.scale) * 100.0 * weight
        total_weight += weight

    if total_weight <= 0:
        return 0
    return max(0, min(100, js_round(accumulated / total_weight)))
