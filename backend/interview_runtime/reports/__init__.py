from interview_runtime.reports.engine import MODE_AUTO, MODE_FALLBACK, MODE_LLM, ReportScoringEngine
from interview_runtime.reports.models import ParameterScore, Report, Rubric, RubricParameter, Scale
from interview_runtime.reports.rubric import default_rubric, normalize_rubric

__all__ = [
    "MODE_AUTO",
    "MODE_FALLBACK",
    "MODE_LLM",
    "ReportScoringEngine",
    "ParameterScore",
    "Report",
    "Rubric",
    "RubricParameter",
    "Scale",
    "default_rubric",
    "normalize_rubric",
]
