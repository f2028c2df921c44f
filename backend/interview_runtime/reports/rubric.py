from __future__ import annotations

import math
import re
import uuid

from interview_runtime.reports.models import (
    SCALE_ONE_TO_FIVE,
    SCALE_PERCENTAGE,
    SCALE_TYPES,
    Rubric,
    RubricParameter,
    Scale,
)


def js_round(value: float) -> int:
    """Half-up rounding (2.5 -> 3), unlike Python's banker's round()."""
    return int(math.floor(float(value) + 0.5))


def _safe_float(value, default: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", str(name or "").lower()).strip("_")


def default_scale_bounds(scale_type: str) -> tuple[float, float]:
    if scale_type == SCALE_PERCENTAGE:
        return 0.0, 100.0
    return 1.0, 5.0


def normalize_scale(raw) -> Scale:
    raw = raw if isinstance(raw, dict) else {}
    scale_type = str(raw.get("type") or SCALE_ONE_TO_FIVE).strip().lower()
    if scale_type not in SCALE_TYPES:
        scale_type = SCALE_ONE_TO_FIVE
    default_min, default_max = default_scale_bounds(scale_type)
    low = _safe_float(raw.get("min"), default_min) if raw.get("min") is not None else default_min
    high = _safe_float(raw.get("max"), default_max) if raw.get("max") is not None else default_max
    if high <= low:
        low, high = default_min, default_max
    return Scale(type=scale_type, min=low, max=high)


def normalize_parameter(raw, index: int = 0) -> RubricParameter:
    if isinstance(raw, RubricParameter):
        raw = raw.to_dict()
    raw = raw if isinstance(raw, dict) else {}
    name = str(raw.get("name") or "").strip() or f"Parameter {index + 1}"
    param_id = str(raw.get("id") or "").strip() or _slug(name) or uuid.uuid4().hex
    weight = max(0.0, min(100.0, _safe_float(raw.get("weight"), 0.0)))
    return RubricParameter(
        id=param_id,
        name=name,
        description=str(raw.get("description") or "").strip(),
        weight=weight,
        scale=normalize_scale(raw.get("scale")),
    )


def normalize_weights(weights: list[float]) -> list[float]:
    """
    Scale weights proportionally so they sum to exactly 100. An all-zero
    list is left alone. The rounding remainder lands on the first weight
    that can absorb it without going negative or above 100.
    """
    total = sum(weights)
    if total <= 0 or total == 100:
        return list(weights)

    scaled = [float(js_round(w / total * 100.0)) for w in weights]
    diff = 100.0 - sum(scaled)
    if diff:
        for index, weight in enumerate(scaled):
            if 0.0 <= weight + diff <= 100.0:
                scaled[index] = weight + diff
                break
    return scaled


def normalize_rubric(raw) -> Rubric:
    if isinstance(raw, Rubric):
        raw = raw.to_dict()
    raw = raw if isinstance(raw, dict) else {}

    parameters: list[RubricParameter] = []
    seen: set[str] = set()
    for index, item in enumerate(list(raw.get("parameters") or [])):
        parameter = normalize_parameter(item, index)
        if parameter.id in seen:
            parameter.id = f"{parameter.id}_{index + 1}"
        seen.add(parameter.id)
        parameters.append(parameter)

    for parameter, weight in zip(parameters, normalize_weights([p.weight for p in parameters])):
        parameter.weight = weight

    def _flag(*keys: str, default: bool) -> bool:
        for key in keys:
            if key in raw and raw[key] is not None:
                return bool(raw[key])
        return default

    return Rubric(
        parameters=parameters,
        include_overall=_flag("includeOverall", "include_overall", default=True),
        include_skill_levels=_flag("includeSkillLevels", "include_skill_levels", default=True),
        cefr_enabled=_flag("cefrEnabled", "cefr_enabled", default=False),
    )


_BASE_PARAMETERS = [
    ("Communication", "Clarity, articulation, active listening", 20),
    ("Empathy", "Respectful tone, collaborative mindset", 10),
    ("Problem Solving", "Approach, trade-offs, structured thinking", 20),
    ("Technical Knowledge", "Core concepts relevant to the role", 30),
    ("Culture Fit", "Values alignment and ownership", 20),
]

_ROLE_TECHNICAL_SLOT = [
    (("frontend", "react"), ("Frontend Expertise", "React, state mgmt, performance, accessibility")),
    (("backend", "node"), ("Backend Expertise", "APIs, databases, scalability, reliability")),
    (("data",), ("Data Expertise", "SQL, modeling, pipelines, analysis")),
]


def default_rubric(interviewer_role: str = "") -> Rubric:
    """Used when an interview has no saved rubric."""
    role = str(interviewer_role or "").lower()
    base = list(_BASE_PARAMETERS)
    for needles, (name, description) in _ROLE_TECHNICAL_SLOT:
        if any(needle in role for needle in needles):
            base[3] = (name, description, 30)
            break

    return normalize_rubric(
        {
            "parameters": [
                {
                    "id": _slug(name),
                    "name": name,
                    "description": description,
                    "weight": weight,
                    "scale": {"type": SCALE_ONE_TO_FIVE, "min": 1, "max": 5},
                }
                for name, description, weight in base
            ],
            "includeOverall": True,
            "includeSkillLevels": True,
        }
    )
