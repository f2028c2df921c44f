from __future__ import annotations

from dataclasses import dataclass, field

SCALE_ONE_TO_FIVE = "1-5"
SCALE_PERCENTAGE = "percentage"
SCALE_STARS = "stars"
SCALE_TYPES = (SCALE_ONE_TO_FIVE, SCALE_PERCENTAGE, SCALE_STARS)

SCORING_LLM = "llm"
SCORING_FALLBACK = "fallback"
SCORING_MIXED = "mixed"


@dataclass
class Scale:
    type: str = SCALE_ONE_TO_FIVE
    min: float = 1.0
    max: float = 5.0

    @property
    def span(self) -> float:
        return self.max - self.min

    def clamp(self, value: float) -> float:
        return max(self.min, min(self.max, value))

    def to_dict(self) -> dict:
        return {"type": self.type, "min": self.min, "max": self.max}


@dataclass
class RubricParameter:
    id: str
    name: str
    description: str = ""
    weight: float = 0.0
    scale: Scale = field(default_factory=Scale)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "weight": self.weight,
            "scale": self.scale.to_dict(),
        }


@dataclass
class Rubric:
    parameters: list[RubricParameter] = field(default_factory=list)
    include_overall: bool = True
    include_skill_levels: bool = True
    cefr_enabled: bool = False

    def by_id(self) -> dict[str, RubricParameter]:
        return {p.id: p for p in self.parameters}

    def to_dict(self) -> dict:
        return {
            "parameters": [p.to_dict() for p in self.parameters],
            "includeOverall": self.include_overall,
            "includeSkillLevels": self.include_skill_levels,
            "cefrEnabled": self.cefr_enabled,
        }


@dataclass
class ParameterScore:
    parameter_id: str
    name: str
    score: float
    justification: str = ""
    cefr_band: str | None = None
    source: str = SCORING_LLM

    def to_dict(self) -> dict:
        item = {
            "id": self.parameter_id,
            "name": self.name,
            "score": self.score,
            "justification": self.justification,
            "source": self.source,
        }
        if self.cefr_band:
            item["cefr"] = self.cefr_band
        return item


@dataclass
class Report:
    parameters: list[ParameterScore]
    summary: str
    overall: int
    scoring_mode: str

    def to_dict(self) -> dict:
        return {
            "parameters": [p.to_dict() for p in self.parameters],
            "summary": self.summary,
            "overall": self.overall,
            "scoringMode": self.scoring_mode,
        }
