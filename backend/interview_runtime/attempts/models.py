from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"


@dataclass
class TranscriptTurn:
    role: str
    text: str
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def from_dict(cls, raw: dict) -> "TranscriptTurn":
        raw = raw or {}
        role = str(raw.get("role") or ROLE_USER).strip().lower()
        if role not in {ROLE_USER, ROLE_ASSISTANT}:
            role = ROLE_ASSISTANT if role in {"bot", "interviewer", "system"} else ROLE_USER
        text = str(raw.get("text") if raw.get("text") is not None else raw.get("content") or "").strip()
        try:
            timestamp = float(raw.get("timestamp") or raw.get("ts") or 0.0)
        except (TypeError, ValueError):
            timestamp = 0.0
        return cls(role=role, text=text, timestamp=timestamp)

    def to_dict(self) -> dict:
        return asdict(self)


def parse_turns(raw_turns) -> list[TranscriptTurn]:
    turns: list[TranscriptTurn] = []
    for item in list(raw_turns or []):
        if isinstance(item, TranscriptTurn):
            turns.append(item)
        elif isinstance(item, dict):
            turns.append(TranscriptTurn.from_dict(item))
    return turns


def has_content(raw_turns) -> bool:
    return any(turn.text for turn in parse_turns(raw_turns))


@dataclass
class AttemptConfig:
    """What the session side learns about an invitation before starting."""

    token: str
    interview_id: str
    candidate_id: str
    title: str = ""
    interviewer_role: str = ""
    context: str = ""
    duration_minutes: float = 0.0
    interaction_mode: str = "VOICE"
    speech_provider: str = ""
    skills: list[str] = field(default_factory=list)
    attempts_allowed: int = 1
    attempts_used: int = 0
    attempts_exhausted: bool = False

    @classmethod
    def from_payload(cls, token: str, payload: dict) -> "AttemptConfig":
        payload = payload or {}
        interview = payload.get("interview") or {}
        try:
            duration = float(interview.get("durationMinutes") or 0.0)
        except (TypeError, ValueError):
            duration = 0.0
        allowed = max(1, int(payload.get("attemptsAllowed") or 1))
        used = max(0, int(payload.get("attemptsUsed") or 0))
        return cls(
            token=str(token or ""),
            interview_id=str(interview.get("id") or payload.get("interviewId") or ""),
            candidate_id=str(payload.get("candidateId") or ""),
            title=str(interview.get("title") or ""),
            interviewer_role=str(interview.get("interviewerRole") or ""),
            context=str(interview.get("context") or ""),
            duration_minutes=max(0.0, duration),
            interaction_mode=str(interview.get("interactionMode") or "VOICE").upper(),
            speech_provider=str(interview.get("speechProvider") or ""),
            skills=[str(s).strip() for s in list(interview.get("skills") or []) if str(s).strip()],
            attempts_allowed=allowed,
            attempts_used=used,
            attempts_exhausted=bool(payload.get("attemptsExhausted")) or used >= allowed,
        )

    @property
    def duration_sec(self) -> float:
        return self.duration_minutes * 60.0
