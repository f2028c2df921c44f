from interview_runtime.attempts.models import AttemptConfig, TranscriptTurn, has_content, parse_turns
from interview_runtime.attempts.policy import (
    is_exhausted,
    photo_target_attempt,
    resolve_allowed_attempts,
    transcript_target_attempt,
)

__all__ = [
    "AttemptConfig",
    "TranscriptTurn",
    "has_content",
    "parse_turns",
    "is_exhausted",
    "photo_target_attempt",
    "resolve_allowed_attempts",
    "transcript_target_attempt",
]
