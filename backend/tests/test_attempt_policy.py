import pytest

from interview_runtime.attempts.models import AttemptConfig, TranscriptTurn, has_content, parse_turns
from interview_runtime.attempts.policy import (
    is_exhausted,
    photo_target_attempt,
    resolve_allowed_attempts,
    transcript_target_attempt,
)
from interview_runtime.errors import AttemptsExhaustedError


def test_allowed_attempts_prefers_invitation_then_interview_then_one():
    assert resolve_allowed_attempts(3, 1) == 3
    assert resolve_allowed_attempts(None, 2) == 2
    assert resolve_allowed_attempts(None, None) == 1
    assert resolve_allowed_attempts(0, 5) == 1
    assert resolve_allowed_attempts("abc", 4) == 4


def test_exhausted_when_used_reaches_allowed():
    assert is_exhausted(1, 1) is True
    assert is_exhausted(0, 1) is False


def test_first_save_opens_attempt_one():
    assert transcript_target_attempt(None, False, allowed=1) == 1


def test_empty_placeholder_is_reused():
    assert transcript_target_attempt(2, False, allowed=2) == 2


def test_existing_content_is_overwritten_unless_forced():
    assert transcript_target_attempt(1, True, allowed=2) == 1
    assert transcript_target_attempt(1, True, allowed=2, force_new_attempt=True) == 2


def test_forced_attempt_beyond_allowed_is_refused():
    with pytest.raises(AttemptsExhaustedError) as info:
        transcript_target_attempt(2, True, allowed=2, force_new_attempt=True)
    assert info.value.status_code == 403


def test_photo_attaches_to_placeholder_or_open_attempt():
    assert photo_target_attempt(None, False) == 1
    assert photo_target_attempt(1, False) == 1
    assert photo_target_attempt(1, True, latest_open=True) == 1
    assert photo_target_attempt(1, True) == 2


def test_turns_accept_text_or_content_and_map_roles():
    turns = parse_turns(
        [
            {"role": "interviewer", "content": "Hi"},
            {"role": "user", "text": " hello "},
            "garbage",
        ]
    )
    assert [(t.role, t.text) for t in turns] == [("assistant", "Hi"), ("user", "hello")]
    assert has_content([{"role": "user", "text": "  "}]) is False
    assert has_content([TranscriptTurn(role="user", text="yes")]) is True


def test_attempt_config_from_payload():
    config = AttemptConfig.from_payload(
        "tok",
        {
            "candidateId": "c1",
            "attemptsAllowed": 2,
            "attemptsUsed": 2,
            "interview": {"id": "i1", "durationMinutes": "15", "interactionMode": "text_only", "skills": ["Go", " "]},
        },
    )
    assert config.interview_id == "i1"
    assert config.duration_sec == 900.0
    assert config.interaction_mode == "TEXT_ONLY"
    assert config.skills == ["Go"]
    assert config.attempts_exhausted is True
