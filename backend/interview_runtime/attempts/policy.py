import math

from interview_runtime.errors import AttemptsExhaustedError


def _positive_int(value) -> int | None:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return int(number)


def resolve_allowed_attempts(invitation_max=None, interview_max=None) -> int:
    """Invitation override first, then the interview setting, then 1; never below 1."""
    for candidate in (invitation_max, interview_max):
        value = _positive_int(candidate)
        if value is not None:
            return max(1, value)
    return 1


def is_exhausted(used: int, allowed: int) -> bool:
    return int(used) >= int(allowed)


def transcript_target_attempt(
    latest_number: int | None,
    latest_has_content: bool,
    allowed: int,
    force_new_attempt: bool = False,
) -> int:
    """
    Attempt number a transcript save writes to:
    no attempt yet -> 1; latest is an empty placeholder -> reuse it;
    otherwise the latest, or the next one when force_new_attempt is set.
    """
    if not latest_number:
        target = 1
    elif not latest_has_content:
        target = int(latest_number)
    else:
        target = int(latest_number) + 1 if force_new_attempt else int(latest_number)

    if target > allowed:
        raise AttemptsExhaustedError()
    return target


def photo_target_attempt(latest_number: int | None, latest_has_content: bool, latest_open: bool = False) -> int:
    """
    A proctor photo attaches to an empty placeholder or to an attempt that
    is still in progress; otherwise it opens a placeholder for the next one.
    """
    if latest_number and (not latest_has_content or latest_open):
        return int(latest_number)
    return int(latest_number or 0) + 1
