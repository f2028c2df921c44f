import math

from interview_runtime.reports.models import SCALE_PERCENTAGE, SCALE_STARS, Scale

CEFR_BANDS = ("A1", "A2", "B1", "B2", "C1", "C2")

# midpoint of each band on a 0-100 scale
PERCENTAGE_MIDPOINTS = {"A1": 10, "A2": 25, "B1": 45, "B2": 65, "C1": 80, "C2": 95}


def scale_granularity(scale_type: str) -> float:
    return 0.5 if scale_type == SCALE_STARS else 1.0


def normalize_band(value) -> str | None:
    band = str(value or "").strip().upper()
    return band if band in CEFR_BANDS else None


def cefr_to_score(band: str, scale: Scale) -> float:
    """
    Percentage scales use the midpoint table (rescaled when the bounds are
    not 0-100). Other scales interpolate by rank, A1 = min and C2 = max,
    rounded up to the scale granularity.
    """
    band = normalize_band(band)
    if band is None:
        raise ValueError(f"Unknown CEFR band: {band!r}")

    if scale.type == SCALE_PERCENTAGE:
        return scale.clamp(scale.min + PERCENTAGE_MIDPOINTS[band] / 100.0 * scale.span)

    rank = CEFR_BANDS.index(band)
    raw = scale.min + rank / (len(CEFR_BANDS) - 1) * scale.span
    step = scale_granularity(scale.type)
    steps = math.ceil(round((raw - scale.min) / step, 9))
    return scale.clamp(scale.min + steps * step)


def score_to_cefr(score: float, scale: Scale) -> str:
    """Highest band whose mapped score does not exceed the given score."""
    chosen = CEFR_BANDS[0]
    for band in CEFR_BANDS:
        if cefr_to_score(band, scale) <= score + 1e-9:
            chosen = band
    return chosen


def align_score_and_band(score: float, scale: Scale, band: str | None = None) -> tuple[float, str]:
    """
    Return a (score, band) pair that agree. An explicit band sets the score;
    without one the numeric score stands and only the band label is derived.
    """
    explicit = normalize_band(band)
    if explicit is not None:
        return cefr_to_score(explicit, scale), explicit
    return score, score_to_cefr(score, scale)
