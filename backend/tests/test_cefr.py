import pytest

from interview_runtime.reports.cefr import align_score_and_band, cefr_to_score, normalize_band, score_to_cefr
from interview_runtime.reports.models import Scale

ONE_TO_FIVE = Scale(type="1-5", min=1, max=5)
PERCENTAGE = Scale(type="percentage", min=0, max=100)


def test_b2_maps_to_4_on_one_to_five_and_65_on_percentage():
    assert cefr_to_score("B2", ONE_TO_FIVE) == 4.0
    assert cefr_to_score("B2", PERCENTAGE) == 65.0


def test_band_ends_map_to_scale_ends():
    assert cefr_to_score("A1", ONE_TO_FIVE) == 1.0
    assert cefr_to_score("C2", ONE_TO_FIVE) == 5.0
    assert cefr_to_score("c2", PERCENTAGE) == 95.0


def test_stars_use_half_steps():
    stars = Scale(type="stars", min=0, max=5)
    assert cefr_to_score("A2", stars) == 1.0
    assert cefr_to_score("B1", stars) == 2.0


def test_score_to_band_picks_highest_band_not_above_score():
    assert score_to_cefr(4.0, ONE_TO_FIVE) == "B2"
    assert score_to_cefr(5.0, ONE_TO_FIVE) == "C2"
    assert score_to_cefr(70, PERCENTAGE) == "B2"
    assert score_to_cefr(0, PERCENTAGE) == "A1"


def test_align_keeps_numeric_score_unless_a_band_is_given():
    assert align_score_and_band(3.7, ONE_TO_FIVE) == (3.7, "B1")
    assert align_score_and_band(2.0, ONE_TO_FIVE, "c1") == (5.0, "C1")
    assert align_score_and_band(50, PERCENTAGE, "nonsense") == (50, "B1")
    assert align_score_and_band(0, PERCENTAGE) == (0, "A1")
    assert align_score_and_band(100, PERCENTAGE) == (100, "C2")


def test_unknown_band():
    assert normalize_band("D1") is None
    with pytest.raises(ValueError):
        cefr_to_score("D1", ONE_TO_FIVE)
