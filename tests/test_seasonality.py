"""Seasonality detector tests."""

import pytest

from keyword_trends.analysis import SeasonalityDetector
from keyword_trends.config import AnalysisConfig
from keyword_trends.models import SeasonalityArchetype, SeasonalityProfile


@pytest.fixture
def detector():
    return SeasonalityDetector(AnalysisConfig())


def _assert_consistent(profile):
    assert 0.0 <= profile.strength <= 1.0
    assert profile.score == round(profile.strength * 100)
    assert not set(profile.peak_periods) & set(profile.low_periods)


# ---------------------------------------------------------------------------
# Short or flat history
# ---------------------------------------------------------------------------

def test_short_series_is_flat(detector, make_series):
    profile = detector.detect(make_series("kw", [100, 5000] * 5 + [100]))
    assert profile.strength == 0.0
    assert profile.score == 0
    assert profile.archetype == SeasonalityArchetype.STABLE
    assert profile.peak_periods == ()
    assert profile.low_periods == ()


def test_missing_months_count_against_minimum(detector, make_series):
    volumes = [1000] * 12
    volumes[4] = None
    profile = detector.detect(make_series("kw", volumes))
    assert profile == SeasonalityProfile.flat()


def test_constant_series_is_stable(detector, make_series):
    profile = detector.detect(make_series("kw", [1000] * 24))
    _assert_consistent(profile)
    assert profile.strength == 0.0
    assert profile.archetype == SeasonalityArchetype.STABLE
    assert profile.peak_periods == ()


def test_weak_variation_is_stable(detector, make_series, make_seasonal):
    profile = detector.detect(make_series("kw", make_seasonal({6, 7, 8}, peak=1100)))
    _assert_consistent(profile)
    assert 0 < profile.strength < 0.2
    assert profile.archetype == SeasonalityArchetype.STABLE


# ---------------------------------------------------------------------------
# Archetypes
# ---------------------------------------------------------------------------

def test_summer_peaks(detector, make_series, make_seasonal):
    profile = detector.detect(make_series("kw", make_seasonal({6, 7, 8})))
    _assert_consistent(profile)
    assert profile.archetype == SeasonalityArchetype.HIGH_SUMMER
    assert profile.peak_periods == ("June", "July", "August")
    assert "January" in profile.low_periods
    assert profile.strength == 1.0
    assert profile.score == 100
    assert profile.monthly_factors["June"] == 2.0


@pytest.mark.parametrize("peaks,expected", [
    ({11, 12}, SeasonalityArchetype.HOLIDAY_PEAKS),
    ({9, 10}, SeasonalityArchetype.BACK_TO_SCHOOL),
    ({12, 1, 2}, SeasonalityArchetype.HIGH_WINTER),
    ({3, 4, 5}, SeasonalityArchetype.IRREGULAR),
    # January belongs to several month sets; holiday peaks wins the tie
    ({1}, SeasonalityArchetype.HOLIDAY_PEAKS),
])
def test_archetype_from_peak_months(detector, make_series, make_seasonal, peaks, expected):
    profile = detector.detect(make_series("kw", make_seasonal(peaks)))
    _assert_consistent(profile)
    assert profile.archetype == expected


def test_school_year_peaks(detector, make_series):
    # Marketing-style year: January and September high, December up, summer down
    factors = {1: 1.3, 9: 1.3, 12: 1.2, 7: 0.8, 8: 0.8}
    year = [round(1000 * factors.get(m, 1.0)) for m in range(1, 13)]
    profile = detector.detect(make_series("kw", year * 2))

    _assert_consistent(profile)
    assert profile.peak_periods == ("January", "September", "December")
    assert profile.low_periods == ("July", "August")
    assert profile.archetype == SeasonalityArchetype.BACK_TO_SCHOOL


def test_school_year_signature_breaks_ties(detector):
    assert detector.classify_archetype([1, 9, 12], 0.5) == SeasonalityArchetype.BACK_TO_SCHOOL
    assert detector.classify_archetype([1, 12], 0.5) == SeasonalityArchetype.HOLIDAY_PEAKS
    assert detector.classify_archetype([1, 9, 11, 12], 0.5) == SeasonalityArchetype.HOLIDAY_PEAKS


def test_classify_archetype_thresholds(detector):
    assert detector.classify_archetype([6, 7], 0.1) == SeasonalityArchetype.STABLE
    assert detector.classify_archetype([], 0.9) == SeasonalityArchetype.STABLE
    # Half the peaks in summer still meets the minimum share
    assert detector.classify_archetype([6, 4], 0.9) == SeasonalityArchetype.HIGH_SUMMER
    assert detector.classify_archetype([6, 3, 4], 0.9) == SeasonalityArchetype.IRREGULAR


def test_partial_year_lows(detector, make_series, make_seasonal):
    volumes = make_seasonal({11, 12}, lows={6, 7})
    profile = detector.detect(make_series("kw", volumes))
    _assert_consistent(profile)
    assert profile.peak_periods == ("November", "December")
    assert profile.low_periods == ("June", "July")


def test_monthly_averages_span_years(detector, make_series):
    volumes = [100] * 12 + [300] * 12
    averages = detector.monthly_averages(make_series("kw", volumes))
    assert list(averages.index) == list(range(1, 13))
    assert (averages == 200).all()


# ---------------------------------------------------------------------------
# Profile invariants
# ---------------------------------------------------------------------------

def test_profile_rejects_out_of_range_strength():
    with pytest.raises(ValueError):
        SeasonalityProfile(archetype=SeasonalityArchetype.STABLE, strength=1.5)


def test_profile_rejects_overlapping_months():
    with pytest.raises(ValueError):
        SeasonalityProfile(
            archetype=SeasonalityArchetype.HIGH_SUMMER,
            strength=0.5,
            peak_periods=("June",),
            low_periods=("June",),
        )
