"""Detect calendar-month seasonality in keyword volume.

Approach:
1. Average the observed volume of each calendar month across all years
2. Strength = coefficient of variation of those averages, scaled so that
   CV >= cv_cap (0.5 by default) saturates to 1.0
3. Peaks/lows = months beyond mean +/- 0.5 std of the monthly averages
4. Archetype = named month set holding most of the peak months
"""

import logging

import pandas as pd

from keyword_trends.config.settings import AnalysisConfig
from keyword_trends.models.trend_data import (
    KeywordSeries,
    SeasonalityArchetype,
    SeasonalityProfile,
    month_label,
)


logger = logging.getLogger(__name__)


# Calendar months characterising each archetype. Order is tie-break precedence.
ARCHETYPE_MONTHS: dict[SeasonalityArchetype, frozenset[int]] = {
    SeasonalityArchetype.HOLIDAY_PEAKS: frozenset({11, 12, 1}),
    SeasonalityArchetype.BACK_TO_SCHOOL: frozenset({1, 8, 9, 10}),
    SeasonalityArchetype.HIGH_SUMMER: frozenset({6, 7, 8}),
    SeasonalityArchetype.HIGH_WINTER: frozenset({12, 1, 2}),
}

# September and January both peaking is the school-year signature; it takes
# precedence over holiday_peaks on equal share.
SCHOOL_YEAR_SIGNATURE = frozenset({9, 1})


class SeasonalityDetector:
    """Scores seasonal strength and classifies the seasonal archetype."""

    def __init__(self, config: AnalysisConfig | None = None) -> None:
        self.config = config or AnalysisConfig()

    def monthly_averages(self, series: KeywordSeries) -> pd.Series:
        """Mean observed volume per calendar month (index 1-12, missing months absent)."""
        volumes = series.volumes.dropna()
        if volumes.empty:
            return pd.Series(dtype="float64")
        return volumes.groupby(volumes.index.month).mean().sort_index()

    def classify_archetype(
        self, peak_months: list[int], strength: float
    ) -> SeasonalityArchetype:
        """
        Deterministic archetype lookup from the peak months.

        Weak or peakless profiles are stable; strong profiles whose peaks do
        not concentrate in any named month set are irregular.
        """
        if strength < self.config.archetype_min_strength or not peak_months:
            return SeasonalityArchetype.STABLE

        order = list(ARCHETYPE_MONTHS)
        if SCHOOL_YEAR_SIGNATURE <= set(peak_months):
            order.remove(SeasonalityArchetype.BACK_TO_SCHOOL)
            order.insert(0, SeasonalityArchetype.BACK_TO_SCHOOL)

        best = None
        best_share = 0.0
        for archetype in order:
            months = ARCHETYPE_MONTHS[archetype]
            share = sum(1 for m in peak_months if m in months) / len(peak_months)
            if share > best_share:
                best, best_share = archetype, share

        if best is None or best_share < self.config.archetype_min_share:
            return SeasonalityArchetype.IRREGULAR
        return best

    def detect(self, series: KeywordSeries) -> SeasonalityProfile:
        """
        Build the seasonality profile of a series.

        Series with fewer than min_seasonal_periods months (12 by default),
        or fewer observed volumes than that, get a flat profile: strength 0,
        archetype stable, no peaks or lows.
        """
        minimum = self.config.min_seasonal_periods
        if len(series) < minimum or series.observed_count < minimum:
            logger.debug(
                f"{series.keyword!r}: {series.observed_count} observed months, "
                f"need {minimum} for seasonality"
            )
            return SeasonalityProfile.flat()

        monthly = self.monthly_averages(series)
        if len(monthly) < 2:
            return SeasonalityProfile.flat()

        mean = float(monthly.mean())
        std = float(monthly.std(ddof=0))

        cv = std / mean if mean > 0 else 0.0
        strength = round(min(1.0, cv / self.config.cv_cap), 4)

        upper = mean + self.config.peak_band * std
        lower = mean - self.config.peak_band * std
        peak_months = [int(m) for m, avg in monthly.items() if avg > upper]
        low_months = [int(m) for m, avg in monthly.items() if avg < lower]

        factors = {
            month_label(int(m)): round(float(avg) / mean, 4) if mean > 0 else 1.0
            for m, avg in monthly.items()
        }

        return SeasonalityProfile(
            archetype=self.classify_archetype(peak_months, strength),
            strength=strength,
            peak_periods=tuple(month_label(m) for m in peak_months),
            low_periods=tuple(month_label(m) for m in low_months),
            monthly_factors=factors,
        )
