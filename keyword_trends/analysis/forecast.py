"""
Trend + seasonality volume forecast.

For each future period i (1..h):
- Trend: last observed volume grown by the classified percentage change,
  attenuated by decay(i) = 1 / (1 + rate * i)
- Seasonality: +X% in peak months, -X% in low months, where X is fixed by
  config or derived from the seasonal strength
- Confidence: linear decay from base_confidence, less a constant penalty
  when history was too short to assess trend or seasonality, floored at
  min_confidence
"""

import logging

from keyword_trends.config.settings import AnalysisConfig
from keyword_trends.errors import InsufficientHistory
from keyword_trends.models.trend_data import (
    ForecastPoint,
    KeywordSeries,
    SeasonalityProfile,
    TrendSignal,
    month_label,
)


logger = logging.getLogger(__name__)


FACTOR_TREND = "trend"
FACTOR_SEASONALITY = "seasonality"
FACTOR_INSUFFICIENT_HISTORY = "insufficient_history"


class ForecastGenerator:
    """Projects future monthly volumes with decaying confidence."""

    def __init__(self, config: AnalysisConfig | None = None) -> None:
        self.config = config or AnalysisConfig()

    def decay(self, i: int) -> float:
        """Attenuation of the trend's influence i periods ahead."""
        return 1.0 / (1.0 + self.config.trend_decay_rate * i)

    def seasonal_adjustment(self, seasonality: SeasonalityProfile) -> float:
        """Fractional uplift (peak) / reduction (low) applied to seasonal months."""
        if self.config.seasonal_adjustment is not None:
            return self.config.seasonal_adjustment
        return seasonality.strength * self.config.seasonal_amplitude

    def confidence(self, i: int, penalty: float = 0.0) -> float:
        """Confidence for the i-th period ahead, never below min_confidence."""
        raw = max(
            self.config.min_confidence,
            self.config.base_confidence - self.config.confidence_step * i - penalty,
        )
        return round(min(1.0, max(0.0, raw)), 4)

    def trend_projection(
        self, series: KeywordSeries, trend: TrendSignal | None, i: int
    ) -> float:
        """
        Trend-only projection i periods ahead (before seasonality and rounding).

        Raises:
            InsufficientHistory: The series has no observed volume at all
        """
        last = series.last_observed
        if last is None:
            raise InsufficientHistory("No observed volume to project from", series.keyword)
        percentage = trend.percentage_change if trend is not None else 0.0
        return last.volume * (1 + percentage / 100 * self.decay(i))

    def generate(
        self,
        series: KeywordSeries,
        trend: TrendSignal | None,
        seasonality: SeasonalityProfile,
        horizon: int | None = None,
    ) -> tuple[ForecastPoint, ...]:
        """
        Forecast the next ``horizon`` months after the series' last period.

        Args:
            series: Validated keyword series with at least one observed volume
            trend: Trend classification, or None when history was too short
            seasonality: Seasonality profile of the same series
            horizon: Number of future periods (defaults to config.forecast_horizon)

        Returns:
            Tuple of ForecastPoint ordered by period
        """
        h = horizon if horizon is not None else self.config.forecast_horizon
        if h <= 0 or len(series) == 0:
            return ()

        insufficient = (
            trend is None
            or series.observed_count < self.config.min_seasonal_periods
        )
        penalty = self.config.insufficient_history_penalty if insufficient else 0.0
        adjustment = self.seasonal_adjustment(seasonality)
        peaks = set(seasonality.peak_periods)
        lows = set(seasonality.low_periods)
        last_period = series[-1].period

        points = []
        for i in range(1, h + 1):
            period = last_period + i
            base = self.trend_projection(series, trend, i)

            label = month_label(period.month)
            multiplier = 1.0
            if adjustment > 0 and label in peaks:
                multiplier = 1.0 + adjustment
            elif adjustment > 0 and label in lows:
                multiplier = 1.0 - adjustment

            predicted = max(0, int(round(base * multiplier)))
            confidence = self.confidence(i, penalty)

            factors = []
            if trend is not None and trend.percentage_change != 0:
                factors.append(FACTOR_TREND)
            if multiplier != 1.0:
                factors.append(FACTOR_SEASONALITY)
            if insufficient:
                factors.append(FACTOR_INSUFFICIENT_HISTORY)

            points.append(ForecastPoint(
                period=period,
                predicted_volume=predicted,
                confidence=confidence,
                factors=tuple(factors),
                lower_bound=max(0, int(round(predicted * confidence))),
                upper_bound=int(round(predicted * (2 - confidence))),
            ))

        logger.debug(
            f"{series.keyword!r}: forecast {h} periods from {last_period}, "
            f"seasonal adjustment {adjustment:.3f}"
        )
        return tuple(points)
