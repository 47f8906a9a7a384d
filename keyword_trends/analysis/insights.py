"""Structured insights from trend, seasonality and forecast outputs."""

from collections.abc import Sequence

import pandas as pd

from keyword_trends.config.settings import AnalysisConfig
from keyword_trends.models.trend_data import (
    ForecastPoint,
    Impact,
    Insight,
    InsightType,
    SeasonalityProfile,
    TrendSignal,
    month_label,
)


class InsightSynthesizer:
    """Emits typed insight records; no state, no side effects."""

    def __init__(self, config: AnalysisConfig | None = None) -> None:
        self.config = config or AnalysisConfig()

    def _trend_change(
        self, trend: TrendSignal, forecast: Sequence[ForecastPoint]
    ) -> Insight | None:
        magnitude = abs(trend.percentage_change)
        if magnitude < self.config.significant_change_threshold:
            return None

        evidence = {
            "direction": trend.direction.value,
            "percentage_change": round(trend.percentage_change, 2),
            "baseline_volume": trend.baseline_volume,
            "current_volume": trend.current_volume,
            "window": trend.window,
        }
        if forecast:
            evidence["next_predicted_volume"] = forecast[0].predicted_volume

        return Insight(
            type=InsightType.TREND_CHANGE,
            impact=Impact.HIGH if magnitude >= self.config.high_impact_threshold else Impact.MEDIUM,
            actionable=True,
            evidence=evidence,
        )

    def _seasonal_opportunity(
        self, seasonality: SeasonalityProfile, current_period: pd.Period | None
    ) -> Insight | None:
        if current_period is None or seasonality.strength < self.config.seasonal_opportunity_strength:
            return None

        current = month_label(current_period.month)
        upcoming = month_label((current_period + 1).month)
        if current in seasonality.peak_periods:
            month, timing = current, "current"
        elif upcoming in seasonality.peak_periods:
            month, timing = upcoming, "next"
        else:
            return None

        return Insight(
            type=InsightType.SEASONAL_OPPORTUNITY,
            impact=Impact.MEDIUM,
            actionable=True,
            evidence={
                "month": month,
                "timing": timing,
                "archetype": seasonality.archetype.value,
                "strength": seasonality.strength,
                "seasonal_factor": seasonality.monthly_factors.get(month, 1.0),
                "peak_periods": list(seasonality.peak_periods),
            },
        )

    def _competitor_movement(self, trend: TrendSignal) -> Insight | None:
        # Rising difficulty or CPC means more sites/advertisers competing
        difficulty_up = trend.difficulty_change >= self.config.difficulty_shift_points
        cpc_up = trend.cpc_change_pct >= self.config.cpc_shift_pct
        if not (difficulty_up or cpc_up):
            return None

        return Insight(
            type=InsightType.COMPETITOR_MOVEMENT,
            impact=Impact.HIGH if difficulty_up and cpc_up else Impact.MEDIUM,
            actionable=True,
            evidence={
                "difficulty_change": trend.difficulty_change,
                "cpc_change_pct": trend.cpc_change_pct,
                "window": trend.window,
            },
        )

    def _market_shift(self, trend: TrendSignal) -> Insight | None:
        short = trend.momentum.get("short", 0.0)
        long = trend.momentum.get("long", 0.0)
        threshold = self.config.momentum_shift_threshold
        if abs(short) < threshold or abs(long) < threshold or (short > 0) == (long > 0):
            return None

        return Insight(
            type=InsightType.MARKET_SHIFT,
            impact=Impact.LOW,
            actionable=False,
            evidence={
                "short_term_momentum": short,
                "long_term_momentum": long,
                "volatility_level": trend.volatility_level,
            },
        )

    def synthesize(
        self,
        trend: TrendSignal | None,
        seasonality: SeasonalityProfile,
        forecast: Sequence[ForecastPoint] = (),
        current_period: pd.Period | None = None,
    ) -> tuple[Insight, ...]:
        """
        Build the insight list for one keyword.

        Args:
            trend: Trend classification, or None when unavailable
            seasonality: Seasonality profile
            forecast: Forecast points (may be empty)
            current_period: Last period of the analysed series; its month and
                the following one are checked against the peak months

        Returns:
            Insights ordered trend_change, seasonal_opportunity,
            competitor_movement, market_shift. Often empty.
        """
        candidates = [self._seasonal_opportunity(seasonality, current_period)]
        if trend is not None:
            candidates = [
                self._trend_change(trend, forecast),
                candidates[0],
                self._competitor_movement(trend),
                self._market_shift(trend),
            ]
        return tuple(insight for insight in candidates if insight is not None)
