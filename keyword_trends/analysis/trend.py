"""Classify recent trend direction from a keyword's volume history."""

import numpy as np
import pandas as pd

from keyword_trends.config.settings import AnalysisConfig
from keyword_trends.errors import InsufficientHistory
from keyword_trends.models.trend_data import KeywordSeries, TrendDirection, TrendSignal


# Trailing observed periods used for each momentum horizon
MOMENTUM_HORIZONS: dict[str, int] = {
    "short": 3,
    "medium": 6,
    "long": 12,
}

# Upper bounds of each volatility level (score is 0-1)
VOLATILITY_LEVELS: list[tuple[float, str]] = [
    (0.2, "low"),
    (0.4, "medium"),
    (0.7, "high"),
]


class TrendClassifier:
    """Trailing-window trend classification."""

    def __init__(self, config: AnalysisConfig | None = None) -> None:
        self.config = config or AnalysisConfig()

    def direction_for(self, percentage: float) -> TrendDirection:
        """Map a percentage change onto up/down/stable."""
        if abs(percentage) < self.config.stable_threshold:
            return TrendDirection.STABLE
        return TrendDirection.UP if percentage > 0 else TrendDirection.DOWN

    def _volatility(self, volumes: pd.Series) -> tuple[float, str]:
        """
        Month-over-month return volatility.

        Returns 0-1 score: std of returns scaled by 10 and capped at 1.
        """
        observed = volumes.dropna()
        if len(observed) < 3:
            return 0.0, "low"

        previous = observed.shift(1)
        # Zero-volume months would divide by zero; treat them as 1
        returns = (observed - previous) / previous.where(previous != 0, 1.0)
        returns = returns.dropna()

        score = float(min(1.0, returns.std(ddof=0) * 10))
        score = round(score, 4)
        for ceiling, level in VOLATILITY_LEVELS:
            if score < ceiling:
                return score, level
        return score, "extreme"

    def _momentum(self, volumes: pd.Series) -> dict[str, float]:
        """Second-half vs first-half mean change over several trailing horizons."""
        observed = volumes.dropna().to_numpy()
        momentum = {}
        for name, periods in MOMENTUM_HORIZONS.items():
            values = observed[-periods:]
            if len(values) < 2:
                momentum[name] = 0.0
                continue
            half = len(values) // 2
            first = float(np.mean(values[:half]))
            second = float(np.mean(values[half:]))
            change = (second - first) / first if first > 0 else 0.0
            momentum[name] = round(float(np.clip(change, -1.0, 1.0)), 4)
        return momentum

    def classify(self, series: KeywordSeries, window: int | None = None) -> TrendSignal:
        """
        Classify the trend of a series over a trailing comparison window.

        Args:
            series: Validated keyword series
            window: Periods between baseline and current observation
                (defaults to config.comparison_window)

        Returns:
            TrendSignal with direction, percentage change and supporting metrics

        Raises:
            InsufficientHistory: Fewer than window + 1 observations, or the
                current or baseline month is a missing marker
        """
        w = window if window is not None else self.config.comparison_window
        if len(series) < w + 1:
            raise InsufficientHistory(
                f"Need {w + 1} observations for a {w}-period trend, have {len(series)}",
                series.keyword,
            )

        current = series[-1]
        baseline = series[-1 - w]
        if current.volume is None or baseline.volume is None:
            missing = current.period if current.volume is None else baseline.period
            raise InsufficientHistory(
                f"No volume for {missing}; cannot compare trend endpoints", series.keyword
            )

        if baseline.volume == 0:
            percentage = 0.0
            direction = TrendDirection.STABLE
        else:
            percentage = (current.volume - baseline.volume) / baseline.volume * 100
            direction = self.direction_for(percentage)

        cpc_change = 0.0
        if baseline.cpc > 0:
            cpc_change = round((current.cpc - baseline.cpc) / baseline.cpc * 100, 2)

        volumes = series.volumes
        volatility, level = self._volatility(volumes)

        return TrendSignal(
            direction=direction,
            percentage_change=percentage,
            current_volume=current.volume,
            baseline_volume=baseline.volume,
            window=w,
            cpc_change_pct=cpc_change,
            difficulty_change=current.difficulty - baseline.difficulty,
            volatility=volatility,
            volatility_level=level,
            momentum=self._momentum(volumes),
        )
