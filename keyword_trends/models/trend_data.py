"""Data models for keyword trend analysis."""

import calendar
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import pandas as pd

from keyword_trends.config.settings import TIMEFRAMES


MONTH_NAMES: tuple[str, ...] = tuple(calendar.month_name[1:])


def month_label(month: int) -> str:
    """Calendar month number (1-12) -> English month name."""
    return MONTH_NAMES[month - 1]


class TrendDirection(str, Enum):
    """Direction of recent volume movement."""
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class SeasonalityArchetype(str, Enum):
    """Named seasonal pattern."""
    STABLE = "stable"
    HIGH_SUMMER = "high_summer"
    HOLIDAY_PEAKS = "holiday_peaks"
    BACK_TO_SCHOOL = "back_to_school"
    HIGH_WINTER = "high_winter"
    IRREGULAR = "irregular"


class InsightType(str, Enum):
    TREND_CHANGE = "trend_change"
    SEASONAL_OPPORTUNITY = "seasonal_opportunity"
    COMPETITOR_MOVEMENT = "competitor_movement"
    MARKET_SHIFT = "market_shift"


class Impact(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class KeywordStatus(str, Enum):
    """Pipeline state of one keyword in a batch."""
    PENDING = "pending"
    CLASSIFYING = "classifying"
    DETECTING_SEASONALITY = "detecting_seasonality"
    FORECASTING = "forecasting"
    SYNTHESIZING_INSIGHTS = "synthesizing_insights"
    CORRELATING = "correlating"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class MonthlyObservation:
    """Single monthly observation for a keyword.

    ``volume`` is None when the month is an explicit gap in the data.
    """

    period: pd.Period
    volume: int | None
    cpc: float = 0.0
    difficulty: int = 0

    @property
    def is_missing(self) -> bool:
        return self.volume is None


@dataclass(frozen=True)
class KeywordSeries:
    """Ordered, contiguous monthly observations for exactly one keyword.

    Build through ``SeriesStore`` so the ordering invariants are checked.
    """

    keyword: str
    observations: tuple[MonthlyObservation, ...]

    def __len__(self) -> int:
        return len(self.observations)

    def __getitem__(self, index: int) -> MonthlyObservation:
        return self.observations[index]

    @property
    def periods(self) -> list[pd.Period]:
        return [obs.period for obs in self.observations]

    @property
    def volumes(self) -> pd.Series:
        """Volume per period as floats, NaN for missing months."""
        return pd.Series(
            [float("nan") if obs.volume is None else float(obs.volume) for obs in self.observations],
            index=pd.PeriodIndex(self.periods, freq="M"),
            name=self.keyword,
            dtype="float64",
        )

    @property
    def observed_count(self) -> int:
        return sum(1 for obs in self.observations if obs.volume is not None)

    @property
    def last_observed(self) -> MonthlyObservation | None:
        for obs in reversed(self.observations):
            if obs.volume is not None:
                return obs
        return None

    def tail(self, n: int) -> "KeywordSeries":
        """Return the last ``n`` periods as a new series."""
        if n >= len(self.observations):
            return self
        return KeywordSeries(self.keyword, self.observations[-n:] if n > 0 else ())


@dataclass(frozen=True)
class TrendSignal:
    """Trend classifier output for one keyword."""

    direction: TrendDirection
    percentage_change: float
    current_volume: int
    baseline_volume: int
    window: int
    cpc_change_pct: float = 0.0
    difficulty_change: int = 0
    volatility: float = 0.0  # 0-1
    volatility_level: str = "low"  # low, medium, high, extreme
    momentum: dict[str, float] = field(default_factory=dict)  # short, medium, long


@dataclass(frozen=True)
class SeasonalityProfile:
    """Seasonal pattern of a keyword's volume."""

    archetype: SeasonalityArchetype
    strength: float  # 0-1
    peak_periods: tuple[str, ...] = ()
    low_periods: tuple[str, ...] = ()
    monthly_factors: dict[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0.0 <= self.strength <= 1.0:
            raise ValueError(f"strength must be within [0, 1], got {self.strength}")
        overlap = set(self.peak_periods) & set(self.low_periods)
        if overlap:
            raise ValueError(f"months cannot be both peak and low: {sorted(overlap)}")

    @property
    def score(self) -> int:
        """0-100 score, always derived from strength."""
        return round(self.strength * 100)

    @classmethod
    def flat(cls) -> "SeasonalityProfile":
        """Profile used when no seasonal pattern can be established."""
        return cls(archetype=SeasonalityArchetype.STABLE, strength=0.0)


@dataclass(frozen=True)
class ForecastPoint:
    """Projected volume for one future period."""

    period: pd.Period
    predicted_volume: int
    confidence: float
    factors: tuple[str, ...] = ()
    lower_bound: int = 0
    upper_bound: int = 0


@dataclass(frozen=True)
class Insight:
    """Structured, typed insight record."""

    type: InsightType
    impact: Impact
    actionable: bool
    evidence: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RelatedTrend:
    """Keyword whose volume moves with (or against) the target keyword."""

    keyword: str
    correlation: float  # -1 to 1
    direction: TrendDirection


@dataclass(frozen=True)
class TrendAnalysisResult:
    """Complete analysis of one keyword."""

    keyword: str
    current_volume: int
    direction: TrendDirection | None  # None when history is shorter than the window
    percentage_change: float | None
    seasonality: SeasonalityProfile
    forecast: tuple[ForecastPoint, ...] = ()
    insights: tuple[Insight, ...] = ()
    related_trends: tuple[RelatedTrend, ...] = ()
    trend: TrendSignal | None = None

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-ready representation."""
        trend = None
        if self.trend is not None:
            trend = {
                "direction": self.trend.direction.value,
                "percentage_change": self.trend.percentage_change,
                "current_volume": self.trend.current_volume,
                "baseline_volume": self.trend.baseline_volume,
                "window": self.trend.window,
                "cpc_change_pct": self.trend.cpc_change_pct,
                "difficulty_change": self.trend.difficulty_change,
                "volatility": self.trend.volatility,
                "volatility_level": self.trend.volatility_level,
                "momentum": dict(self.trend.momentum),
            }
        return {
            "keyword": self.keyword,
            "current_volume": self.current_volume,
            "direction": self.direction.value if self.direction else None,
            "percentage_change": self.percentage_change,
            "seasonality": {
                "archetype": self.seasonality.archetype.value,
                "strength": self.seasonality.strength,
                "score": self.seasonality.score,
                "peak_periods": list(self.seasonality.peak_periods),
                "low_periods": list(self.seasonality.low_periods),
                "monthly_factors": dict(self.seasonality.monthly_factors),
            },
            "forecast": [
                {
                    "period": str(point.period),
                    "predicted_volume": point.predicted_volume,
                    "confidence": point.confidence,
                    "factors": list(point.factors),
                    "lower_bound": point.lower_bound,
                    "upper_bound": point.upper_bound,
                }
                for point in self.forecast
            ],
            "insights": [
                {
                    "type": insight.type.value,
                    "impact": insight.impact.value,
                    "actionable": insight.actionable,
                    "evidence": dict(insight.evidence),
                }
                for insight in self.insights
            ],
            "related_trends": [
                {
                    "keyword": related.keyword,
                    "correlation": related.correlation,
                    "direction": related.direction.value,
                }
                for related in self.related_trends
            ],
            "trend": trend,
        }


@dataclass(frozen=True)
class AnalysisRequest:
    """Batch analysis request."""

    keywords: tuple[str, ...]
    timeframe: str = "12m"
    include_predictions: bool = True

    def __post_init__(self) -> None:
        cleaned: list[str] = []
        for keyword in self.keywords:
            keyword = keyword.strip()
            if keyword and keyword not in cleaned:
                cleaned.append(keyword)
        if not cleaned:
            raise ValueError("At least one non-blank keyword is required")
        if self.timeframe not in TIMEFRAMES:
            raise ValueError(
                f"Unknown timeframe {self.timeframe!r}; expected one of {sorted(TIMEFRAMES)}"
            )
        object.__setattr__(self, "keywords", tuple(cleaned))

    @property
    def months(self) -> int:
        return TIMEFRAMES[self.timeframe]


@dataclass(frozen=True)
class KeywordFailure:
    """Why a keyword produced no result."""

    keyword: str
    error: str
    error_type: str
    stage: KeywordStatus = KeywordStatus.PENDING


@dataclass(frozen=True)
class BatchSummary:
    """Portfolio-level statistics for a batch."""

    total_keywords: int
    analysed: int
    failed: int
    trending_up: int
    trending_down: int
    stable: int
    seasonal_keywords: int
    average_volume: int
    top_growing: tuple[tuple[str, float], ...] = ()


@dataclass(frozen=True)
class BatchResult:
    """Outcome of a batch: succeeded results and per-keyword failures."""

    results: tuple[TrendAnalysisResult, ...]
    failures: tuple[KeywordFailure, ...]
    statuses: dict[str, KeywordStatus]
    summary: BatchSummary

    def result_for(self, keyword: str) -> TrendAnalysisResult | None:
        for result in self.results:
            if result.keyword == keyword:
                return result
        return None

    def failure_for(self, keyword: str) -> KeywordFailure | None:
        for failure in self.failures:
            if failure.keyword == keyword:
                return failure
        return None
