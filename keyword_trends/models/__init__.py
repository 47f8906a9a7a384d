"""Data models."""

from keyword_trends.models.trend_data import (
    AnalysisRequest,
    BatchResult,
    BatchSummary,
    ForecastPoint,
    Impact,
    Insight,
    InsightType,
    KeywordFailure,
    KeywordSeries,
    KeywordStatus,
    MonthlyObservation,
    RelatedTrend,
    SeasonalityArchetype,
    SeasonalityProfile,
    TrendAnalysisResult,
    TrendDirection,
    TrendSignal,
    month_label,
)

__all__ = [
    "AnalysisRequest",
    "BatchResult",
    "BatchSummary",
    "ForecastPoint",
    "Impact",
    "Insight",
    "InsightType",
    "KeywordFailure",
    "KeywordSeries",
    "KeywordStatus",
    "MonthlyObservation",
    "RelatedTrend",
    "SeasonalityArchetype",
    "SeasonalityProfile",
    "TrendAnalysisResult",
    "TrendDirection",
    "TrendSignal",
    "month_label",
]
