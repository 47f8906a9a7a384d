"""Trend analysis components."""

from keyword_trends.analysis.trend import TrendClassifier
from keyword_trends.analysis.seasonality import SeasonalityDetector
from keyword_trends.analysis.forecast import ForecastGenerator
from keyword_trends.analysis.insights import InsightSynthesizer
from keyword_trends.analysis.correlation import CorrelationEngine
from keyword_trends.analysis.orchestrator import AnalysisOrchestrator

__all__ = [
    "TrendClassifier",
    "SeasonalityDetector",
    "ForecastGenerator",
    "InsightSynthesizer",
    "CorrelationEngine",
    "AnalysisOrchestrator",
]
