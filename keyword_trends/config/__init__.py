"""Engine configuration."""

from keyword_trends.config.settings import AnalysisConfig, Settings, TIMEFRAMES

__all__ = ["AnalysisConfig", "Settings", "TIMEFRAMES"]
