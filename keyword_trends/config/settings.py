"""Configuration settings for the trend engine."""

from dataclasses import dataclass, field
from pathlib import Path
import os

from dotenv import load_dotenv


load_dotenv()


# Request timeframe -> number of trailing monthly periods analysed
TIMEFRAMES: dict[str, int] = {
    "3m": 3,
    "6m": 6,
    "12m": 12,
    "24m": 24,
}


@dataclass(frozen=True)
class AnalysisConfig:
    """Thresholds and tuning knobs for one analysis run."""

    # Trend classifier
    comparison_window: int = 6
    stable_threshold: float = 5.0  # |pct| below this is "stable"

    # Seasonality detector
    min_seasonal_periods: int = 12
    cv_cap: float = 0.5  # CV at or above this saturates strength to 1.0
    peak_band: float = 0.5  # peaks/lows sit beyond mean +/- band * std
    archetype_min_strength: float = 0.2
    archetype_min_share: float = 0.5

    # Forecast generator
    forecast_horizon: int = 6
    trend_decay_rate: float = 0.1
    seasonal_adjustment: float | None = None  # fixed X; None derives it from strength
    seasonal_amplitude: float = 0.25
    base_confidence: float = 0.9
    confidence_step: float = 0.05
    min_confidence: float = 0.3
    insufficient_history_penalty: float = 0.2

    # Insight synthesizer
    significant_change_threshold: float = 10.0
    high_impact_threshold: float = 25.0
    seasonal_opportunity_strength: float = 0.5
    difficulty_shift_points: int = 5
    cpc_shift_pct: float = 15.0
    momentum_shift_threshold: float = 0.1

    # Correlation engine
    min_overlap: int = 6
    related_top_n: int = 5

    # Orchestrator
    min_observations: int = 2  # absolute floor
    max_keywords: int = 20
    max_workers: int = 4
    keyword_timeout: float = 10.0  # seconds

    def __post_init__(self) -> None:
        if self.comparison_window < 1:
            raise ValueError("comparison_window must be at least 1")
        if self.forecast_horizon < 0:
            raise ValueError("forecast_horizon cannot be negative")
        if self.cv_cap <= 0:
            raise ValueError("cv_cap must be positive")
        if not 0 <= self.min_confidence <= self.base_confidence <= 1:
            raise ValueError("expected 0 <= min_confidence <= base_confidence <= 1")
        if self.min_overlap < 2:
            raise ValueError("min_overlap must be at least 2")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.keyword_timeout <= 0:
            raise ValueError("keyword_timeout must be positive")


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


@dataclass
class Settings:
    """Application settings."""

    cache_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv(
                "KEYWORD_TRENDS_CACHE_DIR",
                str(Path(__file__).parent.parent.parent / "cache"),
            )
        )
    )
    max_workers: int = field(
        default_factory=lambda: _env_int("KEYWORD_TRENDS_MAX_WORKERS", 4)
    )
    keyword_timeout: float = field(
        default_factory=lambda: _env_float("KEYWORD_TRENDS_KEYWORD_TIMEOUT", 10.0)
    )
    comparison_window: int = field(
        default_factory=lambda: _env_int("KEYWORD_TRENDS_WINDOW", 6)
    )
    forecast_horizon: int = field(
        default_factory=lambda: _env_int("KEYWORD_TRENDS_HORIZON", 6)
    )
    db_path: Path = field(init=False)

    def __post_init__(self) -> None:
        self.cache_dir = Path(self.cache_dir)
        self.db_path = self.cache_dir / "keyword_trends.db"

    def ensure_cache_dir(self) -> Path:
        """Create the cache directory if needed and return the database path."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        return self.db_path

    def validate(self) -> None:
        """Validate numeric settings."""
        if self.max_workers < 1:
            raise ValueError(
                f"KEYWORD_TRENDS_MAX_WORKERS must be >= 1, got {self.max_workers}"
            )
        if self.keyword_timeout <= 0:
            raise ValueError(
                f"KEYWORD_TRENDS_KEYWORD_TIMEOUT must be > 0, got {self.keyword_timeout}"
            )
        if self.comparison_window < 1:
            raise ValueError(
                f"KEYWORD_TRENDS_WINDOW must be >= 1, got {self.comparison_window}"
            )
        if self.forecast_horizon < 0:
            raise ValueError(
                f"KEYWORD_TRENDS_HORIZON must be >= 0, got {self.forecast_horizon}"
            )

    def analysis_config(self, **overrides) -> AnalysisConfig:
        """Build the analysis parameter struct from these settings."""
        self.validate()
        values = {
            "max_workers": self.max_workers,
            "keyword_timeout": self.keyword_timeout,
            "comparison_window": self.comparison_window,
            "forecast_horizon": self.forecast_horizon,
        }
        values.update(overrides)
        return AnalysisConfig(**values)
