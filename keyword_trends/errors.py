"""Error taxonomy for the trend engine."""


class TrendAnalysisError(Exception):
    """Base class for engine errors tied to one keyword."""

    error_type = "TrendAnalysisError"

    def __init__(self, message: str, keyword: str | None = None) -> None:
        super().__init__(message)
        self.keyword = keyword


class InsufficientHistory(TrendAnalysisError):
    """Fewer observations than a component needs."""

    error_type = "InsufficientHistory"


class InsufficientOverlap(TrendAnalysisError):
    """Two series share too few periods to correlate."""

    error_type = "InsufficientOverlap"


class InvalidObservation(TrendAnalysisError, ValueError):
    """Observation rejected at the series store boundary."""

    error_type = "InvalidObservation"


class AnalysisTimeout(TrendAnalysisError):
    """A keyword pipeline exceeded its time budget."""

    error_type = "Timeout"


class AnalysisCancelled(TrendAnalysisError):
    """The batch was cancelled before this keyword started."""

    error_type = "Cancelled"


class UnknownKeyword(TrendAnalysisError, LookupError):
    """No observations were supplied for a requested keyword."""

    error_type = "UnknownKeyword"


class KeywordLimitExceeded(TrendAnalysisError):
    """The request named more keywords than one batch analyses."""

    error_type = "KeywordLimitExceeded"
