"""Series storage and caching."""

from .series_store import SeriesStore
from .cache import ObservationCache

__all__ = ["SeriesStore", "ObservationCache"]
