"""Shared builders for keyword trend tests."""

import pandas as pd
import pytest

from keyword_trends.config import AnalysisConfig
from keyword_trends.data import SeriesStore
from keyword_trends.models import MonthlyObservation


# Monthly history of "seo tools" through 2023
SEO_TOOLS_VOLUMES = [
    42000, 43500, 45000, 44000, 46500, 48000,
    47000, 48500, 50000, 49000, 51000, 49500,
]


def build_observations(volumes, start="2023-01", cpc=1.0, difficulty=50):
    """One observation per consecutive month; None volumes become missing markers.

    ``cpc`` and ``difficulty`` may be scalars or per-month lists.
    """
    first = pd.Period(start, freq="M")
    cpcs = cpc if isinstance(cpc, list) else [cpc] * len(volumes)
    difficulties = difficulty if isinstance(difficulty, list) else [difficulty] * len(volumes)
    return [
        MonthlyObservation(period=first + i, volume=volume, cpc=cpcs[i], difficulty=difficulties[i])
        for i, volume in enumerate(volumes)
    ]


def build_series(keyword, volumes, start="2023-01", **kwargs):
    store = SeriesStore()
    return store.add(keyword, build_observations(volumes, start, **kwargs))


def seasonal_volumes(peaks, years=2, base=1000, peak=3000, lows=(), low=400):
    """Calendar-year volumes with ``peak`` in the given months and ``low`` in ``lows``."""
    year = [peak if m in peaks else low if m in lows else base for m in range(1, 13)]
    return year * years


@pytest.fixture
def config():
    return AnalysisConfig()


@pytest.fixture
def make_observations():
    return build_observations


@pytest.fixture
def make_series():
    return build_series


@pytest.fixture
def seo_tools():
    return build_series("seo tools", SEO_TOOLS_VOLUMES)


@pytest.fixture
def make_seasonal():
    return seasonal_volumes


@pytest.fixture
def seo_tools_volumes():
    return list(SEO_TOOLS_VOLUMES)
