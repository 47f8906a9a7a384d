"""End-to-end batch tests for the analysis orchestrator."""

import json
import time

import pytest

from keyword_trends.analysis import AnalysisOrchestrator
from keyword_trends.config import AnalysisConfig
from keyword_trends.errors import InsufficientHistory
from keyword_trends.models import AnalysisRequest, KeywordStatus, TrendDirection


GROWTH = [1000] * 6 + [1000, 1100, 1200, 1300, 1400, 1500]
DECLINE = [1000] * 6 + [1000, 900, 800, 700, 600, 500]


@pytest.fixture
def observations(make_observations, seo_tools_volumes):
    return {
        "seo tools": make_observations(seo_tools_volumes),
        "growth": make_observations(GROWTH),
        "decline": make_observations(DECLINE),
    }


def _run(observations, *keywords, config=None, **request):
    orchestrator = AnalysisOrchestrator(config or AnalysisConfig())
    return orchestrator.run(AnalysisRequest(keywords=keywords, **request), observations)


# ---------------------------------------------------------------------------
# Partial failure
# ---------------------------------------------------------------------------

def test_one_observation_keyword_fails_alone(observations, make_observations):
    observations["brand new"] = make_observations([500])
    batch = _run(observations, "seo tools", "brand new", "growth", "decline")

    assert [r.keyword for r in batch.results] == ["seo tools", "growth", "decline"]
    assert len(batch.failures) == 1
    failure = batch.failures[0]
    assert failure.keyword == "brand new"
    assert failure.error_type == "InsufficientHistory"
    assert failure.stage == KeywordStatus.CLASSIFYING
    assert batch.statuses == {
        "seo tools": KeywordStatus.COMPLETED,
        "brand new": KeywordStatus.FAILED,
        "growth": KeywordStatus.COMPLETED,
        "decline": KeywordStatus.COMPLETED,
    }


def test_unknown_keyword(observations):
    batch = _run(observations, "growth", "nobody searches this")
    assert batch.result_for("growth") is not None
    failure = batch.failure_for("nobody searches this")
    assert failure.error_type == "UnknownKeyword"
    assert failure.stage == KeywordStatus.PENDING


def test_invalid_observations_reported(observations):
    observations["broken"] = [
        {"period": "2023-01", "volume": 10},
        {"period": "2023-03", "volume": 12},
    ]
    batch = _run(observations, "broken", "decline")
    assert batch.failure_for("broken").error_type == "InvalidObservation"
    assert batch.result_for("decline") is not None


def test_keyword_limit(observations):
    batch = _run(observations, "seo tools", "growth", "decline", config=AnalysisConfig(max_keywords=2))
    assert [r.keyword for r in batch.results] == ["seo tools", "growth"]
    assert batch.failure_for("decline").error_type == "KeywordLimitExceeded"
    assert batch.summary.total_keywords == 3


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

def test_result_contents(observations):
    batch = _run(observations, "seo tools", "growth")
    seo = batch.result_for("seo tools")
    growth = batch.result_for("growth")

    assert seo.current_volume == 49500
    assert seo.direction == TrendDirection.STABLE
    assert seo.percentage_change == pytest.approx(3.125)
    assert len(seo.forecast) == 6
    assert str(seo.forecast[0].period) == "2024-01"

    assert growth.direction == TrendDirection.UP
    assert growth.percentage_change == pytest.approx(50.0)
    assert growth.insights[0].type.value == "trend_change"
    assert growth.insights[0].impact.value == "high"


def test_predictions_can_be_skipped(observations):
    batch = _run(observations, "growth", include_predictions=False)
    result = batch.result_for("growth")
    assert result.forecast == ()
    assert "next_predicted_volume" not in result.insights[0].evidence


def test_short_timeframe_leaves_trend_unavailable(observations):
    batch = _run(observations, "growth", timeframe="6m")
    result = batch.result_for("growth")
    assert result.direction is None
    assert result.percentage_change is None
    assert result.current_volume == 1500
    assert all("insufficient_history" in point.factors for point in result.forecast)


def test_related_trends_cover_whole_portfolio(observations):
    batch = _run(observations, "growth")
    related = {item.keyword: item for item in batch.result_for("growth").related_trends}

    # "decline" was not requested but still correlates
    assert set(related) == {"decline", "seo tools"}
    assert related["decline"].correlation == -1.0
    assert related["decline"].direction == TrendDirection.DOWN


def test_correlated_pair_related_both_ways(make_observations):
    observations = {
        "alpha": make_observations([10, 20, 30, 40, 50, 60, 70, 80]),
        "beta": make_observations([12, 19, 33, 41, 48, 62, 69, 83]),
    }
    batch = _run(observations, "alpha", "beta")
    alpha = batch.result_for("alpha").related_trends
    beta = batch.result_for("beta").related_trends
    assert alpha[0].keyword == "beta"
    assert beta[0].keyword == "alpha"
    assert alpha[0].correlation == beta[0].correlation > 0.85


def test_summary(observations):
    batch = _run(observations, "seo tools", "growth", "decline")
    summary = batch.summary
    assert summary.total_keywords == 3
    assert summary.analysed == 3
    assert summary.failed == 0
    assert (summary.trending_up, summary.trending_down, summary.stable) == (1, 1, 1)
    assert summary.average_volume == 17167
    assert [keyword for keyword, _ in summary.top_growing] == ["growth", "seo tools"]


def test_deterministic_output(observations):
    first = _run(observations, "seo tools", "growth", "decline")
    second = _run(observations, "seo tools", "growth", "decline")
    assert json.dumps([r.to_dict() for r in first.results]) == json.dumps(
        [r.to_dict() for r in second.results]
    )


def test_analyze_keyword_floor(make_series):
    orchestrator = AnalysisOrchestrator()
    with pytest.raises(InsufficientHistory):
        orchestrator.analyze_keyword(make_series("kw", [None, None, 10]))


# ---------------------------------------------------------------------------
# Cancellation and timeouts
# ---------------------------------------------------------------------------

def test_cancel_before_run(observations):
    orchestrator = AnalysisOrchestrator()
    orchestrator.cancel()
    batch = orchestrator.run(AnalysisRequest(keywords=("growth", "decline")), observations)

    assert orchestrator.cancelled
    assert batch.results == ()
    assert [f.error_type for f in batch.failures] == ["Cancelled", "Cancelled"]
    assert batch.summary.analysed == 0


def test_cancel_mid_batch(observations, monkeypatch):
    orchestrator = AnalysisOrchestrator(AnalysisConfig(max_workers=1))
    detect = orchestrator.detector.detect

    def cancelling_detect(series):
        orchestrator.cancel()
        return detect(series)

    monkeypatch.setattr(orchestrator.detector, "detect", cancelling_detect)
    batch = orchestrator.run(
        AnalysisRequest(keywords=("seo tools", "growth", "decline")), observations
    )

    # The in-flight keyword finishes; queued ones never start
    assert [r.keyword for r in batch.results] == ["seo tools"]
    assert [f.keyword for f in batch.failures] == ["growth", "decline"]
    assert {f.error_type for f in batch.failures} == {"Cancelled"}


def test_slow_keyword_times_out(observations, monkeypatch):
    orchestrator = AnalysisOrchestrator(AnalysisConfig(keyword_timeout=0.5))
    detect = orchestrator.detector.detect

    def slow_detect(series):
        if series.keyword == "growth":
            time.sleep(1.5)
        return detect(series)

    monkeypatch.setattr(orchestrator.detector, "detect", slow_detect)
    batch = orchestrator.run(
        AnalysisRequest(keywords=("seo tools", "growth", "decline")), observations
    )

    failure = batch.failure_for("growth")
    assert failure.error_type == "Timeout"
    assert failure.stage == KeywordStatus.DETECTING_SEASONALITY
    assert batch.statuses["growth"] == KeywordStatus.FAILED
    assert [r.keyword for r in batch.results] == ["seo tools", "decline"]


def test_hung_worker_does_not_block_queued_keywords(observations, monkeypatch):
    orchestrator = AnalysisOrchestrator(AnalysisConfig(max_workers=1, keyword_timeout=0.3))
    detect = orchestrator.detector.detect

    def hanging_detect(series):
        if series.keyword == "seo tools":
            time.sleep(2.0)
        return detect(series)

    monkeypatch.setattr(orchestrator.detector, "detect", hanging_detect)
    started = time.monotonic()
    batch = orchestrator.run(
        AnalysisRequest(keywords=("seo tools", "growth", "decline")), observations
    )
    elapsed = time.monotonic() - started

    assert elapsed < 1.5
    assert batch.failure_for("seo tools").error_type == "Timeout"
    assert [r.keyword for r in batch.results] == ["growth", "decline"]
    assert batch.statuses["growth"] == KeywordStatus.COMPLETED


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

def test_progress_reports_live_stages(observations, monkeypatch):
    orchestrator = AnalysisOrchestrator(AnalysisConfig(max_workers=1))
    detect = orchestrator.detector.detect
    snapshots = []

    def recording_detect(series):
        if series.keyword == "growth":
            snapshots.append(orchestrator.progress())
        return detect(series)

    monkeypatch.setattr(orchestrator.detector, "detect", recording_detect)
    batch = orchestrator.run(
        AnalysisRequest(keywords=("seo tools", "growth", "decline")), observations
    )

    assert snapshots == [{
        "seo tools": KeywordStatus.CORRELATING,
        "growth": KeywordStatus.DETECTING_SEASONALITY,
        "decline": KeywordStatus.PENDING,
    }]
    assert set(batch.statuses.values()) == {KeywordStatus.COMPLETED}
    assert orchestrator.progress() == batch.statuses


def test_progress_empty_before_any_batch():
    assert AnalysisOrchestrator().progress() == {}


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------

def test_request_normalises_keywords():
    request = AnalysisRequest(keywords=(" seo tools ", "seo tools", "", "crm"))
    assert request.keywords == ("seo tools", "crm")
    assert request.months == 12


@pytest.mark.parametrize("kwargs", [
    {"keywords": ()},
    {"keywords": ("  ",)},
    {"keywords": ("seo",), "timeframe": "5y"},
])
def test_request_rejects_bad_input(kwargs):
    with pytest.raises(ValueError):
        AnalysisRequest(**kwargs)
