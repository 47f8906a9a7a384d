"""Batch driver: runs the per-keyword pipeline and portfolio correlation."""

import logging
import threading
import time
from collections.abc import Iterable, Mapping
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, replace

from keyword_trends.analysis.correlation import CorrelationEngine, PortfolioCorrelations
from keyword_trends.analysis.forecast import ForecastGenerator
from keyword_trends.analysis.insights import InsightSynthesizer
from keyword_trends.analysis.seasonality import SeasonalityDetector
from keyword_trends.analysis.trend import TrendClassifier
from keyword_trends.config.settings import AnalysisConfig
from keyword_trends.data.series_store import SeriesStore
from keyword_trends.errors import (
    AnalysisCancelled,
    AnalysisTimeout,
    InsufficientHistory,
    KeywordLimitExceeded,
    TrendAnalysisError,
    UnknownKeyword,
)
from keyword_trends.models.trend_data import (
    AnalysisRequest,
    BatchResult,
    BatchSummary,
    KeywordFailure,
    KeywordSeries,
    KeywordStatus,
    SeasonalityArchetype,
    TrendAnalysisResult,
    TrendDirection,
)


logger = logging.getLogger(__name__)


POLL_INTERVAL = 0.05  # seconds between timeout checks while joining


@dataclass
class _KeywordRun:
    """Bookkeeping for one keyword's pipeline, written only by its worker."""

    keyword: str
    status: KeywordStatus = KeywordStatus.PENDING
    started_at: float | None = None
    deadline: float | None = None


class AnalysisOrchestrator:
    """
    Runs trend -> seasonality -> forecast -> insights for each keyword on a
    bounded worker pool, while the correlation engine works through the whole
    portfolio in parallel.

    One keyword failing never aborts the others; run() always returns a
    BatchResult partitioned into results and failures.
    """

    def __init__(self, config: AnalysisConfig | None = None) -> None:
        self.config = config or AnalysisConfig()
        self.classifier = TrendClassifier(self.config)
        self.detector = SeasonalityDetector(self.config)
        self.forecaster = ForecastGenerator(self.config)
        self.synthesizer = InsightSynthesizer(self.config)
        self.correlator = CorrelationEngine(self.config, self.classifier)
        self._cancel = threading.Event()
        self._runs: dict[str, _KeywordRun] = {}

    def cancel(self) -> None:
        """Stop scheduling keyword pipelines that have not started yet."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def progress(self) -> dict[str, KeywordStatus]:
        """Current pipeline state of each keyword in the running (or last) batch."""
        return {keyword: run.status for keyword, run in self._runs.items()}

    # =========================================================================
    # Per-keyword pipeline
    # =========================================================================

    def _advance(self, run: _KeywordRun, status: KeywordStatus) -> None:
        """Move to the next stage, enforcing the keyword's deadline."""
        if run.deadline is not None and time.monotonic() > run.deadline:
            raise AnalysisTimeout(
                f"Exceeded {self.config.keyword_timeout}s before {status.value}", run.keyword
            )
        logger.debug(f"{run.keyword!r}: {run.status.value} -> {status.value}")
        run.status = status

    def analyze_keyword(
        self,
        series: KeywordSeries,
        include_predictions: bool = True,
        run: _KeywordRun | None = None,
    ) -> TrendAnalysisResult:
        """
        Run the single-keyword pipeline (no correlation).

        Raises:
            InsufficientHistory: Fewer observed volumes than the absolute floor
            AnalysisTimeout: The run's deadline passed between stages
        """
        run = run or _KeywordRun(series.keyword)

        self._advance(run, KeywordStatus.CLASSIFYING)
        if series.observed_count < self.config.min_observations:
            raise InsufficientHistory(
                f"{series.observed_count} observed months; at least "
                f"{self.config.min_observations} required",
                series.keyword,
            )
        try:
            trend = self.classifier.classify(series)
        except InsufficientHistory as e:
            logger.info(f"{series.keyword!r}: trend unavailable ({e})")
            trend = None

        self._advance(run, KeywordStatus.DETECTING_SEASONALITY)
        seasonality = self.detector.detect(series)

        self._advance(run, KeywordStatus.FORECASTING)
        forecast = (
            self.forecaster.generate(series, trend, seasonality)
            if include_predictions else ()
        )

        self._advance(run, KeywordStatus.SYNTHESIZING_INSIGHTS)
        insights = self.synthesizer.synthesize(
            trend, seasonality, forecast, current_period=series[-1].period
        )

        return TrendAnalysisResult(
            keyword=series.keyword,
            current_volume=series.last_observed.volume,
            direction=trend.direction if trend else None,
            percentage_change=trend.percentage_change if trend else None,
            seasonality=seasonality,
            forecast=forecast,
            insights=insights,
            trend=trend,
        )

    def _run_pipeline(
        self, run: _KeywordRun, series: KeywordSeries, include_predictions: bool
    ) -> TrendAnalysisResult:
        """Worker entry point."""
        if self._cancel.is_set():
            raise AnalysisCancelled("Batch cancelled before this keyword started", run.keyword)
        run.started_at = time.monotonic()
        run.deadline = run.started_at + self.config.keyword_timeout
        result = self.analyze_keyword(series, include_predictions, run)
        # Done with its own stages; related trends are attached after the join
        self._advance(run, KeywordStatus.CORRELATING)
        return result

    # =========================================================================
    # Batch
    # =========================================================================

    def _load(
        self, observations: SeriesStore | Mapping[str, Iterable]
    ) -> tuple[SeriesStore, dict[str, TrendAnalysisError]]:
        if isinstance(observations, SeriesStore):
            return observations, {}
        store, errors = SeriesStore.from_mapping(observations)
        return store, dict(errors)

    def _failure(
        self, keyword: str, error: Exception, stage: KeywordStatus
    ) -> KeywordFailure:
        error_type = getattr(error, "error_type", type(error).__name__)
        logger.warning(f"{keyword!r} failed during {stage.value}: [{error_type}] {error}")
        return KeywordFailure(keyword=keyword, error=str(error), error_type=error_type, stage=stage)

    def _summarize(
        self, requested: int, results: list[TrendAnalysisResult], failed: int
    ) -> BatchSummary:
        directions = [r.direction for r in results if r.direction is not None]
        growing = sorted(
            (
                (r.keyword, round(r.percentage_change, 2))
                for r in results
                if r.percentage_change is not None and r.percentage_change > 0
            ),
            key=lambda item: (-item[1], item[0]),
        )
        average = (
            round(sum(r.current_volume for r in results) / len(results)) if results else 0
        )
        return BatchSummary(
            total_keywords=requested,
            analysed=len(results),
            failed=failed,
            trending_up=directions.count(TrendDirection.UP),
            trending_down=directions.count(TrendDirection.DOWN),
            stable=directions.count(TrendDirection.STABLE),
            seasonal_keywords=sum(
                1 for r in results if r.seasonality.archetype != SeasonalityArchetype.STABLE
            ),
            average_volume=average,
            top_growing=tuple(growing[:3]),
        )

    def run(
        self,
        request: AnalysisRequest,
        observations: SeriesStore | Mapping[str, Iterable],
    ) -> BatchResult:
        """
        Analyse every requested keyword.

        Args:
            request: Keywords, timeframe and whether to forecast
            observations: Either a SeriesStore or keyword -> observations.
                Every series supplied joins the correlation portfolio, not
                only the requested ones.

        Returns:
            BatchResult with results in request order and a failure record
            for each keyword that produced none
        """
        started = time.monotonic()
        keywords = list(request.keywords)
        accepted = keywords[:self.config.max_keywords]
        logger.info(
            f"Analysing {len(accepted)} keywords (timeframe={request.timeframe}, "
            f"predictions={request.include_predictions}, workers={self.config.max_workers})"
        )

        runs = {keyword: _KeywordRun(keyword) for keyword in keywords}
        self._runs = runs
        failures: dict[str, KeywordFailure] = {}
        results: dict[str, TrendAnalysisResult] = {}

        for keyword in keywords[self.config.max_keywords:]:
            failures[keyword] = self._failure(
                keyword,
                KeywordLimitExceeded(
                    f"Only {self.config.max_keywords} keywords are analysed per request", keyword
                ),
                KeywordStatus.PENDING,
            )

        store, load_errors = self._load(observations)
        portfolio = {series.keyword: series.tail(request.months) for series in store.series()}

        to_run: list[str] = []
        for keyword in accepted:
            if keyword in load_errors:
                failures[keyword] = self._failure(keyword, load_errors[keyword], KeywordStatus.PENDING)
            elif keyword not in portfolio:
                failures[keyword] = self._failure(
                    keyword, UnknownKeyword(f"No observations for {keyword!r}", keyword), KeywordStatus.PENDING
                )
            else:
                to_run.append(keyword)

        executors = [ThreadPoolExecutor(max_workers=self.config.max_workers)]
        futures: dict[Future, str] = {}
        pool_of: dict[Future, int] = {}

        def submit(keyword: str) -> Future:
            future = executors[-1].submit(
                self._run_pipeline, runs[keyword], portfolio[keyword], request.include_predictions
            )
            futures[future] = keyword
            pool_of[future] = len(executors) - 1
            return future

        try:
            # Correlation only needs the loaded series, so it starts right away
            correlation_future = executors[0].submit(self.correlator.compute, portfolio.values())
            correlation_deadline = time.monotonic() + self.config.keyword_timeout
            correlation_overdue = False
            pending = {submit(keyword) for keyword in to_run}

            # Workers still running a timed-out job; they cannot be interrupted
            abandoned = 0
            while pending:
                done, pending = wait(pending, timeout=POLL_INTERVAL, return_when=FIRST_COMPLETED)
                for future in done:
                    keyword = futures[future]
                    run = runs[keyword]
                    if future.cancelled():
                        failures[keyword] = self._failure(
                            keyword,
                            AnalysisCancelled("Batch cancelled before this keyword started", keyword),
                            run.status,
                        )
                        continue
                    error = future.exception()
                    if error is None:
                        results[keyword] = future.result()
                    elif isinstance(error, TrendAnalysisError):
                        failures[keyword] = self._failure(keyword, error, run.status)
                    else:
                        logger.error(f"Unexpected error analysing {keyword!r}", exc_info=error)
                        failures[keyword] = self._failure(keyword, error, run.status)

                now = time.monotonic()
                for future in list(pending):
                    keyword = futures[future]
                    run = runs[keyword]
                    if self._cancel.is_set() and future.cancel():
                        pending.discard(future)
                        failures[keyword] = self._failure(
                            keyword,
                            AnalysisCancelled("Batch cancelled before this keyword started", keyword),
                            run.status,
                        )
                    elif run.deadline is not None and now > run.deadline:
                        pending.discard(future)
                        if pool_of[future] == len(executors) - 1:
                            abandoned += 1
                        failures[keyword] = self._failure(
                            keyword,
                            AnalysisTimeout(
                                f"Exceeded {self.config.keyword_timeout}s during {run.status.value}",
                                keyword,
                            ),
                            run.status,
                        )

                if not correlation_overdue and not correlation_future.done() and now > correlation_deadline:
                    correlation_overdue = True
                    if len(executors) == 1:
                        abandoned += 1

                if abandoned >= self.config.max_workers and pending:
                    # Every worker is stuck; move queued keywords to a fresh pool
                    queued = [future for future in pending if future.cancel()]
                    if queued:
                        logger.warning(
                            f"All {self.config.max_workers} workers held by timed-out jobs; "
                            f"rescheduling {len(queued)} queued keywords"
                        )
                        executors.append(ThreadPoolExecutor(max_workers=self.config.max_workers))
                        for future in queued:
                            pending.discard(future)
                            pending.add(submit(futures.pop(future)))
                    abandoned = 0

            try:
                correlations = correlation_future.result(
                    timeout=max(0.0, correlation_deadline - time.monotonic())
                )
            except Exception as e:
                logger.error(f"Correlation failed, related trends omitted: {e!r}")
                correlations = PortfolioCorrelations()
        finally:
            for executor in executors:
                executor.shutdown(wait=False, cancel_futures=True)

        ordered_results: list[TrendAnalysisResult] = []
        for keyword in keywords:
            run = runs[keyword]
            if keyword in results:
                ordered_results.append(
                    replace(results[keyword], related_trends=correlations.related(keyword))
                )
                run.status = KeywordStatus.COMPLETED
            else:
                run.status = KeywordStatus.FAILED
        statuses = self.progress()

        ordered_failures = [failures[k] for k in keywords if k in failures]
        summary = self._summarize(len(keywords), ordered_results, len(ordered_failures))
        logger.info(
            f"Batch finished in {time.monotonic() - started:.2f}s: "
            f"{summary.analysed} analysed, {summary.failed} failed"
        )
        return BatchResult(
            results=tuple(ordered_results),
            failures=tuple(ordered_failures),
            statuses=statuses,
            summary=summary,
        )
