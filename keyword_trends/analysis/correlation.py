"""Pairwise volume correlation across a keyword portfolio."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from itertools import combinations

import pandas as pd
from scipy import stats

from keyword_trends.analysis.trend import TrendClassifier
from keyword_trends.config.settings import AnalysisConfig
from keyword_trends.errors import InsufficientHistory, InsufficientOverlap
from keyword_trends.models.trend_data import KeywordSeries, RelatedTrend, TrendDirection


logger = logging.getLogger(__name__)


@dataclass
class PortfolioCorrelations:
    """Symmetric correlation table plus each keyword's own trend direction."""

    correlations: dict[tuple[str, str], float] = field(default_factory=dict)
    directions: dict[str, TrendDirection] = field(default_factory=dict)
    default_top_n: int = 5

    def correlation(self, a: str, b: str) -> float | None:
        """Correlation of a pair, None if it was skipped."""
        return self.correlations.get((a, b))

    def related(self, target: str, top_n: int | None = None) -> tuple[RelatedTrend, ...]:
        """
        Top-N keywords most correlated with ``target``.

        Ranked by |correlation| descending, ties broken by keyword.
        """
        n = top_n if top_n is not None else self.default_top_n
        candidates = [
            (other, corr)
            for (first, other), corr in self.correlations.items()
            if first == target
        ]
        candidates.sort(key=lambda item: (-abs(item[1]), item[0]))
        return tuple(
            RelatedTrend(
                keyword=other,
                correlation=corr,
                direction=self.directions.get(other, TrendDirection.STABLE),
            )
            for other, corr in candidates[:n]
        )


class CorrelationEngine:
    """Computes Pearson correlation for every keyword pair with enough overlap."""

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        classifier: TrendClassifier | None = None,
    ) -> None:
        self.config = config or AnalysisConfig()
        self.classifier = classifier or TrendClassifier(self.config)

    def _pair_correlation(self, frame: pd.DataFrame, a: str, b: str) -> float:
        """
        Pearson correlation of two volume columns over their shared months.

        Raises:
            InsufficientOverlap: Fewer than min_overlap shared observed months,
                or one side is constant over the overlap
        """
        overlap = frame[[a, b]].dropna()
        if len(overlap) < self.config.min_overlap:
            raise InsufficientOverlap(
                f"{a!r} and {b!r} share {len(overlap)} periods, need {self.config.min_overlap}"
            )
        if overlap[a].nunique() < 2 or overlap[b].nunique() < 2:
            raise InsufficientOverlap(f"{a!r} or {b!r} is constant over the shared periods")

        r, _ = stats.pearsonr(overlap[a].to_numpy(), overlap[b].to_numpy())
        return round(max(-1.0, min(1.0, float(r))), 4)

    def _direction(self, series: KeywordSeries) -> TrendDirection:
        try:
            return self.classifier.classify(series).direction
        except InsufficientHistory:
            return TrendDirection.STABLE

    def compute(self, portfolio: Iterable[KeywordSeries]) -> PortfolioCorrelations:
        """
        Correlate every pair in the portfolio.

        Args:
            portfolio: All keyword series of one analysis run

        Returns:
            PortfolioCorrelations with both (a, b) and (b, a) entries per pair
        """
        series_list = sorted(portfolio, key=lambda s: s.keyword)
        result = PortfolioCorrelations(default_top_n=self.config.related_top_n)
        if not series_list:
            return result

        result.directions = {s.keyword: self._direction(s) for s in series_list}
        if len(series_list) < 2:
            return result

        frame = pd.concat({s.keyword: s.volumes for s in series_list}, axis=1).sort_index()

        skipped = 0
        for a, b in combinations(frame.columns, 2):
            try:
                corr = self._pair_correlation(frame, a, b)
            except InsufficientOverlap as e:
                skipped += 1
                logger.debug(f"Skipping pair: {e}")
                continue
            result.correlations[(a, b)] = corr
            result.correlations[(b, a)] = corr

        logger.info(
            f"Correlated {len(result.correlations) // 2} keyword pairs "
            f"({skipped} skipped for insufficient overlap)"
        )
        return result
