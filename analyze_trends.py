"""Run a trend analysis over cached keyword observations and print a report."""

import argparse
import logging
from datetime import datetime
from pathlib import Path

import pandas as pd

from keyword_trends.analysis import AnalysisOrchestrator
from keyword_trends.config import Settings, TIMEFRAMES
from keyword_trends.data import ObservationCache
from keyword_trends.models import AnalysisRequest, BatchResult, MonthlyObservation


def load_csv(cache: ObservationCache, path: Path) -> int:
    """Import a keyword,period,volume,cpc,difficulty CSV into the cache."""
    df = pd.read_csv(path)
    stored = 0
    for keyword, rows in df.groupby("keyword", sort=True):
        observations = [
            MonthlyObservation(
                period=pd.Period(row.period, freq="M"),
                volume=None if pd.isna(row.volume) else int(row.volume),
                cpc=float(row.cpc) if "cpc" in rows.columns and pd.notna(row.cpc) else 0.0,
                difficulty=int(row.difficulty) if "difficulty" in rows.columns and pd.notna(row.difficulty) else 0,
            )
            for row in rows.itertuples(index=False)
        ]
        stored += cache.store_observations(str(keyword), observations, datetime.now())
        cache.store_metadata(str(keyword), source=path.name)
    return stored


def print_report(batch: BatchResult) -> None:
    """Print formatted batch report."""
    print("\n" + "=" * 70)
    print("KEYWORD TREND REPORT")
    print("=" * 70)

    for result in batch.results:
        print(f"\n--- {result.keyword} ---\n")
        direction = result.direction.value if result.direction else "n/a"
        change = f"{result.percentage_change:+.1f}%" if result.percentage_change is not None else "n/a"
        print(f"Current volume: {result.current_volume:,}")
        print(f"Trend:          {direction} ({change})")
        season = result.seasonality
        print(f"Seasonality:    {season.archetype.value} (score {season.score})")
        if season.peak_periods:
            print(f"  Peaks: {', '.join(season.peak_periods)}")
        if season.low_periods:
            print(f"  Lows:  {', '.join(season.low_periods)}")

        if result.forecast:
            print(f"\n{'Period':<10} {'Predicted':>10} {'Confidence':>11}  {'Factors'}")
            print("-" * 60)
            for point in result.forecast:
                print(
                    f"{str(point.period):<10} {point.predicted_volume:>10,} "
                    f"{point.confidence:>11.2f}  {', '.join(point.factors)}"
                )

        for insight in result.insights:
            print(f"  [{insight.impact.value}] {insight.type.value}: {insight.evidence}")

        for related in result.related_trends:
            print(f"  ~ {related.keyword:<30} r={related.correlation:+.2f} ({related.direction.value})")

    if batch.failures:
        print("\n--- Failures ---\n")
        for failure in batch.failures:
            print(f"{failure.keyword:<30} {failure.error_type:<22} {failure.error}")

    summary = batch.summary
    print("\n" + "-" * 70)
    print(
        f"Analysed {summary.analysed}/{summary.total_keywords} | "
        f"up {summary.trending_up}, down {summary.trending_down}, stable {summary.stable} | "
        f"seasonal {summary.seasonal_keywords}"
    )
    print("=" * 70)


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("keywords", nargs="*", help="Keywords to analyse (default: all cached)")
    parser.add_argument("--timeframe", choices=sorted(TIMEFRAMES), default="12m")
    parser.add_argument("--no-predictions", action="store_true", help="Skip forecasting")
    parser.add_argument("--load", type=Path, help="CSV of observations to cache first")
    parser.add_argument("--status", action="store_true", help="Show cache status and exit")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    settings = Settings()
    cache = ObservationCache(settings.ensure_cache_dir())

    if args.load:
        print(f"Cached {load_csv(cache, args.load)} observations from {args.load}")

    if args.status:
        print("\nKeyword Cache Status:")
        print("-" * 80)
        for keyword, info in sorted(cache.get_cache_status().items()):
            print(
                f"{keyword:30} | {info['observation_count']:4} months "
                f"({info['missing_count']} missing) | {info['first_period']} - {info['last_period']}"
            )
        return

    store, errors = cache.load_store()
    for keyword, error in errors.items():
        print(f"Skipping {keyword}: {error}")

    keywords = args.keywords or store.keywords
    if not keywords:
        print("No cached keywords. Load observations with --load first.")
        return

    orchestrator = AnalysisOrchestrator(settings.analysis_config())
    request = AnalysisRequest(
        keywords=tuple(keywords),
        timeframe=args.timeframe,
        include_predictions=not args.no_predictions,
    )
    print_report(orchestrator.run(request, store))


if __name__ == "__main__":
    main()
