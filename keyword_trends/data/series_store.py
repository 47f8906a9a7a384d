"""Validated, immutable store of keyword series."""

import logging
import math
import numbers
from collections.abc import Iterable, Iterator, Mapping
from datetime import date

import pandas as pd

from keyword_trends.errors import InvalidObservation
from keyword_trends.models.trend_data import KeywordSeries, MonthlyObservation


logger = logging.getLogger(__name__)


def to_period(value) -> pd.Period:
    """Coerce a period-like value (Period, "2023-01", date, Timestamp) to a monthly Period."""
    if isinstance(value, pd.Period):
        return value.asfreq("M")
    if isinstance(value, (date, pd.Timestamp, str)):
        return pd.Period(value, freq="M")
    raise TypeError(f"Cannot interpret {value!r} as a month")


class SeriesStore:
    """Holds one validated ``KeywordSeries`` per keyword.

    Observations are checked on the way in: non-negative volume and CPC,
    difficulty within 0-100, strictly increasing periods with no implicit
    gaps. Missing months must be passed explicitly with ``volume=None``.
    """

    def __init__(self) -> None:
        self._series: dict[str, KeywordSeries] = {}

    def __contains__(self, keyword: object) -> bool:
        return keyword in self._series

    def __getitem__(self, keyword: str) -> KeywordSeries:
        return self._series[keyword]

    def __iter__(self) -> Iterator[str]:
        return iter(self._series)

    def __len__(self) -> int:
        return len(self._series)

    @property
    def keywords(self) -> list[str]:
        return list(self._series)

    def series(self) -> list[KeywordSeries]:
        return list(self._series.values())

    def _coerce(self, keyword: str, raw) -> MonthlyObservation:
        """Turn a MonthlyObservation or mapping into a checked observation."""
        if isinstance(raw, MonthlyObservation):
            period, volume, cpc, difficulty = raw.period, raw.volume, raw.cpc, raw.difficulty
        elif isinstance(raw, Mapping):
            period = raw.get("period", raw.get("date"))
            volume = raw.get("volume")
            cpc = raw.get("cpc", 0.0)
            difficulty = raw.get("difficulty", 0)
        else:
            raise InvalidObservation(f"Unsupported observation type {type(raw).__name__}", keyword)

        try:
            period = to_period(period)
        except (TypeError, ValueError) as e:
            raise InvalidObservation(f"Invalid period {period!r}: {e}", keyword) from e

        if volume is not None:
            if isinstance(volume, bool) or not isinstance(volume, numbers.Real):
                raise InvalidObservation(f"{period}: volume must be numeric, got {volume!r}", keyword)
            if isinstance(volume, float) and math.isnan(volume):
                volume = None
            elif not float(volume).is_integer():
                raise InvalidObservation(f"{period}: volume must be a whole number, got {volume}", keyword)
            elif volume < 0:
                raise InvalidObservation(f"{period}: negative volume {volume}", keyword)
            else:
                volume = int(volume)

        if cpc is None:
            cpc = 0.0
        if isinstance(cpc, bool) or not isinstance(cpc, numbers.Real) or not math.isfinite(cpc) or cpc < 0:
            raise InvalidObservation(f"{period}: cpc must be a non-negative number, got {cpc!r}", keyword)

        if difficulty is None:
            difficulty = 0
        if isinstance(difficulty, bool) or not isinstance(difficulty, numbers.Real) \
                or not float(difficulty).is_integer() or not 0 <= difficulty <= 100:
            raise InvalidObservation(
                f"{period}: difficulty must be an integer in 0-100, got {difficulty!r}", keyword
            )

        return MonthlyObservation(
            period=period, volume=volume, cpc=float(cpc), difficulty=int(difficulty)
        )

    def add(self, keyword: str, observations: Iterable) -> KeywordSeries:
        """
        Validate and store the observations of one keyword.

        Args:
            keyword: Keyword identifier
            observations: MonthlyObservation objects or mappings with
                period/volume/cpc/difficulty keys, in chronological order

        Returns:
            The stored KeywordSeries

        Raises:
            InvalidObservation: On bad values, ordering problems or a
                keyword that is already stored
        """
        keyword = keyword.strip()
        if not keyword:
            raise InvalidObservation("Keyword identifier cannot be blank")
        if keyword in self._series:
            raise InvalidObservation(f"Series for {keyword!r} is already stored", keyword)

        checked: list[MonthlyObservation] = []
        for raw in observations:
            obs = self._coerce(keyword, raw)
            if checked:
                previous = checked[-1].period
                if obs.period == previous:
                    raise InvalidObservation(f"Duplicate period {obs.period}", keyword)
                if obs.period < previous:
                    raise InvalidObservation(
                        f"Periods out of order: {obs.period} after {previous}", keyword
                    )
                if obs.period != previous + 1:
                    raise InvalidObservation(
                        f"Gap between {previous} and {obs.period}; "
                        "pass missing months explicitly with volume=None",
                        keyword,
                    )
            checked.append(obs)

        series = KeywordSeries(keyword=keyword, observations=tuple(checked))
        self._series[keyword] = series
        logger.debug(f"Stored {len(series)} observations for {keyword!r}")
        return series

    def add_frame(self, keyword: str, df: pd.DataFrame) -> KeywordSeries:
        """
        Store observations from a DataFrame.

        Args:
            keyword: Keyword identifier
            df: DataFrame indexed by period or date with a 'volume' column and
                optional 'cpc' and 'difficulty' columns
        """
        records = []
        for idx, row in df.iterrows():
            volume = row.get("volume")
            records.append({
                "period": idx,
                "volume": None if pd.isna(volume) else volume,
                "cpc": float(row["cpc"]) if "cpc" in row and pd.notna(row["cpc"]) else 0.0,
                "difficulty": int(row["difficulty"]) if "difficulty" in row and pd.notna(row["difficulty"]) else 0,
            })
        return self.add(keyword, records)

    def to_frame(self) -> pd.DataFrame:
        """Volumes of every stored keyword aligned on a monthly PeriodIndex."""
        if not self._series:
            return pd.DataFrame()
        return pd.concat(
            {keyword: series.volumes for keyword, series in self._series.items()},
            axis=1,
        ).sort_index()

    @classmethod
    def from_mapping(
        cls, observations: Mapping[str, Iterable]
    ) -> tuple["SeriesStore", dict[str, InvalidObservation]]:
        """
        Build a store from keyword -> observations, collecting rejections.

        Returns:
            (store, errors) where errors maps each rejected keyword to the
            validation error that rejected it
        """
        store = cls()
        errors: dict[str, InvalidObservation] = {}
        for keyword, raw in observations.items():
            try:
                store.add(keyword, raw)
            except InvalidObservation as e:
                logger.warning(f"Rejected observations for {keyword!r}: {e}")
                errors[keyword] = e
        return store, errors
