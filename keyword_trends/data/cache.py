"""SQLite cache for ingested keyword observations."""

import sqlite3
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

import pandas as pd

from keyword_trends.data.series_store import SeriesStore, to_period
from keyword_trends.errors import InvalidObservation
from keyword_trends.models.trend_data import MonthlyObservation


class ObservationCache:
    """SQLite-based cache for monthly keyword observations."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS observations (
                    keyword TEXT NOT NULL,
                    period TEXT NOT NULL,
                    volume INTEGER,
                    cpc REAL NOT NULL DEFAULT 0,
                    difficulty INTEGER NOT NULL DEFAULT 0,
                    fetched_at TEXT NOT NULL,
                    PRIMARY KEY (keyword, period)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS keyword_metadata (
                    keyword TEXT PRIMARY KEY,
                    source TEXT,
                    country TEXT,
                    last_fetched TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_obs_keyword_period
                ON observations(keyword, period)
            """)

    def get_latest_period(self, keyword: str) -> pd.Period | None:
        """Get the most recent month cached for a keyword."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT MAX(period) as max_period FROM observations WHERE keyword = ?",
                (keyword,),
            ).fetchone()
            if row and row["max_period"]:
                return pd.Period(row["max_period"], freq="M")
        return None

    def store_observations(
        self,
        keyword: str,
        observations: Iterable[MonthlyObservation],
        fetched_at: datetime,
    ) -> int:
        """
        Store observations for a keyword.

        Args:
            keyword: Keyword identifier
            observations: Monthly observations (missing months allowed)
            fetched_at: When the provider delivered the data

        Returns:
            Number of rows inserted/updated
        """
        fetched_str = fetched_at.isoformat()
        rows = [
            (
                keyword,
                str(to_period(obs.period)),
                obs.volume,
                float(obs.cpc),
                int(obs.difficulty),
                fetched_str,
            )
            for obs in observations
        ]
        if not rows:
            return 0

        with self._get_connection() as conn:
            conn.executemany(
                """
                INSERT OR REPLACE INTO observations
                (keyword, period, volume, cpc, difficulty, fetched_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
        return len(rows)

    def store_metadata(
        self, keyword: str, source: str, country: str | None = None
    ) -> None:
        """Store or update where a keyword's data came from."""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO keyword_metadata
                (keyword, source, country, last_fetched)
                VALUES (?, ?, ?, ?)
                """,
                (keyword, source, country, datetime.now().isoformat()),
            )

    def get_frame(
        self,
        keyword: str,
        start: pd.Period | None = None,
        end: pd.Period | None = None,
    ) -> pd.DataFrame:
        """
        Retrieve cached observations for a keyword.

        Returns:
            DataFrame with monthly PeriodIndex and volume/cpc/difficulty columns
        """
        query = "SELECT period, volume, cpc, difficulty FROM observations WHERE keyword = ?"
        params: list = [keyword]

        if start is not None:
            query += " AND period >= ?"
            params.append(str(to_period(start)))
        if end is not None:
            query += " AND period <= ?"
            params.append(str(to_period(end)))

        query += " ORDER BY period"

        with self._get_connection() as conn:
            df = pd.read_sql_query(query, conn, params=params)

        if df.empty:
            return pd.DataFrame(columns=["volume", "cpc", "difficulty"])

        df["period"] = pd.PeriodIndex(df["period"], freq="M")
        df.set_index("period", inplace=True)
        return df

    def get_keywords(self) -> list[str]:
        """All keywords with cached observations."""
        with self._get_connection() as conn:
            return [
                row[0]
                for row in conn.execute(
                    "SELECT DISTINCT keyword FROM observations ORDER BY keyword"
                ).fetchall()
            ]

    def load_store(
        self, keywords: Iterable[str] | None = None
    ) -> tuple[SeriesStore, dict[str, InvalidObservation]]:
        """
        Materialize cached keywords into a validated SeriesStore.

        Months absent from the cache between the first and last cached
        period are filled with explicit missing markers.

        Returns:
            (store, errors); keywords with nothing cached are left out
        """
        store = SeriesStore()
        errors: dict[str, InvalidObservation] = {}
        for keyword in (keywords if keywords is not None else self.get_keywords()):
            df = self.get_frame(keyword)
            if df.empty:
                continue
            full_index = pd.period_range(df.index.min(), df.index.max(), freq="M")
            df = df.reindex(full_index)
            try:
                store.add_frame(keyword, df)
            except InvalidObservation as e:
                errors[keyword] = e
        return store, errors

    def get_cache_status(self) -> dict[str, dict]:
        """Get status of cached data for each keyword."""
        with self._get_connection() as conn:
            rows = conn.execute("""
                SELECT
                    o.keyword,
                    COUNT(*) as observation_count,
                    SUM(CASE WHEN o.volume IS NULL THEN 1 ELSE 0 END) as missing_count,
                    MIN(o.period) as first_period,
                    MAX(o.period) as last_period,
                    m.source,
                    m.last_fetched
                FROM observations o
                LEFT JOIN keyword_metadata m ON o.keyword = m.keyword
                GROUP BY o.keyword
            """).fetchall()

        return {
            row["keyword"]: {
                "observation_count": row["observation_count"],
                "missing_count": row["missing_count"],
                "first_period": row["first_period"],
                "last_period": row["last_period"],
                "source": row["source"],
                "last_fetched": row["last_fetched"],
            }
            for row in rows
        }
