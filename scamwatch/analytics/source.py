"""Analytics and trends collaborators."""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path
from typing import Any

from scamwatch.errors import AnalyticsUnavailableError
from .benchmarks import compute_ctr_benchmarks
from .models import CTRBenchmarks, DateRange, PeriodComparison, QueryMetrics, build_comparison

logger = logging.getLogger(__name__)


class AnalyticsSource(ABC):
    """Provides per-query search analytics for date ranges."""

    @abstractmethod
    async def get_comparisons(
        self, current_range: DateRange, previous_range: DateRange
    ) -> list[PeriodComparison]:
        """Get one comparison per query seen in the current range.

        Raises:
            AnalyticsUnavailableError: If the data cannot be loaded
        """
        pass

    async def get_ctr_benchmarks(self) -> CTRBenchmarks | None:
        """Get CTR benchmarks derived from historical data, if supported."""
        return None


class TrendsSource(ABC):
    """Optional public search-interest lookup."""

    @abstractmethod
    async def get_interest(self, query: str) -> list[float] | None:
        """Get the interest-over-time series (0-100 values, oldest first)."""
        pass


class JsonFileAnalyticsSource(AnalyticsSource):
    """Analytics source reading exported daily query rows from a JSON file.

    The file holds a list of ``{"date", "query", "impressions", "clicks",
    "position"}`` rows (or ``{"rows": [...]}``). Rows are aggregated per query
    for each requested range: counts are summed, CTR is recomputed from the
    sums and position is impression-weighted.
    """

    def __init__(self, path: Path, benchmark_min_impressions: int = 10):
        self.path = Path(path)
        self.benchmark_min_impressions = benchmark_min_impressions
        self._rows: list[dict[str, Any]] | None = None
        self._mtime: float | None = None

    async def _load_rows(self) -> list[dict[str, Any]]:
        """Get the parsed rows, re-reading the file when it has been modified."""
        try:
            mtime = self.path.stat().st_mtime
        except FileNotFoundError as e:
            raise AnalyticsUnavailableError(f"Analytics file not found: {self.path}") from e

        if self._rows is None or mtime != self._mtime:
            self._rows = await asyncio.to_thread(self._read_file)
            self._mtime = mtime
            logger.info(f"Loaded {len(self._rows)} analytics rows from {self.path}")
        return self._rows

    def _read_file(self) -> list[dict[str, Any]]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise AnalyticsUnavailableError(f"Analytics file not found: {self.path}") from e
        except json.JSONDecodeError as e:
            raise AnalyticsUnavailableError(f"Malformed analytics file {self.path}: {e}") from e

        if isinstance(data, dict):
            data = data.get("rows", [])
        if not isinstance(data, list):
            raise AnalyticsUnavailableError(f"Analytics file {self.path} does not contain a row list")

        rows = []
        for row in data:
            if not isinstance(row, dict):
                continue
            try:
                row_date = date.fromisoformat(str(row.get("date", ""))[:10])
            except ValueError:
                logger.debug(f"Skipping analytics row with invalid date: {row.get('date')!r}")
                continue
            rows.append({**row, "date": row_date})
        return rows

    async def aggregate(self, date_range: DateRange | None = None) -> dict[str, QueryMetrics]:
        """Aggregate rows per normalized query, optionally restricted to a range."""
        totals: dict[str, dict[str, float]] = {}
        for row in await self._load_rows():
            if date_range and not (date_range.start_date <= row["date"] <= date_range.end_date):
                continue

            metrics = QueryMetrics(
                query=row.get("query"),
                impressions=row.get("impressions"),
                clicks=row.get("clicks"),
                position=row.get("position"),
            )
            query = " ".join(metrics.query.lower().split())
            if not query:
                continue

            entry = totals.setdefault(query, {"impressions": 0, "clicks": 0, "weighted_position": 0.0})
            entry["impressions"] += metrics.impressions
            entry["clicks"] += metrics.clicks
            entry["weighted_position"] += metrics.position * metrics.impressions

        aggregated = {}
        for query, entry in totals.items():
            impressions = entry["impressions"]
            aggregated[query] = QueryMetrics(
                query=query,
                impressions=impressions,
                clicks=entry["clicks"],
                ctr=entry["clicks"] / impressions if impressions else 0.0,
                position=entry["weighted_position"] / impressions if impressions else 1.0,
            )
        return aggregated

    async def get_comparisons(
        self, current_range: DateRange, previous_range: DateRange
    ) -> list[PeriodComparison]:
        current = await self.aggregate(current_range)
        previous = await self.aggregate(previous_range)

        comparisons = [
            build_comparison(metrics, previous.get(query))
            for query, metrics in current.items()
        ]
        logger.info(
            f"Built {len(comparisons)} comparisons for {current_range.start_date} to "
            f"{current_range.end_date}"
        )
        return comparisons

    async def get_ctr_benchmarks(self) -> CTRBenchmarks | None:
        aggregated = await self.aggregate()
        if not aggregated:
            return None
        return compute_ctr_benchmarks(aggregated.values(), self.benchmark_min_impressions)
