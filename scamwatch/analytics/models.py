"""Search analytics records and period-over-period comparisons."""

import math
from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

POSITION_BUCKETS = ("1-3", "4-8", "9-15", "16+")


def _finite_or_zero(value: Any) -> float:
    """Coerce a possibly missing or non-finite number to a finite float."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


class QueryMetrics(BaseModel):
    """One query's analytics for a single date range.

    Malformed numeric fields are normalized instead of rejected so that one bad
    row never fails a whole batch.
    """

    model_config = ConfigDict(frozen=True)

    query: str = ""
    impressions: int = 0
    clicks: int = 0
    ctr: float = 0.0
    position: float = 1.0

    @field_validator("query", mode="before")
    @classmethod
    def _coerce_query(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("impressions", "clicks", mode="before")
    @classmethod
    def _coerce_count(cls, value: Any) -> int:
        return max(0, int(_finite_or_zero(value)))

    @field_validator("ctr", mode="before")
    @classmethod
    def _coerce_ctr(cls, value: Any) -> float:
        return min(1.0, max(0.0, _finite_or_zero(value)))

    @field_validator("position", mode="before")
    @classmethod
    def _coerce_position(cls, value: Any) -> float:
        return max(1.0, _finite_or_zero(value))


class PeriodChange(BaseModel):
    """Derived change between two periods."""

    impressions: int = 0
    impressions_percent: float | None = None
    position: float = 0.0
    ctr_delta: float = 0.0


class PeriodComparison(BaseModel):
    """A query's current metrics paired with its previous-period metrics."""

    query: str
    current: QueryMetrics
    previous: QueryMetrics | None = None
    is_new: bool = False
    change: PeriodChange = Field(default_factory=PeriodChange)

    @model_validator(mode="after")
    def _previous_absent_means_new(self) -> "PeriodComparison":
        if self.previous is None:
            self.is_new = True
        return self


def build_comparison(current: QueryMetrics, previous: QueryMetrics | None = None) -> PeriodComparison:
    """Pair two periods and derive the change fields.

    The impression growth percentage is None when there is no previous period
    or the previous period had no impressions. Both cases count as new.
    """
    if previous is None:
        change = PeriodChange(
            impressions=current.impressions,
            impressions_percent=None,
            position=0.0,
            ctr_delta=current.ctr,
        )
        return PeriodComparison(query=current.query, current=current, is_new=True, change=change)

    percent = None
    if previous.impressions > 0:
        percent = (current.impressions - previous.impressions) / previous.impressions * 100

    change = PeriodChange(
        impressions=current.impressions - previous.impressions,
        impressions_percent=percent,
        position=current.position - previous.position,
        ctr_delta=current.ctr - previous.ctr,
    )
    return PeriodComparison(
        query=current.query,
        current=current,
        previous=previous,
        is_new=percent is None,
        change=change,
    )


class DateRange(BaseModel):
    """Inclusive date range."""

    start_date: date
    end_date: date

    @property
    def days(self) -> int:
        """Number of days covered by the range."""
        return (self.end_date - self.start_date).days + 1


class CTRBenchmark(BaseModel):
    """Expected CTR statistics for one position bucket."""

    position_range: str
    min: float
    expected: float
    max: float
    sample_size: int = 0


class CTRBenchmarks(BaseModel):
    """CTR benchmarks for every position bucket."""

    buckets: dict[str, CTRBenchmark]
    calculated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    total_queries_analyzed: int = 0

    def for_bucket(self, bucket: str) -> CTRBenchmark:
        """Get a bucket's benchmark, falling back to the default table."""
        return self.buckets.get(bucket) or DEFAULT_CTR_BENCHMARKS.buckets[bucket]


DEFAULT_CTR_BENCHMARKS = CTRBenchmarks(
    buckets={
        "1-3": CTRBenchmark(position_range="1-3", min=0.03, expected=0.20, max=0.30),
        "4-8": CTRBenchmark(position_range="4-8", min=0.02, expected=0.10, max=0.15),
        "9-15": CTRBenchmark(position_range="9-15", min=0.01, expected=0.05, max=0.08),
        "16+": CTRBenchmark(position_range="16+", min=0.005, expected=0.02, max=0.03),
    },
    calculated_at=datetime(1970, 1, 1, tzinfo=timezone.utc),
)


class TrendsData(BaseModel):
    """Public search-interest summary for a query."""

    interest: int
    trend: str
    change_percent: int
    is_trending: bool
