"""Search analytics models and sources."""

from .benchmarks import compute_ctr_benchmarks, position_bucket
from .models import (
    DEFAULT_CTR_BENCHMARKS,
    CTRBenchmark,
    CTRBenchmarks,
    DateRange,
    PeriodChange,
    PeriodComparison,
    QueryMetrics,
    TrendsData,
    build_comparison,
)
from .source import AnalyticsSource, JsonFileAnalyticsSource, TrendsSource

__all__ = [
    "DEFAULT_CTR_BENCHMARKS",
    "AnalyticsSource",
    "CTRBenchmark",
    "CTRBenchmarks",
    "DateRange",
    "JsonFileAnalyticsSource",
    "PeriodChange",
    "PeriodComparison",
    "QueryMetrics",
    "TrendsData",
    "TrendsSource",
    "build_comparison",
    "compute_ctr_benchmarks",
    "position_bucket",
]
