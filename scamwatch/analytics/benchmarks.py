"""Position-bucketed CTR benchmarks derived from historical analytics."""

import logging
from collections.abc import Iterable

import numpy as np

from .models import DEFAULT_CTR_BENCHMARKS, POSITION_BUCKETS, CTRBenchmark, CTRBenchmarks, QueryMetrics

logger = logging.getLogger(__name__)


def position_bucket(position: float) -> str:
    """Map an average search position to its benchmark bucket."""
    if position <= 3:
        return "1-3"
    if position <= 8:
        return "4-8"
    if position <= 15:
        return "9-15"
    return "16+"


def compute_ctr_benchmarks(rows: Iterable[QueryMetrics], min_impressions: int = 10) -> CTRBenchmarks:
    """Compute per-bucket CTR percentiles.

    The 10th percentile becomes ``min``, the median ``expected`` and the 90th
    percentile ``max``. Rows below ``min_impressions`` are too noisy to count.
    Buckets without samples keep the default values.

    Args:
        rows: Aggregated per-query metrics
        min_impressions: Minimum impressions for a row to be sampled

    Returns:
        CTRBenchmarks for all four buckets
    """
    samples: dict[str, list[float]] = {bucket: [] for bucket in POSITION_BUCKETS}
    analyzed = 0
    for row in rows:
        if row.impressions < min_impressions:
            continue
        samples[position_bucket(row.position)].append(row.ctr)
        analyzed += 1

    buckets: dict[str, CTRBenchmark] = {}
    for bucket in POSITION_BUCKETS:
        values = samples[bucket]
        if not values:
            logger.debug(f"No CTR samples for position bucket {bucket}, using default")
            buckets[bucket] = DEFAULT_CTR_BENCHMARKS.buckets[bucket]
            continue

        p10, p50, p90 = np.percentile(np.asarray(values, dtype=np.float64), [10, 50, 90])
        buckets[bucket] = CTRBenchmark(
            position_range=bucket,
            min=float(p10),
            expected=float(p50),
            max=float(p90),
            sample_size=len(values),
        )

    logger.info(f"Computed CTR benchmarks from {analyzed} queries")
    return CTRBenchmarks(buckets=buckets, total_queries_analyzed=analyzed)
