"""Independent signal evaluators.

Each evaluator is a pure function of one period comparison (plus auxiliary
context) and returns a DetectionSignal. None of them raise for missing data;
absence of a signal is a normal result.
"""

import re
from datetime import date

from scamwatch.analytics import CTRBenchmark, CTRBenchmarks, PeriodComparison, position_bucket
from scamwatch.embedding.models import EmbeddingMatch
from .models import CTRAnomaly, DetectionSignal, SignalType, VelocityMetrics, VelocityTrend

EMBEDDING_THRESHOLD = 0.70
CTR_ANOMALY_THRESHOLD = 0.30
VELOCITY_THRESHOLD = 0.40

EMBEDDING_CONFIDENCE = 0.9
CTR_CONFIDENCE = 0.85
PATTERN_CONFIDENCE = 0.8
VELOCITY_CONFIDENCE = 0.7

# Impressions/day that saturates the velocity score
VELOCITY_SATURATION = 500
ACCELERATING_MIN_IMPRESSIONS = 50

DYNAMIC_PATTERNS = {
    "DOLLAR_AMOUNT": re.compile(r"\$\s*\d+(?:,\d{3})*(?:\.\d{2})?|\d+\s*(?:dollars?|bucks)", re.IGNORECASE),
    "URGENCY": re.compile(
        r"\b(urgent|immediate|immediately|act now|claim now|apply now|hurry|limited time|expires"
        r"|last chance|final notice)\b",
        re.IGNORECASE,
    ),
    "FREE_MONEY": re.compile(
        r"\b(free|bonus|extra|secret|hidden|unclaimed)\s+(money|cash|payment|benefit|refund|cheque|check)\b",
        re.IGNORECASE,
    ),
}
YEAR_PATTERN = re.compile(r"\b20(?:2[4-9]|[3-9]\d)\b")


def select_benchmark(position: float, benchmarks: CTRBenchmarks) -> CTRBenchmark:
    """Get the benchmark for the bucket containing a position."""
    return benchmarks.for_bucket(position_bucket(position))


def calculate_ctr_anomaly(actual_ctr: float, position: float, benchmarks: CTRBenchmarks) -> CTRAnomaly:
    """Compare actual CTR against the expected CTR for the position.

    The anomaly score is the relative shortfall below the expected CTR, capped
    at 1. A CTR strictly below the bucket minimum is anomalous.
    """
    bucket = position_bucket(position)
    benchmark = benchmarks.for_bucket(bucket)
    expected = benchmark.expected

    anomaly_score = 0.0
    if expected > 0 and actual_ctr < expected:
        anomaly_score = min(1.0, (expected - actual_ctr) / expected)

    return CTRAnomaly(
        expected_ctr=expected,
        actual_ctr=actual_ctr,
        anomaly_score=anomaly_score,
        is_anomalous=actual_ctr < benchmark.min,
        position_bucket=bucket,
    )


def find_dynamic_patterns(query: str, current_year: int | None = None) -> list[str]:
    """Find suspicious lexical patterns in a query.

    Returns:
        Labels like ``"DOLLAR_AMOUNT: $500"`` in a fixed order
    """
    current_year = current_year or date.today().year
    matched = []
    for label, pattern in DYNAMIC_PATTERNS.items():
        match = pattern.search(query)
        if match:
            matched.append(f"{label}: {match.group(0)}")

    year_match = YEAR_PATTERN.search(query)
    if year_match and int(year_match.group(0)) > current_year:
        matched.append(f"FUTURE_YEAR: {year_match.group(0)}")

    return matched


def calculate_velocity(comparison: PeriodComparison, period_days: int) -> VelocityMetrics:
    """Compute impressions/day growth and its trend."""
    impressions_per_day = comparison.change.impressions / period_days if period_days > 0 else 0.0
    velocity_score = min(1.0, max(0.0, impressions_per_day / VELOCITY_SATURATION))

    percent = comparison.change.impressions_percent
    if comparison.is_new or percent is None or percent > 100:
        trend = VelocityTrend.ACCELERATING
    elif percent > 0:
        trend = VelocityTrend.STEADY
    else:
        trend = VelocityTrend.DECELERATING

    return VelocityMetrics(
        impressions_per_day=round(impressions_per_day),
        velocity_score=velocity_score,
        trend=trend,
    )


def evaluate_embedding_signal(
    match: EmbeddingMatch | None, threshold: float = EMBEDDING_THRESHOLD
) -> DetectionSignal:
    """Score semantic similarity to the closest known scam phrase."""
    if match is None or match.similarity < threshold:
        return DetectionSignal(
            type=SignalType.EMBEDDING,
            details="No semantic match to known scam patterns",
        )

    return DetectionSignal(
        type=SignalType.EMBEDDING,
        active=True,
        strength=min(1.0, max(0.0, match.similarity)),
        confidence=EMBEDDING_CONFIDENCE,
        details=f'Semantic match to "{match.phrase}" ({match.similarity * 100:.1f}% similarity, {match.category})',
        metadata={
            "matched_phrase": match.phrase,
            "category": match.category,
            "severity": match.severity.value,
            "similarity": match.similarity,
        },
    )


def evaluate_ctr_anomaly_signal(comparison: PeriodComparison, benchmarks: CTRBenchmarks) -> DetectionSignal:
    """Score how far CTR falls below the benchmark for the query's position.

    A well-ranked query with few clicks suggests searchers are diverting to a
    non-official result.
    """
    current = comparison.current
    anomaly = calculate_ctr_anomaly(current.ctr, current.position, benchmarks)
    active = anomaly.anomaly_score >= CTR_ANOMALY_THRESHOLD or anomaly.is_anomalous

    if active:
        details = (
            f"CTR anomaly: {anomaly.actual_ctr * 100:.2f}% actual vs "
            f"{anomaly.expected_ctr * 100:.2f}% expected (position {current.position:.1f})"
        )
    else:
        details = f"CTR {anomaly.actual_ctr * 100:.2f}% vs expected {anomaly.expected_ctr * 100:.2f}%"

    return DetectionSignal(
        type=SignalType.CTR_ANOMALY,
        active=active,
        strength=anomaly.anomaly_score,
        confidence=CTR_CONFIDENCE,
        details=details,
        metadata={"ctr_anomaly": anomaly.model_dump()},
    )


def evaluate_pattern_signal(query: str, current_year: int | None = None) -> DetectionSignal:
    """Score dollar amounts, urgency, free-money phrasing and future years."""
    matched = find_dynamic_patterns(query, current_year)
    return DetectionSignal(
        type=SignalType.PATTERN_MATCH,
        active=bool(matched),
        strength=min(1.0, len(matched) * 0.3),
        confidence=PATTERN_CONFIDENCE,
        details=f"Matched patterns: {', '.join(matched)}" if matched else "No suspicious patterns detected",
        metadata={"matched_patterns": matched},
    )


def evaluate_velocity_signal(comparison: PeriodComparison, period_days: int) -> DetectionSignal:
    """Score impression growth per day."""
    velocity = calculate_velocity(comparison, period_days)
    active = velocity.velocity_score >= VELOCITY_THRESHOLD or (
        velocity.trend == VelocityTrend.ACCELERATING
        and comparison.current.impressions >= ACCELERATING_MIN_IMPRESSIONS
    )

    if active:
        details = f"High velocity: {velocity.impressions_per_day} impressions/day ({velocity.trend.value})"
    else:
        details = f"{velocity.impressions_per_day} impressions/day, trend: {velocity.trend.value}"

    return DetectionSignal(
        type=SignalType.VELOCITY,
        active=active,
        strength=velocity.velocity_score,
        confidence=VELOCITY_CONFIDENCE,
        details=details,
        metadata={"velocity": velocity.model_dump(mode="json")},
    )
