"""Signal convergence: combine independent signals into one flag decision."""

import logging
from typing import Any

from scamwatch.analytics import CTRBenchmarks, PeriodComparison
from scamwatch.embedding import EmbeddingCache, EmbeddingMatch
from scamwatch.terms import normalize_term
from .models import ConvergenceResult, DetectionSignal, SemanticZoneResult, SignalType
from .signals import (
    CTR_ANOMALY_THRESHOLD,
    EMBEDDING_THRESHOLD,
    VELOCITY_THRESHOLD,
    calculate_ctr_anomaly,
    calculate_velocity,
    evaluate_ctr_anomaly_signal,
    evaluate_embedding_signal,
    evaluate_pattern_signal,
    evaluate_velocity_signal,
)
from .zones import SemanticZoneClassifier

logger = logging.getLogger(__name__)

SIGNAL_WEIGHTS: dict[SignalType, float] = {
    SignalType.EMBEDDING: 0.35,
    SignalType.CTR_ANOMALY: 0.25,
    SignalType.PATTERN_MATCH: 0.20,
    SignalType.VELOCITY: 0.12,
    SignalType.TRENDS: 0.08,
}

CONVERGENCE_THRESHOLD = 15
MIN_SIGNALS_TO_FLAG = 1
# Legitimate-zone similarity that brackets the "close to legitimate" note in flag reasons
NEAR_LEGITIMATE_SIMILARITY = 0.60

_REASON_LABELS = {
    SignalType.EMBEDDING: "semantic match",
    SignalType.CTR_ANOMALY: "CTR anomaly",
    SignalType.PATTERN_MATCH: "pattern match",
    SignalType.VELOCITY: "high velocity",
    SignalType.TRENDS: "trending",
}


def calculate_convergence_score(active_signals: list[DetectionSignal]) -> float:
    """Weighted sum of active signals on a 0-100 scale."""
    score = sum(
        s.strength * s.confidence * SIGNAL_WEIGHTS.get(s.type, 0.1) for s in active_signals
    )
    return min(100.0, max(0.0, round(score * 100, 2)))


class ConvergenceScorer:
    """Evaluates every signal for a query and decides whether to flag it.

    Evaluation order per query: semantic zone first (a clearly legitimate
    query exits before any other evaluator runs), then the four evaluators,
    then the weighted convergence score and flag decision.
    """

    def __init__(
        self,
        classifier: SemanticZoneClassifier,
        embedding_cache: EmbeddingCache,
        legitimate_threshold: float = 0.80,
        short_circuit_threshold: float = 0.85,
        embedding_threshold: float = EMBEDDING_THRESHOLD,
        current_year: int | None = None,
    ):
        self.classifier = classifier
        self.embedding_cache = embedding_cache
        self.legitimate_threshold = legitimate_threshold
        self.short_circuit_threshold = short_circuit_threshold
        self.embedding_threshold = embedding_threshold
        self.current_year = current_year

    async def evaluate(
        self, comparison: PeriodComparison, benchmarks: CTRBenchmarks, period_days: int
    ) -> ConvergenceResult:
        """Evaluate one comparison."""
        return (await self.evaluate_batch([comparison], benchmarks, period_days))[0]

    async def evaluate_batch(
        self, comparisons: list[PeriodComparison], benchmarks: CTRBenchmarks, period_days: int
    ) -> list[ConvergenceResult]:
        """Evaluate many comparisons.

        Uses one batched zone classification and one batched seed-similarity
        lookup covering only the queries that did not short-circuit.

        Returns:
            One result per comparison, in input order
        """
        if not comparisons:
            return []

        queries = [normalize_term(c.query) for c in comparisons]
        zones = await self.classifier.classify_batch(queries)

        pending = [i for i, zone in enumerate(zones) if not self._is_clearly_legitimate(zone)]
        embedding_results = await self.embedding_cache.analyze_queries(
            [queries[i] for i in pending], threshold=0.0, limit=1
        )
        top_matches = {i: r.top_match for i, r in zip(pending, embedding_results)}

        results = []
        for i, (comparison, query, zone) in enumerate(zip(comparisons, queries, zones)):
            if i not in top_matches:
                results.append(self._short_circuit(query, zone))
                continue
            try:
                results.append(
                    self._combine(query, comparison, zone, top_matches[i], benchmarks, period_days)
                )
            except Exception as e:
                logger.warning(f"Signal evaluation failed for '{query}': {e}")
                results.append(
                    ConvergenceResult(query=query, semantic_zone=zone, flag_reason=f"Evaluation failed: {e}")
                )

        flagged = sum(1 for r in results if r.should_flag)
        logger.debug(
            f"Evaluated {len(results)} queries: {len(results) - len(pending)} clearly legitimate, "
            f"{flagged} flagged"
        )
        return results

    def _is_clearly_legitimate(self, zone: SemanticZoneResult) -> bool:
        return zone.is_legitimate and zone.similarity >= self.short_circuit_threshold

    def _short_circuit(self, query: str, zone: SemanticZoneResult) -> ConvergenceResult:
        return ConvergenceResult(
            query=query,
            should_flag=False,
            flag_reason=(
                f'Legitimate query - matched "{zone.nearest_category}" with '
                f"{zone.similarity * 100:.1f}% similarity"
            ),
            semantic_zone=zone,
            short_circuited=True,
        )

    def _combine(
        self,
        query: str,
        comparison: PeriodComparison,
        zone: SemanticZoneResult,
        top_match: EmbeddingMatch | None,
        benchmarks: CTRBenchmarks,
        period_days: int,
    ) -> ConvergenceResult:
        embedding_signal = evaluate_embedding_signal(top_match, self.embedding_threshold)
        pattern_signal = evaluate_pattern_signal(query, self.current_year)
        signals = [
            embedding_signal,
            evaluate_ctr_anomaly_signal(comparison, benchmarks),
            pattern_signal,
            evaluate_velocity_signal(comparison, period_days),
        ]
        active = [s for s in signals if s.active]
        score = calculate_convergence_score(active)

        return ConvergenceResult(
            query=query,
            signals=signals,
            active_signals=active,
            active_signal_count=len(active),
            convergence_score=score,
            should_flag=self._should_flag(active, score, zone),
            flag_reason=self._flag_reason(active, zone),
            semantic_zone=zone,
            embedding_match=top_match if embedding_signal.active else None,
            ctr_anomaly=calculate_ctr_anomaly(comparison.current.ctr, comparison.current.position, benchmarks),
            velocity=calculate_velocity(comparison, period_days),
            matched_patterns=pattern_signal.metadata["matched_patterns"],
        )

    def _should_flag(
        self, active: list[DetectionSignal], score: float, zone: SemanticZoneResult
    ) -> bool:
        if zone.is_legitimate and zone.similarity >= self.legitimate_threshold:
            return False
        if len(active) >= MIN_SIGNALS_TO_FLAG:
            return True
        return score >= CONVERGENCE_THRESHOLD

    def _flag_reason(self, active: list[DetectionSignal], zone: SemanticZoneResult) -> str:
        if not active:
            return "No suspicious signals detected"

        reasons = [f"{_REASON_LABELS[s.type]} ({s.details})" for s in active]
        if NEAR_LEGITIMATE_SIMILARITY <= zone.similarity < self.legitimate_threshold:
            reasons.append(f'note: {zone.similarity * 100:.0f}% similar to "{zone.nearest_category}"')
        return "; ".join(reasons)

    def get_weights(self) -> dict[str, float]:
        """Get the signal weights."""
        return {signal_type.value: weight for signal_type, weight in SIGNAL_WEIGHTS.items()}

    def get_thresholds(self) -> dict[str, Any]:
        """Get the activation and flagging thresholds."""
        return {
            "embedding": self.embedding_threshold,
            "ctr_anomaly": CTR_ANOMALY_THRESHOLD,
            "velocity": VELOCITY_THRESHOLD,
            "convergence": CONVERGENCE_THRESHOLD,
            "min_signals_to_flag": MIN_SIGNALS_TO_FLAG,
            "legitimate": self.legitimate_threshold,
            "short_circuit": self.short_circuit_threshold,
        }
