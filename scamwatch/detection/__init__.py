"""Semantic zone classification, signal evaluation and convergence scoring."""

from .convergence import SIGNAL_WEIGHTS, ConvergenceScorer, calculate_convergence_score
from .models import (
    CategoryCentroid,
    ConvergenceResult,
    CTRAnomaly,
    DetectionSignal,
    SemanticCategory,
    SemanticZoneResult,
    SignalType,
    VelocityMetrics,
    VelocityTrend,
)
from .signals import (
    calculate_ctr_anomaly,
    calculate_velocity,
    evaluate_ctr_anomaly_signal,
    evaluate_embedding_signal,
    evaluate_pattern_signal,
    evaluate_velocity_signal,
    find_dynamic_patterns,
    select_benchmark,
)
from .zones import CENTROIDS_CACHE_KEY, SemanticZoneClassifier, calculate_confidence

__all__ = [
    "CENTROIDS_CACHE_KEY",
    "SIGNAL_WEIGHTS",
    "CTRAnomaly",
    "CategoryCentroid",
    "ConvergenceResult",
    "ConvergenceScorer",
    "DetectionSignal",
    "SemanticCategory",
    "SemanticZoneClassifier",
    "SemanticZoneResult",
    "SignalType",
    "VelocityMetrics",
    "VelocityTrend",
    "calculate_confidence",
    "calculate_convergence_score",
    "calculate_ctr_anomaly",
    "calculate_velocity",
    "evaluate_ctr_anomaly_signal",
    "evaluate_embedding_signal",
    "evaluate_pattern_signal",
    "evaluate_velocity_signal",
    "find_dynamic_patterns",
    "select_benchmark",
]
