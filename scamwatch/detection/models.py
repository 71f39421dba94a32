"""Detection signal and classification result models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from scamwatch.embedding.models import EmbeddingMatch


class SignalType(str, Enum):
    """Independent detection signals."""

    EMBEDDING = "embedding"
    CTR_ANOMALY = "ctr_anomaly"
    PATTERN_MATCH = "pattern_match"
    VELOCITY = "velocity"
    TRENDS = "trends"


class VelocityTrend(str, Enum):
    """Direction of impression growth."""

    ACCELERATING = "accelerating"
    STEADY = "steady"
    DECELERATING = "decelerating"


class DetectionSignal(BaseModel):
    """Output of one signal evaluator."""

    type: SignalType
    active: bool = False
    strength: float = 0.0
    confidence: float = 0.0
    details: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class CategoryCentroid(BaseModel):
    """Mean exemplar embedding of one legitimate query category."""

    name: str
    description: str = ""
    centroid: list[float]
    exemplar_count: int
    threshold: float


class SemanticCategory(BaseModel):
    """A query's relation to one legitimate category."""

    name: str
    type: str = "legitimate"
    similarity: float
    distance: float
    confidence: float


class SemanticZoneResult(BaseModel):
    """Nearest legitimate zone of a query."""

    query: str
    is_legitimate: bool = False
    nearest_category: str = ""
    similarity: float = 0.0
    all_categories: list[SemanticCategory] = Field(default_factory=list)


class CTRAnomaly(BaseModel):
    """Actual CTR compared with the benchmark for the query's position."""

    expected_ctr: float
    actual_ctr: float
    anomaly_score: float
    is_anomalous: bool
    position_bucket: str = ""


class VelocityMetrics(BaseModel):
    """Impression growth rate between periods."""

    impressions_per_day: int
    velocity_score: float
    trend: VelocityTrend


class ConvergenceResult(BaseModel):
    """Combined verdict of all signals for one query."""

    query: str
    signals: list[DetectionSignal] = Field(default_factory=list)
    active_signals: list[DetectionSignal] = Field(default_factory=list)
    active_signal_count: int = 0
    convergence_score: float = 0.0
    should_flag: bool = False
    flag_reason: str = ""
    semantic_zone: SemanticZoneResult

    # Evaluator outputs reused by risk scoring
    embedding_match: EmbeddingMatch | None = None
    ctr_anomaly: CTRAnomaly | None = None
    velocity: VelocityMetrics | None = None
    matched_patterns: list[str] = Field(default_factory=list)

    # Signal evaluation was skipped for a clearly legitimate query
    short_circuited: bool = False
