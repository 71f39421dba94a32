"""Emerging threat models."""

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from scamwatch.analytics import DateRange, QueryMetrics, TrendsData
from scamwatch.detection import CTRAnomaly, VelocityMetrics


class RiskLevel(str, Enum):
    """Risk bucket of an emerging threat."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ThreatStatus(str, Enum):
    """Review state of an emerging threat."""

    PENDING = "pending"
    ADDED = "added"
    DISMISSED = "dismissed"


class ThreatChange(BaseModel):
    """Period-over-period change of a threat's metrics."""

    impressions: int
    impressions_percent: float | None = None
    ctr_delta: float = 0.0


class EmergingThreat(BaseModel):
    """A ranked candidate scam query."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    query: str
    risk_score: int
    risk_level: RiskLevel
    ctr_anomaly: CTRAnomaly
    matched_patterns: list[str] = Field(default_factory=list)
    similar_scams: list[str] = Field(default_factory=list)
    current: QueryMetrics
    previous: QueryMetrics | None = None
    change: ThreatChange
    velocity: VelocityMetrics | None = None
    trends_data: TrendsData | None = None
    flag_reason: str = ""
    is_new: bool = False
    first_seen: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: ThreatStatus = ThreatStatus.PENDING


class ThreatSummary(BaseModel):
    """Threat counts per level over the full bounded list."""

    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    total: int = 0


class PaginationInfo(BaseModel):
    """Page position within the bounded threat list."""

    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class DetectionStatus(BaseModel):
    """Whether ranking ran with reduced signal coverage."""

    degraded: bool = False
    reasons: list[str] = Field(default_factory=list)


class EmergingThreatsResponse(BaseModel):
    """One page of ranked emerging threats."""

    current_period: DateRange | None = None
    previous_period: DateRange | None = None
    threats: list[EmergingThreat] = Field(default_factory=list)
    summary: ThreatSummary = Field(default_factory=ThreatSummary)
    pagination: PaginationInfo
    detection: DetectionStatus = Field(default_factory=DetectionStatus)
