"""Risk scoring and emerging threat ranking."""

from .models import (
    DetectionStatus,
    EmergingThreat,
    EmergingThreatsResponse,
    PaginationInfo,
    RiskLevel,
    ThreatChange,
    ThreatStatus,
    ThreatSummary,
)
from .ranker import (
    MAX_PAGES,
    MAX_TOTAL_THREATS,
    PAGE_SIZE,
    ThreatRanker,
    ThreatService,
    clamp_page,
    is_candidate,
    period_ranges,
)
from .scoring import (
    MIN_RISK_SCORE,
    calculate_risk_score,
    find_similar_scams,
    is_context_only_overlap,
    risk_level,
    summarize_trends,
)

__all__ = [
    "MAX_PAGES",
    "MAX_TOTAL_THREATS",
    "MIN_RISK_SCORE",
    "PAGE_SIZE",
    "DetectionStatus",
    "EmergingThreat",
    "EmergingThreatsResponse",
    "PaginationInfo",
    "RiskLevel",
    "ThreatChange",
    "ThreatRanker",
    "ThreatService",
    "ThreatStatus",
    "ThreatSummary",
    "calculate_risk_score",
    "clamp_page",
    "find_similar_scams",
    "is_candidate",
    "is_context_only_overlap",
    "period_ranges",
    "risk_level",
    "summarize_trends",
]
