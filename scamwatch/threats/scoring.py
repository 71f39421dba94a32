"""Risk scoring and exclusion heuristics for emerging threats."""

import re
from collections.abc import Iterable
from difflib import SequenceMatcher

from scamwatch.analytics import PeriodComparison, TrendsData
from scamwatch.detection import ConvergenceResult
from scamwatch.embedding import EmbeddingMatch
from scamwatch.terms import Severity
from .models import RiskLevel

SEVERITY_MULTIPLIERS = {
    Severity.CRITICAL: 1.3,
    Severity.HIGH: 1.15,
}

WEIGHTS_WITH_EMBEDDING = {
    "embedding": 0.30,
    "ctr": 0.22,
    "position": 0.13,
    "volume": 0.13,
    "emergence": 0.10,
    "velocity": 0.12,
}
WEIGHTS_WITHOUT_EMBEDDING = {
    "ctr": 0.35,
    "position": 0.22,
    "volume": 0.18,
    "emergence": 0.13,
    "velocity": 0.12,
}

PATTERN_BONUS = 5
PATTERN_BONUS_CAP = 20
SIMILAR_SCAM_BONUS = 5
SIMILAR_SCAM_BONUS_CAP = 15

MIN_RISK_SCORE = 15
LEXICAL_SIMILARITY_THRESHOLD = 0.70
MAX_SIMILAR_SCAMS = 5

_TOKEN_RE = re.compile(r"[\w$&']+")


def risk_level(score: int) -> RiskLevel:
    """Map a 0-100 risk score to its level."""
    if score >= 76:
        return RiskLevel.CRITICAL
    if score >= 51:
        return RiskLevel.HIGH
    if score >= 31:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _position_factor(comparison: PeriodComparison) -> float:
    current = comparison.current
    if current.position <= 3 and current.clicks < 50 and current.impressions > 100:
        return 0.9
    if current.position <= 8 and current.clicks < 20 and current.impressions > 50:
        return 0.7
    if current.position <= 15 and current.clicks < 10 and current.impressions > 30:
        return 0.5
    return 0.0


def _volume_factor(comparison: PeriodComparison) -> float:
    growth = comparison.change.impressions_percent
    if growth is None:
        return 0.0
    if growth >= 300:
        return 1.0
    if growth >= 200:
        return 0.8
    if growth >= 100:
        return 0.6
    if growth >= 50:
        return 0.3
    return 0.0


def _emergence_factor(comparison: PeriodComparison) -> float:
    if not comparison.is_new:
        return 0.0
    impressions = comparison.current.impressions
    if impressions > 100:
        return 0.9
    if impressions > 50:
        return 0.6
    if impressions > 20:
        return 0.3
    return 0.0


def calculate_risk_score(
    comparison: PeriodComparison,
    result: ConvergenceResult,
    similar_scams: list[str],
) -> int:
    """Blend the risk factors into a 0-100 score.

    Weights shift toward the embedding term when a seed phrase matched, scaled
    by the matched phrase's severity. Pattern and lexical-similarity matches add
    capped flat bonuses; lexical similarity only counts without an embedding
    match.
    """
    ctr_factor = 0.0
    if result.ctr_anomaly is not None:
        ctr_factor = result.ctr_anomaly.anomaly_score
        if result.ctr_anomaly.is_anomalous:
            ctr_factor = min(1.0, ctr_factor + 0.3)

    factors = {
        "ctr": ctr_factor,
        "position": _position_factor(comparison),
        "volume": _volume_factor(comparison),
        "emergence": _emergence_factor(comparison),
        "velocity": result.velocity.velocity_score if result.velocity else 0.0,
    }

    match = result.embedding_match
    if match is not None:
        factors["embedding"] = match.similarity * SEVERITY_MULTIPLIERS.get(match.severity, 1.0)
        weights = WEIGHTS_WITH_EMBEDDING
    else:
        weights = WEIGHTS_WITHOUT_EMBEDDING

    score = sum(factors[name] * weight for name, weight in weights.items()) * 100

    if result.matched_patterns:
        score += min(PATTERN_BONUS_CAP, len(result.matched_patterns) * PATTERN_BONUS)
    if match is None and similar_scams:
        score += min(SIMILAR_SCAM_BONUS_CAP, len(similar_scams) * SIMILAR_SCAM_BONUS)

    return max(0, min(100, round(score)))


def tokenize(text: str) -> set[str]:
    """Split text into lowercase word tokens."""
    return set(_TOKEN_RE.findall(text.lower()))


def find_similar_scams(query: str, known_terms: Iterable[str]) -> list[str]:
    """Find known scam terms lexically close to a query.

    A term is similar when the character-level ratio reaches 0.70 or when it
    shares at least two words longer than two characters with the query.

    Returns:
        At most five descriptions, ratio matches first
    """
    query = query.lower()
    terms = list(dict.fromkeys(t.lower() for t in known_terms))
    similar = []

    for term in terms:
        matcher = SequenceMatcher(None, query, term)
        if matcher.real_quick_ratio() < LEXICAL_SIMILARITY_THRESHOLD:
            continue
        if matcher.quick_ratio() < LEXICAL_SIMILARITY_THRESHOLD:
            continue
        ratio = matcher.ratio()
        if ratio >= LEXICAL_SIMILARITY_THRESHOLD:
            similar.append(f"{term} ({round(ratio * 100)}%)")

    query_words = {w for w in query.split() if len(w) > 2}
    for term in terms:
        shared = [w for w in term.split() if len(w) > 2 and w in query_words]
        if len(set(shared)) >= 2:
            entry = f"{term} (shared: {', '.join(dict.fromkeys(shared))})"
            if entry not in similar:
                similar.append(entry)

    return similar[:MAX_SIMILAR_SCAMS]


def format_embedding_match(match: EmbeddingMatch) -> str:
    """Describe a seed phrase match for display."""
    return f"{match.phrase} ({round(match.similarity * 100)}% semantic match)"


def is_context_only_overlap(query: str, phrase: str, context_words: frozenset[str]) -> bool:
    """Check if a query shares words with a phrase only through generic context words.

    A query with no shared words at all is not a context-only overlap; the match
    is purely semantic and is kept.
    """
    shared = tokenize(query) & tokenize(phrase)
    return bool(shared) and shared <= context_words


def summarize_trends(points: list[float]) -> TrendsData | None:
    """Summarize an interest-over-time series.

    Compares the average of the last three points against the first three.
    """
    if not points:
        return None

    recent = points[-3:]
    older = points[:3]
    recent_avg = sum(recent) / len(recent)
    older_avg = sum(older) / len(older)
    change = (recent_avg - older_avg) / older_avg * 100 if older_avg > 0 else 0.0

    if change > 10:
        trend = "up"
    elif change < -10:
        trend = "down"
    else:
        trend = "stable"

    return TrendsData(
        interest=round(recent_avg),
        trend=trend,
        change_percent=round(change),
        is_trending=recent_avg > 50 and change > 10,
    )
