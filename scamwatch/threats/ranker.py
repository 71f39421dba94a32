"""Emerging threat ranking and the cached ranking service."""

import asyncio
import logging
import math
from collections.abc import Callable
from datetime import date, timedelta

from scamwatch.analytics import (
    DEFAULT_CTR_BENCHMARKS,
    AnalyticsSource,
    CTRBenchmarks,
    DateRange,
    PeriodComparison,
    TrendsSource,
)
from scamwatch.cache import Cache
from scamwatch.detection import ConvergenceResult, ConvergenceScorer
from scamwatch.errors import AnalyticsUnavailableError
from scamwatch.terms import TermStore, normalize_term
from .models import (
    DetectionStatus,
    EmergingThreat,
    EmergingThreatsResponse,
    PaginationInfo,
    RiskLevel,
    ThreatChange,
    ThreatSummary,
)
from .scoring import (
    MIN_RISK_SCORE,
    calculate_risk_score,
    find_similar_scams,
    format_embedding_match,
    is_context_only_overlap,
    risk_level,
    summarize_trends,
)

logger = logging.getLogger(__name__)

MAX_TOTAL_THREATS = 5000
PAGE_SIZE = 500
MAX_PAGES = 10

TRENDS_MAX_LOOKUPS = 30
TRENDS_MIN_RISK_SCORE = 50
TRENDS_BOOST = 10

BENCHMARKS_CACHE_KEY = "ctr-benchmarks"


def clamp_page(page: int) -> int:
    """Clamp a requested page number to [1, MAX_PAGES]."""
    return max(1, min(page, MAX_PAGES))


def is_candidate(comparison: PeriodComparison) -> bool:
    """Volume/novelty heuristics that make a query worth scoring."""
    impressions = comparison.current.impressions
    if comparison.is_new and impressions >= 20:
        return True
    percent = comparison.change.impressions_percent
    if percent is not None and percent >= 50 and impressions >= 50:
        return True
    return impressions >= 500


class ThreatRanker:
    """Turns period comparisons into a bounded, paginated list of threats.

    Pipeline: pre-filter, batched convergence evaluation, semantic-zone and
    lexical exclusions, risk scoring, optional trends enrichment, then sort,
    cap and paginate.
    """

    def __init__(
        self,
        scorer: ConvergenceScorer,
        term_store: TermStore,
        trends: TrendsSource | None = None,
        trends_delay: float = 0.15,
    ):
        self.scorer = scorer
        self.term_store = term_store
        self.trends = trends
        self.trends_delay = trends_delay

    def pre_filter(self, comparisons: list[PeriodComparison]) -> list[PeriodComparison]:
        """Drop confirmed terms and keep only candidate comparisons."""
        known_scam_terms = self.term_store.get_known_scam_term_set()
        legitimate_exemplars = self.term_store.get_legitimate_exemplar_set()
        known_scam = 0
        known_legitimate = 0
        candidates = []
        for comparison in comparisons:
            query = normalize_term(comparison.query)
            if not query:
                continue
            if query in known_scam_terms:
                known_scam += 1
                continue
            if query in legitimate_exemplars:
                known_legitimate += 1
                continue
            if is_candidate(comparison):
                candidates.append(comparison)

        logger.info(
            f"Pre-filtered to {len(candidates)} candidate terms from {len(comparisons)} total "
            f"({known_scam} known scam terms, {known_legitimate} legitimate exemplars skipped)"
        )
        return candidates

    def detection_status(self) -> DetectionStatus:
        """Report which embedding-backed signals are unavailable."""
        reasons = []
        if not self.scorer.classifier.is_ready():
            reasons.append("semantic zone classifier not initialized")
        if not self.scorer.embedding_cache.is_ready():
            reasons.append("seed phrase embeddings unavailable")
        return DetectionStatus(degraded=bool(reasons), reasons=reasons)

    async def rank(
        self,
        comparisons: list[PeriodComparison],
        benchmarks: CTRBenchmarks,
        days: int,
        page: int = 1,
        current_period: DateRange | None = None,
        previous_period: DateRange | None = None,
    ) -> EmergingThreatsResponse:
        """Rank comparisons into one page of emerging threats.

        Args:
            comparisons: Period-over-period comparisons
            benchmarks: CTR benchmarks per position bucket
            days: Length of each period in days
            page: Requested page, clamped to [1, 10]
            current_period: Current date range, echoed in the response
            previous_period: Previous date range, echoed in the response

        Returns:
            EmergingThreatsResponse whose summary covers the full bounded list
        """
        page = clamp_page(page)
        detection = self.detection_status()
        if detection.degraded:
            logger.warning(f"Ranking with reduced signal coverage: {', '.join(detection.reasons)}")

        candidates = self.pre_filter(comparisons)
        results = await self.scorer.evaluate_batch(candidates, benchmarks, days)

        known_terms = self.term_store.get_known_scam_terms()
        context_words = self.term_store.get_context_words()
        excluded = {"legitimate_zone": 0, "legitimate_pattern": 0, "context_only": 0, "no_indicator": 0}

        threats: list[EmergingThreat] = []
        for comparison, result in zip(candidates, results):
            try:
                threat = self._build_threat(comparison, result, known_terms, context_words, excluded)
            except Exception as e:
                logger.warning(f"Skipping '{result.query}' after scoring error: {e}")
                continue
            if threat is not None:
                threats.append(threat)

        logger.info(
            f"Excluded {excluded['legitimate_zone']} legitimate zone, "
            f"{excluded['legitimate_pattern']} legitimate pattern, "
            f"{excluded['context_only']} context-only matches, "
            f"{excluded['no_indicator']} without scam indicators"
        )

        threats.sort(key=lambda t: t.risk_score, reverse=True)
        if self.trends is not None:
            await self._enrich_with_trends(threats)
            threats.sort(key=lambda t: t.risk_score, reverse=True)

        bounded = threats[:MAX_TOTAL_THREATS]
        total_items = len(bounded)
        total_pages = min(MAX_PAGES, math.ceil(total_items / PAGE_SIZE))
        start = (page - 1) * PAGE_SIZE
        page_items = bounded[start : start + PAGE_SIZE]

        summary = ThreatSummary(
            critical=sum(1 for t in bounded if t.risk_level == RiskLevel.CRITICAL),
            high=sum(1 for t in bounded if t.risk_level == RiskLevel.HIGH),
            medium=sum(1 for t in bounded if t.risk_level == RiskLevel.MEDIUM),
            low=sum(1 for t in bounded if t.risk_level == RiskLevel.LOW),
            total=total_items,
        )
        pagination = PaginationInfo(
            page=page,
            page_size=PAGE_SIZE,
            total_items=total_items,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )

        logger.info(
            f"Found {summary.total} emerging threats ({summary.critical} critical, {summary.high} high) - "
            f"showing page {page}/{total_pages} ({len(page_items)} items)"
        )
        return EmergingThreatsResponse(
            current_period=current_period,
            previous_period=previous_period,
            threats=page_items,
            summary=summary,
            pagination=pagination,
            detection=detection,
        )

    def _build_threat(
        self,
        comparison: PeriodComparison,
        result: ConvergenceResult,
        known_terms: list[str],
        context_words: frozenset[str],
        excluded: dict[str, int],
    ) -> EmergingThreat | None:
        query = result.query
        if result.semantic_zone.is_legitimate:
            excluded["legitimate_zone"] += 1
            return None
        if result.ctr_anomaly is None:
            # Signal evaluation failed for this record
            return None
        if self.term_store.matches_legitimate_pattern(query):
            logger.debug(f"Skipping '{query}' - legitimate pattern match")
            excluded["legitimate_pattern"] += 1
            return None

        match = result.embedding_match
        if match is not None and is_context_only_overlap(query, match.phrase, context_words):
            logger.debug(f"Skipping '{query}' - only context words shared with '{match.phrase}'")
            excluded["context_only"] += 1
            return None

        similar_scams = [format_embedding_match(match)] if match else find_similar_scams(query, known_terms)
        if match is None and not result.matched_patterns and not similar_scams:
            excluded["no_indicator"] += 1
            return None

        score = calculate_risk_score(comparison, result, similar_scams)
        if score < MIN_RISK_SCORE:
            return None

        previous = comparison.previous
        return EmergingThreat(
            query=query,
            risk_score=score,
            risk_level=risk_level(score),
            ctr_anomaly=result.ctr_anomaly,
            matched_patterns=result.matched_patterns,
            similar_scams=similar_scams,
            current=comparison.current,
            previous=previous,
            change=ThreatChange(
                impressions=comparison.change.impressions,
                impressions_percent=comparison.change.impressions_percent,
                ctr_delta=comparison.current.ctr - (previous.ctr if previous else 0.0),
            ),
            velocity=result.velocity,
            flag_reason=result.flag_reason,
            is_new=comparison.is_new,
        )

    async def _enrich_with_trends(self, threats: list[EmergingThreat]) -> None:
        high_risk = [t for t in threats if t.risk_score >= TRENDS_MIN_RISK_SCORE][:TRENDS_MAX_LOOKUPS]
        if not high_risk:
            return

        logger.info(f"Enriching {len(high_risk)} high-risk threats with trends data")
        for threat in high_risk:
            try:
                points = await self.trends.get_interest(threat.query)
            except Exception as e:
                logger.debug(f"Trends lookup failed for '{threat.query}': {e}")
                points = None

            trends_data = summarize_trends(points or [])
            if trends_data is not None:
                threat.trends_data = trends_data
                if trends_data.is_trending:
                    threat.risk_score = min(100, threat.risk_score + TRENDS_BOOST)
                    threat.risk_level = risk_level(threat.risk_score)

            if self.trends_delay > 0:
                await asyncio.sleep(self.trends_delay)


def period_ranges(days: int, today: date | None = None) -> tuple[DateRange, DateRange]:
    """Get the current and previous date ranges.

    The current range ends yesterday; the previous range is the window of the
    same length immediately before it.
    """
    today = today or date.today()
    current_end = today - timedelta(days=1)
    current_start = current_end - timedelta(days=days - 1)
    previous_end = current_start - timedelta(days=1)
    previous_start = previous_end - timedelta(days=days - 1)
    return (
        DateRange(start_date=current_start, end_date=current_end),
        DateRange(start_date=previous_start, end_date=previous_end),
    )


class ThreatService:
    """Loads analytics, ranks threats and memoizes pages per (days, page)."""

    def __init__(
        self,
        ranker: ThreatRanker,
        analytics: AnalyticsSource,
        cache: Cache,
        cache_ttl: float | None = 3600,
        today: Callable[[], date] | None = None,
    ):
        self.ranker = ranker
        self.analytics = analytics
        self.cache = cache
        self.cache_ttl = cache_ttl
        self._today = today or date.today

    async def get_ctr_benchmarks(self) -> CTRBenchmarks:
        """Get benchmarks from the analytics source, falling back to defaults.

        Dynamic benchmarks are cached for the same TTL as threat pages.
        """
        cached = self.cache.get(BENCHMARKS_CACHE_KEY)
        if cached is not None:
            return cached

        try:
            benchmarks = await self.analytics.get_ctr_benchmarks()
        except AnalyticsUnavailableError as e:
            logger.warning(f"Failed to calculate dynamic benchmarks, using fallbacks: {e}")
            return DEFAULT_CTR_BENCHMARKS

        if benchmarks is None:
            return DEFAULT_CTR_BENCHMARKS

        logger.info(f"Using dynamic CTR benchmarks from {benchmarks.total_queries_analyzed} queries")
        self.cache.set(BENCHMARKS_CACHE_KEY, benchmarks, self.cache_ttl)
        return benchmarks

    async def rank_emerging_threats(self, days: int = 7, page: int = 1) -> EmergingThreatsResponse:
        """Rank emerging threats for the last ``days`` days versus the window before.

        Concurrent requests for the same (days, page) share one computation.

        Raises:
            ValueError: If days is not positive
            AnalyticsUnavailableError: If comparisons cannot be loaded
        """
        if days < 1:
            raise ValueError(f"days must be positive, got {days}")

        page = clamp_page(page)
        cache_key = f"emerging-threats:{days}:page-{page}"

        async def compute() -> EmergingThreatsResponse:
            logger.info(f"Analyzing emerging threats for {days}-day comparison (page {page})")
            current_range, previous_range = period_ranges(days, self._today())
            benchmarks = await self.get_ctr_benchmarks()
            comparisons = await self.analytics.get_comparisons(current_range, previous_range)
            return await self.ranker.rank(
                comparisons,
                benchmarks,
                days,
                page,
                current_period=current_range,
                previous_period=previous_range,
            )

        return await self.cache.get_or_set(cache_key, self.cache_ttl, compute)

    def invalidate(self) -> int:
        """Drop every cached threat page."""
        return self.cache.invalidate("emerging-threats:")
