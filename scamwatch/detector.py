"""Scam detection facade wiring the detection components together."""

import logging
from typing import Any

from scamwatch.analytics import (
    DEFAULT_CTR_BENCHMARKS,
    AnalyticsSource,
    CTRBenchmarks,
    PeriodComparison,
    TrendsSource,
)
from scamwatch.cache import Cache, InMemoryCache
from scamwatch.config import Settings, get_settings
from scamwatch.detection import (
    ConvergenceResult,
    ConvergenceScorer,
    SemanticZoneClassifier,
    SemanticZoneResult,
)
from scamwatch.embedding import BatchEmbedder, EmbeddingCache
from scamwatch.errors import AnalyticsUnavailableError, ScamwatchError
from scamwatch.llm import EmbeddingProvider, create_embedding_provider
from scamwatch.terms import JsonTermStore, Severity, TermStore
from scamwatch.threats import DetectionStatus, EmergingThreatsResponse, ThreatRanker, ThreatService

logger = logging.getLogger(__name__)


class ScamDetector:
    """Entry point for semantic zone checks, convergence evaluation and threat ranking.

    Collaborators not passed in are created from settings on first use.
    """

    def __init__(
        self,
        provider: EmbeddingProvider | None = None,
        term_store: TermStore | None = None,
        analytics: AnalyticsSource | None = None,
        cache: Cache | None = None,
        trends: TrendsSource | None = None,
        settings: Settings | None = None,
    ):
        """Initialize the detector.

        Args:
            provider: Embedding provider
            term_store: Seed phrase and exemplar store
            analytics: Search analytics source, required for ranking
            cache: Shared cache for embeddings, centroids and threat pages
            trends: Optional trends source for enrichment
            settings: Settings, defaults to the global settings
        """
        self.settings = settings or get_settings()
        self.provider = provider
        self.term_store = term_store
        self.analytics = analytics
        self.cache = cache
        self.trends = trends

        self.embedder: BatchEmbedder | None = None
        self.embedding_cache: EmbeddingCache | None = None
        self.classifier: SemanticZoneClassifier | None = None
        self.scorer: ConvergenceScorer | None = None
        self.ranker: ThreatRanker | None = None
        self.threat_service: ThreatService | None = None

    async def _ensure_components(self) -> None:
        """Ensure all components are initialized."""
        if self.scorer is not None:
            return

        settings = self.settings
        if self.cache is None:
            self.cache = InMemoryCache()
        if self.term_store is None:
            self.term_store = JsonTermStore.from_files(
                settings.seed_phrases_path, settings.legitimate_queries_path
            )
        if self.provider is None:
            self.provider = create_embedding_provider()

        self.embedder = BatchEmbedder(
            self.provider,
            cache=self.cache,
            batch_size=settings.embedding_batch_size,
            timeout=settings.embedding_timeout_seconds,
            cache_ttl=settings.embedding_cache_ttl,
        )
        self.embedding_cache = EmbeddingCache(
            self.embedder,
            self.term_store,
            self.cache,
            threshold=settings.embedding_signal_threshold,
            cache_ttl=settings.embedding_cache_ttl,
        )
        self.classifier = SemanticZoneClassifier(
            self.embedder,
            self.term_store,
            self.cache,
            threshold=settings.legitimate_threshold,
            cache_ttl=settings.centroid_cache_ttl,
            retry_seconds=settings.centroid_retry_seconds,
        )
        self.scorer = ConvergenceScorer(
            self.classifier,
            self.embedding_cache,
            legitimate_threshold=settings.legitimate_threshold,
            short_circuit_threshold=settings.short_circuit_threshold,
            embedding_threshold=settings.embedding_signal_threshold,
        )
        self.ranker = ThreatRanker(self.scorer, self.term_store, trends=self.trends)
        if self.analytics is not None:
            self.threat_service = ThreatService(
                self.ranker,
                self.analytics,
                self.cache,
                cache_ttl=settings.analytics_cache_ttl,
            )

    async def initialize(self) -> bool:
        """Wait for the embedding provider, then build seed embeddings and centroids.

        Never raises; a provider that does not come up in time leaves detection
        degraded.

        Returns:
            True if both embedding-backed components are ready
        """
        try:
            await self._ensure_components()
        except (ScamwatchError, ValueError) as e:
            logger.error(f"Failed to set up scam detection: {e}")
            return False

        if not await self.embedder.wait_until_ready(self.settings.startup_timeout_seconds):
            return False

        await self.embedding_cache.initialize()
        await self.classifier.initialize()

        status = self.detection_status()
        if status.degraded:
            logger.warning(f"Scam detection degraded: {', '.join(status.reasons)}")
        else:
            logger.info("Scam detection initialized")
        return not status.degraded

    async def classify_semantic_zone(self, query: str) -> SemanticZoneResult:
        """Classify a query against the legitimate category centroids."""
        await self._ensure_components()
        return await self.classifier.classify(query)

    async def evaluate_convergence(
        self,
        comparison: PeriodComparison,
        benchmarks: CTRBenchmarks | None = None,
        period_days: int = 7,
    ) -> ConvergenceResult:
        """Evaluate every signal for one comparison."""
        await self._ensure_components()
        if benchmarks is None:
            benchmarks = (
                await self.threat_service.get_ctr_benchmarks()
                if self.threat_service
                else DEFAULT_CTR_BENCHMARKS
            )
        return await self.scorer.evaluate(comparison, benchmarks, period_days)

    async def rank_emerging_threats(self, days: int = 7, page: int = 1) -> EmergingThreatsResponse:
        """Rank emerging threats for a period.

        Raises:
            AnalyticsUnavailableError: If no analytics source is configured or it fails
        """
        await self._ensure_components()
        if self.threat_service is None:
            raise AnalyticsUnavailableError("No analytics source configured")
        return await self.threat_service.rank_emerging_threats(days, page)

    async def add_seed_phrase(self, text: str, category: str, severity: str | Severity = Severity.MEDIUM) -> bool:
        """Add a seed phrase and drop cached threat pages."""
        await self._ensure_components()
        added = await self.embedding_cache.add_seed_phrase(text, category, severity)
        if added:
            self._invalidate_threats()
        return added

    async def remove_seed_phrase(self, text: str) -> bool:
        """Remove a seed phrase and drop cached threat pages."""
        await self._ensure_components()
        removed = await self.embedding_cache.remove_seed_phrase(text)
        if removed:
            self._invalidate_threats()
        return removed

    async def add_legitimate_exemplar(self, term: str, category: str | None = None) -> str | None:
        """Add a legitimate exemplar and drop cached threat pages."""
        await self._ensure_components()
        added_to = await self.classifier.add_exemplar(term, category)
        if added_to:
            self._invalidate_threats()
        return added_to

    def _invalidate_threats(self) -> None:
        if self.threat_service is not None:
            count = self.threat_service.invalidate()
            logger.debug(f"Invalidated {count} cached threat pages")

    def detection_status(self) -> DetectionStatus:
        """Report whether detection is running with reduced signal coverage."""
        if self.ranker is None:
            return DetectionStatus(degraded=True, reasons=["detection not initialized"])
        return self.ranker.detection_status()

    def get_status(self) -> dict[str, Any]:
        """Get status of every detection component."""
        status: dict[str, Any] = {"detection": self.detection_status().model_dump()}
        if self.scorer is None:
            return status

        status.update(
            {
                "embedding": self.embedding_cache.get_status(),
                "semantic_zones": self.classifier.get_status(),
                "categories": self.classifier.get_category_stats(),
                "weights": self.scorer.get_weights(),
                "thresholds": self.scorer.get_thresholds(),
                "analytics_configured": self.threat_service is not None,
            }
        )
        return status

    async def aclose(self) -> None:
        """Release provider resources."""
        if self.provider is not None:
            await self.provider.aclose()
