"""Semantic zone classification against legitimate query categories."""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from scamwatch.cache import Cache
from scamwatch.embedding import BatchEmbedder, compute_centroid, cosine_similarity
from scamwatch.errors import EmbeddingUnavailableError
from scamwatch.terms import TermEvent, TermEventType, TermStore, normalize_term
from .models import CategoryCentroid, SemanticCategory, SemanticZoneResult

logger = logging.getLogger(__name__)

CENTROIDS_CACHE_KEY = "category-centroids-v1"

# Half-width of the band around a category threshold where confidence ramps 0 -> 1
CONFIDENCE_BAND = 0.1


def calculate_confidence(similarity: float, threshold: float) -> float:
    """Linear confidence ramp from threshold-0.1 (0) to threshold+0.1 (1)."""
    if similarity < threshold - CONFIDENCE_BAND:
        return 0.0
    if similarity >= threshold + CONFIDENCE_BAND:
        return 1.0
    return (similarity - (threshold - CONFIDENCE_BAND)) / (2 * CONFIDENCE_BAND)


class SemanticZoneClassifier:
    """Classifies queries by similarity to legitimate category centroids.

    Instead of an exhaustive whitelist, each legitimate intent category is
    represented by the mean embedding of its exemplars. A query whose nearest
    centroid is at least ``threshold`` similar is legitimate.

    Centroids live in the shared cache with an expiry. When the entry expires
    while centroids are held in memory, those stale centroids keep serving and
    a rebuild runs in the background.
    """

    def __init__(
        self,
        embedder: BatchEmbedder,
        term_store: TermStore,
        cache: Cache,
        threshold: float = 0.80,
        cache_ttl: float | None = 86400,
        retry_seconds: float = 60.0,
        clock: Callable[[], float] | None = None,
    ):
        self.embedder = embedder
        self.term_store = term_store
        self.cache = cache
        self.threshold = threshold
        self.cache_ttl = cache_ttl
        self.retry_seconds = retry_seconds
        self._clock = clock or time.monotonic

        self._centroids: dict[str, CategoryCentroid] = {}
        self._lock = asyncio.Lock()
        self._last_failure: float | None = None
        self._refresh_task: asyncio.Task | None = None
        self.term_store.add_listener(self._on_term_event)

    def is_ready(self) -> bool:
        """Check if centroids are available."""
        return bool(self._centroids)

    async def initialize(self) -> bool:
        """Compute (or load cached) centroids for every category.

        Returns:
            True if centroids are available
        """
        cached = self.cache.get(CENTROIDS_CACHE_KEY)
        if cached:
            self._centroids = cached
            logger.info(f"Loaded {len(cached)} category centroids from cache")
            return True
        return await self._rebuild(force=True)

    async def _rebuild(self, force: bool = False) -> bool:
        if not force and not self._retry_allowed():
            return self.is_ready()

        async with self._lock:
            categories = {}
            for name, category in self.term_store.get_legitimate_categories().items():
                if not category.exemplars:
                    logger.warning(f"Category '{name}' has no exemplars, skipping")
                    continue
                categories[name] = category
            texts = [e for category in categories.values() for e in category.exemplars]

            logger.info(f"Computing centroids for {len(categories)} legitimate query categories...")
            try:
                vectors = await self.embedder.embed(texts)
            except EmbeddingUnavailableError as e:
                self._last_failure = self._clock()
                logger.warning(f"Failed to compute category centroids: {e}")
                return self.is_ready()

            centroids: dict[str, CategoryCentroid] = {}
            offset = 0
            for name, category in categories.items():
                count = len(category.exemplars)
                centroids[name] = CategoryCentroid(
                    name=name,
                    description=category.description,
                    centroid=compute_centroid(vectors[offset : offset + count]),
                    exemplar_count=count,
                    threshold=self.threshold,
                )
                offset += count
                logger.debug(f"Computed centroid for '{name}' from {count} exemplars")

            self.cache.set(CENTROIDS_CACHE_KEY, centroids, self.cache_ttl)
            self._centroids = centroids
            self._last_failure = None
            logger.info(f"Computed and cached {len(centroids)} category centroids")
            return bool(centroids)

    def _retry_allowed(self) -> bool:
        return self._last_failure is None or self._clock() - self._last_failure >= self.retry_seconds

    async def _current_centroids(self) -> dict[str, CategoryCentroid]:
        cached = self.cache.get(CENTROIDS_CACHE_KEY)
        if cached:
            self._centroids = cached
            return cached

        if self._centroids:
            # Expired: serve stale centroids while refreshing
            if (self._refresh_task is None or self._refresh_task.done()) and self._retry_allowed():
                logger.info("Category centroids expired, refreshing in background")
                self._refresh_task = asyncio.create_task(self._rebuild())
            return self._centroids

        await self._rebuild()
        return self._centroids

    def _score(
        self, query: str, vector: list[float], centroids: dict[str, CategoryCentroid]
    ) -> SemanticZoneResult:
        nearest_category = ""
        max_similarity = 0.0
        categories = []
        for name, centroid in centroids.items():
            similarity = cosine_similarity(vector, centroid.centroid)
            categories.append(
                SemanticCategory(
                    name=name,
                    similarity=similarity,
                    distance=1 - similarity,
                    confidence=calculate_confidence(similarity, centroid.threshold),
                )
            )
            if similarity > max_similarity:
                max_similarity = similarity
                nearest_category = name

        categories.sort(key=lambda c: c.similarity, reverse=True)
        return SemanticZoneResult(
            query=query,
            is_legitimate=max_similarity >= self.threshold,
            nearest_category=nearest_category,
            similarity=max_similarity,
            all_categories=categories,
        )

    async def classify(self, query: str) -> SemanticZoneResult:
        """Classify one query.

        Returns a not-legitimate, zero-similarity result when no centroids are
        available or the query cannot be embedded.
        """
        return (await self.classify_batch([query]))[0]

    async def classify_batch(self, queries: list[str]) -> list[SemanticZoneResult]:
        """Classify many queries with a single batched embedding call."""
        normalized = [normalize_term(q) for q in queries]
        if not normalized:
            return []

        centroids = await self._current_centroids()
        if not centroids:
            return [SemanticZoneResult(query=q) for q in normalized]

        try:
            vectors = await self.embedder.embed(normalized)
        except EmbeddingUnavailableError as e:
            logger.warning(f"Semantic zone check failed for {len(normalized)} queries: {e}")
            return [SemanticZoneResult(query=q) for q in normalized]

        return [self._score(q, v, centroids) for q, v in zip(normalized, vectors)]

    async def add_exemplar(self, term: str, category: str | None = None) -> str | None:
        """Add a legitimate exemplar; centroids are recomputed by the store event.

        Returns:
            The category the exemplar landed in, or None if it already existed
        """
        return await self.term_store.add_exemplar(term, category)

    async def _on_term_event(self, event: TermEvent) -> None:
        if event.type != TermEventType.EXEMPLAR_ADDED:
            return
        self.cache.delete(CENTROIDS_CACHE_KEY)
        await self._rebuild(force=True)
        logger.info(f"Rebuilt centroids after adding exemplar '{event.term}' to '{event.category}'")

    def get_status(self) -> dict[str, Any]:
        """Get classifier status."""
        categories = self.term_store.get_legitimate_categories()
        return {
            "ready": self.is_ready(),
            "category_count": len(self._centroids),
            "total_exemplars": sum(len(c.exemplars) for c in categories.values()),
            "threshold": self.threshold,
        }

    def get_category_stats(self) -> list[dict[str, Any]]:
        """Get per-category exemplar counts."""
        return [
            {"name": name, "exemplar_count": len(c.exemplars), "description": c.description}
            for name, c in self.term_store.get_legitimate_categories().items()
        ]
