"""Seed phrase embeddings and semantic similarity lookups."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from scamwatch.cache import Cache
from scamwatch.errors import EmbeddingUnavailableError
from scamwatch.terms import SeedPhrase, Severity, TermEvent, TermEventType, TermStore, normalize_term
from .batcher import BatchEmbedder
from .models import EmbeddingMatch, QueryEmbeddingResult
from .vectors import cosine_similarity_matrix

logger = logging.getLogger(__name__)

SEED_EMBEDDINGS_CACHE_KEY = "seed-embeddings-v1"


@dataclass
class SeedIndex:
    """Seed phrases and their embedding matrix, row-aligned."""

    phrases: list[SeedPhrase] = field(default_factory=list)
    matrix: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))

    def without(self, text: str) -> "SeedIndex":
        """Get a copy of the index with one phrase dropped."""
        keep = [i for i, p in enumerate(self.phrases) if p.text != text]
        return SeedIndex(phrases=[self.phrases[i] for i in keep], matrix=self.matrix[keep])


class EmbeddingCache:
    """Maintains one embedding per known seed phrase.

    The index is replaced wholesale after a rebuild, so readers keep using the
    previous index while a new one is being computed.
    """

    def __init__(
        self,
        embedder: BatchEmbedder,
        term_store: TermStore,
        cache: Cache,
        threshold: float = 0.70,
        cache_ttl: float | None = 86400,
    ):
        """Initialize the embedding cache.

        Args:
            embedder: Batched embedding access
            term_store: Source of seed phrases; mutation events trigger rebuilds
            cache: Shared cache holding the seed vectors
            threshold: Default similarity threshold for matches
            cache_ttl: TTL for the cached seed vectors
        """
        self.embedder = embedder
        self.term_store = term_store
        self.cache = cache
        self.threshold = threshold
        self.cache_ttl = cache_ttl

        self._index: SeedIndex | None = None
        self._lock = asyncio.Lock()
        self.term_store.add_listener(self._on_term_event)

    def is_ready(self) -> bool:
        """Check if seed embeddings are available."""
        return self._index is not None

    @property
    def seed_phrase_count(self) -> int:
        """Get the number of embedded seed phrases."""
        return len(self._index.phrases) if self._index else 0

    async def initialize(self) -> bool:
        """Load seed vectors from the cache or compute them in one batched call.

        Returns:
            True if the cache is ready
        """
        async with self._lock:
            return await self._build()

    async def _build(self) -> bool:
        phrases = self.term_store.get_seed_phrases()
        texts = [p.text for p in phrases]

        cached: dict[str, list[float]] | None = self.cache.get(SEED_EMBEDDINGS_CACHE_KEY)
        if cached is not None and all(t in cached for t in texts):
            vectors = [cached[t] for t in texts]
            logger.info(f"Loaded {len(vectors)} seed embeddings from cache")
        else:
            logger.info(f"Computing embeddings for {len(texts)} seed phrases...")
            try:
                vectors = await self.embedder.embed(texts)
            except EmbeddingUnavailableError as e:
                if self._index is None:
                    logger.warning(f"Failed to initialize seed embeddings, similarity matching disabled: {e}")
                else:
                    logger.warning(f"Failed to rebuild seed embeddings, keeping previous set: {e}")
                return self.is_ready()

            self.cache.set(SEED_EMBEDDINGS_CACHE_KEY, dict(zip(texts, vectors)), self.cache_ttl)
            logger.info(f"Computed and cached {len(vectors)} seed embeddings")

        # Phrases removed while the embeddings were computing must not come back
        active = {p.text for p in self.term_store.get_seed_phrases()}
        rows = [i for i, p in enumerate(phrases) if p.text in active]
        phrases = [phrases[i] for i in rows]
        vectors = [vectors[i] for i in rows]

        matrix = np.asarray(vectors, dtype=np.float64) if vectors else np.zeros((0, 0))
        self._index = SeedIndex(phrases=phrases, matrix=matrix)
        return True

    async def find_similar_phrases(self, query: str, threshold: float | None = None) -> list[EmbeddingMatch]:
        """Find seed phrases similar to a single query, best first."""
        results = await self.analyze_queries([query], threshold)
        return results[0].matches

    async def analyze_queries(
        self,
        queries: list[str],
        threshold: float | None = None,
        limit: int | None = None,
    ) -> list[QueryEmbeddingResult]:
        """Match many queries against the seed phrases with one batched embedding call.

        Args:
            queries: Queries to analyze
            threshold: Minimum similarity, defaults to the configured threshold
            limit: Maximum matches kept per query

        Returns:
            One result per query, in input order. Empty matches when the cache is
            not ready or the provider is unavailable.
        """
        normalized = [normalize_term(q) for q in queries]
        index = self._index
        if index is None or not index.phrases:
            logger.debug("Seed embeddings not ready, returning empty matches")
            return [QueryEmbeddingResult(query=q) for q in normalized]

        try:
            vectors = await self.embedder.embed(normalized)
        except EmbeddingUnavailableError as e:
            logger.warning(f"Query embedding failed, skipping similarity for {len(queries)} queries: {e}")
            return [QueryEmbeddingResult(query=q) for q in normalized]

        effective = self.threshold if threshold is None else threshold
        similarities = cosine_similarity_matrix(vectors, index.matrix)

        results = []
        for query, row in zip(normalized, similarities):
            order = np.argsort(-row, kind="stable")
            matches = []
            for i in order:
                if row[i] < effective or (limit is not None and len(matches) >= limit):
                    break
                phrase = index.phrases[i]
                matches.append(
                    EmbeddingMatch(
                        phrase=phrase.text,
                        category=phrase.category,
                        severity=phrase.severity,
                        similarity=float(row[i]),
                    )
                )
            results.append(QueryEmbeddingResult(query=query, matches=matches))
        return results

    async def add_seed_phrase(self, text: str, category: str, severity: str | Severity) -> bool:
        """Add a phrase through the term store; the store event triggers the rebuild."""
        return await self.term_store.add_seed_phrase(text, category, severity)

    async def remove_seed_phrase(self, text: str) -> bool:
        """Remove a phrase through the term store; it stops matching immediately."""
        return await self.term_store.remove_seed_phrase(text)

    async def reload_seed_phrases(self) -> bool:
        """Re-read every seed phrase from the store and recompute all embeddings."""
        async with self._lock:
            self.cache.delete(SEED_EMBEDDINGS_CACHE_KEY)
            ready = await self._build()
        logger.info(f"Reloaded {self.seed_phrase_count} seed phrases and embeddings")
        return ready

    async def _on_term_event(self, event: TermEvent) -> None:
        if event.type == TermEventType.SEED_PHRASE_REMOVED:
            if self._index is not None:
                self._index = self._index.without(event.term)
            self.cache.delete(SEED_EMBEDDINGS_CACHE_KEY)
            logger.info(f"Removed seed phrase '{event.term}' from embedding cache")

        elif event.type in (TermEventType.SEED_PHRASE_ADDED, TermEventType.SEED_PHRASES_RELOADED):
            async with self._lock:
                self.cache.delete(SEED_EMBEDDINGS_CACHE_KEY)
                await self._build()

    def get_status(self) -> dict[str, Any]:
        """Get embedding cache status."""
        return {
            "ready": self.is_ready(),
            "seed_phrase_count": self.seed_phrase_count,
            "model": self.embedder.model_name,
            "threshold": self.threshold,
        }
