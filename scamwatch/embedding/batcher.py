"""Batched, memoized access to the embedding provider."""

import asyncio
import logging
import time

from tqdm.asyncio import tqdm

from scamwatch.cache import Cache
from scamwatch.errors import EmbeddingUnavailableError
from scamwatch.llm.base import EmbeddingProvider

logger = logging.getLogger(__name__)


class BatchEmbedder:
    """Wraps an embedding provider with chunking, timeouts and a per-text memo.

    Every public embedding path in the detector goes through ``embed`` so that
    requests are coalesced: one provider call per sub-batch of at most
    ``batch_size`` texts, never one call per query.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        cache: Cache | None = None,
        batch_size: int = 2000,
        timeout: float = 30.0,
        cache_ttl: float | None = 86400,
    ):
        """Initialize the embedder.

        Args:
            provider: Embedding provider
            cache: Cache used to memoize vectors per text
            batch_size: Maximum inputs per provider request
            timeout: Maximum wait per provider request in seconds
            cache_ttl: TTL for memoized vectors
        """
        self.provider = provider
        self.cache = cache
        self.batch_size = max(1, batch_size)
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self._ready = False

    @property
    def model_name(self) -> str:
        """Get the underlying model name."""
        return self.provider.model_name

    def is_ready(self) -> bool:
        """Check whether the provider has answered at least once."""
        return self._ready

    async def wait_until_ready(self, timeout: float = 30.0, interval: float = 1.0) -> bool:
        """Poll the provider health check until it succeeds or the timeout elapses.

        Returns:
            True if the provider became healthy in time
        """
        deadline = time.monotonic() + timeout
        while True:
            try:
                healthy = await asyncio.wait_for(self.provider.health_check(), timeout=max(0.01, timeout))
            except asyncio.TimeoutError:
                healthy = False
            except Exception as e:
                logger.debug(f"Embedding provider health check raised: {e}")
                healthy = False

            if healthy:
                self._ready = True
                logger.info(f"Embedding provider ready (model: {self.model_name})")
                return True

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(
                    f"Embedding provider not ready after {timeout:.0f}s, detection will run degraded"
                )
                return False
            await asyncio.sleep(min(interval, remaining))

    def _cache_key(self, text: str) -> str:
        return f"embedding:{self.model_name}:{text}"

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed texts, serving repeats from the memo.

        Args:
            texts: Texts to embed (already normalized by the caller)

        Returns:
            One vector per input, in input order

        Raises:
            EmbeddingUnavailableError: If the provider fails or times out
        """
        if not texts:
            return []

        vectors: dict[str, list[float]] = {}
        missing: list[str] = []
        for text in dict.fromkeys(texts):
            cached = self.cache.get(self._cache_key(text)) if self.cache else None
            if cached is not None:
                vectors[text] = cached
            else:
                missing.append(text)

        if missing:
            logger.debug(f"Embedding {len(missing)} texts ({len(texts) - len(missing)} memoized)")
            for text, vector in zip(missing, await self._embed_missing(missing)):
                vectors[text] = vector
                if self.cache:
                    self.cache.set(self._cache_key(text), vector, self.cache_ttl)

        return [vectors[text] for text in texts]

    async def _embed_missing(self, texts: list[str]) -> list[list[float]]:
        batches = [texts[i : i + self.batch_size] for i in range(0, len(texts), self.batch_size)]
        progress = tqdm(
            total=len(texts),
            desc="Embedding",
            unit="text",
            ncols=100,
            disable=len(batches) <= 1,
        )

        results: list[list[float]] = []
        try:
            for batch in batches:
                try:
                    result = await asyncio.wait_for(self.provider.embed(batch), timeout=self.timeout)
                except asyncio.TimeoutError as e:
                    logger.warning(f"Embedding request for {len(batch)} texts timed out after {self.timeout}s")
                    raise EmbeddingUnavailableError(
                        f"Embedding request timed out after {self.timeout}s"
                    ) from e
                except EmbeddingUnavailableError:
                    raise
                except Exception as e:
                    logger.warning(f"Embedding request for {len(batch)} texts failed: {e}")
                    raise EmbeddingUnavailableError(f"Embedding provider error: {e}") from e

                if len(result.embeddings) != len(batch):
                    raise EmbeddingUnavailableError(
                        f"Provider returned {len(result.embeddings)} embeddings for {len(batch)} inputs"
                    )
                results.extend(result.embeddings)
                progress.update(len(batch))
        finally:
            progress.close()

        self._ready = True
        return results
