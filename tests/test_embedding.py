"""Tests for the batch embedder and the seed phrase embedding cache."""

from unittest.mock import patch

import pytest

from scamwatch.cache import InMemoryCache
from scamwatch.embedding import SEED_EMBEDDINGS_CACHE_KEY, BatchEmbedder, EmbeddingCache
from scamwatch.errors import EmbeddingUnavailableError
from scamwatch.terms import JsonTermStore

from .conftest import SCENARIO_ONE_QUERY, FakeEmbeddingProvider, make_term_config, vec


class TestBatchEmbedder:
    """Test chunking, memoization and failure handling."""

    @pytest.mark.asyncio
    async def test_chunks_into_sub_batches(self):
        provider = FakeEmbeddingProvider()
        embedder = BatchEmbedder(provider, cache=InMemoryCache(), batch_size=2)

        vectors = await embedder.embed(["a", "b", "c", "d", "e"])

        assert len(vectors) == 5
        assert [len(call) for call in provider.calls] == [2, 2, 1]

    @pytest.mark.asyncio
    async def test_memoizes_and_deduplicates(self):
        provider = FakeEmbeddingProvider()
        embedder = BatchEmbedder(provider, cache=InMemoryCache())

        first = await embedder.embed(["a", "b", "a"])
        second = await embedder.embed(["b", "c"])

        assert first[0] == first[2]
        assert second[0] == first[1]
        assert provider.calls == [["a", "b"], ["c"]]

    @pytest.mark.asyncio
    async def test_preserves_input_order(self):
        provider = FakeEmbeddingProvider()
        embedder = BatchEmbedder(provider, cache=InMemoryCache())

        vectors = await embedder.embed(["cra arrest warrant", "pay cra with gift card"])

        assert vectors == [vec({1: 1.0}), vec({0: 1.0})]

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_call(self):
        provider = FakeEmbeddingProvider()
        embedder = BatchEmbedder(provider)

        assert await embedder.embed([]) == []
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_timeout_raises_unavailable(self):
        provider = FakeEmbeddingProvider()
        provider.delay = 0.2
        embedder = BatchEmbedder(provider, timeout=0.01)

        with pytest.raises(EmbeddingUnavailableError, match="timed out"):
            await embedder.embed(["slow"])

    @pytest.mark.asyncio
    async def test_unexpected_provider_error_raises_unavailable(self):
        provider = FakeEmbeddingProvider()
        embedder = BatchEmbedder(provider)

        with patch.object(provider, "embed", side_effect=RuntimeError("connection reset")):
            with pytest.raises(EmbeddingUnavailableError, match="connection reset"):
                await embedder.embed(["a"])

    @pytest.mark.asyncio
    async def test_provider_failure_is_not_memoized(self):
        provider = FakeEmbeddingProvider()
        cache = InMemoryCache()
        embedder = BatchEmbedder(provider, cache=cache)

        provider.fail = True
        with pytest.raises(EmbeddingUnavailableError):
            await embedder.embed(["a"])

        provider.fail = False
        assert await embedder.embed(["a"]) == [provider.vector_for("a")]
        assert embedder.is_ready()

    @pytest.mark.asyncio
    async def test_wait_until_ready(self):
        embedder = BatchEmbedder(FakeEmbeddingProvider())

        assert await embedder.wait_until_ready(timeout=1.0) is True
        assert embedder.is_ready()

    @pytest.mark.asyncio
    async def test_wait_until_ready_times_out(self):
        embedder = BatchEmbedder(FakeEmbeddingProvider(healthy=False))

        assert await embedder.wait_until_ready(timeout=0.05, interval=0.01) is False
        assert not embedder.is_ready()


class TestEmbeddingCache:
    """Test seed phrase embedding and similarity lookups."""

    @pytest.mark.asyncio
    async def test_initialize_uses_one_batched_call(self, embedding_cache, provider, cache):
        assert await embedding_cache.initialize() is True

        assert embedding_cache.is_ready()
        assert embedding_cache.seed_phrase_count == 4
        assert len(provider.calls) == 1
        assert cache.get(SEED_EMBEDDINGS_CACHE_KEY) is not None

    @pytest.mark.asyncio
    async def test_initialize_from_cache(self, embedding_cache, cache):
        await embedding_cache.initialize()

        # A second cache over the same store and shared cache needs no provider call
        provider = FakeEmbeddingProvider()
        store = JsonTermStore(make_term_config())
        second = EmbeddingCache(BatchEmbedder(provider), store, cache)

        assert await second.initialize() is True
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_find_similar_phrases(self, embedding_cache):
        await embedding_cache.initialize()

        matches = await embedding_cache.find_similar_phrases(SCENARIO_ONE_QUERY)

        assert [m.phrase for m in matches] == ["pay cra with gift card"]
        assert matches[0].similarity == pytest.approx(0.958, abs=0.001)
        assert matches[0].category == "illegitimatePaymentMethods"

    @pytest.mark.asyncio
    async def test_analyze_queries_batches(self, embedding_cache, provider):
        await embedding_cache.initialize()
        provider.calls.clear()

        results = await embedding_cache.analyze_queries(
            ["cra arrest warrant", "cra weather", SCENARIO_ONE_QUERY]
        )

        assert len(provider.calls) == 1
        assert results[0].top_match.phrase == "cra arrest warrant"
        assert results[1].is_scam_related is False
        assert results[2].is_scam_related is True

    @pytest.mark.asyncio
    async def test_threshold_and_limit(self, embedding_cache):
        await embedding_cache.initialize()

        results = await embedding_cache.analyze_queries(["cra weather"], threshold=0.0, limit=1)

        assert len(results[0].matches) == 1

    @pytest.mark.asyncio
    async def test_not_ready_returns_empty_matches(self, embedding_cache, provider):
        provider.fail = True

        assert await embedding_cache.initialize() is False

        results = await embedding_cache.analyze_queries(["cra arrest warrant"])
        assert results[0].matches == []

    @pytest.mark.asyncio
    async def test_add_seed_phrase_rebuilds(self, embedding_cache, provider):
        provider.vectors["cra jail threat"] = vec({4: 1.0})
        await embedding_cache.initialize()

        assert await embedding_cache.add_seed_phrase("cra jail threat", "threatLanguage", "high") is True

        assert embedding_cache.seed_phrase_count == 5
        matches = await embedding_cache.find_similar_phrases("cra jail threat")
        assert matches[0].phrase == "cra jail threat"

    @pytest.mark.asyncio
    async def test_remove_seed_phrase_stops_matching(self, embedding_cache):
        await embedding_cache.initialize()

        assert await embedding_cache.remove_seed_phrase("cra arrest warrant") is True

        assert embedding_cache.seed_phrase_count == 3
        assert await embedding_cache.find_similar_phrases("cra arrest warrant") == []

    @pytest.mark.asyncio
    async def test_rebuild_failure_keeps_previous_index(self, embedding_cache, provider, cache):
        await embedding_cache.initialize()
        cache.flush()
        provider.fail = True

        assert await embedding_cache.reload_seed_phrases() is True
        assert embedding_cache.seed_phrase_count == 4

    @pytest.mark.asyncio
    async def test_status(self, embedding_cache):
        await embedding_cache.initialize()

        status = embedding_cache.get_status()

        assert status == {
            "ready": True,
            "seed_phrase_count": 4,
            "model": "fake-embed",
            "threshold": 0.70,
        }
