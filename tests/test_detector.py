"""Tests for the ScamDetector facade."""

from unittest.mock import AsyncMock, patch

import pytest

from scamwatch.config import Settings
from scamwatch.detector import ScamDetector
from scamwatch.errors import AnalyticsUnavailableError

from .conftest import SCENARIO_ONE_QUERY, FakeAnalytics, FakeEmbeddingProvider, make_detector, new_comparison


def scam_analytics():
    return FakeAnalytics([new_comparison(SCENARIO_ONE_QUERY, 300, clicks=3, position=2.0)])


class TestInitialization:
    """Test startup behavior."""

    @pytest.mark.asyncio
    async def test_initialize(self):
        detector = make_detector()

        assert await detector.initialize() is True

        status = detector.get_status()
        assert status["detection"] == {"degraded": False, "reasons": []}
        assert status["embedding"]["seed_phrase_count"] == 4
        assert status["semantic_zones"]["category_count"] == 3
        assert status["analytics_configured"] is False

    @pytest.mark.asyncio
    async def test_unreachable_provider_degrades_without_raising(self):
        detector = make_detector(
            provider=FakeEmbeddingProvider(healthy=False), startup_timeout_seconds=0.05
        )

        assert await detector.initialize() is False
        assert detector.detection_status().degraded is True

    @pytest.mark.asyncio
    async def test_missing_term_file_degrades_without_raising(self, tmp_path):
        settings = Settings(
            _env_file=None,
            embedding_provider="ollama",
            seed_phrases_path=tmp_path / "missing.json",
        )
        detector = ScamDetector(provider=FakeEmbeddingProvider(), settings=settings)

        assert await detector.initialize() is False
        assert detector.get_status() == {
            "detection": {"degraded": True, "reasons": ["detection not initialized"]}
        }

    @pytest.mark.asyncio
    async def test_components_recover_lazily(self):
        detector = make_detector(
            provider=FakeEmbeddingProvider(healthy=False), startup_timeout_seconds=0.05
        )
        await detector.initialize()

        # The provider serves embeddings even though its health check failed
        result = await detector.classify_semantic_zone("cra my account login")

        assert result.is_legitimate is True


class TestDetection:
    """Test detection entry points."""

    @pytest.mark.asyncio
    async def test_evaluate_convergence_uses_default_benchmarks(self):
        detector = make_detector()
        await detector.initialize()

        result = await detector.evaluate_convergence(
            new_comparison(SCENARIO_ONE_QUERY, 300, clicks=3, position=2.0)
        )

        assert result.should_flag is True
        assert result.ctr_anomaly.expected_ctr == 0.20

    @pytest.mark.asyncio
    async def test_rank_without_analytics(self):
        detector = make_detector()
        await detector.initialize()

        with pytest.raises(AnalyticsUnavailableError, match="No analytics source configured"):
            await detector.rank_emerging_threats()

    @pytest.mark.asyncio
    async def test_rank_emerging_threats(self):
        detector = make_detector(analytics=scam_analytics())
        await detector.initialize()

        response = await detector.rank_emerging_threats(days=7, page=1)

        assert [t.query for t in response.threats] == [SCENARIO_ONE_QUERY]


class TestAdministration:
    """Test term mutations and threat cache invalidation."""

    @pytest.mark.asyncio
    async def test_adding_seed_phrase_invalidates_threat_pages(self):
        analytics = scam_analytics()
        detector = make_detector(analytics=analytics)
        await detector.initialize()

        await detector.rank_emerging_threats()
        assert await detector.add_seed_phrase("cra jail threat", "threatLanguage", "high") is True
        await detector.rank_emerging_threats()

        assert len(analytics.calls) == 2

    @pytest.mark.asyncio
    async def test_duplicate_mutations_keep_threat_pages(self):
        analytics = scam_analytics()
        detector = make_detector(analytics=analytics)
        await detector.initialize()

        await detector.rank_emerging_threats()
        assert await detector.add_seed_phrase("pay cra with gift card", "x", "low") is False
        assert await detector.add_legitimate_exemplar("cra contact") is None
        assert await detector.remove_seed_phrase("not a seed phrase") is False
        await detector.rank_emerging_threats()

        assert len(analytics.calls) == 1

    @pytest.mark.asyncio
    async def test_removing_seed_phrase(self):
        analytics = scam_analytics()
        detector = make_detector(analytics=analytics)
        await detector.initialize()

        await detector.rank_emerging_threats()
        assert await detector.remove_seed_phrase("pay cra with gift card") is True
        response = await detector.rank_emerging_threats()

        assert len(analytics.calls) == 2
        # Still flagged on its patterns, without the semantic match
        assert [t.query for t in response.threats] == [SCENARIO_ONE_QUERY]
        assert all("semantic match" not in s for s in response.threats[0].similar_scams)

    @pytest.mark.asyncio
    async def test_adding_exemplar(self):
        analytics = scam_analytics()
        detector = make_detector(analytics=analytics)
        await detector.initialize()

        await detector.rank_emerging_threats()
        assert await detector.add_legitimate_exemplar("cra mailing address") == "generalInquiry"
        await detector.rank_emerging_threats()

        assert len(analytics.calls) == 2

    @pytest.mark.asyncio
    async def test_aclose_releases_provider(self):
        provider = FakeEmbeddingProvider()
        detector = make_detector(provider=provider)

        with patch.object(provider, "aclose", new_callable=AsyncMock) as mock_close:
            await detector.aclose()

            mock_close.assert_awaited_once()
