"""Tests for the HTTP API."""

from contextlib import asynccontextmanager

import pytest
from aiohttp import test_utils

from scamwatch.web_server import WebServer

from .conftest import SCENARIO_ONE_QUERY, FakeAnalytics, make_detector, new_comparison


@asynccontextmanager
async def api_client(analytics=None):
    detector = make_detector(analytics=analytics)
    await detector.initialize()
    async with test_utils.TestClient(test_utils.TestServer(WebServer(detector).app)) as client:
        yield client


class TestReadEndpoints:
    """Test health, status and detection lookups."""

    @pytest.mark.asyncio
    async def test_health(self):
        async with api_client() as client:
            response = await client.get("/health")

            assert response.status == 200
            assert await response.json() == {"status": "healthy", "service": "scamwatch"}

    @pytest.mark.asyncio
    async def test_status(self):
        async with api_client() as client:
            response = await client.get("/api/scams/status")
            data = await response.json()

            assert response.status == 200
            assert data["detection"]["degraded"] is False
            assert data["weights"]["embedding"] == 0.35
            assert data["analytics_configured"] is False

    @pytest.mark.asyncio
    async def test_semantic_zone(self):
        async with api_client() as client:
            response = await client.get("/api/scams/semantic-zone", params={"q": "CRA My Account Login"})
            data = await response.json()

            assert response.status == 200
            assert data["query"] == "cra my account login"
            assert data["is_legitimate"] is True
            assert data["nearest_category"] == "generalInquiry"

    @pytest.mark.asyncio
    async def test_semantic_zone_requires_query(self):
        async with api_client() as client:
            response = await client.get("/api/scams/semantic-zone", params={"q": "  "})

            assert response.status == 400

    @pytest.mark.asyncio
    async def test_emerging_threats(self):
        analytics = FakeAnalytics([new_comparison(SCENARIO_ONE_QUERY, 300, clicks=3, position=2.0)])
        async with api_client(analytics) as client:
            response = await client.get("/api/scams/emerging", params={"days": "7", "page": "1"})
            data = await response.json()

            assert response.status == 200
            assert data["threats"][0]["query"] == SCENARIO_ONE_QUERY
            assert data["threats"][0]["risk_level"] == "critical"

    @pytest.mark.asyncio
    async def test_emerging_threats_without_analytics(self):
        async with api_client() as client:
            response = await client.get("/api/scams/emerging")

            assert response.status == 503
            assert await response.json() == {"error": "No analytics source configured"}

    @pytest.mark.asyncio
    async def test_emerging_threats_analytics_failure(self):
        analytics = FakeAnalytics([])
        analytics.fail = True
        async with api_client(analytics) as client:
            response = await client.get("/api/scams/emerging")

            assert response.status == 503

    @pytest.mark.asyncio
    @pytest.mark.parametrize("days", ["abc", "0", "-3"])
    async def test_emerging_threats_rejects_bad_days(self, days):
        async with api_client(FakeAnalytics([])) as client:
            response = await client.get("/api/scams/emerging", params={"days": days})

            assert response.status == 400


class TestEvaluateEndpoint:
    """Test single-query evaluation."""

    @pytest.mark.asyncio
    async def test_evaluate(self):
        async with api_client() as client:
            response = await client.post(
                "/api/scams/evaluate",
                json={
                    "query": SCENARIO_ONE_QUERY,
                    "current": {"impressions": 300, "clicks": 3, "ctr": 0.01, "position": 2.0},
                    "previous": None,
                    "days": 7,
                },
            )
            data = await response.json()

            assert response.status == 200
            assert data["should_flag"] is True
            assert data["active_signal_count"] == 4
            assert data["embedding_match"]["phrase"] == "pay cra with gift card"

    @pytest.mark.asyncio
    async def test_evaluate_requires_query(self):
        async with api_client() as client:
            response = await client.post("/api/scams/evaluate", json={"current": {"impressions": 10}})

            assert response.status == 400
            assert await response.json() == {"error": "No query provided"}

    @pytest.mark.asyncio
    async def test_evaluate_rejects_invalid_json(self):
        async with api_client() as client:
            response = await client.post(
                "/api/scams/evaluate", data="{not json", headers={"Content-Type": "application/json"}
            )

            assert response.status == 400
            assert await response.json() == {"error": "Request body must be valid JSON"}


class TestTermEndpoints:
    """Test seed phrase and exemplar administration."""

    @pytest.mark.asyncio
    async def test_add_term(self):
        async with api_client() as client:
            response = await client.post(
                "/api/terms", json={"term": "CRA Jail Threat", "category": "threatLanguage", "severity": "high"}
            )

            assert response.status == 201
            assert await response.json() == {"status": "added", "term": "CRA Jail Threat"}

            status = await (await client.get("/api/scams/status")).json()
            assert status["embedding"]["seed_phrase_count"] == 5

    @pytest.mark.asyncio
    async def test_add_existing_term(self):
        async with api_client() as client:
            response = await client.post(
                "/api/terms", json={"term": "pay cra with gift card", "category": "illegitimatePaymentMethods"}
            )

            assert response.status == 409

    @pytest.mark.asyncio
    async def test_add_term_requires_category(self):
        async with api_client() as client:
            response = await client.post("/api/terms", json={"term": "cra jail threat"})

            assert response.status == 400

    @pytest.mark.asyncio
    async def test_remove_term(self):
        async with api_client() as client:
            response = await client.delete("/api/terms", params={"term": "cra arrest warrant"})

            assert response.status == 200
            assert await response.json() == {"status": "removed", "term": "cra arrest warrant"}

            missing = await client.delete("/api/terms", params={"term": "cra arrest warrant"})
            assert missing.status == 404

    @pytest.mark.asyncio
    async def test_add_exemplar(self):
        async with api_client() as client:
            response = await client.post("/api/exemplars", json={"term": "cra payment options", "category": "payments"})

            assert response.status == 201
            assert await response.json() == {
                "status": "added",
                "term": "cra payment options",
                "category": "payments",
            }

    @pytest.mark.asyncio
    async def test_add_existing_exemplar(self):
        async with api_client() as client:
            response = await client.post("/api/exemplars", json={"term": "cra contact"})

            assert response.status == 409
