"""Shared fixtures: a deterministic embedding provider and a small term configuration."""

import asyncio
import hashlib

import pytest

from scamwatch.analytics import AnalyticsSource, QueryMetrics, build_comparison
from scamwatch.cache import InMemoryCache
from scamwatch.config import Settings
from scamwatch.detection import ConvergenceScorer, SemanticZoneClassifier
from scamwatch.detector import ScamDetector
from scamwatch.embedding import BatchEmbedder, EmbeddingCache
from scamwatch.errors import AnalyticsUnavailableError, EmbeddingUnavailableError
from scamwatch.llm.base import EmbeddingBatchResult, EmbeddingProvider
from scamwatch.terms import (
    JsonTermStore,
    LegitimateCategory,
    SeedPhrase,
    Severity,
    TermConfig,
)
from scamwatch.threats import ThreatRanker

DIM = 32
# Axes 0-15 are reserved for explicitly mapped texts; unknown texts land on 16-31
FREE_AXES = 16


def vec(components: dict[int, float]) -> list[float]:
    """Build a DIM-length vector from {axis: value}."""
    v = [0.0] * DIM
    for axis, value in components.items():
        v[axis] = value
    return v


SCENARIO_ONE_QUERY = "cra gift card payment $500 urgent"

TEST_VECTORS = {
    # Seed phrases
    "pay cra with gift card": vec({0: 1.0}),
    "cra arrest warrant": vec({1: 1.0}),
    "unclaimed cra refund": vec({2: 1.0}),
    "cra free money": vec({3: 1.0}),
    # Legitimate exemplars
    "cra my account login": vec({8: 1.0, 9: 0.2}),
    "cra phone number": vec({8: 1.0}),
    "cra contact": vec({8: 1.0, 10: 0.1}),
    "cra sign in": vec({11: 1.0}),
    "register for cra my account": vec({11: 1.0}),
    "how to pay cra": vec({12: 1.0}),
    "cra payment arrangement": vec({12: 1.0}),
    # Queries
    SCENARIO_ONE_QUERY: vec({0: 1.0, 13: 0.3}),
}


class FakeEmbeddingProvider(EmbeddingProvider):
    """Embedding provider returning fixed vectors and recording every call."""

    def __init__(self, vectors: dict[str, list[float]] | None = None, healthy: bool = True):
        self.model_name = "fake-embed"
        self.vectors = dict(TEST_VECTORS if vectors is None else vectors)
        self.healthy = healthy
        self.fail = False
        self.delay = 0.0
        self.calls: list[list[str]] = []

    def vector_for(self, text: str) -> list[float]:
        if text in self.vectors:
            return list(self.vectors[text])
        axis = FREE_AXES + int(hashlib.md5(text.encode()).hexdigest(), 16) % (DIM - FREE_AXES)
        return vec({axis: 1.0})

    async def embed(self, texts: list[str]) -> EmbeddingBatchResult:
        self.calls.append(list(texts))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise EmbeddingUnavailableError("fake provider down")
        return EmbeddingBatchResult(
            embeddings=[self.vector_for(t) for t in texts],
            model=self.model_name,
        )

    async def health_check(self) -> bool:
        return self.healthy


class FakeAnalytics(AnalyticsSource):
    """Analytics source serving a fixed comparison list."""

    def __init__(self, comparisons, benchmarks=None):
        self.comparisons = comparisons
        self.benchmarks = benchmarks
        self.fail = False
        self.calls = []

    async def get_comparisons(self, current_range, previous_range):
        self.calls.append((current_range, previous_range))
        await asyncio.sleep(0.01)
        if self.fail:
            raise AnalyticsUnavailableError("analytics API down")
        return self.comparisons

    async def get_ctr_benchmarks(self):
        if isinstance(self.benchmarks, Exception):
            raise self.benchmarks
        return self.benchmarks


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_term_config() -> TermConfig:
    """Small term configuration whose texts all have explicit vectors."""
    return TermConfig(
        seed_phrases=(
            SeedPhrase(text="pay cra with gift card", category="illegitimatePaymentMethods", severity=Severity.CRITICAL),
            SeedPhrase(text="cra arrest warrant", category="threatLanguage", severity=Severity.HIGH),
            SeedPhrase(text="unclaimed cra refund", category="fakeExpiredBenefits", severity=Severity.CRITICAL),
            SeedPhrase(text="cra free money", category="suspiciousModifiers", severity=Severity.MEDIUM),
        ),
        keywords=("cra phishing",),
        legitimate_categories={
            "generalInquiry": LegitimateCategory(
                description="Contact information and general questions",
                exemplars=("cra my account login", "cra phone number", "cra contact"),
            ),
            "accountAccess": LegitimateCategory(
                description="Signing in to online accounts",
                exemplars=("cra sign in", "register for cra my account"),
            ),
            "payments": LegitimateCategory(
                description="Official ways to pay",
                exemplars=("how to pay cra", "cra payment arrangement"),
            ),
        },
        legitimate_patterns=(r"\bturbo\s*tax\b", r"\bfree\s+tax\s+(?:software|clinic|clinics)\b"),
        context_words=("cra", "tax", "taxes", "canada", "revenue", "agency"),
        default_category="generalInquiry",
    )


def metrics(query: str, impressions: int = 0, clicks: int = 0, ctr: float | None = None, position: float = 1.0):
    """Build QueryMetrics, deriving CTR from clicks when not given."""
    if ctr is None:
        ctr = clicks / impressions if impressions else 0.0
    return QueryMetrics(query=query, impressions=impressions, clicks=clicks, ctr=ctr, position=position)


def new_comparison(query: str, impressions: int, clicks: int = 0, ctr: float | None = None, position: float = 1.0):
    """Comparison for a query with no previous period."""
    return build_comparison(metrics(query, impressions, clicks, ctr, position))


@pytest.fixture
def provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def term_store():
    return JsonTermStore(make_term_config())


@pytest.fixture
def embedder(provider, cache):
    return BatchEmbedder(provider, cache=cache, batch_size=2000, timeout=5.0)


@pytest.fixture
def embedding_cache(embedder, term_store, cache):
    return EmbeddingCache(embedder, term_store, cache, threshold=0.70)


@pytest.fixture
def classifier(embedder, term_store, cache):
    return SemanticZoneClassifier(embedder, term_store, cache, threshold=0.80)


@pytest.fixture
def scorer(classifier, embedding_cache):
    return ConvergenceScorer(classifier, embedding_cache, current_year=2026)


@pytest.fixture
def ranker(scorer, term_store):
    return ThreatRanker(scorer, term_store, trends_delay=0)


def make_detector(provider=None, analytics=None, **settings_overrides):
    """Detector wired to fakes and the small term configuration."""
    options = {"embedding_provider": "ollama", "startup_timeout_seconds": 1.0, **settings_overrides}
    settings = Settings(_env_file=None, **options)
    return ScamDetector(
        provider=provider or FakeEmbeddingProvider(),
        term_store=JsonTermStore(make_term_config()),
        analytics=analytics,
        cache=InMemoryCache(),
        settings=settings,
    )
