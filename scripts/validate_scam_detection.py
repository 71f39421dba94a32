"""Validation script for scam detection against a live embedding provider."""

import asyncio

from dotenv import load_dotenv

from scamwatch.analytics import JsonFileAnalyticsSource, QueryMetrics, build_comparison
from scamwatch.config import get_settings
from scamwatch.detector import ScamDetector

SAMPLE_QUERIES = [
    ("cra gift card payment $500 urgent", 300, 3, 2.0),
    ("cra my account login", 10000, 1800, 1.0),
    ("cra unclaimed refund 2031", 120, 1, 4.0),
    ("how to pay cra", 4000, 700, 1.2),
]


async def validate_scam_detection():
    """Check the provider, the semantic zones and a handful of sample queries."""
    print("🛡️  Scam Detection Validation")
    print("=" * 50)

    settings = get_settings()
    print(f"📋 Embedding provider: {settings.embedding_provider.value}")
    print(f"📋 Seed phrases: {settings.seed_phrases_path}")
    print(f"📋 Legitimate queries: {settings.legitimate_queries_path}")
    print()

    analytics = JsonFileAnalyticsSource(settings.analytics_data_path) if settings.analytics_data_path else None
    detector = ScamDetector(analytics=analytics, settings=settings)

    try:
        print("🚀 Initializing detection...")
        ready = await detector.initialize()
        status = detector.get_status()
        print(f"   Ready: {'✅' if ready else '❌'}")
        for reason in status["detection"]["reasons"]:
            print(f"   ⚠️  {reason}")
        if "embedding" in status:
            print(f"   Seed phrases embedded: {status['embedding']['seed_phrase_count']}")
            print(f"   Semantic zones: {status['semantic_zones']['category_count']}")
        print()

        print("🔍 Semantic zones:")
        for query, *_ in SAMPLE_QUERIES:
            zone = await detector.classify_semantic_zone(query)
            marker = "✅ legitimate" if zone.is_legitimate else "⚠️  outside"
            print(f"   {marker} | {zone.similarity:.3f} {zone.nearest_category or '-'} | '{query}'")
        print()

        print("🧪 Convergence:")
        for query, impressions, clicks, position in SAMPLE_QUERIES:
            current = QueryMetrics(
                query=query,
                impressions=impressions,
                clicks=clicks,
                ctr=clicks / impressions,
                position=position,
            )
            result = await detector.evaluate_convergence(build_comparison(current))
            flag = "🚩" if result.should_flag else "  "
            print(f"   {flag} {result.convergence_score:6.2f} | {result.active_signal_count} signals | '{query}'")
            print(f"        {result.flag_reason}")
        print()

        if analytics is None:
            print("💡 Set ANALYTICS_DATA_PATH to rank emerging threats from exported analytics")
            return

        print("📈 Emerging threats (last 7 days):")
        response = await detector.rank_emerging_threats(days=7)
        summary = response.summary
        print(
            f"   Total: {summary.total} | critical {summary.critical} | high {summary.high}"
            f" | medium {summary.medium} | low {summary.low}"
        )
        for threat in response.threats[:10]:
            print(f"   {threat.risk_score:3d} {threat.risk_level.value:8s} | '{threat.query}'")
        print()

        print("🎉 Scam detection validation completed!")

    except Exception as e:
        print(f"❌ Validation failed: {e}")
        import traceback

        traceback.print_exc()
    finally:
        await detector.aclose()


if __name__ == "__main__":
    load_dotenv()
    asyncio.run(validate_scam_detection())
