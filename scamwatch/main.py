"""Main entry point for the scam detection API."""

import asyncio
import logging
import sys

from dotenv import load_dotenv

from scamwatch.analytics import JsonFileAnalyticsSource
from scamwatch.config import get_settings
from scamwatch.detector import ScamDetector
from scamwatch.web_server import WebServer

# Load environment variables
load_dotenv()

# Configure logging (use INFO as default)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def main() -> None:
    """Main application entry point."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    logger.info(f"Starting scam detection API in {settings.environment.value} mode")
    logger.info(f"Using embedding provider: {settings.embedding_provider.value}")

    # Validate configuration
    try:
        settings.validate_provider_config()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    analytics = None
    if settings.analytics_data_path:
        analytics = JsonFileAnalyticsSource(settings.analytics_data_path)
    else:
        logger.warning("No analytics data configured, emerging threat ranking is disabled")

    detector = ScamDetector(analytics=analytics, settings=settings)
    await detector.initialize()

    web_server = WebServer(detector, port=settings.web_port)
    web_runner = await web_server.start()

    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Shutting down...")
    finally:
        await web_server.stop(web_runner)
        await detector.aclose()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
