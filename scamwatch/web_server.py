"""JSON API for scam detection."""

import logging
from typing import Any

from aiohttp import web
from pydantic import ValidationError

from scamwatch.analytics import QueryMetrics, build_comparison
from scamwatch.detector import ScamDetector
from scamwatch.errors import AnalyticsUnavailableError

logger = logging.getLogger(__name__)


def _int_param(request: web.Request, name: str, default: int) -> int:
    value = request.query.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"Parameter '{name}' must be an integer") from e


class WebServer:
    """HTTP server exposing detection endpoints."""

    def __init__(self, detector: ScamDetector, port: int = 3000):
        """Initialize web server."""
        self.port = port
        self.detector = detector
        self.app = web.Application()
        self._setup_routes()
        logger.info(f"Web server initialized on port {port}")

    def _setup_routes(self):
        """Set up HTTP routes."""
        self.app.router.add_get("/health", self._handle_health)
        self.app.router.add_get("/api/scams/status", self._handle_status)
        self.app.router.add_get("/api/scams/emerging", self._handle_emerging)
        self.app.router.add_get("/api/scams/semantic-zone", self._handle_semantic_zone)
        self.app.router.add_post("/api/scams/evaluate", self._handle_evaluate)
        self.app.router.add_post("/api/terms", self._handle_add_term)
        self.app.router.add_delete("/api/terms", self._handle_remove_term)
        self.app.router.add_post("/api/exemplars", self._handle_add_exemplar)
        logger.info("Routes configured: /health, /api/scams/*, /api/terms, /api/exemplars")

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        return web.json_response({"status": "healthy", "service": "scamwatch"})

    async def _handle_status(self, request: web.Request) -> web.Response:
        """Component status, including the detection-degraded condition."""
        return web.json_response(self.detector.get_status())

    async def _handle_emerging(self, request: web.Request) -> web.Response:
        """Ranked emerging threats.

        Query params: days (default 7), page (default 1, clamped to 1-10).
        """
        try:
            days = _int_param(request, "days", 7)
            page = _int_param(request, "page", 1)
            if days < 1:
                return web.json_response({"error": "days must be positive"}, status=400)

            response = await self.detector.rank_emerging_threats(days, page)
            return web.json_response(response.model_dump(mode="json"))

        except ValueError as e:
            return web.json_response({"error": str(e)}, status=400)
        except AnalyticsUnavailableError as e:
            logger.error(f"Analytics unavailable: {e}")
            return web.json_response({"error": str(e)}, status=503)
        except Exception as e:
            logger.error(f"Error ranking emerging threats: {e}", exc_info=True)
            return web.json_response({"error": str(e)}, status=500)

    async def _handle_semantic_zone(self, request: web.Request) -> web.Response:
        """Semantic zone of a single query (?q=...)."""
        query = request.query.get("q", "").strip()
        if not query:
            return web.json_response({"error": "No query provided"}, status=400)

        try:
            result = await self.detector.classify_semantic_zone(query)
            return web.json_response(result.model_dump(mode="json"))
        except Exception as e:
            logger.error(f"Error classifying '{query}': {e}", exc_info=True)
            return web.json_response({"error": str(e)}, status=500)

    async def _handle_evaluate(self, request: web.Request) -> web.Response:
        """
        Evaluate all signals for one query.

        Expects JSON: {"query": "...", "current": {...}, "previous": {...} | null, "days": 7}
        """
        try:
            data = await self._json_body(request)
            query = str(data.get("query") or "").strip()
            if not query:
                return web.json_response({"error": "No query provided"}, status=400)

            current = QueryMetrics(query=query, **(data.get("current") or {}))
            previous_data = data.get("previous")
            previous = QueryMetrics(query=query, **previous_data) if previous_data else None
            days = int(data.get("days", 7))

            result = await self.detector.evaluate_convergence(
                build_comparison(current, previous), period_days=days
            )
            return web.json_response(result.model_dump(mode="json"))

        except (ValueError, TypeError, ValidationError) as e:
            return web.json_response({"error": str(e)}, status=400)
        except Exception as e:
            logger.error(f"Error evaluating query: {e}", exc_info=True)
            return web.json_response({"error": str(e)}, status=500)

    async def _handle_add_term(self, request: web.Request) -> web.Response:
        """
        Add a seed phrase.

        Expects JSON: {"term": "...", "category": "...", "severity": "high"}
        """
        try:
            data = await self._json_body(request)
            term = str(data.get("term") or "").strip()
            category = str(data.get("category") or "").strip()
            if not term or not category:
                return web.json_response({"error": "term and category are required"}, status=400)

            added = await self.detector.add_seed_phrase(term, category, data.get("severity", "medium"))
            if not added:
                return web.json_response({"status": "exists", "term": term}, status=409)
            return web.json_response({"status": "added", "term": term}, status=201)

        except ValueError as e:
            return web.json_response({"error": str(e)}, status=400)
        except Exception as e:
            logger.error(f"Error adding seed phrase: {e}", exc_info=True)
            return web.json_response({"error": str(e)}, status=500)

    async def _handle_remove_term(self, request: web.Request) -> web.Response:
        """Remove a seed phrase (?term=...)."""
        term = request.query.get("term", "").strip()
        if not term:
            return web.json_response({"error": "No term provided"}, status=400)

        try:
            removed = await self.detector.remove_seed_phrase(term)
            if not removed:
                return web.json_response({"error": f"Term '{term}' not found"}, status=404)
            return web.json_response({"status": "removed", "term": term})
        except Exception as e:
            logger.error(f"Error removing seed phrase: {e}", exc_info=True)
            return web.json_response({"error": str(e)}, status=500)

    async def _handle_add_exemplar(self, request: web.Request) -> web.Response:
        """
        Add a legitimate exemplar.

        Expects JSON: {"term": "...", "category": "..."} (category optional)
        """
        try:
            data = await self._json_body(request)
            term = str(data.get("term") or "").strip()
            if not term:
                return web.json_response({"error": "No term provided"}, status=400)

            category = await self.detector.add_legitimate_exemplar(term, data.get("category"))
            if category is None:
                return web.json_response({"status": "exists", "term": term}, status=409)
            return web.json_response({"status": "added", "term": term, "category": category}, status=201)

        except ValueError as e:
            return web.json_response({"error": str(e)}, status=400)
        except Exception as e:
            logger.error(f"Error adding exemplar: {e}", exc_info=True)
            return web.json_response({"error": str(e)}, status=500)

    async def _json_body(self, request: web.Request) -> dict[str, Any]:
        try:
            data = await request.json()
        except ValueError as e:
            raise ValueError("Request body must be valid JSON") from e
        if not isinstance(data, dict):
            raise ValueError("Request body must be a JSON object")
        return data

    async def start(self):
        """Start the web server."""
        runner = web.AppRunner(self.app)
        await runner.setup()
        site = web.TCPSite(runner, "0.0.0.0", self.port)
        await site.start()
        logger.info(f"Web server started on port {self.port}")
        return runner

    async def stop(self, runner):
        """Stop the web server."""
        await runner.cleanup()
        logger.info("Web server stopped")
