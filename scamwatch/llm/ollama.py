"""Ollama embedding provider implementation."""

import logging
from typing import Any

import httpx
from pydantic import BaseModel

from scamwatch.errors import EmbeddingUnavailableError
from scamwatch.llm.base import EmbeddingBatchResult, EmbeddingProvider

logger = logging.getLogger(__name__)


class OllamaConfig(BaseModel):
    """Configuration for Ollama provider."""

    host: str = "http://localhost:11434"
    embedding_model: str = "nomic-embed-text"
    timeout: int = 30


class OllamaProvider(EmbeddingProvider):
    """Ollama embedding provider implementation."""

    def __init__(self, config: OllamaConfig | None = None, **kwargs: Any) -> None:
        """Initialize Ollama provider.

        Args:
            config: Ollama configuration
            **kwargs: Additional configuration options
        """
        self.config = config or OllamaConfig(**kwargs)
        self.model_name = self.config.embedding_model
        self.client = httpx.AsyncClient(
            base_url=self.config.host,
            timeout=self.config.timeout,
        )

    async def embed(self, texts: list[str]) -> EmbeddingBatchResult:
        """Generate embeddings using Ollama's batch embed endpoint.

        Args:
            texts: Texts to embed

        Returns:
            EmbeddingBatchResult with vectors in input order
        """
        if not texts:
            return EmbeddingBatchResult(embeddings=[], model=self.model_name)

        try:
            response = await self.client.post(
                "/api/embed",
                json={
                    "model": self.config.embedding_model,
                    "input": texts,
                },
            )
            response.raise_for_status()
            data = response.json()

        except httpx.RequestError as e:
            logger.error(f"Ollama embedding request failed: {e}")
            raise EmbeddingUnavailableError(f"Failed to generate embeddings: {e}") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Ollama embedding HTTP error: {e}")
            raise EmbeddingUnavailableError(f"Ollama API error: {e}") from e
        except ValueError as e:
            logger.error(f"Ollama returned a non-JSON embedding response: {e}")
            raise EmbeddingUnavailableError(f"Invalid Ollama response: {e}") from e

        embeddings = data.get("embeddings") or []
        if len(embeddings) != len(texts):
            raise EmbeddingUnavailableError(
                f"Ollama returned {len(embeddings)} embeddings for {len(texts)} inputs"
            )

        return EmbeddingBatchResult(
            embeddings=embeddings,
            model=self.config.embedding_model,
            token_count=data.get("prompt_eval_count"),
        )

    async def health_check(self) -> bool:
        """Check if Ollama service is healthy.

        Returns:
            True if healthy, False otherwise
        """
        try:
            response = await self.client.get("/api/tags")
            return response.status_code == 200
        except Exception as e:
            logger.warning(f"Ollama health check failed: {e}")
            return False

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.client.aclose()
