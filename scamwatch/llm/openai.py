"""OpenAI embedding provider implementation."""

import logging
from typing import Any

import openai
from pydantic import BaseModel

from scamwatch.errors import EmbeddingUnavailableError
from scamwatch.llm.base import EmbeddingBatchResult, EmbeddingProvider

logger = logging.getLogger(__name__)


class OpenAIConfig(BaseModel):
    """Configuration for OpenAI provider."""

    api_key: str
    embedding_model: str = "text-embedding-3-large"
    timeout: int = 30
    max_retries: int = 3


class OpenAIProvider(EmbeddingProvider):
    """OpenAI embedding provider implementation."""

    def __init__(self, config: OpenAIConfig | None = None, **kwargs: Any) -> None:
        """Initialize OpenAI provider.

        Args:
            config: OpenAI configuration
            **kwargs: Additional configuration options
        """
        self.config = config or OpenAIConfig(**kwargs)
        self.model_name = self.config.embedding_model
        self.client = openai.AsyncOpenAI(
            api_key=self.config.api_key,
            timeout=self.config.timeout,
            max_retries=self.config.max_retries,
        )

    async def embed(self, texts: list[str]) -> EmbeddingBatchResult:
        """Generate embeddings using OpenAI's embedding model.

        Args:
            texts: Texts to embed (one request, caller enforces batch limits)

        Returns:
            EmbeddingBatchResult with vectors in input order
        """
        if not texts:
            return EmbeddingBatchResult(embeddings=[], model=self.model_name)

        try:
            response = await self.client.embeddings.create(
                model=self.config.embedding_model,
                input=texts,
            )

            # The API reports an index per item; do not rely on response order
            ordered = sorted(response.data, key=lambda item: item.index)

            return EmbeddingBatchResult(
                embeddings=[item.embedding for item in ordered],
                model=self.config.embedding_model,
                token_count=response.usage.total_tokens if response.usage else None,
            )

        except openai.OpenAIError as e:
            logger.error(f"OpenAI embedding request failed: {e}")
            raise EmbeddingUnavailableError(f"Failed to generate embeddings: {e}") from e

    async def health_check(self) -> bool:
        """Check if OpenAI service is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            await self.client.embeddings.create(
                model=self.config.embedding_model,
                input="health check",
            )
            return True
        except Exception as e:
            logger.warning(f"OpenAI health check failed: {e}")
            return False

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()
