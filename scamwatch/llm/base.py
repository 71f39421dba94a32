"""Base embedding provider interface and factory pattern."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class EmbeddingBatchResult(BaseModel):
    """Result from batched embedding generation."""

    embeddings: list[list[float]]
    model: str
    token_count: int | None = None


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    model_name: str = ""

    @abstractmethod
    async def embed(self, texts: list[str]) -> EmbeddingBatchResult:
        """Generate embeddings for a batch of texts.

        Args:
            texts: Texts to embed

        Returns:
            EmbeddingBatchResult with one vector per input, in input order

        Raises:
            EmbeddingUnavailableError: If the provider cannot serve the request
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the provider is healthy and accessible.

        Returns:
            True if healthy, False otherwise
        """
        pass

    async def aclose(self) -> None:
        """Release any network resources held by the provider."""


class EmbeddingProviderFactory:
    """Factory for creating embedding providers."""

    _providers: dict[str, type[EmbeddingProvider]] = {}

    @classmethod
    def register(cls, name: str, provider_class: type[EmbeddingProvider]) -> None:
        """Register a provider class.

        Args:
            name: Provider name (e.g., "ollama", "openai")
            provider_class: Provider class to register
        """
        cls._providers[name] = provider_class

    @classmethod
    def create(cls, name: str, **kwargs: Any) -> EmbeddingProvider:
        """Create a provider instance.

        Args:
            name: Provider name
            **kwargs: Provider-specific configuration

        Returns:
            EmbeddingProvider instance

        Raises:
            ValueError: If provider name is not registered
        """
        if name not in cls._providers:
            available = ", ".join(cls._providers.keys())
            raise ValueError(f"Unknown provider '{name}'. Available: {available}")

        return cls._providers[name](**kwargs)

    @classmethod
    def list_providers(cls) -> list[str]:
        """List all registered provider names."""
        return list(cls._providers.keys())
