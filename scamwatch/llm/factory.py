"""Factory for creating embedding providers from configuration."""

from scamwatch.config import EmbeddingProviderName, get_settings
from scamwatch.llm.base import EmbeddingProvider, EmbeddingProviderFactory


def create_embedding_provider(provider_name: str | None = None) -> EmbeddingProvider:
    """Create embedding provider from configuration.

    Args:
        provider_name: Override provider name, defaults to settings.embedding_provider

    Returns:
        Configured embedding provider instance

    Raises:
        ValueError: If provider configuration is invalid
    """
    settings = get_settings()
    provider_name = provider_name or settings.embedding_provider

    if provider_name == EmbeddingProviderName.OPENAI:
        from scamwatch.llm.openai import OpenAIConfig

        if not settings.openai_api_key:
            raise ValueError("OpenAI API key is required")

        config = OpenAIConfig(
            api_key=settings.openai_api_key,
            embedding_model=settings.openai_embedding_model,
        )
        return EmbeddingProviderFactory.create("openai", config=config)

    elif provider_name == EmbeddingProviderName.OLLAMA:
        from scamwatch.llm.ollama import OllamaConfig

        config = OllamaConfig(
            host=settings.ollama_host,
            embedding_model=settings.ollama_embedding_model,
        )
        return EmbeddingProviderFactory.create("ollama", config=config)

    else:
        raise ValueError(f"Unknown embedding provider: {provider_name}")
