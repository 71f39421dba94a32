"""Embedding providers module."""

from scamwatch.llm.base import EmbeddingBatchResult, EmbeddingProvider, EmbeddingProviderFactory
from scamwatch.llm.factory import create_embedding_provider
from scamwatch.llm.ollama import OllamaConfig, OllamaProvider
from scamwatch.llm.openai import OpenAIConfig, OpenAIProvider

# Register all providers
EmbeddingProviderFactory.register("ollama", OllamaProvider)
EmbeddingProviderFactory.register("openai", OpenAIProvider)

__all__ = [
    "EmbeddingBatchResult",
    "EmbeddingProvider",
    "EmbeddingProviderFactory",
    "OllamaConfig",
    "OllamaProvider",
    "OpenAIConfig",
    "OpenAIProvider",
    "create_embedding_provider",
]
