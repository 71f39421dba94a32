"""Configuration management using pydantic-settings."""

from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DATA_DIR = Path(__file__).parent / "data"


class EmbeddingProviderName(str, Enum):
    """Supported embedding providers."""

    OPENAI = "openai"
    OLLAMA = "ollama"


class Environment(str, Enum):
    """Application environments."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Embedding Provider Configuration
    embedding_provider: EmbeddingProviderName = Field(
        default=EmbeddingProviderName.OPENAI,
        description="Embedding provider used for semantic matching",
    )
    openai_api_key: str | None = Field(
        default=None,
        description="OpenAI API key",
    )
    openai_embedding_model: str = Field(
        default="text-embedding-3-large",
        description="OpenAI embedding model to use",
    )
    ollama_host: str = Field(
        default="http://localhost:11434",
        description="Ollama API host URL",
    )
    ollama_embedding_model: str = Field(
        default="nomic-embed-text",
        description="Ollama embedding model to use",
    )
    embedding_batch_size: int = Field(
        default=2000,
        description="Maximum number of inputs per embedding request",
    )
    embedding_timeout_seconds: float = Field(
        default=30.0,
        description="Maximum wait for a single embedding request",
    )
    startup_timeout_seconds: float = Field(
        default=30.0,
        description="Maximum wait for the embedding provider at startup",
    )

    # Cache Configuration (seconds unless noted)
    embedding_cache_ttl: int = Field(default=86400, description="TTL for cached embeddings")
    centroid_cache_hours: int = Field(default=24, description="TTL for category centroids in hours")
    centroid_retry_seconds: float = Field(
        default=60.0,
        description="Minimum delay between failed centroid rebuild attempts",
    )
    analytics_cache_ttl: int = Field(default=3600, description="TTL for ranked threat pages")

    # Detection Thresholds
    legitimate_threshold: float = Field(
        default=0.80,
        description="Similarity to a legitimate centroid needed to classify a query as legitimate",
    )
    short_circuit_threshold: float = Field(
        default=0.85,
        description="Similarity above which a legitimate query skips signal evaluation",
    )
    embedding_signal_threshold: float = Field(
        default=0.70,
        description="Similarity to a seed phrase needed to activate the embedding signal",
    )

    # Data Sources
    seed_phrases_path: Path = Field(
        default=DATA_DIR / "seed_phrases.json",
        description="Path to the seed phrases configuration",
    )
    legitimate_queries_path: Path = Field(
        default=DATA_DIR / "legitimate_queries.json",
        description="Path to the legitimate query categories configuration",
    )
    analytics_data_path: Path | None = Field(
        default=None,
        description="Path to exported search analytics rows (JSON)",
    )

    # Application Configuration
    web_port: int = Field(default=3000, description="HTTP port for the JSON API")
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )

    @property
    def centroid_cache_ttl(self) -> int:
        """Get the centroid cache TTL in seconds."""
        return self.centroid_cache_hours * 3600

    def validate_provider_config(self) -> None:
        """Validate that required API keys are set for the selected provider."""
        if self.embedding_provider == EmbeddingProviderName.OPENAI and not self.openai_api_key:
            raise ValueError("OpenAI API key is required when using OpenAI provider")


# Global settings instance - lazy loaded
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
