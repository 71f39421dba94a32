"""Embedding access, seed phrase embeddings and vector math."""

from .batcher import BatchEmbedder
from .cache import SEED_EMBEDDINGS_CACHE_KEY, EmbeddingCache
from .models import EmbeddingMatch, QueryEmbeddingResult
from .vectors import compute_centroid, cosine_similarity, cosine_similarity_matrix

__all__ = [
    "SEED_EMBEDDINGS_CACHE_KEY",
    "BatchEmbedder",
    "EmbeddingCache",
    "EmbeddingMatch",
    "QueryEmbeddingResult",
    "compute_centroid",
    "cosine_similarity",
    "cosine_similarity_matrix",
]
