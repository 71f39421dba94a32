"""Vector similarity helpers."""

from collections.abc import Sequence

import numpy as np


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Compute cosine similarity between two vectors.

    Empty, mismatched or zero-norm inputs yield 0.0 rather than NaN.
    """
    if len(a) == 0 or len(a) != len(b):
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = np.linalg.norm(va) * np.linalg.norm(vb)
    if denom == 0 or not np.isfinite(denom):
        return 0.0

    return float(np.dot(va, vb) / denom)


def cosine_similarity_matrix(
    queries: Sequence[Sequence[float]],
    references: Sequence[Sequence[float]],
) -> np.ndarray:
    """Cosine similarity of every query row against every reference row.

    Returns:
        Array of shape (len(queries), len(references)); zero-norm rows score 0.
    """
    if len(queries) == 0 or len(references) == 0:
        return np.zeros((len(queries), len(references)))

    q = np.asarray(queries, dtype=np.float64)
    r = np.asarray(references, dtype=np.float64)
    if q.ndim != 2 or r.ndim != 2 or q.shape[1] != r.shape[1]:
        return np.zeros((len(queries), len(references)))

    q_norms = np.linalg.norm(q, axis=1, keepdims=True)
    r_norms = np.linalg.norm(r, axis=1, keepdims=True)
    q_unit = np.divide(q, q_norms, out=np.zeros_like(q), where=q_norms != 0)
    r_unit = np.divide(r, r_norms, out=np.zeros_like(r), where=r_norms != 0)

    return q_unit @ r_unit.T


def compute_centroid(embeddings: Sequence[Sequence[float]]) -> list[float]:
    """Compute the component-wise mean of a set of vectors."""
    if len(embeddings) == 0:
        return []

    return np.asarray(embeddings, dtype=np.float64).mean(axis=0).tolist()
