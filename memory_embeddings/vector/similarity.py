"""
Cosine similarity and brute-force top-K ranking over caller-supplied candidates.
"""

from typing import Iterable, List, Optional, Union

import numpy as np

from ..core.config import get_search_defaults
from ..util.logging import logger
from .errors import DimensionMismatchError, ModelMismatchError
from .types import EmbeddingVector, SimilarityCandidate, SimilarityResult, VectorLike


def _as_vector(value: Union[EmbeddingVector, VectorLike]) -> np.ndarray:
    if isinstance(value, EmbeddingVector):
        return value.as_array()
    array = np.asarray(value, dtype=np.float64)
    if array.ndim != 1:
        raise ValueError(f"Expected a flat vector, got shape {array.shape}")
    if not np.all(np.isfinite(array)):
        raise ValueError("Vector contains non-finite components")
    return array


def cosine_similarity(a: Union[EmbeddingVector, VectorLike], b: Union[EmbeddingVector, VectorLike]) -> float:
    """
    Cosine similarity between two vectors, in [-1, 1].

    A zero-magnitude vector on either side yields exactly 0.0, whatever model
    the other side came from.

    Raises:
        DimensionMismatchError: the vectors have different lengths
        ModelMismatchError: both are non-zero EmbeddingVectors produced by different models
    """
    vec_a = _as_vector(a)
    vec_b = _as_vector(b)

    if vec_a.shape[0] != vec_b.shape[0]:
        raise DimensionMismatchError(
            vec_a.shape[0], vec_b.shape[0],
            f"Embeddings must have the same dimensions for similarity calculation: "
            f"{vec_a.shape[0]} vs {vec_b.shape[0]}")

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    if isinstance(a, EmbeddingVector) and isinstance(b, EmbeddingVector) and a.model != b.model:
        raise ModelMismatchError(a.model, b.model)

    similarity = float(np.dot(vec_a, vec_b) / (norm_a * norm_b))
    return max(-1.0, min(1.0, similarity))


def rank(query: Union[EmbeddingVector, VectorLike], candidates: Iterable[SimilarityCandidate],
         top_k: Optional[int] = None, min_similarity: Optional[float] = None) -> List[SimilarityResult]:
    """
    Score every candidate against the query and return the best matches.

    Candidates below ``min_similarity`` are dropped, the rest sorted by similarity
    descending (ties keep their input order) and cut to ``top_k``. A candidate that
    can't be scored is logged and skipped.
    """
    default_top_k, default_min = get_search_defaults()
    top_k = default_top_k if top_k is None else top_k
    min_similarity = default_min if min_similarity is None else min_similarity

    if top_k <= 0:
        return []

    scored = []
    for candidate in candidates:
        try:
            similarity = cosine_similarity(query, candidate.embedding)
        except Exception as e:
            logger.log_similarity_skip(candidate.record_type.value, candidate.id, e)
            continue

        if similarity >= min_similarity:
            scored.append(SimilarityResult(
                id=candidate.id,
                record_type=candidate.record_type,
                similarity=similarity,
                content=candidate.content,
                title=candidate.title
            ))

    # sorted() is stable, reverse=True included
    scored = sorted(scored, key=lambda result: result.similarity, reverse=True)
    return scored[:top_k]


class SimilarityEngine:
    """Ranking with per-instance defaults for top_k and min_similarity."""

    def __init__(self, top_k: Optional[int] = None, min_similarity: Optional[float] = None):
        default_top_k, default_min = get_search_defaults()
        self.top_k = default_top_k if top_k is None else top_k
        self.min_similarity = default_min if min_similarity is None else min_similarity

    def cosine_similarity(self, a, b) -> float:
        return cosine_similarity(a, b)

    def rank(self, query, candidates, top_k: Optional[int] = None,
             min_similarity: Optional[float] = None) -> List[SimilarityResult]:
        return rank(
            query,
            candidates,
            top_k=self.top_k if top_k is None else top_k,
            min_similarity=self.min_similarity if min_similarity is None else min_similarity
        )
