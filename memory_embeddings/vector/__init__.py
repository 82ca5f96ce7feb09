"""
Embedding and similarity layer. Advisory over the canonical SQLite records.
"""

# Package initialization for vector module
from .errors import (
    EmbeddingError,
    EmptyInputError,
    DimensionMismatchError,
    ModelMismatchError,
    ModelLoadError,
    BackfillError,
    RecordNotFoundError,
)
from .types import EmbeddingVector, SimilarityCandidate, SimilarityResult
from .text import normalize_text, build_searchable_text
from .embeddings import (
    IEmbeddingProvider,
    DeterministicHashEmbedding,
    SentenceTransformerEmbedding,
    EmbeddingGenerator,
    get_embedding_generator,
)
from .similarity import cosine_similarity, rank, SimilarityEngine

__all__ = [
    'EmbeddingError',
    'EmptyInputError',
    'DimensionMismatchError',
    'ModelMismatchError',
    'ModelLoadError',
    'BackfillError',
    'RecordNotFoundError',
    'EmbeddingVector',
    'SimilarityCandidate',
    'SimilarityResult',
    'normalize_text',
    'build_searchable_text',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'EmbeddingGenerator',
    'get_embedding_generator',
    'cosine_similarity',
    'rank',
    'SimilarityEngine'
]
