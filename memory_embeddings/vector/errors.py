"""
Error taxonomy for embedding generation, similarity and backfill.
"""


class EmbeddingError(Exception):
    """Base class for embedding layer errors."""


class EmptyInputError(EmbeddingError):
    """Text has no content left after normalization."""


class DimensionMismatchError(EmbeddingError):
    """A vector's length disagrees with the model dimension or with the vector it's compared to."""

    def __init__(self, expected: int, actual: int, message: str = None):
        self.expected = expected
        self.actual = actual
        super().__init__(message or f"Embedding dimension mismatch: expected {expected}, got {actual}")


class ModelMismatchError(EmbeddingError):
    """Two vectors were produced by different models and can't be compared."""

    def __init__(self, model_a: str, model_b: str):
        self.model_a = model_a
        self.model_b = model_b
        super().__init__(f"Cannot compare embeddings from different models: {model_a} vs {model_b}")


class ModelLoadError(EmbeddingError):
    """The inference model could not be initialized. Fatal for the process."""


class BackfillError(Exception):
    """Orchestration-level failure of a backfill run (e.g. the record store is unreachable)."""


class RecordNotFoundError(Exception):
    """A store write targeted a record id that doesn't exist."""
