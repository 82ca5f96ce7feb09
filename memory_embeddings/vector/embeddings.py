"""
Embedding generation with sentence-transformers.
The model is loaded once per process, on first use, and shared by every caller.
"""

from abc import ABC, abstractmethod
import hashlib
import threading
import time
from typing import Callable, List, Optional

import numpy as np

from ..core.config import get_batch_pacing, get_embed_dimension, get_embed_model_name, get_embed_provider
from ..util.logging import logger
from .errors import DimensionMismatchError, EmptyInputError, ModelLoadError
from .text import normalize_text
from .types import EmbeddingVector


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    model_name: str

    @abstractmethod
    def load(self) -> None:
        """Initialize the underlying model. Called exactly once by EmbeddingGenerator."""
        pass

    @abstractmethod
    def embed_text(self, text: str) -> List[float]:
        """Generate a mean-pooled, L2-normalized embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for offline use and testing.

    Seeds a random generator from a hash of the text and returns a unit-length
    vector, so identical text always maps to the identical embedding without
    requiring model weights.
    """

    def __init__(self, dimension: int = 384, model_name: Optional[str] = None):
        self.dimension = dimension
        self.model_name = model_name or f"hash-{dimension}"

    def load(self) -> None:
        pass

    def embed_text(self, text: str) -> List[float]:
        """Generate deterministic embedding vector using hash function."""
        digest = hashlib.md5(text.encode("utf-8")).hexdigest()
        rng = np.random.default_rng(int(digest, 16))
        vector = rng.standard_normal(self.dimension)
        return (vector / np.linalg.norm(vector)).tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    Uses all-MiniLM-L6-v2 by default: mean pooling over token embeddings,
    384 dimensions, normalized to unit length so cosine similarity is a dot product.
    """

    def __init__(self, model_name: str = "sentence-transformers/all-MiniLM-L6-v2"):
        self.model_name = model_name
        self._model = None

    def load(self) -> None:
        from sentence_transformers import SentenceTransformer
        self._model = SentenceTransformer(self.model_name)

    @property
    def model(self):
        if self._model is None:
            raise ModelLoadError(f"Model {self.model_name} has not been loaded")
        return self._model

    def embed_text(self, text: str) -> List[float]:
        """Generate embedding vector using sentence transformers."""
        embedding = self.model.encode(text, convert_to_numpy=True, normalize_embeddings=True)
        return embedding.tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.model.get_sentence_embedding_dimension()


def create_embedding_provider(provider: Optional[str] = None, model_name: Optional[str] = None,
                              dimension: Optional[int] = None) -> IEmbeddingProvider:
    """Build the configured embedding provider (not yet loaded)."""
    provider = provider or get_embed_provider()
    if provider == "hash":
        return DeterministicHashEmbedding(dimension=dimension or get_embed_dimension(), model_name=model_name)
    if provider == "sentence_transformers":
        return SentenceTransformerEmbedding(model_name or get_embed_model_name())
    raise ModelLoadError(f"Unknown embedding provider: {provider}")


class EmbeddingGenerator:
    """
    Owns the embedding model lifecycle and turns text into EmbeddingVectors.

    The provider is created and loaded lazily on first use. Loading happens under a
    lock so concurrent first callers wait on a single load instead of starting their
    own; a failed load is remembered and re-raised, there is no fallback model.
    """

    def __init__(self, provider_factory: Optional[Callable[[], IEmbeddingProvider]] = None,
                 dimension: Optional[int] = None, batch_size: Optional[int] = None,
                 batch_pause_sec: Optional[float] = None, sleep: Callable[[float], None] = time.sleep):
        """
        Initialize the generator.

        Args:
            provider_factory: Builds the provider on first use, defaults to the configured one
            dimension: Expected vector length, defaults to EMBED_DIMENSION
            batch_size: Texts per chunk in generate_batch, defaults to EMBED_BATCH_SIZE
            batch_pause_sec: Pause between chunks in generate_batch, defaults to EMBED_BATCH_PAUSE_SEC
            sleep: Sleep function, injectable so tests don't wait
        """
        default_size, default_pause = get_batch_pacing()
        self.dimension = get_embed_dimension() if dimension is None else dimension
        self.batch_size = default_size if batch_size is None else batch_size
        self.batch_pause_sec = default_pause if batch_pause_sec is None else batch_pause_sec
        if self.dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {self.dimension}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.batch_pause_sec < 0:
            raise ValueError(f"batch_pause_sec must be >= 0, got {self.batch_pause_sec}")
        self._provider_factory = provider_factory or (lambda: create_embedding_provider(dimension=self.dimension))
        self._sleep = sleep
        self._provider: Optional[IEmbeddingProvider] = None
        self._load_error: Optional[ModelLoadError] = None
        self._load_lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._provider is not None

    @property
    def model_name(self) -> str:
        """Identifier stored alongside every vector this generator produces."""
        if self._provider is not None:
            return self._provider.model_name
        if get_embed_provider() == "hash":
            return f"hash-{self.dimension}"
        return get_embed_model_name()

    @property
    def provider(self) -> IEmbeddingProvider:
        """Loaded embedding provider, initialized at most once."""
        provider = self._provider
        if provider is not None:
            return provider

        with self._load_lock:
            if self._provider is not None:
                return self._provider
            if self._load_error is not None:
                raise self._load_error

            started = time.monotonic()
            try:
                candidate = self._provider_factory()
                logger.info(f"Loading embedding model {candidate.model_name}...")
                candidate.load()
            except ModelLoadError as e:
                self._load_error = e
                logger.log_model_load(self.model_name, "failed", {"error": str(e)})
                raise
            except Exception as e:
                self._load_error = ModelLoadError(f"Failed to initialize embedding model: {e}")
                logger.log_model_load(self.model_name, "failed", {"error": str(e)})
                raise self._load_error from e

            self._provider = candidate
            logger.log_model_load(candidate.model_name, "success", {
                "duration_ms": round((time.monotonic() - started) * 1000, 2),
                "dimension": self.dimension
            })
            return candidate

    def preload(self) -> None:
        """Load the model ahead of the first request."""
        _ = self.provider

    def model_info(self) -> dict:
        return {
            "name": self.model_name,
            "dimensions": self.dimension,
            "loaded": self.is_loaded,
        }

    def generate(self, text: str) -> EmbeddingVector:
        """
        Generate an embedding for a single text.

        Raises:
            EmptyInputError: text is empty after normalization
            ModelLoadError: the model could not be initialized
            DimensionMismatchError: the model returned a vector of unexpected length
        """
        clean_text = normalize_text(text or "")
        if not clean_text:
            raise EmptyInputError("Cannot generate embedding for empty text")

        provider = self.provider
        values = provider.embed_text(clean_text)

        if len(values) != self.dimension:
            raise DimensionMismatchError(
                self.dimension, len(values),
                f"Unexpected embedding dimensions from {provider.model_name}: "
                f"expected {self.dimension}, got {len(values)}")

        return EmbeddingVector(values=tuple(values), model=provider.model_name)

    def generate_batch(self, texts: List[str]) -> List[EmbeddingVector]:
        """
        Generate embeddings for multiple texts, in chunks, one text at a time.

        A text that fails, including one that comes back with the wrong number of
        dimensions, is logged and replaced by a zero vector of the configured
        dimension so the output stays aligned with the input. Only a model load
        failure propagates.
        """
        if not texts:
            return []

        # Placeholders must carry the loaded model's name to stay comparable
        provider = self.provider
        results = []
        for start in range(0, len(texts), self.batch_size):
            chunk = texts[start:start + self.batch_size]

            for offset, text in enumerate(chunk):
                try:
                    results.append(self.generate(text))
                except ModelLoadError:
                    raise
                except Exception as e:
                    logger.log_embedding_operation("batch_item", text or "", {
                        "index": start + offset,
                        "error": str(e)
                    }, status="failed")
                    results.append(EmbeddingVector.zeros(self.dimension, provider.model_name))

            if start + self.batch_size < len(texts) and self.batch_pause_sec > 0:
                self._sleep(self.batch_pause_sec)

        return results


_shared_generator: Optional[EmbeddingGenerator] = None
_shared_lock = threading.Lock()


def get_embedding_generator() -> EmbeddingGenerator:
    """Process-wide generator so every caller reuses the same loaded model."""
    global _shared_generator
    if _shared_generator is None:
        with _shared_lock:
            if _shared_generator is None:
                _shared_generator = EmbeddingGenerator()
    return _shared_generator


def reset_embedding_generator() -> None:
    """Drop the shared generator (tests and config reloads)."""
    global _shared_generator
    with _shared_lock:
        _shared_generator = None
