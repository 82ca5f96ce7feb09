"""
Value types shared by the embedding generator, the similarity engine and the record store.
"""

import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Sequence, Tuple

import numpy as np

from ..core.schema import RecordType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class EmbeddingVector:
    """A fixed-length embedding produced by one model. Immutable once created."""

    values: Tuple[float, ...]
    """Vector components"""

    model: str
    """Identifier of the model that produced the vector"""

    created_at: datetime = field(default_factory=_utcnow)
    """When the vector was generated"""

    def __post_init__(self):
        values = tuple(float(v) for v in self.values)
        if not values:
            raise ValueError("Embedding vector must have at least one component")
        if not all(math.isfinite(v) for v in values):
            raise ValueError("Embedding vector contains non-finite components")
        object.__setattr__(self, "values", values)

    @classmethod
    def zeros(cls, dimension: int, model: str) -> "EmbeddingVector":
        """Degenerate all-zero vector used as a placeholder for failed batch items."""
        return cls(values=(0.0,) * dimension, model=model)

    @classmethod
    def from_json(cls, payload: str, model: str, created_at: Optional[datetime] = None) -> "EmbeddingVector":
        """Rebuild a vector from its stored flat JSON array."""
        values = json.loads(payload)
        if not isinstance(values, list):
            raise ValueError("Stored embedding is not a JSON array")
        return cls(values=tuple(values), model=model, created_at=created_at or _utcnow())

    @property
    def dimensions(self) -> int:
        return len(self.values)

    def as_array(self) -> np.ndarray:
        return np.asarray(self.values, dtype=np.float64)

    def is_zero(self) -> bool:
        return not any(self.values)

    def to_json(self) -> str:
        """Serialize as a flat numeric JSON array."""
        return json.dumps(list(self.values))

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class SimilarityCandidate:
    """A stored record offered to one similarity query."""

    id: int
    record_type: RecordType
    embedding: EmbeddingVector
    content: str = ""
    title: str = ""


@dataclass(frozen=True)
class SimilarityResult:
    """Represents a ranked match for a similarity query."""

    id: int
    """Identifier of the matching record"""

    record_type: RecordType
    """Whether the match is a memory or a task"""

    similarity: float
    """Cosine similarity to the query (-1 to 1)"""

    content: str = ""
    """Display content of the matched record"""

    title: str = ""
    """Title of the matched record"""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.record_type.value,
            "similarity": self.similarity,
            "content": self.content,
            "title": self.title,
        }


VectorLike = Sequence[float]
