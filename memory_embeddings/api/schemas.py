"""
Request/response models for the semantic search API.
"""

from pydantic import BaseModel, field_validator
from typing import Dict, List, Optional

from ..core.schema import RecordType


class EmbedRequest(BaseModel):
    text: str

    @field_validator('text')
    @classmethod
    def text_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('text cannot be empty')
        return v


class EmbedResponse(BaseModel):
    model: str
    dimensions: int
    embedding: List[float]
    created_at: str


class SearchRequest(BaseModel):
    query: str
    record_type: Optional[RecordType] = None
    category: Optional[str] = None
    project: Optional[str] = None
    priority_min: Optional[int] = None
    limit: int = 10
    min_similarity: float = 0.1

    @field_validator('query')
    @classmethod
    def query_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('query cannot be empty')
        return v

    @field_validator('limit')
    @classmethod
    def limit_must_be_positive(cls, v):
        if v < 1 or v > 100:
            raise ValueError('limit must be between 1 and 100')
        return v

    @field_validator('min_similarity')
    @classmethod
    def min_similarity_in_range(cls, v):
        if v < -1.0 or v > 1.0:
            raise ValueError('min_similarity must be between -1 and 1')
        return v


class SearchResultItem(BaseModel):
    id: int
    type: RecordType
    title: str
    content: str
    similarity: float


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResultItem]
    total: int


class TypeStats(BaseModel):
    total: int
    with_embedding: int
    without_embedding: int


class StatsResponse(BaseModel):
    model: str
    dimensions: int
    stats: Dict[str, TypeStats]


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    model: str
    model_loaded: bool
