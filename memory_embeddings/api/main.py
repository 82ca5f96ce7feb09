"""
HTTP surface for embedding generation and semantic search.
"""

from fastapi import Depends, FastAPI, HTTPException

from ..core.config import VERSION, debug_enabled
from ..core.dao import IRecordStore, SQLiteRecordStore
from ..core.db import health_check
from ..core.schema import RecordType
from ..core.search_service import semantic_search
from ..util.logging import logger
from ..vector.embeddings import EmbeddingGenerator, get_embedding_generator
from ..vector.errors import DimensionMismatchError, EmptyInputError, ModelLoadError
from .schemas import (
    EmbedRequest,
    EmbedResponse,
    HealthResponse,
    SearchRequest,
    SearchResponse,
    SearchResultItem,
    StatsResponse,
    TypeStats,
)

app = FastAPI(
    title="Memory Embeddings API",
    version=VERSION,
    description="Semantic search over memories and tasks",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None
)


def get_store() -> IRecordStore:
    return SQLiteRecordStore()


def get_generator() -> EmbeddingGenerator:
    return get_embedding_generator()


def _http_error(e: Exception) -> HTTPException:
    """Map embedding errors onto HTTP status codes."""
    if isinstance(e, EmptyInputError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, ModelLoadError):
        logger.error(f"Embedding model unavailable: {e}")
        return HTTPException(status_code=503, detail="Embedding model unavailable")
    logger.error(f"Embedding dimension mismatch: {e}")
    return HTTPException(status_code=500, detail=str(e))


@app.get("/health", response_model=HealthResponse)
def health_endpoint(generator: EmbeddingGenerator = Depends(get_generator)):
    """Check database and model health. Does not load the model."""
    db_health = health_check()
    info = generator.model_info()
    return HealthResponse(
        status="healthy" if db_health else "unhealthy",
        version=VERSION,
        db_health=db_health,
        model=info["name"],
        model_loaded=info["loaded"]
    )


@app.get("/embeddings/stats", response_model=StatsResponse)
def stats_endpoint(store: IRecordStore = Depends(get_store),
                   generator: EmbeddingGenerator = Depends(get_generator)):
    stats = {}
    for record_type in RecordType:
        entry = store.fetch_embedding_stats(record_type)
        stats[record_type.value] = TypeStats(
            total=entry.total,
            with_embedding=entry.with_embedding,
            without_embedding=entry.without_embedding
        )
    info = generator.model_info()
    return StatsResponse(model=info["name"], dimensions=info["dimensions"], stats=stats)


@app.post("/embeddings", response_model=EmbedResponse)
def embed_endpoint(req: EmbedRequest, generator: EmbeddingGenerator = Depends(get_generator)):
    try:
        vector = generator.generate(req.text)
    except (EmptyInputError, ModelLoadError, DimensionMismatchError) as e:
        raise _http_error(e) from e

    return EmbedResponse(
        model=vector.model,
        dimensions=vector.dimensions,
        embedding=list(vector.values),
        created_at=vector.created_at.isoformat()
    )


@app.post("/search", response_model=SearchResponse)
def search_endpoint(req: SearchRequest, store: IRecordStore = Depends(get_store),
                    generator: EmbeddingGenerator = Depends(get_generator)):
    try:
        results = semantic_search(
            req.query,
            record_type=req.record_type,
            category=req.category,
            project=req.project,
            priority_min=req.priority_min,
            limit=req.limit,
            min_similarity=req.min_similarity,
            _store=store,
            _generator=generator
        )
    except (EmptyInputError, ModelLoadError, DimensionMismatchError) as e:
        raise _http_error(e) from e

    items = [
        SearchResultItem(
            id=r.id,
            type=r.record_type,
            title=r.title,
            content=r.content,
            similarity=round(r.similarity, 4)
        )
        for r in results
    ]
    return SearchResponse(query=req.query, results=items, total=len(items))
