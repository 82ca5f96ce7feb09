"""
Semantic search over stored memories and tasks.
The query is embedded once and ranked against every candidate the store returns.
"""

from typing import List, Optional

from ..util.logging import logger
from ..vector.embeddings import EmbeddingGenerator, get_embedding_generator
from ..vector.similarity import rank
from ..vector.types import SimilarityResult
from .config import get_search_defaults
from .dao import IRecordStore, SQLiteRecordStore
from .schema import RecordType


def semantic_search(query: str, record_type: Optional[RecordType] = None, category: Optional[str] = None,
                    project: Optional[str] = None, priority_min: Optional[int] = None,
                    limit: Optional[int] = None, min_similarity: Optional[float] = None,
                    _store: Optional[IRecordStore] = None,
                    _generator: Optional[EmbeddingGenerator] = None) -> List[SimilarityResult]:
    """
    Rank stored records by semantic similarity to a free-text query.

    Args:
        query: Free text to search for
        record_type: Restrict to memories or tasks; None ranks both together
        category: Only candidates in this category
        project: Only candidates in this project
        priority_min: Only candidates with at least this priority
        limit: Maximum number of results, defaults to SEARCH_TOP_K
        min_similarity: Similarity threshold, defaults to SEARCH_MIN_SIMILARITY
        _store: Optional record store for testing
        _generator: Optional embedding generator for testing

    Returns:
        SimilarityResult list, best match first

    Raises:
        EmptyInputError: the query has no searchable content
        ModelLoadError: the model could not be loaded
    """
    store = _store if _store is not None else SQLiteRecordStore()
    generator = _generator if _generator is not None else get_embedding_generator()
    default_limit, default_min = get_search_defaults()

    query_vector = generator.generate(query)

    record_types = [record_type] if record_type is not None else list(RecordType)
    candidates = []
    for current in record_types:
        candidates.extend(store.fetch_candidates(
            current, category=category, project=project, priority_min=priority_min
        ))

    results = rank(
        query_vector,
        candidates,
        top_k=default_limit if limit is None else limit,
        min_similarity=default_min if min_similarity is None else min_similarity
    )

    logger.log_embedding_operation("search", query, {
        "record_types": [t.value for t in record_types],
        "candidates": len(candidates),
        "results": len(results)
    })
    return results
