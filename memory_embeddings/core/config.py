"""
Configuration for the semantic recall layer.
Everything is read from environment variables so the CLI, API and tests share one source.
"""

import os
from pathlib import Path

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/memory.db")

DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Embedding model configuration
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "sentence_transformers")  # sentence_transformers|hash
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "sentence-transformers/all-MiniLM-L6-v2")
EMBED_DIMENSION = int(os.getenv("EMBED_DIMENSION", "384"))

# Text preprocessing (all-MiniLM-L6-v2 accepts roughly 400-500 characters per input)
EMBED_MAX_CHARS = int(os.getenv("EMBED_MAX_CHARS", "400"))
EMBED_MIN_CUT = int(os.getenv("EMBED_MIN_CUT", "300"))

# Batch generation pacing
EMBED_BATCH_SIZE = int(os.getenv("EMBED_BATCH_SIZE", "5"))
EMBED_BATCH_PAUSE_SEC = float(os.getenv("EMBED_BATCH_PAUSE_SEC", "0.1"))

# Backfill pacing
BACKFILL_CHUNK_SIZE = int(os.getenv("BACKFILL_CHUNK_SIZE", "5"))
BACKFILL_CHUNK_PAUSE_SEC = float(os.getenv("BACKFILL_CHUNK_PAUSE_SEC", "0.2"))
BACKFILL_PROGRESS_EVERY = int(os.getenv("BACKFILL_PROGRESS_EVERY", "10"))

# Similarity search defaults
SEARCH_TOP_K = int(os.getenv("SEARCH_TOP_K", "10"))
SEARCH_MIN_SIMILARITY = float(os.getenv("SEARCH_MIN_SIMILARITY", "0.1"))

# Version string
VERSION = "1.0.0"

# Schema version written by the embedding migration
EMBEDDING_SCHEMA_VERSION = 2


def get_db_path():
    """Get the database path. Read dynamically so tests can point at a temp file."""
    return os.getenv("DB_PATH", DB_PATH)


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def get_embed_provider():
    """Get embedding provider name (sentence_transformers|hash)."""
    return os.getenv("EMBED_PROVIDER", EMBED_PROVIDER)


def get_embed_model_name():
    """Get the identifier of the active embedding model."""
    return os.getenv("EMBED_MODEL_NAME", EMBED_MODEL_NAME)


def get_embed_dimension():
    """Get the fixed dimensionality produced by the active model."""
    return int(os.getenv("EMBED_DIMENSION", str(EMBED_DIMENSION)))


def get_text_limits():
    """Get (max_chars, min_cut) used when truncating text before embedding."""
    return (
        int(os.getenv("EMBED_MAX_CHARS", str(EMBED_MAX_CHARS))),
        int(os.getenv("EMBED_MIN_CUT", str(EMBED_MIN_CUT))),
    )


def get_batch_pacing():
    """Get (batch_size, pause_sec) for batch embedding generation."""
    return (
        int(os.getenv("EMBED_BATCH_SIZE", str(EMBED_BATCH_SIZE))),
        float(os.getenv("EMBED_BATCH_PAUSE_SEC", str(EMBED_BATCH_PAUSE_SEC))),
    )


def get_backfill_pacing():
    """Get (chunk_size, pause_sec, progress_every) for the backfill run."""
    return (
        int(os.getenv("BACKFILL_CHUNK_SIZE", str(BACKFILL_CHUNK_SIZE))),
        float(os.getenv("BACKFILL_CHUNK_PAUSE_SEC", str(BACKFILL_CHUNK_PAUSE_SEC))),
        int(os.getenv("BACKFILL_PROGRESS_EVERY", str(BACKFILL_PROGRESS_EVERY))),
    )


def get_search_defaults():
    """Get (top_k, min_similarity) used when a caller doesn't pass them."""
    return (
        int(os.getenv("SEARCH_TOP_K", str(SEARCH_TOP_K))),
        float(os.getenv("SEARCH_MIN_SIMILARITY", str(SEARCH_MIN_SIMILARITY))),
    )


def ensure_db_directory(db_path=None):
    """Ensure the database directory exists."""
    Path(db_path or get_db_path()).expanduser().parent.mkdir(parents=True, exist_ok=True)


def validate_embedding_config():
    """Validate embedding configuration and return any issues."""
    issues = []

    if get_embed_provider() not in ["sentence_transformers", "hash"]:
        issues.append(f"Invalid EMBED_PROVIDER: {get_embed_provider()}")

    if get_embed_dimension() < 1:
        issues.append("EMBED_DIMENSION must be >= 1")

    max_chars, min_cut = get_text_limits()
    if max_chars < 1:
        issues.append("EMBED_MAX_CHARS must be >= 1")
    if min_cut < 0 or min_cut >= max_chars:
        issues.append("EMBED_MIN_CUT must be >= 0 and < EMBED_MAX_CHARS")

    batch_size, batch_pause = get_batch_pacing()
    if batch_size < 1:
        issues.append("EMBED_BATCH_SIZE must be >= 1")
    if batch_pause < 0:
        issues.append("EMBED_BATCH_PAUSE_SEC must be >= 0")

    chunk_size, chunk_pause, progress_every = get_backfill_pacing()
    if chunk_size < 1:
        issues.append("BACKFILL_CHUNK_SIZE must be >= 1")
    if chunk_pause < 0:
        issues.append("BACKFILL_CHUNK_PAUSE_SEC must be >= 0")
    if progress_every < 1:
        issues.append("BACKFILL_PROGRESS_EVERY must be >= 1")

    top_k, min_similarity = get_search_defaults()
    if top_k < 1:
        issues.append("SEARCH_TOP_K must be >= 1")
    if not -1.0 <= min_similarity <= 1.0:
        issues.append("SEARCH_MIN_SIMILARITY must be within [-1, 1]")

    return issues
