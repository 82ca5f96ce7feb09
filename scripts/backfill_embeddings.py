#!/usr/bin/env python3
"""
Batch embedding generation for existing memories and tasks.

Run after the embedding migration to populate vectors for records created
before semantic search existed. Only records without an embedding are
processed unless --force is given.
"""

import argparse
import sqlite3
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from memory_embeddings.core.backfill import BackfillOrchestrator
from memory_embeddings.core.config import validate_embedding_config
from memory_embeddings.core.dao import SQLiteRecordStore
from memory_embeddings.core.db import embedding_columns_present
from memory_embeddings.vector.embeddings import get_embedding_generator
from memory_embeddings.vector.errors import BackfillError, ModelLoadError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Batch embedding generation tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                # Generate missing embeddings
  %(prog)s --force        # Regenerate all embeddings
  %(prog)s --stats-only   # Show statistics only

Environment variables:
- DB_PATH=./data/memory.db (database location)
- EMBED_PROVIDER=sentence_transformers (or hash for offline use)
- EMBED_MODEL_NAME=sentence-transformers/all-MiniLM-L6-v2
- BACKFILL_CHUNK_SIZE=5, BACKFILL_CHUNK_PAUSE_SEC=0.2
        """
    )

    parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Regenerate all embeddings (even existing ones)"
    )

    parser.add_argument(
        "--stats-only", "-s",
        action="store_true",
        help="Show embedding statistics only"
    )

    parser.add_argument(
        "--db-path",
        help="Database file to use instead of DB_PATH"
    )

    return parser


def main(argv=None):
    """Generate embeddings for records that don't have one yet."""
    args = build_parser().parse_args(argv)

    print("Starting batch embedding generation...")

    # Validate configuration
    issues = validate_embedding_config()
    if issues:
        for issue in issues:
            print(f"ERROR: {issue}")
        sys.exit(1)

    try:
        migrated = embedding_columns_present(args.db_path)
    except sqlite3.Error as e:
        print(f"ERROR: Cannot open database: {e}")
        sys.exit(1)

    if not migrated:
        print("ERROR: Embedding columns not found. Please run the embedding migration first:")
        print("   python scripts/migrate_embeddings.py")
        sys.exit(1)

    store = SQLiteRecordStore(args.db_path)
    generator = get_embedding_generator()
    orchestrator = BackfillOrchestrator(store, generator)

    try:
        if args.stats_only:
            orchestrator.print_stats(orchestrator.load_stats())
            return

        report = orchestrator.run(force=args.force)
    except ModelLoadError as e:
        print(f"ERROR: Failed to load embedding model: {e}")
        sys.exit(1)
    except BackfillError as e:
        print(f"ERROR: Batch embedding generation failed: {e}")
        sys.exit(1)

    if report.total_failed:
        print(f"WARNING: {report.total_failed} records failed; re-run to retry them")

    print("Batch embedding generation complete!")


if __name__ == "__main__":
    main()
