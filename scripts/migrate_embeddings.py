#!/usr/bin/env python3
"""
Embedding migration.
Adds embedding, embedding_model and embedding_created_at columns to the
memories and tasks tables. Creates the tables when the database is new.
"""

import argparse
import sqlite3
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from memory_embeddings.core.db import EMBEDDING_COLUMNS, health_check, init_db, migrate_embedding_columns


def main(argv=None):
    parser = argparse.ArgumentParser(description="Add embedding support to the memories/tasks database")
    parser.add_argument("--db-path", help="Database file to use instead of DB_PATH")
    args = parser.parse_args(argv)

    print("Starting embedding migration...")

    try:
        if not health_check(args.db_path):
            print("No memories/tasks tables found, creating schema")
            init_db(args.db_path)
            actions = []
        else:
            actions = migrate_embedding_columns(args.db_path)
    except sqlite3.Error as e:
        print(f"ERROR: Migration failed: {e}")
        sys.exit(1)

    if not actions:
        print("Embeddings already exist, migration not needed.")
        return

    for action in actions:
        print(f"  - {action}")

    print("✓ Embedding migration completed successfully!")
    print("Added to memories and tasks tables:")
    for name, ddl in EMBEDDING_COLUMNS:
        print(f"  - {name} ({ddl.split()[0]})")
    print("Next: generate embeddings for existing content with scripts/backfill_embeddings.py")


if __name__ == "__main__":
    main()
