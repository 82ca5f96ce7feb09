"""
SQLite storage for memories and tasks, including the embedding columns.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator, List, Optional

from .config import EMBEDDING_SCHEMA_VERSION, ensure_db_directory, get_db_path

EMBEDDING_COLUMNS = (
    ("embedding", "TEXT DEFAULT NULL"),
    ("embedding_model", "TEXT DEFAULT NULL"),
    ("embedding_created_at", "TIMESTAMP DEFAULT NULL"),
)


@contextmanager
def get_db(db_path: Optional[str] = None) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection."""
    conn = sqlite3.connect(db_path or get_db_path())
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: Optional[str] = None):
    """Initialize the database with required tables."""
    ensure_db_directory(db_path)
    with get_db(db_path) as conn:
        cursor = conn.cursor()

        for table in ("categories", "projects", "statuses", "tags"):
            cursor.execute(f'''
                CREATE TABLE IF NOT EXISTS {table} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT UNIQUE NOT NULL,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            ''')

        # Memories table with embedding support
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS memories (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                content TEXT NOT NULL,
                category_id INTEGER,
                project_id INTEGER,
                priority INTEGER DEFAULT 1,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                embedding TEXT,
                embedding_model TEXT,
                embedding_created_at DATETIME,
                FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE SET NULL,
                FOREIGN KEY (project_id) REFERENCES projects(id) ON DELETE SET NULL
            )
        ''')

        # Tasks table with embedding support
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS tasks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                description TEXT DEFAULT '',
                status_id INTEGER,
                category_id INTEGER,
                project_id INTEGER,
                priority INTEGER DEFAULT 1,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                archived BOOLEAN DEFAULT FALSE,
                embedding TEXT,
                embedding_model TEXT,
                embedding_created_at DATETIME,
                FOREIGN KEY (status_id) REFERENCES statuses(id),
                FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE SET NULL,
                FOREIGN KEY (project_id) REFERENCES projects(id) ON DELETE SET NULL
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS memory_tags (
                memory_id INTEGER NOT NULL,
                tag_id INTEGER NOT NULL,
                FOREIGN KEY (memory_id) REFERENCES memories(id) ON DELETE CASCADE,
                FOREIGN KEY (tag_id) REFERENCES tags(id) ON DELETE CASCADE,
                UNIQUE(memory_id, tag_id)
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS task_tags (
                task_id INTEGER NOT NULL,
                tag_id INTEGER NOT NULL,
                FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE,
                FOREIGN KEY (tag_id) REFERENCES tags(id) ON DELETE CASCADE,
                UNIQUE(task_id, tag_id)
            )
        ''')

        conn.commit()

    migrate_embedding_columns(db_path)


def _table_columns(cursor: sqlite3.Cursor, table: str) -> List[str]:
    cursor.execute(f"PRAGMA table_info({table})")
    return [col[1] for col in cursor.fetchall()]


def embedding_columns_present(db_path: Optional[str] = None) -> bool:
    """Check that both record tables can hold embeddings."""
    with get_db(db_path) as conn:
        cursor = conn.cursor()
        for table in ("memories", "tasks"):
            columns = _table_columns(cursor, table)
            if not all(name in columns for name, _ in EMBEDDING_COLUMNS):
                return False
        return True


def migrate_embedding_columns(db_path: Optional[str] = None) -> List[str]:
    """
    Add embedding columns to memories/tasks tables created before semantic search existed.

    Safe to run repeatedly. Returns a list of actions taken (empty when already migrated).
    All changes apply in one transaction; a failure leaves the tables as they were.
    """
    actions = []
    with get_db(db_path) as conn:
        cursor = conn.cursor()

        try:
            # sqlite3 does not open a transaction for ALTER TABLE on its own
            cursor.execute("BEGIN")
            for table in ("memories", "tasks"):
                existing = _table_columns(cursor, table)
                if not existing:
                    raise sqlite3.OperationalError(f"Table {table} does not exist")
                for name, ddl in EMBEDDING_COLUMNS:
                    if name not in existing:
                        cursor.execute(f"ALTER TABLE {table} ADD COLUMN {name} {ddl}")
                        actions.append(f"added {table}.{name}")

                cursor.execute(f'''
                    CREATE INDEX IF NOT EXISTS idx_{table}_embedding_model
                    ON {table}(embedding_model)
                    WHERE embedding_model IS NOT NULL
                ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS schema_versions (
                    version INTEGER PRIMARY KEY,
                    description TEXT,
                    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')
            cursor.execute(
                "INSERT OR IGNORE INTO schema_versions (version, description) VALUES (?, ?)",
                (EMBEDDING_SCHEMA_VERSION, "Added embedding support for semantic search")
            )

            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise

    return actions


def health_check(db_path: Optional[str] = None):
    """Check database health."""
    try:
        with get_db(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            table_names = [row[0] for row in cursor.fetchall()]
            return all(table in table_names for table in ("memories", "tasks"))
    except sqlite3.Error:
        return False
