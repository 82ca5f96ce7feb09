"""
Record store contract used by the backfill and search layers, plus its SQLite implementation.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from ..util.logging import logger
from ..vector.errors import RecordNotFoundError
from ..vector.types import EmbeddingVector, SimilarityCandidate
from .db import get_db
from .schema import EmbeddingStats, MemoryRecord, RecordType, SearchableRecord, TaskRecord


class IRecordStore(ABC):
    """What the embedding layer needs from the persistent record store."""

    @abstractmethod
    def fetch_records_needing_embedding(self, record_type: RecordType, force_all: bool = False) -> List[SearchableRecord]:
        """Records without an embedding (or every record when force_all), ordered by ascending id."""
        pass

    @abstractmethod
    def store_embedding(self, record_type: RecordType, record_id: int, vector: EmbeddingVector) -> None:
        """Persist vector, model id and timestamp for one record in a single atomic write."""
        pass

    @abstractmethod
    def fetch_embedding_stats(self, record_type: RecordType) -> EmbeddingStats:
        """Embedding coverage counts for one record type."""
        pass

    @abstractmethod
    def fetch_candidates(self, record_type: RecordType, category: Optional[str] = None,
                         project: Optional[str] = None, priority_min: Optional[int] = None) -> List[SimilarityCandidate]:
        """Records that already have embeddings, as similarity candidates."""
        pass


_MEMORY_SELECT = '''
    SELECT
        m.id, m.title, m.content, m.priority,
        m.embedding, m.embedding_model, m.embedding_created_at,
        c.name AS category,
        p.name AS project,
        GROUP_CONCAT(t.name, char(31)) AS tags
    FROM memories m
    LEFT JOIN categories c ON m.category_id = c.id
    LEFT JOIN projects p ON m.project_id = p.id
    LEFT JOIN memory_tags mt ON m.id = mt.memory_id
    LEFT JOIN tags t ON mt.tag_id = t.id
'''

_TASK_SELECT = '''
    SELECT
        t.id, t.title, t.description, t.priority,
        t.embedding, t.embedding_model, t.embedding_created_at,
        s.name AS status,
        c.name AS category,
        p.name AS project,
        GROUP_CONCAT(tag.name, char(31)) AS tags
    FROM tasks t
    LEFT JOIN statuses s ON t.status_id = s.id
    LEFT JOIN categories c ON t.category_id = c.id
    LEFT JOIN projects p ON t.project_id = p.id
    LEFT JOIN task_tags tt ON t.id = tt.task_id
    LEFT JOIN tags tag ON tt.tag_id = tag.id
'''


# Unit separator; tag names may contain commas
_TAG_SEPARATOR = "\x1f"


def _split_tags(value: Optional[str]):
    if not value:
        return ()
    return tuple(tag.strip() for tag in value.split(_TAG_SEPARATOR) if tag.strip())


def _parse_timestamp(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def row_to_record(record_type: RecordType, row) -> SearchableRecord:
    """Build the typed record variant from a joined row."""
    if record_type is RecordType.MEMORY:
        return MemoryRecord(
            id=row["id"],
            title=row["title"] or "",
            content=row["content"] or "",
            category=row["category"],
            project=row["project"],
            tags=_split_tags(row["tags"]),
            priority=row["priority"] or 1,
        )
    return TaskRecord(
        id=row["id"],
        title=row["title"] or "",
        description=row["description"] or "",
        status=row["status"],
        category=row["category"],
        project=row["project"],
        tags=_split_tags(row["tags"]),
        priority=row["priority"] or 1,
    )


class SQLiteRecordStore(IRecordStore):
    """IRecordStore backed by the memories/tasks tables."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path

    def _select(self, record_type: RecordType) -> tuple:
        if record_type is RecordType.MEMORY:
            return _MEMORY_SELECT, "m"
        return _TASK_SELECT, "t"

    def fetch_records_needing_embedding(self, record_type: RecordType, force_all: bool = False) -> List[SearchableRecord]:
        select, alias = self._select(record_type)
        where = "" if force_all else f"WHERE {alias}.embedding IS NULL"
        sql = f"{select} {where} GROUP BY {alias}.id ORDER BY {alias}.id ASC"

        with get_db(self.db_path) as conn:
            rows = conn.execute(sql).fetchall()

        return [row_to_record(record_type, row) for row in rows]

    def store_embedding(self, record_type: RecordType, record_id: int, vector: EmbeddingVector) -> None:
        with get_db(self.db_path) as conn:
            try:
                cursor = conn.execute(
                    f"UPDATE {record_type.table} "
                    "SET embedding = ?, embedding_model = ?, embedding_created_at = ? "
                    "WHERE id = ?",
                    (vector.to_json(), vector.model, vector.created_at.isoformat(), record_id)
                )
                if cursor.rowcount == 0:
                    raise RecordNotFoundError(f"No {record_type.value} with id {record_id}")
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def fetch_embedding_stats(self, record_type: RecordType) -> EmbeddingStats:
        with get_db(self.db_path) as conn:
            row = conn.execute(f'''
                SELECT
                    COUNT(*) AS total,
                    COUNT(embedding) AS with_embedding
                FROM {record_type.table}
            ''').fetchone()

        total = row["total"]
        with_embedding = row["with_embedding"]
        return EmbeddingStats(total=total, with_embedding=with_embedding, without_embedding=total - with_embedding)

    def fetch_candidates(self, record_type: RecordType, category: Optional[str] = None,
                         project: Optional[str] = None, priority_min: Optional[int] = None) -> List[SimilarityCandidate]:
        select, alias = self._select(record_type)
        clauses = [f"{alias}.embedding IS NOT NULL"]
        params = []

        if category:
            clauses.append("c.name = ?")
            params.append(category)
        if project:
            clauses.append("p.name = ?")
            params.append(project)
        if priority_min:
            clauses.append(f"{alias}.priority >= ?")
            params.append(priority_min)

        sql = f"{select} WHERE {' AND '.join(clauses)} GROUP BY {alias}.id ORDER BY {alias}.id ASC"

        with get_db(self.db_path) as conn:
            rows = conn.execute(sql, params).fetchall()

        candidates = []
        for row in rows:
            try:
                embedding = EmbeddingVector.from_json(
                    row["embedding"],
                    model=row["embedding_model"] or "",
                    created_at=_parse_timestamp(row["embedding_created_at"])
                )
            except (ValueError, TypeError) as e:
                logger.log_similarity_skip(record_type.value, row["id"], e)
                continue

            record = row_to_record(record_type, row)
            candidates.append(SimilarityCandidate(
                id=record.id,
                record_type=record_type,
                embedding=embedding,
                content=record.display_content,
                title=record.title
            ))

        return candidates

