"""
Shared fixtures: a fake embedding provider, an in-memory record store and a temp SQLite database.
"""

import pytest

from memory_embeddings.core.dao import IRecordStore
from memory_embeddings.core.db import get_db, init_db
from memory_embeddings.core.schema import EmbeddingStats, RecordType
from memory_embeddings.vector.embeddings import DeterministicHashEmbedding, EmbeddingGenerator
from memory_embeddings.vector.errors import RecordNotFoundError
from memory_embeddings.vector.types import SimilarityCandidate


class FakeProvider(DeterministicHashEmbedding):
    """Hash embeddings that can be told to fail on specific texts."""

    def __init__(self, dimension=384, model_name="test-model", fail_on=()):
        super().__init__(dimension=dimension, model_name=model_name)
        self.fail_on = set(fail_on)
        self.load_calls = 0
        self.embed_calls = []

    def load(self):
        self.load_calls += 1

    def embed_text(self, text):
        self.embed_calls.append(text)
        if text in self.fail_on:
            raise RuntimeError(f"inference failed for {text}")
        return super().embed_text(text)


class InMemoryRecordStore(IRecordStore):
    """IRecordStore over plain dicts."""

    def __init__(self, memories=(), tasks=()):
        self.records = {
            RecordType.MEMORY: {r.id: r for r in memories},
            RecordType.TASK: {r.id: r for r in tasks},
        }
        self.embeddings = {RecordType.MEMORY: {}, RecordType.TASK: {}}
        self.store_calls = []
        self.fail_store_for = set()

    def fetch_records_needing_embedding(self, record_type, force_all=False):
        records = sorted(self.records[record_type].values(), key=lambda r: r.id)
        if force_all:
            return records
        return [r for r in records if r.id not in self.embeddings[record_type]]

    def store_embedding(self, record_type, record_id, vector):
        self.store_calls.append((record_type, record_id))
        if (record_type, record_id) in self.fail_store_for:
            raise IOError(f"write failed for {record_id}")
        if record_id not in self.records[record_type]:
            raise RecordNotFoundError(f"No {record_type.value} with id {record_id}")
        self.embeddings[record_type][record_id] = vector

    def fetch_embedding_stats(self, record_type):
        total = len(self.records[record_type])
        with_embedding = len(self.embeddings[record_type])
        return EmbeddingStats(total=total, with_embedding=with_embedding, without_embedding=total - with_embedding)

    def fetch_candidates(self, record_type, category=None, project=None, priority_min=None):
        candidates = []
        for record_id, vector in sorted(self.embeddings[record_type].items()):
            record = self.records[record_type][record_id]
            if category and record.category != category:
                continue
            if project and record.project != project:
                continue
            if priority_min and record.priority < priority_min:
                continue
            candidates.append(SimilarityCandidate(
                id=record_id,
                record_type=record_type,
                embedding=vector,
                content=record.display_content,
                title=record.title
            ))
        return candidates


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def generator(fake_provider):
    """Generator backed by the fake provider, with no pacing delays."""
    return EmbeddingGenerator(provider_factory=lambda: fake_provider, dimension=384, batch_pause_sec=0)


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Fresh SQLite database with the full schema."""
    path = str(tmp_path / "memory.db")
    monkeypatch.setenv("DB_PATH", path)
    init_db(path)
    return path


def _lookup_id(cursor, table, name):
    if not name:
        return None
    cursor.execute(f"INSERT OR IGNORE INTO {table} (name) VALUES (?)", (name,))
    cursor.execute(f"SELECT id FROM {table} WHERE name = ?", (name,))
    return cursor.fetchone()[0]


def insert_memory(db_path, title, content, category=None, project=None, tags=(), priority=1):
    with get_db(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute(
            "INSERT INTO memories (title, content, category_id, project_id, priority) VALUES (?, ?, ?, ?, ?)",
            (title, content, _lookup_id(cursor, "categories", category),
             _lookup_id(cursor, "projects", project), priority)
        )
        memory_id = cursor.lastrowid
        for tag in tags:
            cursor.execute("INSERT INTO memory_tags (memory_id, tag_id) VALUES (?, ?)",
                           (memory_id, _lookup_id(cursor, "tags", tag)))
        conn.commit()
    return memory_id


def insert_task(db_path, title, description="", status=None, category=None, project=None, tags=(), priority=1):
    with get_db(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute(
            "INSERT INTO tasks (title, description, status_id, category_id, project_id, priority) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (title, description, _lookup_id(cursor, "statuses", status),
             _lookup_id(cursor, "categories", category),
             _lookup_id(cursor, "projects", project), priority)
        )
        task_id = cursor.lastrowid
        for tag in tags:
            cursor.execute("INSERT INTO task_tags (task_id, tag_id) VALUES (?, ?)",
                           (task_id, _lookup_id(cursor, "tags", tag)))
        conn.commit()
    return task_id
