"""
Record shapes consumed by the embedding layer.
Memories and tasks carry different field sets, so each gets its own variant.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union


class RecordType(str, Enum):
    MEMORY = "memory"
    TASK = "task"

    @property
    def table(self) -> str:
        return "memories" if self is RecordType.MEMORY else "tasks"

    @property
    def label(self) -> str:
        return "Memories" if self is RecordType.MEMORY else "Tasks"


@dataclass(frozen=True)
class MemoryRecord:
    id: int
    title: str = ""
    content: str = ""
    category: Optional[str] = None
    project: Optional[str] = None
    tags: Tuple[str, ...] = ()
    priority: int = 1

    record_type = RecordType.MEMORY

    @property
    def display_content(self) -> str:
        return self.content or self.title


@dataclass(frozen=True)
class TaskRecord:
    id: int
    title: str = ""
    description: str = ""
    status: Optional[str] = None
    category: Optional[str] = None
    project: Optional[str] = None
    tags: Tuple[str, ...] = ()
    priority: int = 1

    record_type = RecordType.TASK

    @property
    def display_content(self) -> str:
        return self.description or self.title


SearchableRecord = Union[MemoryRecord, TaskRecord]


@dataclass(frozen=True)
class EmbeddingStats:
    """Embedding coverage for one record type."""

    total: int
    with_embedding: int
    without_embedding: int
