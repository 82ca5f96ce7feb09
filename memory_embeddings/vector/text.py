"""
Text preparation for embedding: normalization and searchable-text assembly.
"""

import re
from typing import Iterable, Optional, Union

from ..core.config import get_text_limits
from ..core.schema import MemoryRecord, SearchableRecord, TaskRecord

_WHITESPACE = re.compile(r"\s+")
# Keep word characters, whitespace and common punctuation
_DISALLOWED = re.compile(r"[^\w\s\-.,!?;:()\[\]{}'\"@#$%&]")


def normalize_text(text: str, max_chars: Optional[int] = None, min_cut: Optional[int] = None) -> str:
    """
    Clean and bound text before it is sent to the model.

    Disallowed characters become spaces, whitespace runs collapse to a single
    space and the result is trimmed. Text longer than ``max_chars`` is cut and,
    when the cut lands mid-text, backed off to the last space provided that
    space sits beyond ``min_cut``.

    Args:
        text: Raw input text
        max_chars: Upper bound on the output length, defaults to EMBED_MAX_CHARS
        min_cut: Earliest space we are willing to back off to, defaults to EMBED_MIN_CUT

    Returns:
        Normalized text, possibly empty
    """
    default_max, default_cut = get_text_limits()
    max_chars = default_max if max_chars is None else max_chars
    min_cut = default_cut if min_cut is None else min_cut

    if not text:
        return ""

    cleaned = _DISALLOWED.sub(" ", text)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()

    if len(cleaned) > max_chars:
        cleaned = cleaned[:max_chars].rstrip()
        last_space = cleaned.rfind(" ")
        if last_space > min_cut:
            cleaned = cleaned[:last_space]

    return cleaned.strip()


def _tag_text(tags: Union[str, Iterable[str], None]) -> str:
    if not tags:
        return ""
    if isinstance(tags, str):
        parts = tags.split(",")
    else:
        parts = tags
    return " ".join(p.strip() for p in parts if p and p.strip())


def build_searchable_text(record: SearchableRecord) -> str:
    """
    Build the text that gets embedded for a record.

    Memories: title, content, category, project, tags.
    Tasks: title, description, status, category, project, tags.
    Empty fields are dropped and the rest joined with single spaces.
    """
    if isinstance(record, MemoryRecord):
        fields = [record.title, record.content, record.category, record.project]
    elif isinstance(record, TaskRecord):
        fields = [record.title, record.description, record.status, record.category, record.project]
    else:
        raise TypeError(f"Unsupported record type: {type(record).__name__}")

    fields.append(_tag_text(record.tags))
    return " ".join(f.strip() for f in fields if f and f.strip())
