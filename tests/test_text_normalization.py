"""
Text normalization and searchable-text assembly.
"""

import pytest

from memory_embeddings.core.schema import MemoryRecord, TaskRecord
from memory_embeddings.vector.text import build_searchable_text, normalize_text


def test_whitespace_collapsed_and_punctuation_kept():
    assert normalize_text("Fix   the   bug!!") == "Fix the bug!!"


def test_newlines_and_tabs_collapse():
    assert normalize_text("  line one\n\n\tline two  ") == "line one line two"


def test_disallowed_characters_become_spaces():
    assert normalize_text("deploy → prod ★ now") == "deploy prod now"
    assert normalize_text("a*b") == "a b"


def test_allowed_punctuation_survives():
    text = "email@host #tag $5 50% a&b (x) [y] {z} 'q' \"d\" - . , ! ? ; :"
    assert normalize_text(text) == text


def test_truncates_at_space_after_min_cut():
    text = "a" * 350 + " " + "b" * 99
    assert len(text) == 450

    result = normalize_text(text)

    assert result == "a" * 350
    assert len(result) <= 400


def test_truncation_keeps_hard_cut_when_last_space_is_too_early():
    text = "a" * 100 + " " + "b" * 400
    result = normalize_text(text)
    assert len(result) == 400
    assert result.startswith("a" * 100 + " b")


def test_truncation_without_spaces():
    assert normalize_text("x" * 1000) == "x" * 400


def test_short_text_untouched():
    assert normalize_text("short note") == "short note"


@pytest.mark.parametrize("text", ["", "   ", "\n\t", "★★★"])
def test_empty_after_normalization(text):
    assert normalize_text(text) == ""


def test_custom_limits():
    assert normalize_text("one two three four", max_chars=10, min_cut=2) == "one two"


def test_deterministic():
    text = "Same   input\tevery time!"
    assert normalize_text(text) == normalize_text(text)


def test_memory_searchable_text():
    memory = MemoryRecord(
        id=1, title="Deploy notes", content="Use blue/green", category="ops",
        project="api", tags=("deploy", "k8s")
    )
    assert build_searchable_text(memory) == "Deploy notes Use blue/green ops api deploy k8s"


def test_task_searchable_text_includes_status():
    task = TaskRecord(
        id=2, title="Fix login", description="Session expires early", status="in_progress",
        category=None, project="web", tags=()
    )
    assert build_searchable_text(task) == "Fix login Session expires early in_progress web"


def test_searchable_text_drops_empty_fields():
    memory = MemoryRecord(id=3, title="  ", content="only content", category="", project=None)
    assert build_searchable_text(memory) == "only content"


def test_searchable_text_accepts_comma_joined_tags():
    memory = MemoryRecord(id=4, title="t", content="c", tags="alpha, beta,,gamma")
    assert build_searchable_text(memory) == "t c alpha beta gamma"


def test_searchable_text_empty_record():
    assert build_searchable_text(TaskRecord(id=5)) == ""


def test_searchable_text_rejects_unknown_types():
    with pytest.raises(TypeError):
        build_searchable_text({"id": 1, "title": "dict"})
