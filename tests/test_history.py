"""Unit tests for the bounded undo/redo history."""

import pytest

from scorecraft.history import MAX_UNDO, UndoHistory
from scorecraft.score_models import Score, default_score


def _titled(title: str) -> Score:
    score = default_score()
    score.title = title
    return score


def test_empty_history_cannot_undo_or_redo() -> None:
    history = UndoHistory()
    assert not history.can_undo
    assert not history.can_redo
    assert history.undo(_titled("x")) is None
    assert history.redo(_titled("x")) is None


def test_record_stores_a_copy() -> None:
    history = UndoHistory()
    score = _titled("before")
    history.record(score)
    score.title = "after"
    restored = history.undo(score)
    assert restored.title == "before"


def test_undo_then_redo_round_trip() -> None:
    history = UndoHistory()
    history.record(_titled("a"))
    restored = history.undo(_titled("b"))
    assert restored.title == "a"
    assert history.can_redo
    again = history.redo(restored)
    assert again.title == "b"
    assert history.can_undo and not history.can_redo


def test_record_clears_redo() -> None:
    history = UndoHistory()
    history.record(_titled("a"))
    history.undo(_titled("b"))
    history.record(_titled("c"))
    assert not history.can_redo


def test_capacity_drops_oldest_snapshot() -> None:
    history = UndoHistory(capacity=3)
    for i in range(5):
        history.record(_titled(str(i)))
    assert len(history) == 3
    titles = []
    current = _titled("now")
    while history.can_undo:
        current = history.undo(current)
        titles.append(current.title)
    assert titles == ["4", "3", "2"]


def test_default_capacity() -> None:
    history = UndoHistory()
    for i in range(MAX_UNDO + 10):
        history.record(_titled(str(i)))
    assert history.capacity == 50
    assert len(history) == 50


def test_invalid_capacity() -> None:
    with pytest.raises(ValueError):
        UndoHistory(capacity=0)


def test_clear() -> None:
    history = UndoHistory()
    history.record(_titled("a"))
    history.undo(_titled("b"))
    history.clear()
    assert not history.can_undo
    assert not history.can_redo
