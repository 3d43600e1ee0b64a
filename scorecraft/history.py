"""UndoHistory: bounded undo/redo stacks of full score snapshots."""

from __future__ import annotations

import copy
from collections import deque

from scorecraft.score_models import Score

MAX_UNDO = 50


class UndoHistory:
    """
    Two stacks of deep-copied scores.

    ``record`` is called with the score as it was *before* a mutation; it
    clears the redo stack, discarding the abandoned branch. When the undo
    stack is full the oldest snapshot is dropped.
    """

    def __init__(self, capacity: int = MAX_UNDO) -> None:
        if capacity < 1:
            raise ValueError("History capacity must be at least 1.")
        self.capacity = capacity
        self._undo: deque[Score] = deque(maxlen=capacity)
        self._redo: deque[Score] = deque(maxlen=capacity)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def __len__(self) -> int:
        return len(self._undo)

    def record(self, score: Score) -> None:
        """Push a snapshot of *score* and forget everything that could be redone."""
        self._undo.append(copy.deepcopy(score))
        self._redo.clear()

    def undo(self, current: Score) -> Score | None:
        """Return the previous score, saving *current* for redo; None if empty."""
        if not self._undo:
            return None
        previous = self._undo.pop()
        self._redo.append(copy.deepcopy(current))
        return previous

    def redo(self, current: Score) -> Score | None:
        """Return the next score, saving *current* for undo; None if empty."""
        if not self._redo:
            return None
        following = self._redo.pop()
        self._undo.append(copy.deepcopy(current))
        return following

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
