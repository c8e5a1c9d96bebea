"""
Undo/redo of committed layout changes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from grid_events import ChangeFeed, EventType
from grid_model import GridModel
from grid_types import PositionUpdate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    """One committed change: the positions before and after."""

    before: tuple[PositionUpdate, ...]
    after: tuple[PositionUpdate, ...]
    change_type: str


class LayoutHistory:
    """Bounded undo and redo stacks."""

    def __init__(self, limit: int = 50) -> None:
        self.limit = limit
        self._undo: list[HistoryEntry] = []
        self._redo: list[HistoryEntry] = []

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def __len__(self) -> int:
        return len(self._undo)

    def record(
        self,
        before: Sequence[PositionUpdate],
        after: Sequence[PositionUpdate],
        change_type: str,
    ) -> None:
        self._undo.append(HistoryEntry(tuple(before), tuple(after), change_type))
        if len(self._undo) > self.limit:
            self._undo.pop(0)
        self._redo.clear()

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()

    def undo(self, model: GridModel, feed: ChangeFeed) -> bool:
        """
        Restore the positions from before the most recent change.

        The entry is applied only if the resulting layout keeps every block
        inside the grid and free of overlaps; otherwise the history is left
        as it was.

        Returns:
            True if a change was undone
        """
        if not self._undo:
            return False
        entry = self._undo[-1]
        if not _apply(model, feed, entry.before, entry.change_type, "undo"):
            return False
        self._redo.append(self._undo.pop())
        return True

    def redo(self, model: GridModel, feed: ChangeFeed) -> bool:
        """Re-apply the most recently undone change. Same rules as undo()."""
        if not self._redo:
            return False
        entry = self._redo[-1]
        if not _apply(model, feed, entry.after, entry.change_type, "redo"):
            return False
        self._undo.append(self._redo.pop())
        return True


def _apply(
    model: GridModel,
    feed: ChangeFeed,
    updates: Sequence[PositionUpdate],
    change_type: str,
    direction: str,
) -> bool:
    trial = model.copy()
    if trial.apply_updates(updates) == 0 or not trial.is_consistent():
        logger.info("%s of %s refused: result would not be a valid layout", direction, change_type)
        return False

    present = [u for u in updates if u.block_id in model]
    before = [PositionUpdate.of(u.block_id, model.rect_of(u.block_id)) for u in present]
    model.apply_updates(present)
    feed.commit(
        before, present, f"{direction}_{change_type}", record=False, complete=model.updates()
    )
    event = EventType.LAYOUT_UNDONE if direction == "undo" else EventType.LAYOUT_REDONE
    feed.emit(event, change_type=change_type, updates=present)
    return True
