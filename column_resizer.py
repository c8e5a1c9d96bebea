"""
Column count changes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from grid_events import ChangeFeed, EventType
from grid_model import GridModel
from grid_types import PositionUpdate, Rect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnChange:
    """Result of a column count change."""

    columns: int
    updates: tuple[PositionUpdate, ...]  # Every block, not just the clamped ones
    clamped_count: int


def clamp_to_columns(rect: Rect, columns: int) -> Rect:
    """
    Fit a rectangle into a grid of `columns` columns.

    The block is shifted left first so it keeps its width; it is narrowed
    only when it is wider than the grid.
    """
    x = min(max(rect.x, 0), max(0, columns - rect.w))
    w = min(max(rect.w, 1), columns - x)
    return Rect(x, rect.y, w, rect.h)


class ColumnResizer:
    """Re-clamps every block when the column count changes."""

    def __init__(self, model: GridModel, feed: ChangeFeed) -> None:
        self.model = model
        self.feed = feed

    def set_columns(self, columns: int) -> ColumnChange:
        """
        Change the column count and clamp every block into it.

        Only the boundary invariant is guaranteed afterwards: clamping can
        make blocks overlap, and no reflow is run to separate them.

        Raises:
            ValueError: If columns < 1
        """
        if columns < 1:
            raise ValueError(f"Grid needs at least one column, got {columns}")

        previous_columns = self.model.columns
        before: list[PositionUpdate] = []
        after: list[PositionUpdate] = []
        for block in self.model:
            rect = clamp_to_columns(block.rect, columns)
            if rect != block.rect:
                before.append(PositionUpdate.of(block.id, block.rect))
                after.append(PositionUpdate.of(block.id, rect))
                self.model.set_rect(block.id, rect)
        clamped = len(after)
        self.model.columns = columns

        updates = tuple(self.model.updates())
        if clamped:
            logger.info(
                "set_columns: %d -> %d, %d block(s) clamped", previous_columns, columns, clamped
            )
        self.feed.commit(before, after, "columns", record=False, complete=updates)
        self.feed.emit(
            EventType.COLUMNS_CHANGED,
            columns=columns,
            previous_columns=previous_columns,
            clamped_count=clamped,
            updates=list(updates),
        )
        return ColumnChange(columns, updates, clamped)
