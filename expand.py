"""
Expand and collapse of a single block.

At most one block per grid is expanded at a time. In overlay mode the
expanded rectangle is only remembered for the renderer and the grid itself
does not change. In reflow mode the block is written at its expanded size
and every block below it, in the columns it now covers, is pushed down by
one shared delta, which collapse() later subtracts again.

Collapse restores the expanded block's own rectangle exactly. Blocks moved
independently while something is expanded are not guaranteed to return to
where they were before the expansion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from grid_config import GridConfig
from grid_events import ChangeFeed, EventType
from grid_model import GridModel
from grid_types import ExpandMode, PositionUpdate, Rect

logger = logging.getLogger(__name__)


@dataclass
class ExpandState:
    """Snapshot kept while a block is expanded."""

    block_id: str
    original_rect: Rect
    target_rect: Rect
    mode: ExpandMode
    delta_h: int = 0
    shifted: dict[str, int] = field(default_factory=dict)  # block id -> y before the push


class ExpandCollapseController:
    """Toggles the expanded block of one grid."""

    def __init__(self, model: GridModel, config: GridConfig, feed: ChangeFeed) -> None:
        self.model = model
        self.config = config
        self.feed = feed
        self.state: ExpandState | None = None

    @property
    def expanded_id(self) -> str | None:
        return self.state.block_id if self.state else None

    def is_expanded(self, block_id: str) -> bool:
        return self.expanded_id == block_id

    def target_rect(self, rect: Rect) -> Rect:
        """Expanded rectangle for a block currently at `rect`."""
        if self.config.expand_full_width:
            x, w = 0, self.model.columns
        else:
            x, w = rect.x, rect.w
        return Rect(x, rect.y, w, max(rect.h, self.config.expand_target_rows))

    def toggle(self, block_id: str) -> bool:
        """Expand the block, or collapse it if it is the expanded one. Returns the new expanded flag."""
        if self.is_expanded(block_id):
            self.collapse()
            return False
        return self.expand(block_id) is not None

    def expand(self, block_id: str) -> ExpandState | None:
        """
        Expand a block.

        Any other expanded block is collapsed first. In reflow mode, blocks
        whose column span meets the expanded rectangle and whose top is at or
        below the block's original top are pushed down by a shared delta:
        at least the height gained, and enough to clear the expanded bottom
        edge. If the result would still overlap or leave the grid, the expand
        is refused and nothing changes.

        Returns:
            The new ExpandState, or None if expanding is disabled or refused
        """
        if not self.config.expand_enabled:
            return None
        if self.state is not None:
            if self.state.block_id == block_id:
                return self.state
            self.collapse()

        original = self.model.rect_of(block_id)
        if original is None:
            return None
        target = self.target_rect(original)

        if self.config.expand_mode == ExpandMode.OVERLAY:
            self.state = ExpandState(block_id, original, target, ExpandMode.OVERLAY)
            self.feed.emit(
                EventType.BLOCK_EXPANDED, block_id, mode="overlay", rect=target, original=original
            )
            return self.state

        affected = [
            b.id
            for b in self.model
            if b.id != block_id and b.rect.spans_columns_of(target) and b.rect.y >= original.y
        ]
        delta_h = target.h - original.h
        if affected:
            top = min(self.model.rect_of(i).y for i in affected)
            delta_h = max(delta_h, target.bottom - top)

        trial = self.model.copy()
        trial.set_rect(block_id, target)
        for other_id in affected:
            rect = trial.rect_of(other_id)
            trial.set_rect(other_id, rect.moved_to(rect.x, rect.y + delta_h))
        if not trial.is_consistent():
            logger.info("expand of %s refused: %s would overlap after the push", block_id, target)
            self.feed.emit(EventType.BLOCKED_PLACEMENT, block_id, candidate=target, reason="expand")
            return None

        before = [PositionUpdate.of(block_id, original)]
        before.extend(PositionUpdate.of(i, self.model.rect_of(i)) for i in affected)
        shifted = {i: self.model.rect_of(i).y for i in affected}
        after = [PositionUpdate.of(i, trial.rect_of(i)) for i in [block_id, *affected]]
        self.model.apply_updates(after)

        self.state = ExpandState(block_id, original, target, ExpandMode.REFLOW, delta_h, shifted)
        self.feed.commit(before, after, "expand", block_id, record=False, complete=self.model.updates())
        self.feed.emit(
            EventType.BLOCK_EXPANDED,
            block_id,
            mode="reflow",
            rect=target,
            original=original,
            delta_h=delta_h,
            shifted=list(affected),
        )
        return self.state

    def collapse(self) -> Rect | None:
        """
        Collapse the expanded block.

        The block goes back to its original rectangle. Every block pushed by
        expand() moves up by the same delta, never above its own pre-expand
        top, and only if the spot is free.

        Returns:
            The restored rectangle, or None if nothing was expanded
        """
        state = self.state
        if state is None:
            return None
        self.state = None

        if state.mode == ExpandMode.OVERLAY:
            self.feed.emit(EventType.BLOCK_COLLAPSED, state.block_id, mode="overlay", rect=state.original_rect)
            return state.original_rect

        before: list[PositionUpdate] = []
        after: list[PositionUpdate] = []

        current = self.model.rect_of(state.block_id)
        if current is not None:
            restored = state.original_rect
            if not self.model.can_place_rect(state.block_id, restored):
                # Something moved into the original spot while expanded
                free = self.model.nearest_free(
                    state.block_id, restored.x, restored.y, restored.w, restored.h
                )
                logger.warning("collapse: original spot of %s taken, placing at %s", state.block_id, free)
                restored = free or current
            self.model.set_rect(state.block_id, restored)
            before.append(PositionUpdate.of(state.block_id, current))
            after.append(PositionUpdate.of(state.block_id, restored))

        present = [i for i in state.shifted if i in self.model]
        for other_id in sorted(present, key=lambda i: self.model.rect_of(i).y):
            rect = self.model.rect_of(other_id)
            new_y = max(rect.y - state.delta_h, state.shifted[other_id])
            if new_y == rect.y:
                continue
            pulled = rect.moved_to(rect.x, new_y)
            if not self.model.can_place_rect(other_id, pulled):
                logger.info("collapse: %s stays at %s, %s is occupied", other_id, rect, pulled)
                continue
            self.model.set_rect(other_id, pulled)
            before.append(PositionUpdate.of(other_id, rect))
            after.append(PositionUpdate.of(other_id, pulled))

        self.feed.commit(
            before, after, "collapse", state.block_id, record=False, complete=self.model.updates()
        )
        self.feed.emit(
            EventType.BLOCK_COLLAPSED,
            state.block_id,
            mode="reflow",
            rect=state.original_rect,
            restored=[u.block_id for u in after],
        )
        return state.original_rect

    def block_removed(self, block_id: str) -> None:
        """Hook for the host: collapse if the expanded block left the model."""
        if self.is_expanded(block_id):
            self.collapse()
