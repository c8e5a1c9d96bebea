"""
In-memory block set for one grid instance.

The model owns block geometry. Blocks are added and removed by whoever hosts
the grid; the engine components only move and resize blocks that already
exist. Iteration order is insertion order, which is also the order the reflow
engine uses to break ties.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Iterable, Iterator, Mapping

from grid_collision import first_collision, overlapping_pairs, within_bounds
from grid_types import Block, Constraints, Layout, PositionUpdate, Rect

logger = logging.getLogger(__name__)


class GridModel:
    """Blocks of a single grid plus its column count."""

    def __init__(self, columns: int, blocks: Iterable[Block] = ()) -> None:
        if columns < 1:
            raise ValueError(f"Grid needs at least one column, got {columns}")
        self.columns = columns
        self._blocks: dict[str, Block] = {}
        for block in blocks:
            self.add_block(block)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_layout(
        cls,
        layout: Mapping[str, Any],
        columns: int,
        default_constraints: Constraints = Constraints(),
    ) -> GridModel:
        """
        Build a model from a persistence layout snapshot.

        Args:
            layout: {"blocks": [{"block_id", "position": {x, y, w, h}, "constraints"?}]}
            columns: Column count of the grid
            default_constraints: Constraints for blocks that carry none

        Returns:
            A new GridModel holding every block of the snapshot
        """
        model = cls(columns)
        for entry in layout.get("blocks", []):
            pos = entry["position"]
            rect = Rect(int(pos["x"]), int(pos["y"]), int(pos["w"]), int(pos["h"]))
            raw = entry.get("constraints")
            constraints = replace(default_constraints, **raw) if raw else default_constraints
            model.add_block(Block(entry["block_id"], rect, constraints))
        return model

    def add_block(self, block: Block) -> None:
        if block.id in self._blocks:
            raise ValueError(f"Duplicate block id '{block.id}'")
        if block.rect.w < 1 or block.rect.h < 1:
            raise ValueError(
                f"Block '{block.id}' has invalid size {block.rect.w}x{block.rect.h}\n"
                f"  Width and height must both be at least 1"
            )
        self._blocks[block.id] = block

    def remove_block(self, block_id: str) -> Block | None:
        return self._blocks.pop(block_id, None)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._blocks

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[Block]:
        return iter(list(self._blocks.values()))

    @property
    def ids(self) -> list[str]:
        return list(self._blocks)

    def get(self, block_id: str) -> Block | None:
        return self._blocks.get(block_id)

    def rect_of(self, block_id: str) -> Rect | None:
        block = self._blocks.get(block_id)
        return block.rect if block else None

    def layout(self) -> Layout:
        """Detached copy of every block rectangle."""
        return {block_id: block.rect for block_id, block in self._blocks.items()}

    def updates(self) -> list[PositionUpdate]:
        """The complete position list, as handed to persistence."""
        return [PositionUpdate.of(b.id, b.rect) for b in self._blocks.values()]

    def rows(self) -> int:
        """Number of rows occupied, i.e. the lowest block bottom edge."""
        return max((b.rect.bottom for b in self._blocks.values()), default=0)

    def can_place(self, block_id: str, x: int, y: int, w: int, h: int) -> bool:
        """
        Check whether a block may occupy the given rectangle.

        Fails on the boundary (x < 0, y < 0, x + w > columns) first, then on
        the first other block that overlaps. The block itself is ignored, so a
        block can always be re-placed where it already is.
        """
        rect = Rect(x, y, w, h)
        if not within_bounds(rect, self.columns):
            return False
        others = ((b.id, b.rect) for b in self._blocks.values())
        return first_collision(rect, others, ignore_id=block_id) is None

    def can_place_rect(self, block_id: str, rect: Rect) -> bool:
        return self.can_place(block_id, rect.x, rect.y, rect.w, rect.h)

    def overlapping_pairs(self) -> list[tuple[str, str]]:
        return overlapping_pairs(self.layout())

    def is_consistent(self) -> bool:
        """True if no blocks overlap and every block is inside the grid."""
        if any(not within_bounds(b.rect, self.columns) for b in self._blocks.values()):
            return False
        return not self.overlapping_pairs()

    def nearest_free(
        self,
        block_id: str,
        x: int,
        y: int,
        w: int,
        h: int,
        max_radius: int = 24,
    ) -> Rect | None:
        """
        Find the placeable position closest to (x, y) for a w x h rectangle.

        Searches square rings of growing radius around the requested cell;
        within a ring, candidates are tried row by row, left to right.

        Returns:
            The first placeable rectangle found, or None within max_radius
        """
        for radius in range(max_radius + 1):
            for cy in range(y - radius, y + radius + 1):
                for cx in range(x - radius, x + radius + 1):
                    # Only the ring itself, inner cells were tried already
                    if max(abs(cx - x), abs(cy - y)) != radius:
                        continue
                    if self.can_place(block_id, cx, cy, w, h):
                        return Rect(cx, cy, w, h)
        return None

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def set_rect(self, block_id: str, rect: Rect) -> bool:
        """Write a block rectangle without validation. False if the block is gone."""
        block = self._blocks.get(block_id)
        if block is None:
            return False
        if block.rect != rect:
            self._blocks[block_id] = replace(block, rect=rect)
        return True

    def apply_updates(self, updates: Iterable[PositionUpdate]) -> int:
        """
        Write a batch of position updates.

        Updates for blocks that no longer exist are skipped.

        Returns:
            Number of updates applied
        """
        applied = 0
        for update in updates:
            if self.set_rect(update.block_id, update.rect):
                applied += 1
            else:
                logger.debug("apply_updates: skipping missing block %s", update.block_id)
        return applied

    def copy(self) -> GridModel:
        clone = GridModel(self.columns)
        clone._blocks = dict(self._blocks)
        return clone

    def __repr__(self) -> str:
        inner = ", ".join(f"{b.id}{b.rect}" for b in self._blocks.values())
        return f"GridModel(columns={self.columns}, [{inner}])"
