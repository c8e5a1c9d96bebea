"""
Overlap resolution by bounded relaxation.

A change to one block (the "moved" block) may leave it overlapping others.
The push-down strategy repeatedly walks every ordered pair of overlapping
blocks and pushes one of them below the other until a full pass changes
nothing, or until the iteration cap is reached.

Two entry points share the same algorithm:
- preview: runs on a detached copy with a candidate rectangle applied, for
  live feedback during a drag. The model is never touched.
- commit: runs on the model itself and reports what moved, so the caller can
  persist the batch.

The result is a heuristic fixed point, not a minimal-displacement layout. No
block's y ever decreases, and for a fixed block order the outcome is
deterministic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from grid_collision import rects_overlap
from grid_config import ITERATION_CAP
from grid_model import GridModel
from grid_types import Layout, PositionUpdate, Rect, ReflowStrategy

logger = logging.getLogger(__name__)


# Strategy signature: (layout, moved_id, max_iterations) -> (passes, converged).
# Strategies mutate the layout dict they are given.
ReflowFn = Callable[[Layout, str | None, int], tuple[int, bool]]


@dataclass(frozen=True)
class ReflowResult:
    """Outcome of one reflow run."""

    layout: Layout
    changed: tuple[PositionUpdate, ...]
    previous: tuple[PositionUpdate, ...]
    iterations: int
    converged: bool

    @property
    def changed_ids(self) -> list[str]:
        return [u.block_id for u in self.changed]


@dataclass
class ReflowPreview:
    """
    Preview-only layout for an in-progress drag.

    `originals` records where every displaced block really is, so a renderer
    can put them back before drawing the next frame.
    """

    moved_id: str
    candidate: Rect
    layout: Layout
    originals: dict[str, Rect] = field(default_factory=dict)
    converged: bool = True

    @property
    def displaced(self) -> list[str]:
        return list(self.originals)

    def reset(self) -> dict[str, Rect]:
        """Return the positions to restore and forget the displacement."""
        restore = dict(self.originals)
        self.originals.clear()
        self.layout = {}
        return restore


# =============================================================================
# Strategies
# =============================================================================


def push_down(layout: Layout, moved_id: str | None, max_iterations: int) -> tuple[int, bool]:
    """
    Push-down relaxation.

    For every ordered pair (a, b) of distinct overlapping blocks, the block
    that is not the moved one is pushed so its top sits at the other's bottom
    edge. When neither is the moved block, b (the later one in the pair) is
    pushed.

    Args:
        layout: id -> Rect, mutated in place; its order is the iteration order
        moved_id: Block whose new position takes priority, or None
        max_iterations: Maximum number of full passes

    Returns:
        (passes run, whether the last pass found nothing to change)
    """
    ids = list(layout)
    passes = 0
    while passes < max_iterations:
        passes += 1
        changed = False
        for a in ids:
            for b in ids:
                if a == b or not rects_overlap(layout[a], layout[b]):
                    continue
                target, blocker = (a, b) if b == moved_id else (b, a)
                new_y = layout[blocker].bottom
                if layout[target].y < new_y:
                    layout[target] = layout[target].moved_to(layout[target].x, new_y)
                    changed = True
        if not changed:
            return passes, True
    return passes, False


STRATEGIES: dict[ReflowStrategy, ReflowFn] = {
    ReflowStrategy.PUSH_DOWN: push_down,
}


def reflow(
    layout: Layout,
    moved_id: str | None = None,
    strategy: ReflowStrategy = ReflowStrategy.PUSH_DOWN,
    max_iterations: int = ITERATION_CAP,
) -> ReflowResult:
    """
    Resolve overlaps in a detached layout.

    Args:
        layout: id -> Rect (not modified)
        moved_id: Block that just changed and must stay where it is
        strategy: Resolution strategy
        max_iterations: Pass cap; a layout still overlapping at the cap is
            returned partially resolved

    Returns:
        ReflowResult with the new layout and the blocks that moved
    """
    working = dict(layout)
    iterations, converged = STRATEGIES[strategy](working, moved_id, max_iterations)

    changed = []
    previous = []
    for block_id, rect in working.items():
        if layout[block_id] != rect:
            changed.append(PositionUpdate.of(block_id, rect))
            previous.append(PositionUpdate.of(block_id, layout[block_id]))

    if not converged:
        logger.warning(
            "reflow: no fixed point after %d passes (moved=%s), layout left partially resolved",
            iterations,
            moved_id,
        )
    return ReflowResult(working, tuple(changed), tuple(previous), iterations, converged)


class ReflowEngine:
    """Runs the configured strategy against a GridModel."""

    def __init__(
        self,
        strategy: ReflowStrategy = ReflowStrategy.PUSH_DOWN,
        max_iterations: int = ITERATION_CAP,
    ) -> None:
        self.strategy = strategy
        self.max_iterations = max_iterations

    def preview(self, model: GridModel, moved_id: str, candidate: Rect) -> ReflowPreview:
        """Reflow a copy of the model with `candidate` applied to the moved block."""
        layout = model.layout()
        layout[moved_id] = candidate
        result = reflow(layout, moved_id, self.strategy, self.max_iterations)
        originals = {u.block_id: u.rect for u in result.previous}
        return ReflowPreview(moved_id, candidate, result.layout, originals, result.converged)

    def commit(self, model: GridModel, moved_id: str | None) -> ReflowResult:
        """Reflow the model in place."""
        result = reflow(model.layout(), moved_id, self.strategy, self.max_iterations)
        for update in result.changed:
            model.set_rect(update.block_id, update.rect)
        if result.changed:
            logger.info(
                "reflow: %d block(s) pushed after %s in %d pass(es)",
                len(result.changed),
                moved_id,
                result.iterations,
            )
        return result
