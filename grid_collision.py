"""
Collision predicates for grid rectangles.

Everything here is pure: no model state, no logging.
"""

from __future__ import annotations

from typing import Iterable

from grid_types import Rect


def rects_overlap(a: Rect, b: Rect) -> bool:
    """
    Half-open rectangle intersection.

    Rectangles that only share an edge do not overlap.
    """
    return a.x < b.x + b.w and a.x + a.w > b.x and a.y < b.y + b.h and a.y + a.h > b.y


def within_bounds(rect: Rect, columns: int) -> bool:
    """True if the rectangle sits inside a grid of the given column count."""
    return rect.x >= 0 and rect.y >= 0 and rect.x + rect.w <= columns


def first_collision(
    rect: Rect,
    others: Iterable[tuple[str, Rect]],
    ignore_id: str | None = None,
) -> str | None:
    """
    Find the first rectangle that overlaps `rect`.

    Args:
        rect: Candidate rectangle
        others: (block_id, rect) pairs to test against, in scan order
        ignore_id: Block id to skip (usually the block being placed)

    Returns:
        The id of the first overlapping block, or None
    """
    for block_id, other in others:
        if block_id == ignore_id:
            continue
        if rects_overlap(rect, other):
            return block_id
    return None


def overlapping_pairs(layout: dict[str, Rect]) -> list[tuple[str, str]]:
    """All unordered overlapping pairs, in layout order."""
    ids = list(layout)
    pairs: list[tuple[str, str]] = []
    for i, a in enumerate(ids):
        for b in ids[i + 1 :]:
            if rects_overlap(layout[a], layout[b]):
                pairs.append((a, b))
    return pairs
