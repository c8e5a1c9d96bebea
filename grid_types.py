"""
Shared type definitions for the dashgrid layout engine.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class InteractionMode(Enum):
    """Kind of interactive session driving a block."""

    MOVE = "move"
    RESIZE = "resize"
    KEYBOARD = "keyboard"


class SessionState(Enum):
    """State of the interaction state machine."""

    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"
    COMMITTED = "committed"
    REVERTED = "reverted"
    CANCELLED = "cancelled"  # Block vanished mid-session, nothing restored


class ExpandMode(Enum):
    """How an expanded block claims space."""

    OVERLAY = "overlay"  # Drawn over the grid, geometry untouched
    REFLOW = "reflow"  # Written into the grid, blocks below pushed down


class ReflowStrategy(Enum):
    """Strategy used to resolve overlaps after a change."""

    PUSH_DOWN = "push_down"


# =============================================================================
# Geometry
# =============================================================================


@dataclass(frozen=True)
class Rect:
    """An axis-aligned rectangle in integer grid cells."""

    x: int
    y: int
    w: int
    h: int

    @property
    def right(self) -> int:
        return self.x + self.w

    @property
    def bottom(self) -> int:
        return self.y + self.h

    def moved_to(self, x: int, y: int) -> Rect:
        return replace(self, x=x, y=y)

    def resized_to(self, w: int, h: int) -> Rect:
        return replace(self, w=w, h=h)

    def spans_columns_of(self, other: Rect) -> bool:
        """True if the column ranges of both rectangles intersect."""
        return self.x < other.right and self.right > other.x

    def __str__(self) -> str:
        return f"({self.x},{self.y},{self.w},{self.h})"


@dataclass(frozen=True)
class Constraints:
    """Size limits for a block, in grid cells."""

    min_w: int = 1
    min_h: int = 1
    max_w: int = 24
    max_h: int = 1000

    def clamp_width(self, w: int) -> int:
        return max(1, self.min_w, min(w, self.max_w))

    def clamp_height(self, h: int) -> int:
        return max(1, self.min_h, min(h, self.max_h))


@dataclass(frozen=True)
class Block:
    """A positioned rectangle owned by a GridModel."""

    id: str
    rect: Rect
    constraints: Constraints = Constraints()


@dataclass(frozen=True)
class PositionUpdate:
    """One entry of a position batch handed to the persistence layer."""

    block_id: str
    x: int
    y: int
    w: int
    h: int

    @classmethod
    def of(cls, block_id: str, rect: Rect) -> PositionUpdate:
        return cls(block_id, rect.x, rect.y, rect.w, rect.h)

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.w, self.h)


Layout = dict[str, Rect]
"""Detached id -> Rect view of a grid, in model iteration order."""
