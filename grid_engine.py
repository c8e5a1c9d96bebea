"""
One grid instance with everything that drives it.

GridEngine wires a GridModel to the interaction, reflow, expand and column
components, the injected persistence layer and event sink, and the undo
history. Nested grids (a block hosting a grid of its own) get an independent
engine whose persistence is scoped under the parent's key; the two never
share model state.
"""

from __future__ import annotations

import logging

from column_resizer import ColumnChange, ColumnResizer
from expand import ExpandCollapseController
from grid_config import GridConfig
from grid_events import ChangeFeed, EventSink, NullPersistence, Persistence
from grid_model import GridModel
from grid_types import Block, Rect
from interaction import InteractionController
from layout_history import LayoutHistory
from reflow import ReflowEngine, ReflowResult

logger = logging.getLogger(__name__)


class GridEngine:
    """Facade over the layout engine for a single grid."""

    def __init__(
        self,
        model: GridModel,
        config: GridConfig | None = None,
        persistence: Persistence | None = None,
        sink: EventSink | None = None,
        container_width: float = 1200.0,
    ) -> None:
        self.config = config or GridConfig(columns=model.columns)
        self.model = model
        self.persistence: Persistence = persistence or NullPersistence()
        self.history = LayoutHistory()
        self.feed = ChangeFeed(self.persistence, sink, self.history)
        self.reflow = ReflowEngine(self.config.reflow_strategy, self.config.max_reflow_iterations)
        self.interaction = InteractionController(
            model, self.config, self.feed, self.reflow, container_width
        )
        self.expander = ExpandCollapseController(model, self.config, self.feed)
        self.column_resizer = ColumnResizer(model, self.feed)

    @classmethod
    def from_persistence(
        cls,
        persistence: Persistence,
        config: GridConfig | None = None,
        sink: EventSink | None = None,
        container_width: float = 1200.0,
    ) -> GridEngine:
        """Load the current layout from persistence and build an engine around it."""
        config = config or GridConfig()
        model = GridModel.from_layout(
            persistence.get_current_layout(), config.columns, config.default_constraints
        )
        if not model.is_consistent():
            logger.warning("from_persistence: stored layout has overlaps or out-of-bounds blocks")
        return cls(model, config, persistence, sink, container_width)

    def nested(
        self,
        block_id: str,
        persistence: Persistence,
        config: GridConfig | None = None,
        sink: EventSink | None = None,
    ) -> GridEngine:
        """
        Engine for a grid hosted inside one of this grid's blocks.

        The child shares nothing with this engine; it only needs its own
        persistence scope (for ScopedLayout, `parent_scope.child(block_id)`).
        """
        if block_id not in self.model:
            raise KeyError(f"No block '{block_id}' to host a nested grid")
        return GridEngine.from_persistence(persistence, config or self.config, sink)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def can_place(self, block_id: str, x: int, y: int, w: int, h: int) -> bool:
        return self.model.can_place(block_id, x, y, w, h)

    def rect_of(self, block_id: str) -> Rect | None:
        return self.model.rect_of(block_id)

    # -------------------------------------------------------------------------
    # Host-driven block membership
    # -------------------------------------------------------------------------

    def add_block(self, block_id: str, rect: Rect) -> bool:
        """
        Add a block with the default constraints.

        Returns:
            False (and adds nothing) if the rectangle cannot be placed
        """
        if block_id in self.model or not self.model.can_place_rect(block_id, rect):
            return False
        self.model.add_block(Block(block_id, rect, self.config.default_constraints))
        return True

    def remove_block(self, block_id: str) -> bool:
        if self.model.remove_block(block_id) is None:
            return False
        self.interaction.block_removed(block_id)
        self.expander.block_removed(block_id)
        return True

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def reflow_now(self, moved_id: str | None = None) -> ReflowResult:
        """Resolve any overlaps currently in the model and persist the result."""
        result = self.reflow.commit(self.model, moved_id)
        if result.changed:
            self.feed.commit(
                result.previous, result.changed, "reflow", moved_id, complete=self.model.updates()
            )
        return result

    def toggle_expand(self, block_id: str) -> bool:
        return self.expander.toggle(block_id)

    def set_columns(self, columns: int) -> ColumnChange:
        # An expanded snapshot would be stale after clamping
        if self.expander.state is not None:
            self.expander.collapse()
        return self.column_resizer.set_columns(columns)

    def undo(self) -> bool:
        return self.history.undo(self.model, self.feed)

    def redo(self) -> bool:
        return self.history.redo(self.model, self.feed)
