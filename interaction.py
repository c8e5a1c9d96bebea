"""
Interactive drag, resize and keyboard sessions.

State machine:

    IDLE --start_drag--> DRAGGING --end--> COMMITTED | REVERTED --> IDLE
    IDLE --start_resize--> RESIZING --end--> COMMITTED | REVERTED --> IDLE
    keyboard steps are a single synchronous transition from IDLE to IDLE

A pointer session whose block disappears from the model is discarded
(CANCELLED) without restoring anything, since there is nothing to restore.

Pointer samples are coalesced: the host calls pointer_move() as often as
input arrives and on_frame() once per animation frame; only the most recent
sample of each frame is processed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from grid_collision import within_bounds
from grid_config import CellMetrics, GridConfig
from grid_events import ChangeFeed, EventType
from grid_model import GridModel
from grid_types import Block, Constraints, InteractionMode, PositionUpdate, Rect, SessionState
from reflow import ReflowEngine, ReflowPreview

logger = logging.getLogger(__name__)

# Arrow key -> one-cell delta (dx, dy)
KEY_DELTAS: dict[str, tuple[int, int]] = {
    "ArrowLeft": (-1, 0),
    "ArrowRight": (1, 0),
    "ArrowUp": (0, -1),
    "ArrowDown": (0, 1),
}


@dataclass
class Session:
    """Transient state of one pointer interaction."""

    block_id: str
    mode: InteractionMode
    original_rect: Rect
    candidate_rect: Rect
    blocked: bool = False
    preview: ReflowPreview | None = None
    pending: tuple[float, float] | None = None  # Latest unprocessed pointer sample
    coalesced: int = 0  # Samples dropped in favour of a newer one
    frames: int = 0


@dataclass(frozen=True)
class InteractionOutcome:
    """How a pointer session ended."""

    state: SessionState
    block_id: str
    rect: Rect | None  # Final rectangle, None when cancelled
    reflowed: tuple[PositionUpdate, ...] = ()


class InteractionController:
    """Drives pointer and keyboard sessions for one GridModel."""

    def __init__(
        self,
        model: GridModel,
        config: GridConfig,
        feed: ChangeFeed,
        reflow_engine: ReflowEngine | None = None,
        container_width: float = 1200.0,
    ) -> None:
        self.model = model
        self.config = config
        self.feed = feed
        self.reflow = reflow_engine or ReflowEngine(
            config.reflow_strategy, config.max_reflow_iterations
        )
        self.container_width = container_width
        self.session: Session | None = None
        self.last_outcome: InteractionOutcome | None = None

    @property
    def state(self) -> SessionState:
        if self.session is None:
            return SessionState.IDLE
        if self.session.mode == InteractionMode.RESIZE:
            return SessionState.RESIZING
        return SessionState.DRAGGING

    @property
    def metrics(self) -> CellMetrics:
        return self.config.metrics(self.container_width, self.model.columns)

    @property
    def preview_layout(self) -> dict[str, Rect] | None:
        """Layout to draw during a live-preview drag, or None."""
        if self.session is None or self.session.preview is None:
            return None
        return self.session.preview.layout

    # =========================================================================
    # Pointer sessions
    # =========================================================================

    def start_drag(self, block_id: str) -> bool:
        return self._start(block_id, InteractionMode.MOVE)

    def start_resize(self, block_id: str) -> bool:
        return self._start(block_id, InteractionMode.RESIZE)

    def _start(self, block_id: str, mode: InteractionMode) -> bool:
        if self.session is not None:
            logger.debug("start %s on %s ignored: session already active", mode.value, block_id)
            return False
        rect = self.model.rect_of(block_id)
        if rect is None:
            return False

        self.session = Session(block_id, mode, rect, rect)
        event = EventType.DRAG_START if mode == InteractionMode.MOVE else EventType.RESIZE_START
        self.feed.emit(event, block_id, rect=rect)
        return True

    def pointer_move(self, local_x: float, local_y: float) -> None:
        """Queue a pointer sample; it replaces any sample not yet processed."""
        session = self.session
        if session is None:
            return
        if session.pending is not None:
            session.coalesced += 1
        session.pending = (local_x, local_y)

    def on_frame(self) -> Rect | None:
        """
        Process the latest pointer sample for this frame.

        Returns:
            The candidate rectangle derived from the sample, or None if there
            was nothing to process
        """
        session = self.session
        if session is None or session.pending is None:
            return None
        local_x, local_y = session.pending
        session.pending = None
        block = self.model.get(session.block_id)
        if block is None:
            self._discard(session)
            return None

        session.frames += 1
        candidate = self._candidate(session, block.constraints, local_x, local_y)
        if candidate == session.candidate_rect:
            return candidate
        session.candidate_rect = candidate

        if self.config.live_preview_active:
            self._update_preview(session, candidate)
        elif self.model.can_place_rect(session.block_id, candidate):
            self.model.set_rect(session.block_id, candidate)
            self._set_blocked(session, False)
        else:
            self._set_blocked(session, True)
        return candidate

    def drag_to(self, local_x: float, local_y: float) -> Rect | None:
        """Queue a sample and process it immediately (one sample, one frame)."""
        self.pointer_move(local_x, local_y)
        return self.on_frame()

    def end(self) -> InteractionOutcome | None:
        """
        Finish the pointer session: commit the candidate or revert.

        With reflow disabled the final candidate must pass can_place. With
        reflow enabled only the grid boundary is checked, and overlaps are
        resolved by the reflow engine keyed on the dropped block.
        """
        session = self.session
        if session is None:
            return None
        if session.pending is not None:
            self.on_frame()
        if self.session is None or not self._alive(session):
            return self.last_outcome

        self._clear_preview(session)
        block_id = session.block_id
        candidate = session.candidate_rect
        end_event = EventType.DRAG_END if session.mode == InteractionMode.MOVE else EventType.RESIZE_END

        if self.config.reflow_enabled:
            valid = within_bounds(candidate, self.model.columns)
        else:
            valid = self.model.can_place_rect(block_id, candidate)

        if not valid:
            logger.info("end: %s at %s rejected", block_id, candidate)
            return self._revert(session, end_event)

        self.model.set_rect(block_id, candidate)
        before = [PositionUpdate.of(block_id, session.original_rect)]
        after = [PositionUpdate.of(block_id, candidate)]
        reflowed: tuple[PositionUpdate, ...] = ()

        if self.config.reflow_enabled:
            result = self.reflow.commit(self.model, block_id)
            if result.changed:
                reflowed = result.changed
                before.extend(result.previous)
                after.extend(result.changed)
                self.feed.emit(
                    EventType.REFLOW_APPLIED,
                    block_id,
                    changed=list(result.changed),
                    iterations=result.iterations,
                    converged=result.converged,
                )

        if candidate != session.original_rect or reflowed:
            change_type = "drag" if session.mode == InteractionMode.MOVE else "resize"
            self.feed.commit(before, after, change_type, block_id, complete=self.model.updates())
        return self._finish(session, SessionState.COMMITTED, candidate, end_event, reflowed)

    def cancel(self) -> InteractionOutcome | None:
        """Abort the pointer session and put the block back where it started."""
        session = self.session
        if session is None:
            return None
        if not self._alive(session):
            return self.last_outcome
        self._clear_preview(session)
        end_event = EventType.DRAG_END if session.mode == InteractionMode.MOVE else EventType.RESIZE_END
        return self._revert(session, end_event)

    def block_removed(self, block_id: str) -> None:
        """Hook for the host: a block left the model."""
        session = self.session
        if session is not None and session.block_id == block_id:
            self._discard(session)

    def _revert(self, session: Session, end_event: EventType) -> InteractionOutcome:
        """
        Put the block back where the session started, if that spot is still free.

        Without live preview the block moves in the model while dragged, so
        other operations may have taken its original cells or narrowed the
        grid by the time the session ends. The block then stays at its last
        valid rectangle (or the closest free one), and that position is
        committed.
        """
        block_id = session.block_id
        original = session.original_rect
        current = self.model.rect_of(block_id) or original

        if self.model.can_place_rect(block_id, original):
            rect = original
        elif self.model.can_place_rect(block_id, current):
            rect = current
        else:
            rect = self.model.nearest_free(block_id, current.x, current.y, current.w, current.h) or current
        self.model.set_rect(block_id, rect)

        if rect != original:
            logger.warning("revert: original spot %s of %s no longer free, settled at %s", original, block_id, rect)
            change_type = "drag" if session.mode == InteractionMode.MOVE else "resize"
            self.feed.commit(
                [PositionUpdate.of(block_id, original)],
                [PositionUpdate.of(block_id, rect)],
                change_type,
                block_id,
                complete=self.model.updates(),
            )
        return self._finish(session, SessionState.REVERTED, rect, end_event)

    def _candidate(
        self, session: Session, constraints: Constraints, local_x: float, local_y: float
    ) -> Rect:
        grid_x, grid_y = self.metrics.to_cell(local_x, local_y)
        original = session.original_rect
        if session.mode == InteractionMode.MOVE:
            return original.moved_to(grid_x, grid_y)

        # Resize: the pointer cell becomes the bottom-right cell
        w = constraints.clamp_width(grid_x - original.x + 1)
        h = constraints.clamp_height(grid_y - original.y + 1)
        return original.resized_to(w, h)

    def _update_preview(self, session: Session, candidate: Rect) -> None:
        self._clear_preview(session)
        if not within_bounds(candidate, self.model.columns):
            self._set_blocked(session, True)
            return
        session.preview = self.reflow.preview(self.model, session.block_id, candidate)
        self._set_blocked(session, False)

    def _clear_preview(self, session: Session) -> None:
        if session.preview is not None:
            session.preview.reset()
            session.preview = None

    def _set_blocked(self, session: Session, blocked: bool) -> None:
        if blocked and not session.blocked:
            self.feed.emit(
                EventType.BLOCKED_PLACEMENT,
                session.block_id,
                candidate=session.candidate_rect,
            )
        session.blocked = blocked

    def _alive(self, session: Session) -> bool:
        if session.block_id in self.model:
            return True
        self._discard(session)
        return False

    def _discard(self, session: Session) -> None:
        logger.info("session on %s discarded: block no longer exists", session.block_id)
        self.session = None
        self.last_outcome = InteractionOutcome(SessionState.CANCELLED, session.block_id, None)
        self.feed.emit(EventType.SESSION_CANCELLED, session.block_id, mode=session.mode.value)

    def _finish(
        self,
        session: Session,
        state: SessionState,
        rect: Rect,
        end_event: EventType,
        reflowed: tuple[PositionUpdate, ...] = (),
    ) -> InteractionOutcome:
        self.session = None
        outcome = InteractionOutcome(state, session.block_id, rect, reflowed)
        self.last_outcome = outcome
        self.feed.emit(
            end_event,
            session.block_id,
            rect=rect,
            original=session.original_rect,
            outcome=state.value,
            coalesced=session.coalesced,
        )
        return outcome

    # =========================================================================
    # Keyboard
    # =========================================================================

    def key_press(self, block_id: str, key: str, shift: bool = False) -> bool:
        """
        Handle an arrow key on a focused block.

        Arrow keys move by one cell, Shift+arrow resizes by one cell.

        Returns:
            True if the block changed
        """
        delta = KEY_DELTAS.get(key)
        if delta is None:
            return False
        dx, dy = delta
        if shift:
            return self.keyboard_resize(block_id, dx, dy)
        return self.keyboard_move(block_id, dx, dy)

    def keyboard_move(self, block_id: str, dx: int, dy: int) -> bool:
        block = self._keyboard_block(block_id)
        if block is None:
            return False
        rect = block.rect
        target = rect.moved_to(max(0, rect.x + dx), max(0, rect.y + dy))
        return self._keyboard_commit(block_id, rect, target, EventType.KEYBOARD_MOVE)

    def keyboard_resize(self, block_id: str, dw: int, dh: int) -> bool:
        """Resize by a delta, clamped to the block's size constraints first."""
        block = self._keyboard_block(block_id)
        if block is None:
            return False
        rect = block.rect
        target = rect.resized_to(
            block.constraints.clamp_width(rect.w + dw),
            block.constraints.clamp_height(rect.h + dh),
        )
        return self._keyboard_commit(block_id, rect, target, EventType.KEYBOARD_RESIZE)

    def _keyboard_block(self, block_id: str) -> Block | None:
        if self.session is not None and self.session.block_id == block_id:
            return None
        return self.model.get(block_id)

    def _keyboard_commit(self, block_id: str, rect: Rect, target: Rect, event: EventType) -> bool:
        # No-ops and collisions are ignored without feedback
        if target == rect or not self.model.can_place_rect(block_id, target):
            logger.debug("%s of %s to %s ignored", event.value, block_id, target)
            return False
        self.model.set_rect(block_id, target)
        self.feed.commit(
            [PositionUpdate.of(block_id, rect)],
            [PositionUpdate.of(block_id, target)],
            event.value,
            block_id,
            complete=self.model.updates(),
        )
        self.feed.emit(event, block_id, rect=target, previous=rect)
        return True

    # =========================================================================
    # Snapping
    # =========================================================================

    def snap_to_cells(
        self,
        block_id: str,
        local_x: float,
        local_y: float,
        size: tuple[int, int] | None = None,
    ) -> Rect | None:
        """
        Snap a pixel position to a placeable rectangle.

        The position is rounded to the nearest cell. If the block cannot go
        there, the closest free position is searched instead.

        Args:
            block_id: Block being placed (may be a block not yet in the model)
            local_x: Container-local x in pixels
            local_y: Container-local y in pixels
            size: (w, h) to place; defaults to the block's size, or 1x1

        Returns:
            A rectangle that passes can_place, or None if nothing nearby fits
        """
        if size is None:
            rect = self.model.rect_of(block_id)
            size = (rect.w, rect.h) if rect else (1, 1)
        w, h = size
        x, y = self.metrics.nearest_cell(local_x, local_y)
        if self.model.can_place(block_id, x, y, w, h):
            return Rect(x, y, w, h)
        return self.model.nearest_free(block_id, x, y, w, h)
