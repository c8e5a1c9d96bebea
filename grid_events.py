"""
Event records, collaborator interfaces and the commit path.

The engine talks to the outside world through two injected collaborators:
an event sink (one-way notifications) and a persistence layer (position
batches). Both are supplied at construction time; the engine never reaches
for globals.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterator, Protocol, Sequence

from grid_types import PositionUpdate

if TYPE_CHECKING:
    from layout_history import LayoutHistory

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Notifications produced by the engine."""

    DRAG_START = "drag_start"
    DRAG_END = "drag_end"
    RESIZE_START = "resize_start"
    RESIZE_END = "resize_end"
    KEYBOARD_MOVE = "keyboard_move"
    KEYBOARD_RESIZE = "keyboard_resize"
    REFLOW_APPLIED = "reflow_applied"
    BLOCK_EXPANDED = "block_expanded"
    BLOCK_COLLAPSED = "block_collapsed"
    COLUMNS_CHANGED = "columns_changed"
    BLOCKED_PLACEMENT = "blocked_placement"
    SESSION_CANCELLED = "session_cancelled"
    LAYOUT_CHANGED = "layout_changed"
    LAYOUT_UNDONE = "layout_undone"
    LAYOUT_REDONE = "layout_redone"
    PERSISTENCE_FAILED = "persistence_failed"


@dataclass(frozen=True)
class GridEvent:
    """A single engine notification."""

    type: EventType
    block_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


EventSink = Callable[[GridEvent], None]


def null_sink(event: GridEvent) -> None:
    """Discard every event."""


class RecordingSink:
    """Event sink that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[GridEvent] = []

    def __call__(self, event: GridEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> list[GridEvent]:
        return [e for e in self.events if e.type == event_type]

    def types(self) -> list[EventType]:
        return [e.type for e in self.events]

    def clear(self) -> None:
        self.events.clear()


# =============================================================================
# Persistence
# =============================================================================


class PersistenceError(RuntimeError):
    """Raised by a persistence collaborator when a batch cannot be stored."""


class Persistence(Protocol):
    """Storage collaborator for committed positions."""

    def get_current_layout(self) -> dict[str, Any]: ...

    def update_positions(self, updates: Sequence[PositionUpdate]) -> None: ...

    def transaction(self) -> Any: ...


class NullPersistence:
    """Accepts every batch and stores nothing."""

    def get_current_layout(self) -> dict[str, Any]:
        return {"blocks": []}

    def update_positions(self, updates: Sequence[PositionUpdate]) -> None:
        pass

    @contextmanager
    def transaction(self) -> Iterator[None]:
        yield


class InMemoryLayoutStore:
    """
    Layouts kept in memory, one per key.

    Keys namespace independent grids. A nested grid hosted by block "chart"
    of grid "main" lives under "main/chart" and never shares state with its
    parent.
    """

    def __init__(self) -> None:
        self._layouts: dict[str, dict[str, PositionUpdate]] = {}
        self.batches: list[tuple[str, list[PositionUpdate]]] = []
        self.fail_writes = False

    def scope(self, key: str) -> ScopedLayout:
        return ScopedLayout(self, key)

    def seed(self, key: str, updates: Sequence[PositionUpdate]) -> None:
        self._layouts[key] = {u.block_id: u for u in updates}

    def keys(self) -> list[str]:
        return sorted(self._layouts)

    def positions(self, key: str) -> dict[str, PositionUpdate]:
        return dict(self._layouts.get(key, {}))

    def _write(self, key: str, updates: Sequence[PositionUpdate]) -> None:
        if self.fail_writes:
            raise PersistenceError(f"Write rejected for layout '{key}'")
        stored = self._layouts.setdefault(key, {})
        for update in updates:
            stored[update.block_id] = update
        self.batches.append((key, list(updates)))


class ScopedLayout:
    """Persistence bound to one key of an InMemoryLayoutStore."""

    def __init__(self, store: InMemoryLayoutStore, key: str) -> None:
        self.store = store
        self.key = key
        self._pending: list[PositionUpdate] | None = None

    def child(self, block_id: str) -> ScopedLayout:
        """Scope for a grid nested inside one of this grid's blocks."""
        return ScopedLayout(self.store, f"{self.key}/{block_id}")

    def get_current_layout(self) -> dict[str, Any]:
        return {
            "blocks": [
                {
                    "block_id": u.block_id,
                    "position": {"x": u.x, "y": u.y, "w": u.w, "h": u.h},
                }
                for u in self.store.positions(self.key).values()
            ]
        }

    def update_positions(self, updates: Sequence[PositionUpdate]) -> None:
        if self._pending is not None:
            self._pending.extend(updates)
        else:
            self.store._write(self.key, updates)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Buffer writes and store them as one batch on success."""
        outer = self._pending is not None
        if outer:
            yield
            return
        self._pending = []
        try:
            yield
            pending = self._pending
            self._pending = None
            if pending:
                self.store._write(self.key, pending)
        finally:
            self._pending = None


# =============================================================================
# Commit path
# =============================================================================


class ChangeFeed:
    """
    Single exit for committed geometry.

    Persists complete batches inside a transaction, announces them on the
    event sink and optionally records them for undo. Persistence is
    fire-and-forget: a failure is reported, never retried.
    """

    def __init__(
        self,
        persistence: Persistence | None = None,
        sink: EventSink | None = None,
        history: LayoutHistory | None = None,
    ) -> None:
        self.persistence: Persistence = persistence or NullPersistence()
        self.sink: EventSink = sink or null_sink
        self.history = history

    def emit(self, event_type: EventType, block_id: str | None = None, **payload: Any) -> None:
        self.sink(GridEvent(event_type, block_id, payload))

    def commit(
        self,
        before: Sequence[PositionUpdate],
        after: Sequence[PositionUpdate],
        change_type: str,
        block_id: str | None = None,
        record: bool = True,
        complete: Sequence[PositionUpdate] | None = None,
    ) -> bool:
        """
        Persist a committed batch.

        The persistence layer is handed the complete position list so a
        failed batch can be retried as is. Events and history only carry the
        blocks that changed.

        Args:
            before: Positions of the changed blocks prior to the change
            after: Positions of the changed blocks after the change
            change_type: Origin of the change ("drag", "keyboard_move", ...)
            block_id: Block that triggered the change, if any
            record: Whether the change may be undone
            complete: Every block of the grid; defaults to `after`

        Returns:
            True if the persistence layer accepted the batch
        """
        batch = list(complete) if complete is not None else list(after)
        if not batch:
            return True

        if record and after and self.history is not None:
            self.history.record(before, after, change_type)

        try:
            with self.persistence.transaction():
                self.persistence.update_positions(batch)
        except PersistenceError as exc:
            logger.warning("commit: persisting %d positions failed: %s", len(batch), exc)
            self.emit(
                EventType.PERSISTENCE_FAILED,
                block_id,
                change_type=change_type,
                updates=batch,
                error=str(exc),
            )
            return False

        self.emit(
            EventType.LAYOUT_CHANGED,
            block_id,
            change_type=change_type,
            updates=list(after),
        )
        return True
