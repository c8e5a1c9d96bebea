"""Tests for grid_engine module."""

import pytest

from grid_config import GridConfig
from grid_engine import GridEngine
from grid_events import EventType, InMemoryLayoutStore, RecordingSink
from grid_types import Constraints, Rect, SessionState
from layout_parser import format_layout, parse_layout


def seeded_store(definition: str, key: str = "main") -> InMemoryLayoutStore:
    store = InMemoryLayoutStore()
    store.seed(key, parse_layout(definition).updates())
    return store


class TestGridEngine:
    """Tests for the single-grid facade."""

    def test_from_persistence(self) -> None:
        """The model is loaded from the persisted layout."""
        store = seeded_store("AAB_|AAB_")
        engine = GridEngine.from_persistence(store.scope("main"), GridConfig(columns=4))
        assert format_layout(engine.model) == "AAB_|AAB_"
        assert engine.model.columns == 4

    def test_drag_persists_complete_batch(self) -> None:
        """A committed drag with reflow stores the dropped and the pushed block."""
        store = seeded_store("AABB|AABB")
        engine = GridEngine.from_persistence(
            store.scope("main"), GridConfig(columns=4, reflow_enabled=True), container_width=400
        )
        engine.interaction.start_drag("A")
        engine.interaction.drag_to(100, 0)
        engine.interaction.end()

        assert len(store.batches) == 1
        assert [u.block_id for u in store.batches[0][1]] == ["A", "B"]
        stored = store.positions("main")
        assert stored["A"].rect == Rect(1, 0, 2, 2)
        assert stored["B"].rect == Rect(2, 2, 2, 2)

    def test_keyboard_move_persists_every_block(self) -> None:
        """The stored batch covers untouched blocks too."""
        store = seeded_store("AB__")
        engine = GridEngine.from_persistence(store.scope("main"), GridConfig(columns=4))
        assert engine.interaction.key_press("B", "ArrowRight")

        key, batch = store.batches[-1]
        assert key == "main"
        assert {u.block_id for u in batch} == {"A", "B"}
        assert store.positions("main")["B"].rect == Rect(2, 0, 1, 1)

    def test_revert_after_columns_shrink(self) -> None:
        """A drag reverted after a column change stays inside the narrower grid."""
        store = seeded_store("____AA__")
        engine = GridEngine.from_persistence(
            store.scope("main"), GridConfig(columns=8), container_width=800
        )
        engine.interaction.start_drag("A")
        engine.interaction.drag_to(0, 0)
        assert engine.rect_of("A") == Rect(0, 0, 2, 1)

        engine.set_columns(4)
        engine.interaction.drag_to(10_000, 0)
        outcome = engine.interaction.end()

        assert outcome.state == SessionState.REVERTED
        assert engine.rect_of("A") == Rect(0, 0, 2, 1)
        assert engine.model.is_consistent()
        assert store.positions("main")["A"].rect == Rect(0, 0, 2, 1)

    def test_undo_drag_restores_reflowed_layout(self) -> None:
        """Undo puts back both the dropped block and the blocks it pushed."""
        engine = GridEngine(
            parse_layout("AABB|AABB"), GridConfig(columns=4, reflow_enabled=True), container_width=400
        )
        engine.interaction.start_drag("A")
        engine.interaction.drag_to(100, 0)
        engine.interaction.end()

        assert engine.undo()
        assert format_layout(engine.model) == "AABB|AABB"
        assert engine.redo()
        assert engine.rect_of("B") == Rect(2, 2, 2, 2)

    def test_add_block(self) -> None:
        """Blocks are added only where they fit, with default constraints."""
        config = GridConfig(columns=4, default_constraints=Constraints(max_h=6))
        engine = GridEngine(parse_layout("AA__"), config)
        assert engine.add_block("B", Rect(2, 0, 2, 1))
        assert not engine.add_block("C", Rect(1, 0, 2, 1))
        assert not engine.add_block("B", Rect(0, 3, 1, 1))
        assert engine.model.get("B").constraints == config.default_constraints

    def test_remove_block_cancels_session(self) -> None:
        """Removing the dragged block cancels the session."""
        sink = RecordingSink()
        engine = GridEngine(parse_layout("AABB"), sink=sink)
        engine.interaction.start_drag("A")

        assert engine.remove_block("A")
        assert engine.interaction.state == SessionState.IDLE
        assert engine.interaction.last_outcome.state == SessionState.CANCELLED
        assert EventType.SESSION_CANCELLED in sink.types()
        assert not engine.remove_block("A")

    def test_remove_expanded_block(self) -> None:
        """Removing the expanded block collapses the pushed blocks back."""
        engine = GridEngine(parse_layout("XXXX____|YYYY____"), GridConfig(columns=8))
        assert engine.toggle_expand("X")
        engine.remove_block("X")
        assert engine.expander.state is None
        assert engine.rect_of("Y") == Rect(0, 1, 4, 1)

    def test_set_columns_collapses_first(self) -> None:
        """A column change collapses any expanded block before clamping."""
        engine = GridEngine(parse_layout("XXXX____|YYYY____"), GridConfig(columns=8))
        engine.toggle_expand("X")
        change = engine.set_columns(6)
        assert engine.expander.state is None
        assert change.clamped_count == 0
        assert format_layout(engine.model) == "XXXX__|YYYY__"

    def test_reflow_now(self) -> None:
        """Overlaps already in the model are resolved and persisted."""
        store = InMemoryLayoutStore()
        store.seed("main", parse_layout("AA__").updates())
        engine = GridEngine.from_persistence(store.scope("main"), GridConfig(columns=4))
        engine.model.set_rect("A", Rect(0, 0, 2, 2))
        engine.add_block("B", Rect(0, 2, 2, 1))
        engine.model.set_rect("B", Rect(1, 1, 2, 1))

        result = engine.reflow_now("A")
        assert result.changed_ids == ["B"]
        assert engine.rect_of("B") == Rect(1, 2, 2, 1)
        assert store.positions("main")["B"].rect == Rect(1, 2, 2, 1)


class TestNestedGrids:
    """Tests for grids hosted inside a block."""

    def test_nested_engine_is_independent(self) -> None:
        """A nested grid has its own model, columns and persistence key."""
        store = seeded_store("AAB_|CCC_")
        store.seed("main/C", parse_layout("xy|z_").updates())
        main_scope = store.scope("main")

        parent = GridEngine.from_persistence(main_scope, GridConfig(columns=4))
        child = parent.nested("C", main_scope.child("C"), GridConfig(columns=2))

        assert child.model is not parent.model
        assert child.model.columns == 2
        assert child.model.ids == ["x", "y", "z"]

        assert child.interaction.keyboard_move("y", 0, 1)
        assert store.batches == [("main/C", child.model.updates())]
        assert parent.rect_of("C") == Rect(0, 1, 3, 1)
        assert "y" not in parent.model

    def test_nested_requires_host_block(self) -> None:
        """Only an existing block can host a nested grid."""
        store = seeded_store("AA")
        parent = GridEngine.from_persistence(store.scope("main"), GridConfig(columns=2))
        with pytest.raises(KeyError):
            parent.nested("Q", store.scope("main").child("Q"))
