"""Tests for reflow module."""

from grid_types import Rect
from layout_parser import format_layout, parse_layout
from reflow import ReflowEngine, push_down, reflow


class TestPushDown:
    """Tests for the push-down strategy."""

    def test_moved_block_pushes_other_down(self) -> None:
        """A dropped onto B: A keeps its spot, B goes below A."""
        layout = {"A": Rect(1, 0, 2, 2), "B": Rect(2, 0, 2, 2)}
        result = reflow(layout, "A")

        assert result.layout == {"A": Rect(1, 0, 2, 2), "B": Rect(2, 2, 2, 2)}
        assert result.changed_ids == ["B"]
        assert result.previous[0].rect == Rect(2, 0, 2, 2)
        assert result.converged

    def test_moved_block_never_moves(self) -> None:
        """The moved block holds its position even when it comes later in order."""
        layout = {"B": Rect(0, 0, 2, 2), "A": Rect(0, 1, 2, 2)}
        result = reflow(layout, "A")
        assert result.layout["A"] == Rect(0, 1, 2, 2)
        assert result.layout["B"] == Rect(0, 3, 2, 2)

    def test_chain_reaction(self) -> None:
        """A pushed block pushes the next one in turn."""
        model = parse_layout("A_|B_|C_")
        layout = model.layout()
        layout["A"] = Rect(0, 0, 1, 2)
        result = reflow(layout, "A")
        assert result.layout == {"A": Rect(0, 0, 1, 2), "B": Rect(0, 2, 1, 1), "C": Rect(0, 3, 1, 1)}

    def test_tie_break_pushes_later_block(self) -> None:
        """Without a moved block, the later block of an overlapping pair is pushed."""
        layout = {"A": Rect(0, 0, 2, 2), "B": Rect(1, 1, 2, 2)}
        result = reflow(layout)
        assert result.layout["A"] == Rect(0, 0, 2, 2)
        assert result.layout["B"] == Rect(1, 2, 2, 2)

    def test_input_layout_not_modified(self) -> None:
        """reflow() works on a copy."""
        layout = {"A": Rect(0, 0, 2, 2), "B": Rect(0, 0, 2, 2)}
        reflow(layout, "A")
        assert layout["B"] == Rect(0, 0, 2, 2)

    def test_no_overlap_no_change(self) -> None:
        """An overlap-free layout converges in a single pass."""
        result = reflow(parse_layout("AB|CC").layout())
        assert result.changed == ()
        assert result.iterations == 1
        assert result.converged

    def test_y_never_decreases(self) -> None:
        """Blocks only ever move down."""
        layout = {
            "A": Rect(0, 0, 4, 3),
            "B": Rect(1, 1, 1, 1),
            "C": Rect(0, 2, 2, 2),
            "D": Rect(2, 5, 2, 1),
        }
        result = reflow(layout, "A")
        for block_id, rect in result.layout.items():
            assert rect.y >= layout[block_id].y
            assert rect.x == layout[block_id].x

    def test_result_is_overlap_free_and_idempotent(self) -> None:
        """A converged layout is a fixed point of another reflow."""
        layout = {
            "A": Rect(0, 0, 4, 3),
            "B": Rect(1, 1, 1, 1),
            "C": Rect(0, 2, 2, 2),
            "D": Rect(2, 4, 2, 1),
        }
        first = reflow(layout, "A")
        assert first.converged
        second = reflow(first.layout, "A")
        assert second.changed == ()
        assert second.layout == first.layout

    def test_deterministic(self) -> None:
        """Same input and order, same output."""
        layout = {"A": Rect(0, 0, 3, 2), "B": Rect(1, 0, 2, 2), "C": Rect(0, 1, 1, 2)}
        assert reflow(layout, "A").layout == reflow(dict(layout), "A").layout

    def test_iteration_cap(self) -> None:
        """A cap too small to finish leaves the result marked as not converged."""
        # The first pass moves blocks, so only a second, clean pass could
        # confirm the fixed point
        layout = {"A": Rect(0, 0, 1, 2), "C": Rect(0, 1, 1, 1), "B": Rect(0, 0, 1, 1)}
        working = dict(layout)
        passes, converged = push_down(working, "A", 1)

        assert passes == 1
        assert not converged

        result = reflow(layout, "A", max_iterations=100)
        assert result.converged
        assert result.layout["A"] == Rect(0, 0, 1, 2)
        assert {result.layout["B"].y, result.layout["C"].y} == {2, 3}


class TestReflowEngine:
    """Tests for preview and commit against a model."""

    def test_preview_leaves_model_untouched(self) -> None:
        """Previewing a candidate computes displacement without mutating the model."""
        model = parse_layout("AABB|AABB")
        engine = ReflowEngine()
        preview = engine.preview(model, "A", Rect(1, 0, 2, 2))

        assert preview.layout["A"] == Rect(1, 0, 2, 2)
        assert preview.layout["B"] == Rect(2, 2, 2, 2)
        assert preview.displaced == ["B"]
        assert model.rect_of("A") == Rect(0, 0, 2, 2)
        assert model.rect_of("B") == Rect(2, 0, 2, 2)

    def test_preview_reset(self) -> None:
        """reset() hands back the true positions and forgets them."""
        model = parse_layout("AABB|AABB")
        preview = ReflowEngine().preview(model, "A", Rect(1, 0, 2, 2))
        assert preview.reset() == {"B": Rect(2, 0, 2, 2)}
        assert preview.displaced == []

    def test_commit_mutates_model(self) -> None:
        """commit() writes the resolved layout back into the model."""
        model = parse_layout("AABB|AABB")
        model.set_rect("A", Rect(1, 0, 2, 2))
        result = ReflowEngine().commit(model, "A")

        assert result.changed_ids == ["B"]
        assert format_layout(model) == "_AA_|_AA_|__BB|__BB"
        assert model.is_consistent()
