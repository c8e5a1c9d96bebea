"""Tests for column_resizer module."""

import pytest

from column_resizer import ColumnResizer, clamp_to_columns
from grid_events import ChangeFeed, EventType, RecordingSink
from grid_types import Rect
from layout_parser import parse_layout


class TestClampToColumns:
    """Tests for fitting one rectangle into a narrower grid."""

    def test_shift_left_keeps_width(self) -> None:
        """A block hanging over the new edge is shifted left."""
        assert clamp_to_columns(Rect(4, 0, 4, 2), 6) == Rect(2, 0, 4, 2)

    def test_too_wide_is_narrowed(self) -> None:
        """A block wider than the grid starts at 0 and spans every column."""
        assert clamp_to_columns(Rect(1, 3, 8, 2), 6) == Rect(0, 3, 6, 2)

    def test_fitting_block_unchanged(self) -> None:
        """Blocks already inside the grid are left alone."""
        assert clamp_to_columns(Rect(1, 0, 2, 2), 6) == Rect(1, 0, 2, 2)


class TestColumnResizer:
    """Tests for column count changes on a model."""

    def test_narrow_clamps_block(self) -> None:
        """8 -> 6 columns moves the right-hand block to x=2 and reports one clamp."""
        model = parse_layout("____CCCC|____CCCC")
        sink = RecordingSink()
        change = ColumnResizer(model, ChangeFeed(sink=sink)).set_columns(6)

        assert change.columns == 6
        assert change.clamped_count == 1
        assert model.columns == 6
        assert model.rect_of("C") == Rect(2, 0, 4, 2)

        event = sink.of_type(EventType.COLUMNS_CHANGED)[0]
        assert event.payload["previous_columns"] == 8
        assert event.payload["clamped_count"] == 1
        assert sink.of_type(EventType.LAYOUT_CHANGED)[0].payload["change_type"] == "columns"

    def test_updates_cover_every_block(self) -> None:
        """The persisted batch is the complete layout, not just clamped blocks."""
        model = parse_layout("AB__CC")
        change = ColumnResizer(model, ChangeFeed()).set_columns(4)
        assert [u.block_id for u in change.updates] == ["A", "B", "C"]
        assert change.clamped_count == 1

    def test_widen_then_narrow_round_trip(self) -> None:
        """With nothing clamped, a change and its reverse restore the layout."""
        model = parse_layout("AAB_|CC__")
        before = model.layout()
        resizer = ColumnResizer(model, ChangeFeed())
        assert resizer.set_columns(12).clamped_count == 0
        assert resizer.set_columns(4).clamped_count == 0
        assert model.layout() == before

    def test_clamping_may_overlap(self) -> None:
        """Only the boundary is guaranteed; clamped blocks can overlap."""
        model = parse_layout("AAA___BB")
        ColumnResizer(model, ChangeFeed()).set_columns(4)
        assert model.rect_of("B") == Rect(2, 0, 2, 1)
        assert model.overlapping_pairs() == [("A", "B")]

    def test_rejects_zero(self) -> None:
        """A grid needs at least one column."""
        model = parse_layout("AA")
        with pytest.raises(ValueError) as exc_info:
            ColumnResizer(model, ChangeFeed()).set_columns(0)
        assert "at least one column" in str(exc_info.value)
        assert model.columns == 2
