"""Tests for expand module."""

from expand import ExpandCollapseController
from grid_config import GridConfig
from grid_events import ChangeFeed, EventType, RecordingSink
from grid_model import GridModel
from grid_types import ExpandMode, Rect
from layout_parser import format_layout, parse_layout


def make_expander(
    definition: str,
    **config_kwargs: object,
) -> tuple[ExpandCollapseController, GridModel, RecordingSink]:
    model = parse_layout(definition)
    sink = RecordingSink()
    config = GridConfig(columns=model.columns, **config_kwargs)  # type: ignore[arg-type]
    return ExpandCollapseController(model, config, ChangeFeed(sink=sink)), model, sink


class TestExpandReflow:
    """Tests for expand in reflow mode."""

    def test_expand_pushes_blocks_below(self) -> None:
        """Expanding to 8 rows full width pushes the block below by 6."""
        expander, model, sink = make_expander("XXXX____|XXXX____|YYYY____|YYYY____")
        state = expander.expand("X")

        assert state is not None
        assert state.delta_h == 6
        assert model.rect_of("X") == Rect(0, 0, 8, 8)
        assert model.rect_of("Y") == Rect(0, 8, 4, 2)
        assert model.is_consistent()

        event = sink.of_type(EventType.BLOCK_EXPANDED)[0]
        assert event.payload["mode"] == "reflow"
        assert event.payload["shifted"] == ["Y"]
        assert sink.of_type(EventType.LAYOUT_CHANGED)[0].payload["change_type"] == "expand"

    def test_collapse_restores(self) -> None:
        """Collapse restores the block and pulls the pushed block back up."""
        definition = "XXXX____|XXXX____|YYYY____|YYYY____|____ZZZZ"
        expander, model, sink = make_expander(definition)
        expander.expand("X")
        assert model.rect_of("Z") == Rect(4, 10, 4, 1)

        assert expander.collapse() == Rect(0, 0, 4, 2)
        assert format_layout(model) == "XXXX____|XXXX____|YYYY____|YYYY____|____ZZZZ"
        assert expander.expanded_id is None
        assert sink.of_type(EventType.BLOCK_COLLAPSED)[0].payload["rect"] == Rect(0, 0, 4, 2)

    def test_delta_clears_side_by_side_block(self) -> None:
        """A block beside the expanded one is pushed below the expanded bottom edge."""
        expander, model, _ = make_expander("XXXXSSSS|XXXXSSSS")
        state = expander.expand("X")

        assert state.delta_h == 8
        assert model.rect_of("S") == Rect(4, 8, 4, 2)
        expander.collapse()
        assert model.rect_of("S") == Rect(4, 0, 4, 2)

    def test_blocks_above_untouched(self) -> None:
        """Blocks starting above the expanded block do not move."""
        expander, model, _ = make_expander("AAAA____|XXXX____|XXXX____", expand_full_width=False)
        expander.expand("X")
        assert model.rect_of("A") == Rect(0, 0, 4, 1)
        assert model.rect_of("X") == Rect(0, 1, 4, 8)

    def test_collapse_never_above_own_position(self) -> None:
        """A block moved down while expanded is not pulled above where it started."""
        expander, model, _ = make_expander("XXXX____|XXXX____|YYYY____")
        expander.expand("X")
        # Host moves Y further down while X is expanded
        model.set_rect("Y", Rect(0, 9, 4, 1))
        expander.collapse()
        assert model.rect_of("Y") == Rect(0, 3, 4, 1)

    def test_toggle(self) -> None:
        """toggle() flips between expanded and collapsed."""
        expander, model, _ = make_expander("XX__|YY__")
        assert expander.toggle("X")
        assert expander.is_expanded("X")
        assert not expander.toggle("X")
        assert model.rect_of("X") == Rect(0, 0, 2, 1)

    def test_expanding_another_collapses_first(self) -> None:
        """Only one block is expanded at a time."""
        expander, model, _ = make_expander("XXYY")
        expander.expand("X")
        expander.expand("Y")
        assert expander.expanded_id == "Y"
        assert model.rect_of("X") == Rect(0, 8, 2, 1)
        assert model.rect_of("Y") == Rect(0, 0, 4, 8)

    def test_disabled(self) -> None:
        """Nothing happens when expanding is disabled."""
        expander, model, sink = make_expander("XX__", expand_enabled=False)
        assert expander.expand("X") is None
        assert not expander.toggle("X")
        assert model.rect_of("X") == Rect(0, 0, 2, 1)
        assert sink.events == []

    def test_unknown_block(self) -> None:
        """Expanding a block that is not in the model does nothing."""
        expander, _, _ = make_expander("XX__")
        assert expander.expand("Q") is None
        assert expander.state is None

    def test_block_removed_while_expanded(self) -> None:
        """Removing the expanded block collapses what it pushed."""
        expander, model, _ = make_expander("XXXX____|YYYY____")
        expander.expand("X")
        model.remove_block("X")
        expander.block_removed("X")
        assert expander.state is None
        assert model.rect_of("Y") == Rect(0, 1, 4, 1)


class TestExpandOverlay:
    """Tests for expand in overlay mode."""

    def test_overlay_leaves_model_alone(self) -> None:
        """Overlay expansion is only remembered for drawing."""
        expander, model, sink = make_expander(
            "XXXX____|YYYY____", expand_mode=ExpandMode.OVERLAY
        )
        state = expander.expand("X")

        assert state.mode == ExpandMode.OVERLAY
        assert state.target_rect == Rect(0, 0, 8, 8)
        assert model.rect_of("X") == Rect(0, 0, 4, 1)
        assert model.rect_of("Y") == Rect(0, 1, 4, 1)
        assert EventType.LAYOUT_CHANGED not in sink.types()

        assert expander.collapse() == Rect(0, 0, 4, 1)
        assert sink.of_type(EventType.BLOCK_COLLAPSED)[0].payload["mode"] == "overlay"
