"""
Demonstration scripts for the dashgrid layout engine.
"""

import logging

from ascii_render import render_grid, render_grids_flow
from grid_config import GridConfig
from grid_engine import GridEngine
from grid_events import InMemoryLayoutStore, RecordingSink
from grid_model import GridModel
from grid_types import Block, Constraints, Rect
from layout_parser import format_layout, parse_layout


def show(engine: GridEngine, title: str) -> None:
    print("\n".join(render_grid(engine.model, title, min_rows=4)))


def drag_demo() -> None:
    """Drag with and without reflow."""
    for reflow_enabled in (False, True):
        print("=" * 40)
        print(f"Drag A onto B, reflow {'enabled' if reflow_enabled else 'disabled'}:")
        print("=" * 40)
        engine = GridEngine(
            parse_layout("AABB|AABB"),
            GridConfig(columns=4, reflow_enabled=reflow_enabled),
            container_width=400,
        )
        show(engine, "before")
        engine.interaction.start_drag("A")
        engine.interaction.drag_to(100, 0)
        outcome = engine.interaction.end()
        show(engine, outcome.state.value)
        print(f"  {format_layout(engine.model)}")
        print()


def keyboard_demo() -> None:
    """Keyboard resize clamped by constraints."""
    print("=" * 40)
    print("Shift+ArrowRight x4 with max_w=6:")
    print("=" * 40)
    model = GridModel(8)
    model.add_block(Block("K", Rect(0, 0, 4, 2), Constraints(min_w=2, max_w=6)))
    engine = GridEngine(model, GridConfig(columns=8))
    engine.interaction.keyboard_resize("K", 4, 0)
    show(engine, "resized")
    print(f"  K is now {engine.rect_of('K')}")
    print()


def columns_demo() -> None:
    """Column count change clamps blocks."""
    print("=" * 40)
    print("8 columns -> 6 columns:")
    print("=" * 40)
    engine = GridEngine(parse_layout("____CCCC|____CCCC"), GridConfig(columns=8))
    show(engine, "8 cols")
    change = engine.set_columns(6)
    show(engine, "6 cols")
    print(f"  clamped: {change.clamped_count}")
    print()


def expand_demo() -> None:
    """Expand in reflow mode, then collapse."""
    print("=" * 40)
    print("Expand X, then collapse:")
    print("=" * 40)
    engine = GridEngine(
        parse_layout("XXXX____|XXXX____|YYYY____|YYYY____"),
        GridConfig(columns=8, expand_target_rows=8),
    )
    show(engine, "before")
    engine.toggle_expand("X")
    show(engine, "expanded")
    engine.toggle_expand("X")
    show(engine, "collapsed")
    print()


def nested_demo() -> None:
    """A dashboard block hosting a grid of its own."""
    print("=" * 40)
    print("Nested grid inside block C:")
    print("=" * 40)
    store = InMemoryLayoutStore()
    store.seed("main", parse_layout("AAB_|CCC_|CCC_").updates())
    store.seed("main/C", parse_layout("xy|z_").updates())
    sink = RecordingSink()

    main_scope = store.scope("main")
    parent = GridEngine.from_persistence(main_scope, GridConfig(columns=4), sink)
    child = parent.nested("C", main_scope.child("C"), GridConfig(columns=2), sink)
    child.interaction.keyboard_move("y", 0, 1)

    print(render_grids_flow({"main": parent.model, "main/C": child.model}))
    print(f"  stored keys: {store.keys()}")
    print(f"  events: {[e.type.value for e in sink.events]}")
    print()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    drag_demo()
    keyboard_demo()
    columns_demo()
    expand_demo()
    nested_demo()
