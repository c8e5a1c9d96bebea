"""
Interactive demo for the dashgrid layout engine.
Display a dashboard grid and move, resize and expand blocks with the keyboard.
"""

import logging
import sys

import readchar
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from ascii_render import render_grid
from grid_config import GridConfig
from grid_engine import GridEngine
from grid_events import EventType, GridEvent, InMemoryLayoutStore
from grid_types import ExpandMode
from layout_parser import parse_layout


class InteractiveDemo:
    """Interactive demo for keyboard moves, resizes and expand/collapse."""

    def __init__(self, definition: str, config: GridConfig) -> None:
        self.definition = definition
        self.config = config
        self.console = Console()
        self.status_message = "Ready"
        self.events: list[GridEvent] = []
        self._load()

    def _load(self) -> None:
        self.store = InMemoryLayoutStore()
        model = parse_layout(self.definition, self.config.columns)
        self.store.seed("dashboard", model.updates())
        self.engine = GridEngine.from_persistence(
            self.store.scope("dashboard"), self.config, sink=self.events.append
        )
        self.selected_index = 0

    @property
    def selected(self) -> str | None:
        ids = self.engine.model.ids
        if not ids:
            return None
        return ids[self.selected_index % len(ids)]

    def generate_display(self) -> Panel:
        """Generate the current display with grid and status."""
        selected = self.selected
        engine = self.engine

        if selected is None:
            status = Text()
            status.append("ERROR: The grid has no blocks!\n", style="bold red")
            return Panel(status, title="dashgrid - Error", border_style="red")

        expander = engine.expander
        overlay = None
        if expander.state is not None and expander.state.mode == ExpandMode.OVERLAY:
            overlay = (expander.state.block_id, expander.state.target_rect)
        grid_lines = render_grid(
            engine.model,
            f"{engine.model.columns} cols",
            highlight=selected,
            overlay=overlay,
            min_rows=8,
        )

        status = Text()
        status.append("Selected: ", style="bold")
        status.append(f"{selected} {engine.rect_of(selected)}")
        if expander.is_expanded(selected):
            status.append("  [expanded]", style="yellow")
        status.append("\n")
        status.append("History: ", style="bold")
        status.append(f"{len(engine.history)} undoable, {len(self.store.batches)} batches stored\n\n")

        # Convert ANSI-colored grid text to Rich Text properly
        status.append(Text.from_ansi("\n".join(grid_lines)))
        status.append("\n\n")
        status.append("Keys:\n", style="bold cyan")
        status.append("  W/A/S/D or arrows - Move selected block\n")
        status.append("  I/J/K/L - Resize (shorter/narrower/taller/wider)\n")
        status.append("  Tab - Select next block\n")
        status.append("  E - Expand / collapse\n")
        status.append("  + / - - Add / remove a column\n")
        status.append("  U / Y - Undo / redo\n")
        status.append("  R - Reset to original layout\n")
        status.append("  Q - Quit\n\n")

        # Status line at the bottom
        status.append("─" * 40 + "\n", style="dim")
        status.append("Status: ", style="bold")
        status.append(self.status_message)

        return Panel(status, title="dashgrid Interactive Demo", border_style="green", width=80)

    def move(self, key: str, shift: bool = False) -> None:
        """Move or resize the selected block by one cell."""
        block_id = self.selected
        if block_id is None:
            return
        before = self.engine.rect_of(block_id)
        if self.engine.interaction.key_press(block_id, key, shift):
            verb = "Resized" if shift else "Moved"
            self.status_message = f"✓ {verb} {block_id}: {before} -> {self.engine.rect_of(block_id)}"
        else:
            self.status_message = f"✗ {block_id} cannot go there"

    def toggle_expand(self) -> None:
        block_id = self.selected
        if block_id is None:
            return
        if self.engine.toggle_expand(block_id):
            state = self.engine.expander.state
            self.status_message = f"✓ Expanded {block_id} ({state.mode.value}, pushed by {state.delta_h})"
        elif self.events and self.events[-1].type == EventType.BLOCKED_PLACEMENT:
            self.status_message = f"✗ No room to expand {block_id}"
        else:
            self.status_message = f"✓ Collapsed {block_id}"

    def change_columns(self, delta: int) -> None:
        columns = self.engine.model.columns + delta
        if columns < 1:
            self.status_message = "✗ A grid needs at least one column"
            return
        change = self.engine.set_columns(columns)
        self.status_message = f"✓ {columns} columns, {change.clamped_count} block(s) clamped"

    def undo(self, redo: bool = False) -> None:
        done = self.engine.redo() if redo else self.engine.undo()
        word = "Redo" if redo else "Undo"
        self.status_message = f"✓ {word}" if done else f"✗ Nothing to {word.lower()}"

    def reset_grid(self) -> None:
        """Reset the grid to its original layout."""
        self._load()
        self.status_message = "Layout reset to original state"

    def run(self) -> None:
        """Run the interactive demo."""
        with Live(self.generate_display(), console=self.console, refresh_per_second=4) as live:
            try:
                while True:
                    live.update(self.generate_display())

                    key = readchar.readkey()

                    if key.lower() == "q":
                        self.status_message = "Quitting..."
                        live.update(self.generate_display())
                        break
                    elif key.lower() == "r":
                        self.reset_grid()
                    elif key in ("w", "W", readchar.key.UP):
                        self.move("ArrowUp")
                    elif key in ("s", "S", readchar.key.DOWN):
                        self.move("ArrowDown")
                    elif key in ("a", "A", readchar.key.LEFT):
                        self.move("ArrowLeft")
                    elif key in ("d", "D", readchar.key.RIGHT):
                        self.move("ArrowRight")
                    elif key.lower() == "i":
                        self.move("ArrowUp", shift=True)
                    elif key.lower() == "k":
                        self.move("ArrowDown", shift=True)
                    elif key.lower() == "j":
                        self.move("ArrowLeft", shift=True)
                    elif key.lower() == "l":
                        self.move("ArrowRight", shift=True)
                    elif key == readchar.key.TAB:
                        self.selected_index += 1
                        self.status_message = f"Selected {self.selected}"
                    elif key.lower() == "e":
                        self.toggle_expand()
                    elif key in ("+", "="):
                        self.change_columns(1)
                    elif key == "-":
                        self.change_columns(-1)
                    elif key.lower() == "u":
                        self.undo()
                    elif key.lower() == "y":
                        self.undo(redo=True)
                    else:
                        self.status_message = f"Unknown key: {repr(key)}"

            except KeyboardInterrupt:
                self.status_message = "Interrupted by user"
                live.update(self.generate_display())


LAYOUTS = dict(
    dashboard="AAAB____|AAAB____|CCCCDD__|____DD__",
    crowded="AABBCC|AABBCC|DDDEEE",
)


def main(definition: str, config: GridConfig) -> None:
    """Run interactive demo with a sample dashboard."""
    demo = InteractiveDemo(definition, config)
    demo.run()


if __name__ == "__main__":
    args = [a for a in sys.argv[1:] if a != "--static"]
    name = args[0] if args else "dashboard"
    columns = len(LAYOUTS[name].split("|")[0])
    config = GridConfig.from_policies(
        {
            "grid.default_columns": columns,
            "grid.expand_target_rows": 4,
            "grid.expand_mode": args[1] if len(args) > 1 else "reflow",
        }
    )
    if "--static" in sys.argv:
        # Just render the initial state
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
        demo = InteractiveDemo(LAYOUTS[name], config)
        demo.console.print(demo.generate_display())
    else:
        main(LAYOUTS[name], config)
