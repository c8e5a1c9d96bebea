"""
ASCII rendering for grid layouts.

Provides two rendering approaches:
1. Single grid rendering - one boxed character grid, one cell per grid cell
2. Flow rendering - several grids (a parent and its nested grids) side by side
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping

import simple_chalk as chalk  # type: ignore[import-untyped]

from grid_model import GridModel
from grid_types import Rect

logger = logging.getLogger(__name__)

Colorizer = Callable[[str], str]

# Build color palette for blocks
PALETTE: list[Colorizer] = [
    chalk.red,
    chalk.green,
    chalk.yellow,
    chalk.blue,
    chalk.magenta,
    chalk.cyan,
    chalk.redBright,
    chalk.greenBright,
    chalk.yellowBright,
    chalk.blueBright,
]


def block_colors(model: GridModel) -> dict[str, Colorizer]:
    """Stable color per block, by position in the model."""
    return {block_id: PALETTE[i % len(PALETTE)] for i, block_id in enumerate(model.ids)}


def render_grid(
    model: GridModel,
    title: str = "grid",
    cell_width: int = 3,
    layout: Mapping[str, Rect] | None = None,
    highlight: str | None = None,
    blocked: bool = False,
    overlay: tuple[str, Rect] | None = None,
    min_rows: int = 1,
    color: bool = True,
) -> list[str]:
    """
    Render a single grid as a boxed character display.

    Args:
        model: The grid to render
        title: Text centered in the top border
        cell_width: Characters per cell (default 3)
        layout: Optional layout to draw instead of the model's (live preview)
        highlight: Optional block id to highlight (selected or dragged block)
        blocked: Draw the highlighted block as blocked
        overlay: Optional (block_id, rect) drawn on top of everything else,
            for a block expanded in overlay mode
        min_rows: Draw at least this many rows
        color: Apply chalk colors; False gives plain text

    Returns:
        List of strings representing the rendered grid lines
    """
    rects = dict(layout if layout is not None else model.layout())
    if overlay is not None:
        # Last write wins, so the overlay is drawn above its neighbours
        overlay_id, overlay_rect = overlay
        rects.pop(overlay_id, None)
        rects[overlay_id] = overlay_rect

    colors = block_colors(model) if color else {}
    rows = max([min_rows, *(r.bottom for r in rects.values())])
    cols = model.columns

    # cell -> block id drawn there; '*' marks cells claimed twice
    owner: list[list[str | None]] = [[None] * cols for _ in range(rows)]
    for block_id, rect in rects.items():
        for y in range(max(rect.y, 0), min(rect.bottom, rows)):
            for x in range(max(rect.x, 0), min(rect.right, cols)):
                if owner[y][x] is not None and (overlay is None or block_id != overlay[0]):
                    owner[y][x] = "*"
                else:
                    owner[y][x] = block_id

    grid_width = cols * cell_width + 2
    label = f" {title} "

    lines: list[str] = []
    top = "┌" + "─" * (grid_width - 2) + "┐"
    if len(label) <= grid_width - 2:
        title_start = (grid_width - len(label)) // 2
        top = (
            "┌"
            + "─" * (title_start - 1)
            + label
            + "─" * (grid_width - title_start - len(label) - 1)
            + "┐"
        )
    lines.append(top)

    for row in owner:
        parts = ["│"]
        for block_id in row:
            if block_id is None:
                char = "_"
            elif block_id == "*":
                char = "*"
            else:
                char = block_id[0]
            content = char if cell_width == 1 else char.center(cell_width)

            if color and block_id is not None and block_id == highlight:
                content = chalk.bgRed.white(content) if blocked else chalk.bgWhite.black(content)
            elif color and block_id is not None:
                content = colors.get(block_id, chalk.white)(content)
            parts.append(content)
        parts.append("│")
        lines.append("".join(parts))

    lines.append("└" + "─" * (grid_width - 2) + "┘")
    return lines


def render_grids_flow(
    models: Mapping[str, GridModel],
    terminal_width: int = 120,
    cell_width: int = 3,
    color: bool = True,
) -> str:
    """
    Render several grids in flow layout (multiple grids per row).

    Args:
        models: Grids by name, e.g. a dashboard and the grids nested in it
        terminal_width: Maximum width for layout (default 120)
        cell_width: Characters per cell (default 3)
        color: Apply chalk colors

    Returns:
        Rendered ASCII string with all grids in flow layout
    """
    rendered: dict[str, list[str]] = {}
    widths: dict[str, int] = {}
    for name, model in models.items():
        rendered[name] = render_grid(model, name, cell_width, color=color)
        # Visible width; the lines themselves contain ANSI codes
        widths[name] = model.columns * cell_width + 2

    output_lines: list[str] = []
    spacing = 2

    current: list[str] = []
    current_width = 0
    for name in models:
        needed = widths[name] + (spacing if current else 0)
        if current and current_width + needed > terminal_width:
            _flush_row(current, rendered, widths, output_lines, spacing)
            current = []
            current_width = 0
            needed = widths[name]
        current.append(name)
        current_width += needed

    if current:
        _flush_row(current, rendered, widths, output_lines, spacing)

    return "\n".join(output_lines)


def _flush_row(
    names: list[str],
    rendered: dict[str, list[str]],
    widths: dict[str, int],
    output_lines: list[str],
    spacing: int,
) -> None:
    """Combine one row of rendered grids horizontally."""
    height = max(len(rendered[name]) for name in names)
    for line_idx in range(height):
        parts = []
        for name in names:
            lines = rendered[name]
            parts.append(lines[line_idx] if line_idx < len(lines) else " " * widths[name])
        output_lines.append((" " * spacing).join(parts))
    output_lines.append("")
