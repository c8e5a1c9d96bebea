"""
Text format for grid layouts.

Provides two parsing formats:
1. Single layout: rows of single-character cells separated by |
2. Concise multi-layout format with one "name: layout" per line

and format_layout(), which turns a model back into the single-layout text.
"""

from __future__ import annotations

from grid_model import GridModel
from grid_types import Block, Constraints, Rect

__all__ = ["parse_layout", "parse_layouts", "parse_layouts_concise", "format_layout"]

EMPTY_CHARS = "_."


def parse_layout(
    definition: str,
    columns: int | None = None,
    constraints: dict[str, Constraints] | None = None,
    name: str = "layout",
) -> GridModel:
    """
    Parse a layout from a compact string format.

    Format:
    - Rows separated by |
    - Each character is one cell (no separators between cells)
    - Cell types:
      * Underscore (_) or dot (.): Empty cell
      * Letter or digit: Cell covered by the block with that id
    - All cells of one id must form a filled rectangle
    - Short rows are padded with empty cells

    Example:
        "AAB_|AAB_|CCCC"

        Creates a 4-column model with A(0,0,2,2), B(2,0,1,2), C(0,2,4,1)

    Args:
        definition: The layout string
        columns: Column count; defaults to the longest row
        constraints: Optional per-block constraints by id
        name: Layout name used in error messages

    Returns:
        GridModel with blocks in order of first appearance (row-major)

    Raises:
        ValueError: On invalid characters, non-rectangular blocks or rows
            longer than `columns`
    """
    constraints = constraints or {}
    row_strings = definition.strip().split("|")
    width = max(len(row) for row in row_strings)
    if columns is None:
        columns = max(width, 1)
    elif width > columns:
        raise ValueError(
            f"Layout '{name}' is wider than the grid\n"
            f"  Longest row: {width} cells\n"
            f"  Columns: {columns}"
        )

    # id -> list of (x, y) cells, in order of first appearance
    cells: dict[str, list[tuple[int, int]]] = {}
    for y, row_str in enumerate(row_strings):
        for x, char in enumerate(row_str):
            if char in EMPTY_CHARS:
                continue
            if not char.isalnum():
                raise ValueError(
                    f"Invalid character '{char}' in layout '{name}'\n"
                    f"  Row {y}: \"{row_str}\"\n"
                    f"  Position: column {x}\n"
                    f"  Valid characters: letters and digits (block ids), '_' or '.' (empty)"
                )
            cells.setdefault(char, []).append((x, y))

    model = GridModel(columns)
    for block_id, block_cells in cells.items():
        xs = [x for x, _ in block_cells]
        ys = [y for _, y in block_cells]
        rect = Rect(min(xs), min(ys), max(xs) - min(xs) + 1, max(ys) - min(ys) + 1)
        if rect.w * rect.h != len(block_cells):
            raise ValueError(
                f"Block '{block_id}' in layout '{name}' is not a filled rectangle\n"
                f"  Bounding box: {rect}\n"
                f"  Expected {rect.w * rect.h} cells, found {len(block_cells)}"
            )
        model.add_block(Block(block_id, rect, constraints.get(block_id, Constraints())))
    return model


def parse_layouts(definitions: dict[str, str], columns: int | None = None) -> dict[str, GridModel]:
    """Parse several named layouts; see parse_layout()."""
    return {
        name: parse_layout(definition, columns, name=name)
        for name, definition in definitions.items()
    }


def parse_layouts_concise(definition: str) -> dict[str, GridModel]:
    """
    Parse layouts from a concise multi-line format.

    Format:
    - One layout per line: "name: layout" or "name/columns: layout"
    - Blank lines are ignored

    Example:
        \"\"\"
        main/6: AAB___|AAB___
        chart: XY|XY
        \"\"\"

    Raises:
        ValueError: On malformed lines or duplicate names
    """
    layouts: dict[str, GridModel] = {}
    lines = [line.strip() for line in definition.strip().split("\n") if line.strip()]

    for line_idx, line in enumerate(lines):
        if ":" not in line:
            raise ValueError(
                f"Invalid layout definition on line {line_idx + 1}: '{line}'\n"
                f"  Expected format: 'name: layout' or 'name/columns: layout'"
            )
        head, body = (part.strip() for part in line.split(":", 1))
        name, _, columns_str = head.partition("/")
        name = name.strip()
        if not name:
            raise ValueError(f"Empty layout name on line {line_idx + 1}: '{line}'")
        if name in layouts:
            raise ValueError(f"Duplicate layout name '{name}' on line {line_idx + 1}")
        if columns_str and not columns_str.strip().isdigit():
            raise ValueError(
                f"Invalid column count '{columns_str}' for layout '{name}' on line {line_idx + 1}"
            )
        columns = int(columns_str) if columns_str else None
        layouts[name] = parse_layout(body, columns, name=name)

    return layouts


def format_layout(model: GridModel, layout: dict[str, Rect] | None = None) -> str:
    """
    Format a model (or a detached layout of it) in the parse_layout format.

    Each block is drawn with the first character of its id. Cells covered by
    more than one block are drawn as '*'.
    """
    rects = layout if layout is not None else model.layout()
    rows = max((r.bottom for r in rects.values()), default=0)
    width = max([model.columns, *(r.right for r in rects.values())])
    canvas = [["_"] * width for _ in range(rows)]
    for block_id, rect in rects.items():
        for y in range(rect.y, rect.bottom):
            for x in range(rect.x, rect.right):
                canvas[y][x] = "*" if canvas[y][x] != "_" else block_id[0]
    return "|".join("".join(row) for row in canvas)
