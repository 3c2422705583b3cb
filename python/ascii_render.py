"""
ASCII rendering for gemshift boards.

Provides two rendering approaches:
1. Single board rendering - one letter per gem with optional colour and highlights
2. Flow rendering - several boards side by side (e.g. before/after a commit)
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

import simple_chalk as chalk  # type: ignore[import-untyped]

from gem_types import Axis, GemGrid, GemType, GridPosition
from gemshift import ExplodeAndReplacePhase

logger = logging.getLogger(__name__)

Colorizer = Callable[[str], str]

GEM_COLORS: dict[GemType, Colorizer] = {
    GemType.BLUE: chalk.blueBright,
    GemType.GREEN: chalk.green,
    GemType.PURPLE: chalk.magenta,
    GemType.RED: chalk.red,
    GemType.YELLOW: chalk.yellow,
}


def gem_color_fn(gem_type: GemType) -> Colorizer:
    """Colour for each gem type; unknown types are left plain."""
    return GEM_COLORS.get(gem_type, lambda s: s)


# =============================================================================
# Single Board Rendering
# =============================================================================


def board_width(grid: GemGrid, cell_width: int = 3) -> int:
    """Visible width in characters of a rendered board (ANSI codes excluded)."""
    return grid.width * cell_width + 2  # +2 for borders


def render_grid(
    grid: GemGrid,
    title: str = "board",
    cell_width: int = 3,
    highlight: Iterable[GridPosition] = (),
    selected: tuple[Axis, int] | None = None,
    color_fn: Callable[[GemType], Colorizer] | None = None,
) -> list[str]:
    """
    Render a board as framed lines, one letter per gem.

    Args:
        grid: The board to render
        title: Text centred in the top border
        cell_width: Characters per gem (default 3)
        highlight: Positions drawn inverted (e.g. gems about to explode)
        selected: Optional (axis, index) marked on the frame: a selected row gets
            '▶' in its left border, a selected column '▲' under it in the bottom border
        color_fn: Optional function returning a colorizer for each gem type

    Returns:
        List of strings representing the rendered board lines
    """
    if color_fn is None:
        color_fn = lambda gem_type: lambda s: s

    highlighted = set(highlight)
    grid_width = board_width(grid, cell_width)
    inner = grid_width - 2

    lines: list[str] = []

    # Top border with title
    label = f" {title} "
    if len(label) <= inner:
        title_start = (grid_width - len(label)) // 2
        lines.append(
            "┌" + "─" * (title_start - 1) + label + "─" * (grid_width - title_start - len(label) - 1) + "┐"
        )
    else:
        lines.append("┌" + "─" * inner + "┐")

    for y, row in enumerate(grid.rows()):
        row_selected = selected is not None and Axis(selected[0]) == Axis.ROW and selected[1] == y
        line_parts = ["▶" if row_selected else "│"]

        for x, gem in enumerate(row):
            char = gem.type.letter
            content = char if cell_width == 1 else char.center(cell_width)

            if GridPosition(x, y) in highlighted:
                content = chalk.bgWhite.black(content)
            else:
                content = color_fn(gem.type)(content)
            line_parts.append(content)

        line_parts.append("│")
        lines.append("".join(line_parts))

    # Bottom border, with a marker under the selected column
    bottom = ["─"] * inner
    if selected is not None and Axis(selected[0]) == Axis.COL and 0 <= selected[1] < grid.width:
        bottom[selected[1] * cell_width + cell_width // 2] = "▲"
    lines.append("└" + "".join(bottom) + "┘")

    return lines


def render_phase(
    grid: GemGrid,
    phase: ExplodeAndReplacePhase,
    cell_width: int = 3,
    color_fn: Callable[[GemType], Colorizer] | None = None,
) -> list[str]:
    """
    Render a board with the phase's exploded positions highlighted, followed by
    one summary line per refilled column.
    """
    lines = render_grid(
        grid, "explode", cell_width, highlight=phase.removed_positions, color_fn=color_fn
    )
    for x, gem_types in phase.replacements:
        letters = " ".join(t.letter for t in gem_types)
        lines.append(f"col {x} <- {letters}")
    if phase.hit_safety_bound:
        lines.append(f"stopped: {phase.termination_reason.value} after {phase.steps} step(s)")
    return lines


# =============================================================================
# Flow Rendering (Several Boards)
# =============================================================================


def render_boards(
    boards: dict[str, GemGrid],
    terminal_width: int = 120,
    cell_width: int = 3,
    highlights: dict[str, Iterable[GridPosition]] | None = None,
    color: bool = True,
) -> str:
    """
    Render several boards in flow layout (multiple boards per row).

    Args:
        boards: Title -> board, rendered in insertion order
        terminal_width: Maximum width for layout (default 120)
        cell_width: Characters per gem (default 3)
        highlights: Optional title -> positions to highlight
        color: Colour gems by type

    Returns:
        Rendered string with all boards in flow layout
    """
    highlights = highlights or {}
    color_fn = gem_color_fn if color else None

    rendered: dict[str, list[str]] = {}
    widths: dict[str, int] = {}
    for title, grid in boards.items():
        rendered[title] = render_grid(
            grid, title, cell_width, highlights.get(title, ()), color_fn=color_fn
        )
        # String length would count ANSI codes, so use the board's own width
        widths[title] = board_width(grid, cell_width)

    output_lines: list[str] = []
    grid_spacing = 2  # spaces between boards

    current_row: list[str] = []
    current_width = 0

    for title in boards:
        needed_width = widths[title]
        if current_row:
            needed_width += grid_spacing

        if current_row and current_width + needed_width > terminal_width:
            _flush_board_row(current_row, rendered, widths, output_lines, grid_spacing)
            current_row = []
            current_width = 0
            needed_width = widths[title]

        current_row.append(title)
        current_width += needed_width

    if current_row:
        _flush_board_row(current_row, rendered, widths, output_lines, grid_spacing)

    logger.debug("render_boards: %d board(s) in %d line(s)", len(boards), len(output_lines))
    return "\n".join(output_lines)


def _flush_board_row(
    row_titles: list[str],
    rendered: dict[str, list[str]],
    widths: dict[str, int],
    output_lines: list[str],
    grid_spacing: int,
) -> None:
    """Helper to flush a row of boards to output_lines."""
    row_boards = [rendered[title] for title in row_titles]
    max_height = max(len(lines) for lines in row_boards)

    for line_idx in range(max_height):
        line_parts = []
        for title, board_lines in zip(row_titles, row_boards):
            if line_idx < len(board_lines):
                line_parts.append(board_lines[line_idx])
            else:
                line_parts.append(" " * widths[title])
        output_lines.append((" " * grid_spacing).join(line_parts))

    # Add spacing between rows
    output_lines.append("")
