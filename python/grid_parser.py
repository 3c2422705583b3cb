"""
Text format utilities for gemshift boards and moves.

Provides two formats:
1. Boards: one letter per gem, rows separated by |
2. Moves: axis letter, line index and signed amount (e.g. "r2+1")
"""

from __future__ import annotations

import re

from gem_types import PALETTE, Axis, GemGrid, GemType, MoveAction

__all__ = ["parse_grid", "format_grid", "parse_move", "parse_moves", "format_move"]

_MOVE_PATTERN = re.compile(r"^([rRcC])(\d+)([+-]\d+)$")


def parse_grid(definition: str) -> GemGrid:
    """
    Parse a board from the concise row format.

    Format:
    - Rows separated by |, top row first
    - One character per gem, no separators
    - Letters (case-insensitive): B=blue, G=green, P=purple, R=red, Y=yellow
    - Surrounding whitespace of the whole definition and of each row is ignored

    Example:
        "RGB|GBR|BRG"
        Creates a 3x3 grid whose column 0 is [RED, GREEN, BLUE] (top to bottom).

    Args:
        definition: Board definition string

    Returns:
        GemGrid built from the rows

    Raises:
        ValueError: If a character is not a gem letter or rows differ in length
    """
    row_strings = [row.strip() for row in definition.strip().split("|")]
    valid_letters = ", ".join(t.letter for t in PALETTE)
    rows: list[list[GemType]] = []

    for row_idx, row_str in enumerate(row_strings):
        if not row_str:
            raise ValueError(
                f"Empty row in board definition\n"
                f"  Row {row_idx} of \"{definition.strip()}\""
            )
        row: list[GemType] = []
        for col_idx, char in enumerate(row_str):
            try:
                row.append(GemType.from_letter(char))
            except ValueError:
                raise ValueError(
                    f"Invalid gem character '{char}'\n"
                    f"  Row {row_idx}: \"{row_str}\"\n"
                    f"  Position: column {col_idx}\n"
                    f"  Valid characters: {valid_letters} (case-insensitive)"
                ) from None
        rows.append(row)

    # Validate all rows have same length
    width = len(rows[0])
    mismatched = [(i, len(row)) for i, row in enumerate(rows) if len(row) != width]
    if mismatched:
        error_msg = (
            f"Inconsistent row lengths in board\n"
            f"  Expected: {width} columns (from row 0)\n"
            f"  Mismatched rows:\n"
        )
        for row_idx, actual in mismatched:
            error_msg += f"    Row {row_idx}: {actual} columns - \"{row_strings[row_idx]}\"\n"
        error_msg += "  All rows must have the same number of gems"
        raise ValueError(error_msg)

    return GemGrid.from_rows(rows)


def format_grid(grid: GemGrid) -> str:
    """Inverse of parse_grid."""
    return "|".join("".join(gem.type.letter for gem in row) for row in grid.rows())


def parse_move(text: str) -> MoveAction:
    """
    Parse a single move.

    Format: axis letter (r = row, c = col, case-insensitive), line index, then
    a signed amount. "r2+1" shifts row 2 one step right; "c0-3" shifts column 0
    three steps up.

    Raises:
        ValueError: If the text does not follow the format
    """
    m = _MOVE_PATTERN.match(text.strip())
    if m is None:
        raise ValueError(
            f"Invalid move: '{text}'\n"
            f"  Expected: <r|c><index><+|-><amount>\n"
            f"  Examples: 'r2+1', 'c0-3'"
        )
    axis = Axis.ROW if m.group(1).lower() == "r" else Axis.COL
    return MoveAction(axis, int(m.group(2)), int(m.group(3)))


def parse_moves(text: str) -> list[MoveAction]:
    """Parse whitespace-separated moves, e.g. "r2+1 c0-1"."""
    return [parse_move(token) for token in text.split()]


def format_move(action: MoveAction) -> str:
    axis = Axis(action.axis)
    return f"{axis.value[0]}{action.index}{action.amount:+d}"
