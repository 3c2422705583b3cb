"""
Shared type definitions for the gemshift system.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence


class GemType(Enum):
    """Closed palette of gem kinds."""

    BLUE = "blue"
    GREEN = "green"
    PURPLE = "purple"
    RED = "red"
    YELLOW = "yellow"

    @property
    def letter(self) -> str:
        """Single-letter code used by the text format."""
        return self.name[0]

    @classmethod
    def from_letter(cls, letter: str) -> GemType:
        for gem_type in cls:
            if gem_type.letter == letter.upper():
                return gem_type
        raise ValueError(f"Unknown gem letter: '{letter}'")


PALETTE: tuple[GemType, ...] = tuple(GemType)


class Axis(Enum):
    """Axis a move shifts along."""

    ROW = "row"  # Shift entries along x
    COL = "col"  # Shift entries along y


# =============================================================================
# Errors
# =============================================================================


class GemShiftError(ValueError):
    """Base class for engine errors."""


class InvalidAxis(GemShiftError):
    """A move's axis is neither row nor column."""


class OutOfRange(GemShiftError):
    """A coordinate or move index falls outside the grid."""


class InvalidDimensions(GemShiftError):
    """A grid cannot be built with the requested shape."""


# =============================================================================
# Grid Definition Types
# =============================================================================


@dataclass(frozen=True)
class Gem:
    """A gem occupying one cell. Equal when the types are equal."""

    type: GemType


@dataclass(frozen=True)
class GridPosition:
    """A cell address, x = column, y = row (0 = top)."""

    x: int
    y: int


Match = tuple[GridPosition, ...]


def _as_gem(value: Gem | GemType) -> Gem:
    return value if isinstance(value, Gem) else Gem(GemType(value))


@dataclass(frozen=True)
class GemGrid:
    """A 2D grid of gems stored as columns, index 0 of each column is the top."""

    columns: tuple[tuple[Gem, ...], ...]

    def __post_init__(self) -> None:
        if not self.columns or not self.columns[0]:
            raise InvalidDimensions("Grid must have at least one column and one row")
        height = len(self.columns[0])
        ragged = [x for x, col in enumerate(self.columns) if len(col) != height]
        if ragged:
            raise InvalidDimensions(
                f"Inconsistent column heights\n"
                f"  Expected: {height} rows (from column 0)\n"
                f"  Mismatched columns: {ragged}"
            )

    @classmethod
    def from_columns(cls, columns: Sequence[Sequence[Gem | GemType]]) -> GemGrid:
        return cls(tuple(tuple(_as_gem(v) for v in col) for col in columns))

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Gem | GemType]]) -> GemGrid:
        """Build a grid from row-major data (rows[y][x])."""
        if not rows:
            raise InvalidDimensions("Grid must have at least one row")
        width = len(rows[0])
        mismatched = [y for y, row in enumerate(rows) if len(row) != width]
        if mismatched:
            raise InvalidDimensions(
                f"Inconsistent row lengths\n"
                f"  Expected: {width} columns (from row 0)\n"
                f"  Mismatched rows: {mismatched}"
            )
        return cls.from_columns([[row[x] for row in rows] for x in range(width)])

    @property
    def width(self) -> int:
        return len(self.columns)

    @property
    def height(self) -> int:
        return len(self.columns[0])

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get(self, x: int, y: int) -> Gem:
        if not self.in_bounds(x, y):
            raise OutOfRange(
                f"Position ({x}, {y}) outside grid of {self.width}x{self.height}"
            )
        return self.columns[x][y]

    def column(self, x: int) -> tuple[Gem, ...]:
        if not 0 <= x < self.width:
            raise OutOfRange(f"Column {x} outside grid of width {self.width}")
        return self.columns[x]

    def row(self, y: int) -> tuple[Gem, ...]:
        if not 0 <= y < self.height:
            raise OutOfRange(f"Row {y} outside grid of height {self.height}")
        return tuple(col[y] for col in self.columns)

    def rows(self) -> tuple[tuple[Gem, ...], ...]:
        return tuple(self.row(y) for y in range(self.height))

    def snapshot(self) -> GemGrid:
        """Independent copy of this grid."""
        return GemGrid(tuple(tuple(col) for col in self.columns))


@dataclass(frozen=True)
class MoveAction:
    """
    A cyclic shift of one row or column.

    Positive amounts move row entries right (toward higher x) and column
    entries down (toward higher y).
    """

    axis: Axis | str
    index: int
    amount: int
