"""
Authoritative puzzle-state engine for a cyclic-shift match-three board.
Three-phase commit: apply moves -> detect matches -> explode and replace (repeat).
"""

from __future__ import annotations

import logging
import random
from collections import Counter, deque
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Protocol, Sequence

from gem_types import (
    PALETTE,
    Axis,
    Gem,
    GemGrid,
    GemType,
    GridPosition,
    InvalidAxis,
    InvalidDimensions,
    Match,
    MoveAction,
    OutOfRange,
)

logger = logging.getLogger(__name__)

MIN_RUN = 3
DEFAULT_WIDTH = 7
DEFAULT_HEIGHT = 8


class RandomSource(Protocol):
    """Anything that can pick uniformly from a sequence (e.g. random.Random)."""

    def choice(self, seq: Sequence[GemType]) -> GemType: ...


class TerminationReason(Enum):
    """Reason why cascade resolution stopped."""

    STABLE = "stable"  # No matches left on the board
    REPEATED_MATCH_COUNT = "repeated_match_count"  # Same number of matches twice in a row
    REPEATED_MATCHES = "repeated_matches"  # Same matched positions twice in a row
    MAX_STEPS_REACHED = "max_steps_reached"  # Hit max_cascade_steps


class CascadeStop(Enum):
    """Safety heuristic used to cut off a cascade that keeps producing matches."""

    MATCH_COUNT = "match_count"  # Stop when the match count repeats
    MATCH_POSITIONS = "match_positions"  # Stop when the matched position set repeats


@dataclass(frozen=True)
class EngineConfig:
    """Settings fixed for the lifetime of an engine."""

    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    palette: tuple[GemType, ...] = PALETTE
    cascade_stop: CascadeStop = CascadeStop.MATCH_COUNT
    max_cascade_steps: int = 1000


Replacement = tuple[int, tuple[GemType, ...]]


@dataclass(frozen=True)
class ExplodeAndReplacePhase:
    """
    Result of committing a move.

    Holds the matches removed and the replacements spawned in the final
    cascade step, enough to drive a removal/refill animation. Replacements are
    (column_index, gem_types) pairs; gem_types[0] ends up at the top.
    """

    matches: tuple[Match, ...] = ()
    replacements: tuple[Replacement, ...] = ()
    termination_reason: TerminationReason = TerminationReason.STABLE
    steps: int = 0

    def is_nothing_to_do(self) -> bool:
        return len(self.matches) == 0

    @property
    def removed_positions(self) -> frozenset[GridPosition]:
        return matched_positions(self.matches)

    @property
    def hit_safety_bound(self) -> bool:
        return self.termination_reason != TerminationReason.STABLE


# =============================================================================
# Grid Construction
# =============================================================================


def build_matchless_grid(
    width: int,
    height: int,
    palette: Sequence[GemType] = PALETTE,
    rng: RandomSource | None = None,
) -> GemGrid:
    """
    Fill a grid column by column so that no run of three identical gems exists.

    For each cell the candidates start as the full palette. The vertical
    predecessor's type is removed if the two cells above already match each
    other, and the horizontal predecessor's type is removed if the two cells to
    the left already match each other.

    Args:
        width: Number of columns (>= 3)
        height: Number of rows (>= 3)
        palette: Gem types to draw from
        rng: Random source, defaults to a fresh random.Random()

    Returns:
        A new GemGrid with no matches

    Raises:
        InvalidDimensions: If width or height is below 3
        ValueError: If the palette is empty
    """
    if width < MIN_RUN or height < MIN_RUN:
        raise InvalidDimensions(
            f"Grid must be at least {MIN_RUN}x{MIN_RUN}, got {width}x{height}"
        )
    if not palette:
        raise ValueError("Palette must contain at least one gem type")
    rng = rng if rng is not None else random.Random()

    columns: list[list[GemType]] = []
    for x in range(width):
        column: list[GemType] = []
        columns.append(column)
        for y in range(height):
            candidates = list(palette)

            if y >= 2 and column[y - 1] == column[y - 2]:
                candidates = [t for t in candidates if t != column[y - 1]]

            if x >= 2 and columns[x - 1][y] == columns[x - 2][y]:
                candidates = [t for t in candidates if t != columns[x - 1][y]]

            # Only reachable with palettes smaller than three
            column.append(rng.choice(candidates) if candidates else palette[0])

    return GemGrid.from_columns(columns)


# =============================================================================
# Move Application
# =============================================================================


def _rotate(seq: tuple[Gem, ...], amount: int) -> tuple[Gem, ...]:
    """Rotate so entries move toward higher indices by amount (with wrap)."""
    amount %= len(seq)
    if amount == 0:
        return seq
    return seq[-amount:] + seq[:-amount]


def _coerce_axis(axis: Axis | str) -> Axis:
    if isinstance(axis, Axis):
        return axis
    try:
        return Axis(axis)
    except ValueError:
        raise InvalidAxis(f"Invalid axis: {axis!r} (expected 'row' or 'col')") from None


def apply_move(grid: GemGrid, action: MoveAction) -> GemGrid:
    """
    Apply a cyclic row or column shift, returning a new grid.

    Args:
        grid: The grid to shift (never modified)
        action: Which line to shift and by how much

    Returns:
        New GemGrid with the line rotated

    Raises:
        InvalidAxis: If the axis is neither row nor col
        OutOfRange: If the index is outside the grid
    """
    axis = _coerce_axis(action.axis)

    if axis == Axis.ROW:
        if not 0 <= action.index < grid.height:
            raise OutOfRange(
                f"Row index {action.index} outside grid of height {grid.height}"
            )
        moved_row = _rotate(grid.row(action.index), action.amount)
        new_columns = tuple(
            col[: action.index] + (moved_row[x],) + col[action.index + 1 :]
            for x, col in enumerate(grid.columns)
        )
    else:
        if not 0 <= action.index < grid.width:
            raise OutOfRange(
                f"Column index {action.index} outside grid of width {grid.width}"
            )
        new_columns = tuple(
            _rotate(col, action.amount) if x == action.index else col
            for x, col in enumerate(grid.columns)
        )

    return GemGrid(new_columns)


def apply_moves(grid: GemGrid, actions: Iterable[MoveAction]) -> GemGrid:
    """Apply each action in order."""
    for action in actions:
        grid = apply_move(grid, action)
    return grid


# =============================================================================
# Match Detection
# =============================================================================


def _scan_line(positions: list[GridPosition], gems: Sequence[Gem]) -> list[Match]:
    """Find runs of MIN_RUN or more in one line; runs never overlap."""
    matches: list[Match] = []
    start = 0
    for i in range(1, len(gems) + 1):
        if i < len(gems) and gems[i] == gems[start]:
            continue
        if i - start >= MIN_RUN:
            matches.append(tuple(positions[start:i]))
        start = i
    return matches


def find_matches(grid: GemGrid) -> list[Match]:
    """
    Find every run of three or more identical gems.

    Horizontal matches come first in row-major order, then vertical matches in
    column-major order. A gem can be part of one horizontal and one vertical
    match at the same time.
    """
    matches: list[Match] = []

    for y in range(grid.height):
        positions = [GridPosition(x, y) for x in range(grid.width)]
        matches.extend(_scan_line(positions, grid.row(y)))

    for x in range(grid.width):
        positions = [GridPosition(x, y) for y in range(grid.height)]
        matches.extend(_scan_line(positions, grid.columns[x]))

    return matches


def matched_positions(matches: Iterable[Match]) -> frozenset[GridPosition]:
    """Union of all positions across matches, deduplicated."""
    return frozenset(pos for match in matches for pos in match)


# =============================================================================
# Spawning
# =============================================================================


class GemSpawner:
    """
    Produces replacement gems.

    Pending types queued with extend() are handed out first (FIFO); once the
    queue is empty gems are drawn uniformly from the palette.
    """

    def __init__(
        self,
        palette: Sequence[GemType] = PALETTE,
        rng: RandomSource | None = None,
        queue: Iterable[GemType] = (),
    ) -> None:
        if not palette:
            raise ValueError("Palette must contain at least one gem type")
        self.palette = tuple(palette)
        self.rng = rng if rng is not None else random.Random()
        self._queue: deque[GemType] = deque(GemType(t) for t in queue)

    @property
    def pending(self) -> tuple[GemType, ...]:
        return tuple(self._queue)

    def extend(self, gem_types: Iterable[GemType | str]) -> None:
        if isinstance(gem_types, str):
            raise ValueError(
                f"Expected a sequence of gem types, got the string {gem_types!r}"
            )
        # Convert everything before touching the queue so a bad entry adds nothing
        self._queue.extend([GemType(t) for t in gem_types])

    def clear(self) -> None:
        self._queue.clear()

    def next_gem(self) -> Gem:
        if self._queue:
            return Gem(self._queue.popleft())
        return Gem(self.rng.choice(self.palette))


# =============================================================================
# Cascade Resolution
# =============================================================================


def plan_replacements(
    matches: Sequence[Match], spawner: GemSpawner
) -> tuple[Replacement, ...]:
    """
    Draw replacement gems for every column touched by the matches.

    Columns are served in ascending order; each gets one gem per removed
    position, in draw order.
    """
    per_column = Counter(pos.x for pos in matched_positions(matches))
    return tuple(
        (x, tuple(spawner.next_gem().type for _ in range(count)))
        for x, count in sorted(per_column.items())
    )


def apply_explode_and_replace(grid: GemGrid, phase: ExplodeAndReplacePhase) -> GemGrid:
    """
    Remove the matched gems and drop the replacements in at the top.

    Within a column, the surviving gems keep their order and slide down; the
    first replacement ends up closest to the top. Columns are truncated to the
    grid height.
    """
    removed = phase.removed_positions
    new_columns = list(grid.columns)

    for x, gem_types in phase.replacements:
        survivors = [gem for y, gem in enumerate(grid.column(x)) if GridPosition(x, y) not in removed]
        updated = [Gem(t) for t in gem_types] + survivors
        new_columns[x] = tuple(updated[: grid.height])

    return GemGrid(tuple(new_columns))


def _is_repeat(
    stop: CascadeStop, previous: Sequence[Match], current: Sequence[Match]
) -> bool:
    if stop == CascadeStop.MATCH_COUNT:
        return len(current) == len(previous)
    return matched_positions(current) == matched_positions(previous)


def resolve_cascade(
    grid: GemGrid,
    actions: Sequence[MoveAction],
    spawner: GemSpawner,
    config: EngineConfig = EngineConfig(),
) -> tuple[GemGrid, ExplodeAndReplacePhase]:
    """
    Apply moves and resolve the resulting explode-and-replace cascade.

    Each step removes every matched gem at once, refills the affected columns
    from the spawner and re-detects. The loop ends when no match remains, or
    when the configured safety heuristic or step cap cuts it off.

    Args:
        grid: Starting grid (never modified)
        actions: Moves to apply, in order, before resolving
        spawner: Source of replacement gems (its queue is consumed)
        config: Cascade stop heuristic and step cap

    Returns:
        Tuple of (resolved grid, phase describing the final step)
    """
    grid = apply_moves(grid, actions)
    matches = find_matches(grid)
    if not matches:
        return grid, ExplodeAndReplacePhase()

    steps = 0
    while True:
        replacements = plan_replacements(matches, spawner)
        phase = ExplodeAndReplacePhase(tuple(matches), replacements)
        grid = apply_explode_and_replace(grid, phase)
        steps += 1

        next_matches = find_matches(grid)
        logger.debug(
            "resolve_cascade: step %d removed %d gem(s), %d match(es) follow",
            steps,
            len(phase.removed_positions),
            len(next_matches),
        )

        if not next_matches:
            reason = TerminationReason.STABLE
        elif steps >= config.max_cascade_steps:
            reason = TerminationReason.MAX_STEPS_REACHED
        elif _is_repeat(config.cascade_stop, matches, next_matches):
            reason = (
                TerminationReason.REPEATED_MATCH_COUNT
                if config.cascade_stop == CascadeStop.MATCH_COUNT
                else TerminationReason.REPEATED_MATCHES
            )
        else:
            matches = next_matches
            continue

        return grid, ExplodeAndReplacePhase(phase.matches, replacements, reason, steps)


# =============================================================================
# Engine Facade
# =============================================================================


class PuzzleEngine:
    """
    Owner of the authoritative grid and the spawn queue.

    evaluate() answers "what would this move match?" without touching state;
    commit() is the only way the grid changes. Callers get snapshots, never the
    live grid.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        rng: RandomSource | None = None,
        grid: GemGrid | None = None,
    ) -> None:
        self.config = config if config is not None else EngineConfig()
        self.rng = rng if rng is not None else random.Random()
        self._spawner = GemSpawner(self.config.palette, self.rng)
        self._grid = (
            grid
            if grid is not None
            else build_matchless_grid(
                self.config.width, self.config.height, self.config.palette, self.rng
            )
        )

    @property
    def width(self) -> int:
        return self._grid.width

    @property
    def height(self) -> int:
        return self._grid.height

    @property
    def pending_gems(self) -> tuple[GemType, ...]:
        return self._spawner.pending

    def get(self, x: int, y: int) -> Gem:
        return self._grid.get(x, y)

    def snapshot(self) -> GemGrid:
        return self._grid.snapshot()

    def evaluate(self, action: MoveAction) -> list[Match]:
        """Matches the move would produce, leaving the grid untouched."""
        return find_matches(apply_move(self._grid, action))

    def commit(self, actions: Iterable[MoveAction]) -> ExplodeAndReplacePhase:
        """
        Apply moves to the authoritative grid and resolve the cascade.

        Atomic: if any action is invalid the grid is left unchanged.
        """
        actions = list(actions)
        grid, phase = resolve_cascade(self._grid, actions, self._spawner, self.config)
        self._grid = grid

        if phase.hit_safety_bound:
            logger.info(
                "commit: cascade cut off after %d step(s) (%s), %d match(es) remain",
                phase.steps,
                phase.termination_reason.value,
                len(find_matches(grid)),
            )
        else:
            logger.debug("commit: %d action(s) resolved in %d step(s)", len(actions), phase.steps)
        return phase

    def add_pending_gems(self, gem_types: Iterable[GemType | str]) -> None:
        self._spawner.extend(gem_types)

    def reset(self, clear_queue: bool = False) -> None:
        """
        Regenerate a matchless grid of the same size.

        The spawn queue is kept unless clear_queue is set.
        """
        self._grid = build_matchless_grid(
            self.width, self.height, self.config.palette, self.rng
        )
        if clear_queue:
            self._spawner.clear()
