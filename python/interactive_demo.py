"""
Interactive demo for gemshift.
Pick a row or column, slide it with the keyboard, release to commit or revert.
"""

import logging
import random
import sys

import readchar
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from ascii_render import gem_color_fn, render_boards, render_grid, render_phase
from gem_types import Axis, GemGrid, MoveAction
from gemshift import (
    EngineConfig,
    ExplodeAndReplacePhase,
    PuzzleEngine,
    apply_move,
    find_matches,
)
from grid_parser import format_move, parse_grid, parse_moves


class InteractiveDemo:
    """Interactive demo for shift moves."""

    def __init__(self, engine: PuzzleEngine) -> None:
        self.engine = engine
        self.axis = Axis.ROW
        self.index = 0
        self.shift = 0  # Uncommitted preview offset
        self.last_phase: ExplodeAndReplacePhase | None = None
        self.console = Console()
        self.status_message = "Ready"

    @property
    def preview_move(self) -> MoveAction:
        return MoveAction(self.axis, self.index, self.shift)

    @property
    def line_count(self) -> int:
        return self.engine.height if self.axis == Axis.ROW else self.engine.width

    def preview_grid(self) -> GemGrid:
        """The board as the player currently sees it, with the preview shift applied."""
        return apply_move(self.engine.snapshot(), self.preview_move)

    def toggle_axis(self) -> None:
        self.axis = Axis.COL if self.axis == Axis.ROW else Axis.ROW
        self.index = min(self.index, self.line_count - 1)
        self.shift = 0
        self.status_message = f"Selected {self.axis.value} {self.index}"

    def select(self, delta: int) -> None:
        """Move the selection to another line, dropping any preview shift."""
        self.index = (self.index + delta) % self.line_count
        self.shift = 0
        self.status_message = f"Selected {self.axis.value} {self.index}"

    def nudge(self, delta: int) -> None:
        """Slide the selected line by delta cells without touching the engine."""
        self.shift += delta
        matches = self.engine.evaluate(self.preview_move)
        self.status_message = f"Preview {format_move(self.preview_move)}: {len(matches)} match(es)"

    def release(self) -> bool:
        """
        Finish the drag: commit if the preview produces matches, otherwise revert.

        Returns:
            True if the move was committed
        """
        move = self.preview_move
        self.shift = 0

        if move.amount % self.line_count == 0:
            self.status_message = "Nothing to do"
            return False

        if not self.engine.evaluate(move):
            self.status_message = f"✗ {format_move(move)} makes no match, reverted"
            return False

        self.last_phase = self.engine.commit([move])
        self.status_message = (
            f"✓ {format_move(move)} committed: {len(self.last_phase.matches)} match(es) "
            f"in final step, {self.last_phase.steps} step(s)"
        )
        if self.last_phase.hit_safety_bound:
            self.status_message += f" (stopped: {self.last_phase.termination_reason.value})"
        return True

    def reset_board(self, clear_queue: bool = False) -> None:
        """Deal a fresh board, optionally dropping the pending gems."""
        self.engine.reset(clear_queue)
        self.shift = 0
        self.last_phase = None
        self.status_message = "Board reset, queue cleared" if clear_queue else "Board reset"

    def generate_display(self) -> Panel:
        """Generate the current display with board and status."""
        grid = self.preview_grid()
        matches = find_matches(grid)
        lines = render_grid(
            grid,
            "preview" if self.shift else "board",
            highlight=[pos for match in matches for pos in match],
            selected=(self.axis, self.index),
            color_fn=gem_color_fn,
        )

        body = Text.from_ansi("\n".join(lines))
        body.append("\n\n")
        body.append("Selection: ", style="bold")
        body.append(f"{self.axis.value} {self.index}, shift {self.shift:+d}\n")
        body.append("Pending gems: ", style="bold")
        pending = self.engine.pending_gems
        body.append(" ".join(t.letter for t in pending) if pending else "(random)")
        body.append("\n\n")
        body.append("x", style="bold cyan")
        body.append(" axis  ")
        body.append("j/k", style="bold cyan")
        body.append(" select  ")
        body.append("a/d", style="bold cyan")
        body.append(" slide  ")
        body.append("space", style="bold cyan")
        body.append(" release  ")
        body.append("n", style="bold cyan")
        body.append(" new board  ")
        body.append("c", style="bold cyan")
        body.append(" new board, clear queue  ")
        body.append("q", style="bold cyan")
        body.append(" quit\n\n")
        body.append(self.status_message)

        return Panel(body, title="gemshift", border_style="green", width=60)

    def handle_key(self, key: str) -> bool:
        """Apply one key press. Returns False when the demo should stop."""
        key = key.lower()
        if key == "q":
            self.status_message = "Quitting..."
            return False
        elif key == "x":
            self.toggle_axis()
        elif key == "j":
            self.select(1)
        elif key == "k":
            self.select(-1)
        elif key == "a":
            self.nudge(-1)
        elif key == "d":
            self.nudge(1)
        elif key in (" ", readchar.key.ENTER):
            self.release()
        elif key == "n":
            self.reset_board()
        elif key == "c":
            self.reset_board(clear_queue=True)
        else:
            self.status_message = f"Unknown key: {repr(key)}"
        return True

    def run(self) -> None:
        """Run the interactive demo."""
        with Live(self.generate_display(), console=self.console, refresh_per_second=4) as live:
            try:
                running = True
                while running:
                    live.update(self.generate_display())
                    running = self.handle_key(readchar.readkey())
                live.update(self.generate_display())

            except KeyboardInterrupt:
                self.status_message = "Interrupted by user"
                live.update(self.generate_display())


LAYOUTS = dict(
    cascade="RGBYP|RYBPG|GRYBB|BPGRY|YBRGP",
    stripes="RGB|GBR|BRG",
)


def run_script(engine: PuzzleEngine, moves: str) -> None:
    """Commit each move in order and print what happened (no key input)."""
    print("\n".join(render_grid(engine.snapshot(), "start", color_fn=gem_color_fn)))
    for move in parse_moves(moves):
        matches = engine.evaluate(move)
        print()
        if not matches:
            print(f"{format_move(move)}: no match, skipped")
            continue
        before = engine.snapshot()
        exploding = apply_move(before, move)
        phase = engine.commit([move])
        print(f"{format_move(move)}:")
        print("\n".join(render_phase(exploding, phase, color_fn=gem_color_fn)))
        print(render_boards({"before": before, "after": engine.snapshot()}), end="")


def main(engine: PuzzleEngine) -> None:
    """Run interactive demo on the given engine."""
    demo = InteractiveDemo(engine)
    demo.run()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == 'sublime':
        # Running from IDE - play a fixed script instead of reading keys
        logging.basicConfig(level=logging.DEBUG, format='%(levelname)s: %(message)s')

        print('Running from IDE - playing scripted moves')
        print()

        engine = PuzzleEngine(rng=random.Random(7), grid=parse_grid(LAYOUTS['cascade']))
        engine.add_pending_gems([gem.type for gem in parse_grid("PYRGB").row(0)])
        run_script(engine, "c2+1 c4-1 r0+2")
    else:
        layout = sys.argv[1] if len(sys.argv) > 1 else None
        seed = int(sys.argv[2]) if len(sys.argv) > 2 else None
        grid = parse_grid(LAYOUTS[layout]) if layout else None
        main(PuzzleEngine(EngineConfig(), rng=random.Random(seed), grid=grid))
