"""
Plain-text rendering of Dicesoku boards for the command line.
Each cell is drawn in a fixed-width column; row targets sit on the right,
column targets underneath.
"""
from typing import List, Mapping, Optional, Sequence

from dicesoku.dice_grid import DiceGrid
from dicesoku.engine import Session, running_totals
from dicesoku.level import Level
from dicesoku.types import CellState, DIE_VALUES


class BoardTextRenderer:
    """Formats levels and sessions as monospace text."""

    def __init__(self, cell_width: int = 3, blocked_char: str = "#", empty_char: str = "."):
        """
        Initialize the renderer.

        Args:
            cell_width: Characters per cell column (at least 2)
            blocked_char: Glyph for blocked cells
            empty_char: Glyph for empty playable cells
        """
        self.cell_width = max(2, cell_width)
        self.blocked_char = blocked_char
        self.empty_char = empty_char

    def render_cell(self, state: CellState, value: Optional[int]) -> str:
        if state == CellState.BLOCKED:
            glyph = self.blocked_char
        elif state == CellState.EMPTY:
            glyph = self.empty_char
        else:
            glyph = str(value)
        return glyph.rjust(self.cell_width)

    def render_grid(self, grid: DiceGrid, row_targets: Sequence[int], col_targets: Sequence[int],
                    row_totals: Optional[Sequence[int]] = None,
                    col_totals: Optional[Sequence[int]] = None) -> str:
        """
        Draw the grid with targets, optionally as "total/target".
        """
        lines: List[str] = []
        rule = "+" + "-" * (self.cell_width * grid.size + 1) + "+"
        lines.append(rule)
        for row in range(grid.size):
            cells = "".join(self.render_cell(*grid.get_cell_state(row, col)) for col in range(grid.size))
            target = str(row_targets[row])
            if row_totals is not None:
                target = f"{row_totals[row]}/{target}"
            lines.append(f"|{cells} | {target}")
        lines.append(rule)

        width = self.cell_width
        lines.append(" " + "".join(str(t).rjust(width) for t in col_targets))
        if col_totals is not None:
            lines.append(" " + "".join(str(t).rjust(width) for t in col_totals) + "  (placed)")
        return "\n".join(lines)

    def render_pool(self, pool: Mapping[int, int]) -> str:
        """One line: "dice: 1x0 2x3 ..."."""
        return "dice: " + " ".join(f"{die}x{pool.get(die, 0)}" for die in DIE_VALUES)

    def render_level(self, level: Level) -> str:
        """Empty board with targets and the full pool."""
        grid = level.new_grid()
        return "\n".join([
            self.render_grid(grid, level.targets.rows, level.targets.cols),
            self.render_pool(level.dice_pool),
        ])

    def render_session(self, session: Session) -> str:
        """Board, running totals, pool, move count, budgets and status."""
        totals = running_totals(session)
        level = session.level
        return "\n".join([
            f"Level {session.level_number} ({session.grid_size}x{session.grid_size}) - {session.status.value}",
            self.render_grid(session.grid, level.targets.rows, level.targets.cols,
                             totals.rows, totals.cols),
            self.render_pool(session.dice_pool),
            f"moves: {session.move_count}  undos: {session.undos_remaining}  "
            f"replacements: {session.replacements_remaining}",
        ])
