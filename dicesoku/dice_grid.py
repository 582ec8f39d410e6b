"""
DiceGrid - play grid state for the Dicesoku engine.

Stores one (CellState, value) pair per coordinate of a square board.
Blocked cells mirror the level's blocked mask and are never written.

The grid itself is a mutable container; the game engine treats it as a value
by copying before every mutation (see engine.py), and the solver only ever
reads it when compiling its own working arrays.
"""
from typing import Dict, Tuple, Optional, List, Sequence

import numpy as np

from gridutils.coords import in_bounds, iter_cells
from dicesoku.types import CellState, is_die_value

Cell = Tuple[int, int]


class DiceGrid:
    """
    Square grid of dice cells.

    Attributes:
        size: Board side length
        cell_states: Mapping of (row, col) to (CellState, optional die value)
    """

    def __init__(self, size: int, blocked: Optional[Sequence[Sequence[bool]]] = None):
        """
        Initialize an empty grid.

        Args:
            size: Board side length (must be > 0)
            blocked: Optional size x size boolean mask of blocked cells
        """
        if size <= 0:
            raise ValueError(f"Grid size must be positive: {size}")

        self.size: int = size
        self.cell_states: Dict[Cell, Tuple[CellState, Optional[int]]] = {}

        mask = None
        if blocked is not None:
            mask = np.asarray(blocked, dtype=bool)
            if mask.shape != (size, size):
                raise ValueError(f"Blocked mask shape {mask.shape} does not match grid size {size}")

        self._initialize_empty_grid(mask)

    def _initialize_empty_grid(self, mask: Optional[np.ndarray]) -> None:
        """Mark every cell EMPTY or BLOCKED."""
        for row, col in iter_cells(self.size):
            if mask is not None and mask[row, col]:
                self.cell_states[(row, col)] = (CellState.BLOCKED, None)
            else:
                self.cell_states[(row, col)] = (CellState.EMPTY, None)

    # =============================================================================
    # CELL STATE QUERIES
    # =============================================================================

    def cell_exists(self, row: int, col: int) -> bool:
        """True if (row, col) is on the board."""
        return in_bounds(row, col, self.size)

    def get_cell_state(self, row: int, col: int) -> Tuple[CellState, Optional[int]]:
        """
        Get the state and value of a cell.

        Returns (BLOCKED, None) for out-of-bounds cells so callers can treat
        anything off the board as unplayable.
        """
        return self.cell_states.get((row, col), (CellState.BLOCKED, None))

    def get_value(self, row: int, col: int) -> Optional[int]:
        """Die value at (row, col), or None."""
        return self.get_cell_state(row, col)[1]

    def is_blocked(self, row: int, col: int) -> bool:
        return self.get_cell_state(row, col)[0] == CellState.BLOCKED

    def is_empty(self, row: int, col: int) -> bool:
        return self.get_cell_state(row, col)[0] == CellState.EMPTY

    def is_filled(self, row: int, col: int) -> bool:
        return self.get_cell_state(row, col)[0] == CellState.FILLED

    def get_empty_cells(self) -> List[Cell]:
        """Empty playable cells in row-major order."""
        return [cell for cell in iter_cells(self.size)
                if self.cell_states[cell][0] == CellState.EMPTY]

    def get_filled_cells(self) -> Dict[Cell, int]:
        """Cells holding a die, mapped to the die value."""
        return {cell: value for cell, (state, value) in self.cell_states.items()
                if state == CellState.FILLED}

    def blocked_mask(self) -> np.ndarray:
        """Boolean mask of blocked cells."""
        mask = np.zeros((self.size, self.size), dtype=bool)
        for (row, col), (state, _) in self.cell_states.items():
            if state == CellState.BLOCKED:
                mask[row, col] = True
        return mask

    # =============================================================================
    # DIRECT CELL MUTATIONS (used by commands)
    # =============================================================================

    def set_die(self, row: int, col: int, die: int) -> bool:
        """
        Write a die into an empty playable cell.

        Returns:
            True if written, False if the cell is blocked, occupied or off-board
        """
        if not is_die_value(die):
            raise ValueError(f"Die value must be in 1..6: {die!r}")
        if not self.is_empty(row, col):
            return False
        self.cell_states[(row, col)] = (CellState.FILLED, die)
        return True

    def clear_cell(self, row: int, col: int) -> Optional[int]:
        """
        Remove the die from a filled cell.

        Returns:
            The removed die value, or None if the cell held nothing
        """
        state, value = self.get_cell_state(row, col)
        if state != CellState.FILLED:
            return None
        self.cell_states[(row, col)] = (CellState.EMPTY, None)
        return value

    def copy(self) -> 'DiceGrid':
        """Independent copy of this grid."""
        clone = DiceGrid.__new__(DiceGrid)
        clone.size = self.size
        clone.cell_states = dict(self.cell_states)
        return clone

    # =============================================================================
    # COMPARISON
    # =============================================================================

    def __eq__(self, other):
        if not isinstance(other, DiceGrid):
            return NotImplemented
        return self.size == other.size and self.cell_states == other.cell_states

    __hash__ = None

    def __repr__(self):
        return f"DiceGrid(size={self.size}, filled={len(self.get_filled_cells())})"

    # =============================================================================
    # CONSTRUCTION FROM VALUES
    # =============================================================================

    @classmethod
    def from_values(cls, values: Sequence[Sequence[Optional[int]]],
                    blocked: Optional[Sequence[Sequence[bool]]] = None) -> 'DiceGrid':
        """
        Build a grid from a nested list of die values.

        Cells that are blocked in the mask must hold None.
        """
        size = len(values)
        grid = cls(size, blocked)
        for row, col in iter_cells(size):
            value = values[row][col]
            if value is None:
                continue
            if grid.is_blocked(row, col):
                raise ValueError(f"Blocked cell ({row}, {col}) cannot hold a die")
            grid.set_die(row, col, int(value))
        return grid
