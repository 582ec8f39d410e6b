"""
Grid operations for the Dicesoku engine. Placements can be undone, relocations are final.

Each command acts on a working (DiceGrid, pool) pair. The engine applies
commands to private copies of a session's grid and pool, so the session value
it started from is never touched.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Tuple

from dicesoku.dice_grid import DiceGrid
from dicesoku.types import Placement

Pool = Dict[int, int]


class Command(ABC):
    """Abstract base class for grid commands."""

    @abstractmethod
    def execute(self, grid: DiceGrid, pool: Pool) -> bool:
        """Execute the command. Returns True if successful."""
        pass

    def undo(self, grid: DiceGrid, pool: Pool) -> bool:
        """Undo the command. Returns True if successful; commands are final unless they override this."""
        return False

    @abstractmethod
    def get_description(self) -> str:
        """Get human-readable description of the command."""
        pass


class PlaceDieCommand(Command):
    """Take a die from the pool and put it in an empty cell."""

    def __init__(self, row: int, col: int, die: int):
        self.row = row
        self.col = col
        self.die = die

    @classmethod
    def from_placement(cls, placement: Placement) -> 'PlaceDieCommand':
        return cls(placement.row, placement.col, placement.die)

    def to_placement(self) -> Placement:
        return Placement(self.row, self.col, self.die)

    def execute(self, grid: DiceGrid, pool: Pool) -> bool:
        """Execute the placement."""
        if pool.get(self.die, 0) <= 0:
            return False
        if not grid.set_die(self.row, self.col, self.die):
            return False
        pool[self.die] -= 1
        return True

    def undo(self, grid: DiceGrid, pool: Pool) -> bool:
        """Return the die to the pool. Fails if the cell no longer holds it."""
        if grid.get_value(self.row, self.col) != self.die:
            return False
        grid.clear_cell(self.row, self.col)
        pool[self.die] += 1
        return True

    def get_description(self) -> str:
        return f"Place {self.die} at ({self.row}, {self.col})"


class RelocateDieCommand(Command):
    """Move a placed die to an empty playable cell. The pool is unchanged and the move is final."""

    def __init__(self, from_cell: Tuple[int, int], to_cell: Tuple[int, int]):
        self.from_cell = from_cell
        self.to_cell = to_cell
        self.die = None

    def execute(self, grid: DiceGrid, pool: Pool) -> bool:
        """Execute the relocation."""
        if self.from_cell == self.to_cell:
            return False
        die = grid.get_value(*self.from_cell)
        if die is None or not grid.is_filled(*self.from_cell):
            return False
        if not grid.is_empty(*self.to_cell):
            return False

        grid.clear_cell(*self.from_cell)
        grid.set_die(*self.to_cell, die)
        self.die = die
        return True

    def get_description(self) -> str:
        return f"Move die {self.from_cell} → {self.to_cell}"


class BatchCommand(Command):
    """Command that groups multiple commands into a single unit."""

    def __init__(self, commands: List[Command], description: str):
        self.commands = commands
        self.description = description
        self.executed_commands: List[Command] = []

    def execute(self, grid: DiceGrid, pool: Pool) -> bool:
        """Execute all commands in sequence, rolling back on the first failure."""
        self.executed_commands.clear()

        for command in self.commands:
            if not command.execute(grid, pool):
                self.undo(grid, pool)
                return False
            self.executed_commands.append(command)

        return True

    def undo(self, grid: DiceGrid, pool: Pool) -> bool:
        """Undo all commands in reverse order."""
        success = True
        for command in reversed(self.executed_commands):
            if not command.undo(grid, pool):
                success = False
        self.executed_commands.clear()
        return success

    def get_description(self) -> str:
        return self.description
