"""
Shared types for the Dicesoku puzzle engine.
Separated to avoid circular imports between modules.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

DIE_VALUES: Tuple[int, ...] = (1, 2, 3, 4, 5, 6)
MIN_DIE = 1
MAX_DIE = 6

MIN_SIZE = 3
MAX_SIZE = 9


class CellState(Enum):
    """Possible states for grid cells."""
    EMPTY = "empty"       # Playable cell without a die
    FILLED = "filled"     # Playable cell holding a die
    BLOCKED = "blocked"   # Never holds a die, excluded from sums


class GameStatus(Enum):
    """Session status. WON and LOST are terminal."""
    PLAYING = "playing"
    WON = "won"
    LOST = "lost"


class SolveOutcome(Enum):
    """How an auto-solve attempt ended."""
    SOLVED = "solved"
    NO_SOLUTION = "no_solution"   # search space exhausted
    TIMEOUT = "timeout"           # inconclusive
    INFEASIBLE = "infeasible"     # pool/empty-cell mismatch, no search run


@dataclass(frozen=True)
class Placement:
    """One entry of the move history."""
    row: int
    col: int
    die: int


@dataclass(frozen=True)
class RunningTotals:
    """Current per-line sums of placed dice."""
    rows: Tuple[int, ...]
    cols: Tuple[int, ...]


@dataclass(frozen=True)
class ValidationResult:
    """Classification of a grid against its level's targets."""
    is_valid: bool
    exceeded_rows: Tuple[int, ...]
    exceeded_cols: Tuple[int, ...]
    is_complete: bool


class ValidationError:
    """Represents a validation error with severity and description."""
    def __init__(self, severity: str, message: str, location: Optional[Tuple[int, int]] = None):
        self.severity = severity  # "error", "warning", "info"
        self.message = message
        self.location = location

    def __str__(self):
        loc_str = f" at {self.location}" if self.location else ""
        return f"{self.severity.upper()}: {self.message}{loc_str}"

    def __repr__(self):
        return f"ValidationError({self.severity!r}, {self.message!r}, location={self.location!r})"


def is_die_value(value) -> bool:
    """True if value is an int in 1..6 (bools excluded)."""
    return isinstance(value, int) and not isinstance(value, bool) and MIN_DIE <= value <= MAX_DIE


def check_size(size: int) -> int:
    """Validate a board size, returning it unchanged."""
    if not isinstance(size, int) or not (MIN_SIZE <= size <= MAX_SIZE):
        raise ValueError(f"Board size must be an integer in [{MIN_SIZE}, {MAX_SIZE}]: {size!r}")
    return size
