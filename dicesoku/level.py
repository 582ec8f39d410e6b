"""
Level - the immutable description of one puzzle.

A level is the blocked mask, the row/column target sums and the dice pool.
It is created once (by the generator or from JSON) and never changes while a
session is played on it.

JSON layout:
    {
        "id": "level-1",
        "size": 5,
        "blocked": ["0,1", "3,3"],
        "targets": {"rows": [...], "cols": [...]},
        "dice_pool": {"1": 0, "2": 3, ...}
    }
"""
import json
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from gridutils.coords import coordinate_to_string, string_to_coordinate, in_bounds
from dicesoku.dice_grid import DiceGrid
from dicesoku.types import DIE_VALUES, check_size, is_die_value

logger = logging.getLogger(__name__)


# =============================================================================
# DICE POOL HELPERS
# =============================================================================

def empty_pool() -> Dict[int, int]:
    """A pool with all six keys at zero."""
    return {die: 0 for die in DIE_VALUES}


def normalize_pool(pool: Mapping) -> Dict[int, int]:
    """
    Copy a pool mapping into a plain dict keyed 1..6.

    Accepts int or string keys (JSON objects only carry strings). Missing
    keys become 0.

    Raises:
        ValueError: On unknown keys or negative counts
    """
    normalized = empty_pool()
    for key, count in pool.items():
        die = int(key)
        if not is_die_value(die):
            raise ValueError(f"Dice pool key out of range: {key!r}")
        count = int(count)
        if count < 0:
            raise ValueError(f"Dice pool count for {die} is negative: {count}")
        normalized[die] = count
    return normalized


def pool_total(pool: Mapping[int, int]) -> int:
    """Number of dice left in a pool."""
    return sum(pool.values())


def pool_is_empty(pool: Mapping[int, int]) -> bool:
    return all(count == 0 for count in pool.values())


def pool_from_values(values: Iterable[Optional[int]]) -> Dict[int, int]:
    """Multiset of the die values in an iterable (None entries ignored)."""
    pool = empty_pool()
    for value in values:
        if value is not None:
            pool[int(value)] += 1
    return pool


# =============================================================================
# LEVEL
# =============================================================================

@dataclass(frozen=True)
class Targets:
    """Row and column target sums."""
    rows: Tuple[int, ...]
    cols: Tuple[int, ...]


@dataclass(frozen=True, eq=False)
class Level:
    """
    One puzzle: blocked mask, targets and dice pool.

    Attributes:
        size: Board side length
        blocked: Read-only size x size boolean array
        targets: Row/column target sums
        dice_pool: Read-only mapping die value -> count (all six keys present)
    """
    size: int
    blocked: np.ndarray
    targets: Targets
    dice_pool: Mapping[int, int]

    def __post_init__(self):
        check_size(self.size)

        mask = np.array(self.blocked, dtype=bool)
        if mask.shape != (self.size, self.size):
            raise ValueError(f"Blocked mask shape {mask.shape} does not match size {self.size}")
        mask.setflags(write=False)

        rows = tuple(int(t) for t in self.targets.rows)
        cols = tuple(int(t) for t in self.targets.cols)
        if len(rows) != self.size or len(cols) != self.size:
            raise ValueError(f"Expected {self.size} row and column targets, got {len(rows)} and {len(cols)}")

        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "blocked", mask)
        object.__setattr__(self, "targets", Targets(rows, cols))
        object.__setattr__(self, "dice_pool", MappingProxyType(normalize_pool(self.dice_pool)))

    # -------------------------------------------------------------------------
    # Derived quantities
    # -------------------------------------------------------------------------

    @property
    def playable_count(self) -> int:
        """Number of non-blocked cells."""
        return int(self.size * self.size - self.blocked.sum())

    @property
    def row_capacity(self) -> Tuple[int, ...]:
        """Playable cells per row on the empty board."""
        return tuple(int(n) for n in (~self.blocked).sum(axis=1))

    @property
    def col_capacity(self) -> Tuple[int, ...]:
        """Playable cells per column on the empty board."""
        return tuple(int(n) for n in (~self.blocked).sum(axis=0))

    def pool_total(self) -> int:
        return pool_total(self.dice_pool)

    def is_blocked(self, row: int, col: int) -> bool:
        return bool(self.blocked[row, col])

    def new_grid(self) -> DiceGrid:
        """An empty play grid for this level."""
        return DiceGrid(self.size, self.blocked)

    def blocked_cells(self) -> List[Tuple[int, int]]:
        """Blocked coordinates in row-major order."""
        return [(int(r), int(c)) for r, c in zip(*np.nonzero(self.blocked))]

    def __eq__(self, other):
        if not isinstance(other, Level):
            return NotImplemented
        return (self.size == other.size
                and np.array_equal(self.blocked, other.blocked)
                and self.targets == other.targets
                and dict(self.dice_pool) == dict(other.dice_pool))

    __hash__ = None

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_solution(cls, solution: Sequence[Sequence[Optional[int]]],
                      blocked: Sequence[Sequence[bool]]) -> 'Level':
        """
        Derive targets and pool from a complete solution.

        The solution must hold a die in every non-blocked cell.
        """
        values = np.array([[0 if v is None else int(v) for v in row] for row in solution], dtype=int)
        mask = np.asarray(blocked, dtype=bool)
        size = values.shape[0]
        if values.shape != (size, size) or mask.shape != (size, size):
            raise ValueError("Solution and blocked mask must be square and of equal size")
        values[mask] = 0
        if np.any(values[~mask] == 0):
            raise ValueError("Solution leaves a playable cell empty")

        targets = Targets(tuple(int(s) for s in values.sum(axis=1)),
                          tuple(int(s) for s in values.sum(axis=0)))
        pool = pool_from_values(int(v) for v in values[~mask])
        return cls(size, mask, targets, pool)

    # =============================================================================
    # JSON IMPORT/EXPORT
    # =============================================================================

    def to_json(self, level_id: str = "level") -> Dict:
        """Export the level to a JSON-compatible dict."""
        return {
            "id": level_id,
            "size": self.size,
            "blocked": [coordinate_to_string(r, c) for r, c in self.blocked_cells()],
            "targets": {"rows": list(self.targets.rows), "cols": list(self.targets.cols)},
            "dice_pool": {str(die): int(count) for die, count in self.dice_pool.items()},
        }

    @classmethod
    def from_json(cls, json_data: Dict) -> 'Level':
        """
        Create a Level from JSON data.

        Raises:
            ValueError: If required keys are missing or malformed
        """
        try:
            size = int(json_data["size"])
            targets = json_data["targets"]
            rows = [int(t) for t in targets["rows"]]
            cols = [int(t) for t in targets["cols"]]
            pool = json_data["dice_pool"]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed level JSON: {e}") from e

        check_size(size)
        mask = np.zeros((size, size), dtype=bool)
        for coord in json_data.get("blocked", []) or []:
            if isinstance(coord, str):
                r, c = string_to_coordinate(coord)
            else:
                r, c = int(coord[0]), int(coord[1])
            if not in_bounds(r, c, size):
                raise ValueError(f"Blocked cell ({r}, {c}) is outside a {size}x{size} board")
            mask[r, c] = True

        return cls(size, mask, Targets(tuple(rows), tuple(cols)), pool)

    @classmethod
    def load_from_file(cls, filename: str) -> 'Level':
        """Load a Level from a JSON file."""
        with open(filename, 'r') as f:
            json_data = json.load(f)
        logger.debug("Loaded level from %s", filename)
        return cls.from_json(json_data)

    def save_json(self, filename: str, level_id: str = "level") -> None:
        """Save level to JSON file."""
        with open(filename, 'w') as f:
            json.dump(self.to_json(level_id), f, indent=2)
        logger.debug("Saved level %s to %s", level_id, filename)
