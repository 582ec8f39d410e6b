"""
Validation of play grids and levels.

running_totals/validate classify a grid against its level's targets and are
consulted after every engine mutation. validate_level performs structural
checks on a level and returns a list of ValidationError (empty == valid).
"""
from typing import List, Mapping, Optional

from dicesoku.dice_grid import DiceGrid
from dicesoku.level import Level, pool_is_empty, pool_total
from dicesoku.types import (
    CellState, MAX_DIE, MIN_DIE, RunningTotals, ValidationError, ValidationResult,
)


def running_totals(grid: DiceGrid) -> RunningTotals:
    """Per-line sums of placed dice; blocked and empty cells contribute 0."""
    rows = [0] * grid.size
    cols = [0] * grid.size
    for (row, col), (state, value) in grid.cell_states.items():
        if state == CellState.FILLED:
            rows[row] += value
            cols[col] += value
    return RunningTotals(tuple(rows), tuple(cols))


def validate(grid: DiceGrid, level: Level) -> ValidationResult:
    """
    Compare running totals with the level's targets.

    is_valid is False as soon as any line exceeds its target. is_complete is
    True only when every line total equals its target, independent of how many
    cells are filled.
    """
    totals = running_totals(grid)
    exceeded_rows = tuple(i for i, s in enumerate(totals.rows) if s > level.targets.rows[i])
    exceeded_cols = tuple(i for i, s in enumerate(totals.cols) if s > level.targets.cols[i])
    is_complete = (totals.rows == level.targets.rows and totals.cols == level.targets.cols)
    return ValidationResult(
        is_valid=not exceeded_rows and not exceeded_cols,
        exceeded_rows=exceeded_rows,
        exceeded_cols=exceeded_cols,
        is_complete=is_complete,
    )


def is_winning(grid: DiceGrid, level: Level, pool: Mapping[int, int]) -> bool:
    """Exact match on every line and no dice left."""
    result = validate(grid, level)
    return result.is_valid and result.is_complete and pool_is_empty(pool)


def line_is_achievable(current: int, target: int, remaining_empty: int,
                       smallest: Optional[int] = None, largest: Optional[int] = None) -> bool:
    """
    True if a line at `current` can still reach `target` with `remaining_empty` dice.

    smallest / largest bound the total of the dice that can still go in; by
    default each of them may be anything from 1 to 6.
    """
    if smallest is None:
        smallest = MIN_DIE * remaining_empty
    if largest is None:
        largest = MAX_DIE * remaining_empty
    return current + smallest <= target <= current + largest


def validate_level(level: Level) -> List[ValidationError]:
    """
    Return a list[ValidationError]. Empty list == VALID.
    Rules (hard errors):
    - Pool size equals the number of playable cells
    - Every line target is reachable from the empty board
    - Total of row targets equals total of column targets
    - Total pips in the pool equals the total of the targets
    Rules (warnings):
    - A line with no playable cells
    """
    errors: List[ValidationError] = []

    playable = level.playable_count
    total = pool_total(level.dice_pool)
    if total != playable:
        errors.append(ValidationError(
            "error", f"Dice pool holds {total} dice for {playable} playable cells"))

    for axis, targets, capacity in (("Row", level.targets.rows, level.row_capacity),
                                    ("Column", level.targets.cols, level.col_capacity)):
        for index, (target, cells) in enumerate(zip(targets, capacity)):
            if not line_is_achievable(0, target, cells):
                errors.append(ValidationError(
                    "error",
                    f"{axis} {index} target {target} unreachable with {cells} cells",
                ))
            if cells == 0:
                errors.append(ValidationError("warning", f"{axis} {index} has no playable cells"))

    if sum(level.targets.rows) != sum(level.targets.cols):
        errors.append(ValidationError(
            "error",
            f"Row targets sum to {sum(level.targets.rows)} but column targets to {sum(level.targets.cols)}",
        ))

    pips = sum(die * count for die, count in level.dice_pool.items())
    if pips != sum(level.targets.rows):
        errors.append(ValidationError(
            "error", f"Dice pool totals {pips} pips but row targets need {sum(level.targets.rows)}"))

    return errors
