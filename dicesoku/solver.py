"""
Backtracking auto-solver for Dicesoku sessions.

The session is compiled into flat, index-addressed working arrays (cell values,
what each line still needs, empties per line, pool counts). The search assigns
and unassigns dice in place on those arrays, so no state is cloned per node,
and the caller's session is only read.

Search:
    1. Pool size must equal the number of empty playable cells, and the pips
       in the pool must equal what the rows and the columns still need, else
       the state is reported INFEASIBLE without searching.
    2. Empty cells are ranked once by ascending candidate count.
    3. At every node each line gets a mask of the dice one more of its cells
       may take, bounded by the smallest and largest dice left in the pool.
       A cell's candidates are its row mask AND its column mask.
    4. The node is dead when a line can no longer reach its target, a cell has
       no candidate, cells with a single candidate ask for more of a value
       than the pool holds, or some die in the pool fits fewer cells than
       there are copies of it.
    5. Otherwise the cell with fewest candidates is assigned next (ties go to
       the cell closing the most line cells, then to the step 2 rank), trying
       scarce pool values first.

Each attempt is capped at a node count that grows between attempts. Later
attempts shuffle the tie-breaking order. An attempt that finishes under its
cap is a complete search, so it settles SOLVED or NO_SOLUTION.

The wall clock is read every SolverConfig.time_check_interval nodes. Running
out of time is reported as TIMEOUT, which is inconclusive, as opposed to
NO_SOLUTION after an exhausted search.
"""
import logging
import time
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Callable, List, Optional, Tuple

import numpy as np

from dicesoku.commands import BatchCommand, PlaceDieCommand
from dicesoku.config import DEFAULT_SOLVER_CONFIG, SolverConfig
from dicesoku.engine import Session
from dicesoku.level import empty_pool
from dicesoku.types import CellState, DIE_VALUES, GameStatus, MAX_DIE, MIN_DIE, SolveOutcome
from dicesoku import validation

logger = logging.getLogger(__name__)

# Bit d of a mask stands for die value d
_MASKS = range(1 << (MAX_DIE + 1))
MASK_DICE = tuple(tuple(die for die in DIE_VALUES if mask >> die & 1) for mask in _MASKS)
POPCOUNT = tuple(len(dice) for dice in MASK_DICE)


def _span(low: int, high: int) -> int:
    """Mask of the die values low..high."""
    if low > high:
        return 0
    return ((2 << high) - 1) ^ ((1 << low) - 1)


@dataclass(frozen=True)
class SolveResult:
    """Outcome of one search."""
    outcome: SolveOutcome
    assignments: Tuple[Tuple[int, int, int], ...] = ()   # (row, col, die) for each filled cell
    nodes: int = 0
    elapsed: float = 0.0

    @property
    def solved(self) -> bool:
        return self.outcome == SolveOutcome.SOLVED


class _Timeout(Exception):
    """Raised inside the recursion when the time budget is spent."""


class _Restart(Exception):
    """Raised inside the recursion when an attempt reaches its node cap."""


class Solver:
    """
    Solves one session snapshot.

    Args:
        session: Session to complete (read only)
        config: Time budget, restart and pruning settings
        clock: Monotonic clock in seconds, injectable for tests
    """

    def __init__(self, session: Session, config: Optional[SolverConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.session = session
        self.config = config or DEFAULT_SOLVER_CONFIG
        self.clock = clock

        level = session.level
        self.size = level.size
        self.row_targets = level.targets.rows
        self.col_targets = level.targets.cols
        self.check_lines = self.size <= self.config.line_check_max_size

        self.order: List[int] = []
        self.nodes = 0
        self._attempt_nodes = 0
        self._node_cap = 0
        self._value_rank = list(range(MAX_DIE + 1))
        self._started = 0.0
        self._load()

    def _load(self) -> None:
        """(Re)build the working arrays from the session."""
        n = self.size
        # Arena: cell index i = row * n + col
        self.values: List[int] = [0] * (n * n)
        self.row_need = list(self.row_targets)
        self.col_need = list(self.col_targets)
        self.row_empty = [0] * n
        self.col_empty = [0] * n
        self.empties: List[int] = []

        for (row, col), (state, value) in self.session.grid.cell_states.items():
            index = row * n + col
            if state == CellState.FILLED:
                self.values[index] = value
                self.row_need[row] -= value
                self.col_need[col] -= value
            elif state == CellState.EMPTY:
                self.row_empty[row] += 1
                self.col_empty[col] += 1
                self.empties.append(index)
        self.empties.sort()

        # pool[d] for d in 1..6; index 0 unused
        self.pool = [0] * (MAX_DIE + 1)
        for die, count in self.session.dice_pool.items():
            self.pool[die] = count
        self.pool_mask = 0
        for die in DIE_VALUES:
            if self.pool[die] > 0:
                self.pool_mask |= 1 << die
        self.dice_left = sum(self.pool)

    # =========================================================================
    # CANDIDATES / VIABILITY
    # =========================================================================

    def _pool_bounds(self) -> Tuple[List[int], List[int]]:
        """
        Running totals of the smallest and of the largest dice in the pool.

        lows[k] and highs[k] bound the total of any k dice still in the pool,
        for k up to the longest a line can be.
        """
        limit = min(self.size, self.dice_left)
        lows, highs = [0], [0]
        for die in DIE_VALUES:
            for _ in range(min(self.pool[die], limit + 1 - len(lows))):
                lows.append(lows[-1] + die)
        for die in reversed(DIE_VALUES):
            for _ in range(min(self.pool[die], limit + 1 - len(highs))):
                highs.append(highs[-1] + die)
        return lows, highs

    def _line_mask(self, need: int, empty: int, lows: List[int], highs: List[int]) -> Optional[int]:
        """Dice one more cell of a line may take, or None if the line is dead."""
        if empty == 0:
            return 0 if need == 0 or not self.check_lines else None
        if not self.check_lines:
            return _span(MIN_DIE, min(MAX_DIE, need)) & self.pool_mask
        if empty >= len(lows) or not validation.line_is_achievable(
                0, need, empty, lows[empty], highs[empty]):
            return None
        rest = empty - 1
        return _span(max(MIN_DIE, need - highs[rest]), min(MAX_DIE, need - lows[rest])) & self.pool_mask

    def _line_masks(self) -> Optional[Tuple[List[int], List[int]]]:
        lows, highs = self._pool_bounds()
        row_masks, col_masks = [], []
        for need, empty in zip(self.row_need, self.row_empty):
            mask = self._line_mask(need, empty, lows, highs)
            if mask is None:
                return None
            row_masks.append(mask)
        for need, empty in zip(self.col_need, self.col_empty):
            mask = self._line_mask(need, empty, lows, highs)
            if mask is None:
                return None
            col_masks.append(mask)
        return row_masks, col_masks

    def candidates(self, index: int) -> List[int]:
        """
        Die values that can go in an empty cell right now.

        A value must be in the pool and keep its row and column at or below
        target. With line checks enabled it must also leave both lines able to
        reach their targets with the dice the pool still holds.
        """
        masks = self._line_masks()
        if masks is None:
            return []
        row, col = divmod(index, self.size)
        return list(MASK_DICE[masks[0][row] & masks[1][col]])

    def _select_cell(self) -> Optional[Tuple[int, int]]:
        """Most constrained empty cell and its candidate mask, or None if the node is dead."""
        masks = self._line_masks()
        if masks is None:
            return None
        row_masks, col_masks = masks

        n = self.size
        best, best_mask, best_key = -1, 0, None
        demand = [0] * (MAX_DIE + 1)
        mask_cells = {}
        for index in self.order:
            if self.values[index]:
                continue
            row, col = divmod(index, n)
            mask = row_masks[row] & col_masks[col]
            count = POPCOUNT[mask]
            if count == 0:
                return None
            if count == 1:
                demand[MASK_DICE[mask][0]] += 1
            mask_cells[mask] = mask_cells.get(mask, 0) + 1
            key = (count << 5) + self.row_empty[row] + self.col_empty[col]
            if best_key is None or key < best_key:
                best, best_mask, best_key = index, mask, key

        room = [0] * (MAX_DIE + 1)
        for mask, cells in mask_cells.items():
            for die in MASK_DICE[mask]:
                room[die] += cells
        for die in DIE_VALUES:
            if demand[die] > self.pool[die] or room[die] < self.pool[die]:
                return None
        return best, best_mask

    # =========================================================================
    # ASSIGNMENT
    # =========================================================================

    def _assign(self, index: int, die: int) -> None:
        row, col = divmod(index, self.size)
        self.values[index] = die
        self.row_need[row] -= die
        self.col_need[col] -= die
        self.row_empty[row] -= 1
        self.col_empty[col] -= 1
        self.pool[die] -= 1
        if self.pool[die] == 0:
            self.pool_mask &= ~(1 << die)
        self.dice_left -= 1

    def _unassign(self, index: int, die: int) -> None:
        row, col = divmod(index, self.size)
        self.values[index] = 0
        self.row_need[row] += die
        self.col_need[col] += die
        self.row_empty[row] += 1
        self.col_empty[col] += 1
        self.pool[die] += 1
        self.pool_mask |= 1 << die
        self.dice_left += 1

    def _check_clock(self) -> None:
        if self.clock() - self._started > self.config.time_budget:
            raise _Timeout()

    def _accept(self) -> bool:
        return not any(self.row_need) and not any(self.col_need) and self.dice_left == 0

    def _search(self) -> bool:
        self.nodes += 1
        self._attempt_nodes += 1
        if self.nodes % self.config.time_check_interval == 0:
            self._check_clock()
        if self._node_cap and self._attempt_nodes > self._node_cap:
            raise _Restart()

        if self.dice_left == 0:
            return self._accept()

        choice = self._select_cell()
        if choice is None:
            return False

        index, mask = choice
        rank = self._value_rank
        for die in sorted(MASK_DICE[mask], key=lambda d: (self.pool[d], rank[d])):
            self._assign(index, die)
            if self._search():
                return True
            self._unassign(index, die)
        return False

    # =========================================================================
    # ENTRY POINT
    # =========================================================================

    def _prepare_attempt(self, attempt: int, rng: np.random.Generator) -> None:
        """Rank the empty cells and die values for one attempt."""
        counts = {index: len(self.candidates(index)) for index in self.empties}
        if attempt == 0:
            cells = list(self.empties)
            self._value_rank = list(range(MAX_DIE + 1))
        else:
            cells = [self.empties[i] for i in rng.permutation(len(self.empties))]
            self._value_rank = [0] + [int(v) for v in rng.permutation(MAX_DIE)]
        self.order = sorted(cells, key=counts.get)
        self._attempt_nodes = 0

    def _search_with_restarts(self) -> bool:
        rng = np.random.default_rng(self.config.seed)
        cap = self.config.restart_nodes
        attempt = 0
        while True:
            self._node_cap = cap
            self._prepare_attempt(attempt, rng)
            try:
                return self._search()
            except _Restart:
                logger.debug("Attempt %d hit its %d node cap, restarting", attempt + 1, cap)
            self._load()
            attempt += 1
            cap = max(cap + 1, int(cap * self.config.restart_growth))

    def run(self) -> SolveResult:
        """Search for a completion of the session's grid."""
        self._started = self.clock()
        self.nodes = 0
        self._load()

        if self.dice_left != len(self.empties):
            logger.info("Infeasible state: %d dice for %d empty cells",
                        self.dice_left, len(self.empties))
            return SolveResult(SolveOutcome.INFEASIBLE, elapsed=self.clock() - self._started)

        pips = sum(die * self.pool[die] for die in DIE_VALUES)
        if pips != sum(self.row_need) or pips != sum(self.col_need):
            logger.info("Infeasible state: %d pips in the pool, lines need %d / %d",
                        pips, sum(self.row_need), sum(self.col_need))
            return SolveResult(SolveOutcome.INFEASIBLE, elapsed=self.clock() - self._started)

        try:
            self._check_clock()
            found = self._search_with_restarts()
        except _Timeout:
            elapsed = self.clock() - self._started
            logger.warning("Auto-solve gave up after %.2fs and %d nodes", elapsed, self.nodes)
            return SolveResult(SolveOutcome.TIMEOUT, nodes=self.nodes, elapsed=elapsed)

        elapsed = self.clock() - self._started
        if not found:
            logger.info("No solution after exhausting %d nodes", self.nodes)
            return SolveResult(SolveOutcome.NO_SOLUTION, nodes=self.nodes, elapsed=elapsed)

        assignments = tuple((i // self.size, i % self.size, self.values[i]) for i in self.empties)
        logger.debug("Solved in %.3fs, %d nodes", elapsed, self.nodes)
        return SolveResult(SolveOutcome.SOLVED, assignments, self.nodes, elapsed)


def solve(session: Session, config: Optional[SolverConfig] = None,
          clock: Callable[[], float] = time.monotonic) -> SolveResult:
    """Run the solver on a session snapshot."""
    return Solver(session, config, clock).run()


def apply_solution(session: Session, result: SolveResult) -> Optional[Session]:
    """
    Build the solved session from a successful result.

    The grid is completed, the pool emptied, status set to WON and both
    selection and move history cleared. Returns None if the assignments do
    not produce a winning grid.
    """
    if not result.solved:
        return None

    grid, pool = session.grid.copy(), dict(session.dice_pool)
    batch = BatchCommand([PlaceDieCommand(r, c, d) for r, c, d in result.assignments], "Auto-solve")
    if not batch.execute(grid, pool):
        return None

    check = validation.validate(grid, session.level)
    if not (check.is_valid and check.is_complete):
        return None

    return replace(
        session,
        grid=grid,
        dice_pool=MappingProxyType(empty_pool()),
        status=GameStatus.WON,
        loss_reason=None,
        move_history=(),
        selected_die=None,
        selected_from=None,
    )


def auto_solve(session: Session, config: Optional[SolverConfig] = None,
               clock: Callable[[], float] = time.monotonic) -> Optional[Session]:
    """
    Complete a session in play.

    Returns the solved, WON session, or None when the session is not in
    play, no completion exists or the time budget ran out. The input session
    is never modified.
    """
    if not session.is_playing:
        return None
    return apply_solution(session, solve(session, config, clock))


def describe_failure(result: SolveResult, size: int, config: Optional[SolverConfig] = None) -> str:
    """User-facing message for an unsuccessful search."""
    config = config or DEFAULT_SOLVER_CONFIG
    if result.outcome == SolveOutcome.TIMEOUT:
        if size >= config.inconclusive_size:
            return (f"Search exceeded the {config.time_budget:g}s time budget on a "
                    f"{size}x{size} board; the puzzle may still be solvable.")
        return f"Search exceeded the {config.time_budget:g}s time budget."
    if result.outcome == SolveOutcome.INFEASIBLE:
        return "No solution: the remaining dice do not match the empty cells."
    if result.outcome == SolveOutcome.NO_SOLUTION:
        return "No solution exists from the current board."
    return "Solved."
