"""
config.py
Frozen dataclasses that centralise every rule option and numeric bound of the
engine. Related modules:
- engine.py: GameConfig budgets and whether relocation is allowed.
- generator.py: GeneratorConfig sampling and balance bounds.
- solver.py: SolverConfig time budget and pruning switches.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class GameConfig:
    """
    Move-cost model of a session.
    Fields:
        undo_budget (int): Undos available per level.
        replacement_budget (int): Relocations of placed dice available per level.
        allow_relocation (bool): If False, move() is always a no-op.
        name (str): Profile label for logs and the CLI.
    """
    undo_budget: int = 5
    replacement_budget: int = 3
    allow_relocation: bool = True
    name: str = "custom"

    def __post_init__(self):
        if self.undo_budget < 0 or self.replacement_budget < 0:
            raise ValueError("Budgets must be non-negative")


# Undo only: placed dice stay where they are.
CLASSIC_PROFILE = GameConfig(undo_budget=5, replacement_budget=0, allow_relocation=False, name="classic")
# Undo plus a separate budget of replacement tokens for relocating placed dice.
REPLACEMENT_PROFILE = GameConfig(undo_budget=5, replacement_budget=3, allow_relocation=True, name="replacement")

DEFAULT_GAME_CONFIG = REPLACEMENT_PROFILE


@dataclass(frozen=True)
class GeneratorConfig:
    """
    Level generator bounds.
    Fields:
        blocked_fraction (tuple): Uniform range of the fraction of cells to block.
        max_line_block_ratio (float): Max blocked share of any row or column.
        blocked_placement_attempts_factor (int): Attempts per cell when placing blocks.
        value_weights (tuple): Relative weights of die values 1..6 in the hidden solution.
        average_band (tuple): Allowed range of target / playable cells per line.
        max_value_share (float): Max share of one die value in the pool.
        max_attempts (int): Generation attempts before the deterministic fallback.
        fallback_blocked_count (int): Blocked cells in the fallback (capped at the board size).
    """
    blocked_fraction: Tuple[float, float] = (0.15, 0.30)
    max_line_block_ratio: float = 0.7
    blocked_placement_attempts_factor: int = 20
    value_weights: Tuple[float, ...] = (1.0, 2.0, 3.0, 3.0, 2.0, 1.0)
    average_band: Tuple[float, float] = (1.5, 5.5)
    max_value_share: float = 0.40
    max_attempts: int = 50
    fallback_blocked_count: int = 3

    def __post_init__(self):
        if len(self.value_weights) != 6:
            raise ValueError("value_weights needs one weight per die value")
        lo, hi = self.blocked_fraction
        if not (0.0 <= lo <= hi < 1.0):
            raise ValueError(f"Invalid blocked_fraction range: {self.blocked_fraction}")
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be non-negative")


@dataclass(frozen=True)
class SolverConfig:
    """
    Auto-solver limits.
    Fields:
        time_budget (float): Wall-clock seconds before the search gives up.
        time_check_interval (int): Search nodes between clock reads.
        line_check_max_size (int): Largest board on which per-line achievability is pruned.
        inconclusive_size (int): Board size from which a timeout is reported as inconclusive.
        restart_nodes (int): Node cap of the first search attempt; 0 searches once without a cap.
        restart_growth (float): Factor applied to the node cap after each restart.
        seed (int): Seed of the tie-breaking shuffles used by restarts.
    """
    time_budget: float = 10.0
    time_check_interval: int = 256
    line_check_max_size: int = 9
    inconclusive_size: int = 8
    restart_nodes: int = 2000
    restart_growth: float = 1.5
    seed: int = 0

    def __post_init__(self):
        if self.time_budget <= 0:
            raise ValueError("time_budget must be positive")
        if self.time_check_interval < 1:
            raise ValueError("time_check_interval must be at least 1")
        if self.restart_nodes < 0:
            raise ValueError("restart_nodes must be non-negative")
        if self.restart_growth < 1.0:
            raise ValueError("restart_growth must be at least 1")


DEFAULT_GENERATOR_CONFIG = GeneratorConfig()
DEFAULT_SOLVER_CONFIG = SolverConfig()
