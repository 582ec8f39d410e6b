"""
Level generator using a solution-first strategy.

Every attempt fills the playable cells with a hidden solution first and derives
targets and dice pool from it, so each candidate is solvable by construction.
Attempts are only rejected for balance (near-trivial or near-impossible lines,
a pool dominated by one value). After GeneratorConfig.max_attempts rejections
a deterministic fallback level is returned, so generate() always terminates.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union

import numpy as np

from dicesoku.config import DEFAULT_GENERATOR_CONFIG, GeneratorConfig
from dicesoku.level import Level
from dicesoku.types import DIE_VALUES, check_size

logger = logging.getLogger(__name__)

RandomSource = Union[None, int, np.random.Generator]


@dataclass
class GenerationStats:
    """Statistics for one generate() call."""
    attempts: int = 0
    rejections: Dict[str, int] = field(default_factory=dict)
    used_fallback: bool = False

    def reject(self, reason: str) -> None:
        self.rejections[reason] = self.rejections.get(reason, 0) + 1


def generate(size: int = 5, rng: RandomSource = None,
             config: Optional[GeneratorConfig] = None) -> Level:
    """
    Generate a solvable, reasonably balanced level.

    Args:
        size: Board side length in [3, 9]
        rng: None, an int seed or a numpy Generator; pass a seed for reproducible levels
        config: Generator bounds (defaults to DEFAULT_GENERATOR_CONFIG)
    """
    level, _ = generate_with_stats(size, rng, config)
    return level


def generate_with_stats(size: int = 5, rng: RandomSource = None,
                        config: Optional[GeneratorConfig] = None) -> Tuple[Level, GenerationStats]:
    """Same as generate() but also reports attempts and rejection reasons."""
    check_size(size)
    config = config or DEFAULT_GENERATOR_CONFIG
    rng = np.random.default_rng(rng)
    stats = GenerationStats()

    for attempt in range(1, config.max_attempts + 1):
        stats.attempts = attempt
        blocked = place_blocked_cells(size, rng, config)
        solution = synthesize_solution(blocked, rng, config)
        level = Level.from_solution(solution, blocked)

        reason = check_balance(level, config)
        if reason is None:
            logger.debug("Generated %dx%d level on attempt %d", size, size, attempt)
            return level, stats

        stats.reject(reason.split(":")[0])
        logger.debug("Attempt %d rejected: %s", attempt, reason)

    stats.used_fallback = True
    logger.warning("No balanced %dx%d level after %d attempts, using fallback",
                   size, size, config.max_attempts)
    return fallback_level(size, config), stats


# =============================================================================
# STEPS
# =============================================================================

def place_blocked_cells(size: int, rng: np.random.Generator,
                        config: GeneratorConfig = DEFAULT_GENERATOR_CONFIG) -> np.ndarray:
    """
    Randomly block a fraction of the board.

    A candidate is skipped when it would push its row or column above
    max_line_block_ratio of the line length. Placement stops after
    blocked_placement_attempts_factor * size * size draws even if fewer
    cells than requested were blocked.
    """
    mask = np.zeros((size, size), dtype=bool)
    lo, hi = config.blocked_fraction
    wanted = int(size * size * rng.uniform(lo, hi))
    line_limit = config.max_line_block_ratio * size

    row_counts = [0] * size
    col_counts = [0] * size
    placed = 0
    draws = 0
    max_draws = config.blocked_placement_attempts_factor * size * size

    while placed < wanted and draws < max_draws:
        draws += 1
        row = int(rng.integers(size))
        col = int(rng.integers(size))
        if mask[row, col]:
            continue
        if row_counts[row] + 1 > line_limit or col_counts[col] + 1 > line_limit:
            continue
        mask[row, col] = True
        row_counts[row] += 1
        col_counts[col] += 1
        placed += 1

    if placed < wanted:
        logger.debug("Blocked %d of %d requested cells", placed, wanted)
    return mask


def synthesize_solution(blocked: np.ndarray, rng: np.random.Generator,
                        config: GeneratorConfig = DEFAULT_GENERATOR_CONFIG) -> np.ndarray:
    """Fill every playable cell with a weighted die value; blocked cells hold 0."""
    weights = np.asarray(config.value_weights, dtype=float)
    weights = weights / weights.sum()

    solution = np.zeros(blocked.shape, dtype=int)
    playable = ~blocked
    solution[playable] = rng.choice(DIE_VALUES, size=int(playable.sum()), p=weights)
    return solution


def check_balance(level: Level, config: GeneratorConfig = DEFAULT_GENERATOR_CONFIG) -> Optional[str]:
    """
    Return None if the level is acceptable, else a "kind: detail" rejection reason.

    Every line needs at least one playable cell, a target strictly inside
    (cells, 6 * cells) and an average per cell within average_band. No die value
    may exceed max_value_share of the pool.
    """
    lo, hi = config.average_band
    for axis, targets, capacity in (("row", level.targets.rows, level.row_capacity),
                                    ("col", level.targets.cols, level.col_capacity)):
        for index, (target, cells) in enumerate(zip(targets, capacity)):
            if cells == 0:
                return f"empty_line: {axis} {index}"
            if not (cells < target < 6 * cells):
                return f"extreme_target: {axis} {index} target {target} with {cells} cells"
            average = target / cells
            if not (lo <= average <= hi):
                return f"average_out_of_band: {axis} {index} average {average:.2f}"

    total = level.pool_total()
    for die, count in level.dice_pool.items():
        if total and count / total > config.max_value_share:
            return f"dominant_value: {die} is {count} of {total} dice"
    return None


def fallback_level(size: int, config: GeneratorConfig = DEFAULT_GENERATOR_CONFIG) -> Level:
    """
    Deterministic level, solvable by construction.

    Blocks up to fallback_blocked_count cells at (i, (2i + 1) % size), one per
    row, and fills the rest with (row + col) % 6 + 1.
    """
    check_size(size)
    blocked = np.zeros((size, size), dtype=bool)
    for i in range(min(config.fallback_blocked_count, size)):
        blocked[i, (2 * i + 1) % size] = True

    rows, cols = np.indices((size, size))
    solution = (rows + cols) % 6 + 1
    solution[blocked] = 0
    return Level.from_solution(solution, blocked)
