"""
Dicesoku - Core Package
Grid model, level generation, validation, game state engine and auto-solver.
"""
from .types import (
    CellState, GameStatus, SolveOutcome, Placement, RunningTotals,
    ValidationResult, ValidationError, DIE_VALUES, MIN_SIZE, MAX_SIZE,
)
from .config import (
    GameConfig, GeneratorConfig, SolverConfig,
    CLASSIC_PROFILE, REPLACEMENT_PROFILE, DEFAULT_GAME_CONFIG,
)
from .dice_grid import DiceGrid
from .level import Level, Targets
from .validation import validate, validate_level
from .generator import generate
from .engine import (
    Session, new_session, reset, select, select_from_board, place, move,
    place_selected, undo, next_session, running_totals, validate_session, can_place, can_move,
)
from .solver import Solver, SolveResult, solve, auto_solve, describe_failure

__all__ = [
    'CellState', 'GameStatus', 'SolveOutcome', 'Placement', 'RunningTotals',
    'ValidationResult', 'ValidationError', 'DIE_VALUES', 'MIN_SIZE', 'MAX_SIZE',
    'GameConfig', 'GeneratorConfig', 'SolverConfig',
    'CLASSIC_PROFILE', 'REPLACEMENT_PROFILE', 'DEFAULT_GAME_CONFIG',
    'DiceGrid', 'Level', 'Targets', 'validate', 'validate_level', 'generate',
    'Session', 'new_session', 'reset', 'select', 'select_from_board', 'place', 'move',
    'place_selected', 'undo', 'next_session', 'running_totals', 'validate_session', 'can_place', 'can_move',
    'Solver', 'SolveResult', 'solve', 'auto_solve', 'describe_failure',
]
