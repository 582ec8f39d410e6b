"""
Game state engine for Dicesoku play sessions.

A Session is an immutable snapshot of one play session. Every operation in
this module is a pure transform: it returns a new Session (or the very same
object when the request is illegal) and never mutates its input. Mutations
are carried out by commands (commands.py) on private copies of the grid and
dice pool.

Status machine: PLAYING -> WON | LOST. Illegal requests are silent no-ops.
The one designed penalty is relocating a die with no replacement tokens
left, which ends the session as LOST.
"""
import logging
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from dicesoku.commands import PlaceDieCommand, RelocateDieCommand
from dicesoku.config import DEFAULT_GAME_CONFIG, GameConfig
from dicesoku.dice_grid import DiceGrid
from dicesoku.level import Level, pool_is_empty, pool_total
from dicesoku.types import GameStatus, Placement, RunningTotals, ValidationResult, is_die_value
from dicesoku import validation

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]

LOSS_POOL_EXHAUSTED = "pool_exhausted"
LOSS_RELOCATION_BUDGET = "relocation_budget"


@dataclass(frozen=True)
class Session:
    """
    Snapshot of a play session.

    Attributes:
        level: The level being played (shared, immutable)
        level_number: Progress counter supplied by the caller
        grid_size: Board size the session was started with
        grid: Play grid; treated as read-only, replaced on every mutation
        dice_pool: Read-only mapping die value -> remaining count
        config: Active move-cost profile
        undos_remaining: Undo budget left
        replacements_remaining: Relocation budget left
        status: PLAYING, WON or LOST
        loss_reason: Why the session was lost, if it was
        move_history: Placements in order; undo pops the last one
        selected_die: Currently selected die value, if any
        selected_from: Board cell the selected die was lifted from, if any
    """
    level: Level
    level_number: int
    grid_size: int
    grid: DiceGrid
    dice_pool: Mapping[int, int]
    config: GameConfig
    undos_remaining: int
    replacements_remaining: int
    status: GameStatus = GameStatus.PLAYING
    loss_reason: Optional[str] = None
    move_history: Tuple[Placement, ...] = ()
    selected_die: Optional[int] = None
    selected_from: Optional[Cell] = None

    __hash__ = None

    @property
    def is_playing(self) -> bool:
        return self.status == GameStatus.PLAYING

    @property
    def dice_remaining(self) -> int:
        return pool_total(self.dice_pool)

    @property
    def move_count(self) -> int:
        """Placements currently on record."""
        return len(self.move_history)

    def can_undo(self) -> bool:
        """True if undo() would change the session."""
        if self.loss_reason == LOSS_RELOCATION_BUDGET:
            return False
        if self.undos_remaining <= 0 or not self.move_history:
            return False
        last = self.move_history[-1]
        return self.grid.get_value(last.row, last.col) == last.die


# =============================================================================
# SESSION CREATION
# =============================================================================

def new_session(level: Level, level_number: int = 1, size: Optional[int] = None,
                config: Optional[GameConfig] = None) -> Session:
    """
    Seed a fresh play session from a level.

    Args:
        level: Generated or loaded level
        level_number: Progress counter, carried along for the caller
        size: Board size; must match level.size when given
        config: Move-cost profile (defaults to DEFAULT_GAME_CONFIG)
    """
    config = config or DEFAULT_GAME_CONFIG
    if size is not None and size != level.size:
        raise ValueError(f"Session size {size} does not match level size {level.size}")

    logger.debug("New session: level %d, %dx%d, profile %s",
                 level_number, level.size, level.size, config.name)
    return Session(
        level=level,
        level_number=level_number,
        grid_size=level.size,
        grid=level.new_grid(),
        dice_pool=MappingProxyType(dict(level.dice_pool)),
        config=config,
        undos_remaining=config.undo_budget,
        replacements_remaining=config.replacement_budget if config.allow_relocation else 0,
    )


def reset(session: Session) -> Session:
    """Start the same level over with full budgets. Allowed in any status."""
    return new_session(session.level, session.level_number, session.grid_size, session.config)


def next_session(session: Session, level: Level) -> Session:
    """
    Start the level that follows a finished session.

    The level number advances only after a win; otherwise the same number is
    played again on the new board. Board size and profile carry over, so
    `level` must have the session's size.
    """
    number = session.level_number + 1 if session.status == GameStatus.WON else session.level_number
    return new_session(level, number, session.grid_size, session.config)


# =============================================================================
# QUERIES
# =============================================================================

def running_totals(session: Session) -> RunningTotals:
    """Per-line sums of the session's placed dice, for display."""
    return validation.running_totals(session.grid)


def validate_session(session: Session) -> ValidationResult:
    """Validation of the session's grid against its level."""
    return validation.validate(session.grid, session.level)


def can_place(session: Session, row: int, col: int, die: int) -> bool:
    """The legality check place() applies: empty playable cell and a die in the pool."""
    return (is_die_value(die)
            and session.grid.is_empty(row, col)
            and session.dice_pool.get(die, 0) > 0)


def can_move(session: Session, from_row: int, from_col: int, to_row: int, to_col: int) -> bool:
    """The legality check move() applies, ignoring the replacement budget."""
    return (session.config.allow_relocation
            and (from_row, from_col) != (to_row, to_col)
            and session.grid.is_filled(from_row, from_col)
            and session.grid.is_empty(to_row, to_col))


# =============================================================================
# TRANSITIONS
# =============================================================================

def _settle(session: Session, grid: DiceGrid, pool: Dict[int, int], **changes) -> Session:
    """Build the post-mutation session and evaluate win / all-dice-used loss."""
    status = GameStatus.PLAYING
    loss_reason = None
    if validation.is_winning(grid, session.level, pool):
        status = GameStatus.WON
        logger.info("Level %d won", session.level_number)
    elif pool_is_empty(pool):
        status = GameStatus.LOST
        loss_reason = LOSS_POOL_EXHAUSTED
        logger.info("Level %d lost: all dice used without meeting every target", session.level_number)

    return replace(
        session,
        grid=grid,
        dice_pool=MappingProxyType(pool),
        status=status,
        loss_reason=loss_reason,
        selected_die=None,
        selected_from=None,
        **changes,
    )


def select(session: Session, die: int) -> Session:
    """Toggle selection of a pool die. No-op if none of that value is left or it is not a die value."""
    if not session.is_playing or session.dice_pool.get(die, 0) <= 0:
        return session
    if session.selected_die == die and session.selected_from is None:
        return replace(session, selected_die=None)
    return replace(session, selected_die=die, selected_from=None)


def select_from_board(session: Session, row: int, col: int) -> Session:
    """Select the die on a board cell as the source of a later move."""
    if not session.is_playing or not session.grid.is_filled(row, col):
        return session
    if session.selected_from == (row, col):
        return replace(session, selected_die=None, selected_from=None)
    return replace(session, selected_die=session.grid.get_value(row, col), selected_from=(row, col))


def place(session: Session, row: int, col: int, die: int) -> Session:
    """
    Place a die from the pool on an empty playable cell.

    Over-target placements are legal; they only make the grid invalid.
    Illegal placements, including die values outside 1..6, return the
    session unchanged.
    """
    if not session.is_playing or not can_place(session, row, col, die):
        return session

    grid, pool = session.grid.copy(), dict(session.dice_pool)
    command = PlaceDieCommand(row, col, die)
    if not command.execute(grid, pool):
        return session

    logger.debug(command.get_description())
    return _settle(session, grid, pool, move_history=session.move_history + (command.to_placement(),))


def move(session: Session, from_row: int, from_col: int, to_row: int, to_col: int) -> Session:
    """
    Relocate a placed die to an empty playable cell.

    Costs one replacement token. A legal relocation attempted with no tokens
    left loses the session. Move history is not touched.
    """
    if not session.is_playing or not can_move(session, from_row, from_col, to_row, to_col):
        return session

    if session.replacements_remaining <= 0:
        logger.info("Level %d lost: relocation attempted with no replacements left",
                    session.level_number)
        return replace(session, status=GameStatus.LOST, loss_reason=LOSS_RELOCATION_BUDGET,
                       selected_die=None, selected_from=None)

    grid, pool = session.grid.copy(), dict(session.dice_pool)
    command = RelocateDieCommand((from_row, from_col), (to_row, to_col))
    if not command.execute(grid, pool):
        return session

    logger.debug(command.get_description())
    return _settle(session, grid, pool, replacements_remaining=session.replacements_remaining - 1)


def place_selected(session: Session, row: int, col: int) -> Session:
    """Drop the current selection on a cell: a move if lifted from the board, else a placement."""
    if session.selected_die is None:
        return session
    if session.selected_from is not None:
        return move(session, session.selected_from[0], session.selected_from[1], row, col)
    return place(session, row, col, session.selected_die)


def undo(session: Session) -> Session:
    """
    Take back the most recent placement.

    Consumes one undo, returns the die to the pool and forces PLAYING, also
    from a WON session or one lost by using every die. A loss from the
    relocation penalty is final. If the last placed die has since been
    relocated, undo is a no-op.
    """
    if not session.can_undo():
        return session

    last = session.move_history[-1]
    grid, pool = session.grid.copy(), dict(session.dice_pool)
    command = PlaceDieCommand.from_placement(last)
    if not command.undo(grid, pool):
        return session

    logger.debug("Undo: %s", command.get_description())
    return replace(
        session,
        grid=grid,
        dice_pool=MappingProxyType(pool),
        move_history=session.move_history[:-1],
        undos_remaining=session.undos_remaining - 1,
        status=GameStatus.PLAYING,
        loss_reason=None,
        selected_die=None,
        selected_from=None,
    )
