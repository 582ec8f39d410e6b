"""
Game state engine tests:
- Placement legality, purity and illegal-move idempotence
- Undo budget and inversion of placements
- Win/loss transitions (scenarios A-C)
- Selection and relocation budgets under both profiles
- Level progression and command rollback
"""

import numpy as np
import pytest

from conftest import SCENARIO_A_SOLUTION, fill
from dicesoku.commands import BatchCommand, PlaceDieCommand, RelocateDieCommand
from dicesoku.config import CLASSIC_PROFILE, GameConfig, REPLACEMENT_PROFILE
from dicesoku.dice_grid import DiceGrid
from dicesoku.engine import (
    LOSS_POOL_EXHAUSTED, LOSS_RELOCATION_BUDGET,
    can_place, move, new_session, next_session, place, place_selected, reset, running_totals,
    select, select_from_board, undo, validate_session,
)
from dicesoku.level import Level, Targets
from dicesoku.types import GameStatus, Placement


def _blocked_level():
    blocked = [[False, True, False], [False, False, False], [True, False, False]]
    return Level.from_solution([[2, None, 2], [3, 3, 3], [None, 4, 4]], blocked)


def test_new_session_starts_empty_with_full_budgets(scenario_session, scenario_level):
    s = scenario_session
    assert s.status == GameStatus.PLAYING
    assert dict(s.dice_pool) == dict(scenario_level.dice_pool)
    assert s.undos_remaining == REPLACEMENT_PROFILE.undo_budget
    assert s.replacements_remaining == REPLACEMENT_PROFILE.replacement_budget
    assert s.move_history == ()
    assert len(s.grid.get_empty_cells()) == 9


def test_new_session_rejects_mismatched_size(scenario_level):
    with pytest.raises(ValueError):
        new_session(scenario_level, level_number=1, size=4)


def test_place_updates_grid_pool_history(scenario_session):
    s = place(scenario_session, 1, 1, 5)
    assert s.grid.get_value(1, 1) == 5
    assert s.dice_pool[5] == 1
    assert s.move_history == (Placement(1, 1, 5),)
    assert s.status == GameStatus.PLAYING


def test_place_never_mutates_input(scenario_session):
    before_pool = dict(scenario_session.dice_pool)
    place(scenario_session, 0, 0, 1)
    assert scenario_session.grid.is_empty(0, 0)
    assert dict(scenario_session.dice_pool) == before_pool
    assert scenario_session.move_history == ()


def test_illegal_placements_change_nothing():
    s = new_session(_blocked_level())
    s = place(s, 0, 0, 2)

    on_blocked = place(s, 0, 1, 3)
    on_occupied = place(s, 0, 0, 3)
    off_board = place(s, 5, 5, 3)

    for result in (on_blocked, on_occupied, off_board):
        assert result is s
        assert result.grid == s.grid
        assert dict(result.dice_pool) == dict(s.dice_pool)
        assert result.move_history == s.move_history


def test_place_without_die_in_pool_is_noop(scenario_session):
    s = place(scenario_session, 0, 0, 1)
    assert s.dice_pool[1] == 0
    assert place(s, 0, 1, 1) is s
    assert not can_place(s, 0, 1, 1)


def test_invalid_die_values_are_noops(scenario_session):
    assert place(scenario_session, 0, 0, 0) is scenario_session
    assert place(scenario_session, 0, 0, 7) is scenario_session
    assert select(scenario_session, 7) is scenario_session
    assert not can_place(scenario_session, 0, 0, 7)


def test_undo_inverts_placement(scenario_session):
    placed = place(scenario_session, 2, 0, 6)
    undone = undo(placed)

    assert undone.grid == scenario_session.grid
    assert undone.dice_pool[6] == scenario_session.dice_pool[6]
    assert len(undone.move_history) == len(scenario_session.move_history)
    assert undone.undos_remaining == scenario_session.undos_remaining - 1


def test_undo_needs_budget_and_history(scenario_level):
    s = new_session(scenario_level, config=GameConfig(undo_budget=1, replacement_budget=0))
    assert undo(s) is s, "Nothing to undo yet"

    s = place(place(s, 0, 0, 1), 0, 1, 2)
    s = undo(s)
    assert s.undos_remaining == 0
    assert s.move_history == (Placement(0, 0, 1),)
    assert undo(s) is s, "Undo budget exhausted"


def test_scenario_a_full_solution_wins(scenario_session):
    s = fill(scenario_session, SCENARIO_A_SOLUTION)
    assert s.status == GameStatus.WON
    assert s.dice_remaining == 0
    assert validate_session(s).is_complete


def test_terminal_session_ignores_moves(scenario_session):
    won = fill(scenario_session, SCENARIO_A_SOLUTION)
    assert select(won, 4) is won
    assert select_from_board(won, 0, 0) is won
    assert move(won, 0, 0, 1, 1) is won


def test_scenario_b_over_target_placement_is_legal(scenario_session):
    s = place(scenario_session, 0, 0, 6)
    s = place(s, 0, 1, 5)
    result = validate_session(s)

    assert s.grid.get_value(0, 1) == 5
    assert result.exceeded_rows == (0,)
    assert result.is_valid is False
    assert s.status == GameStatus.PLAYING
    assert running_totals(s).rows == (11, 0, 0)


def test_scenario_c_depleting_pool_without_match_loses(scenario_session):
    wrong = [[6, 5, 4], [4, 5, 6], [1, 2, 3]]
    s = fill(scenario_session, wrong)
    assert validate_session(s).is_complete is False
    assert s.status == GameStatus.LOST
    assert s.loss_reason == LOSS_POOL_EXHAUSTED


def test_undo_recovers_from_pool_exhaustion(scenario_session):
    wrong = [[6, 5, 4], [4, 5, 6], [1, 2, 3]]
    lost = fill(scenario_session, wrong)
    s = undo(lost)
    assert s.status == GameStatus.PLAYING
    assert s.loss_reason is None
    assert s.grid.is_empty(2, 2)
    assert s.dice_pool[3] == 1


def test_undo_reopens_won_session(scenario_session):
    won = fill(scenario_session, SCENARIO_A_SOLUTION)
    s = undo(won)

    assert s.status == GameStatus.PLAYING
    assert s.grid.is_empty(2, 2)
    assert s.dice_pool[4] == 1
    assert s.dice_remaining == 1
    assert s.undos_remaining == won.undos_remaining - 1
    assert s.move_count == 8


def test_exact_sums_with_dice_left_do_not_win():
    level = Level(3, np.zeros((3, 3), dtype=bool),
                  Targets((6, 15, 15), (11, 12, 13)),
                  {1: 1, 2: 1, 3: 1, 4: 2, 5: 2, 6: 3})
    s = fill(new_session(level), SCENARIO_A_SOLUTION)

    assert validate_session(s).is_complete
    assert s.dice_remaining == 1
    assert s.status == GameStatus.PLAYING


def test_select_toggles_pool_die(scenario_session):
    s = select(scenario_session, 4)
    assert s.selected_die == 4
    assert select(s, 4).selected_die is None
    assert select(s, 5).selected_die == 5


def test_select_unavailable_die_is_noop(scenario_session):
    s = place(scenario_session, 0, 0, 1)
    assert select(s, 1) is s


def test_place_clears_selection(scenario_session):
    s = select(scenario_session, 3)
    s = place(s, 0, 2, 3)
    assert s.selected_die is None


def test_select_from_board(scenario_session):
    s = place(scenario_session, 1, 2, 6)
    assert select_from_board(s, 0, 0) is s, "Empty cells cannot be selected"

    picked = select_from_board(s, 1, 2)
    assert picked.selected_die == 6
    assert picked.selected_from == (1, 2)
    assert select_from_board(picked, 1, 2).selected_from is None


def test_select_from_board_ignores_blocked_cells():
    s = new_session(_blocked_level())
    assert select_from_board(s, 0, 1) is s


def test_move_relocates_and_spends_replacement(scenario_session):
    s = place(scenario_session, 0, 0, 4)
    moved = move(s, 0, 0, 2, 2)

    assert moved.grid.is_empty(0, 0)
    assert moved.grid.get_value(2, 2) == 4
    assert dict(moved.dice_pool) == dict(s.dice_pool)
    assert moved.replacements_remaining == s.replacements_remaining - 1
    assert moved.move_history == s.move_history, "Relocation does not touch history"


def test_place_selected_moves_board_die(scenario_session):
    s = place(scenario_session, 0, 0, 4)
    s = select_from_board(s, 0, 0)
    s = place_selected(s, 1, 1)
    assert s.grid.get_value(1, 1) == 4
    assert s.selected_die is None


def test_place_selected_places_pool_die(scenario_session):
    s = place_selected(select(scenario_session, 2), 0, 1)
    assert s.grid.get_value(0, 1) == 2
    assert place_selected(s, 0, 2) is s, "Nothing selected"


def test_illegal_move_is_noop_even_without_budget(scenario_level):
    s = new_session(scenario_level, config=GameConfig(undo_budget=5, replacement_budget=0))
    s = place(place(s, 0, 0, 1), 0, 1, 2)

    assert move(s, 0, 0, 0, 1) is s, "Destination occupied"
    assert move(s, 2, 2, 1, 1) is s, "Source empty"
    assert s.status == GameStatus.PLAYING


def test_move_without_budget_loses(scenario_level):
    s = new_session(scenario_level, config=GameConfig(undo_budget=5, replacement_budget=0))
    s = place(s, 0, 0, 1)
    lost = move(s, 0, 0, 1, 1)

    assert lost.status == GameStatus.LOST
    assert lost.loss_reason == LOSS_RELOCATION_BUDGET
    assert lost.grid == s.grid, "The die stays where it was"
    assert undo(lost) is lost, "The relocation penalty is final"


def test_replacement_budget_runs_out(scenario_level):
    s = new_session(scenario_level, config=GameConfig(undo_budget=0, replacement_budget=2))
    s = place(s, 0, 0, 3)
    s = move(s, 0, 0, 0, 1)
    s = move(s, 0, 1, 0, 2)
    assert s.replacements_remaining == 0
    assert s.status == GameStatus.PLAYING
    assert move(s, 0, 2, 1, 0).status == GameStatus.LOST


def test_classic_profile_disallows_relocation(scenario_level):
    s = new_session(scenario_level, config=CLASSIC_PROFILE)
    assert s.replacements_remaining == 0
    s = place(s, 0, 0, 1)
    assert move(s, 0, 0, 1, 1) is s
    assert s.status == GameStatus.PLAYING


def test_undo_after_relocating_last_placement_is_noop(scenario_session):
    s = place(scenario_session, 0, 0, 5)
    s = move(s, 0, 0, 1, 1)
    assert not s.can_undo()
    assert undo(s) is s


def test_reset_restores_fresh_session(scenario_session):
    s = place(place(scenario_session, 0, 0, 1), 1, 1, 5)
    s = undo(s)
    fresh = reset(s)

    assert fresh.grid == scenario_session.grid
    assert fresh.undos_remaining == scenario_session.undos_remaining
    assert fresh.move_history == ()
    assert fresh.level_number == s.level_number


def test_next_session_advances_after_win(scenario_session, scenario_level):
    won = fill(select(scenario_session, 1), SCENARIO_A_SOLUTION)
    following = next_session(won, scenario_level)

    assert following.level_number == 2
    assert following.grid_size == 3
    assert following.config is won.config
    assert following.status == GameStatus.PLAYING
    assert following.move_count == 0


def test_next_session_repeats_number_after_loss(scenario_session, scenario_level):
    lost = fill(scenario_session, [[6, 5, 4], [4, 5, 6], [1, 2, 3]])
    following = next_session(lost, scenario_level)

    assert following.level_number == 1
    assert following.dice_remaining == 9


def test_next_session_keeps_board_size(scenario_session):
    with pytest.raises(ValueError):
        next_session(scenario_session, Level.from_solution([[1] * 4] * 4, [[False] * 4] * 4))


def test_batch_rolls_back_on_failure(scenario_session):
    grid, pool = scenario_session.grid.copy(), dict(scenario_session.dice_pool)
    batch = BatchCommand([PlaceDieCommand(0, 0, 1), PlaceDieCommand(0, 1, 2),
                          PlaceDieCommand(0, 0, 3)], "conflicting")

    assert not batch.execute(grid, pool)
    assert grid == scenario_session.grid
    assert pool == dict(scenario_session.dice_pool)


def test_relocation_is_final():
    grid = DiceGrid(3)
    grid.set_die(0, 0, 4)
    command = RelocateDieCommand((0, 0), (1, 1))

    assert command.execute(grid, {})
    assert not command.undo(grid, {})
    assert grid.get_value(1, 1) == 4 and grid.is_empty(0, 0)
