import os
import sys
import pytest

# Add project root to sys.path (so tests can import dicesoku.*)
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.append(PROJECT_ROOT)

from dicesoku.engine import new_session
from dicesoku.level import Level

# 3x3, nothing blocked: row targets [6, 15, 15], column targets [11, 12, 13]
SCENARIO_A_SOLUTION = [[1, 2, 3], [4, 5, 6], [6, 5, 4]]
NO_BLOCKS_3 = [[False] * 3 for _ in range(3)]


@pytest.fixture
def scenario_level():
    """Level derived from the 3x3 scenario solution."""
    return Level.from_solution(SCENARIO_A_SOLUTION, NO_BLOCKS_3)


@pytest.fixture
def scenario_session(scenario_level):
    return new_session(scenario_level, level_number=1)


@pytest.fixture
def load_level():
    """Returns a function that loads a Level from a JSON file path."""
    def _load(path):
        return Level.load_from_file(path)
    return _load


def fill(session, solution, place_fn=None):
    """Place every non-None value of `solution` row by row."""
    from dicesoku.engine import place
    place_fn = place_fn or place
    for r, row in enumerate(solution):
        for c, die in enumerate(row):
            if die is not None:
                session = place_fn(session, r, c, die)
    return session
