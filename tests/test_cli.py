"""
Command-line smoke tests:
- generate writes a loadable level
- show prints a saved level
- solve reports success or the failure kind through its exit code
"""

import io
import json

import numpy as np

from app.main import EXIT_FAILED, EXIT_OK, main
from dicesoku.level import Level, Targets


def test_generate_writes_level(tmp_path, load_level):
    path = tmp_path / "lvl.json"
    out = io.StringIO()
    code = main(["generate", "--size", "4", "--seed", "3", "--out", str(path)], out=out)

    assert code == EXIT_OK
    assert "dice:" in out.getvalue()
    level = load_level(str(path))
    assert level.size == 4
    assert json.loads(path.read_text())["id"] == "level-1"


def test_show_prints_saved_level(tmp_path):
    path = tmp_path / "lvl.json"
    Level.from_solution([[1, 2, 3], [4, 5, 6], [6, 5, 4]], [[False] * 3] * 3).save_json(str(path))
    out = io.StringIO()

    assert main(["show", "--level", str(path)], out=out) == EXIT_OK
    assert "| 6" in out.getvalue()


def test_solve_generated_level():
    out = io.StringIO()
    assert main(["solve", "--size", "5", "--seed", "11"], out=out) == EXIT_OK
    assert "won" in out.getvalue()


def test_solve_reports_infeasible_level(tmp_path):
    path = tmp_path / "bad.json"
    Level(3, np.zeros((3, 3), dtype=bool), Targets((6, 15, 15), (11, 12, 13)),
          {1: 1, 2: 1, 3: 1, 4: 2, 5: 2, 6: 3}).save_json(str(path))
    out = io.StringIO()

    assert main(["solve", "--level", str(path)], out=out) == EXIT_FAILED
    assert "do not match" in out.getvalue()


def test_missing_level_file_is_an_error(tmp_path):
    assert main(["show", "--level", str(tmp_path / "missing.json")]) == EXIT_FAILED
