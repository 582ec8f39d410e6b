"""
Command-line front end for the Dicesoku engine.

    dicesoku generate --size 5 --seed 7 --out level.json
    dicesoku solve --level level.json
    dicesoku show --level level.json
"""
import argparse
import logging
import sys
from typing import List, Optional, TextIO

from dicesoku.config import SolverConfig
from dicesoku.engine import new_session
from dicesoku.generator import generate_with_stats
from dicesoku.level import Level
from dicesoku.solver import apply_solution, describe_failure, solve
from dicesoku.types import MAX_SIZE, MIN_SIZE, SolveOutcome
from dicesoku.validation import validate_level
from render.board_text import BoardTextRenderer

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_TIMEOUT = 2


class DicesokuApp:
    """Runs CLI subcommands and writes their output."""

    def __init__(self, out: TextIO = None, renderer: Optional[BoardTextRenderer] = None):
        self.out = out or sys.stdout
        self.renderer = renderer or BoardTextRenderer()

    def _print(self, text: str = "") -> None:
        print(text, file=self.out)

    def _load_or_generate(self, args) -> Level:
        if getattr(args, "level", None):
            level = Level.load_from_file(args.level)
            for error in validate_level(level):
                logger.warning("%s", error)
            return level
        level, stats = generate_with_stats(args.size, args.seed)
        logger.info("Generated %dx%d level in %d attempt(s)%s", args.size, args.size,
                    stats.attempts, " (fallback)" if stats.used_fallback else "")
        return level

    def cmd_generate(self, args) -> int:
        """Generate a level, print it and optionally save it."""
        level = self._load_or_generate(args)
        self._print(self.renderer.render_level(level))
        if args.out:
            level.save_json(args.out, level_id=f"level-{args.level_number}")
            self._print(f"Saved to {args.out}")
        return EXIT_OK

    def cmd_show(self, args) -> int:
        """Print a saved level with any structural problems."""
        level = Level.load_from_file(args.level)
        self._print(self.renderer.render_level(level))
        for error in validate_level(level):
            self._print(str(error))
        return EXIT_OK

    def cmd_solve(self, args) -> int:
        """Auto-solve a fresh session of a generated or saved level."""
        level = self._load_or_generate(args)
        session = new_session(level, level_number=args.level_number)
        config = SolverConfig(time_budget=args.time_budget)

        result = solve(session, config)
        solved = apply_solution(session, result)
        if solved is None:
            self._print(self.renderer.render_level(level))
            self._print(describe_failure(result, level.size, config))
            return EXIT_TIMEOUT if result.outcome == SolveOutcome.TIMEOUT else EXIT_FAILED

        self._print(self.renderer.render_session(solved))
        self._print(f"Solved in {result.elapsed:.3f}s ({result.nodes} nodes)")
        return EXIT_OK


def _board_size(value: str) -> int:
    size = int(value)
    if not (MIN_SIZE <= size <= MAX_SIZE):
        raise argparse.ArgumentTypeError(f"size must be between {MIN_SIZE} and {MAX_SIZE}")
    return size


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dicesoku", description="Dicesoku level generator and solver")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_source(p, allow_file: bool):
        p.add_argument("--size", type=_board_size, default=5, help="board size (3-9)")
        p.add_argument("--seed", type=int, default=None, help="random seed for reproducible levels")
        p.add_argument("--level-number", type=int, default=1)
        if allow_file:
            p.add_argument("--level", help="solve a saved level JSON instead of generating one")

    p_gen = sub.add_parser("generate", help="generate a level")
    add_source(p_gen, allow_file=False)
    p_gen.add_argument("--out", help="write the level as JSON")

    p_solve = sub.add_parser("solve", help="auto-solve a level")
    add_source(p_solve, allow_file=True)
    p_solve.add_argument("--time-budget", type=float, default=SolverConfig.time_budget,
                         help="seconds before the search gives up")

    p_show = sub.add_parser("show", help="print a saved level")
    p_show.add_argument("--level", required=True)
    return parser


def main(argv: Optional[List[str]] = None, out: TextIO = None) -> int:
    """Entry point for the console script."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    app = DicesokuApp(out=out)
    handlers = {"generate": app.cmd_generate, "solve": app.cmd_solve, "show": app.cmd_show}
    try:
        return handlers[args.command](args)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
