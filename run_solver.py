"""
Quick-run script for the calendar satisfaction solver.

Usage:
    python run_solver.py --meetings 3 --start 2024-01-01 --end 2024-01-05 \\
        --constraint "m0 < m1" --constraint "m1 < m2"
    python run_solver.py --meetings 2 --start 2024-01-01 --end 2024-01-02 \\
        --constraint "m0 != m1" --strategy cpsat
    python run_solver.py --config config/default_solver.yaml ...

Constraint syntax:
    m<i> <op> m<j>          meeting i vs meeting j
    m<i> <op> YYYY-MM-DD    meeting i vs a fixed date
    <op> is one of == != < <= > >=

Outputs the schedule (one line per meeting) or "No solution".
"""

import argparse
import sys
from dataclasses import replace
from datetime import date
from pathlib import Path

from src.calendar_csp.config import STRATEGIES, ARC_MODES, CalendarConfig, load_config
from src.calendar_csp.errors import CalendarCSPError
from src.calendar_csp.constraints import parse_constraint
from src.calendar_csp.logging_utils import configure_logging
from src.calendar_csp.solver import create_solver


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the solver CLI."""

    parser = argparse.ArgumentParser(description="Schedule meetings under date constraints")
    parser.add_argument(
        "--config",
        type=str,
        default="config/default_solver.yaml",
        help="Path to solver config YAML",
    )
    parser.add_argument("--meetings", type=int, required=True, help="Number of meetings")
    parser.add_argument(
        "--start", type=date.fromisoformat, required=True, help="First allowed date (YYYY-MM-DD)"
    )
    parser.add_argument(
        "--end", type=date.fromisoformat, required=True, help="Last allowed date (YYYY-MM-DD)"
    )
    parser.add_argument(
        "--constraint",
        action="append",
        default=[],
        help="Constraint such as 'm0 < m1' or 'm0 == 2024-01-02' (repeatable)",
    )
    parser.add_argument(
        "--strategy",
        type=str,
        default=None,
        choices=list(STRATEGIES),
        help="Search strategy (overrides config)",
    )
    parser.add_argument(
        "--arc-consistency",
        type=str,
        default=None,
        choices=list(ARC_MODES),
        help="Arc consistency mode (overrides config)",
    )
    parser.add_argument(
        "--time-limit-ms", type=float, default=None, help="Search time limit (overrides config)"
    )
    parser.add_argument("--stats", action="store_true", help="Print solver diagnostics")
    return parser


def resolve_config(args: argparse.Namespace) -> CalendarConfig:
    """Load the YAML config (if present) and apply CLI overrides."""

    config_path = Path(args.config)
    if config_path.exists():
        config = load_config(config_path)
    else:
        print(f"Config {config_path} not found, using defaults", file=sys.stderr)
        config = CalendarConfig()

    search_overrides = {}
    if args.strategy is not None:
        search_overrides["strategy"] = args.strategy
    if args.time_limit_ms is not None:
        search_overrides["time_limit_ms"] = args.time_limit_ms
    if search_overrides:
        config = replace(config, search=replace(config.search, **search_overrides))
    if args.arc_consistency is not None:
        config = replace(
            config, consistency=replace(config.consistency, arc_consistency=args.arc_consistency)
        )
    return config


def main(argv: list[str] | None = None) -> int:
    """Main function that runs if the file is run directly."""

    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(args)
        configure_logging(config.logging.level)
        constraints = [parse_constraint(text) for text in args.constraint]
        solver = create_solver(config.search.strategy, config)
        result = solver.solve_with_diagnostics(args.meetings, args.start, args.end, constraints)
    except (CalendarCSPError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    if result.assignment is None:
        print(f"No solution ({result.solver_status.name})")
    else:
        print(f"{'Meeting':<8} {'Date':>10}")
        print(f"{'-' * 8} {'-' * 10}")
        for idx, day in enumerate(result.assignment):
            print(f"{'m' + str(idx):<8} {day.isoformat():>10}")

    if args.stats:
        print(f"\nStatus:          {result.solver_status.name}")
        print(f"Solve time:      {result.solve_time_ms:.3f} ms")
        print(f"Nodes explored:  {result.nodes_explored}")
        print(f"Backtracks:      {result.backtracks}")
        print(f"Pruned (node):   {result.pruned_by_node}")
        print(f"Pruned (arc):    {result.pruned_by_arc}")
        print(f"Domain sizes:    {result.domain_sizes}")

    return 0 if result.assignment is not None else 1


if __name__ == "__main__":
    sys.exit(main())
