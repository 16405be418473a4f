"""
src/calendar_csp/benchmark.py
──────────────────────────────────────────────────────────────────────────────
Benchmark: search strategies and arc-consistency modes head-to-head.

Random calendar problems are solved by every (strategy, mode) pair and each
verdict is checked against exhaustive enumeration.

Metrics per configuration:
  • Solve rate          (instances with a schedule / instances)
  • Verdict agreement   (feasible/infeasible matches brute force)
  • First-solution match (backtracking only: schedule equals the
                          lexicographically first brute-force solution)
  • Solve time          (wall-clock, ms)
  • Nodes explored      (search-node entries)
  • Values pruned       (node + arc consistency)

Usage:
    python -m src.calendar_csp.benchmark                    # 50 scenarios, defaults
    python -m src.calendar_csp.benchmark --scenarios 200
    python -m src.calendar_csp.benchmark --meetings 5 --days 6
    python -m src.calendar_csp.benchmark --solvers backtracking cpsat
"""

from __future__ import annotations

import argparse
import itertools
from dataclasses import dataclass
from datetime import date, timedelta

import numpy as np

from src.calendar_csp.config import (
    ARC_MODES,
    STRATEGIES,
    CalendarConfig,
    ConsistencyConfig,
    SearchConfig,
)
from src.calendar_csp.constraints import (
    BinaryConstraint,
    DateConstraint,
    Operator,
    UnaryConstraint,
)
from src.calendar_csp.domain import date_range
from src.calendar_csp.evaluator import test_solution
from src.calendar_csp.solver import SolverStatus, create_solver


# ── Scenario generation ───────────────────────────────────────────────────────


@dataclass
class BenchmarkInstance:
    """A single random calendar problem."""

    n_meetings: int
    range_start: date
    range_end: date
    constraints: list[DateConstraint]


def generate_instance(
    rng: np.random.Generator,
    n_meetings: int,
    n_days: int,
    n_unary: int = 2,
    n_binary: int = 4,
    range_start: date = date(2024, 1, 1),
) -> BenchmarkInstance:
    """Generate a random problem.

    Unary constraints compare a random meeting with a random date inside the
    range; binary constraints relate two distinct random meetings. Operators
    are drawn uniformly from all six.
    """
    operators = list(Operator)
    range_end = range_start + timedelta(days=n_days - 1)
    constraints: list[DateConstraint] = []

    if n_meetings > 0:
        for _ in range(n_unary):
            constraints.append(
                UnaryConstraint(
                    int(rng.integers(n_meetings)),
                    operators[int(rng.integers(len(operators)))],
                    range_start + timedelta(days=int(rng.integers(n_days))),
                )
            )
    if n_meetings > 1:
        for _ in range(n_binary):
            left, right = rng.choice(n_meetings, size=2, replace=False)
            constraints.append(
                BinaryConstraint(
                    int(left), operators[int(rng.integers(len(operators)))], int(right)
                )
            )

    return BenchmarkInstance(n_meetings, range_start, range_end, constraints)


def brute_force(instance: BenchmarkInstance) -> list[list[date]]:
    """Every satisfying schedule, in lexicographic order of ascending dates.

    Exponential in the number of meetings; keep instances tiny.
    """
    days = date_range(instance.range_start, instance.range_end)
    return [
        list(candidate)
        for candidate in itertools.product(days, repeat=instance.n_meetings)
        if test_solution(candidate, instance.constraints)
    ]


# ── Main benchmark loop ───────────────────────────────────────────────────────


def run_benchmark(
    n_scenarios: int = 50,
    n_meetings: int = 4,
    n_days: int = 5,
    seed: int = 42,
    solver_names: list[str] | None = None,
    arc_modes: list[str] | None = None,
) -> dict[str, dict[str, list]]:
    """Run scenarios, print a comparison table and return the raw measurements."""

    strategies = solver_names or list(STRATEGIES)
    modes = arc_modes or list(ARC_MODES)
    labels = [f"{s}/{m}" for s in strategies for m in modes]

    print("=" * 80)
    print("  Calendar CSP Benchmark")
    print("=" * 80)
    print(f"  Scenarios: {n_scenarios}  |  Meetings: {n_meetings}  |  Days: {n_days}  |  Seed: {seed}")
    print(f"  Configurations: {', '.join(labels)}")
    print()

    solvers = {
        f"{s}/{m}": create_solver(
            s,
            CalendarConfig(
                search=SearchConfig(strategy=s),
                consistency=ConsistencyConfig(arc_consistency=m),
            ),
        )
        for s in strategies
        for m in modes
    }

    rng = np.random.default_rng(seed)

    results: dict[str, dict[str, list]] = {
        label: {"solved": [], "agree": [], "first": [], "time_ms": [], "nodes": [], "pruned": []}
        for label in labels
    }

    for _ in range(n_scenarios):
        instance = generate_instance(rng, n_meetings, n_days)
        reference = brute_force(instance)

        for label, solver in solvers.items():
            r = solver.solve_with_diagnostics(
                instance.n_meetings,
                instance.range_start,
                instance.range_end,
                instance.constraints,
            )
            results[label]["solved"].append(100.0 if r.is_feasible else 0.0)
            results[label]["agree"].append(100.0 if r.is_feasible == bool(reference) else 0.0)
            if not label.startswith("cpsat") and reference:
                results[label]["first"].append(100.0 if r.assignment == reference[0] else 0.0)
            results[label]["time_ms"].append(r.solve_time_ms)
            results[label]["nodes"].append(r.nodes_explored)
            results[label]["pruned"].append(r.pruned_by_node + r.pruned_by_arc)
            if r.solver_status is SolverStatus.TIMED_OUT:
                print(f"  [warn] {label} timed out")

    # ── Print results ─────────────────────────────────────────────────────────
    col_w = 26

    def hdr(label: str) -> str:
        return f"{label:>{col_w}}"

    def val(v: float, fmt: str = ".1f") -> str:
        return f"{v:{col_w}{fmt}}"

    def mean_or_nan(xs: list) -> float:
        return float(np.mean(xs)) if xs else float("nan")

    print(f"  {'Metric':<26}" + "".join(hdr(label) for label in labels))
    print("  " + "─" * (26 + col_w * len(labels)))

    rows = [
        ("Solve rate (%)", lambda d: mean_or_nan(d["solved"]), ".1f"),
        ("Verdict agreement (%)", lambda d: mean_or_nan(d["agree"]), ".1f"),
        ("First-solution match (%)", lambda d: mean_or_nan(d["first"]), ".1f"),
        ("Avg solve time (ms)", lambda d: mean_or_nan(d["time_ms"]), ".3f"),
        ("P95 solve time (ms)", lambda d: float(np.percentile(d["time_ms"], 95)), ".3f"),
        ("Avg nodes explored", lambda d: mean_or_nan(d["nodes"]), ".1f"),
        ("Avg values pruned", lambda d: mean_or_nan(d["pruned"]), ".1f"),
    ]
    for name, fn, fmt in rows:
        print(f"  {name:<26}" + "".join(val(fn(results[label]), fmt) for label in labels))

    print("\n" + "=" * 80)
    return results


# ── CLI entry point ───────────────────────────────────────────────────────────

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Benchmark calendar CSP strategies")
    parser.add_argument("--scenarios", type=int, default=50)
    parser.add_argument("--meetings", type=int, default=4)
    parser.add_argument("--days", type=int, default=5)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument(
        "--solvers",
        nargs="+",
        choices=list(STRATEGIES),
        default=None,
        help="Subset of search strategies to benchmark (default: all)",
    )
    parser.add_argument(
        "--modes",
        nargs="+",
        choices=list(ARC_MODES),
        default=None,
        help="Subset of arc consistency modes (default: both)",
    )
    args = parser.parse_args()
    run_benchmark(args.scenarios, args.meetings, args.days, args.seed, args.solvers, args.modes)
