"""
Calendar satisfaction solvers.

Pipeline
────────
  Validation        malformed input rejected before any work     (fail fast)
  Domain build      every meeting gets its own copy of the range
  Preprocessing     node consistency → arc consistency           (may prove infeasible)
  Search            backtracking over meetings 0..N-1            (or CP-SAT)

Solver menu
───────────
  BacktrackingSolver              recursive depth-first search   ← DEFAULT
  BacktrackingSolver(iterative)   same search, explicit stack
  CPSATCalendarSolver             OR-Tools CP-SAT feasibility model

All share the same public interface: ``solve`` returns the schedule or
None, ``solve_with_diagnostics`` returns a SolveResult. The backtracking
solvers always return the lexicographically first schedule under ascending
date order; CP-SAT returns some valid schedule.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum, auto
from typing import Iterable

from ortools.sat.python import cp_model

from src.calendar_csp.config import CalendarConfig, SearchConfig
from src.calendar_csp.consistency import PreprocessReport, preprocess
from src.calendar_csp.constraints import (
    DateConstraint,
    Operator,
    UnaryConstraint,
    validate_constraints,
    validate_range,
    with_mirrors,
)
from src.calendar_csp.domain import Meeting, build_meetings
from src.calendar_csp.errors import SolverModelError, SolverTimeoutError
from src.calendar_csp.logging_utils import get_logger
from src.calendar_csp.search import Deadline, SearchStats, backtrack, backtrack_iterative

logger = get_logger()


# ─────────────────────────────────────────────────────────────────────────────
# Public types
# ─────────────────────────────────────────────────────────────────────────────


class SolverStatus(Enum):
    """Outcome of a solve call."""

    SOLVED = auto()  # every meeting has a date, all constraints verified
    INFEASIBLE_PREPROCESSING = auto()  # a domain emptied before search
    INFEASIBLE_SEARCH = auto()  # search exhausted without a solution
    TIMED_OUT = auto()  # time limit hit before a verdict


@dataclass
class SolveResult:
    """Unified output of every solver variant.

    ``assignment`` is only ever a fully bound schedule (status SOLVED) or None.
    """

    assignment: list[date] | None
    solver_status: SolverStatus
    solve_time_ms: float
    nodes_explored: int = 0
    backtracks: int = 0
    pruned_by_node: int = 0
    pruned_by_arc: int = 0
    domain_sizes: list[int] = field(default_factory=list)

    @property
    def is_feasible(self) -> bool:
        return self.solver_status is SolverStatus.SOLVED


# ─────────────────────────────────────────────────────────────────────────────
# Private helpers (shared by all solvers)
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class _Prepared:
    meetings: list[Meeting]
    constraints: list[DateConstraint]
    report: PreprocessReport


def _prepare(
    n_meetings: int,
    range_start: date,
    range_end: date,
    constraints: Iterable[DateConstraint],
    config: CalendarConfig,
) -> _Prepared:
    """Validate, add mirrored constraints, build domains and preprocess them."""
    constraints = list(constraints)
    validate_constraints(n_meetings, constraints)
    validate_range(range_start, range_end)
    if range_end < range_start:
        logger.warning(
            "range_end %s precedes range_start %s; every domain is the single date %s",
            range_end,
            range_start,
            range_start,
        )

    all_constraints = with_mirrors(constraints)
    meetings = build_meetings(n_meetings, range_start, range_end)

    if config.consistency.enabled:
        report = preprocess(meetings, all_constraints, config.consistency.arc_consistency)
    else:
        report = PreprocessReport()
    return _Prepared(meetings, all_constraints, report)


def _make_result(
    prepared: _Prepared,
    assignment: list[date] | None,
    status: SolverStatus,
    t0: float,
    stats: SearchStats | None = None,
) -> SolveResult:
    stats = stats or SearchStats()
    return SolveResult(
        assignment=assignment,
        solver_status=status,
        solve_time_ms=(time.perf_counter() - t0) * 1e3,
        nodes_explored=stats.nodes_explored,
        backtracks=stats.backtracks,
        pruned_by_node=prepared.report.pruned_by_node,
        pruned_by_arc=prepared.report.pruned_by_arc,
        domain_sizes=[len(m.domain) for m in prepared.meetings],
    )


class _BaseSolver:
    """Shared constructor, counters and ``solve`` wrapper."""

    def __init__(self, config: CalendarConfig | None = None) -> None:
        self.config = config or CalendarConfig()
        self.total_solves: int = 0
        self.total_infeasible: int = 0
        self.total_solve_time_ms: float = 0.0

    def solve(
        self,
        n_meetings: int,
        range_start: date,
        range_end: date,
        constraints: Iterable[DateConstraint],
    ) -> list[date] | None:
        """Return one date per meeting satisfying every constraint, or None.

        Raises:
            MalformedProblemError: On invalid input.
            SolverTimeoutError: If the configured time limit is exceeded.
            SolverModelError: If CP-SAT rejects the model.
        """
        result = self.solve_with_diagnostics(n_meetings, range_start, range_end, constraints)
        if result.solver_status is SolverStatus.TIMED_OUT:
            raise SolverTimeoutError(
                f"No verdict within {self.config.search.time_limit_ms} ms"
            )
        return result.assignment

    def solve_with_diagnostics(
        self,
        n_meetings: int,
        range_start: date,
        range_end: date,
        constraints: Iterable[DateConstraint],
    ) -> SolveResult:
        """Solve and report status, timing, pruning and search counters."""
        t0 = time.perf_counter()
        prepared = _prepare(n_meetings, range_start, range_end, constraints, self.config)

        if not prepared.report.feasible:
            result = _make_result(prepared, None, SolverStatus.INFEASIBLE_PREPROCESSING, t0)
        else:
            result = self._search(prepared, t0)

        self.total_solves += 1
        self.total_solve_time_ms += result.solve_time_ms
        if result.solver_status in (
            SolverStatus.INFEASIBLE_PREPROCESSING,
            SolverStatus.INFEASIBLE_SEARCH,
        ):
            self.total_infeasible += 1
        logger.info(
            "%s: %d meeting(s), status=%s, nodes=%d, %.2f ms",
            type(self).__name__,
            n_meetings,
            result.solver_status.name,
            result.nodes_explored,
            result.solve_time_ms,
        )
        return result

    def _search(self, prepared: _Prepared, t0: float) -> SolveResult:
        raise NotImplementedError


# ─────────────────────────────────────────────────────────────────────────────
# Solver 1 — BacktrackingSolver
# ─────────────────────────────────────────────────────────────────────────────


class BacktrackingSolver(_BaseSolver):
    """Depth-first backtracking with a full constraint re-check at every node.

    Generate-and-test rather than forward checking: preprocessing shrinks the
    domains once, then every tentative assignment is validated against the
    whole constraint set. Constraints touching unassigned meetings are
    skipped, so a partial assignment is rejected only by constraints it
    actually violates.

    ``iterative=True`` swaps the recursion for an explicit frame stack; the
    schedule and the statistics are identical.
    """

    def __init__(self, config: CalendarConfig | None = None, iterative: bool = False) -> None:
        super().__init__(config)
        self.iterative = iterative

    def _search(self, prepared: _Prepared, t0: float) -> SolveResult:
        stats = SearchStats()
        deadline = Deadline(self.config.search.time_limit_ms)
        assignment: list[date | None] = [None] * len(prepared.meetings)

        try:
            if self.iterative:
                solution = backtrack_iterative(
                    prepared.meetings, prepared.constraints, assignment, stats, deadline
                )
            else:
                solution = backtrack(
                    prepared.meetings, prepared.constraints, assignment, 0, stats, deadline
                )
        except SolverTimeoutError:
            logger.warning("Search timed out after %d node(s)", stats.nodes_explored)
            return _make_result(prepared, None, SolverStatus.TIMED_OUT, t0, stats)

        status = SolverStatus.SOLVED if solution is not None else SolverStatus.INFEASIBLE_SEARCH
        return _make_result(prepared, solution, status, t0, stats)


# ─────────────────────────────────────────────────────────────────────────────
# Solver 2 — CPSATCalendarSolver
# ─────────────────────────────────────────────────────────────────────────────


def _relation(op: Operator, left, right):
    """Build the CP-SAT linear relation ``left <op> right``."""
    if op is Operator.EQ:
        return left == right
    if op is Operator.NE:
        return left != right
    if op is Operator.LT:
        return left < right
    if op is Operator.LE:
        return left <= right
    if op is Operator.GT:
        return left > right
    return left >= right


class CPSATCalendarSolver(_BaseSolver):
    """OR-Tools CP-SAT feasibility model over the preprocessed domains.

    Each meeting becomes an integer variable holding its day offset from
    ``range_start``, restricted to the offsets left in its domain. Unary
    constraints compare against a constant offset, binary ones relate two
    variables. There is no objective; any feasible schedule is accepted.
    Single-worker search keeps the result reproducible.
    """

    def _search(self, prepared: _Prepared, t0: float) -> SolveResult:
        meetings = prepared.meetings
        if not meetings:
            return _make_result(prepared, [], SolverStatus.SOLVED, t0)

        origin = min(m.domain[0] for m in meetings)

        model = cp_model.CpModel()
        x = [
            model.new_int_var_from_domain(
                cp_model.Domain.from_values([(d - origin).days for d in m.domain]),
                f"meeting_{m.index}",
            )
            for m in meetings
        ]

        for c in prepared.constraints:
            if isinstance(c, UnaryConstraint):
                model.add(_relation(c.op, x[c.left], (c.value - origin).days))
            else:
                model.add(_relation(c.op, x[c.left], x[c.right]))

        solver = cp_model.CpSolver()
        solver.parameters.num_workers = 1  # deterministic
        search_cfg: SearchConfig = self.config.search
        if search_cfg.time_limit_ms is not None:
            solver.parameters.max_time_in_seconds = search_cfg.time_limit_ms / 1000.0

        status_code = solver.solve(model)
        stats = SearchStats(nodes_explored=int(solver.num_branches))

        if status_code in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            schedule = [origin + timedelta(days=int(solver.value(var))) for var in x]
            return _make_result(prepared, schedule, SolverStatus.SOLVED, t0, stats)
        if status_code == cp_model.INFEASIBLE:
            return _make_result(prepared, None, SolverStatus.INFEASIBLE_SEARCH, t0, stats)

        if status_code == cp_model.UNKNOWN and search_cfg.time_limit_ms is not None:
            logger.warning("CP-SAT reached the %s ms limit without a verdict", search_cfg.time_limit_ms)
            return _make_result(prepared, None, SolverStatus.TIMED_OUT, t0, stats)

        raise SolverModelError(
            f"CP-SAT returned {solver.status_name(status_code)}: {model.validate() or 'no detail'}"
        )


# ─────────────────────────────────────────────────────────────────────────────
# Factory & functional entry point
# ─────────────────────────────────────────────────────────────────────────────


def create_solver(
    strategy: str = "backtracking",
    config: CalendarConfig | None = None,
) -> BacktrackingSolver | CPSATCalendarSolver:
    """Instantiate and return the requested solver.

    strategy options
    ─────────────────
    "backtracking" → BacktrackingSolver               recursive, default
    "iterative"    → BacktrackingSolver(iterative)    explicit stack
    "cpsat"        → CPSATCalendarSolver              requires ortools
    """
    if strategy == "backtracking":
        return BacktrackingSolver(config)
    if strategy == "iterative":
        return BacktrackingSolver(config, iterative=True)
    if strategy == "cpsat":
        return CPSATCalendarSolver(config)
    raise ValueError(
        f"Unknown strategy {strategy!r}. Valid options: 'backtracking', 'iterative', 'cpsat'."
    )


def solve(
    n_meetings: int,
    range_start: date,
    range_end: date,
    constraints: Iterable[DateConstraint],
    config: CalendarConfig | None = None,
) -> list[date] | None:
    """Schedule ``n_meetings`` meetings inside ``[range_start, range_end]``.

    Args:
        n_meetings: Number of meetings, indexed 0..n_meetings-1.
        range_start: First allowed date (inclusive), shared by every meeting.
        range_end: Last allowed date (inclusive).
        constraints: Unary and binary date constraints. Not modified.
        config: Optional configuration; defaults to recursive backtracking
            with single-pass arc consistency.

    Returns:
        One date per meeting, index-aligned, satisfying every constraint; or
        None if no such schedule exists.

    Raises:
        MalformedProblemError: On invalid input.
        SolverTimeoutError: If a configured time limit is exceeded.
        SolverModelError: If CP-SAT rejects the model.
    """
    config = config or CalendarConfig()
    return create_solver(config.search.strategy, config).solve(
        n_meetings, range_start, range_end, constraints
    )
