"""
Calendar Satisfaction Problem solver.

Assigns a date to each of N meetings from a shared inclusive date range so
that every unary (meeting vs. date) and binary (meeting vs. meeting)
constraint holds. Domains are pruned by node and arc consistency, then a
backtracking search finds the first schedule in ascending date order.

Quick start:
    from datetime import date
    from src.calendar_csp import BinaryConstraint, Operator, solve

    schedule = solve(
        2, date(2024, 1, 1), date(2024, 1, 2),
        [BinaryConstraint(0, Operator.NE, 1)],
    )
    # [date(2024, 1, 1), date(2024, 1, 2)]
"""

from src.calendar_csp.config import CalendarConfig, load_config
from src.calendar_csp.constraints import (
    BinaryConstraint,
    DateConstraint,
    Operator,
    UnaryConstraint,
    flip,
    parse_constraint,
)
from src.calendar_csp.errors import (
    CalendarCSPError,
    MalformedProblemError,
    SolverModelError,
    SolverTimeoutError,
)
from src.calendar_csp.evaluator import evaluate, test_solution
from src.calendar_csp.solver import (
    BacktrackingSolver,
    CPSATCalendarSolver,
    SolveResult,
    SolverStatus,
    create_solver,
    solve,
)

__all__ = [
    "BacktrackingSolver",
    "BinaryConstraint",
    "CalendarConfig",
    "CalendarCSPError",
    "CPSATCalendarSolver",
    "DateConstraint",
    "MalformedProblemError",
    "Operator",
    "SolveResult",
    "SolverModelError",
    "SolverStatus",
    "SolverTimeoutError",
    "UnaryConstraint",
    "create_solver",
    "evaluate",
    "flip",
    "load_config",
    "parse_constraint",
    "solve",
    "test_solution",
]
