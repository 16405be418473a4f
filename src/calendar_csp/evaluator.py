"""
Constraint evaluation over complete or partial assignments.

An assignment is a list indexed by meeting, each slot holding a date or
None (unassigned). A constraint with an unassigned operand is skipped, so
the same check serves both as the final solution test and as the pruning
test applied at every search node.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Sequence

from src.calendar_csp.constraints import (
    DateConstraint,
    Operator,
    UnaryConstraint,
)

Assignment = Sequence[Optional[date]]


def evaluate(left: date, op: Operator, right: date) -> bool:
    """Return whether ``left <op> right`` holds."""
    return op.holds(left, right)


def resolve_operands(
    assignment: Assignment, constraint: DateConstraint
) -> tuple[Optional[date], Optional[date]]:
    """Look up the (left, right) dates a constraint compares under an assignment."""
    left = assignment[constraint.left]
    if isinstance(constraint, UnaryConstraint):
        return left, constraint.value
    return left, assignment[constraint.right]


def test_solution(assignment: Assignment, constraints: Iterable[DateConstraint]) -> bool:
    """Check an assignment against every constraint.

    Args:
        assignment: Dates indexed by meeting; None marks an unassigned meeting.
        constraints: Unary and binary constraints to verify.

    Returns:
        False if any constraint whose operands are both assigned is violated,
        True otherwise. Unassigned operands never cause a False.
    """
    for constraint in constraints:
        left, right = resolve_operands(assignment, constraint)
        if left is None or right is None:
            continue
        if not evaluate(left, constraint.op, right):
            return False
    return True
