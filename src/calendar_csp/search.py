"""
Backtracking search over meeting indices 0..N-1.

Meetings are assigned in index order and each one tries the dates of its
(pruned) domain in ascending order. After every tentative assignment the
whole constraint set is re-checked against the partial assignment; a failed
check or an exhausted subtree undoes the assignment and moves on to the
next date. The first full assignment reached is returned, which makes the
result deterministic: it is the lexicographically first solution under
domain order.

Two drivers share these semantics and report identical statistics:

  backtrack            plain recursion, one Python frame per meeting
  backtrack_iterative  explicit stack of [index, next_position] frames,
                       for instances deeper than the interpreter's
                       recursion limit
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from src.calendar_csp.constraints import DateConstraint
from src.calendar_csp.domain import Meeting
from src.calendar_csp.errors import SolverTimeoutError
from src.calendar_csp.evaluator import test_solution


@dataclass
class SearchStats:
    """Counters collected during one search."""

    nodes_explored: int = 0  # search-node entries, root and leaves included
    backtracks: int = 0  # tentative assignments that were undone


class Deadline:
    """Wall-clock budget checked at every search-node entry."""

    def __init__(self, time_limit_ms: float | None = None) -> None:
        self.time_limit_ms = time_limit_ms
        self._expires_at = (
            None if time_limit_ms is None else time.perf_counter() + time_limit_ms / 1000.0
        )

    def check(self) -> None:
        if self._expires_at is not None and time.perf_counter() > self._expires_at:
            raise SolverTimeoutError(f"Search exceeded time limit of {self.time_limit_ms} ms")


def backtrack(
    meetings: Sequence[Meeting],
    constraints: Sequence[DateConstraint],
    assignment: list[Optional[date]],
    index: int = 0,
    stats: SearchStats | None = None,
    deadline: Deadline | None = None,
) -> list[date] | None:
    """Recursive backtracking from meeting ``index`` onwards.

    Args:
        meetings: Meetings whose domains supply the candidate dates.
        constraints: Full constraint set, checked at every node.
        assignment: Shared buffer; slots >= index must be None on entry.
        index: Next meeting to assign.
        stats: Optional counters, updated in place.
        deadline: Optional time budget.

    Returns:
        A copy of the first complete satisfying assignment, or None when the
        subtree holds no solution. The buffer is left with slots >= index unset.

    Raises:
        SolverTimeoutError: If the deadline expires.
    """
    stats = stats if stats is not None else SearchStats()
    if deadline is not None:
        deadline.check()
    stats.nodes_explored += 1

    if index == len(meetings):
        if test_solution(assignment, constraints):
            return list(assignment)
        return None

    for candidate in meetings[index].domain:
        assignment[index] = candidate
        if test_solution(assignment, constraints):
            solution = backtrack(meetings, constraints, assignment, index + 1, stats, deadline)
            if solution is not None:
                return solution
        assignment[index] = None
        stats.backtracks += 1
    return None


def backtrack_iterative(
    meetings: Sequence[Meeting],
    constraints: Sequence[DateConstraint],
    assignment: list[Optional[date]],
    stats: SearchStats | None = None,
    deadline: Deadline | None = None,
) -> list[date] | None:
    """Same search as ``backtrack`` driven by an explicit stack.

    Each frame is ``[meeting_index, next_domain_position]``. A frame whose
    meeting is still assigned when it comes back to the top of the stack has
    just had its child subtree fail, so that assignment is undone first.
    """
    stats = stats if stats is not None else SearchStats()
    n = len(meetings)

    if deadline is not None:
        deadline.check()
    stats.nodes_explored += 1
    if n == 0:
        return list(assignment) if test_solution(assignment, constraints) else None

    stack: list[list[int]] = [[0, 0]]
    while stack:
        frame = stack[-1]
        index, position = frame
        domain = meetings[index].domain

        if assignment[index] is not None:
            assignment[index] = None
            stats.backtracks += 1

        advanced = False
        while position < len(domain):
            assignment[index] = domain[position]
            position += 1
            if test_solution(assignment, constraints):
                advanced = True
                break
            assignment[index] = None
            stats.backtracks += 1
        frame[1] = position

        if not advanced:
            stack.pop()
            continue

        if deadline is not None:
            deadline.check()
        stats.nodes_explored += 1

        if index + 1 == n:
            if test_solution(assignment, constraints):
                return list(assignment)
            continue
        stack.append([index + 1, 0])

    return None
