"""Tests for the recursive and iterative backtracking drivers.

Run with: pytest tests/test_search.py -v
"""

import sys
from pathlib import Path
from datetime import date

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from src.calendar_csp.benchmark import brute_force, generate_instance
from src.calendar_csp.constraints import BinaryConstraint, Operator, with_mirrors
from src.calendar_csp.domain import Meeting, build_meetings
from src.calendar_csp.errors import SolverTimeoutError
from src.calendar_csp.search import Deadline, SearchStats, backtrack, backtrack_iterative


def d(day: int) -> date:
    return date(2024, 1, day)


def all_different(n: int) -> list[BinaryConstraint]:
    return with_mirrors(
        [BinaryConstraint(i, Operator.NE, j) for i in range(n) for j in range(i + 1, n)]
    )


@pytest.fixture(params=["recursive", "iterative"])
def driver(request):
    """Run either driver with a common call signature."""

    def run(meetings, constraints, stats=None, deadline=None):
        assignment = [None] * len(meetings)
        if request.param == "recursive":
            return backtrack(meetings, constraints, assignment, 0, stats, deadline)
        return backtrack_iterative(meetings, constraints, assignment, stats, deadline)

    return run


class TestBacktracking:
    """Behaviour shared by both drivers."""

    def test_first_solution_in_domain_order(self, driver):
        meetings = build_meetings(3, d(1), d(3))
        assert driver(meetings, all_different(3)) == [d(1), d(2), d(3)]

    def test_domain_order_drives_choice(self, driver):
        """Values are tried in the order the domain lists them."""
        meetings = [Meeting(0, [d(3), d(1)]), Meeting(1, [d(2)])]
        assert driver(meetings, []) == [d(3), d(2)]

    def test_exhausted_search_returns_none(self, driver):
        meetings = build_meetings(3, d(1), d(2))
        assert driver(meetings, all_different(3)) is None

    def test_no_meetings(self, driver):
        assert driver([], []) == []

    def test_returns_copy_not_buffer(self):
        meetings = build_meetings(2, d(1), d(2))
        buffer = [None, None]
        solution = backtrack(meetings, all_different(2), buffer)
        solution[0] = d(9)
        assert buffer[0] == d(1)

    def test_matches_brute_force_first_solution(self, driver):
        rng = np.random.default_rng(3)
        for _ in range(40):
            instance = generate_instance(rng, n_meetings=3, n_days=3)
            meetings = build_meetings(3, instance.range_start, instance.range_end)
            solutions = brute_force(instance)
            result = driver(meetings, with_mirrors(instance.constraints))
            assert result == (solutions[0] if solutions else None)

    def test_deadline_interrupts_search(self, driver):
        """Pigeonhole: nine mutually different meetings on eight days."""
        meetings = build_meetings(9, d(1), d(8))
        with pytest.raises(SolverTimeoutError):
            driver(meetings, all_different(9), deadline=Deadline(1.0))


class TestDriverEquivalence:
    """Both drivers visit the same nodes in the same order."""

    def test_identical_statistics(self):
        rng = np.random.default_rng(5)
        for _ in range(25):
            instance = generate_instance(rng, n_meetings=4, n_days=4, n_binary=5)
            constraints = with_mirrors(instance.constraints)

            rec_stats, it_stats = SearchStats(), SearchStats()
            rec = backtrack(
                build_meetings(4, instance.range_start, instance.range_end),
                constraints,
                [None] * 4,
                0,
                rec_stats,
            )
            it = backtrack_iterative(
                build_meetings(4, instance.range_start, instance.range_end),
                constraints,
                [None] * 4,
                it_stats,
            )
            assert rec == it
            assert rec_stats == it_stats

    def test_stats_on_small_exhaustion(self):
        """Two meetings, one day, m0 != m1: root, m0 node, then two failures."""
        stats = SearchStats()
        result = backtrack(build_meetings(2, d(1), d(1)), all_different(2), [None, None], 0, stats)
        assert result is None
        assert stats.nodes_explored == 2
        assert stats.backtracks == 2

    def test_iterative_handles_depth_beyond_recursion_limit(self):
        n = sys.getrecursionlimit() + 100
        meetings = build_meetings(n, d(1), d(1))
        assert backtrack_iterative(meetings, [], [None] * n) == [d(1)] * n


class TestDeadline:
    """Time budget object."""

    def test_unbounded_never_raises(self):
        Deadline(None).check()

    def test_generous_budget_does_not_raise(self):
        Deadline(60_000).check()
