"""
Domain pruning before search: node consistency, then arc consistency.

Node consistency filters each meeting's domain by its unary constraints.
Arc consistency removes a value from a meeting (the arc's tail) when no
value of the related meeting (the head) supports it under the constraint.

Two arc-consistency modes are provided:

  single_pass  each binary constraint (and its mirror) is revised exactly
               once, in order. A later revision can leave an earlier arc
               unsupported; the search re-checks every constraint anyway.
  fixpoint     AC-3. Whenever a meeting's domain shrinks, every arc whose
               head is that meeting is revised again until nothing changes.

Neither mode ever removes a value that appears in some full solution, so the
solution the search finds is the same in both modes.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Iterable

import networkx as nx

from src.calendar_csp.constraints import BinaryConstraint, UnaryConstraint, split_by_arity
from src.calendar_csp.domain import Meeting
from src.calendar_csp.evaluator import evaluate
from src.calendar_csp.logging_utils import get_logger

logger = get_logger()

SINGLE_PASS = "single_pass"
FIXPOINT = "fixpoint"
ARC_CONSISTENCY_MODES = (SINGLE_PASS, FIXPOINT)


@dataclass
class PreprocessReport:
    """Outcome of preprocessing.

    Attributes:
        feasible: False once some meeting's domain was emptied.
        pruned_by_node: Values removed by unary constraints.
        pruned_by_arc: Values removed by binary constraints.
        arc_revisions: Number of arc revisions performed.
        emptied_meeting: Index of the meeting whose domain ran out, if any.
    """

    feasible: bool = True
    pruned_by_node: int = 0
    pruned_by_arc: int = 0
    arc_revisions: int = 0
    emptied_meeting: int | None = None


# ── Single-constraint revisions ───────────────────────────────────────────────


def node_consistency(meeting: Meeting, constraint: UnaryConstraint) -> int:
    """Drop every date from the meeting's domain that violates the unary constraint.

    Returns:
        Number of dates removed.
    """
    keep = [d for d in meeting.domain if evaluate(d, constraint.op, constraint.value)]
    return meeting.retain(keep)


def arc_consistency(tail: Meeting, head: Meeting, constraint: BinaryConstraint) -> int:
    """Drop every tail date with no supporting head date.

    The tail is the constraint's left operand. A tail date ``x`` survives when
    some ``y`` in the head's domain satisfies ``x <op> y``.

    Returns:
        Number of dates removed from the tail.
    """
    keep = [
        x for x in tail.domain if any(evaluate(x, constraint.op, y) for y in head.domain)
    ]
    return tail.retain(keep)


# ── Constraint graph ──────────────────────────────────────────────────────────


class ConstraintGraph:
    """Directed graph of binary constraints between meetings.

    Wraps a NetworkX DiGraph whose nodes are meeting indices. Each edge
    ``tail -> head`` carries the list of binary constraints that prune the
    tail against the head (attribute ``constraints``).

    Attributes:
        graph: The underlying NetworkX DiGraph.
    """

    def __init__(self, n_meetings: int, constraints: Iterable[BinaryConstraint] = ()) -> None:
        self.graph = nx.DiGraph()
        self.graph.add_nodes_from(range(n_meetings))
        for c in constraints:
            self.add_constraint(c)

    def add_constraint(self, constraint: BinaryConstraint) -> None:
        """Register a constraint on the arc left -> right."""
        tail, head = constraint.left, constraint.right
        if self.graph.has_edge(tail, head):
            self.graph[tail][head]["constraints"].append(constraint)
        else:
            self.graph.add_edge(tail, head, constraints=[constraint])

    def constraints_between(self, tail: int, head: int) -> list[BinaryConstraint]:
        if not self.graph.has_edge(tail, head):
            return []
        return list(self.graph[tail][head]["constraints"])

    def arcs_into(self, meeting: int) -> list[BinaryConstraint]:
        """All constraints whose head is ``meeting``, in insertion order."""
        arcs: list[BinaryConstraint] = []
        for _, _, data in self.graph.in_edges(meeting, data=True):
            arcs.extend(data["constraints"])
        return arcs

    @property
    def n_arcs(self) -> int:
        return sum(len(data["constraints"]) for _, _, data in self.graph.edges(data=True))


# ── Preprocessing passes ──────────────────────────────────────────────────────


def _apply_node_consistency(
    meetings: list[Meeting], unary: list[UnaryConstraint], report: PreprocessReport
) -> bool:
    for c in unary:
        meeting = meetings[c.left]
        removed = node_consistency(meeting, c)
        report.pruned_by_node += removed
        if removed:
            logger.debug("Node consistency %s removed %d date(s)", c, removed)
        if meeting.is_empty:
            report.feasible = False
            report.emptied_meeting = meeting.index
            logger.info("Meeting %d has no date satisfying %s", meeting.index, c)
            return False
    return True


def _revise(
    meetings: list[Meeting], c: BinaryConstraint, report: PreprocessReport
) -> int:
    removed = arc_consistency(meetings[c.left], meetings[c.right], c)
    report.arc_revisions += 1
    report.pruned_by_arc += removed
    if removed:
        logger.debug("Arc consistency %s removed %d date(s)", c, removed)
    return removed


def _mark_emptied(meeting: Meeting, c: BinaryConstraint, report: PreprocessReport) -> None:
    report.feasible = False
    report.emptied_meeting = meeting.index
    logger.info("Meeting %d has no date supported under %s", meeting.index, c)


def _single_pass(
    meetings: list[Meeting], binary: list[BinaryConstraint], report: PreprocessReport
) -> bool:
    for c in binary:
        _revise(meetings, c, report)
        if meetings[c.left].is_empty:
            _mark_emptied(meetings[c.left], c, report)
            return False
    return True


def _fixpoint(
    meetings: list[Meeting], binary: list[BinaryConstraint], report: PreprocessReport
) -> bool:
    graph = ConstraintGraph(len(meetings), binary)
    logger.debug("AC-3 over %d arc(s) between %d meeting(s)", graph.n_arcs, len(meetings))
    queue: deque[BinaryConstraint] = deque(binary)
    queued: set[BinaryConstraint] = set(binary)

    while queue:
        c = queue.popleft()
        queued.discard(c)
        if not _revise(meetings, c, report):
            continue
        tail = meetings[c.left]
        if tail.is_empty:
            _mark_emptied(tail, c, report)
            return False
        # The tail shrank: arcs that use it as their support must be revisited
        for arc in graph.arcs_into(tail.index):
            if arc not in queued:
                queue.append(arc)
                queued.add(arc)
    return True


def preprocess(
    meetings: list[Meeting],
    constraints: Iterable,
    arc_mode: str = SINGLE_PASS,
) -> PreprocessReport:
    """Shrink meeting domains in place: all unary constraints, then all binary ones.

    Args:
        meetings: Meetings indexed by position; their domains are mutated.
        constraints: Constraints including the mirror of every binary one.
        arc_mode: ``"single_pass"`` or ``"fixpoint"``.

    Returns:
        A PreprocessReport; ``feasible`` is False as soon as any domain empties,
        in which case the remaining constraints are not processed.
    """
    if arc_mode not in ARC_CONSISTENCY_MODES:
        raise ValueError(
            f"Unknown arc consistency mode {arc_mode!r}. Valid options: {ARC_CONSISTENCY_MODES}"
        )

    unary, binary = split_by_arity(constraints)
    report = PreprocessReport()

    if not _apply_node_consistency(meetings, unary, report):
        return report

    if arc_mode == SINGLE_PASS:
        _single_pass(meetings, binary, report)
    else:
        _fixpoint(meetings, binary, report)

    logger.debug(
        "Preprocessing done: feasible=%s node_pruned=%d arc_pruned=%d revisions=%d",
        report.feasible,
        report.pruned_by_node,
        report.pruned_by_arc,
        report.arc_revisions,
    )
    return report
