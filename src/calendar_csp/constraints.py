"""
Date constraints for the calendar satisfaction problem.

A constraint is one of two immutable variants:

  UnaryConstraint   meeting[left] <op> fixed date
  BinaryConstraint  meeting[left] <op> meeting[right]

Every binary constraint has a mirrored twin (operands swapped, operator
reflected) so the relation can be checked from either endpoint.

Usage:
    c = BinaryConstraint(0, Operator.LT, 1)
    flip(c)                              # BinaryConstraint(1, Operator.GT, 0)
    parse_constraint("m2 != 2024-01-05")  # UnaryConstraint(2, Operator.NE, date(...))
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Union

from src.calendar_csp.errors import MalformedProblemError


class Operator(Enum):
    """Comparison operators supported between two dates."""

    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="

    @classmethod
    def from_symbol(cls, symbol: str) -> Operator:
        """Look up an operator by its textual symbol (e.g. ``"<="``)."""
        try:
            return cls(symbol)
        except ValueError:
            valid = ", ".join(op.value for op in cls)
            raise MalformedProblemError(
                f"Unknown operator {symbol!r}. Valid operators: {valid}"
            ) from None

    @property
    def mirror(self) -> Operator:
        """Operator that holds for (b, a) exactly when self holds for (a, b)."""
        return _MIRRORED[self]

    def holds(self, left: date, right: date) -> bool:
        """Evaluate ``left <op> right`` chronologically."""
        if self is Operator.EQ:
            return left == right
        if self is Operator.NE:
            return left != right
        if self is Operator.LT:
            return left < right
        if self is Operator.LE:
            return left <= right
        if self is Operator.GT:
            return left > right
        return left >= right


_MIRRORED = {
    Operator.EQ: Operator.EQ,
    Operator.NE: Operator.NE,
    Operator.LT: Operator.GT,
    Operator.LE: Operator.GE,
    Operator.GT: Operator.LT,
    Operator.GE: Operator.LE,
}


@dataclass(frozen=True)
class UnaryConstraint:
    """Meeting ``left`` compared against a fixed calendar date."""

    left: int
    op: Operator
    value: date

    @property
    def arity(self) -> int:
        return 1

    def __str__(self) -> str:
        return f"m{self.left} {self.op.value} {self.value.isoformat()}"


@dataclass(frozen=True)
class BinaryConstraint:
    """Meeting ``left`` compared against meeting ``right``."""

    left: int
    op: Operator
    right: int

    @property
    def arity(self) -> int:
        return 2

    def __str__(self) -> str:
        return f"m{self.left} {self.op.value} m{self.right}"


DateConstraint = Union[UnaryConstraint, BinaryConstraint]


def flip(constraint: BinaryConstraint) -> BinaryConstraint:
    """Return the mirrored form of a binary constraint.

    ``m0 < m1`` becomes ``m1 > m0``; ``==`` and ``!=`` keep their operator.
    """
    return BinaryConstraint(constraint.right, constraint.op.mirror, constraint.left)


def with_mirrors(constraints: Iterable[DateConstraint]) -> list[DateConstraint]:
    """Return the constraints plus the mirror of every binary constraint.

    The input collection is left untouched. Order is preserved and duplicates
    (including a mirror that the caller already supplied) are dropped.
    """
    expanded: list[DateConstraint] = []
    seen: set[DateConstraint] = set()
    originals = list(constraints)
    mirrors = [flip(c) for c in originals if isinstance(c, BinaryConstraint)]
    for c in originals + mirrors:
        if c not in seen:
            seen.add(c)
            expanded.append(c)
    return expanded


def split_by_arity(
    constraints: Iterable[DateConstraint],
) -> tuple[list[UnaryConstraint], list[BinaryConstraint]]:
    """Partition constraints into (unary, binary) lists, order preserved."""
    unary: list[UnaryConstraint] = []
    binary: list[BinaryConstraint] = []
    for c in constraints:
        if isinstance(c, UnaryConstraint):
            unary.append(c)
        else:
            binary.append(c)
    return unary, binary


def is_calendar_date(value) -> bool:
    """True for a plain ``date``; ``datetime`` (a subclass) does not count."""
    return isinstance(value, date) and not isinstance(value, datetime)


def validate_constraints(n_meetings: int, constraints: Iterable[DateConstraint]) -> None:
    """Reject malformed problems before any pruning or search happens.

    Raises:
        MalformedProblemError: n_meetings is negative, a constraint is not one
            of the two variants, an operand index is outside [0, n_meetings),
            or a unary literal is not a date.
    """
    if n_meetings < 0:
        raise MalformedProblemError(f"n_meetings must be >= 0, got {n_meetings}")

    for c in constraints:
        if not isinstance(c, (UnaryConstraint, BinaryConstraint)):
            raise MalformedProblemError(f"Unsupported constraint type: {type(c).__name__}")
        if not isinstance(c.op, Operator):
            raise MalformedProblemError(f"Constraint {c!r} has no valid operator")
        indices = [c.left] if isinstance(c, UnaryConstraint) else [c.left, c.right]
        for idx in indices:
            if isinstance(idx, bool) or not isinstance(idx, int) or not 0 <= idx < n_meetings:
                raise MalformedProblemError(
                    f"Constraint {c} references meeting {idx!r}; "
                    f"valid indices are 0..{n_meetings - 1}"
                )
        if isinstance(c, UnaryConstraint) and not is_calendar_date(c.value):
            raise MalformedProblemError(f"Constraint {c!r} compares against a non-date literal")


def validate_range(range_start, range_end) -> None:
    """Both range endpoints must be plain dates.

    Raises:
        MalformedProblemError: If either endpoint is not a ``date`` or is a
            ``datetime``.
    """
    for name, value in (("range_start", range_start), ("range_end", range_end)):
        if not is_calendar_date(value):
            raise MalformedProblemError(
                f"{name} must be a date, got {type(value).__name__} {value!r}"
            )


# ── Text form ─────────────────────────────────────────────────────────────────

_CONSTRAINT_RE = re.compile(
    r"^\s*m(?P<left>\d+)\s*(?P<op>==|!=|<=|>=|<|>)\s*"
    r"(?:m(?P<right>\d+)|(?P<date>\d{4}-\d{2}-\d{2}))\s*$"
)


def parse_constraint(text: str) -> DateConstraint:
    """Parse ``"m0 < m1"`` or ``"m0 == 2024-01-02"`` into a constraint.

    Raises:
        MalformedProblemError: If the text does not match either form or the
            date literal is not a valid ISO date.
    """
    match = _CONSTRAINT_RE.match(text)
    if match is None:
        raise MalformedProblemError(
            f"Cannot parse constraint {text!r}; expected 'm<i> <op> m<j>' or 'm<i> <op> YYYY-MM-DD'"
        )
    left = int(match["left"])
    op = Operator.from_symbol(match["op"])
    if match["right"] is not None:
        return BinaryConstraint(left, op, int(match["right"]))
    try:
        literal = date.fromisoformat(match["date"])
    except ValueError as exc:
        raise MalformedProblemError(f"Invalid date in constraint {text!r}: {exc}") from exc
    return UnaryConstraint(left, op, literal)
