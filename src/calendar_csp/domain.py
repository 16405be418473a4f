"""Meeting variables and their candidate-date domains."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta


def date_range(start: date, end: date) -> list[date]:
    """Every calendar day from ``start`` to ``end`` inclusive, ascending.

    When ``end`` precedes ``start`` the result is the single date ``start``
    rather than an empty list.
    """
    days = [start]
    current = start
    while current < end:
        current += timedelta(days=1)
        days.append(current)
    return days


@dataclass
class Meeting:
    """One CSP variable: a meeting index and the dates it may still take.

    The domain is owned by this meeting alone. It only ever shrinks (during
    preprocessing) and always stays an ordered subsequence of the range.
    """

    index: int
    domain: list[date] = field(default_factory=list)

    @classmethod
    def over_range(cls, index: int, start: date, end: date) -> Meeting:
        return cls(index=index, domain=date_range(start, end))

    @property
    def is_empty(self) -> bool:
        return not self.domain

    def retain(self, keep: list[date]) -> int:
        """Replace the domain with ``keep`` (a subsequence) and return the number removed."""
        removed = len(self.domain) - len(keep)
        self.domain = keep
        return removed


def build_meetings(n_meetings: int, start: date, end: date) -> list[Meeting]:
    """Create ``n_meetings`` meetings, each with its own copy of the full range."""
    return [Meeting.over_range(i, start, end) for i in range(n_meetings)]
