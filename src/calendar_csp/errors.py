"""Exceptions raised by the calendar solver.

Infeasibility is a normal outcome and is never raised; these cover contract
violations and exhausted time budgets only.
"""


class CalendarCSPError(Exception):
    """Base class for all calendar solver errors."""


class MalformedProblemError(CalendarCSPError, ValueError):
    """Raised when a problem instance violates the input contract.

    Examples: a negative meeting count, a constraint that references a
    meeting index outside [0, n_meetings), or an unknown operator symbol.
    """


class SolverTimeoutError(CalendarCSPError, TimeoutError):
    """Raised when the search exceeds its configured time limit."""


class SolverModelError(CalendarCSPError, RuntimeError):
    """Raised when a backend solver rejects the model it was given."""
