"""
Solver configuration dataclasses and YAML loader.

All tunable parameters live here as typed, validated dataclasses.
Load from YAML with `load_config()` or construct directly for tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

STRATEGIES = ("backtracking", "iterative", "cpsat")
ARC_MODES = ("single_pass", "fixpoint")


@dataclass(frozen=True)
class SearchConfig:
    """Search strategy and time budget.

    strategy:
      backtracking  recursive depth-first search (default)
      iterative     same search driven by an explicit frame stack; no
                    recursion-depth ceiling for very many meetings
      cpsat         OR-Tools CP-SAT feasibility model
    """

    strategy: str = "backtracking"
    time_limit_ms: float | None = None  # None = no limit

    def __post_init__(self) -> None:
        if self.strategy not in STRATEGIES:
            raise ValueError(
                f"Unknown strategy {self.strategy!r}. Valid options: {', '.join(STRATEGIES)}"
            )
        if self.time_limit_ms is not None and self.time_limit_ms <= 0:
            raise ValueError(f"time_limit_ms must be positive, got {self.time_limit_ms}")


@dataclass(frozen=True)
class ConsistencyConfig:
    """Preprocessing switches."""

    enabled: bool = True
    arc_consistency: str = "single_pass"  # or "fixpoint" (AC-3)

    def __post_init__(self) -> None:
        if self.arc_consistency not in ARC_MODES:
            raise ValueError(
                f"Unknown arc consistency mode {self.arc_consistency!r}. "
                f"Valid options: {', '.join(ARC_MODES)}"
            )


@dataclass(frozen=True)
class LoggingConfig:
    """Logging level for the ``calendar_csp`` logger."""

    level: str = "WARNING"


@dataclass(frozen=True)
class CalendarConfig:
    """Top-level configuration aggregating all sub-configs."""

    search: SearchConfig = field(default_factory=SearchConfig)
    consistency: ConsistencyConfig = field(default_factory=ConsistencyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | Path) -> CalendarConfig:
    """Load a CalendarConfig from a YAML file.

    Args:
        path: Path to a YAML config file. Missing sections fall back to defaults.

    Returns:
        Fully constructed CalendarConfig with all sub-configs.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return CalendarConfig(
        search=SearchConfig(**raw.get("search", {})),
        consistency=ConsistencyConfig(**raw.get("consistency", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
    )
