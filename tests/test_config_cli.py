"""
Tests for configuration loading, logging setup and the command-line entry point.

Run with: pytest tests/test_config_cli.py -v
"""

import sys
import logging
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import run_solver
from src.calendar_csp.config import (
    CalendarConfig,
    ConsistencyConfig,
    SearchConfig,
    load_config,
)
from src.calendar_csp.logging_utils import LOGGER_NAME, configure_logging, get_logger
from src.calendar_csp.solver import solve

REPO_ROOT = Path(__file__).resolve().parent.parent


# ── Fixtures ──────────────────────────────────────────────────────


@pytest.fixture
def missing_config(tmp_path) -> str:
    return str(tmp_path / "absent.yaml")


@pytest.fixture(autouse=True)
def restore_log_level():
    """The CLI changes the package logger level; put it back afterwards."""
    logger = get_logger()
    level = logger.level
    yield
    logger.setLevel(level)


# ── Test: configuration ───────────────────────────────────────────


class TestConfig:
    """Dataclass defaults, validation and YAML loading."""

    def test_defaults(self):
        config = CalendarConfig()
        assert config.search.strategy == "backtracking"
        assert config.search.time_limit_ms is None
        assert config.consistency.enabled
        assert config.consistency.arc_consistency == "single_pass"
        assert config.logging.level == "WARNING"

    def test_shipped_yaml_matches_defaults(self):
        assert load_config(REPO_ROOT / "config" / "default_solver.yaml") == CalendarConfig()

    def test_load_partial_yaml(self, tmp_path):
        path = tmp_path / "solver.yaml"
        path.write_text(
            "search:\n"
            "  strategy: cpsat\n"
            "  time_limit_ms: 250\n"
            "consistency:\n"
            "  arc_consistency: fixpoint\n",
            encoding="utf-8",
        )
        config = load_config(path)
        assert config.search == SearchConfig(strategy="cpsat", time_limit_ms=250)
        assert config.consistency == ConsistencyConfig(arc_consistency="fixpoint")
        assert config.logging.level == "WARNING"

    def test_empty_yaml_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == CalendarConfig()

    def test_invalid_strategy_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("search:\n  strategy: greedy\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Unknown strategy"):
            load_config(path)

    def test_non_positive_time_limit_rejected(self):
        with pytest.raises(ValueError, match="time_limit_ms"):
            SearchConfig(time_limit_ms=0)

    def test_unknown_arc_mode_rejected(self):
        with pytest.raises(ValueError, match="arc consistency mode"):
            ConsistencyConfig(arc_consistency="ac2001")

    def test_configs_are_frozen(self):
        config = SearchConfig()
        with pytest.raises(AttributeError):
            config.strategy = "cpsat"  # type: ignore[misc]


# ── Test: logging ─────────────────────────────────────────────────


class TestLogging:
    """Package logger setup."""

    def test_single_handler_across_calls(self):
        get_logger()
        logger = get_logger()
        assert logger.name == LOGGER_NAME
        assert len(logger.handlers) == 1

    def test_configure_by_name(self):
        assert configure_logging("debug").level == logging.DEBUG

    def test_configure_by_number(self):
        assert configure_logging(logging.ERROR).level == logging.ERROR

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging("chatty")

    def test_reversed_range_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
            solve(1, date(2024, 1, 5), date(2024, 1, 1), [])
        assert "precedes range_start" in caplog.text


# ── Test: CLI ─────────────────────────────────────────────────────


class TestCli:
    """run_solver.main end to end."""

    def test_prints_schedule(self, capsys, missing_config):
        code = run_solver.main(
            [
                "--config", missing_config,
                "--meetings", "3",
                "--start", "2024-01-01",
                "--end", "2024-01-05",
                "--constraint", "m0 < m1",
                "--constraint", "m1 < m2",
            ]
        )
        captured = capsys.readouterr()
        assert code == 0
        assert "not found, using defaults" in captured.err
        lines = captured.out.splitlines()
        assert lines[0].split() == ["Meeting", "Date"]
        assert lines[2].split() == ["m0", "2024-01-01"]
        assert lines[3].split() == ["m1", "2024-01-02"]
        assert lines[4].split() == ["m2", "2024-01-03"]

    def test_unary_constraint_and_cpsat(self, capsys, missing_config):
        code = run_solver.main(
            [
                "--config", missing_config,
                "--meetings", "1",
                "--start", "2024-01-01",
                "--end", "2024-01-03",
                "--constraint", "m0 == 2024-01-02",
                "--strategy", "cpsat",
            ]
        )
        assert code == 0
        assert "2024-01-02" in capsys.readouterr().out

    def test_no_solution_exit_code(self, capsys, missing_config):
        code = run_solver.main(
            [
                "--config", missing_config,
                "--meetings", "2",
                "--start", "2024-01-01",
                "--end", "2024-01-01",
                "--constraint", "m0 != m1",
            ]
        )
        assert code == 1
        assert "No solution (INFEASIBLE_PREPROCESSING)" in capsys.readouterr().out

    def test_fixpoint_override(self, capsys, missing_config):
        args = [
            "--config", missing_config,
            "--meetings", "2",
            "--start", "2024-01-01",
            "--end", "2024-01-10",
            "--constraint", "m0 < m1",
            "--constraint", "m1 < m0",
        ]
        assert run_solver.main(args) == 1
        assert "INFEASIBLE_SEARCH" in capsys.readouterr().out
        assert run_solver.main(args + ["--arc-consistency", "fixpoint"]) == 1
        assert "INFEASIBLE_PREPROCESSING" in capsys.readouterr().out

    def test_stats_flag(self, capsys, missing_config):
        run_solver.main(
            [
                "--config", missing_config,
                "--meetings", "2",
                "--start", "2024-01-01",
                "--end", "2024-01-02",
                "--constraint", "m0 != m1",
                "--stats",
            ]
        )
        out = capsys.readouterr().out
        assert "Status:          SOLVED" in out
        assert "Domain sizes:    [2, 2]" in out

    def test_malformed_constraint(self, capsys, missing_config):
        code = run_solver.main(
            [
                "--config", missing_config,
                "--meetings", "2",
                "--start", "2024-01-01",
                "--end", "2024-01-02",
                "--constraint", "m0 <> m1",
            ]
        )
        assert code == 2
        assert "Error: Cannot parse" in capsys.readouterr().err

    def test_out_of_range_meeting(self, capsys, missing_config):
        code = run_solver.main(
            [
                "--config", missing_config,
                "--meetings", "1",
                "--start", "2024-01-01",
                "--end", "2024-01-02",
                "--constraint", "m0 < m4",
            ]
        )
        assert code == 2
        assert "references meeting" in capsys.readouterr().err

    def test_config_file_is_used(self, tmp_path, capsys):
        path = tmp_path / "solver.yaml"
        path.write_text("search:\n  strategy: iterative\n", encoding="utf-8")
        args = run_solver.build_parser().parse_args(
            ["--config", str(path), "--meetings", "1", "--start", "2024-01-01", "--end", "2024-01-01"]
        )
        assert run_solver.resolve_config(args).search.strategy == "iterative"

        args = run_solver.build_parser().parse_args(
            [
                "--config", str(path),
                "--meetings", "1",
                "--start", "2024-01-01",
                "--end", "2024-01-01",
                "--strategy", "cpsat",
                "--time-limit-ms", "500",
            ]
        )
        config = run_solver.resolve_config(args)
        assert config.search == SearchConfig(strategy="cpsat", time_limit_ms=500.0)

    def test_bad_date_argument_exits(self, missing_config):
        with pytest.raises(SystemExit):
            run_solver.main(
                ["--config", missing_config, "--meetings", "1", "--start", "soon", "--end", "2024-01-01"]
            )

    def test_invalid_config_file_exit_code(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("search:\n  strategy: nope\n", encoding="utf-8")
        code = run_solver.main(
            ["--config", str(path), "--meetings", "1", "--start", "2024-01-01", "--end", "2024-01-01"]
        )
        assert code == 2
        assert "Error: Unknown strategy" in capsys.readouterr().err

    def test_invalid_time_limit_override_exit_code(self, capsys, missing_config):
        code = run_solver.main(
            [
                "--config", missing_config,
                "--meetings", "1",
                "--start", "2024-01-01",
                "--end", "2024-01-01",
                "--time-limit-ms", "0",
            ]
        )
        assert code == 2
        assert "time_limit_ms must be positive" in capsys.readouterr().err
