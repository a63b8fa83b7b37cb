"""Tests for the output system.

Covers:
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Level threshold and quiet mode
- Log file redirection
- Global instance management
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from satinv import output as output_module
from satinv.output import (
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture(autouse=True)
def _reset_global_output():
    """Ensure the global output instance is reset between tests."""
    reset_output()
    yield
    reset_output()


# ------------------------------------------------------------------ #
# NO_COLOR / TERM=dumb detection
# ------------------------------------------------------------------ #


class TestColorDisabling:
    def test_no_color_env_disables_color(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout vs stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    """Data goes to stdout and diagnostics go to stderr."""

    def test_print_data_goes_to_stdout(self, capsys):
        mgr = OutputManager(no_color=True)
        mgr.print_data("hello world")
        captured = capsys.readouterr()
        assert captured.out == "hello world\n"
        assert captured.err == ""

    def test_print_json_is_indented(self, capsys):
        mgr = OutputManager(no_color=True)
        mgr.print_json({"all": {"children": ["sat_valid"]}})
        out = capsys.readouterr().out
        assert json.loads(out) == {"all": {"children": ["sat_valid"]}}
        assert '\n  "all"' in out

    def test_info_goes_to_stderr(self, capsys):
        OutputManager(no_color=True).info("some info")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "some info" in captured.err

    def test_warning_prefix(self, capsys):
        OutputManager(no_color=True).warning("be careful")
        assert "Warning: be careful" in capsys.readouterr().err

    def test_error_goes_to_stderr(self, capsys):
        OutputManager(no_color=True).error("something broke")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Error: something broke" in captured.err

    def test_markup_is_escaped(self, capsys):
        OutputManager(no_color=True).info("[bold]literal[/bold]")
        assert "[bold]literal[/bold]" in capsys.readouterr().err


# ------------------------------------------------------------------ #
# Levels and quiet mode
# ------------------------------------------------------------------ #


class TestLevels:
    def test_debug_hidden_at_info(self, capsys):
        mgr = OutputManager(level="info", no_color=True)
        mgr.debug("hidden")
        assert capsys.readouterr().err == ""
        assert not mgr.is_verbose

    def test_debug_shown_at_debug(self, capsys):
        mgr = OutputManager(level="debug", no_color=True)
        mgr.debug("shown")
        assert "[debug] shown" in capsys.readouterr().err
        assert mgr.is_verbose

    def test_warning_level_hides_info(self, capsys):
        mgr = OutputManager(level="warning", no_color=True)
        mgr.info("hidden")
        mgr.warning("shown")
        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err

    def test_unknown_level_falls_back_to_info(self, capsys):
        mgr = OutputManager(level="chatty", no_color=True)
        mgr.debug("hidden")
        mgr.info("shown")
        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err

    def test_quiet_suppresses_everything_but_errors(self, capsys):
        mgr = OutputManager(level="debug", quiet=True, no_color=True)
        mgr.debug("d")
        mgr.info("i")
        mgr.warning("w")
        mgr.error("e")
        err = capsys.readouterr().err
        assert err.strip() == "Error: e"
        assert mgr.is_quiet
        assert not mgr.is_verbose


# ------------------------------------------------------------------ #
# Log file
# ------------------------------------------------------------------ #


class TestLogFile:
    def test_diagnostics_go_to_log_file(self, tmp_path: Path, capsys):
        log = tmp_path / "satinv.log"
        mgr = OutputManager(level="debug", log_file=str(log))
        mgr.debug("to the log")
        mgr.warning("also logged")
        mgr.close()

        assert capsys.readouterr().err == ""
        text = log.read_text()
        assert "[debug] to the log" in text
        assert "Warning: also logged" in text

    def test_errors_go_to_both(self, tmp_path: Path, capsys):
        log = tmp_path / "satinv.log"
        mgr = OutputManager(log_file=str(log))
        mgr.error("fatal")
        mgr.close()

        assert "Error: fatal" in capsys.readouterr().err
        assert "Error: fatal" in log.read_text()

    def test_log_file_is_appended(self, tmp_path: Path):
        log = tmp_path / "satinv.log"
        log.write_text("previous run\n")
        mgr = OutputManager(log_file=str(log))
        mgr.info("this run")
        mgr.close()
        lines = log.read_text().splitlines()
        assert lines[0] == "previous run"
        assert lines[1].endswith("this run")


# ------------------------------------------------------------------ #
# Global instance management
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        assert isinstance(get_output(), OutputManager)

    def test_set_output_replaces_instance(self):
        mgr = OutputManager(quiet=True)
        set_output(mgr)
        assert get_output() is mgr

    def test_reset_output_clears_instance(self):
        mgr = OutputManager()
        set_output(mgr)
        reset_output()
        assert get_output() is not mgr

    def test_convenience_functions_delegate(self, capsys):
        set_output(OutputManager(level="debug", no_color=True))
        output_module.info("via module")
        output_module.print_json([1])
        captured = capsys.readouterr()
        assert "via module" in captured.err
        assert json.loads(captured.out) == [1]
