"""Output system with strict stdout/stderr discipline.

Ansible parses a dynamic inventory script's stdout as JSON, so:

* **stdout** -- primary data only (the inventory or a host's vars).
* **stderr** -- all diagnostics (info, debug, warnings, errors). When
  ``logging.filename`` is configured, diagnostics go to that file instead.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and is always
  off when writing to a log file.

The module exposes two layers:

1. :class:`OutputManager` -- a stateful object holding the level threshold,
   the Rich diagnostics console and the quiet flag. Created once in
   :func:`~satinv.app.main_command` and installed via :func:`set_output`.
2. Module-level convenience functions (:func:`info`, :func:`error`,
   :func:`debug`, etc.) that delegate to the global ``OutputManager``
   instance so callers do not need to pass the manager around.
"""

from __future__ import annotations

import json
import os
import sys
from datetime import datetime
from typing import IO, Any, Optional

from rich.console import Console
from rich.markup import escape

LEVELS: dict[str, int] = {"debug": 10, "info": 20, "warning": 30, "error": 40}


class OutputManager:
    """Central manager for all CLI output.

    Args:
        level: Minimum diagnostic level to emit (``debug``, ``info``,
            ``warning`` or ``error``). Unknown names fall back to ``info``.
        quiet: Suppress every diagnostic except errors. Used for normal
            Ansible runs, where stray output is unwelcome.
        no_color: Disable all colour and Rich markup.
        log_file: If set, append diagnostics to this path instead of stderr.
    """

    def __init__(
        self,
        level: str = "info",
        quiet: bool = False,
        no_color: bool = False,
        log_file: Optional[str] = None,
    ) -> None:
        self._threshold = LEVELS.get(level.lower(), LEVELS["info"])
        self._quiet = quiet
        self._log_handle: Optional[IO[str]] = None
        if log_file:
            self._log_handle = open(log_file, "a", encoding="utf-8")
        self._no_color = no_color or _should_disable_color() or self._log_handle is not None

        self._diag = Console(
            file=self._log_handle or sys.stderr,
            no_color=self._no_color,
            stderr=self._log_handle is None,
            highlight=False,
            soft_wrap=True,
        )

    @property
    def is_quiet(self) -> bool:
        """Whether quiet mode is enabled."""
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        """Whether debug messages are emitted."""
        return not self._quiet and self._threshold <= LEVELS["debug"]

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        """Print raw text to stdout, appending a newline if missing."""
        sys.stdout.write(text if text.endswith("\n") else text + "\n")
        sys.stdout.flush()

    def print_json(self, data: Any) -> None:
        """Print *data* to stdout as indented JSON."""
        self.print_data(json.dumps(data, indent=2, ensure_ascii=False))

    # ------------------------------------------------------------------ #
    # Diagnostics
    # ------------------------------------------------------------------ #

    def debug(self, message: str) -> None:
        """Emit a debug message (prefixed with ``[debug]``)."""
        self._emit("debug", f"[debug] {message}", "dim")

    def info(self, message: str) -> None:
        """Emit an informational message."""
        self._emit("info", message, None)

    def warning(self, message: str) -> None:
        """Emit a warning."""
        self._emit("warning", f"Warning: {message}", "yellow")

    def error(self, message: str) -> None:
        """Emit an error. Never suppressed, and always written to stderr."""
        text = f"Error: {message}"
        if self._log_handle is not None:
            self._write_log(text)
        if self._no_color:
            print(text, file=sys.stderr, flush=True)
        else:
            Console(file=sys.stderr, stderr=True, highlight=False, soft_wrap=True).print(
                f"[bold red]Error:[/bold red] {escape(message)}"
            )

    def close(self) -> None:
        """Close the log file, if one was opened."""
        if self._log_handle is not None:
            self._log_handle.close()
            self._log_handle = None

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _enabled(self, level: str) -> bool:
        if self._quiet:
            return False
        return LEVELS[level] >= self._threshold

    def _emit(self, level: str, text: str, style: Optional[str]) -> None:
        if not self._enabled(level):
            return
        if self._log_handle is not None:
            self._write_log(text)
        elif self._no_color or style is None:
            self._diag.print(escape(text))
        else:
            self._diag.print(f"[{style}]{escape(text)}[/{style}]")

    def _write_log(self, text: str) -> None:
        assert self._log_handle is not None
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        self._log_handle.write(f"{stamp} {text}\n")
        self._log_handle.flush()


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _should_disable_color() -> bool:
    """Check if color should be disabled per clig.dev.

    Returns True when NO_COLOR env var is set (any value) or TERM=dumb.
    """
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager` instance.

    If no instance has been installed via :func:`set_output`, a default
    ``OutputManager`` is created lazily.
    """
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance."""
    global _output
    _output = output


def reset_output() -> None:
    """Close and forget the global :class:`OutputManager`.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _output
    if _output is not None:
        _output.close()
    _output = None


# ------------------------------------------------------------------ #
# Convenience functions that use the global instance
# ------------------------------------------------------------------ #


def print_data(text: str) -> None:
    """Print raw data to stdout via the global OutputManager."""
    get_output().print_data(text)


def print_json(data: Any) -> None:
    """Print JSON to stdout via the global OutputManager."""
    get_output().print_json(data)


def debug(message: str) -> None:
    """Emit a debug message via the global OutputManager."""
    get_output().debug(message)


def info(message: str) -> None:
    """Emit an info message via the global OutputManager."""
    get_output().info(message)


def warning(message: str) -> None:
    """Emit a warning via the global OutputManager."""
    get_output().warning(message)


def error(message: str) -> None:
    """Emit an error via the global OutputManager."""
    get_output().error(message)
