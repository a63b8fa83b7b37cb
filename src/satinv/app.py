"""Typer application and CLI entry point for satinv.

Ansible executes a dynamic inventory script as ``satinv --list`` (and, for
inventories without ``_meta``, ``satinv --host <name>``) and parses stdout
as JSON. Diagnostics are therefore suppressed unless ``--debug`` is given
or a log file is configured; errors are always reported on stderr.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`satinv.config`: Config file resolution and loading.
    :mod:`satinv.inventory`: Inventory assembly.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import httpx
import typer

from satinv import __version__
from satinv.exit_codes import EXIT_GENERIC_FAILURE
from satinv.models import Config


app = typer.Typer(
    name="satinv",
    help="Ansible dynamic inventory for Red Hat Satellite.",
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"satinv {__version__}")
        raise typer.Exit()


@app.command()
def main_command(
    list_inventory: bool = typer.Option(
        False, "--list", help="Produce a full inventory to stdout."
    ),
    host: Optional[str] = typer.Option(
        None, "--host", help="Print the variables of a single host."
    ),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file (default: $SATINVCFG or /etc/ansible/satinv.yml)."
    ),
    refresh: bool = typer.Option(
        False, "--refresh", help="Ignore cached data and refresh from the API."
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Write diagnostic output to stderr."
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Build the inventory (from cache when fresh) and print it.

    Args:
        list_inventory: Print the whole inventory as JSON.
        host: Print one host's variables as JSON.
        config: Config file path override (highest precedence).
        refresh: Treat every cached item as expired.
        debug: Emit debug-level diagnostics on stderr.
        version: If ``True``, print the version string and exit.

    Raises:
        typer.Exit: With the error's exit code when a
            :class:`~satinv.exceptions.SatinvError` is raised.
    """
    from satinv.config import load_config, resolve_config_path
    from satinv.exceptions import ConfigError, InvalidUsageError, SatinvError
    from satinv.inventory import InventoryBuilder
    from satinv.output import OutputManager, error, print_json, reset_output, set_output

    set_output(OutputManager(level="debug", quiet=not debug))
    try:
        try:
            if list_inventory and host:
                raise InvalidUsageError("--list and --host are mutually exclusive")

            cfg = load_config(resolve_config_path(config))
            log_file = cfg.logging.filename or None
            try:
                manager = OutputManager(
                    level="debug" if debug else cfg.logging.level,
                    quiet=not (debug or log_file),
                    log_file=log_file,
                )
            except OSError as exc:
                raise ConfigError(f"Cannot open log file {log_file}: {exc}") from exc
            set_output(manager)

            document = run_inventory(cfg, refresh=refresh)
        except SatinvError as exc:
            error(str(exc))
            raise typer.Exit(code=exc.exit_code)

        if list_inventory:
            print_json(document)
        elif host is not None:
            print_json(InventoryBuilder.host_vars(document, host))
    finally:
        reset_output()


def run_inventory(
    cfg: Config,
    refresh: bool = False,
    transport: Optional[httpx.BaseTransport] = None,
) -> dict[str, Any]:
    """Return the inventory, contacting Satellite only if it is stale.

    The expiry table is flushed when the cache is closed, including after
    a failed refresh, so that documents fetched before the failure keep
    their new expiry.

    Args:
        cfg: Loaded :class:`~satinv.models.Config`.
        refresh: Force every cache item to be treated as expired.
        transport: Optional httpx transport for the API client.
    """
    from satinv.cache import ExpiryCache
    from satinv.client import SatelliteClient
    from satinv.config import api_password
    from satinv.inventory import InventoryBuilder

    with ExpiryCache(Path(cfg.cache.dir), default_validity=cfg.cache.validity_hosts) as cache:
        if refresh:
            cache.set_refresh()
        builder = InventoryBuilder(cfg, cache)
        if not builder.is_stale():
            return builder.load()
        with SatelliteClient(cfg.api, password=api_password(cfg), transport=transport) as client:
            cache.set_fetcher(client.fetch)
            return builder.refresh()


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from satinv.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``satinv`` console script.

    Unhandled exceptions produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from satinv.exceptions import SatinvError
        from satinv.output import error

        if isinstance(exc, SatinvError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
