"""Configuration loading with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for satinv:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.satinv/`` elsewhere. See :func:`get_cache_dir` and
  :func:`get_data_dir`.
* **Config file** -- a YAML document deserialised into a
  :class:`~satinv.models.Config`. Located via :func:`resolve_config_path`
  and loaded with :func:`load_config`.
* **Credential resolution** -- :func:`resolve_credential` reads the API
  password from an environment variable or a file.

All file writes (config, cache content, expiry table) use an atomic
temp-file-then-rename strategy (:func:`atomic_write`) so that a crash never
leaves a torn file behind.
"""

from __future__ import annotations

import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from satinv.exceptions import ConfigError
from satinv.models import Config

_APP_NAME = "satinv"
_CONFIG_ENV_VAR = "SATINVCFG"
DEFAULT_CONFIG_PATH = Path("/etc/ansible/satinv.yml")


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_cache_dir() -> Path:
    """Return the default cache directory.

    Used when the config file leaves ``cache.dir`` empty. The directory is
    not created here; :class:`~satinv.cache.ExpiryCache` creates it.

    On Linux/BSD: ``$XDG_CACHE_HOME/satinv/`` (default ``~/.cache/satinv/``).
    On macOS/Windows: ``~/.satinv/cache/``.
    """
    if _is_xdg_platform():
        return _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    return _fallback_base_dir() / "cache"


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/satinv/`` (default ``~/.local/share/satinv/``).
    On macOS/Windows: ``~/.satinv/logs/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up and *path* is left as it was.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Config file ---


def resolve_config_path(cli_config: Optional[str] = None) -> Path:
    """Resolve the config file location.

    Precedence (high to low):
        1. The ``--config`` flag (honoured even if the file does not exist)
        2. The ``SATINVCFG`` environment variable
        3. ``/etc/ansible/satinv.yml``
    """
    if cli_config:
        return Path(cli_config).expanduser()
    env_config = os.environ.get(_CONFIG_ENV_VAR)
    if env_config:
        return Path(env_config).expanduser()
    return DEFAULT_CONFIG_PATH


def load_config(path: Path) -> Config:
    """Load and validate a YAML config file.

    Zero or missing validity windows are replaced with defaults by the
    model, and ``~`` is expanded in path-like settings. An empty
    ``cache.dir`` resolves to :func:`get_cache_dir`.

    Args:
        path: The YAML file to read.

    Returns:
        The deserialised :class:`~satinv.models.Config`.

    Raises:
        ConfigError: If the file is missing, unreadable, not valid YAML,
            or fails Pydantic validation.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in config {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config {path} must be a YAML mapping (got {type(data).__name__})"
        )
    try:
        config = Config.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc

    config.cache.dir = expand_tilde(config.cache.dir) or str(get_cache_dir())
    config.api.certfile = expand_tilde(config.api.certfile)
    config.logging.filename = expand_tilde(config.logging.filename)
    return config


def write_config(config: Config, path: Path) -> None:
    """Persist *config* atomically as YAML."""
    data = config.model_dump(mode="json")
    atomic_write(path, yaml.safe_dump(data, default_flow_style=False, sort_keys=True))


def expand_tilde(value: str) -> str:
    """Expand a leading ``~`` or ``~/`` to the user's home directory.

    Empty strings and paths without a tilde are returned unchanged.
    """
    if value == "~" or value.startswith("~/"):
        return str(Path(value).expanduser())
    return value


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace

    Args:
        source: The source descriptor string.

    Returns:
        The resolved credential string.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    raise ConfigError(f"Unknown credential source format: {source}")


def api_password(config: Config) -> str:
    """Return the API password, resolving ``password_source`` when no literal is set."""
    if config.api.password:
        return config.api.password
    if config.api.password_source:
        return resolve_credential(config.api.password_source)
    return ""
