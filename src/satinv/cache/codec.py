"""Reading and writing the persisted expiry table.

The table lives at ``<cache_dir>/expire.json``::

    {
      "write_time": "2024-05-01T09:30:00Z",
      "urls": {
        "https://sat.example.com/api/v2/hosts?per_page=1000": 1714584600,
        "inventory": 1714563000
      }
    }

Remote and local keys share the ``urls`` namespace. Entries older than
:data:`RETENTION_SECONDS` are pruned on import.
"""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from satinv.config import atomic_write
from satinv.exceptions import ExpiryTableError
from satinv.output import debug, info

EXPIRY_FILENAME = "expire.json"
RETENTION_SECONDS = 7 * 24 * 60 * 60
ISO8601 = "%Y-%m-%dT%H:%M:%SZ"


def import_expiry(path: Path, now: Optional[int] = None) -> dict[str, int]:
    """Load the expiry table, dropping entries past the retention horizon.

    A missing file is a normal first run and yields an empty table. Any
    other failure is fatal: silently resetting every expiry would force a
    full re-fetch without the operator noticing.

    Args:
        path: Location of ``expire.json``.
        now: Current epoch time; defaults to :func:`time.time`.

    Returns:
        Mapping of key to epoch expiry for every retained entry.

    Raises:
        ExpiryTableError: If the file exists but cannot be read or parsed.
    """
    if now is None:
        now = int(time.time())
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        info(f"{path}: Cache file does not exist. Treating as empty cache")
        return {}
    except OSError as exc:
        raise ExpiryTableError(f"{path}: Failed to read cache file: {exc}") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ExpiryTableError(f"{path}: Failed to parse cache file: {exc}") from exc
    if not isinstance(data, dict):
        raise ExpiryTableError(f"{path}: Cache file is not a JSON object")

    urls = data.get("urls") or {}
    if not isinstance(urls, dict):
        raise ExpiryTableError(f"{path}: 'urls' is not a JSON object")

    age_limit = now - RETENTION_SECONDS
    table: dict[str, int] = {}
    for key, value in urls.items():
        try:
            expiry = int(value)
            stamp = format_epoch(expiry)
        except (TypeError, ValueError, OverflowError, OSError) as exc:
            raise ExpiryTableError(
                f"{path}: Invalid expiry for {key!r}: {value!r}"
            ) from exc
        if expiry > age_limit:
            debug(f"Importing cache entry: url={key}, expiry={stamp}")
            table[key] = expiry
        elif expiry > 0:
            debug(f"Housekeeping old cache entry: url={key}, expiry={stamp}")
    return table


def export_expiry(path: Path, table: dict[str, int], now: Optional[float] = None) -> None:
    """Write *table* to *path* with a ``write_time`` stamp and a trailing newline."""
    document = {
        "write_time": timestamp(now),
        "urls": dict(sorted(table.items())),
    }
    atomic_write(path, json.dumps(document, indent=2) + "\n")
    info(f"Expiry cache written to: {path}")


def timestamp(now: Optional[float] = None) -> str:
    """Return *now* (default: the current time) as an ISO 8601 UTC string."""
    if now is None:
        now = time.time()
    return format_epoch(int(now))


def format_epoch(epoch: int) -> str:
    """Format an epoch timestamp as ISO 8601 UTC."""
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime(ISO8601)
