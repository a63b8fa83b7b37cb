"""Disk-backed expiry cache for Satellite API documents.

:class:`ExpiryCache` keeps one content file per registered item inside the
cache directory and remembers, across process invocations, when each item
expires. The expiry table is read once at construction and written at most
once, when the cache is closed and only if an expiry changed.

Freshness is decided in priority order:

1. the operator forced a refresh (:meth:`ExpiryCache.set_refresh`);
2. the item's content file is missing;
3. the stored expiry has passed.

Remote items are re-fetched through the configured fetcher when stale.
Local items are written by the caller and only have their freshness
tracked.

Example::

    with ExpiryCache(Path("~/.cache/satinv").expanduser(), default_validity=3600) as cache:
        cache.set_fetcher(client.fetch)
        cache.register(url, "hosts.json")
        hosts = cache.get_remote(url)
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Callable, Optional

from satinv.cache.codec import EXPIRY_FILENAME, export_expiry, import_expiry
from satinv.cache.registry import ItemRegistry
from satinv.config import atomic_write
from satinv.exceptions import CacheKindError, FetcherNotInitializedError, SatinvError
from satinv.models import CacheItem, ItemKind
from satinv.output import debug, info, warning

Fetcher = Callable[[str], bytes]


class ExpiryCache:
    """Per-item freshness tracking backed by files in *cache_dir*.

    Args:
        cache_dir: Directory holding content files and ``expire.json``.
            Created (with parents) if it does not exist.
        default_validity: Seconds an item stays fresh when :meth:`register`
            is called without an explicit validity.
        fetcher: Optional callable mapping a key to the raw bytes of a
            remote document. Can also be supplied later with
            :meth:`set_fetcher`.

    Raises:
        ExpiryTableError: If ``expire.json`` exists but is unreadable.
    """

    def __init__(
        self,
        cache_dir: Path,
        default_validity: int = 0,
        fetcher: Optional[Fetcher] = None,
    ) -> None:
        self._cache_dir = Path(cache_dir)
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        debug(f"Cache dir set to: {self._cache_dir}")
        self._default_validity = default_validity
        self._fetcher = fetcher
        self._refresh = False
        self._registry = ItemRegistry(import_expiry(self.expiry_path))

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> ExpiryCache:
        return self

    def __exit__(self, *args: object) -> None:
        self.write_expiry_file()

    # ------------------------------------------------------------------ #
    # Settings
    # ------------------------------------------------------------------ #

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    @property
    def expiry_path(self) -> Path:
        """Location of the persisted expiry table."""
        return self._cache_dir / EXPIRY_FILENAME

    @property
    def dirty(self) -> bool:
        """Whether any expiry changed since the table was loaded."""
        return self._registry.dirty

    def set_fetcher(self, fetcher: Fetcher) -> None:
        """Configure the callable used to refresh remote items."""
        self._fetcher = fetcher

    def set_refresh(self) -> None:
        """Treat every item as expired for the rest of this run."""
        self._refresh = True
        info("Forcing cache refresh")

    def set_default_validity(self, seconds: int) -> None:
        self._default_validity = seconds
        debug(f"Default cache period set to {seconds} seconds")

    # ------------------------------------------------------------------ #
    # Registry
    # ------------------------------------------------------------------ #

    def register(
        self,
        key: str,
        name: str,
        validity: Optional[int] = None,
        kind: ItemKind = ItemKind.REMOTE,
    ) -> CacheItem:
        """Associate *key* with the content file ``<cache_dir>/<name>``.

        Re-registering a key updates its file, validity and kind but keeps
        any expiry already known for it, including one imported from disk.
        """
        if validity is None:
            validity = self._default_validity
        return self._registry.register(key, self._cache_dir / name, validity, kind)

    def lookup(self, key: str) -> CacheItem:
        return self._registry.lookup(key)

    def file_path(self, key: str) -> Path:
        """Return the content file of a registered item."""
        return self._registry.lookup(key).file_path

    def set_expiry(self, key: str, instant: int) -> None:
        self._registry.set_expiry(key, instant)

    # ------------------------------------------------------------------ #
    # Expiry policy
    # ------------------------------------------------------------------ #

    def is_expired(self, key: str, now: Optional[int] = None) -> bool:
        """Return ``True`` if *key* must be refreshed.

        Raises:
            CacheKeyError: If *key* was never registered.
        """
        item = self._registry.lookup(key)
        if now is None:
            now = _now()
        if self._refresh:
            debug(f"Forced refresh of {key}")
            return True
        if not item.file_path.exists():
            debug(f"Cache file {item.file_path} for {key} does not exist")
            return True
        if now > item.expiry:
            debug(f"Cache for {key} has expired")
            return True
        return False

    def refresh_expiry(self, key: str, now: Optional[int] = None) -> int:
        """Restart the validity window of *key* at *now* and return the new expiry."""
        item = self._registry.lookup(key)
        if now is None:
            now = _now()
        expiry = now + item.validity
        self._registry.set_expiry(key, expiry)
        return expiry

    # ------------------------------------------------------------------ #
    # Fetch coordinator
    # ------------------------------------------------------------------ #

    def get_remote(self, key: str) -> Any:
        """Return the decoded JSON document for a remote item.

        Fresh items are read from disk. A cached file that cannot be read
        or decoded is treated like an expired one. Refreshed documents are
        written to the item's file before the expiry is advanced, so a
        failed fetch leaves both untouched.

        Raises:
            CacheKeyError: If *key* was never registered.
            CacheKindError: If *key* is a local item.
            FetcherNotInitializedError: If a refresh is needed and no
                fetcher is configured.
        """
        item = self._registry.lookup(key)
        _require_kind(item, ItemKind.REMOTE)

        if not self.is_expired(key):
            try:
                return json.loads(item.file_path.read_bytes())
            except OSError as exc:
                debug(f"Unable to read {item.file_path}, refreshing: {exc}")
            except ValueError as exc:
                warning(f"Corrupt cache file {item.file_path}, refreshing: {exc}")
        return self._fetch(item)

    def get_local(self, key: str) -> bytes:
        """Return the raw content of a local item.

        Raises:
            CacheKeyError: If *key* was never registered.
            CacheKindError: If *key* is a remote item.
            OSError: If the file cannot be read.
        """
        item = self._registry.lookup(key)
        _require_kind(item, ItemKind.LOCAL)
        return item.file_path.read_bytes()

    def get(self, key: str) -> Any:
        """Return an item's content, dispatching on its kind."""
        item = self._registry.lookup(key)
        if item.kind is ItemKind.REMOTE:
            return self.get_remote(key)
        if item.kind is ItemKind.LOCAL:
            return self.get_local(key)
        raise CacheKindError(f"Unhandled cache item kind: {item.kind}")

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    def write_expiry_file(self) -> bool:
        """Persist the expiry table if anything changed.

        Returns:
            ``True`` if the file was written.
        """
        if not self._registry.dirty:
            return False
        export_expiry(self.expiry_path, self._registry.table())
        self._registry.dirty = False
        return True

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _fetch(self, item: CacheItem) -> Any:
        if self._fetcher is None:
            raise FetcherNotInitializedError(
                f"API is not initialised; cannot refresh {item.key}"
            )
        info(f"Requested retrieval of: {item.key}")
        raw = self._fetcher(item.key)
        try:
            document = json.loads(raw)
        except ValueError as exc:
            raise SatinvError(f"Unable to parse response from {item.key}: {exc}") from exc
        atomic_write(item.file_path, json.dumps(document, indent=2))
        self.refresh_expiry(item.key)
        return document


def _require_kind(item: CacheItem, kind: ItemKind) -> None:
    if item.kind is not kind:
        raise CacheKindError(
            f"{item.key!r} is a {item.kind.value} item, not {kind.value}"
        )


def _now() -> int:
    return int(time.time())
