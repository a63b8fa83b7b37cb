"""In-memory registry of cache items and their expiry instants."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, Optional

from satinv.exceptions import CacheKeyError, CachePathConflictError
from satinv.models import CacheItem, ItemKind
from satinv.output import debug


class ItemRegistry:
    """Maps cache keys to :class:`~satinv.models.CacheItem` records.

    Expiries recovered from the persisted table are held separately until
    the caller registers the matching key, at which point the item adopts
    the recovered value. Any change to an expiry sets :attr:`dirty`.

    Args:
        imported: Expiry table loaded at startup (key -> epoch seconds).
    """

    def __init__(self, imported: Optional[dict[str, int]] = None) -> None:
        self._items: dict[str, CacheItem] = {}
        self._imported: dict[str, int] = dict(imported or {})
        self._paths: dict[Path, str] = {}
        self.dirty = False

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[CacheItem]:
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def register(self, key: str, file_path: Path, validity: int, kind: ItemKind) -> CacheItem:
        """Insert or update the item for *key*.

        A known expiry (from an earlier registration or from the imported
        table) is preserved; otherwise the item starts expired (``0``).

        Raises:
            CachePathConflictError: If another key already owns *file_path*.
        """
        owner = self._paths.get(file_path)
        if owner is not None and owner != key:
            raise CachePathConflictError(
                f"Cache file {file_path} is already associated with {owner!r}"
            )

        existing = self._items.get(key)
        if existing is not None:
            expiry = existing.expiry
            if existing.file_path != file_path:
                del self._paths[existing.file_path]
        elif key in self._imported:
            expiry = self._imported.pop(key)
        else:
            debug(f"No cache entry for {key}. Adding a new one.")
            expiry = 0

        item = CacheItem(
            key=key, kind=kind, file_path=file_path, validity=validity, expiry=expiry
        )
        self._items[key] = item
        self._paths[file_path] = key
        return item

    def lookup(self, key: str) -> CacheItem:
        """Return the item for *key*.

        Raises:
            CacheKeyError: If *key* was never registered.
        """
        try:
            return self._items[key]
        except KeyError:
            raise CacheKeyError(f"No cache file associated with {key!r}") from None

    def set_expiry(self, key: str, instant: int) -> None:
        """Overwrite the expiry of a registered item and mark the registry dirty."""
        self.lookup(key).expiry = instant
        self.dirty = True

    def table(self) -> dict[str, int]:
        """Return the full key -> expiry map, including unregistered imported entries."""
        table = dict(self._imported)
        table.update({key: item.expiry for key, item in self._items.items()})
        return table
