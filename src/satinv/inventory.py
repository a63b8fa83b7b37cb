"""Assemble an Ansible dynamic inventory from Satellite API documents.

The inventory is itself a cache item: a local ``inventory.json`` file with
its own validity window. When it is still fresh it is returned as-is;
otherwise it is rebuilt from the (separately cached) hosts and host
collection documents.

Resulting document::

    {
      "_meta": {"hostvars": {"web01": {...satellite host record...}}},
      "all": {"children": ["sat_valid", "sat_web_servers"]},
      "sat_valid": {"hosts": ["web01"]},
      "sat_web_servers": {"hosts": ["web01"]},
      "sat_dmz": {"hosts": ["web01"]}
    }
"""

from __future__ import annotations

import json
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from satinv.cache import ExpiryCache
from satinv.cidrs import Cidrs
from satinv.config import atomic_write
from satinv.exceptions import InventoryError, SatinvError
from satinv.models import Config, ItemKind
from satinv.multire import MultiRE
from satinv.output import debug, warning

INVENTORY_KEY = "inventory"
SAT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


def short_name(host: str) -> str:
    """Return the first label of a hostname."""
    return host.split(".")[0]


def parse_sat_timestamp(value: str) -> datetime:
    """Parse a Satellite timestamp such as ``2024-05-01 09:30:00 UTC``.

    Raises:
        ValueError: If *value* is not in the expected format.
    """
    return datetime.strptime(value, SAT_TIME_FORMAT).replace(tzinfo=timezone.utc)


class InventoryBuilder:
    """Builds the inventory document using an :class:`ExpiryCache`.

    Args:
        config: Loaded configuration.
        cache: Cache used for the inventory file and every API document.
            A fetcher must be configured on it before :meth:`refresh`
            needs to contact Satellite.
    """

    def __init__(self, config: Config, cache: ExpiryCache) -> None:
        self._config = config
        self._cache = cache
        self._prefix = config.inventory_prefix
        self._exclude_re = MultiRE(config.valid.exclude_regex)
        self._cidrs = Cidrs()
        self._cidrs.add_cidr_map(config.cidrs)
        self._document: dict[str, Any] = {}
        cache.register(
            INVENTORY_KEY,
            f"{INVENTORY_KEY}.json",
            validity=config.cache.validity_inventory,
            kind=ItemKind.LOCAL,
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def is_stale(self) -> bool:
        """Whether the cached inventory must be rebuilt."""
        return self._cache.is_expired(INVENTORY_KEY)

    def load(self) -> dict[str, Any]:
        """Return the cached inventory without contacting Satellite.

        Raises:
            InventoryError: If the cached file cannot be read or decoded.
        """
        try:
            return json.loads(self._cache.get_local(INVENTORY_KEY))
        except (OSError, ValueError) as exc:
            raise InventoryError(
                f"Cached inventory is unusable ({exc}); rerun with --refresh"
            ) from exc

    def refresh(self) -> dict[str, Any]:
        """Rebuild the inventory, write it to the cache and return it."""
        hosts_url = f"{self._base_url}/api/v2/hosts?per_page=1000"
        self._cache.register(
            hosts_url, "hosts.json", validity=self._config.cache.validity_hosts
        )
        hosts = self._cache.get_remote(hosts_url)
        if not isinstance(hosts, dict):
            raise InventoryError(f"Unexpected hosts document from {hosts_url}")

        self._document = {"_meta": {"hostvars": {}}, "all": {"children": []}}
        self._parse_hosts(hosts)
        self._parse_host_collections(hosts)

        atomic_write(
            self._cache.file_path(INVENTORY_KEY),
            json.dumps(self._document, indent=2) + "\n",
        )
        self._cache.refresh_expiry(INVENTORY_KEY)
        return self._document

    @staticmethod
    def host_vars(document: dict[str, Any], host: str) -> dict[str, Any]:
        """Return the variables of *host* from an inventory document."""
        return document.get("_meta", {}).get("hostvars", {}).get(host, {})

    # ------------------------------------------------------------------ #
    # Hosts
    # ------------------------------------------------------------------ #

    @property
    def _base_url(self) -> str:
        return self._config.api.baseurl.rstrip("/")

    def _parse_hosts(self, hosts: dict[str, Any]) -> None:
        start = time.monotonic()
        if not self._cidrs:
            debug("Bypassing CIDR membership processing. No CIDRs defined.")

        valid_group = f"{self._prefix}valid"
        self._add_child(valid_group)
        self._group(valid_group)

        for host in hosts.get("results") or []:
            name = host.get("name") if isinstance(host, dict) else None
            if not name:
                debug("No hostname found in Satellite host map")
                continue
            short = short_name(name)
            self._document["_meta"]["hostvars"][short] = host
            if self._is_valid(host, short):
                self._group(valid_group).append(short)
            if self._cidrs:
                self._add_cidr_members(host, short)
        debug(f"parse_hosts took {time.monotonic() - start:.3f}s")

    def _is_valid(self, host: dict[str, Any], short: str) -> bool:
        """Decide whether *host* belongs in the ``<prefix>valid`` group."""
        if short in self._config.valid.exclude_hosts or self._exclude_re.match(short):
            debug(f"sat_valid: Host {short} is excluded")
            return False

        if not host.get("operatingsystem_id"):
            debug(f"sat_valid: No valid OS found for {short}")
            return False

        if not self._config.valid.include_unlicensed:
            status = host.get("subscription_status")
            if status is None:
                debug(f"sat_valid: subscription_status not found for {short}")
                return False
            if status != 0:
                debug(f"sat_valid: Invalid subscription status ({status}) for {short}")
                return False

        facet = host.get("subscription_facet_attributes")
        checkin = facet.get("last_checkin") if isinstance(facet, dict) else None
        if not checkin:
            debug(f"sat_valid: subscription_facet_attributes.last_checkin not found for {short}")
            return False
        try:
            checkin_time = parse_sat_timestamp(checkin)
        except (TypeError, ValueError):
            debug(f"sat_valid: Invalid date/time {checkin} for {short}")
            return False
        oldest = datetime.now(timezone.utc) - timedelta(hours=self._config.valid.hours)
        if checkin_time < oldest:
            debug(f"sat_valid: Last checkin for {short} is too old")
            return False
        return True

    def _add_cidr_members(self, host: dict[str, Any], short: str) -> None:
        address = host.get("ip")
        if not address:
            return
        for name in self._cidrs.parse_cidrs(address):
            self._group(self._group_name(name)).append(short)

    # ------------------------------------------------------------------ #
    # Host collections
    # ------------------------------------------------------------------ #

    def _parse_host_collections(self, hosts: dict[str, Any]) -> None:
        start = time.monotonic()
        collections_url = f"{self._base_url}/katello/api/host_collections"
        self._cache.register(
            collections_url,
            "host_collections.json",
            validity=self._config.cache.validity_collections,
        )
        collections = self._cache.get_remote(collections_url)
        if not isinstance(collections, dict):
            raise InventoryError(f"Unexpected host collections document from {collections_url}")

        names_by_id = {
            str(h["id"]): h["name"]
            for h in hosts.get("results") or []
            if isinstance(h, dict) and "id" in h and h.get("name")
        }

        for collection in collections.get("results") or []:
            if not isinstance(collection, dict):
                debug(f"Skipping malformed host collection entry: {collection!r}")
                continue
            collection_id = _collection_id(collection.get("id"))
            if collection_id is None:
                warning(f"Skipping host collection with invalid ID: {collection.get('id')!r}")
                continue
            try:
                detail = self._host_collection(collection_id)
            except SatinvError as exc:
                warning(f"Unable to get host_collection {collection_id}: {exc}")
                continue
            group = self._group_name(str(collection.get("name", "")))
            self._add_child(group)
            members = self._group(group)
            host_ids = detail.get("host_ids")
            for host_id in host_ids if isinstance(host_ids, list) else []:
                name = names_by_id.get(str(host_id))
                if name is None:
                    debug(f"Cannot fetch host by ID: name not found for id: {host_id}")
                    continue
                members.append(short_name(name))
        debug(f"parse_host_collections took {time.monotonic() - start:.3f}s")

    def _host_collection(self, collection_id: str) -> dict[str, Any]:
        url = f"{self._base_url}/katello/api/host_collections/{collection_id}"
        self._cache.register(
            url,
            f"host_collections_{collection_id}.json",
            validity=self._config.cache.validity_collections,
        )
        detail = self._cache.get_remote(url)
        if not isinstance(detail, dict) or "id" not in detail:
            raise InventoryError("host collection has no ID field")
        if str(detail["id"]) != collection_id:
            raise InventoryError("host collection ID does not match requested ID")
        return detail

    # ------------------------------------------------------------------ #
    # Document helpers
    # ------------------------------------------------------------------ #

    def _group_name(self, name: str) -> str:
        """Convert a Satellite name into an Ansible-friendly group name."""
        return self._prefix + name.lower().replace(" ", "_")

    def _group(self, name: str) -> list[str]:
        return self._document.setdefault(name, {}).setdefault("hosts", [])

    def _add_child(self, group: str) -> None:
        children = self._document["all"]["children"]
        if group not in children:
            children.append(group)



def _collection_id(value: Any) -> Optional[str]:
    """Return *value* as a decimal ID string, or ``None`` if it is not a non-negative integer."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value) if value >= 0 else None
    if isinstance(value, str) and value.isdecimal():
        return str(int(value))
    return None
