"""Disk-backed expiry cache for satinv.

This package provides :class:`ExpiryCache`, which stores Satellite API
documents as files in a cache directory and records per-item expiry times
in ``expire.json`` so that freshness survives across the short-lived
process invocations made by Ansible.

* :mod:`~satinv.cache.registry` -- in-memory item registry.
* :mod:`~satinv.cache.codec` -- reading and writing the expiry table.
* :mod:`~satinv.cache.cache` -- expiry policy and fetch coordination.
"""

from satinv.cache.cache import ExpiryCache, Fetcher
from satinv.cache.registry import ItemRegistry

__all__ = ["ExpiryCache", "Fetcher", "ItemRegistry"]
