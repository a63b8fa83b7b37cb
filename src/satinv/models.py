"""Canonical Pydantic models shared across all satinv modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Configuration models** -- deserialised from the YAML config file:
    :class:`ApiConfig`, :class:`CacheConfig`, :class:`LoggingConfig`,
    :class:`ValidConfig`, and the top-level :class:`Config`.

**Cache models** -- the in-memory state of the expiry cache:
    :class:`ItemKind` and :class:`CacheItem`.

Zero values in the configuration are treated as "unset" and replaced with
the documented defaults, so that a config file can spell out a key without
a value and still get sensible behaviour.
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_VALID_HOURS = 48
DEFAULT_CACHE_VALIDITY_SECONDS = 8 * 60 * 60
DEFAULT_INVENTORY_VALIDITY_SECONDS = 2 * 60 * 60


# --- Configuration models ---


class ApiConfig(BaseModel):
    """Connection settings for the Satellite REST API.

    ``password`` is used verbatim when set. Otherwise ``password_source``
    is resolved with :func:`~satinv.config.resolve_credential`, which
    accepts ``env:VAR`` and ``file:/path`` descriptors.
    """

    baseurl: str = Field(default="", description="Satellite base URL, e.g. https://sat.example.com")
    certfile: str = Field(default="", description="Extra PEM CA bundle (optional)")
    user: str = ""
    password: str = ""
    password_source: Optional[str] = Field(
        default=None, description="Credential source: env:VAR or file:/path"
    )
    timeout: int = Field(default=30, description="Request timeout in seconds")
    max_retries: int = Field(default=3, description="Max retry attempts")


class CacheConfig(BaseModel):
    """Cache directory and per-document validity windows (seconds)."""

    dir: str = Field(default="", description="Cache directory (XDG cache dir when empty)")
    validity_hosts: int = DEFAULT_CACHE_VALIDITY_SECONDS
    validity_collections: int = DEFAULT_CACHE_VALIDITY_SECONDS
    validity_inventory: int = DEFAULT_INVENTORY_VALIDITY_SECONDS

    @field_validator("validity_hosts", "validity_collections", mode="before")
    @classmethod
    def _default_cache_validity(cls, value: Optional[int]) -> int:
        return value or DEFAULT_CACHE_VALIDITY_SECONDS

    @field_validator("validity_inventory", mode="before")
    @classmethod
    def _default_inventory_validity(cls, value: Optional[int]) -> int:
        return value or DEFAULT_INVENTORY_VALIDITY_SECONDS


class LoggingConfig(BaseModel):
    """Diagnostic output settings."""

    level: str = Field(default="info", description="debug, info, warning or error")
    filename: str = Field(default="", description="Write diagnostics here instead of stderr")


class ValidConfig(BaseModel):
    """Rules deciding membership of the ``<prefix>valid`` inventory group."""

    hours: int = DEFAULT_VALID_HOURS
    include_unlicensed: bool = False
    exclude_hosts: list[str] = Field(default_factory=list)
    exclude_regex: list[str] = Field(default_factory=list)

    @field_validator("hours", mode="before")
    @classmethod
    def _default_hours(cls, value: Optional[int]) -> int:
        return value or DEFAULT_VALID_HOURS


class Config(BaseModel):
    """Top-level configuration loaded from ``satinv.yml``.

    Loaded by :func:`~satinv.config.load_config` and written by
    :func:`~satinv.config.write_config`. Unknown keys are ignored so that
    older config files keep working.
    """

    model_config = ConfigDict(extra="ignore")

    api: ApiConfig = Field(default_factory=ApiConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    cidrs: dict[str, str] = Field(default_factory=dict)
    inventory_prefix: str = "sat_"
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    valid: ValidConfig = Field(default_factory=ValidConfig)

    @field_validator("cidrs", mode="before")
    @classmethod
    def _empty_cidrs(cls, value: Optional[dict[str, str]]) -> dict[str, str]:
        return value or {}


# --- Cache models ---


class ItemKind(str, enum.Enum):
    """How a cache item is refreshed.

    ``REMOTE`` items are fetched through the configured fetcher when stale.
    ``LOCAL`` items are written by the caller; the cache only tracks their
    freshness.
    """

    REMOTE = "remote"
    LOCAL = "local"


class CacheItem(BaseModel):
    """Cache metadata for one registered key.

    ``expiry`` is an epoch timestamp in seconds. ``0`` means the item has
    never been refreshed and is always considered expired.
    """

    key: str
    kind: ItemKind
    file_path: Path
    validity: int = Field(description="Seconds the item stays fresh after a refresh")
    expiry: int = 0
