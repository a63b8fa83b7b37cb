"""Shared test fixtures for satinv.

Provides reusable fixtures for isolating XDG directories, installing a
quiet output manager, building configs and canned Satellite documents, and
faking the Satellite API with :class:`httpx.MockTransport`.
These fixtures are automatically discovered by pytest and available to
all test modules without explicit imports.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from satinv.models import ApiConfig, CacheConfig, Config
from satinv.output import OutputManager, reset_output, set_output

BASE_URL = "https://sat.example.com"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _quiet_output_between_tests():
    """Install a quiet OutputManager for every test and reset it afterwards."""
    set_output(OutputManager(quiet=True, no_color=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories at tmp_path and clear SATINVCFG.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    monkeypatch.delenv("SATINVCFG", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Config and Satellite documents
# ---------------------------------------------------------------------------


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def sat_config(cache_dir: Path) -> Config:
    """A config pointing at the fake Satellite and a temporary cache dir."""
    return Config(
        api=ApiConfig(baseurl=BASE_URL, user="admin", password="secret", max_retries=0),
        cache=CacheConfig(dir=str(cache_dir)),
        cidrs={"dmz": "10.1.0.0/16", "lab": "192.168.0.0/24"},
        inventory_prefix="sat_",
    )


def sat_time(hours_ago: float) -> str:
    """Return a Satellite style timestamp *hours_ago* hours in the past."""
    t = datetime.now(timezone.utc) - timedelta(hours=hours_ago)
    return t.strftime("%Y-%m-%d %H:%M:%S UTC")


def make_host(
    host_id: int,
    name: str,
    ip: str = "",
    os_id: int = 1,
    subscription_status: int = 0,
    checkin_hours_ago: float | None = 1,
) -> dict[str, Any]:
    host: dict[str, Any] = {
        "id": host_id,
        "name": name,
        "operatingsystem_id": os_id,
        "subscription_status": subscription_status,
    }
    if ip:
        host["ip"] = ip
    if checkin_hours_ago is not None:
        host["subscription_facet_attributes"] = {"last_checkin": sat_time(checkin_hours_ago)}
    return host


@pytest.fixture
def hosts_doc() -> dict[str, Any]:
    return {
        "results": [
            make_host(1, "web01.example.com", ip="10.1.2.3"),
            make_host(2, "db01.example.com", ip="192.168.0.10", subscription_status=2),
            make_host(3, "old01.example.com", checkin_hours_ago=100),
            make_host(4, "noos01.example.com", os_id=0),
        ]
    }


@pytest.fixture
def collections_doc() -> dict[str, Any]:
    return {"results": [{"id": 7, "name": "Web Servers"}]}


@pytest.fixture
def collection_detail_doc() -> dict[str, Any]:
    return {"id": 7, "name": "Web Servers", "host_ids": [1, 99]}


# ---------------------------------------------------------------------------
# Fake Satellite API
# ---------------------------------------------------------------------------


class FakeSatellite:
    """Serves canned JSON documents by path and records every request."""

    def __init__(self, routes: dict[str, Any]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path not in self.routes:
            return httpx.Response(404, text="Not Found")
        payload = self.routes[path]
        if isinstance(payload, httpx.Response):
            return payload
        return httpx.Response(200, content=json.dumps(payload).encode())

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def fake_satellite(
    hosts_doc: dict[str, Any],
    collections_doc: dict[str, Any],
    collection_detail_doc: dict[str, Any],
) -> FakeSatellite:
    return FakeSatellite(
        {
            "/api/v2/hosts": hosts_doc,
            "/katello/api/host_collections": collections_doc,
            "/katello/api/host_collections/7": collection_detail_doc,
        }
    )


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[dict[str, Any]], Path]:
    """Return a helper that writes a YAML config file and returns its path."""
    import yaml

    def _write(data: dict[str, Any]) -> Path:
        path = tmp_path / "satinv.yml"
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return path

    return _write
