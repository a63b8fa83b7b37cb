"""Synchronous Satellite API client with basic auth, custom CAs and retry.

This module provides :class:`SatelliteClient`, the fetcher handed to
:class:`~satinv.cache.ExpiryCache`.  It wraps :class:`httpx.Client` and
layers on:

- **Basic auth** -- the configured user and password are sent with every
  request.
- **Extra CA certificates** -- Satellite is often deployed with an
  internal CA, so an optional PEM bundle is trusted in addition to the
  system store.
- **Retry with backoff** -- retries on 5xx and network errors with
  exponential delay (1 s, 2 s, 4 s, ...).
- **Error mapping** -- non-200 responses become typed
  :class:`~satinv.exceptions.SatinvError` subclasses.
"""

from __future__ import annotations

import ssl
import time
from pathlib import Path
from typing import Optional

import httpx

from satinv.exceptions import AuthError, ConnectionError_, NotFoundError, ServerError
from satinv.models import ApiConfig
from satinv.output import debug, warning


class SatelliteClient:
    """Synchronous HTTP client for the Satellite REST API.

    Must be used as a context manager so that the underlying transport is
    properly opened and closed.

    Args:
        api: Connection settings (base URL, credentials, CA bundle,
            timeout and retry count).
        password: Resolved password; defaults to ``api.password``.
        transport: Optional httpx transport, used by tests to replace
            the network.

    Example::

        with SatelliteClient(config.api) as client:
            body = client.fetch("https://sat.example.com/api/v2/hosts")
    """

    def __init__(
        self,
        api: ApiConfig,
        password: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._api = api
        self._password = api.password if password is None else password
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> SatelliteClient:
        kwargs = {}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        self._client = httpx.Client(
            auth=httpx.BasicAuth(self._api.user, self._password),
            timeout=self._api.timeout,
            verify=_ssl_context(self._api.certfile),
            follow_redirects=True,
            headers={"Accept": "application/json"},
            **kwargs,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def fetch(self, url: str) -> bytes:
        """GET *url* and return the response body.

        Raises:
            AuthError: On 401 / 403.
            NotFoundError: On 404.
            ServerError: On 5xx after all retries, or any other non-200.
            ConnectionError_: On network / timeout errors after all retries.
        """
        response = self._execute_with_retry(url)
        self._map_response_error(url, response)
        return response.content

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _execute_with_retry(self, url: str) -> httpx.Response:
        """Execute the GET with exponential-backoff retry.

        Retries on 5xx status codes and connection / timeout errors up to
        ``max_retries`` times. The delay doubles each attempt: 1 s, 2 s, 4 s, ...
        """
        assert self._client is not None, "Client not initialised -- use as context manager"

        max_retries = self._api.max_retries
        for attempt in range(max_retries + 1):
            try:
                response = self._client.get(url)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt < max_retries:
                    delay = 2 ** attempt
                    debug(
                        f"Connection error: {exc}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(delay)
                    continue
                raise ConnectionError_(
                    f"Connection to {url} failed after {max_retries + 1} attempts: {exc}"
                ) from exc

            if response.status_code >= 500 and attempt < max_retries:
                delay = 2 ** attempt
                debug(
                    f"Server error {response.status_code}, retrying in {delay}s "
                    f"(attempt {attempt + 1}/{max_retries})"
                )
                time.sleep(delay)
                continue
            return response

        raise ServerError(f"Request to {url} failed after all retries")  # pragma: no cover

    def _map_response_error(self, url: str, response: httpx.Response) -> None:
        """Raise a typed exception for anything other than HTTP 200."""
        status = response.status_code
        if status == 200:
            return

        msg = response.text[:200] if response.text else ""
        prefix = f"HTTP {status} from {url}"
        full_msg = f"{prefix}: {msg}" if msg else prefix

        if status in (401, 403):
            raise AuthError(full_msg)
        if status == 404:
            raise NotFoundError(full_msg)
        raise ServerError(full_msg)


def _ssl_context(certfile: str) -> ssl.SSLContext:
    """Build a verifying SSL context from the system CAs plus *certfile*.

    A missing *certfile* is ignored; one that cannot be loaded produces a
    warning and the system CAs are used alone.
    """
    context = ssl.create_default_context()
    if not certfile:
        return context
    path = Path(certfile)
    if not path.is_file():
        debug(f"No additional certificates imported ({certfile} not found)")
        return context
    try:
        context.load_verify_locations(cafile=str(path))
    except ssl.SSLError as exc:
        warning(f"Cert import from {certfile} failed ({exc}). Proceeding with system CAs.")
    return context
