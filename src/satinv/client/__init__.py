"""HTTP client module for satinv.

Provides :class:`SatelliteClient`, a blocking client backed by
:class:`httpx.Client` with basic auth, optional extra CA certificates and
retry with exponential backoff. Its :meth:`~SatelliteClient.fetch` method
is the fetcher used by :class:`~satinv.cache.ExpiryCache`.

Example::

    from satinv.client import SatelliteClient

    with SatelliteClient(config.api) as client:
        cache.set_fetcher(client.fetch)
"""

from satinv.client.sync_client import SatelliteClient

__all__ = ["SatelliteClient"]
