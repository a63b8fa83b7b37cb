"""Exception hierarchy for satinv.

All exceptions inherit from :class:`SatinvError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`satinv.exit_codes`.
The top-level error handler in :func:`satinv.app.main` catches
``SatinvError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    SatinvError (exit 1)
    +-- InvalidUsageError           (exit 2)
    +-- AuthError                   (exit 3)
    +-- NotFoundError               (exit 4)
    +-- ServerError                 (exit 5)
    +-- ConnectionError_            (exit 6)
    +-- ConfigError                 (exit 7)
    +-- CacheError                  (exit 8)
    |   +-- CacheKeyError
    |   +-- CacheKindError
    |   +-- CachePathConflictError
    |   +-- ExpiryTableError
    +-- FetcherNotInitializedError  (exit 9)
    +-- InventoryError              (exit 1)
"""

from satinv.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CACHE_ERROR,
    EXIT_CONFIG_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_OFFLINE,
    EXIT_SERVER_ERROR,
)


class SatinvError(Exception):
    """Base exception for all satinv errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`satinv.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SatinvError):
    """Raised for invalid command line arguments."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(SatinvError):
    """Raised when Satellite returns HTTP 401 or 403."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(SatinvError):
    """Raised when the API returns HTTP 404 (resource not found)."""

    exit_code = EXIT_NOT_FOUND


class ServerError(SatinvError):
    """Raised when the API returns an HTTP 5xx or an unexpected status."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(SatinvError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ConfigError(SatinvError):
    """Raised for configuration problems (missing file, invalid YAML, bad credential sources)."""

    exit_code = EXIT_CONFIG_ERROR


class CacheError(SatinvError):
    """Base class for expiry cache errors."""

    exit_code = EXIT_CACHE_ERROR


class CacheKeyError(CacheError):
    """Raised when an operation references a key that was never registered."""


class CacheKindError(CacheError):
    """Raised when a remote operation targets a local item, or vice versa."""


class CachePathConflictError(CacheError):
    """Raised when two keys are registered against the same content file."""


class ExpiryTableError(CacheError):
    """Raised when the persisted expiry table exists but cannot be read or parsed."""


class FetcherNotInitializedError(SatinvError):
    """Raised when a remote item needs refreshing but no fetcher is configured.

    Distinct from :class:`ConnectionError_` so that read-only invocations
    can recognise "offline" mode explicitly.
    """

    exit_code = EXIT_OFFLINE


class InventoryError(SatinvError):
    """Raised when a Satellite document does not have the expected shape."""
