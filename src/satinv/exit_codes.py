"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~satinv.exceptions.SatinvError` subclass.
Ansible only checks for a non-zero status, but wrapper scripts can inspect
the exit code to determine the failure class without parsing stderr.

Example::

    $ satinv --list
    $ echo $?
    8   # EXIT_CACHE_ERROR -- the expiry table could not be read
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_AUTH_FAILURE = 3
"""Satellite rejected the configured credentials."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The Satellite API returned an HTTP 5xx server error."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_CONFIG_ERROR = 7
"""The configuration file is missing, unreadable or invalid."""

EXIT_CACHE_ERROR = 8
"""The cache was misused or its persisted state is corrupt."""

EXIT_OFFLINE = 9
"""A refresh was required but no API client was configured."""
