"""Exception hierarchy for foxdoc.

All exceptions inherit from :class:`FoxdocError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`foxdoc.exit_codes`.
The top-level error handler in :func:`foxdoc.app.main` catches
``FoxdocError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Cache failures never surface through this hierarchy to callers of the
cache's lookup API; :class:`StoreError` is raised by the backing stores and
caught by the disk tier, which degrades instead of failing.

Subclass hierarchy::

    FoxdocError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- AuthError           (exit 3)
    +-- NotFoundError       (exit 4)
    +-- ServerError         (exit 5)
    +-- ConnectionError_    (exit 6)
    +-- StoreError          (exit 8)
    +-- ConfigError         (exit 1)
"""

from foxdoc.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CACHE_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class FoxdocError(Exception):
    """Base exception for all foxdoc errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`foxdoc.exit_codes`. The entry point catches
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


class InvalidUsageError(FoxdocError):
    """Raised for invalid CLI arguments, such as an unrecognised share link."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(FoxdocError):
    """Raised when the API rejects the token (HTTP 401/403) or no token is available."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(FoxdocError):
    """Raised when the API returns HTTP 404 (unknown project or endpoint)."""

    exit_code = EXIT_NOT_FOUND


class ServerError(FoxdocError):
    """Raised when the API returns any other HTTP error status."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(FoxdocError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class StoreError(FoxdocError):
    """Raised by a cache document store that cannot be opened, read, or written."""

    exit_code = EXIT_CACHE_ERROR


class ConfigError(FoxdocError):
    """Raised for configuration problems (invalid JSON, bad env values, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE
