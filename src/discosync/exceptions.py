"""Exception hierarchy for discosync.

All exceptions inherit from :class:`DiscosyncError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`discosync.exit_codes`.
The entry point in :func:`discosync.app.main` catches ``DiscosyncError``
and exits with the matching code, while unexpected exceptions produce a
crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    DiscosyncError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- ConfigLoadError     (exit 3)
    +-- FetchError          (exit 6)
    |   +-- CatalogFetchError
    |   +-- PerApiFetchError
    +-- RenderError         (exit 7)
    +-- FileWriteError      (exit 8)

Only :class:`PerApiFetchError` is recoverable: the dispatcher logs it and
moves on to the next candidate URL. Everything else aborts the run.
"""

from discosync.exit_codes import (
    EXIT_CONFIG_ERROR,
    EXIT_FETCH_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_RENDER_ERROR,
    EXIT_WRITE_ERROR,
)


class DiscosyncError(Exception):
    """Base exception for all discosync errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(DiscosyncError):
    """Raised for invalid CLI arguments or unreadable input files."""

    exit_code = EXIT_INVALID_USAGE


class ConfigLoadError(DiscosyncError):
    """Raised when the policy or settings file is missing or malformed."""

    exit_code = EXIT_CONFIG_ERROR


class FetchError(DiscosyncError):
    """Base class for document retrieval failures."""

    exit_code = EXIT_FETCH_ERROR


class CatalogFetchError(FetchError):
    """Raised when the discovery index is unreachable or malformed."""


class PerApiFetchError(FetchError):
    """Raised when one candidate URL could not be retrieved or decoded.

    Args:
        message: Human-readable error description.
        url: The URL that failed.
    """

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class RenderError(DiscosyncError):
    """Raised when a retrieved discovery document cannot be rendered."""

    exit_code = EXIT_RENDER_ERROR


class FileWriteError(DiscosyncError):
    """Raised when a write or delete under the destination directory fails."""

    exit_code = EXIT_WRITE_ERROR
