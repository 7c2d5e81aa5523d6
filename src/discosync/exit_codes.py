"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~discosync.exceptions.DiscosyncError` subclass.
CI jobs that regenerate clients on a schedule can branch on the exit code
instead of scraping stderr.

Example::

    $ discosync generate ./generated --from-discovery
    $ echo $?
    6   # EXIT_FETCH_ERROR -- the discovery index was unreachable
"""

EXIT_SUCCESS = 0
"""The run completed."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or unreadable inputs."""

EXIT_CONFIG_ERROR = 3
"""The policy file or settings file is missing or malformed."""

EXIT_FETCH_ERROR = 6
"""A network-level or HTTP error prevented retrieving a document."""

EXIT_RENDER_ERROR = 7
"""The renderer rejected a discovery document."""

EXIT_WRITE_ERROR = 8
"""Writing to or deleting from the destination directory failed."""

EXIT_INTERRUPTED = 130
"""The run was cancelled with Ctrl-C (128 + SIGINT)."""
