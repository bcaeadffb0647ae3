"""Numeric process exit codes used by the ``esplora`` command line.

Each constant maps to an error category and is referenced by the
corresponding :class:`~esplora.exceptions.EsploraError` subclass.
Shell scripts can inspect the exit code to tell a missing transaction
apart from an unreachable server without parsing stderr.

Example::

    $ esplora tx 4a5e1e4baab89f3a32518a88c31bc87f618f76673e2cc77ab2127b7afdeda33b
    $ echo $?
    4   # EXIT_NOT_FOUND -- the server does not know this transaction
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments or configuration (bad header, bad numeric setting)."""

EXIT_NOT_FOUND = 4
"""The requested resource does not exist on the server."""

EXIT_HTTP_ERROR = 5
"""The server answered with a non-2xx status after all retries."""

EXIT_TRANSPORT_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_INVALID_DATA = 7
"""The server answered 2xx but the payload could not be decoded."""
