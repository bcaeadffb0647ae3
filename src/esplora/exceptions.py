"""Exception hierarchy for esplora.

All exceptions inherit from :class:`EsploraError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`esplora.exit_codes`.
Library callers catch the typed subclasses; the command line entry point in
:func:`esplora.app.main` catches ``EsploraError`` and exits with its code.

Lower-level failures (``httpx`` errors, pydantic validation errors, hex and
consensus decode errors) never escape on their own: they are converted into
one of the classes below and chained with ``raise ... from exc``.

Subclass hierarchy::

    EsploraError (exit 1)
    +-- TransportError              (exit 6)
    |   +-- DeserializationError    (exit 6)
    +-- HttpResponseError           (exit 5)
    +-- InvalidServerDataError      (exit 7)
    |   +-- BitcoinEncodingError    (exit 7)
    +-- InvalidHexError             (exit 7)
    +-- ParsingError                (exit 7)
    +-- NotFoundError               (exit 4)
    |   +-- TransactionNotFoundError
    +-- ConfigError                 (exit 2)
        +-- InvalidHeaderNameError
        +-- InvalidHeaderValueError
"""

from esplora.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_HTTP_ERROR,
    EXIT_INVALID_DATA,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_TRANSPORT_ERROR,
)


class EsploraError(Exception):
    """Base exception for all esplora errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class TransportError(EsploraError):
    """Raised on network-level failures (timeout, DNS resolution, connection reset).

    Transport failures are never retried: the retry loop only reacts to
    HTTP status codes.
    """

    exit_code = EXIT_TRANSPORT_ERROR


class DeserializationError(TransportError):
    """Raised when a JSON body is malformed or does not match the expected schema."""


class HttpResponseError(EsploraError):
    """Raised when the server answers with a non-2xx status.

    The status code and the response body are kept verbatim for
    diagnostics.

    Args:
        status: HTTP status code of the terminal response.
        message: Response body text.
    """

    exit_code = EXIT_HTTP_ERROR

    def __init__(self, status: int, message: str):
        super().__init__(f"HTTP response error {status}: {message}")
        self.status = status
        self.message = message


class InvalidServerDataError(EsploraError):
    """Raised when a 2xx response carries data that cannot be decoded."""

    exit_code = EXIT_INVALID_DATA

    def __init__(self, message: str = "The server sent an invalid response"):
        super().__init__(message)


class BitcoinEncodingError(InvalidServerDataError):
    """Raised when hex-decoded bytes are not a valid consensus encoding."""

    def __init__(self, message: str = "Invalid Bitcoin data returned"):
        super().__init__(message)


class InvalidHexError(EsploraError):
    """Raised when the server returns text that is not valid hex."""

    exit_code = EXIT_INVALID_DATA


class ParsingError(EsploraError):
    """Raised when a plain-text scalar (e.g. a block height) cannot be parsed."""

    exit_code = EXIT_INVALID_DATA


class NotFoundError(EsploraError):
    """Raised where absence of a resource is itself an error."""

    exit_code = EXIT_NOT_FOUND


class TransactionNotFoundError(NotFoundError):
    """Raised by ``tx_no_opt`` when the server does not know the transaction."""

    def __init__(self, txid: str):
        super().__init__(f"Transaction {txid} not found")
        self.txid = txid


class ConfigError(EsploraError):
    """Raised for configuration problems detected before any request is sent."""

    exit_code = EXIT_INVALID_USAGE


class InvalidHeaderNameError(ConfigError):
    """Raised for a custom header whose name is not a valid HTTP token."""

    def __init__(self, name: str):
        super().__init__(f"Invalid HTTP header name specified: {name!r}")
        self.name = name


class InvalidHeaderValueError(ConfigError):
    """Raised for a custom header whose value contains forbidden characters."""

    def __init__(self, value: str):
        super().__init__(f"Invalid HTTP header value specified: {value!r}")
        self.value = value
