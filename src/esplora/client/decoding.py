"""Response decoding pipeline -- maps :class:`httpx.Response` to typed values.

Every strategy starts with :func:`check_status`, so a non-2xx response
always becomes an :class:`~esplora.exceptions.HttpResponseError` carrying the
status and body text. Strategies then differ only in how the body is read:

* :func:`decode_consensus` -- raw bytes in consensus encoding.
* :func:`decode_hex` -- hex text of a consensus encoding.
* :func:`decode_json` -- JSON validated against a pydantic type.
* :func:`decode_text` -- the body text, verbatim.

:func:`optional` wraps any strategy and turns an HTTP 404 into ``None``.
Esplora uses 404 only for "no such resource", which is what makes this
mapping sound; other backends need checking before relying on it.

Decoding is synchronous: both clients read the whole body before handing
the response over, so the same functions serve both execution models.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Callable, Optional, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from esplora import consensus
from esplora.exceptions import (
    BitcoinEncodingError,
    DeserializationError,
    HttpResponseError,
    InvalidHexError,
    InvalidServerDataError,
    ParsingError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

HTTP_NOT_FOUND = 404

_MAX_HEIGHT = 2**32 - 1


def check_status(response: httpx.Response) -> None:
    """Raise :class:`HttpResponseError` unless the status is 2xx."""
    if not response.is_success:
        raise HttpResponseError(response.status_code, response.text)


def decode_consensus(response: httpx.Response, decoder: Callable[[bytes], T]) -> T:
    """Decode a binary body with *decoder* (e.g. ``Tx.consensus_deserialize``).

    Raises:
        HttpResponseError: On a non-2xx status.
        InvalidServerDataError: If the bytes are not a valid encoding. The
            underlying decode error is chained but not exposed further.
    """
    check_status(response)
    try:
        return decoder(response.content)
    except consensus.ConsensusError as exc:
        logger.debug("Consensus decode failed for %s: %s", response.url, exc)
        raise InvalidServerDataError() from exc


def decode_hex(response: httpx.Response, decoder: Callable[[bytes], T]) -> T:
    """Hex-decode the body text, then decode the bytes with *decoder*.

    Raises:
        HttpResponseError: On a non-2xx status.
        InvalidHexError: If the body is not hex.
        BitcoinEncodingError: If the hex is fine but the bytes are not a
            valid encoding.
    """
    check_status(response)
    try:
        raw = bytes.fromhex(response.text.strip())
    except ValueError as exc:
        raise InvalidHexError(f"Invalid hex data returned: {exc}") from exc
    try:
        return decoder(raw)
    except consensus.ConsensusError as exc:
        raise BitcoinEncodingError() from exc


@lru_cache(maxsize=None)
def _adapter(type_: Any) -> TypeAdapter[Any]:
    return TypeAdapter(type_)


def decode_json(response: httpx.Response, type_: Any) -> Any:
    """Validate a JSON body against *type_* (a model, ``list[Model]``, ...).

    Raises:
        HttpResponseError: On a non-2xx status.
        DeserializationError: If the body is not JSON or does not match.
    """
    check_status(response)
    try:
        return _adapter(type_).validate_json(response.content)
    except ValidationError as exc:
        raise DeserializationError(
            f"Failed to decode response from {response.url}: {exc}"
        ) from exc


def decode_text(response: httpx.Response) -> str:
    check_status(response)
    return response.text


def optional(
    response: httpx.Response,
    strategy: Callable[..., T],
    *args: Any,
) -> Optional[T]:
    """Apply *strategy* unless the response is a 404, which yields ``None``.

    Any other non-2xx status still raises from the strategy.
    """
    if response.status_code == HTTP_NOT_FOUND:
        return None
    return strategy(response, *args)


# --- Scalar parsers for text endpoints ---


def parse_height(text: str) -> int:
    """Parse a block height returned as plain text.

    Raises:
        ParsingError: If *text* is not an unsigned 32-bit integer.
    """
    try:
        height = int(text.strip())
    except ValueError as exc:
        raise ParsingError(f"Invalid number returned: {text!r}") from exc
    if not 0 <= height <= _MAX_HEIGHT:
        raise ParsingError(f"Block height out of range: {height}")
    return height


def parse_hash(text: str) -> str:
    """Parse a txid or block hash returned as plain text.

    Raises:
        InvalidHexError: If *text* is not 32 bytes of hex.
    """
    try:
        return consensus.parse_hash(text)
    except ValueError as exc:
        raise InvalidHexError(f"Invalid hex data returned: {text!r}") from exc
