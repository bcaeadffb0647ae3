"""Blocking Esplora client backed by :class:`httpx.Client`.

This module provides :class:`BlockingClient`. Every public method builds a
path with :mod:`esplora.paths`, sends it through :meth:`BlockingClient._execute`
(which retries 429/500/503 responses with exponential backoff) and decodes
the response with one of the strategies in :mod:`esplora.client.decoding`.

Backoff sleeps occupy the calling thread; use
:class:`~esplora.client.async_client.AsyncClient` inside an event loop.

See Also:
    :class:`~esplora.client.async_client.AsyncClient` for the
    equivalent non-blocking implementation.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from esplora import consensus, paths
from esplora.client.decoding import (
    check_status,
    decode_consensus,
    decode_hex,
    decode_json,
    decode_text,
    optional,
    parse_hash,
    parse_height,
)
from esplora.client.retry import Backoff
from esplora.client.sleeper import BlockingSleeper, Sleeper
from esplora.config import validate_headers
from esplora.exceptions import (
    ConfigError,
    InvalidServerDataError,
    TransactionNotFoundError,
    TransportError,
)
from esplora.models import (
    DEFAULT_MAX_RETRIES,
    AddressStats,
    BlockStatus,
    BlockSummary,
    ClientConfig,
    MerkleProof,
    OutputStatus,
    Tx,
    TxStatus,
    Utxo,
)

logger = logging.getLogger(__name__)


class BlockingClient:
    """Synchronous client for an Esplora HTTP API.

    Owns an :class:`httpx.Client` configured from a
    :class:`~esplora.models.ClientConfig` (proxy, timeout, default headers).
    The client can be used directly or as a context manager, which closes
    the connection pool on exit.

    Args:
        config: Connection settings. Header names are lower-cased and
            validated here.
        sleeper: Provider used to wait between retries. Defaults to
            :class:`~esplora.client.sleeper.BlockingSleeper`.
        transport: Optional :class:`httpx.BaseTransport`, mainly for
            :class:`httpx.MockTransport` in tests.
        http_client: Use this :class:`httpx.Client` as-is instead of
            building one; proxy, timeout and headers from *config* are
            then ignored.

    Raises:
        InvalidHeaderNameError: If a custom header name is invalid.
        InvalidHeaderValueError: If a custom header value is invalid.
        ConfigError: If the base URL or the proxy URL is malformed.

    Example::

        with BlockingClient(ClientConfig(base_url="https://blockstream.info/api")) as client:
            height = client.height()
    """

    def __init__(
        self,
        config: ClientConfig,
        sleeper: Optional[Sleeper] = None,
        transport: Optional[httpx.BaseTransport] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self._url = config.base_url
        self._max_retries = config.max_retries
        self._base_backoff = config.base_backoff
        self._sleeper: Sleeper = sleeper or BlockingSleeper()
        if http_client is None:
            headers = validate_headers(config.headers)
            try:
                httpx.URL(config.base_url)
                http_client = httpx.Client(
                    headers=headers,
                    timeout=config.timeout,
                    proxy=config.proxy,
                    transport=transport,
                )
            except (ValueError, httpx.InvalidURL) as exc:
                raise ConfigError(f"Invalid client configuration: {exc}") from exc
        self._client = http_client

    @classmethod
    def from_config(
        cls,
        base_url: str,
        config: ClientConfig,
        sleeper: Optional[Sleeper] = None,
    ) -> BlockingClient:
        """Build a client for *base_url* with the remaining settings of *config*."""
        return cls(config.model_copy(update={"base_url": base_url}), sleeper=sleeper)

    @classmethod
    def from_http_client(
        cls,
        base_url: str,
        http_client: httpx.Client,
        sleeper: Optional[Sleeper] = None,
    ) -> BlockingClient:
        """Wrap an existing :class:`httpx.Client`; retries use the defaults."""
        config = ClientConfig(base_url=base_url, max_retries=DEFAULT_MAX_RETRIES)
        return cls(config, sleeper=sleeper, http_client=http_client)

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> BlockingClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    @property
    def url(self) -> str:
        """The base URL every path is appended to."""
        return self._url

    @property
    def http_client(self) -> httpx.Client:
        return self._client

    # ------------------------------------------------------------------ #
    # Transactions
    # ------------------------------------------------------------------ #

    def tx(self, txid: str) -> Optional[consensus.Tx]:
        """Get a raw transaction by id, or ``None`` if the server does not know it."""
        return optional(
            self._execute("GET", paths.tx_raw(txid)),
            decode_consensus,
            consensus.Tx.consensus_deserialize,
        )

    def tx_no_opt(self, txid: str) -> consensus.Tx:
        """Like :meth:`tx` but absence is an error.

        Raises:
            TransactionNotFoundError: If the server answered 404.
        """
        tx = self.tx(txid)
        if tx is None:
            raise TransactionNotFoundError(txid)
        return tx

    def txid_at_block_index(self, block_hash: str, index: int) -> Optional[str]:
        """Get the txid at position *index* in a block, ``None`` if out of range."""
        text = optional(self._execute("GET", paths.block_txid(block_hash, index)), decode_text)
        if text is None:
            return None
        return parse_hash(text)

    def tx_status(self, txid: str) -> TxStatus:
        return decode_json(self._execute("GET", paths.tx_status(txid)), TxStatus)

    def tx_info(self, txid: str) -> Optional[Tx]:
        """Get the JSON transaction document, ``None`` if unknown."""
        return optional(self._execute("GET", paths.tx_info(txid)), decode_json, Tx)

    def merkle_proof(self, txid: str) -> Optional[MerkleProof]:
        return optional(
            self._execute("GET", paths.tx_merkle_proof(txid)), decode_json, MerkleProof
        )

    def output_status(self, txid: str, index: int) -> Optional[OutputStatus]:
        """Get the spending status of output *index* of *txid*."""
        return optional(
            self._execute("GET", paths.tx_outspend(txid, index)), decode_json, OutputStatus
        )

    def broadcast(self, transaction: consensus.Tx) -> None:
        """Submit a transaction; the server acknowledges with an empty 2xx body.

        Raises:
            HttpResponseError: If the server rejected the transaction. The
                rejection reason is in ``message``.
        """
        body = transaction.consensus_serialize().hex()
        check_status(self._execute("POST", paths.tx_broadcast(), body))

    # ------------------------------------------------------------------ #
    # Blocks
    # ------------------------------------------------------------------ #

    def header_by_hash(self, block_hash: str) -> consensus.BlockHeader:
        return decode_hex(
            self._execute("GET", paths.block_header(block_hash)),
            consensus.BlockHeader.consensus_deserialize,
        )

    def block_status(self, block_hash: str) -> BlockStatus:
        return decode_json(self._execute("GET", paths.block_status(block_hash)), BlockStatus)

    def height(self) -> int:
        """Height of the current chain tip."""
        return parse_height(decode_text(self._execute("GET", paths.tip_height())))

    def tip_hash(self) -> str:
        return parse_hash(decode_text(self._execute("GET", paths.tip_hash())))

    def block_hash(self, block_height: int) -> str:
        """Hash of the block at *block_height* in the best chain."""
        return parse_hash(decode_text(self._execute("GET", paths.block_height(block_height))))

    def blocks(self, height: Optional[int] = None) -> list[BlockSummary]:
        """Recent block summaries, starting at the tip or at *height*.

        The page size depends on the backend (10 for esplora, 15 for
        mempool.space).

        Raises:
            InvalidServerDataError: If the server returned an empty list.
        """
        summaries = decode_json(self._execute("GET", paths.blocks(height)), list[BlockSummary])
        if not summaries:
            raise InvalidServerDataError("The server returned an empty block list")
        return summaries

    # ------------------------------------------------------------------ #
    # Addresses and scripts
    # ------------------------------------------------------------------ #

    def address_stats(self, address: str) -> AddressStats:
        """Confirmed and mempool statistics for *address*."""
        return decode_json(self._execute("GET", paths.address(address)), AddressStats)

    def address_txs(self, address: str, last_seen: Optional[str] = None) -> list[Tx]:
        """Transaction history for *address*, newest first.

        Returns up to 50 mempool transactions plus the first 25 confirmed
        ones. Pass the last txid seen to fetch the next confirmed page.
        """
        return decode_json(
            self._execute("GET", paths.address_txs(address, last_seen)), list[Tx]
        )

    def address_utxo(self, address: str) -> list[Utxo]:
        return decode_json(self._execute("GET", paths.address_utxo(address)), list[Utxo])

    def scripthash_txs(self, script: bytes, last_seen: Optional[str] = None) -> list[Tx]:
        """Confirmed history for a script, 25 transactions per page."""
        return decode_json(
            self._execute("GET", paths.scripthash_txs(script, last_seen)), list[Tx]
        )

    def scripthash_utxo(self, script: bytes) -> list[Utxo]:
        return decode_json(self._execute("GET", paths.scripthash_utxo(script)), list[Utxo])

    # ------------------------------------------------------------------ #
    # Fees
    # ------------------------------------------------------------------ #

    def fee_estimates(self) -> dict[int, float]:
        """Map of confirmation target (blocks) to estimated fee rate (sat/vB)."""
        return decode_json(self._execute("GET", paths.fee_estimates()), dict[int, float])

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _execute(self, method: str, path: str, body: Optional[str] = None) -> httpx.Response:
        """Send a request, retrying retryable statuses with exponential backoff.

        The terminal response is returned whatever its status; decoding
        decides what a non-2xx means. Transport failures are not retried.

        Raises:
            TransportError: If httpx could not complete the exchange, including
                a URL that httpx refuses to build.
        """
        url = f"{self._url}{path}"
        backoff = Backoff(self._max_retries, self._base_backoff)

        while True:
            try:
                response = self._client.request(method, url, content=body)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                raise TransportError(f"{method} {url} failed: {exc}") from exc

            logger.debug("%s %s -> %d", method, url, response.status_code)
            if not backoff.should_retry(response.status_code):
                return response

            delay = backoff.advance()
            logger.debug(
                "Retryable status %d, retrying in %.3fs (attempt %d/%d)",
                response.status_code,
                delay,
                backoff.attempt,
                backoff.max_retries,
            )
            self._sleeper.sleep(delay)
