"""Asynchronous Esplora client -- mirrors :class:`~esplora.client.sync_client.BlockingClient` API.

This module provides :class:`AsyncClient`, the non-blocking counterpart to
:class:`~esplora.client.sync_client.BlockingClient`. It wraps
:class:`httpx.AsyncClient` and runs the same retry policy and decoding
pipeline, but waits between retries through an
:class:`~esplora.client.sleeper.AsyncSleeper` so only the calling task is
suspended.

The only suspension points of a call are the HTTP exchange and the backoff
sleep. No state is shared between calls, so one client may serve any number
of concurrent tasks. Cancelling a task cancels its pending request or sleep.
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
from esplora.client.sleeper import AsyncioSleeper, AsyncSleeper
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


class AsyncClient:
    """Asynchronous client for an Esplora HTTP API.

    Accepts the same arguments as
    :class:`~esplora.client.sync_client.BlockingClient`, with an
    :class:`httpx.AsyncBaseTransport` / :class:`httpx.AsyncClient` in place
    of the blocking ones and :class:`~esplora.client.sleeper.AsyncioSleeper`
    as the default sleeper.

    Example::

        async with AsyncClient(config) as client:
            height = await client.height()
    """

    def __init__(
        self,
        config: ClientConfig,
        sleeper: Optional[AsyncSleeper] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._url = config.base_url
        self._max_retries = config.max_retries
        self._base_backoff = config.base_backoff
        self._sleeper: AsyncSleeper = sleeper or AsyncioSleeper()
        if http_client is None:
            headers = validate_headers(config.headers)
            try:
                httpx.URL(config.base_url)
                http_client = httpx.AsyncClient(
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
        sleeper: Optional[AsyncSleeper] = None,
    ) -> AsyncClient:
        return cls(config.model_copy(update={"base_url": base_url}), sleeper=sleeper)

    @classmethod
    def from_http_client(
        cls,
        base_url: str,
        http_client: httpx.AsyncClient,
        sleeper: Optional[AsyncSleeper] = None,
    ) -> AsyncClient:
        config = ClientConfig(base_url=base_url, max_retries=DEFAULT_MAX_RETRIES)
        return cls(config, sleeper=sleeper, http_client=http_client)

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> AsyncClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def url(self) -> str:
        return self._url

    @property
    def http_client(self) -> httpx.AsyncClient:
        return self._client

    # ------------------------------------------------------------------ #
    # Transactions
    # ------------------------------------------------------------------ #

    async def tx(self, txid: str) -> Optional[consensus.Tx]:
        return optional(
            await self._execute("GET", paths.tx_raw(txid)),
            decode_consensus,
            consensus.Tx.consensus_deserialize,
        )

    async def tx_no_opt(self, txid: str) -> consensus.Tx:
        tx = await self.tx(txid)
        if tx is None:
            raise TransactionNotFoundError(txid)
        return tx

    async def txid_at_block_index(self, block_hash: str, index: int) -> Optional[str]:
        text = optional(
            await self._execute("GET", paths.block_txid(block_hash, index)), decode_text
        )
        if text is None:
            return None
        return parse_hash(text)

    async def tx_status(self, txid: str) -> TxStatus:
        return decode_json(await self._execute("GET", paths.tx_status(txid)), TxStatus)

    async def tx_info(self, txid: str) -> Optional[Tx]:
        return optional(await self._execute("GET", paths.tx_info(txid)), decode_json, Tx)

    async def merkle_proof(self, txid: str) -> Optional[MerkleProof]:
        return optional(
            await self._execute("GET", paths.tx_merkle_proof(txid)), decode_json, MerkleProof
        )

    async def output_status(self, txid: str, index: int) -> Optional[OutputStatus]:
        return optional(
            await self._execute("GET", paths.tx_outspend(txid, index)),
            decode_json,
            OutputStatus,
        )

    async def broadcast(self, transaction: consensus.Tx) -> None:
        body = transaction.consensus_serialize().hex()
        check_status(await self._execute("POST", paths.tx_broadcast(), body))

    # ------------------------------------------------------------------ #
    # Blocks
    # ------------------------------------------------------------------ #

    async def header_by_hash(self, block_hash: str) -> consensus.BlockHeader:
        return decode_hex(
            await self._execute("GET", paths.block_header(block_hash)),
            consensus.BlockHeader.consensus_deserialize,
        )

    async def block_status(self, block_hash: str) -> BlockStatus:
        return decode_json(
            await self._execute("GET", paths.block_status(block_hash)), BlockStatus
        )

    async def height(self) -> int:
        return parse_height(decode_text(await self._execute("GET", paths.tip_height())))

    async def tip_hash(self) -> str:
        return parse_hash(decode_text(await self._execute("GET", paths.tip_hash())))

    async def block_hash(self, block_height: int) -> str:
        return parse_hash(
            decode_text(await self._execute("GET", paths.block_height(block_height)))
        )

    async def blocks(self, height: Optional[int] = None) -> list[BlockSummary]:
        summaries = decode_json(
            await self._execute("GET", paths.blocks(height)), list[BlockSummary]
        )
        if not summaries:
            raise InvalidServerDataError("The server returned an empty block list")
        return summaries

    # ------------------------------------------------------------------ #
    # Addresses and scripts
    # ------------------------------------------------------------------ #

    async def address_stats(self, address: str) -> AddressStats:
        return decode_json(await self._execute("GET", paths.address(address)), AddressStats)

    async def address_txs(self, address: str, last_seen: Optional[str] = None) -> list[Tx]:
        return decode_json(
            await self._execute("GET", paths.address_txs(address, last_seen)), list[Tx]
        )

    async def address_utxo(self, address: str) -> list[Utxo]:
        return decode_json(
            await self._execute("GET", paths.address_utxo(address)), list[Utxo]
        )

    async def scripthash_txs(
        self, script: bytes, last_seen: Optional[str] = None
    ) -> list[Tx]:
        return decode_json(
            await self._execute("GET", paths.scripthash_txs(script, last_seen)), list[Tx]
        )

    async def scripthash_utxo(self, script: bytes) -> list[Utxo]:
        return decode_json(
            await self._execute("GET", paths.scripthash_utxo(script)), list[Utxo]
        )

    # ------------------------------------------------------------------ #
    # Fees
    # ------------------------------------------------------------------ #

    async def fee_estimates(self) -> dict[int, float]:
        return decode_json(
            await self._execute("GET", paths.fee_estimates()), dict[int, float]
        )

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _execute(
        self, method: str, path: str, body: Optional[str] = None
    ) -> httpx.Response:
        """Send a request, retrying retryable statuses with exponential backoff.

        Behaves identically to
        :meth:`~esplora.client.sync_client.BlockingClient._execute` but
        awaits the transport and the sleeper.
        """
        url = f"{self._url}{path}"
        backoff = Backoff(self._max_retries, self._base_backoff)

        while True:
            try:
                response = await self._client.request(method, url, content=body)
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
            await self._sleeper.sleep(delay)
