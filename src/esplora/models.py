"""Canonical Pydantic models shared across all esplora modules.

The models fall into two groups:

**Configuration** -- :class:`ClientConfig`, the immutable connection settings
owned by a client for its whole lifetime.

**Esplora documents** -- the JSON payloads returned by the REST API:
    :class:`TxStatus`, :class:`BlockStatus`, :class:`MerkleProof`,
    :class:`OutputStatus`, :class:`Tx` (with :class:`Vin`, :class:`Vout`,
    :class:`PrevOut`), :class:`BlockSummary`, :class:`AddressStats`
    (with :class:`AddressTxsSummary`), and :class:`Utxo`
    (with :class:`UtxoStatus`).

Scripts and witness items travel as hex strings and are held as ``bytes``;
txids and block hashes are validated 64-character lowercase hex strings.
Unknown keys sent by newer servers are ignored.
"""

from __future__ import annotations

from typing import Annotated, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
)

from esplora import consensus

DEFAULT_MAX_RETRIES = 6
"""Number of retries for a retryable status before giving up."""

BASE_BACKOFF = 0.256
"""Delay in seconds before the first retry; doubled on every retry."""


def _hex_to_bytes(value: object) -> object:
    if isinstance(value, str):
        return bytes.fromhex(value)
    return value


HexBytes = Annotated[
    bytes,
    BeforeValidator(_hex_to_bytes),
    PlainSerializer(lambda raw: raw.hex(), return_type=str),
]
"""Bytes carried as a hex string on the wire."""

Hash = Annotated[str, AfterValidator(consensus.parse_hash)]
"""A txid or block hash in display (byte-reversed) hex form."""


# --- Configuration ---


class ClientConfig(BaseModel):
    """Connection settings for a :class:`~esplora.client.BlockingClient` or
    :class:`~esplora.client.AsyncClient`.

    Usually produced by :class:`~esplora.config.Builder` or
    :func:`~esplora.config.config_from_env` rather than constructed
    directly. Header names and values are validated when the client is
    built, not here.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(description="Esplora API root, e.g. https://blockstream.info/api")
    proxy: Optional[str] = Field(
        default=None, description="Proxy URL: <protocol>://<user>:<password>@host:<port>"
    )
    timeout: Optional[float] = Field(
        default=None, gt=0, description="Socket timeout in seconds"
    )
    headers: dict[str, str] = Field(
        default_factory=dict, description="Headers sent with every request"
    )
    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES, ge=0, description="Retries for 429/500/503 responses"
    )
    base_backoff: float = Field(
        default=BASE_BACKOFF, gt=0, description="First retry delay in seconds"
    )


# --- Transaction documents ---


class PrevOut(BaseModel):
    value: int
    scriptpubkey: HexBytes


class Vin(BaseModel):
    txid: Hash
    vout: int
    # None for coinbase inputs.
    prevout: Optional[PrevOut] = None
    scriptsig: HexBytes
    witness: list[HexBytes] = Field(default_factory=list)
    sequence: int
    is_coinbase: bool


class Vout(BaseModel):
    value: int
    scriptpubkey: HexBytes


class TxStatus(BaseModel):
    confirmed: bool
    block_height: Optional[int] = None
    block_hash: Optional[Hash] = None
    block_time: Optional[int] = None


class BlockTime(BaseModel):
    timestamp: int
    height: int


class Tx(BaseModel):
    """Transaction info as returned by ``/tx/{txid}`` and the history endpoints."""

    txid: Hash
    version: int
    locktime: int
    vin: list[Vin]
    vout: list[Vout]
    # Base transaction size in bytes.
    size: int
    weight: int
    status: TxStatus
    fee: int

    def to_tx(self) -> consensus.Tx:
        """Rebuild the consensus transaction described by this document."""
        return consensus.Tx(
            version=self.version,
            inputs=tuple(
                consensus.TxIn(
                    prevout=consensus.OutPoint(txid=vin.txid, vout=vin.vout),
                    script_sig=vin.scriptsig,
                    sequence=vin.sequence,
                    witness=tuple(vin.witness),
                )
                for vin in self.vin
            ),
            outputs=tuple(
                consensus.TxOut(value=vout.value, script_pubkey=vout.scriptpubkey)
                for vout in self.vout
            ),
            lock_time=self.locktime,
        )

    def confirmation_time(self) -> Optional[BlockTime]:
        """Height and time of the confirming block, or ``None`` if unconfirmed."""
        status = self.status
        if status.confirmed and status.block_height is not None and status.block_time is not None:
            return BlockTime(timestamp=status.block_time, height=status.block_height)
        return None

    def previous_outputs(self) -> list[Optional[consensus.TxOut]]:
        """Outputs spent by each input, ``None`` where the server omitted them."""
        return [
            consensus.TxOut(value=vin.prevout.value, script_pubkey=vin.prevout.scriptpubkey)
            if vin.prevout is not None
            else None
            for vin in self.vin
        ]


class MerkleProof(BaseModel):
    block_height: int
    merkle: list[Hash]
    pos: int


class OutputStatus(BaseModel):
    spent: bool
    txid: Optional[Hash] = None
    vin: Optional[int] = None
    status: Optional[TxStatus] = None


# --- Block documents ---


class BlockStatus(BaseModel):
    in_best_chain: bool
    height: Optional[int] = None
    next_best: Optional[Hash] = None


class BlockSummary(BaseModel):
    """One entry of ``/blocks``; ``timestamp`` and ``height`` sit at the top level."""

    id: Hash
    timestamp: int
    height: int
    previousblockhash: Optional[Hash] = None
    merkle_root: Hash

    @property
    def time(self) -> BlockTime:
        return BlockTime(timestamp=self.timestamp, height=self.height)


# --- Address documents ---


class AddressTxsSummary(BaseModel):
    funded_txo_count: int
    funded_txo_sum: int
    spent_txo_count: int
    spent_txo_sum: int
    tx_count: int


class AddressStats(BaseModel):
    address: str
    chain_stats: AddressTxsSummary
    mempool_stats: AddressTxsSummary


class UtxoStatus(BaseModel):
    confirmed: bool
    block_height: Optional[int] = None
    block_hash: Optional[Hash] = None
    block_time: Optional[int] = None


class Utxo(BaseModel):
    txid: Hash
    vout: int
    status: UtxoStatus
    value: int
