"""Stateless path construction for Esplora GET and POST requests.

Each function returns the path (starting with ``/``) that is appended to
the client's base URL. Both clients share these so the sync and async
endpoint sets cannot drift apart.
"""

from __future__ import annotations

import hashlib
from typing import Optional


def script_hash(script: bytes) -> str:
    """Esplora's scripthash: SHA-256 of the script bytes, plain (unreversed) hex."""
    return hashlib.sha256(script).hexdigest()


def tx_raw(txid: str) -> str:
    return f"/tx/{txid}/raw"


def tx_status(txid: str) -> str:
    return f"/tx/{txid}/status"


def tx_info(txid: str) -> str:
    return f"/tx/{txid}"


def tx_merkle_proof(txid: str) -> str:
    return f"/tx/{txid}/merkle-proof"


def tx_outspend(txid: str, index: int) -> str:
    return f"/tx/{txid}/outspend/{index}"


def tx_broadcast() -> str:
    return "/tx"


def block_header(block_hash: str) -> str:
    return f"/block/{block_hash}/header"


def block_status(block_hash: str) -> str:
    return f"/block/{block_hash}/status"


def block_txid(block_hash: str, index: int) -> str:
    return f"/block/{block_hash}/txid/{index}"


def block_height(height: int) -> str:
    return f"/block-height/{height}"


def blocks(height: Optional[int] = None) -> str:
    if height is None:
        return "/blocks"
    return f"/blocks/{height}"


def tip_height() -> str:
    return "/blocks/tip/height"


def tip_hash() -> str:
    return "/blocks/tip/hash"


def address(addr: str) -> str:
    return f"/address/{addr}"


def address_txs(addr: str, last_seen: Optional[str] = None) -> str:
    if last_seen is None:
        return f"/address/{addr}/txs"
    return f"/address/{addr}/txs/chain/{last_seen}"


def address_utxo(addr: str) -> str:
    return f"/address/{addr}/utxo"


def scripthash_txs(script: bytes, last_seen: Optional[str] = None) -> str:
    digest = script_hash(script)
    if last_seen is None:
        return f"/scripthash/{digest}/txs"
    return f"/scripthash/{digest}/txs/chain/{last_seen}"


def scripthash_utxo(script: bytes) -> str:
    return f"/scripthash/{script_hash(script)}/utxo"


def fee_estimates() -> str:
    return "/fee-estimates"
