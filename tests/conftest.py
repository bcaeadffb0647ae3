"""Shared test fixtures for esplora.

Provides known-good consensus vectors (the genesis block), a fake Esplora
server served through :class:`httpx.MockTransport`, and clean global output
state between tests. These fixtures are discovered by pytest and available
to all test modules without explicit imports.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Union

import httpx
import pytest

from esplora.consensus import OutPoint, Tx, TxIn, TxOut
from esplora.models import ClientConfig
from esplora.output import reset_output

BASE_URL = "https://esplora.test/api"

GENESIS_TXID = "4a5e1e4baab89f3a32518a88c31bc87f618f76673e2cc77ab2127b7afdeda33b"
GENESIS_TX_HEX = (
    "01000000010000000000000000000000000000000000000000000000000000000000000000"
    "ffffffff4d04ffff001d0104455468652054696d65732030332f4a616e2f32303039204368"
    "616e63656c6c6f72206f6e206272696e6b206f66207365636f6e64206261696c6f757420"
    "666f722062616e6b73ffffffff0100f2052a01000000434104678afdb0fe5548271967f1"
    "a67130b7105cd6a828e03909a67962e0ea1f61deb649f6bc3f4cef38c4f35504e51ec112"
    "de5c384df7ba0b8d578a4c702b6bf11d5fac00000000"
)
GENESIS_BLOCK_HASH = "000000000019d6689c085ae165831e934ff763ae46a2a6c172b3f1b60a8ce26f"
GENESIS_HEADER_HEX = (
    "0100000000000000000000000000000000000000000000000000000000000000000000003b"
    "a3edfd7a7b12b27ac72c3e67768f617fc81bc3888a51323a9fb8aa4b1e5e4a29ab5f49ffff"
    "001d1dac2b7c"
)

Body = Union[str, bytes, dict, list, None]


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and the ``esplora`` logger after every test.

    The OutputManager and the RichHandler installed by configure_logging
    cache sys.stdout/sys.stderr at creation time; a CliRunner invocation
    swaps those streams, so a stale one would write to closed files in the
    next test.
    """
    yield
    reset_output()
    logger = logging.getLogger("esplora")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Fake Esplora server
# ---------------------------------------------------------------------------


def reply(status: int = 200, body: Body = None) -> tuple[int, Body]:
    return status, body


class FakeEsplora:
    """Canned Esplora responses keyed by (method, path).

    Each route holds a queue of ``(status, body)`` replies. Replies are
    consumed in order and the last one repeats, so a single retryable
    status keeps failing forever. Unknown routes answer 404. Every request
    is recorded in :attr:`requests`.
    """

    def __init__(self, base_path: str = "/api") -> None:
        self.base_path = base_path
        self.routes: dict[tuple[str, str], list[tuple[int, Body]]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, *replies: tuple[int, Body], method: str = "GET") -> None:
        self.routes[(method, path)] = list(replies)

    def ok(self, path: str, body: Body, method: str = "GET") -> None:
        self.add(path, reply(200, body), method=method)

    def calls(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == self.base_path + path)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix(self.base_path)
        queue = self.routes.get((request.method, path))
        if not queue:
            return httpx.Response(404, text="Not Found")
        status, body = queue.pop(0) if len(queue) > 1 else queue[0]
        return _build_response(status, body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def _build_response(status: int, body: Body) -> httpx.Response:
    if isinstance(body, (dict, list)):
        return httpx.Response(
            status,
            content=json.dumps(body).encode(),
            headers={"content-type": "application/json"},
        )
    if isinstance(body, bytes):
        return httpx.Response(status, content=body)
    return httpx.Response(status, text=body or "")


@pytest.fixture
def fake_server() -> FakeEsplora:
    return FakeEsplora()


@pytest.fixture
def make_config() -> Callable[..., ClientConfig]:
    """Factory for configs pointing at the fake server."""

    def _make(**overrides: Any) -> ClientConfig:
        fields: dict[str, Any] = {"base_url": BASE_URL, "max_retries": 3}
        fields.update(overrides)
        return ClientConfig(**fields)

    return _make


# ---------------------------------------------------------------------------
# Consensus vectors
# ---------------------------------------------------------------------------


@pytest.fixture
def genesis_txid() -> str:
    return GENESIS_TXID


@pytest.fixture
def genesis_tx_bytes() -> bytes:
    return bytes.fromhex(GENESIS_TX_HEX)


@pytest.fixture
def genesis_block_hash() -> str:
    return GENESIS_BLOCK_HASH


@pytest.fixture
def genesis_header_hex() -> str:
    return GENESIS_HEADER_HEX


@pytest.fixture
def segwit_tx() -> Tx:
    """A two-input transaction where only the first input has a witness."""
    return Tx(
        version=2,
        inputs=(
            TxIn(
                prevout=OutPoint(txid=GENESIS_TXID, vout=0),
                script_sig=b"",
                sequence=0xFFFFFFFD,
                witness=(bytes(71), bytes.fromhex("02" + "11" * 32)),
            ),
            TxIn(
                prevout=OutPoint(txid="ab" * 32, vout=7),
                script_sig=bytes.fromhex("0014" + "22" * 20),
                sequence=0xFFFFFFFF,
            ),
        ),
        outputs=(
            TxOut(value=50_000, script_pubkey=bytes.fromhex("0014" + "33" * 20)),
            TxOut(value=1, script_pubkey=b"\x6a"),
        ),
        lock_time=800_000,
    )


@pytest.fixture
def legacy_tx() -> Tx:
    return Tx(
        version=1,
        inputs=(
            TxIn(
                prevout=OutPoint(txid="cd" * 32, vout=1),
                script_sig=bytes.fromhex("47" + "30" * 71),
            ),
        ),
        outputs=(
            TxOut(
                value=12_345,
                script_pubkey=bytes.fromhex("76a914" + "00" * 20 + "88ac"),
            ),
        ),
    )


# ---------------------------------------------------------------------------
# JSON documents
# ---------------------------------------------------------------------------


@pytest.fixture
def genesis_tx_doc(genesis_tx_bytes: bytes) -> dict[str, Any]:
    """``/tx/{txid}`` document for the genesis coinbase."""
    tx = Tx.consensus_deserialize(genesis_tx_bytes)
    return {
        "txid": GENESIS_TXID,
        "version": tx.version,
        "locktime": tx.lock_time,
        "vin": [
            {
                "txid": "00" * 32,
                "vout": 0xFFFFFFFF,
                "prevout": None,
                "scriptsig": tx.inputs[0].script_sig.hex(),
                "scriptsig_asm": "OP_PUSHBYTES_4 ffff001d",
                "is_coinbase": True,
                "sequence": 0xFFFFFFFF,
            }
        ],
        "vout": [
            {
                "value": tx.outputs[0].value,
                "scriptpubkey": tx.outputs[0].script_pubkey.hex(),
                "scriptpubkey_type": "p2pk",
            }
        ],
        "size": len(genesis_tx_bytes),
        "weight": 4 * len(genesis_tx_bytes),
        "fee": 0,
        "status": {
            "confirmed": True,
            "block_height": 0,
            "block_hash": GENESIS_BLOCK_HASH,
            "block_time": 1231006505,
        },
    }


@pytest.fixture
def block_summary_doc() -> dict[str, Any]:
    return {
        "id": GENESIS_BLOCK_HASH,
        "height": 0,
        "version": 1,
        "timestamp": 1231006505,
        "tx_count": 1,
        "size": 285,
        "weight": 1140,
        "merkle_root": GENESIS_TXID,
        "previousblockhash": None,
        "nonce": 2083236893,
        "bits": 486604799,
    }


@pytest.fixture
def address_stats_doc() -> dict[str, Any]:
    return {
        "address": "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa",
        "chain_stats": {
            "funded_txo_count": 3,
            "funded_txo_sum": 5_000_100_000,
            "spent_txo_count": 0,
            "spent_txo_sum": 0,
            "tx_count": 3,
        },
        "mempool_stats": {
            "funded_txo_count": 0,
            "funded_txo_sum": 0,
            "spent_txo_count": 0,
            "spent_txo_sum": 0,
            "tx_count": 0,
        },
    }


@pytest.fixture
def utxo_doc() -> dict[str, Any]:
    return {
        "txid": GENESIS_TXID,
        "vout": 0,
        "value": 5_000_000_000,
        "status": {
            "confirmed": True,
            "block_height": 0,
            "block_hash": GENESIS_BLOCK_HASH,
            "block_time": 1231006505,
        },
    }
