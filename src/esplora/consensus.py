"""Consensus (wire) encoding of transactions and block headers.

Only the two binary payloads the Esplora API serves are covered:
``/tx/{txid}/raw`` returns a consensus-encoded :class:`Tx`, and
``/block/{hash}/header`` returns the hex of an 80-byte :class:`BlockHeader`.
Both types are immutable and compare structurally, so a transaction that is
broadcast and fetched back compares equal to the original.

Hashes (txids, block hashes) are exposed in their usual display form: 64
lowercase hex characters, byte-reversed with respect to the wire order.

Any malformed input raises :class:`ConsensusError`; the client maps it to
the coarse :class:`~esplora.exceptions.InvalidServerDataError`.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass, field

HASH_LENGTH = 32
HEADER_LENGTH = 80

_SEGWIT_MARKER = 0x00
_SEGWIT_FLAG = 0x01


class ConsensusError(ValueError):
    """Raised when bytes are not a valid consensus encoding."""


def sha256d(data: bytes) -> bytes:
    """Bitcoin's double SHA-256."""
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def parse_hash(value: str) -> str:
    """Validate a display-form hash and return it lower-cased.

    Raises:
        ValueError: If *value* is not exactly 32 bytes of hex.
    """
    text = value.strip()
    if len(text) != HASH_LENGTH * 2:
        raise ValueError(f"expected {HASH_LENGTH * 2} hex characters, got {len(text)}")
    if len(bytes.fromhex(text)) != HASH_LENGTH:
        raise ValueError("hash contains whitespace")
    return text.lower()


def _hash_to_wire(value: str) -> bytes:
    return bytes.fromhex(parse_hash(value))[::-1]


def _hash_from_wire(raw: bytes) -> str:
    return raw[::-1].hex()


# --- Primitive readers / writers ---


def encode_varint(n: int) -> bytes:
    """Encode *n* as a Bitcoin CompactSize integer."""
    if n < 0:
        raise ConsensusError(f"negative length {n}")
    if n < 0xFD:
        return bytes([n])
    if n <= 0xFFFF:
        return b"\xfd" + struct.pack("<H", n)
    if n <= 0xFFFFFFFF:
        return b"\xfe" + struct.pack("<I", n)
    return b"\xff" + struct.pack("<Q", n)


def _encode_bytes(data: bytes) -> bytes:
    return encode_varint(len(data)) + data


class _Reader:
    """Cursor over a byte string; every read is bounds-checked."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def read(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise ConsensusError(
                f"unexpected end of data: need {n} bytes at offset {self._pos}"
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def peek(self, offset: int = 0) -> int | None:
        index = self._pos + offset
        if index >= len(self._data):
            return None
        return self._data[index]

    def unpack(self, fmt: str) -> int:
        (value,) = struct.unpack(fmt, self.read(struct.calcsize(fmt)))
        return value

    def varint(self) -> int:
        prefix = self.read(1)[0]
        if prefix < 0xFD:
            return prefix
        if prefix == 0xFD:
            value, minimum = self.unpack("<H"), 0xFD
        elif prefix == 0xFE:
            value, minimum = self.unpack("<I"), 0x10000
        else:
            value, minimum = self.unpack("<Q"), 0x100000000
        if value < minimum:
            raise ConsensusError("non-canonical CompactSize encoding")
        return value

    def var_bytes(self) -> bytes:
        return self.read(self.varint())

    def finish(self) -> None:
        if self._pos != len(self._data):
            raise ConsensusError(
                f"{len(self._data) - self._pos} trailing bytes after payload"
            )


# --- Transactions ---


@dataclass(frozen=True)
class OutPoint:
    """Reference to an output of a previous transaction."""

    txid: str
    vout: int

    def serialize(self) -> bytes:
        return _hash_to_wire(self.txid) + struct.pack("<I", self.vout)

    @classmethod
    def _read(cls, reader: _Reader) -> OutPoint:
        txid = _hash_from_wire(reader.read(HASH_LENGTH))
        return cls(txid=txid, vout=reader.unpack("<I"))


@dataclass(frozen=True)
class TxIn:
    prevout: OutPoint
    script_sig: bytes = b""
    sequence: int = 0xFFFFFFFF
    witness: tuple[bytes, ...] = field(default_factory=tuple)

    def serialize(self) -> bytes:
        return (
            self.prevout.serialize()
            + _encode_bytes(self.script_sig)
            + struct.pack("<I", self.sequence)
        )

    @classmethod
    def _read(cls, reader: _Reader) -> TxIn:
        prevout = OutPoint._read(reader)
        script_sig = reader.var_bytes()
        return cls(prevout=prevout, script_sig=script_sig, sequence=reader.unpack("<I"))


@dataclass(frozen=True)
class TxOut:
    value: int
    script_pubkey: bytes

    def serialize(self) -> bytes:
        return struct.pack("<Q", self.value) + _encode_bytes(self.script_pubkey)

    @classmethod
    def _read(cls, reader: _Reader) -> TxOut:
        value = reader.unpack("<Q")
        return cls(value=value, script_pubkey=reader.var_bytes())


@dataclass(frozen=True)
class Tx:
    """A Bitcoin transaction in its consensus form.

    Witness data lives on the inputs; the segwit serialization (marker,
    flag and witness section) is used whenever at least one input carries
    a non-empty witness.
    """

    version: int
    inputs: tuple[TxIn, ...]
    outputs: tuple[TxOut, ...]
    lock_time: int = 0

    @property
    def has_witness(self) -> bool:
        return any(txin.witness for txin in self.inputs)

    def _serialize(self, with_witness: bool) -> bytes:
        parts = [struct.pack("<i", self.version)]
        if with_witness:
            parts.append(bytes([_SEGWIT_MARKER, _SEGWIT_FLAG]))
        parts.append(encode_varint(len(self.inputs)))
        parts.extend(txin.serialize() for txin in self.inputs)
        parts.append(encode_varint(len(self.outputs)))
        parts.extend(txout.serialize() for txout in self.outputs)
        if with_witness:
            for txin in self.inputs:
                parts.append(encode_varint(len(txin.witness)))
                parts.extend(_encode_bytes(item) for item in txin.witness)
        parts.append(struct.pack("<I", self.lock_time))
        return b"".join(parts)

    def consensus_serialize(self) -> bytes:
        """Wire encoding, in segwit form when any input carries a witness.

        Raises:
            ConsensusError: If there are no inputs. A zero input count reads
                back as the segwit marker, so such a value cannot round-trip.
        """
        if not self.inputs:
            raise ConsensusError("transaction has no inputs")
        return self._serialize(with_witness=self.has_witness)

    def txid(self) -> str:
        """Transaction id: hash of the serialization without witness data."""
        return _hash_from_wire(sha256d(self._serialize(with_witness=False)))

    def wtxid(self) -> str:
        return _hash_from_wire(sha256d(self.consensus_serialize()))

    @classmethod
    def consensus_deserialize(cls, data: bytes) -> Tx:
        """Decode a transaction, rejecting truncated or trailing bytes.

        Raises:
            ConsensusError: If *data* is not exactly one valid transaction.
        """
        reader = _Reader(data)
        version = reader.unpack("<i")

        segwit = reader.peek() == _SEGWIT_MARKER and reader.peek(1) is not None
        if segwit:
            reader.read(1)
            flag = reader.read(1)[0]
            if flag != _SEGWIT_FLAG:
                raise ConsensusError(f"unknown segwit flag {flag:#04x}")

        inputs = [TxIn._read(reader) for _ in range(reader.varint())]
        outputs = [TxOut._read(reader) for _ in range(reader.varint())]

        if segwit:
            witnessed = []
            for txin in inputs:
                items = tuple(reader.var_bytes() for _ in range(reader.varint()))
                witnessed.append(
                    TxIn(txin.prevout, txin.script_sig, txin.sequence, items)
                )
            if not any(txin.witness for txin in witnessed):
                raise ConsensusError("superfluous witness record")
            inputs = witnessed

        lock_time = reader.unpack("<I")
        reader.finish()
        return cls(
            version=version,
            inputs=tuple(inputs),
            outputs=tuple(outputs),
            lock_time=lock_time,
        )


# --- Block headers ---


@dataclass(frozen=True)
class BlockHeader:
    version: int
    prev_blockhash: str
    merkle_root: str
    time: int
    bits: int
    nonce: int

    def consensus_serialize(self) -> bytes:
        return (
            struct.pack("<i", self.version)
            + _hash_to_wire(self.prev_blockhash)
            + _hash_to_wire(self.merkle_root)
            + struct.pack("<III", self.time, self.bits, self.nonce)
        )

    def block_hash(self) -> str:
        return _hash_from_wire(sha256d(self.consensus_serialize()))

    @classmethod
    def consensus_deserialize(cls, data: bytes) -> BlockHeader:
        if len(data) != HEADER_LENGTH:
            raise ConsensusError(
                f"block header must be {HEADER_LENGTH} bytes, got {len(data)}"
            )
        reader = _Reader(data)
        version = reader.unpack("<i")
        prev_blockhash = _hash_from_wire(reader.read(HASH_LENGTH))
        merkle_root = _hash_from_wire(reader.read(HASH_LENGTH))
        time_, bits, nonce = struct.unpack("<III", reader.read(12))
        return cls(
            version=version,
            prev_blockhash=prev_blockhash,
            merkle_root=merkle_root,
            time=time_,
            bits=bits,
            nonce=nonce,
        )
