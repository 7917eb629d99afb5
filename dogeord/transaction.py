"""Legacy (non-segwit) transaction model, serialization and signature hashing."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Tuple

from .script import sha256d

SIGHASH_ALL = 0x01
DEFAULT_SEQUENCE = 0xFFFFFFFF
TX_VERSION = 1


def ser_compact_size(n: int) -> bytes:
    """Serialize an integer as a compact size."""
    if n < 253:
        return bytes([n])
    elif n <= 0xFFFF:
        return b"\xfd" + n.to_bytes(2, "little")
    elif n <= 0xFFFFFFFF:
        return b"\xfe" + n.to_bytes(4, "little")
    else:
        return b"\xff" + n.to_bytes(8, "little")


def _read_compact_size(raw: bytes, offset: int) -> Tuple[int, int]:
    prefix = raw[offset]
    if prefix < 253:
        return prefix, offset + 1
    width = {0xFD: 2, 0xFE: 4, 0xFF: 8}[prefix]
    return int.from_bytes(raw[offset + 1 : offset + 1 + width], "little"), offset + 1 + width


@dataclass(frozen=True)
class OutPoint:
    """Reference to output ``index`` of transaction ``txid`` (display hex)."""

    txid: str
    index: int

    def serialize(self) -> bytes:
        return bytes.fromhex(self.txid)[::-1] + self.index.to_bytes(4, "little")

    def __str__(self) -> str:
        return f"{self.txid}:{self.index}"


@dataclass
class TxIn:
    outpoint: OutPoint
    script_sig: bytes = b""
    sequence: int = DEFAULT_SEQUENCE

    def serialize(self) -> bytes:
        return (
            self.outpoint.serialize()
            + ser_compact_size(len(self.script_sig))
            + self.script_sig
            + self.sequence.to_bytes(4, "little")
        )


@dataclass
class TxOut:
    value: int
    script_pubkey: bytes

    def serialize(self) -> bytes:
        return self.value.to_bytes(8, "little") + ser_compact_size(len(self.script_pubkey)) + self.script_pubkey


@dataclass
class Transaction:
    """A transaction under construction or fully signed."""

    inputs: List[TxIn] = field(default_factory=list)
    outputs: List[TxOut] = field(default_factory=list)
    version: int = TX_VERSION
    locktime: int = 0

    @property
    def total_out(self) -> int:
        return sum(output.value for output in self.outputs)

    def serialize(self) -> bytes:
        parts = [self.version.to_bytes(4, "little"), ser_compact_size(len(self.inputs))]
        parts.extend(txin.serialize() for txin in self.inputs)
        parts.append(ser_compact_size(len(self.outputs)))
        parts.extend(txout.serialize() for txout in self.outputs)
        parts.append(self.locktime.to_bytes(4, "little"))
        return b"".join(parts)

    def to_hex(self) -> str:
        return self.serialize().hex()

    @property
    def txid(self) -> str:
        return sha256d(self.serialize())[::-1].hex()

    def outpoint(self, index: int) -> OutPoint:
        if not 0 <= index < len(self.outputs):
            raise IndexError(f"Transaction has no output #{index}")
        return OutPoint(self.txid, index)

    def signature_hash(self, input_index: int, script_code: bytes, hash_type: int = SIGHASH_ALL) -> bytes:
        """Legacy signature hash of ``input_index`` with ``script_code`` substituted.

        Every other input's scriptSig is blanked, so inputs may be signed in any
        order. Only ``SIGHASH_ALL`` is needed by the inscription chain.
        """

        if not 0 <= input_index < len(self.inputs):
            raise IndexError(f"Transaction has no input #{input_index}")
        if hash_type & 0x1F != SIGHASH_ALL:
            raise ValueError(f"Unsupported sighash type 0x{hash_type:02x}")
        inputs = [
            replace(txin, script_sig=script_code if i == input_index else b"")
            for i, txin in enumerate(self.inputs)
        ]
        stripped = Transaction(inputs=inputs, outputs=list(self.outputs), version=self.version, locktime=self.locktime)
        return sha256d(stripped.serialize() + hash_type.to_bytes(4, "little"))

    @classmethod
    def from_hex(cls, raw_hex: str) -> "Transaction":
        return cls.deserialize(bytes.fromhex(raw_hex.strip()))

    @classmethod
    def deserialize(cls, raw: bytes) -> "Transaction":
        try:
            version = int.from_bytes(raw[0:4], "little")
            count, offset = _read_compact_size(raw, 4)
            inputs: List[TxIn] = []
            for _ in range(count):
                txid = raw[offset : offset + 32][::-1].hex()
                index = int.from_bytes(raw[offset + 32 : offset + 36], "little")
                size, offset = _read_compact_size(raw, offset + 36)
                script_sig = raw[offset : offset + size]
                offset += size
                sequence = int.from_bytes(raw[offset : offset + 4], "little")
                offset += 4
                inputs.append(TxIn(OutPoint(txid, index), script_sig, sequence))
            count, offset = _read_compact_size(raw, offset)
            outputs: List[TxOut] = []
            for _ in range(count):
                value = int.from_bytes(raw[offset : offset + 8], "little")
                size, offset = _read_compact_size(raw, offset + 8)
                outputs.append(TxOut(value, raw[offset : offset + size]))
                offset += size
            locktime = int.from_bytes(raw[offset : offset + 4], "little")
            offset += 4
        except (IndexError, KeyError) as exc:
            raise ValueError("Truncated or malformed transaction") from exc
        if offset > len(raw):
            raise ValueError("Truncated or malformed transaction")
        if offset < len(raw):
            raise ValueError(f"Trailing bytes after transaction ({len(raw) - offset})")
        return cls(inputs=inputs, outputs=outputs, version=version, locktime=locktime)
