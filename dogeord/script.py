"""Script primitives: opcodes, push encoding, script numbers and hashing.

Only the small subset of the script language needed by the inscription
envelope and the standard P2PKH/P2SH templates is covered here. Scripts are
handled as plain ``bytes`` so they can be concatenated and measured directly.
"""

from __future__ import annotations

import hashlib
from typing import Iterator, List, Tuple

OP_0 = 0x00
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_1NEGATE = 0x4F
OP_1 = 0x51
OP_TRUE = OP_1
OP_16 = 0x60
OP_DUP = 0x76
OP_DROP = 0x75
OP_EQUAL = 0x87
OP_EQUALVERIFY = 0x88
OP_HASH160 = 0xA9
OP_CHECKSIG = 0xAC
OP_CHECKSIGVERIFY = 0xAD

# Consensus limit for a single stack element.
MAX_SCRIPT_ELEMENT_SIZE = 520


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def sha256d(data: bytes) -> bytes:
    """Double SHA-256, used for transaction ids and signature hashes."""
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def hash160(data: bytes) -> bytes:
    """RIPEMD-160(SHA-256(data))."""
    h = hashlib.new("ripemd160")
    h.update(sha256(data))
    return h.digest()


def encode_script_number(value: int) -> bytes:
    """Encode ``value`` as a minimal little-endian sign-magnitude script number.

    Zero is the empty byte string. When the most significant byte already has
    its top bit set, an extra byte carries the sign so 128 becomes ``80 00``.
    """

    if value == 0:
        return b""
    negative = value < 0
    magnitude = -value if negative else value
    encoded = bytearray()
    while magnitude:
        encoded.append(magnitude & 0xFF)
        magnitude >>= 8
    if encoded[-1] & 0x80:
        encoded.append(0x80 if negative else 0x00)
    elif negative:
        encoded[-1] |= 0x80
    return bytes(encoded)


def decode_script_number(data: bytes) -> int:
    """Inverse of :func:`encode_script_number`."""

    if not data:
        return 0
    value = int.from_bytes(data, "little")
    if data[-1] & 0x80:
        return -(value & ~(0x80 << (8 * (len(data) - 1))))
    return value


def push_data(data: bytes) -> bytes:
    """Return the minimal push operation for ``data``.

    Empty data and single bytes 1..16 / 0x81 use their dedicated opcodes;
    everything else uses a direct length prefix or the smallest PUSHDATA form.
    """

    length = len(data)
    if length == 0:
        return bytes([OP_0])
    if length == 1 and 1 <= data[0] <= 16:
        return bytes([OP_1 + data[0] - 1])
    if length == 1 and data[0] == 0x81:
        return bytes([OP_1NEGATE])
    if length < OP_PUSHDATA1:
        return bytes([length]) + data
    if length <= 0xFF:
        return bytes([OP_PUSHDATA1, length]) + data
    if length <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + length.to_bytes(2, "little") + data
    return bytes([OP_PUSHDATA4]) + length.to_bytes(4, "little") + data


def iter_script(script: bytes) -> Iterator[Tuple[int, bytes | None]]:
    """Yield ``(opcode, pushed_data)`` pairs; data is ``None`` for non-push opcodes."""

    i = 0
    end = len(script)
    while i < end:
        opcode = script[i]
        i += 1
        if opcode == OP_0:
            yield opcode, b""
            continue
        if opcode < OP_PUSHDATA1:
            size = opcode
        elif opcode == OP_PUSHDATA1:
            size = _read_length(script, i, 1)
            i += 1
        elif opcode == OP_PUSHDATA2:
            size = _read_length(script, i, 2)
            i += 2
        elif opcode == OP_PUSHDATA4:
            size = _read_length(script, i, 4)
            i += 4
        elif opcode == OP_1NEGATE:
            yield opcode, b"\x81"
            continue
        elif OP_1 <= opcode <= OP_16:
            yield opcode, bytes([opcode - OP_1 + 1])
            continue
        else:
            yield opcode, None
            continue
        if i + size > end:
            raise ValueError(f"Push of {size} bytes runs past the end of the script")
        yield opcode, script[i : i + size]
        i += size


def _read_length(script: bytes, offset: int, width: int) -> int:
    if offset + width > len(script):
        raise ValueError("Truncated PUSHDATA length")
    return int.from_bytes(script[offset : offset + width], "little")


def script_pushes(script: bytes) -> List[bytes]:
    """Return every pushed element of a push-only script (e.g. a scriptSig)."""

    pushes: List[bytes] = []
    for opcode, data in iter_script(script):
        if data is None:
            raise ValueError(f"Script is not push-only (opcode 0x{opcode:02x})")
        pushes.append(data)
    return pushes


def p2pkh_script_pubkey(pubkey_hash: bytes) -> bytes:
    """``OP_DUP OP_HASH160 <20 bytes> OP_EQUALVERIFY OP_CHECKSIG``."""

    if len(pubkey_hash) != 20:
        raise ValueError(f"P2PKH hash must be 20 bytes, got {len(pubkey_hash)}")
    return bytes([OP_DUP, OP_HASH160]) + push_data(pubkey_hash) + bytes([OP_EQUALVERIFY, OP_CHECKSIG])


def p2sh_script_pubkey(script_hash: bytes) -> bytes:
    """``OP_HASH160 <20 bytes> OP_EQUAL``."""

    if len(script_hash) != 20:
        raise ValueError(f"P2SH hash must be 20 bytes, got {len(script_hash)}")
    return bytes([OP_HASH160]) + push_data(script_hash) + bytes([OP_EQUAL])


def is_p2sh(script: bytes) -> bool:
    return len(script) == 23 and script[0] == OP_HASH160 and script[1] == 0x14 and script[22] == OP_EQUAL
