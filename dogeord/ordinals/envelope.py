"""Inscription envelope encoding and decoding.

An envelope is the ordered list of push operations that carries an
inscription::

    "ord" <chunk count> <content type> (<countdown index> <chunk>)...

The countdown index of the first chunk is ``count - 1`` and the last chunk's is
``0``, so a reader can tell how many chunks remain while scanning the chain.
Numbers are minimal script numbers; every operation is serialized as a minimal
push, which turns small numbers into ``OP_0``/``OP_1``..``OP_16``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple

from ..errors import InvalidInput
from ..script import MAX_SCRIPT_ELEMENT_SIZE, decode_script_number, encode_script_number, push_data, script_pushes
from ..transaction import Transaction

ENVELOPE_MARKER = b"ord"
MAX_CHUNK_LEN = 240


@dataclass(frozen=True)
class EnvelopeOp:
    """A single push in the envelope; ``kind`` is informational only."""

    data: bytes
    kind: str = field(default="literal", compare=False)

    @classmethod
    def literal(cls, data: bytes) -> "EnvelopeOp":
        return cls(bytes(data), "literal")

    @classmethod
    def number(cls, value: int) -> "EnvelopeOp":
        return cls(encode_script_number(value), "number")

    def to_bytes(self) -> bytes:
        return push_data(self.data)

    def __repr__(self) -> str:
        if self.kind == "number":
            return f"EnvelopeOp.number({decode_script_number(self.data)})"
        return f"EnvelopeOp.literal({self.data!r})" if len(self.data) <= 16 else f"EnvelopeOp.literal(<{len(self.data)} bytes>)"


def chunk_payload(payload: bytes, size: int = MAX_CHUNK_LEN) -> List[bytes]:
    """Split payload into consecutive chunks of at most ``size`` bytes."""
    return [payload[i : i + size] for i in range(0, len(payload), size)]


def encode_envelope(content_type: str, payload: bytes) -> Tuple[EnvelopeOp, ...]:
    """Return the envelope operations for ``payload`` tagged with ``content_type``."""

    if not content_type:
        raise InvalidInput("Content type must not be empty")
    if not payload:
        raise InvalidInput("Payload must not be empty")

    content_type_bytes = content_type.encode("utf-8")
    if len(content_type_bytes) > MAX_SCRIPT_ELEMENT_SIZE:
        raise InvalidInput(
            f"Content type is {len(content_type_bytes)} bytes; a single push is limited to {MAX_SCRIPT_ELEMENT_SIZE}"
        )

    chunks = chunk_payload(payload)
    count = len(chunks)

    ops: List[EnvelopeOp] = [
        EnvelopeOp.literal(ENVELOPE_MARKER),
        EnvelopeOp.number(count),
        EnvelopeOp.literal(content_type_bytes),
    ]
    for index, chunk in enumerate(chunks):
        ops.append(EnvelopeOp.number(count - index - 1))
        ops.append(EnvelopeOp.literal(chunk))
    return tuple(ops)


def decode_envelope(ops: Sequence[EnvelopeOp]) -> Tuple[str, bytes]:
    """Recover ``(content_type, payload)`` from envelope operations."""

    if len(ops) < 3 or ops[0].data != ENVELOPE_MARKER:
        raise InvalidInput("Not an inscription envelope: missing 'ord' marker")
    count = decode_script_number(ops[1].data)
    if count <= 0:
        raise InvalidInput(f"Envelope declares an invalid chunk count: {count}")
    if len(ops) != 3 + 2 * count:
        raise InvalidInput(f"Envelope declares {count} chunks but carries {(len(ops) - 3) / 2:g}")
    try:
        content_type = ops[2].data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidInput("Envelope content type is not valid UTF-8") from exc

    chunks: List[bytes] = []
    for position in range(count):
        index_op, chunk_op = ops[3 + 2 * position], ops[4 + 2 * position]
        expected = count - position - 1
        if decode_script_number(index_op.data) != expected:
            raise InvalidInput(f"Chunk #{position} carries index {decode_script_number(index_op.data)}, expected {expected}")
        chunks.append(chunk_op.data)
    return content_type, b"".join(chunks)


def extract_envelope_ops(transactions: Iterable[Transaction]) -> Tuple[EnvelopeOp, ...]:
    """Read the envelope back out of a built chain.

    Every transaction after the first reveals the previous partial script in
    the unlocking script of input 0, followed by a signature and the redeem
    script. Those two trailing pushes are dropped.
    """

    ops: List[EnvelopeOp] = []
    for position, tx in enumerate(transactions):
        if position == 0:
            continue
        if not tx.inputs:
            raise InvalidInput(f"Chain transaction #{position} has no inputs")
        try:
            pushes = script_pushes(tx.inputs[0].script_sig)
        except ValueError as exc:
            raise InvalidInput(f"Chain transaction #{position} has a malformed unlocking script: {exc}") from exc
        if len(pushes) < 3:
            raise InvalidInput(f"Chain transaction #{position} does not reveal any envelope data")
        ops.extend(EnvelopeOp(data) for data in pushes[:-2])
    return tuple(ops)
