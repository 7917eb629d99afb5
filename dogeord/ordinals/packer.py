"""Greedy packing of envelope operations into size-bounded partial scripts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, List, Sequence, Tuple

from ..errors import InvalidInput
from .envelope import EnvelopeOp

logger = logging.getLogger(__name__)

MAX_PAYLOAD_LEN = 1500


@dataclass(frozen=True)
class PartialScript:
    """A contiguous run of envelope ops revealed by one chain transaction."""

    ops: Tuple[EnvelopeOp, ...]
    start: int = 0

    def __len__(self) -> int:
        return len(self.ops)

    @property
    def end(self) -> int:
        return self.start + len(self.ops)

    def to_bytes(self) -> bytes:
        return serialize_ops(self.ops)


def serialize_ops(ops: Sequence[EnvelopeOp]) -> bytes:
    return b"".join(op.to_bytes() for op in ops)


def next_partial_script(
    ops: Sequence[EnvelopeOp],
    cursor: int,
    *,
    first: bool | None = None,
    max_payload_len: int = MAX_PAYLOAD_LEN,
) -> Tuple[PartialScript, int]:
    """Pack ops starting at ``cursor`` and return the script plus the next cursor.

    The first partial script of an envelope always takes its first op without
    a size check. Every other op is appended, the script re-serialized, and the
    op rolled back again if the script grew past ``max_payload_len``.
    """

    if not 0 <= cursor < len(ops):
        raise IndexError(f"Cursor {cursor} is outside the envelope ({len(ops)} ops)")
    if first is None:
        first = cursor == 0

    taken: List[EnvelopeOp] = []
    if first:
        # No size check here: an op larger than max_payload_len still yields a
        # one-op partial over the limit, and every later op packs normally.
        taken.append(ops[cursor])
        cursor += 1

    while cursor < len(ops):
        taken.append(ops[cursor])
        if len(serialize_ops(taken)) > max_payload_len:
            taken.pop()
            break
        cursor += 1

    if not taken:
        raise InvalidInput(
            f"Envelope op #{cursor} serializes to {len(ops[cursor].to_bytes())} bytes and cannot fit "
            f"in a {max_payload_len}-byte partial script"
        )
    partial = PartialScript(ops=tuple(taken), start=cursor - len(taken))
    return partial, cursor


class PartialScriptPacker:
    """Restartable, lazy sequence of partial scripts covering an envelope."""

    def __init__(self, ops: Sequence[EnvelopeOp], max_payload_len: int = MAX_PAYLOAD_LEN) -> None:
        self.ops = tuple(ops)
        self.max_payload_len = max_payload_len

    def __iter__(self) -> Iterator[PartialScript]:
        cursor = 0
        while cursor < len(self.ops):
            partial, cursor = next_partial_script(self.ops, cursor, max_payload_len=self.max_payload_len)
            logger.debug(
                "Packed ops %d..%d into a %d-byte partial script",
                partial.start,
                partial.end - 1,
                len(partial.to_bytes()),
            )
            yield partial


def pack_envelope(ops: Sequence[EnvelopeOp], max_payload_len: int = MAX_PAYLOAD_LEN) -> PartialScriptPacker:
    return PartialScriptPacker(ops, max_payload_len=max_payload_len)
