"""Redeem ("lock") and unlocking scripts for the P2SH commit chain.

Each commit output is a P2SH hash of::

    <pubkey> OP_CHECKSIGVERIFY OP_DROP * n OP_TRUE

where ``n`` is the number of envelope ops the partial script pushes. The
transaction spending it reveals the data in its unlocking script::

    <op 1> ... <op n> <signature> <lock script>

so the redeem script checks the signature and then discards exactly the
revealed items.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..ledger import Coin
from ..script import OP_CHECKSIGVERIFY, OP_DROP, OP_TRUE, hash160, p2sh_script_pubkey as _p2sh_template, push_data
from .packer import PartialScript


@dataclass(frozen=True)
class CommitLink:
    """A committed output plus what is needed to spend it in the next transaction."""

    coin: Coin
    lock_script: bytes
    partial: PartialScript


def build_lock_script(partial: PartialScript, pubkey: bytes) -> bytes:
    return (
        push_data(pubkey)
        + bytes([OP_CHECKSIGVERIFY])
        + bytes([OP_DROP]) * len(partial)
        + bytes([OP_TRUE])
    )


def p2sh_script_pubkey(lock_script: bytes) -> bytes:
    """Locking script for a commit output: the P2SH template around ``lock_script``."""
    return _p2sh_template(hash160(lock_script))


def build_unlock_script(prev_partial: PartialScript, signature: bytes, prev_lock_script: bytes) -> bytes:
    return prev_partial.to_bytes() + push_data(signature) + push_data(prev_lock_script)
