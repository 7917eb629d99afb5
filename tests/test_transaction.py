from __future__ import annotations

import pytest

from dogeord.script import sha256d
from dogeord.transaction import SIGHASH_ALL, OutPoint, Transaction, TxIn, TxOut, ser_compact_size


def _sample() -> Transaction:
    return Transaction(
        inputs=[
            TxIn(OutPoint("11" * 32, 0), script_sig=b"\x01\xaa"),
            TxIn(OutPoint("22" * 32, 5), script_sig=b"\x01\xbb"),
        ],
        outputs=[TxOut(100_000, b"\x51"), TxOut(250, b"\x76\xa9")],
    )


def test_serialization_layout() -> None:
    raw = _sample().serialize()

    assert raw[:4] == b"\x01\x00\x00\x00"
    assert raw[4] == 2
    # Outpoint txids are stored byte-reversed.
    assert raw[5:37] == bytes.fromhex("11" * 32)[::-1]
    assert raw[-4:] == b"\x00\x00\x00\x00"


def test_deserialize_reads_back_serialized_transaction() -> None:
    tx = _sample()

    parsed = Transaction.from_hex(tx.to_hex())

    assert parsed == tx
    assert parsed.txid == tx.txid


def test_txid_is_reversed_double_sha() -> None:
    tx = _sample()

    assert tx.txid == sha256d(tx.serialize())[::-1].hex()
    assert tx.outpoint(1) == OutPoint(tx.txid, 1)
    with pytest.raises(IndexError):
        tx.outpoint(2)


def test_signature_hash_ignores_other_script_sigs() -> None:
    tx = _sample()
    before = tx.signature_hash(0, b"\x51")

    tx.inputs[1].script_sig = b"\x02\xcc\xdd"

    assert tx.signature_hash(0, b"\x51") == before
    assert tx.signature_hash(1, b"\x51") != before
    assert tx.inputs[1].script_sig == b"\x02\xcc\xdd"


def test_signature_hash_rejects_unsupported_types() -> None:
    with pytest.raises(ValueError):
        _sample().signature_hash(0, b"\x51", hash_type=0x03)
    with pytest.raises(IndexError):
        _sample().signature_hash(5, b"\x51", hash_type=SIGHASH_ALL)


def test_truncated_and_trailing_bytes_are_rejected() -> None:
    raw = _sample().serialize()

    with pytest.raises(ValueError):
        Transaction.deserialize(raw[:-6])
    with pytest.raises(ValueError):
        Transaction.deserialize(raw + b"\x00")


@pytest.mark.parametrize("value, encoded", [(0, "00"), (252, "fc"), (253, "fdfd00"), (0x10000, "fe00000100")])
def test_compact_size(value: int, encoded: str) -> None:
    assert ser_compact_size(value).hex() == encoded
