from __future__ import annotations

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed

from dogeord.errors import InsufficientFunds, InvalidInput, SigningError
from dogeord.keys import PrivateKey
from dogeord.ledger import Coin, CoinLedger
from dogeord.ordinals import (
    ChainAssembler,
    ChainState,
    build_lock_script,
    decode_envelope,
    encode_envelope,
    extract_envelope_ops,
    inscribe,
    p2sh_script_pubkey,
    pack_envelope,
)
from dogeord.script import is_p2sh, script_pushes
from dogeord.transaction import SIGHASH_ALL, OutPoint

FEE = 1_000
COMMIT = 5_000

KEY = PrivateKey.from_secret(0x5EED)
RECEIVER = PrivateKey.from_secret(0xBEEF)


def _funded_ledger(*values: int) -> CoinLedger:
    return CoinLedger(
        Coin(OutPoint(f"{position + 1:064x}", 0), value, KEY.script_pubkey) for position, value in enumerate(values)
    )


def _inscribe(payload: bytes, ledger: CoinLedger | None = None, content_type: str = "text/plain"):
    return inscribe(
        content_type,
        payload,
        RECEIVER.address(),
        KEY,
        ledger if ledger is not None else _funded_ledger(1_000_000),
        FEE,
        commit_value=COMMIT,
    )


def _verify(tx, input_index: int, script_code: bytes, signature: bytes) -> None:
    assert signature[-1] == SIGHASH_ALL
    digest = tx.signature_hash(input_index, script_code, signature[-1])
    KEY.verifying_key.verify(signature[:-1], digest, ec.ECDSA(Prehashed(hashes.SHA256())))


def test_small_payload_builds_two_transaction_chain() -> None:
    result = _inscribe(b"0123456789")

    commit, reveal = result.transactions
    assert len(result.transactions) == 2
    assert result.txid == reveal.txid
    assert is_p2sh(commit.outputs[0].script_pubkey)
    assert commit.outputs[0].value == COMMIT
    assert reveal.inputs[0].outpoint == commit.outpoint(0)
    assert reveal.outputs[0].script_pubkey == RECEIVER.script_pubkey
    assert reveal.outputs[0].value == COMMIT


def test_end_to_end_envelope_ops_are_revealed() -> None:
    payload = b"0123456789"
    result = _inscribe(payload)

    ops = extract_envelope_ops(result.transactions)

    assert [op.data for op in ops] == [b"ord", b"\x01", b"text/plain", b"", payload]
    assert decode_envelope(ops) == ("text/plain", payload)


def test_two_partials_build_three_transaction_chain() -> None:
    payload = b"q" * (240 * 7)
    result = _inscribe(payload)

    assert len(result.transactions) == 3
    first, second, final = result.transactions
    assert second.inputs[0].outpoint == first.outpoint(0)
    assert final.inputs[0].outpoint == second.outpoint(0)
    assert decode_envelope(extract_envelope_ops(result.transactions)) == ("text/plain", payload)


def test_commit_output_hashes_lock_script_of_partial() -> None:
    payload = b"lock check"
    partial = next(iter(pack_envelope(encode_envelope("text/plain", payload))))

    result = _inscribe(payload)

    lock_script = build_lock_script(partial, KEY.public_key)
    assert result.transactions[0].outputs[0].script_pubkey == p2sh_script_pubkey(lock_script)
    assert lock_script[-1] == 0x51
    assert lock_script.count(0x75) >= len(partial)


def test_every_signature_verifies() -> None:
    result = _inscribe(b"s" * 3000, ledger=_funded_ledger(3_000, 3_000, 3_000, 1_000_000))

    for position, tx in enumerate(result.transactions):
        for index, txin in enumerate(tx.inputs):
            pushes = script_pushes(txin.script_sig)
            if position > 0 and index == 0:
                lock_script = pushes[-1]
                _verify(tx, 0, lock_script, pushes[-2])
            else:
                assert pushes[-1] == KEY.public_key
                _verify(tx, index, KEY.script_pubkey, pushes[0])


def test_result_ledger_tracks_change_and_input_ledger_is_untouched() -> None:
    ledger = _funded_ledger(1_000_000)

    result = _inscribe(b"0123456789", ledger=ledger)

    assert len(ledger) == 1
    assert ledger.balance == 1_000_000
    # The receiver gets one commit value; the spent link's value goes to fees.
    assert result.ledger.balance == 1_000_000 - 2 * FEE - 2 * COMMIT
    assert all(coin.script_pubkey == KEY.script_pubkey for coin in result.ledger)


def test_linked_transaction_pays_fee_plus_link_value() -> None:
    result = _inscribe(b"0123456789")

    commit, reveal = result.transactions
    funding_in = sum(commit.outputs[txin.outpoint.index].value for txin in reveal.inputs[1:])
    implicit_fee = COMMIT + funding_in - reveal.total_out

    assert all(txin.outpoint.txid == commit.txid for txin in reveal.inputs)
    assert implicit_fee == FEE + COMMIT


def test_inscribing_to_own_address_excludes_inscription_output() -> None:
    ledger = _funded_ledger(1_000_000)

    result = inscribe("text/plain", b"mine", KEY.address(), KEY, ledger, FEE, commit_value=COMMIT)

    final = result.transactions[-1]
    assert final.outputs[0].script_pubkey == KEY.script_pubkey
    assert final.outpoint(0) not in result.ledger


def test_later_transactions_spend_fresh_change() -> None:
    result = _inscribe(b"0123456789")

    commit, reveal = result.transactions
    change_outpoint = commit.outpoint(1)
    assert commit.outputs[1].script_pubkey == KEY.script_pubkey
    assert change_outpoint in {txin.outpoint for txin in reveal.inputs}


def test_insufficient_funds_carries_chain_position_and_built_transactions() -> None:
    ledger = _funded_ledger(COMMIT + FEE + 500)

    with pytest.raises(InsufficientFunds) as excinfo:
        _inscribe(b"0123456789", ledger=ledger)

    assert excinfo.value.tx_index == 1
    assert len(excinfo.value.built) == 1
    assert "chain transaction #1" in str(excinfo.value)


def test_foreign_coin_raises_signing_error_at_first_step() -> None:
    ledger = CoinLedger([Coin(OutPoint("ab" * 32, 0), 1_000_000, RECEIVER.script_pubkey)])

    with pytest.raises(SigningError) as excinfo:
        _inscribe(b"0123456789", ledger=ledger)

    assert excinfo.value.tx_index == 0
    assert excinfo.value.built == []


@pytest.mark.parametrize(
    "content_type, payload, receiver",
    [
        ("", b"data", None),
        ("text/plain", b"", None),
        ("text/plain", b"data", ""),
        ("text/plain", b"data", "not-an-address"),
    ],
)
def test_invalid_input_fails_before_signing(content_type: str, payload: bytes, receiver: str | None) -> None:
    with pytest.raises(InvalidInput):
        inscribe(
            content_type,
            payload,
            RECEIVER.address() if receiver is None else receiver,
            KEY,
            _funded_ledger(1_000_000),
            FEE,
        )


def test_assembler_walks_states_in_order() -> None:
    partials = list(pack_envelope(encode_envelope("text/plain", b"q" * (240 * 7))))
    assembler = ChainAssembler(KEY, _funded_ledger(1_000_000), RECEIVER.script_pubkey, fee=FEE, commit_value=COMMIT)
    assembler._partials = iter(partials)
    states = [assembler.state]

    while assembler.state is not ChainState.DONE:
        assembler.step()
        states.append(assembler.state)

    assert states == [ChainState.BUILDING, ChainState.LINKED, ChainState.LINKED, ChainState.DONE]
    with pytest.raises(RuntimeError):
        assembler.step()


def test_summary_reports_chain_shape() -> None:
    result = _inscribe(b"0123456789")

    summary = result.summary()

    assert summary["txid"] == result.txid
    assert summary["transactions"] == 2
    assert summary["commit_transactions"] == 1
    assert summary["txids"] == [tx.txid for tx in result.transactions]
    assert len(result.raw_transactions) == 2
