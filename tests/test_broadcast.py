from __future__ import annotations

import pytest

from dogeord.api_client import BroadcastReceipt
from dogeord.broadcast import broadcast_chain
from dogeord.errors import APITransportError, BroadcastError
from dogeord.transaction import OutPoint, Transaction, TxIn, TxOut


class StubSink:
    def __init__(self, reject_at: int | None = None, reason: str = "min relay fee not met", raise_at: int | None = None) -> None:
        self.reject_at = reject_at
        self.reason = reason
        self.raise_at = raise_at
        self.submitted: list[str] = []

    def broadcast(self, raw_tx: str) -> BroadcastReceipt:
        index = len(self.submitted)
        self.submitted.append(raw_tx)
        if index == self.raise_at:
            raise APITransportError("Wallet API returned HTTP 502", status_code=502)
        if index == self.reject_at:
            return BroadcastReceipt(accepted=False, reason=self.reason)
        return BroadcastReceipt(accepted=True, txid=Transaction.from_hex(raw_tx).txid)


def _chain(length: int) -> list[Transaction]:
    transactions: list[Transaction] = []
    previous = OutPoint("00" * 32, 0)
    for _ in range(length):
        tx = Transaction(inputs=[TxIn(previous)], outputs=[TxOut(1_000, b"\x51")])
        transactions.append(tx)
        previous = tx.outpoint(0)
    return transactions


def test_all_accepted_returns_txids_in_order() -> None:
    chain = _chain(3)
    sink = StubSink()

    txids = broadcast_chain(chain, sink)

    assert txids == [tx.txid for tx in chain]
    assert sink.submitted == [tx.to_hex() for tx in chain]


@pytest.mark.parametrize("reject_at", [0, 1, 3])
def test_rejection_stops_submission(reject_at: int) -> None:
    chain = _chain(4)
    sink = StubSink(reject_at=reject_at)

    with pytest.raises(BroadcastError) as excinfo:
        broadcast_chain(chain, sink)

    error = excinfo.value
    assert len(sink.submitted) == reject_at + 1
    assert error.tx_index == reject_at
    assert error.reason == "min relay fee not met"
    assert error.accepted_txids == [tx.txid for tx in chain[:reject_at]]


def test_transport_failure_is_reported_with_chain_position() -> None:
    chain = _chain(3)
    sink = StubSink(raise_at=1)

    with pytest.raises(BroadcastError) as excinfo:
        broadcast_chain(chain, sink)

    assert excinfo.value.tx_index == 1
    assert excinfo.value.accepted_txids == [chain[0].txid]
    assert isinstance(excinfo.value.__cause__, APITransportError)
    assert len(sink.submitted) == 2


def test_empty_chain_submits_nothing() -> None:
    sink = StubSink()

    assert broadcast_chain([], sink) == []
    assert sink.submitted == []
