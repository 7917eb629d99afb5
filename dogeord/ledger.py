"""In-memory coin ledger for the controlling key.

``CoinLedger`` is a value type: every mutation returns a new ledger and leaves
the original untouched, so each step of chain assembly receives the ledger it
should fund from and hands the updated one to the next step. Coins are keyed
by outpoint and keep their first-seen order, which is the order coin selection
walks them in.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Iterator, Tuple, TypeVar

from .transaction import OutPoint, Transaction

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Coin:
    """A spendable output: where it is, what it is worth, and what locks it."""

    outpoint: OutPoint
    value: int
    script_pubkey: bytes

    @classmethod
    def from_output(cls, tx: Transaction, index: int) -> "Coin":
        output = tx.outputs[index]
        return cls(outpoint=tx.outpoint(index), value=output.value, script_pubkey=output.script_pubkey)


class CoinLedger:
    """Ordered, outpoint-keyed set of believed-spendable coins."""

    def __init__(self, coins: Iterable[Coin] = ()) -> None:
        self._coins: Dict[OutPoint, Coin] = {}
        for coin in coins:
            self._coins[coin.outpoint] = coin

    @classmethod
    def from_records(cls, records: Iterable) -> "CoinLedger":
        """Build a ledger from coin-source records (``txid``, ``vout``, ``script``, ``value``)."""

        return cls(
            Coin(outpoint=OutPoint(record.txid, record.vout), value=record.value, script_pubkey=record.script)
            for record in records
        )

    def __iter__(self) -> Iterator[Coin]:
        return iter(self._coins.values())

    def __len__(self) -> int:
        return len(self._coins)

    def __contains__(self, outpoint: object) -> bool:
        return outpoint in self._coins

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CoinLedger):
            return NotImplemented
        return list(self._coins.items()) == list(other._coins.items())

    def __repr__(self) -> str:
        return f"CoinLedger(coins={len(self)}, balance={self.balance})"

    def get(self, outpoint: OutPoint) -> Coin | None:
        return self._coins.get(outpoint)

    @property
    def balance(self) -> int:
        return sum(coin.value for coin in self._coins.values())

    def remove(self, outpoints: Iterable[OutPoint]) -> "CoinLedger":
        spent = set(outpoints)
        return CoinLedger(coin for coin in self._coins.values() if coin.outpoint not in spent)

    def upsert(self, coins: Iterable[Coin]) -> "CoinLedger":
        """Add or replace coins by outpoint; re-adding a known coin is a no-op."""

        updated = CoinLedger(self._coins.values())
        for coin in coins:
            updated._coins[coin.outpoint] = coin
        return updated

    def apply_transaction(self, tx: Transaction, owner_script: bytes) -> "CoinLedger":
        """Drop the coins ``tx`` spends and add its outputs paying ``owner_script``."""

        produced = [
            Coin.from_output(tx, index)
            for index, output in enumerate(tx.outputs)
            if output.script_pubkey == owner_script
        ]
        spent = [txin.outpoint for txin in tx.inputs if txin.outpoint in self]
        updated = self.remove(spent).upsert(produced)
        logger.debug(
            "Ledger applied %s: %d spent, %d produced, balance %d -> %d",
            tx.txid,
            len(spent),
            len(produced),
            self.balance,
            updated.balance,
        )
        return updated

    def rollback(self, transactions: Iterable[Transaction], sources: "CoinLedger") -> "CoinLedger":
        """Undo ``transactions`` that were applied but never broadcast, newest first.

        Their outputs are dropped and the coins they spent are restored from
        ``sources``. Coins produced by another undone transaction stay gone.
        """

        undone = list(transactions)
        undone_txids = {tx.txid for tx in undone}
        ledger = self
        for tx in reversed(undone):
            ledger = ledger.remove(tx.outpoint(index) for index in range(len(tx.outputs)))
            restored = [
                sources.get(txin.outpoint) for txin in tx.inputs if txin.outpoint.txid not in undone_txids
            ]
            ledger = ledger.upsert(coin for coin in restored if coin is not None)
        logger.debug("Ledger rolled back %d unsent transactions, balance %d -> %d", len(undone), self.balance, ledger.balance)
        return ledger


class SharedCoinLedger:
    """A ledger shared by concurrently built chains.

    Chains that fund from the same coins must run their read-modify-write
    inside :meth:`update` so two chains never select the same coin.
    """

    def __init__(self, ledger: CoinLedger | None = None) -> None:
        self._ledger = ledger if ledger is not None else CoinLedger()
        self._lock = threading.Lock()

    def snapshot(self) -> CoinLedger:
        with self._lock:
            return self._ledger

    def replace(self, ledger: CoinLedger) -> None:
        with self._lock:
            self._ledger = ledger

    def update(self, build: Callable[[CoinLedger], Tuple[T, CoinLedger]]) -> T:
        """Run ``build`` on the current ledger and store the ledger it returns.

        If ``build`` raises, the stored ledger is left unchanged.
        """

        with self._lock:
            result, ledger = build(self._ledger)
            self._ledger = ledger
            return result
