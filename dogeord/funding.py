"""Greedy coin selection and change handling for chain transactions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from .errors import InsufficientFunds
from .ledger import Coin, CoinLedger
from .transaction import Transaction, TxIn, TxOut

logger = logging.getLogger(__name__)


@dataclass
class FundingResult:
    selected: List[Coin]
    change: int
    fee: int

    @property
    def selected_value(self) -> int:
        return sum(coin.value for coin in self.selected)


def select_coins(ledger: CoinLedger, needed: int) -> List[Coin]:
    """Take ledger coins in ledger order until their total reaches ``needed``."""

    selected: List[Coin] = []
    total = 0
    for coin in ledger:
        if total >= needed:
            break
        selected.append(coin)
        total += coin.value

    if total < needed:
        logger.warning(
            "Insufficient funds: needed=%d, available=%d across %d coins",
            needed,
            ledger.balance,
            len(ledger),
        )
        raise InsufficientFunds(required=needed, available=ledger.balance)
    return selected


def fund_transaction(
    tx: Transaction,
    ledger: CoinLedger,
    change_script: bytes,
    fee: int,
) -> FundingResult:
    """Add funding inputs and a change output to ``tx``.

    ``tx`` must already carry its non-funding outputs. Only ledger coins count
    toward ``total_out + fee``; an input attached before funding (the spent
    commit output of a chain link) is not counted, so its value goes to the
    miner. Change pays ``change_script`` and is omitted when the remainder is
    exactly zero.
    """

    if fee < 0:
        raise ValueError(f"Fee must not be negative, got {fee}")

    needed = tx.total_out + fee
    selected = select_coins(ledger, needed)
    for coin in selected:
        tx.inputs.append(TxIn(coin.outpoint))

    change = sum(coin.value for coin in selected) - needed
    if change > 0:
        tx.outputs.append(TxOut(change, change_script))

    logger.debug(
        "Funded transaction with %d coins (target=%d, change=%d, fee=%d)",
        len(selected),
        needed,
        change,
        fee,
    )
    return FundingResult(selected=selected, change=change, fee=fee)
