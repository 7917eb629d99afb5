"""Assembly of the commit/reveal transaction chain for an inscription.

The assembler is a small state machine::

    BUILDING --commit--> LINKED --commit--> LINKED ... --> FINALIZING --> DONE

Every commit transaction spends the previous commit output (when there is
one), reveals the previous partial script while doing so, and locks a new
output to the hash of the next partial script's lock script. The final
transaction spends the last commit output and pays the receiver instead.
Each transaction is funded, signed and applied to the coin ledger before the
next one is built, so later transactions can spend fresh change.

Nothing here touches the network: the chain is built and signed entirely in
memory and handed to :func:`dogeord.broadcast.broadcast_chain` afterwards.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List

from ..errors import ChainStepError, InvalidInput
from ..funding import fund_transaction
from ..keys import PrivateKey, address_to_script_pubkey
from ..ledger import Coin, CoinLedger
from ..networks import DOGECOIN_MAINNET, Network
from ..transaction import Transaction, TxIn, TxOut
from .envelope import encode_envelope
from .lock_scripts import CommitLink, build_lock_script, p2sh_script_pubkey
from .packer import PartialScript, pack_envelope
from .signer import sign_chain_link, sign_funding_inputs

logger = logging.getLogger(__name__)

COMMIT_VALUE = 100_000
DEFAULT_FEE = 10_000_000


class ChainState(enum.Enum):
    BUILDING = "building"
    LINKED = "linked"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass
class InscriptionResult:
    """The signed chain, the final transaction id and the ledger after the chain."""

    transactions: List[Transaction]
    txid: str
    ledger: CoinLedger

    @property
    def raw_transactions(self) -> List[str]:
        return [tx.to_hex() for tx in self.transactions]

    def summary(self) -> dict[str, Any]:
        return {
            "txid": self.txid,
            "transactions": len(self.transactions),
            "commit_transactions": len(self.transactions) - 1,
            "total_bytes": sum(len(tx.serialize()) for tx in self.transactions),
            "txids": [tx.txid for tx in self.transactions],
            "remaining_balance": self.ledger.balance,
        }


class ChainAssembler:
    """Build the dependent transaction chain for a sequence of partial scripts."""

    def __init__(
        self,
        key: PrivateKey,
        ledger: CoinLedger,
        receiver_script: bytes,
        *,
        fee: int = DEFAULT_FEE,
        commit_value: int = COMMIT_VALUE,
        change_script: bytes | None = None,
    ) -> None:
        if fee < 0:
            raise InvalidInput(f"Fee must not be negative, got {fee}")
        if commit_value <= 0:
            raise InvalidInput(f"Commit value must be positive, got {commit_value}")
        self.key = key
        self.ledger = ledger
        self.receiver_script = receiver_script
        self.fee = fee
        self.commit_value = commit_value
        self.change_script = change_script if change_script is not None else key.script_pubkey
        self.state = ChainState.BUILDING
        self.prior_link: CommitLink | None = None
        self.transactions: List[Transaction] = []
        self._partials: Iterator[PartialScript] = iter(())

    def run(self, partials: Iterable[PartialScript]) -> InscriptionResult:
        """Drive the state machine to ``DONE`` and return the finished chain."""

        self._partials = iter(partials)
        while self.state is not ChainState.DONE:
            self.step()
        final = self.transactions[-1]
        logger.info(
            "Built inscription chain of %d transactions; final txid %s",
            len(self.transactions),
            final.txid,
        )
        return InscriptionResult(transactions=list(self.transactions), txid=final.txid, ledger=self.ledger)

    def step(self) -> Transaction:
        """Advance by one transaction and return it."""

        if self.state is ChainState.DONE:
            raise RuntimeError("Inscription chain is already complete")

        if self.state is not ChainState.FINALIZING:
            partial = next(self._partials, None)
            if partial is not None:
                return self._commit(partial)
            if self.prior_link is None:
                raise InvalidInput("Envelope produced no partial scripts to commit")
            self.state = ChainState.FINALIZING

        return self._finalize()

    def _commit(self, partial: PartialScript) -> Transaction:
        lock_script = build_lock_script(partial, self.key.public_key)
        tx = self._build(TxOut(self.commit_value, p2sh_script_pubkey(lock_script)))
        self.prior_link = CommitLink(coin=Coin.from_output(tx, 0), lock_script=lock_script, partial=partial)
        self.state = ChainState.LINKED
        return tx

    def _finalize(self) -> Transaction:
        tx = self._build(TxOut(self.commit_value, self.receiver_script))
        # The inscribed output is never spendable change, even when it pays us.
        self.ledger = self.ledger.remove([tx.outpoint(0)])
        self.prior_link = None
        self.state = ChainState.DONE
        return tx

    def _build(self, primary_output: TxOut) -> Transaction:
        index = len(self.transactions)
        link = self.prior_link
        tx = Transaction()
        if link is not None:
            tx.inputs.append(TxIn(link.coin.outpoint))
        tx.outputs.append(primary_output)

        try:
            funding = fund_transaction(tx, self.ledger, self.change_script, self.fee)
            if link is not None:
                sign_chain_link(tx, self.key, link)
            sign_funding_inputs(
                tx,
                self.key,
                funding.selected,
                link_outpoint=link.coin.outpoint if link is not None else None,
            )
        except ChainStepError as exc:
            logger.error("Failed to build chain transaction #%d: %s", index, exc)
            raise exc.at_step(index, self.transactions)

        self.ledger = self.ledger.apply_transaction(tx, self.change_script)
        self.transactions.append(tx)
        logger.debug(
            "Built chain transaction #%d %s (%d inputs, %d outputs, %d bytes)",
            index,
            tx.txid,
            len(tx.inputs),
            len(tx.outputs),
            len(tx.serialize()),
        )
        return tx


def inscribe(
    content_type: str,
    payload: bytes,
    receiver_address: str,
    signing_key: PrivateKey,
    ledger: CoinLedger,
    fee: int = DEFAULT_FEE,
    *,
    network: Network = DOGECOIN_MAINNET,
    commit_value: int = COMMIT_VALUE,
) -> InscriptionResult:
    """Build and sign the full inscription chain for ``payload``.

    All input validation (content type, payload, receiver address, packing)
    happens before any transaction is signed. The returned ledger reflects
    every transaction in the chain; the input ledger is not modified.
    """

    receiver_script = address_to_script_pubkey(receiver_address, network)
    ops = encode_envelope(content_type, payload)
    partials = list(pack_envelope(ops))
    logger.info(
        "Inscribing %d bytes of %s as %d envelope ops in %d partial scripts",
        len(payload),
        content_type,
        len(ops),
        len(partials),
    )
    assembler = ChainAssembler(
        signing_key,
        ledger,
        receiver_script,
        fee=fee,
        commit_value=commit_value,
    )
    return assembler.run(partials)
