"""Sequential broadcast of a built inscription chain."""

from __future__ import annotations

import logging
from typing import List, Protocol, Sequence

from .api_client import BroadcastReceipt
from .errors import BroadcastError, ExternalServiceError, format_broadcast_hint
from .transaction import Transaction

logger = logging.getLogger(__name__)


class BroadcastSink(Protocol):
    def broadcast(self, raw_tx: str) -> BroadcastReceipt: ...


def broadcast_chain(transactions: Sequence[Transaction], sink: BroadcastSink) -> List[str]:
    """Submit ``transactions`` in chain order and return the accepted txids.

    Submission stops at the first rejection or transport failure. The raised
    :class:`BroadcastError` records the failing position and the txids that
    were already accepted; the transactions after it are never sent.
    """

    accepted: List[str] = []
    for index, tx in enumerate(transactions):
        try:
            receipt = sink.broadcast(tx.to_hex())
        except ExternalServiceError as exc:
            logger.error(
                "Broadcast of chain transaction #%d failed after %d accepted: %s",
                index,
                len(accepted),
                exc,
            )
            raise BroadcastError(str(exc), tx_index=index, accepted_txids=accepted) from exc

        if not receipt.accepted:
            reason = receipt.reason or "unknown rejection"
            hint = format_broadcast_hint(reason)
            logger.error(
                "Chain transaction #%d (%s) rejected after %d accepted: %s%s",
                index,
                tx.txid,
                len(accepted),
                reason,
                f" ({hint})" if hint else "",
            )
            raise BroadcastError(reason, tx_index=index, accepted_txids=accepted)

        if receipt.txid and receipt.txid != tx.txid:
            logger.warning("Relay reported txid %s for chain transaction %s", receipt.txid, tx.txid)
        accepted.append(receipt.txid or tx.txid)
        logger.info("Chain transaction %d/%d accepted: %s", index + 1, len(transactions), accepted[-1])
    return accepted
