"""Input signing for inscription chain transactions.

Two kinds of inputs appear in a chain transaction:

* the chain-link input (always input 0) spending the previous commit output,
  signed against the previous lock script and unlocked by revealing the
  previous partial script;
* ordinary funding inputs drawn from the coin ledger, signed against their own
  P2PKH locking script.

Both use ``SIGHASH_ALL``, so signing must happen after funding has added every
input and output.
"""

from __future__ import annotations

import logging
from typing import Iterable

from ..errors import SigningError
from ..keys import PrivateKey
from ..ledger import Coin
from ..script import push_data
from ..transaction import SIGHASH_ALL, OutPoint, Transaction
from .lock_scripts import CommitLink, build_unlock_script

logger = logging.getLogger(__name__)


def _signature(tx: Transaction, input_index: int, script_code: bytes, key: PrivateKey, hash_type: int) -> bytes:
    digest = tx.signature_hash(input_index, script_code, hash_type)
    return key.sign_digest(digest) + bytes([hash_type])


def sign_chain_link(tx: Transaction, key: PrivateKey, link: CommitLink, hash_type: int = SIGHASH_ALL) -> bytes:
    """Sign input 0 against ``link`` and install the revealing unlock script."""

    if not tx.inputs or tx.inputs[0].outpoint != link.coin.outpoint:
        raise SigningError(f"Input 0 does not spend the prior commit output {link.coin.outpoint}")
    signature = _signature(tx, 0, link.lock_script, key, hash_type)
    tx.inputs[0].script_sig = build_unlock_script(link.partial, signature, link.lock_script)
    logger.debug("Signed chain-link input %s revealing %d ops", link.coin.outpoint, len(link.partial))
    return signature


def sign_funding_inputs(
    tx: Transaction,
    key: PrivateKey,
    coins: Iterable[Coin],
    *,
    link_outpoint: OutPoint | None = None,
    hash_type: int = SIGHASH_ALL,
) -> int:
    """Sign every input except the chain link with a standard P2PKH unlock.

    Returns the number of inputs signed.
    """

    by_outpoint = {coin.outpoint: coin for coin in coins}
    signed = 0
    for index, txin in enumerate(tx.inputs):
        if link_outpoint is not None and txin.outpoint == link_outpoint:
            continue
        coin = by_outpoint.get(txin.outpoint)
        if coin is None:
            raise SigningError(f"Input #{index} spends {txin.outpoint}, which is not a known funding coin")
        if coin.script_pubkey != key.script_pubkey:
            raise SigningError(f"Funding coin {coin.outpoint} is not locked to the signing key")
        signature = _signature(tx, index, coin.script_pubkey, key, hash_type)
        txin.script_sig = push_data(signature) + push_data(key.public_key)
        signed += 1
    return signed
