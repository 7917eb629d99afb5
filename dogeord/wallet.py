"""Single-key wallet that builds and broadcasts inscription chains."""

from __future__ import annotations

import logging
from typing import List, Protocol

from .api_client import UTXORecord, WalletAPIClient
from .broadcast import BroadcastSink, broadcast_chain
from .config import ConfigurationError, InscriberConfig, load_config
from .errors import BroadcastError
from .keys import PrivateKey
from .ledger import Coin, CoinLedger, SharedCoinLedger
from .networks import DOGECOIN_MAINNET, Network
from .ordinals.chain import COMMIT_VALUE, DEFAULT_FEE, InscriptionResult, inscribe

logger = logging.getLogger(__name__)


class CoinSource(Protocol):
    def fetch_utxos(self, address: str) -> List[UTXORecord]: ...


class InscriptionClient(CoinSource, BroadcastSink, Protocol):
    pass


class InscriptionWallet:
    """Tie one signing key to a coin source, a broadcast sink and a ledger.

    The ledger starts empty; call :meth:`sync` to load the key's spendable
    outputs. After a successful :meth:`inscribe` the wallet keeps the ledger
    produced by the chain (fresh change included), so a second inscription can
    be built without waiting for the first one to confirm.
    """

    def __init__(
        self,
        key: PrivateKey,
        client: InscriptionClient,
        network: Network = DOGECOIN_MAINNET,
        fee: int = DEFAULT_FEE,
        commit_value: int = COMMIT_VALUE,
    ) -> None:
        self.key = key
        self.client = client
        self.network = network
        self.fee = fee
        self.commit_value = commit_value
        self.ledger = SharedCoinLedger()

    @classmethod
    def from_config(cls, config: InscriberConfig | None = None, client: InscriptionClient | None = None) -> "InscriptionWallet":
        config = config or load_config()
        if not config.wallet.wif:
            raise ConfigurationError("No signing key configured; set DOGEORD_WIF or wallet.wif in ~/.dogeord.yaml")
        key = PrivateKey.from_wif(config.wallet.wif, config.wallet.network)
        return cls(
            key,
            client if client is not None else WalletAPIClient(config.api),
            network=config.wallet.network,
            fee=config.wallet.fee,
            commit_value=config.wallet.commit_value,
        )

    @property
    def address(self) -> str:
        return self.key.address(self.network)

    @property
    def wif(self) -> str:
        return self.key.to_wif(self.network)

    def sync(self) -> CoinLedger:
        """Replace the ledger with the coin source's view of :attr:`address`."""

        records = self.client.fetch_utxos(self.address)
        ledger = CoinLedger.from_records(records)
        self.ledger.replace(ledger)
        logger.info("Synced %d coins (%d koinu) for %s", len(ledger), ledger.balance, self.address)
        return ledger

    def balance(self) -> int:
        return self.ledger.snapshot().balance

    def build_inscription(
        self,
        content_type: str,
        payload: bytes,
        receiver_address: str | None = None,
        *,
        commit: bool = True,
    ) -> InscriptionResult:
        """Build and sign a chain without broadcasting it.

        With ``commit`` the wallet's ledger advances to the post-chain ledger;
        without it the ledger is left as it was (a dry run).
        """

        def build(ledger: CoinLedger):
            result = self._build_chain(ledger, content_type, payload, receiver_address)
            return result, result.ledger if commit else ledger

        return self.ledger.update(build)

    def inscribe(self, content_type: str, payload: bytes, receiver_address: str | None = None) -> InscriptionResult:
        """Build, sign and broadcast an inscription chain.

        The ledger advances to the post-chain ledger while the chain is built,
        under the shared ledger's lock, so a concurrent inscription funds from
        what is left. If the relay rejects part of the chain, the transactions
        that were never accepted are rolled back out of the ledger and the
        raised :class:`BroadcastError` lists the txids already accepted.
        """

        def build(ledger: CoinLedger):
            result = self._build_chain(ledger, content_type, payload, receiver_address)
            return (result, ledger), result.ledger

        result, before = self.ledger.update(build)
        try:
            broadcast_chain(result.transactions, self.client)
        except BroadcastError as exc:
            unsent = result.transactions[exc.tx_index or 0 :]
            sources = before.upsert(
                Coin.from_output(tx, index)
                for tx in result.transactions
                for index, output in enumerate(tx.outputs)
                if output.script_pubkey == self.key.script_pubkey
            )
            self.ledger.update(lambda ledger: (None, ledger.rollback(unsent, sources)))
            logger.warning(
                "Inscription chain stopped after %d of %d transactions; rolled back %d unsent",
                len(exc.accepted_txids),
                len(result.transactions),
                len(unsent),
            )
            raise
        logger.info("Inscription %s broadcast", result.txid)
        return result

    def _build_chain(
        self,
        ledger: CoinLedger,
        content_type: str,
        payload: bytes,
        receiver_address: str | None,
    ) -> InscriptionResult:
        return inscribe(
            content_type,
            payload,
            receiver_address or self.address,
            self.key,
            ledger,
            self.fee,
            network=self.network,
            commit_value=self.commit_value,
        )
