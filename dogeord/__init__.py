"""Dogecoin inscriptions through chained P2SH commit transactions."""

from .errors import (
    APITransportError,
    BroadcastError,
    ExternalServiceError,
    IndexerError,
    InscriptionError,
    InsufficientFunds,
    InvalidInput,
    SigningError,
    format_broadcast_hint,
)
from .keys import PrivateKey, address_to_script_pubkey
from .ledger import Coin, CoinLedger, SharedCoinLedger
from .networks import DOGECOIN_MAINNET, DOGECOIN_TESTNET, Network, get_network
from .transaction import OutPoint, Transaction, TxIn, TxOut
from .funding import FundingResult, fund_transaction, select_coins
from .broadcast import broadcast_chain
from .ordinals import (
    COMMIT_VALUE,
    DEFAULT_FEE,
    MAX_CHUNK_LEN,
    MAX_PAYLOAD_LEN,
    ChainAssembler,
    EnvelopeOp,
    InscriptionResult,
    PartialScript,
    decode_envelope,
    encode_envelope,
    inscribe,
    pack_envelope,
)

__all__ = [
    "APITransportError",
    "BroadcastError",
    "COMMIT_VALUE",
    "ChainAssembler",
    "Coin",
    "CoinLedger",
    "DEFAULT_FEE",
    "DOGECOIN_MAINNET",
    "DOGECOIN_TESTNET",
    "EnvelopeOp",
    "ExternalServiceError",
    "FundingResult",
    "IndexerError",
    "InscriptionError",
    "InscriptionResult",
    "InsufficientFunds",
    "InvalidInput",
    "MAX_CHUNK_LEN",
    "MAX_PAYLOAD_LEN",
    "Network",
    "OutPoint",
    "PartialScript",
    "PrivateKey",
    "SharedCoinLedger",
    "SigningError",
    "Transaction",
    "TxIn",
    "TxOut",
    "address_to_script_pubkey",
    "broadcast_chain",
    "decode_envelope",
    "encode_envelope",
    "format_broadcast_hint",
    "fund_transaction",
    "get_network",
    "inscribe",
    "pack_envelope",
    "select_coins",
]
